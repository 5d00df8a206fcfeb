"""
Item path queries.

A query is a ``::``-separated (or ``.``-separated) list of segments. A
segment is either an identifier matched exactly against item names, or a
positional marker ``{kind#N}`` that picks the N-th anonymous sibling of a
kind, in the style rustc uses for def paths (``{impl#0}``). ``{anon#N}``
counts anonymous siblings of any kind.

Examples::

    ItemPath.parse("os::unix::ffi")
    ItemPath.parse("::my_mod::{impl#1}::new")
    ItemPath.parse("")            # select everything
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from expandview.errors import InvalidPath
from expandview.unit.models import Item, ItemKind

IDENT_SEGMENT_RE = re.compile(r"^(?:r#)?(?:[^\W\d]|_)\w*$")
POSITIONAL_SEGMENT_RE = re.compile(r"^\{(?P<tag>[a-z]+)#(?P<index>\d+)\}$")
SEPARATOR_RE = re.compile(r"::|\.")

ANY_ANONYMOUS = "anon"
POSITIONAL_TAGS = frozenset({kind.value for kind in ItemKind} | {ANY_ANONYMOUS})


@dataclass(frozen=True)
class PathSegment:
    """One step of an item path: a name, or a positional marker."""

    name: str | None = None
    tag: str | None = None
    index: int | None = None

    @property
    def is_positional(self) -> bool:
        return self.name is None

    def matches_name(self, item: Item) -> bool:
        if self.name is None or item.name is None:
            return False
        return _bare(item.name) == _bare(self.name)

    def counts(self, item: Item) -> bool:
        """Whether *item* takes part in this positional marker's numbering."""
        if not item.is_anonymous:
            return False
        return self.tag == ANY_ANONYMOUS or item.kind.value == self.tag

    def __str__(self) -> str:
        if self.name is not None:
            return self.name
        return f"{{{self.tag}#{self.index}}}"


def _bare(name: str) -> str:
    return name[2:] if name.startswith("r#") else name


@dataclass(frozen=True)
class ItemPath:
    """An ordered sequence of path segments."""

    segments: tuple[PathSegment, ...] = ()

    @classmethod
    def parse(cls, query: str | None) -> "ItemPath":
        """Parse a query string.

        Raises:
            InvalidPath: if a segment is neither an identifier nor a
                positional marker.
        """
        if query is None:
            return cls()
        query = query.strip()
        if query.startswith("::"):
            query = query[2:]
        if not query:
            return cls()

        segments: list[PathSegment] = []
        for raw in SEPARATOR_RE.split(query):
            raw = raw.strip()
            if IDENT_SEGMENT_RE.match(raw):
                segments.append(PathSegment(name=raw))
                continue
            m = POSITIONAL_SEGMENT_RE.match(raw)
            if m and m.group("tag") in POSITIONAL_TAGS:
                segments.append(PathSegment(tag=m.group("tag"), index=int(m.group("index"))))
                continue
            if not raw:
                raise InvalidPath(f"empty segment in item path {query!r}")
            raise InvalidPath(f"`{raw}` is not an identifier or a positional marker like {{impl#0}}")
        return cls(tuple(segments))

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return "::".join(str(s) for s in self.segments)
