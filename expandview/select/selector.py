"""
Path selector: narrow a unit to the items an :class:`ItemPath` names.

The walk keeps sibling groups separate so positional markers count within
one container, and so matches from several same-named containers stay in
source order. Nothing is deduplicated: expansion can legitimately produce
repeated siblings with the same name, and all of them are returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from expandview.select.path import ItemPath, PathSegment
from expandview.unit.models import CompilationUnit, Item, ItemKind

LOG = logging.getLogger("expandview.select.selector")


@dataclass(frozen=True)
class Selection:
    """Items matched by a path query, in source order."""

    path: ItemPath
    items: tuple[Item, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def is_ambiguous(self) -> bool:
        return len(self.items) > 1

    @property
    def stable_grammar(self) -> bool:
        return not any(item.uses_internal_syntax for item in self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


def _match_group(segment: PathSegment, siblings: tuple[Item, ...]) -> list[Item]:
    if not segment.is_positional:
        return [item for item in siblings if segment.matches_name(item)]
    counted = [item for item in siblings if segment.counts(item)]
    if segment.index is not None and segment.index < len(counted):
        return [counted[segment.index]]
    return []


def select(unit: CompilationUnit, path: ItemPath) -> Selection:
    """Return every item *path* names in *unit*.

    An empty path selects the whole top-level sequence. No match yields an
    empty selection; reporting that is up to the caller.
    """
    if path.is_empty:
        return Selection(path=path, items=unit.items)

    groups: list[tuple[Item, ...]] = [unit.items]
    last = len(path.segments) - 1
    matches: list[Item] = []

    for depth, segment in enumerate(path.segments):
        matches = [item for group in groups for item in _match_group(segment, group)]
        if depth == last:
            break
        groups = [item.children for item in matches if item.is_container]
        LOG.debug("Segment %r: %d matches, %d containers to enter", str(segment), len(matches), len(groups))
        if not groups:
            matches = []
            break

    return Selection(path=path, items=tuple(matches))


def items_to_render(selection: Selection) -> tuple[Item, ...]:
    """Items whose text is shown for *selection*.

    A single selected module with an inline body is shown as its contents.
    """
    if len(selection.items) == 1 and not selection.path.is_empty:
        only = selection.items[0]
        if only.kind is ItemKind.MODULE and only.body is not None:
            return only.children
    return selection.items
