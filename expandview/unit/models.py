"""
Data model for expanded compilation units.

Items are a tagged variant keyed by :class:`ItemKind`. Attributes the
compiler synthesizes are kept as opaque strings rather than typed fields,
so a new internal attribute never breaks segmentation.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class ItemKind(str, Enum):
    """Kind of a top-level or nested item."""

    MODULE = "mod"
    FUNCTION = "fn"
    TYPE = "type"
    TRAIT = "trait"
    IMPL = "impl"
    CONST = "const"
    MACRO = "macro"
    USE = "use"
    OTHER = "other"


# Kinds the path selector may descend into.
CONTAINER_KINDS = frozenset({ItemKind.MODULE, ItemKind.IMPL, ItemKind.TRAIT})


@dataclass(frozen=True)
class Span:
    """Half-open range of offsets into the unit text."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end

    def slice(self, text: str) -> str:
        return text[self.start : self.end]


@dataclass(frozen=True)
class Item:
    """A declaration in an expanded unit."""

    kind: ItemKind
    span: Span
    name: str | None = None
    keyword: str = ""
    visibility: str | None = None
    attrs: tuple[str, ...] = ()
    children: tuple["Item", ...] = ()
    body: Span | None = None  # Inside of the braces, for items that have them
    internal_syntax: tuple[str, ...] = ()

    @property
    def is_anonymous(self) -> bool:
        return self.name is None

    @property
    def is_container(self) -> bool:
        return self.kind in CONTAINER_KINDS

    @property
    def uses_internal_syntax(self) -> bool:
        return bool(self.internal_syntax)

    def walk(self) -> Iterator["Item"]:
        """Yield this item and all descendants in source order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def describe(self) -> str:
        label = self.keyword or self.kind.value
        return f"{label} {self.name}" if self.name else label


@dataclass(frozen=True)
class CompilationUnit:
    """An immutable, segmented expanded crate."""

    text: str
    items: tuple[Item, ...] = ()
    attrs: tuple[str, ...] = field(default=())

    @property
    def span(self) -> Span:
        return Span(0, len(self.text))

    @property
    def stable_grammar(self) -> bool:
        """True when no item carries internal-only syntax."""
        return not any(item.uses_internal_syntax for item in self.items)

    def walk(self) -> Iterator[Item]:
        for item in self.items:
            yield from item.walk()

    def source_of(self, item: Item) -> str:
        return item.span.slice(self.text)

    def kinds(self) -> list[ItemKind]:
        return [item.kind for item in self.items]
