"""
Non-fatal notices accumulated over one invocation.

Every fault a stage absorbs (degraded formatter tier, pager closing early,
ambiguous selection) is recorded here so nothing is silently swallowed.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class NoticeKind(StrEnum):
    """Category of a non-fatal notice."""

    FORMATTER_DEGRADED = "formatter_degraded"
    AMBIGUOUS_PATH = "ambiguous_path"
    EMPTY_SELECTION = "empty_selection"
    PAGER_CLOSED = "pager_closed"
    PAGER_UNAVAILABLE = "pager_unavailable"
    OUTPUT_CLOSED = "output_closed"


@dataclass(frozen=True)
class Notice:
    """A single non-fatal notice."""

    kind: NoticeKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


@dataclass
class Diagnostics:
    """Ordered collection of notices for one invocation."""

    notices: list[Notice] = field(default_factory=list)

    def add(self, kind: NoticeKind, message: str, **details: Any) -> Notice:
        notice = Notice(kind=kind, message=message, details=details)
        self.notices.append(notice)
        return notice

    def extend(self, other: "Diagnostics") -> None:
        self.notices.extend(other.notices)

    def has(self, kind: NoticeKind) -> bool:
        return any(n.kind == kind for n in self.notices)

    def of_kind(self, kind: NoticeKind) -> list[Notice]:
        return [n for n in self.notices if n.kind == kind]

    @property
    def kinds(self) -> list[NoticeKind]:
        return [n.kind for n in self.notices]

    def __iter__(self) -> Iterator[Notice]:
        return iter(self.notices)

    def to_dict(self) -> dict[str, Any]:
        return {"notices": [n.to_dict() for n in self.notices]}
