"""
Result types for the formatting chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class FormatTier(StrEnum):
    """Which strategy produced a rendered text, best first."""

    FULL = "full"
    FALLBACK = "fallback"
    RAW = "raw"

    @property
    def rank(self) -> int:
        return list(FormatTier).index(self)


@dataclass(frozen=True)
class RenderedText:
    """Rendered source plus the tier that produced it."""

    text: str
    tier: FormatTier
    formatter: str = ""

    @property
    def degraded(self) -> bool:
        return self.tier is not FormatTier.FULL

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "tier": self.tier.value, "formatter": self.formatter}
