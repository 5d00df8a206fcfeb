"""
Raw formatter: the original text, untouched.

Last tier of the chain. It cannot fail.
"""

from __future__ import annotations

from typing import Any

from expandview.formatting.backend import Formatter
from expandview.formatting.types import FormatTier


class RawFormatter(Formatter):
    name = "raw"
    tier = FormatTier.RAW

    def __init__(self, **kwargs: Any) -> None:
        pass

    async def format(self, source: str) -> str:
        return source
