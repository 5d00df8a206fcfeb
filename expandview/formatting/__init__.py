"""
Formatting chain: rustfmt, then the builtin printer, then raw text.
"""

from __future__ import annotations

from expandview.formatting.backend import Formatter, build_formatter
from expandview.formatting.chain import FormattingChain, compose_source, default_formatters
from expandview.formatting.types import FormatTier, RenderedText

__all__ = [
    "Formatter",
    "build_formatter",
    "FormattingChain",
    "compose_source",
    "default_formatters",
    "FormatTier",
    "RenderedText",
]
