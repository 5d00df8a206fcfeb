"""
Abstract formatter interface.

Each tier of the formatting chain is a strategy sharing one contract:
``format(source) -> text``, or raise :class:`FormatterUnavailable`. A
factory builds formatters by name so the chain can be configured at
runtime.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from expandview.formatting.types import FormatTier

LOG = logging.getLogger("expandview.formatting.backend")


class Formatter(ABC):
    """
    Abstract interface for formatting strategies.

    Implementations must either return the formatted text or raise
    FormatterUnavailable; they never return partial output.
    """

    name: str = "formatter"
    tier: FormatTier = FormatTier.FALLBACK

    @abstractmethod
    async def format(self, source: str) -> str:
        """
        Format *source*.

        Raises:
            FormatterUnavailable: the formatter is missing, failed, timed
                out, or rejected the input.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tier={self.tier.value})"


def build_formatter(name: str, **kwargs: Any) -> Formatter:
    """
    Factory: create a Formatter of the requested type.

    Args:
        name: "rustfmt", "builtin", or "raw"
        **kwargs: Formatter-specific configuration

    Raises:
        ValueError: Unknown formatter
    """
    if name == "rustfmt":
        from expandview.formatting.backends.rustfmt import RustfmtFormatter

        return RustfmtFormatter(**kwargs)

    elif name == "builtin":
        from expandview.formatting.backends.builtin import BuiltinFormatter

        return BuiltinFormatter(**kwargs)

    elif name == "raw":
        from expandview.formatting.backends.raw import RawFormatter

        return RawFormatter(**kwargs)

    else:
        raise ValueError(f"Unknown formatter: {name!r}. Supported: 'rustfmt', 'builtin', 'raw'")
