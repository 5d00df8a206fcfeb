"""
Formatting chain: ordered formatter strategies with one-way degradation.

Tries each formatter in order and returns the first success. A formatter
that fails is disabled for the rest of the chain's life, so the tier an
invocation ends up with never goes back up. Every skip and failure is
recorded as a FORMATTER_DEGRADED notice; logging it for the user is the
presentation boundary's job.

If every configured formatter fails, the source is returned verbatim at the
raw tier, so rendering is total.
"""

from __future__ import annotations

import logging
import time

from expandview.diagnostics import Diagnostics, NoticeKind
from expandview.errors import FormatterUnavailable
from expandview.formatting.backend import Formatter, build_formatter
from expandview.formatting.types import FormatTier, RenderedText
from expandview.select.selector import Selection, items_to_render
from expandview.unit.models import CompilationUnit

LOG = logging.getLogger("expandview.formatting.chain")

DEFAULT_CHAIN = ("rustfmt", "builtin", "raw")


def default_formatters(use_rustfmt: bool = True, rustfmt_timeout_s: float | None = None) -> list[Formatter]:
    formatters: list[Formatter] = []
    if use_rustfmt:
        kwargs = {} if rustfmt_timeout_s is None else {"timeout_s": rustfmt_timeout_s}
        formatters.append(build_formatter("rustfmt", **kwargs))
    formatters.append(build_formatter("builtin"))
    formatters.append(build_formatter("raw"))
    return formatters


def compose_source(unit: CompilationUnit, selection: Selection) -> str:
    """The text the chain formats for *selection*.

    An empty path renders the whole unit. Several matches are rendered in
    order, each preceded by a separator comment naming the path.
    """
    if selection.path.is_empty:
        return unit.text

    items = items_to_render(selection)
    if not selection.is_ambiguous:
        return "\n\n".join(unit.source_of(item) for item in items) + ("\n" if items else "")

    total = len(items)
    parts = [
        f"// ---- {selection.path} ({n} of {total}) ----\n{unit.source_of(item)}"
        for n, item in enumerate(items, start=1)
    ]
    return "\n\n".join(parts) + "\n"


class FormattingChain:
    """
    Ordered, one-way chain of formatters.

    Usage::

        chain = FormattingChain(diagnostics=diagnostics)
        rendered = await chain.render(unit, selection)
    """

    def __init__(
        self,
        formatters: list[Formatter] | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._formatters = formatters if formatters is not None else default_formatters()
        self._disabled: set[str] = set()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    @property
    def formatters(self) -> list[Formatter]:
        return list(self._formatters)

    @property
    def disabled(self) -> frozenset[str]:
        return frozenset(self._disabled)

    async def render(
        self,
        unit: CompilationUnit,
        selection: Selection,
        stable_grammar: bool | None = None,
    ) -> RenderedText:
        """Render *selection* of *unit*.

        *stable_grammar* defaults to whether the selection (or the whole
        unit, for an empty path) is free of internal-only syntax.
        """
        if stable_grammar is None:
            stable_grammar = unit.stable_grammar if selection.path.is_empty else selection.stable_grammar
        return await self.render_text(compose_source(unit, selection), stable_grammar=stable_grammar)

    async def render_text(self, source: str, stable_grammar: bool = True) -> RenderedText:
        """Run *source* through the chain."""
        for formatter in self._formatters:
            if formatter.name in self._disabled:
                LOG.debug("Skipping disabled formatter %s", formatter.name)
                continue

            if formatter.tier is FormatTier.FULL and not stable_grammar:
                self._degrade(formatter, "input contains internal-only syntax", disable=False)
                continue

            t0 = time.monotonic()
            try:
                text = await formatter.format(source)
            except FormatterUnavailable as exc:
                self._degrade(formatter, exc.reason, disable=True)
                continue

            LOG.debug("Formatted with %s (%s tier) in %.3fs", formatter.name, formatter.tier.value, time.monotonic() - t0)
            return RenderedText(text=text, tier=formatter.tier, formatter=formatter.name)

        self.diagnostics.add(
            NoticeKind.FORMATTER_DEGRADED,
            "all formatters failed; showing unformatted text",
            formatter="raw",
            tier=FormatTier.RAW.value,
        )
        return RenderedText(text=source, tier=FormatTier.RAW, formatter="raw")

    def _degrade(self, formatter: Formatter, reason: str, disable: bool) -> None:
        if disable:
            self._disabled.add(formatter.name)
        LOG.debug("Formatter %s not used: %s", formatter.name, reason)
        self.diagnostics.add(
            NoticeKind.FORMATTER_DEGRADED,
            f"{formatter.name} not used: {reason}",
            formatter=formatter.name,
            tier=formatter.tier.value,
            reason=reason,
        )
