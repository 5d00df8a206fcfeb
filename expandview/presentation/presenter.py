"""
Presentation boundary: colour, pager and output.

Decides whether to colour, paints the rendered text, and writes it to the
pager or directly to the sink. A reader that goes away early, whether the
pager or the sink itself, ends the write quietly with a notice. This is
also where recorded notices are reported to the user through logging.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TextIO

from expandview.diagnostics import Diagnostics, NoticeKind
from expandview.formatting.types import RenderedText
from expandview.options import Coloring, RenderOptions
from expandview.presentation.highlight import StyleSpan, styling_map, to_ansi
from expandview.presentation.pager import page, pager_command
from expandview.presentation.themes import NO_THEME, resolve_theme

LOG = logging.getLogger("expandview.presentation")


@dataclass(frozen=True)
class Presentation:
    """What was (or would be) shown for a rendered text."""

    rendered: RenderedText
    styles: tuple[StyleSpan, ...]
    theme: str
    colored: bool

    @property
    def output(self) -> str:
        if not self.colored:
            return self.rendered.text
        return to_ansi(self.rendered.text, self.styles, self.theme)


def _isatty(sink: TextIO) -> bool:
    isatty = getattr(sink, "isatty", None)
    return bool(isatty and isatty())


def use_color(options: RenderOptions, theme: str, sink: TextIO | None) -> bool:
    if theme == NO_THEME:
        return False
    if options.color is Coloring.ALWAYS:
        return True
    if options.color is Coloring.NEVER:
        return False
    return sink is not None and _isatty(sink)


def prepare(rendered: RenderedText, options: RenderOptions, sink: TextIO | None = None) -> Presentation:
    """Resolve theme and colour for *rendered*.

    Raises:
        ThemeNotFound: before anything is written.
    """
    theme = resolve_theme(options.theme)
    colored = use_color(options, theme, sink)
    styles = styling_map(rendered.text) if colored else ()
    return Presentation(rendered=rendered, styles=styles, theme=theme, colored=colored)


def report(diagnostics: Diagnostics, warn_on_degraded: bool = True) -> None:
    """Log recorded notices for the user."""
    for notice in diagnostics:
        if notice.kind is NoticeKind.FORMATTER_DEGRADED and not warn_on_degraded:
            LOG.debug("%s", notice.message)
        elif notice.kind in (NoticeKind.PAGER_CLOSED, NoticeKind.OUTPUT_CLOSED):
            LOG.debug("%s", notice.message)
        else:
            LOG.warning("%s", notice.message)


def write_direct(text: str, sink: TextIO, diagnostics: Diagnostics) -> bool:
    """Write to *sink*; returns False if the reader closed it."""
    try:
        sink.write(text)
        sink.flush()
    except (BrokenPipeError, ConnectionResetError):
        diagnostics.add(NoticeKind.OUTPUT_CLOSED, "output closed before all text was written")
        return False
    return True


async def present(
    rendered: RenderedText,
    options: RenderOptions,
    sink: TextIO,
    diagnostics: Diagnostics,
) -> Presentation:
    """Paint *rendered* and deliver it to the pager or *sink*."""
    presentation = prepare(rendered, options, sink)
    text = presentation.output

    if options.paging and _isatty(sink):
        command = pager_command(options.pager_command)
        try:
            outcome = await page(text.encode("utf-8"), command)
        except OSError as exc:
            diagnostics.add(
                NoticeKind.PAGER_UNAVAILABLE,
                f"cannot start pager {command[0]!r}: {exc}",
                command=command,
            )
        else:
            if outcome.closed_early:
                diagnostics.add(
                    NoticeKind.PAGER_CLOSED,
                    f"pager closed after {outcome.written} of {outcome.total} bytes",
                    written=outcome.written,
                    total=outcome.total,
                )
            report(diagnostics, options.warn_on_degraded)
            return presentation

    write_direct(text, sink, diagnostics)
    report(diagnostics, options.warn_on_degraded)
    return presentation
