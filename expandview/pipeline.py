"""
Public entry points: ``render`` expanded text, or ``expand`` a crate.

Stages run in order (build, sanitize, select, format, present) and share one
:class:`Diagnostics` for the invocation. Fatal faults raise an
:class:`ExpandError` subclass; everything else becomes a notice.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, TextIO

from expandview.diagnostics import Diagnostics, NoticeKind
from expandview.errors import PathNotFound
from expandview.formatting.backend import Formatter, build_formatter
from expandview.formatting.chain import FormattingChain, default_formatters
from expandview.formatting.types import RenderedText
from expandview.options import RenderOptions
from expandview.presentation.presenter import present, report
from expandview.presentation.themes import resolve_theme
from expandview.select.path import ItemPath
from expandview.select.selector import Selection, select
from expandview.toolchain import ExpandArgs, run_expansion
from expandview.unit.builder import build_unit
from expandview.unit.sanitize import strip_macros

LOG = logging.getLogger("expandview.pipeline")


def _note_selection(selection: Selection, diagnostics: Diagnostics) -> None:
    if selection.is_empty:
        if not selection.path.is_empty:
            raise PathNotFound(str(selection.path))
        diagnostics.add(NoticeKind.EMPTY_SELECTION, "expanded unit contains no items")
    elif selection.is_ambiguous and not selection.path.is_empty:
        diagnostics.add(
            NoticeKind.AMBIGUOUS_PATH,
            f"{selection.path} matches {len(selection)} items; showing all of them",
            path=str(selection.path),
            count=len(selection),
            items=[item.describe() for item in selection],
        )


def _build_chain(
    options: RenderOptions,
    diagnostics: Diagnostics,
    formatters: Optional[list[Formatter]] = None,
) -> FormattingChain:
    if options.ugly:
        return FormattingChain([build_formatter("raw")], diagnostics)
    if formatters is None:
        formatters = default_formatters(options.use_rustfmt, options.rustfmt_timeout_s)
    return FormattingChain(formatters, diagnostics)


async def render(
    unit_text: str,
    path_query: Optional[str] = None,
    options: Optional[RenderOptions] = None,
    *,
    sink: Optional[TextIO] = None,
    formatters: Optional[list[Formatter]] = None,
) -> tuple[RenderedText, Diagnostics]:
    """
    Render expanded Rust text, optionally scoped to an item path.

    Args:
        unit_text: Output of ``rustc -Zunpretty=expanded``.
        path_query: ``outer::inner`` style item path; None or "" renders
            the whole unit.
        options: Rendering and presentation options.
        sink: Where to write the result. When None nothing is written and
            the caller uses the returned text.
        formatters: Replaces the default formatter chain.

    Returns:
        The rendered text and the notices recorded along the way.

    Raises:
        InvalidPath: malformed path query.
        MalformedUnit: the text could not be segmented into items.
        PathNotFound: a non-empty path matched nothing.
        ThemeNotFound: unknown highlighting theme.
    """
    options = options if options is not None else RenderOptions()
    diagnostics = Diagnostics()
    t0 = time.monotonic()

    resolve_theme(options.theme)
    path = ItemPath.parse(path_query)

    unit = build_unit(unit_text)
    if options.strip_macros:
        unit = strip_macros(unit)
    LOG.debug("Built unit: %d top-level items", len(unit.items))

    selection = select(unit, path)
    _note_selection(selection, diagnostics)
    LOG.debug("Selected %d items for %r", len(selection), str(path))

    chain = _build_chain(options, diagnostics, formatters)
    rendered = await chain.render(unit, selection, stable_grammar=options.stable_grammar)
    LOG.debug("Rendered at %s tier by %s in %.3fs", rendered.tier.value, rendered.formatter, time.monotonic() - t0)

    if sink is not None:
        await present(rendered, options, sink, diagnostics)
    else:
        report(diagnostics, options.warn_on_degraded)
    return rendered, diagnostics


async def expand(
    args: ExpandArgs,
    options: Optional[RenderOptions] = None,
    sink: Optional[TextIO] = None,
    *,
    item: Optional[str] = None,
    cargo: Optional[str] = None,
    stderr: Optional[TextIO] = None,
) -> tuple[RenderedText, Diagnostics]:
    """Run the toolchain on a crate, then :func:`render` its output.

    Warnings from a successful build are copied to *stderr* when given.

    Raises:
        ToolchainFailure: the build failed; nothing is rendered.
    """
    options = options if options is not None else RenderOptions()
    resolve_theme(options.theme)
    ItemPath.parse(item)
    text = await run_expansion(args, cargo, stderr=stderr)
    return await render(text, item, options, sink=sink)
