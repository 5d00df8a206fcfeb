"""
expandview: readable, scoped, highlighted views of macro-expanded Rust.

Usage::

    from expandview import RenderOptions, render

    rendered, diagnostics = await render(expanded_text, "my_mod::MyType")
    print(rendered.text)
"""

from __future__ import annotations

from expandview.diagnostics import Diagnostics, Notice, NoticeKind
from expandview.errors import (
    ExpandError,
    FormatterUnavailable,
    InvalidPath,
    MalformedUnit,
    PathNotFound,
    ThemeNotFound,
    ToolchainFailure,
)
from expandview.formatting import FormattingChain, FormatTier, RenderedText, build_formatter
from expandview.options import Coloring, RenderOptions
from expandview.pipeline import expand, render
from expandview.presentation import list_themes, present
from expandview.select import ItemPath, Selection, select
from expandview.toolchain import ExpandArgs
from expandview.unit import CompilationUnit, Item, ItemKind, build_unit

__version__ = "0.1.0"

__all__ = [
    "render",
    "expand",
    "build_unit",
    "select",
    "present",
    "list_themes",
    "build_formatter",
    "FormattingChain",
    "FormatTier",
    "RenderedText",
    "RenderOptions",
    "Coloring",
    "ExpandArgs",
    "ItemPath",
    "Selection",
    "CompilationUnit",
    "Item",
    "ItemKind",
    "Diagnostics",
    "Notice",
    "NoticeKind",
    "ExpandError",
    "FormatterUnavailable",
    "InvalidPath",
    "MalformedUnit",
    "PathNotFound",
    "ThemeNotFound",
    "ToolchainFailure",
]
