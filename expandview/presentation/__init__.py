"""
Presentation pipeline: highlighting, themes and the pager.
"""

from __future__ import annotations

from expandview.presentation.highlight import StyleCategory, StyleSpan, styling_map, to_ansi
from expandview.presentation.pager import PagerOutcome, page, pager_command
from expandview.presentation.presenter import Presentation, prepare, present, report, use_color, write_direct
from expandview.presentation.themes import DEFAULT_THEME, NO_THEME, list_themes, resolve_theme

__all__ = [
    "StyleCategory",
    "StyleSpan",
    "styling_map",
    "to_ansi",
    "PagerOutcome",
    "page",
    "pager_command",
    "Presentation",
    "prepare",
    "present",
    "report",
    "use_color",
    "write_direct",
    "DEFAULT_THEME",
    "NO_THEME",
    "list_themes",
    "resolve_theme",
]
