"""
Theme registry for highlighting.

Themes are Pygments styles, looked up by name. ``none`` turns colour off.
"""

from __future__ import annotations

from pygments.style import Style as PygmentsStyle
from pygments.styles import get_all_styles, get_style_by_name
from pygments.util import ClassNotFound

from expandview.errors import ThemeNotFound

NO_THEME = "none"
DEFAULT_THEME = "monokai"


def list_themes() -> list[str]:
    """All theme names, sorted, including ``none``."""
    return sorted(set(get_all_styles()) | {NO_THEME})


def resolve_theme(name: str | None) -> str:
    """Validate *name*, defaulting to DEFAULT_THEME.

    Raises:
        ThemeNotFound: if the name is not registered.
    """
    if name is None:
        return DEFAULT_THEME
    if name == NO_THEME:
        return name
    if name not in set(get_all_styles()):
        raise ThemeNotFound(name, list_themes())
    return name


def load_theme(name: str) -> type[PygmentsStyle]:
    try:
        return get_style_by_name(name)
    except ClassNotFound as exc:
        raise ThemeNotFound(name, list_themes()) from exc
