"""
Path selector: scope a unit to the items a path query names.
"""

from __future__ import annotations

from expandview.select.path import ItemPath, PathSegment
from expandview.select.selector import Selection, items_to_render, select

__all__ = ["ItemPath", "PathSegment", "Selection", "items_to_render", "select"]
