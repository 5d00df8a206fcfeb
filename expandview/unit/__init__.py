"""
Unit builder: expanded text to a structured, immutable item tree.
"""

from __future__ import annotations

from expandview.unit.builder import build_unit
from expandview.unit.lexer import Token, TokenKind, tokenize
from expandview.unit.models import CONTAINER_KINDS, CompilationUnit, Item, ItemKind, Span
from expandview.unit.sanitize import strip_macros

__all__ = [
    "build_unit",
    "strip_macros",
    "tokenize",
    "Token",
    "TokenKind",
    "CompilationUnit",
    "Item",
    "ItemKind",
    "Span",
    "CONTAINER_KINDS",
]
