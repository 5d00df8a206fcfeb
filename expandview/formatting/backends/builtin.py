"""
Builtin formatter: the fallback tier.

A minimal printer that re-lays out the token stream. Rust is insensitive to
whitespace between tokens, so the printer only ever decides *which*
whitespace goes between two tokens:

- glued in the source -> glued; otherwise a single space
- block braces open and close an indented line
- ``;`` and ``,`` directly inside a block end the line
- attributes and line comments at block level end the line
- items get a blank line between them (``use`` runs stay together)

Anything the unit builder accepts is printed as syntactically valid text.
Readability is below rustfmt's: long lines are never wrapped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from expandview.errors import ExpandError, FormatterUnavailable
from expandview.formatting.backend import Formatter
from expandview.formatting.types import FormatTier
from expandview.unit.builder import build_unit
from expandview.unit.lexer import Token, TokenKind, match_delimiters, tokenize
from expandview.unit.models import CompilationUnit, Item, ItemKind

LOG = logging.getLogger("expandview.formatting.backends.builtin")

INDENT = "    "
# Tokens that continue the line after a closing block brace.
CONTINUATIONS = frozenset({";", ",", ".", "?", ")", "]", "}", "else", "as", "=>"})
# A brace after one of these is inline: use trees and const generic arguments.
INLINE_BRACE_PRECEDERS = frozenset({"::", "<"})


@dataclass
class _Group:
    delim: str
    inline: bool

    @property
    def is_block(self) -> bool:
        return self.delim == "{" and not self.inline


def _item_breaks(unit: CompilationUnit) -> set[int]:
    """Offsets of item starts that should be preceded by a blank line."""
    breaks: set[int] = set()

    def visit(items: tuple[Item, ...], after_attrs: bool) -> None:
        prev: Item | None = None
        for item in items:
            if prev is not None:
                if not (item.kind is ItemKind.USE and prev.kind is ItemKind.USE):
                    breaks.add(item.span.start)
            elif after_attrs:
                breaks.add(item.span.start)
            if item.children:
                visit(item.children, after_attrs=False)
            prev = item

    visit(unit.items, after_attrs=bool(unit.attrs))
    return breaks


def _with_leading_comments(tokens: list[Token], source: str, k: int) -> int:
    """Move an item break at token *k* above the comment lines right before it."""
    while k > 0 and tokens[k - 1].kind is TokenKind.COMMENT:
        if k >= 2 and "\n" not in source[tokens[k - 2].end : tokens[k - 1].start]:
            break
        k -= 1
    return k


def reprint(source: str) -> str:
    """Re-lay out *source*; raises MalformedUnit if it does not tokenize."""
    tokens = tokenize(source)
    pairs = match_delimiters(tokens)
    try:
        offsets = _item_breaks(build_unit(source))
    except ExpandError:
        offsets = set()
    index = {tok.start: k for k, tok in enumerate(tokens)}
    breaks = {_with_leading_comments(tokens, source, index[offset]) for offset in offsets if offset in index}

    out: list[str] = []
    stack: list[_Group] = []
    attr_ends: set[int] = set()
    newlines = 0
    prev: Token | None = None

    def at_block_level() -> bool:
        return not stack or stack[-1].is_block

    for k, tok in enumerate(tokens):
        nxt = tokens[k + 1] if k + 1 < len(tokens) else None

        if tok.kind is TokenKind.CLOSE:
            group = stack.pop()
            if group.is_block:
                newlines = max(newlines, 1)

        if prev is not None:
            if k in breaks:
                newlines = 2
            elif tok.kind in (TokenKind.COMMENT, TokenKind.DOC_COMMENT):
                gap = source[prev.end : tok.start]
                if "\n" not in gap:
                    # Trailing comment stays on its line.
                    newlines = 0
                else:
                    newlines = max(newlines, 2 if gap.count("\n") > 1 else 1)

        if prev is None:
            pass
        elif newlines:
            depth = sum(1 for group in stack if group.is_block)
            out.append("\n" * newlines + INDENT * depth)
        elif prev.end != tok.start:
            out.append(" ")
        out.append(tok.text)
        newlines = 0

        if tok.kind is TokenKind.OPEN:
            block_level = at_block_level()
            if tok.text == "{":
                empty = pairs[k] == k + 1
                inline = empty or (prev is not None and prev.text in INLINE_BRACE_PRECEDERS)
                stack.append(_Group("{", inline))
                if not inline:
                    newlines = 1
            else:
                stack.append(_Group(tok.text, True))
                if tok.text == "[" and prev is not None and block_level:
                    before = tokens[k - 2] if k >= 2 else None
                    if prev.is_punct("#") or (prev.is_punct("!") and before is not None and before.is_punct("#")):
                        attr_ends.add(pairs[k])
        elif tok.kind is TokenKind.CLOSE:
            if k in attr_ends:
                newlines = 1
            elif tok.text == "}" and at_block_level():
                if nxt is not None and nxt.text not in CONTINUATIONS:
                    newlines = 1
        elif tok.kind in (TokenKind.COMMENT, TokenKind.DOC_COMMENT):
            if tok.text.startswith("//") or at_block_level():
                newlines = 1
        elif tok.is_punct(";") or tok.is_punct(","):
            if stack and stack[-1].is_block or (not stack and tok.text == ";"):
                newlines = 1

        prev = tok

    text = "".join(out)
    return text + "\n" if text else ""


class BuiltinFormatter(Formatter):
    """Token-level re-layout; works on any text the unit builder accepts."""

    name = "builtin"
    tier = FormatTier.FALLBACK

    def __init__(self, **kwargs: Any) -> None:
        pass

    async def format(self, source: str) -> str:
        try:
            text = reprint(source)
        except ExpandError as exc:
            raise FormatterUnavailable(self.name, str(exc)) from exc
        LOG.debug("Reprinted %d chars into %d lines", len(source), text.count("\n"))
        return text
