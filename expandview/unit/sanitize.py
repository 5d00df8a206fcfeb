"""
Optional clean-up of a unit before rendering.

Macro definitions and leftover macro items are noise once expansion has
happened. They are removed from module item lists and from statement
blocks inside function and constant bodies; doc attributes on statements
go too, since they cannot be written back as comments. Removing them edits
the text, so the result is rebuilt into a fresh unit rather than patched
in place.
"""

from __future__ import annotations

import logging

from expandview.unit.builder import build_unit
from expandview.unit.lexer import Token, TokenKind, match_delimiters, tokenize
from expandview.unit.models import CompilationUnit, Item, ItemKind, Span

LOG = logging.getLogger("expandview.unit.sanitize")

# Kinds whose braces hold statements rather than fields or items.
STATEMENT_BODY_KINDS = frozenset({ItemKind.FUNCTION, ItemKind.CONST})
ITEM_KEYWORDS = frozenset(
    {"fn", "struct", "enum", "union", "trait", "impl", "mod", "use", "static", "type", "extern", "macro"}
)
ITEM_QUALIFIERS = frozenset({"pub", "unsafe", "async", "const", "default", "safe", "auto"})
# Nested items whose braces hold fields, which keep their docs.
FIELD_ITEM_KEYWORDS = frozenset({"struct", "enum", "union"})


def _macro_spans(items: tuple[Item, ...]) -> list[Span]:
    spans: list[Span] = []
    for item in items:
        if item.kind is ItemKind.MACRO:
            spans.append(item.span)
        elif item.kind is ItemKind.MODULE:
            spans.extend(_macro_spans(item.children))
    return spans


class _StatementScanner:
    """Finds removable statements and statement attributes in block bodies."""

    def __init__(self, text: str):
        self.tokens = [t for t in tokenize(text) if t.kind is not TokenKind.COMMENT]
        self.pairs = match_delimiters(self.tokens)
        self.index = {tok.start: k for k, tok in enumerate(self.tokens)}
        self.spans: list[Span] = []

    def _tok(self, k: int, hi: int) -> Token | None:
        return self.tokens[k] if k < hi else None

    def _span(self, lo: int, hi: int) -> Span:
        return Span(self.tokens[lo].start, self.tokens[hi].end)

    def visit_items(self, items: tuple[Item, ...]) -> None:
        for item in items:
            if item.children:
                self.visit_items(item.children)
            elif item.kind in STATEMENT_BODY_KINDS:
                self.visit_item(item)

    def visit_item(self, item: Item) -> None:
        k = self.index.get(item.span.start)
        if k is None:
            return
        while k < len(self.tokens) and self.tokens[k].start < item.span.end:
            tok = self.tokens[k]
            if tok.kind is TokenKind.OPEN:
                self.visit_group(k, is_block=tok.text == "{")
                k = self.pairs[k] + 1
            else:
                k += 1

    def visit_group(self, open_: int, is_block: bool) -> None:
        close = self.pairs[open_]
        k = open_ + 1
        at_start = is_block
        while k < close:
            if at_start:
                at_start = False
                resume = self._statement(k, close)
                if resume is not None:
                    k = resume
                    at_start = True
                    continue

            tok = self.tokens[k]
            if tok.kind is TokenKind.OPEN:
                prev = self.tokens[k - 1]
                # Macro arguments are token trees, not statements.
                if not prev.is_punct("!"):
                    self.visit_group(k, is_block=tok.text == "{")
                k = self.pairs[k] + 1
                at_start = is_block and tok.text == "{"
                continue
            if is_block and tok.is_punct(";"):
                at_start = True
            k += 1

    def _statement(self, k: int, close: int) -> int | None:
        """Handle the statement starting at *k*.

        Returns where scanning resumes when the whole statement was removed,
        otherwise None (doc attributes may still have been recorded).
        """
        docs: list[Span] = []
        j = k
        while j < close:
            tok = self.tokens[j]
            if tok.kind is TokenKind.DOC_COMMENT and not tok.is_inner_doc:
                docs.append(self._span(j, j))
                j += 1
                continue
            bracket = self._tok(j + 1, close)
            if tok.is_punct("#") and bracket is not None and bracket.text == "[":
                end = self.pairs[j + 1]
                first = self._tok(j + 2, end)
                if first is not None and first.is_ident("doc"):
                    docs.append(self._span(j, end))
                j = end + 1
                continue
            break

        end = self._macro_item_end(j, close)
        if end is not None:
            self.spans.append(self._span(k, end))
            return end + 1
        head = self._item_head(j, close)
        if head is None:
            self.spans.extend(docs)
        elif self.tokens[head].text in FIELD_ITEM_KEYWORDS:
            return self._item_end(head, close) + 1
        return None

    def _macro_item_end(self, j: int, close: int) -> int | None:
        """Last token of a ``macro_rules!`` definition or ``path! { ... }`` item at *j*."""
        k = j
        while True:
            tok = self._tok(k, close)
            if tok is None or tok.kind is not TokenKind.IDENT:
                return None
            sep = self._tok(k + 1, close)
            if sep is None or not sep.is_punct("::"):
                break
            k += 2

        bang = self._tok(k + 1, close)
        if bang is None or not bang.is_punct("!"):
            return None
        body = k + 2
        if self.tokens[k].is_ident("macro_rules") and k == j:
            name = self._tok(body, close)
            if name is None or name.kind is not TokenKind.IDENT:
                return None
            body += 1
        elif not (self._tok(body, close) is not None and self.tokens[body].text == "{"):
            # Parenthesized invocations in statement position are expressions.
            return None

        group = self._tok(body, close)
        if group is None or group.kind is not TokenKind.OPEN:
            return None
        end = self.pairs[body]
        after = self._tok(end + 1, close)
        if after is not None and after.is_punct(";"):
            end += 1
        return end

    def _item_head(self, j: int, close: int) -> int | None:
        """Index of the keyword when the statement at *j* declares a nested item."""
        first = self._tok(j, close)
        if first is None:
            return None
        k = j
        while k < close and self.tokens[k].text in ITEM_QUALIFIERS:
            nxt = self._tok(k + 1, close)
            if self.tokens[k].text == "pub" and nxt is not None and nxt.text == "(":
                k = self.pairs[k + 1]
            k += 1
        tok = self._tok(k, close)
        if tok is None:
            return None
        if tok.text in ITEM_KEYWORDS:
            return k
        # `const NAME: T = ...;` as opposed to a `const { ... }` block.
        if first.text == "const" and tok.text not in ("{", "|", "move"):
            return j
        return None

    def _item_end(self, head: int, close: int) -> int:
        """Last token of the field-list item whose keyword is at *head*."""
        k = head
        while k < close:
            tok = self.tokens[k]
            if tok.kind is TokenKind.OPEN:
                if tok.text == "{":
                    return self.pairs[k]
                k = self.pairs[k] + 1
                continue
            if tok.is_punct(";"):
                return k
            k += 1
        return close - 1


def _removal_extent(text: str, span: Span) -> tuple[int, int]:
    """Widen *span* over trailing blanks, and over its whole line when it fills one."""
    end = span.end
    while end < len(text) and text[end] in " \t":
        end += 1
    if end < len(text) and text[end] != "\n":
        return span.start, end
    end = min(end + 1, len(text))

    start = span.start
    while start > 0 and text[start - 1] in " \t":
        start -= 1
    if start == 0 or text[start - 1] == "\n":
        return start, end
    return span.start, end


def strip_macros(unit: CompilationUnit) -> CompilationUnit:
    """Return a unit without macro items and without doc attributes on statements."""
    spans = _macro_spans(unit.items)
    scanner = _StatementScanner(unit.text)
    scanner.visit_items(unit.items)
    spans.extend(scanner.spans)
    if not spans:
        return unit

    text = unit.text
    for span in sorted(spans, key=lambda s: s.start, reverse=True):
        start, end = _removal_extent(text, span)
        text = text[:start] + text[end:]

    LOG.debug(
        "Stripped %d macro items and statement attributes (%d inside bodies)", len(spans), len(scanner.spans)
    )
    return build_unit(text)
