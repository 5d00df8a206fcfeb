"""
Unit builder: segments expanded Rust text into items.

The builder accepts the public item grammar plus the extensions that only
appear in compiler expansion output:

- synthesized attributes (``#[prelude_import]``, ``#[rustc_*]``,
  ``#[lang = "..."]``), stored verbatim like any other attribute
- the injected ``extern crate std;`` and prelude ``use``
- anonymous ``const _: () = { ... };`` blocks emitted by derives
- negative impls and ``auto trait``
- ``builtin # name(...)`` forms, ``box`` expressions and ``do yeet``

Its job is structural segmentation, not validation: anything in item
position that it cannot classify becomes an ``other`` item running to the
next ``;`` or brace group. It only fails when the text cannot be
segmented at all, e.g. unbalanced delimiters or an item cut off at EOF.
"""

from __future__ import annotations

import logging

from expandview.errors import MalformedUnit
from expandview.unit.lexer import Token, TokenKind, match_delimiters, tokenize
from expandview.unit.models import CompilationUnit, Item, ItemKind, Span

LOG = logging.getLogger("expandview.unit.builder")

QUALIFIERS = frozenset({"default", "async", "unsafe", "safe", "auto", "gen"})
# Keywords that may follow ``const`` when it is a function qualifier.
CONST_FN_FOLLOWERS = frozenset({"fn", "unsafe", "async", "extern"})
# A brace group after one of these in an item header is a const generic argument.
GENERIC_ARG_PRECEDERS = frozenset({"<", ",", "="})


def build_unit(text: str) -> CompilationUnit:
    """Parse expanded *text* into a :class:`CompilationUnit`.

    Raises:
        MalformedUnit: if the text cannot be segmented into items.
    """
    tokens = [t for t in tokenize(text) if t.kind is not TokenKind.COMMENT]
    parser = _ItemParser(text, tokens)
    inner_attrs, items = parser.parse_items(0, len(tokens))
    LOG.debug("Built unit: %d top-level items, %d inner attributes", len(items), len(inner_attrs))
    return CompilationUnit(text=text, items=tuple(items), attrs=tuple(inner_attrs))


class _ItemParser:
    """Recursive item segmenter over a comment-free token list."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.pairs = match_delimiters(tokens)

    # -- helpers ------------------------------------------------------------

    def _tok(self, i: int, hi: int) -> Token | None:
        return self.tokens[i] if i < hi else None

    def _source(self, lo: int, hi: int) -> str:
        """Text covered by tokens ``lo..=hi``."""
        return self.text[self.tokens[lo].start : self.tokens[hi].end]

    def _fail(self, i: int, hi: int, cause: str) -> MalformedUnit:
        if i < hi:
            tok = self.tokens[i]
            return MalformedUnit(tok.start, tok.end, cause)
        end = self.tokens[hi - 1].end if hi > 0 else 0
        return MalformedUnit(end, end, cause)

    def _expect_ident(self, i: int, hi: int, after: str) -> str:
        tok = self._tok(i, hi)
        if tok is None or tok.kind is not TokenKind.IDENT:
            raise self._fail(i, hi, f"expected identifier after `{after}`")
        return tok.text

    def _scan(self, j: int, hi: int, start: int, stop_at_brace: bool) -> int:
        """Index of the token that ends the item: a ``;`` or a body's ``}``."""
        while j < hi:
            tok = self.tokens[j]
            if tok.kind is TokenKind.OPEN:
                close = self.pairs[j]
                if stop_at_brace and tok.text == "{":
                    prev = self.tokens[j - 1] if j > start else None
                    if prev is None or prev.text not in GENERIC_ARG_PRECEDERS:
                        return close
                j = close + 1
                continue
            if tok.is_punct(";"):
                return j
            j += 1
        tok = self.tokens[start]
        end = self.tokens[hi - 1].end if hi > 0 else tok.end
        raise MalformedUnit(tok.start, end, f"item starting with `{tok.text}` has no terminating `;` or body")

    def _to_semi(self, j: int, hi: int, start: int) -> int:
        return self._scan(j, hi, start, stop_at_brace=False)

    def _to_body(self, j: int, hi: int, start: int) -> int:
        return self._scan(j, hi, start, stop_at_brace=True)

    def _internal_markers(self, lo: int, hi: int) -> tuple[str, ...]:
        markers: list[str] = []
        for i in range(lo, hi):
            tok = self.tokens[i]
            if tok.kind is not TokenKind.IDENT:
                continue
            nxt = self.tokens[i + 1] if i + 1 < hi else None
            if nxt is None:
                continue
            if tok.text == "builtin" and nxt.is_punct("#"):
                marker = "builtin #"
            elif tok.text == "box" and nxt.kind in (TokenKind.IDENT, TokenKind.LITERAL, TokenKind.OPEN):
                marker = "box expression"
            elif tok.text == "do" and nxt.is_ident("yeet"):
                marker = "do yeet"
            else:
                continue
            if marker not in markers:
                markers.append(marker)
        return tuple(markers)

    # -- item lists ---------------------------------------------------------

    def parse_items(self, lo: int, hi: int) -> tuple[list[str], list[Item]]:
        """Parse tokens ``lo..hi`` as inner attributes followed by items."""
        inner_attrs: list[str] = []
        items: list[Item] = []
        i = lo

        while i < hi:
            tok = self.tokens[i]
            if tok.is_inner_doc:
                inner_attrs.append(tok.text)
                i += 1
                continue
            if self._is_inner_attr(i, hi):
                close = self.pairs[i + 2]
                inner_attrs.append(self._source(i, close))
                i = close + 1
                continue
            break

        while i < hi:
            tok = self.tokens[i]
            if tok.is_punct(";"):
                # Stray separators are legal noise in expanded output.
                i += 1
                continue
            item, i = self.parse_item(i, hi)
            items.append(item)

        return inner_attrs, items

    def _is_inner_attr(self, i: int, hi: int) -> bool:
        return (
            i + 2 < hi
            and self.tokens[i].is_punct("#")
            and self.tokens[i + 1].is_punct("!")
            and self.tokens[i + 2].text == "["
            and self.tokens[i + 2].kind is TokenKind.OPEN
        )

    def _is_outer_attr(self, i: int, hi: int) -> bool:
        return (
            i + 1 < hi
            and self.tokens[i].is_punct("#")
            and self.tokens[i + 1].kind is TokenKind.OPEN
            and self.tokens[i + 1].text == "["
        )

    # -- single item --------------------------------------------------------

    def parse_item(self, start: int, hi: int) -> tuple[Item, int]:
        """Parse one item beginning at *start*; return it and the next index."""
        i = start
        attrs: list[str] = []

        while i < hi:
            tok = self.tokens[i]
            if tok.kind is TokenKind.DOC_COMMENT:
                attrs.append(tok.text)
                i += 1
            elif self._is_outer_attr(i, hi):
                close = self.pairs[i + 1]
                attrs.append(self._source(i, close))
                i = close + 1
            elif self._is_inner_attr(i, hi):
                close = self.pairs[i + 2]
                attrs.append(self._source(i, close))
                i = close + 1
            else:
                break

        if i >= hi:
            raise self._fail(start, hi, "attributes are not followed by an item")

        visibility = None
        tok = self.tokens[i]
        if tok.is_ident("pub"):
            nxt = self._tok(i + 1, hi)
            if nxt is not None and nxt.kind is TokenKind.OPEN and nxt.text == "(":
                close = self.pairs[i + 1]
                visibility = self._source(i, close)
                i = close + 1
            else:
                visibility = "pub"
                i += 1

        qualifiers: list[str] = []
        while i < hi:
            tok = self.tokens[i]
            nxt = self._tok(i + 1, hi)
            if nxt is None or tok.kind is not TokenKind.IDENT:
                break
            if tok.text in QUALIFIERS and nxt.kind in (TokenKind.IDENT, TokenKind.LITERAL):
                qualifiers.append(tok.text)
                i += 1
            elif tok.text == "const" and nxt.text in CONST_FN_FOLLOWERS:
                qualifiers.append(tok.text)
                i += 1
            elif tok.text == "extern" and self._is_extern_fn_qualifier(i, hi):
                if nxt.kind is TokenKind.LITERAL:
                    qualifiers.append(f"extern {nxt.text}")
                    i += 2
                else:
                    qualifiers.append("extern")
                    i += 1
            else:
                break

        if i >= hi:
            raise self._fail(start, hi, "qualifiers are not followed by an item")

        kind, name, keyword, end, body_range = self._dispatch(i, hi, start)

        children: tuple[Item, ...] = ()
        body = None
        if body_range is not None:
            open_idx, close_idx = body_range
            body = Span(self.tokens[open_idx].end, self.tokens[close_idx].start)
            if kind in (ItemKind.MODULE, ItemKind.IMPL, ItemKind.TRAIT) or keyword == "extern":
                inner, nested = self.parse_items(open_idx + 1, close_idx)
                attrs.extend(inner)
                children = tuple(nested)

        item = Item(
            kind=kind,
            span=Span(self.tokens[start].start, self.tokens[end].end),
            name=name,
            keyword=keyword,
            visibility=visibility,
            attrs=tuple(attrs),
            children=children,
            body=body,
            internal_syntax=self._internal_markers(start, end + 1),
        )
        return item, end + 1

    def _is_extern_fn_qualifier(self, i: int, hi: int) -> bool:
        nxt = self._tok(i + 1, hi)
        if nxt is None:
            return False
        if nxt.kind is TokenKind.LITERAL:
            nxt = self._tok(i + 2, hi)
            if nxt is None:
                return False
        return nxt.is_ident("fn") or nxt.is_ident("unsafe") or nxt.is_ident("safe")

    def _dispatch(
        self, i: int, hi: int, start: int
    ) -> tuple[ItemKind, str | None, str, int, tuple[int, int] | None]:
        """Classify the item at *i*.

        Returns (kind, name, keyword, index of last token, brace body range).
        """
        tok = self.tokens[i]
        word = tok.text if tok.kind is TokenKind.IDENT else ""
        nxt = self._tok(i + 1, hi)

        if word == "mod":
            name = self._expect_ident(i + 1, hi, "mod")
            end = self._to_body(i + 2, hi, start)
            return ItemKind.MODULE, name, "mod", end, self._body(end)

        if word == "fn":
            name = self._expect_ident(i + 1, hi, "fn")
            end = self._to_body(i + 2, hi, start)
            return ItemKind.FUNCTION, name, "fn", end, self._body(end)

        if word in ("struct", "enum") or (word == "union" and nxt is not None and nxt.kind is TokenKind.IDENT):
            name = self._expect_ident(i + 1, hi, word)
            end = self._to_body(i + 2, hi, start)
            return ItemKind.TYPE, name, word, end, self._body(end)

        if word == "type":
            name = self._expect_ident(i + 1, hi, "type")
            end = self._to_semi(i + 2, hi, start)
            return ItemKind.TYPE, name, "type", end, None

        if word == "trait":
            name = self._expect_ident(i + 1, hi, "trait")
            end = self._to_body(i + 2, hi, start)
            return ItemKind.TRAIT, name, "trait", end, self._body(end)

        if word == "impl":
            end = self._to_body(i + 1, hi, start)
            return ItemKind.IMPL, None, "impl", end, self._body(end)

        if word == "const":
            name = self._expect_ident(i + 1, hi, "const")
            end = self._to_semi(i + 2, hi, start)
            return ItemKind.CONST, None if name == "_" else name, "const", end, None

        if word == "static":
            j = i + 1
            if self._tok(j, hi) is not None and self.tokens[j].is_ident("mut"):
                j += 1
            name = self._expect_ident(j, hi, "static")
            end = self._to_semi(j + 1, hi, start)
            return ItemKind.CONST, name, "static", end, None

        if word == "use":
            end = self._to_semi(i + 1, hi, start)
            return ItemKind.USE, None, "use", end, None

        if word == "extern" and nxt is not None and nxt.is_ident("crate"):
            name = self._expect_ident(i + 2, hi, "extern crate")
            alias = self._tok(i + 3, hi)
            if alias is not None and alias.is_ident("as"):
                name = self._expect_ident(i + 4, hi, "as")
            end = self._to_semi(i + 3, hi, start)
            return ItemKind.USE, None if name == "_" else name, "extern crate", end, None

        if word == "extern":
            end = self._to_body(i + 1, hi, start)
            return ItemKind.OTHER, None, "extern", end, self._body(end)

        if word == "macro_rules" and nxt is not None and nxt.is_punct("!"):
            name = self._expect_ident(i + 2, hi, "macro_rules!")
            end = self._macro_end(i + 3, hi)
            return ItemKind.MACRO, name, "macro_rules", end, None

        if word == "macro" and nxt is not None and nxt.kind is TokenKind.IDENT:
            end = self._to_body(i + 2, hi, start)
            return ItemKind.MACRO, nxt.text, "macro", end, None

        if word == "builtin" and nxt is not None and nxt.is_punct("#"):
            end = self._to_body(i + 2, hi, start)
            return ItemKind.OTHER, None, "builtin", end, None

        bang = self._macro_path_end(i, hi)
        if bang is not None:
            end = self._macro_end(bang + 1, hi)
            return ItemKind.MACRO, None, "macro invocation", end, None

        end = self._to_body(i, hi, start)
        LOG.debug("Unrecognized item syntax at byte %d: %r", tok.start, tok.text)
        return ItemKind.OTHER, None, tok.text, end, self._body(end)

    def _body(self, end: int) -> tuple[int, int] | None:
        tok = self.tokens[end]
        if tok.kind is TokenKind.CLOSE and tok.text == "}":
            return self.pairs[end], end
        return None

    def _macro_path_end(self, i: int, hi: int) -> int | None:
        """Index of the ``!`` in ``path::to::mac!``, or None if not a macro call."""
        j = i
        expect_segment = True
        while j < hi:
            tok = self.tokens[j]
            if tok.is_punct("::"):
                expect_segment = True
            elif tok.is_punct("$") and j + 1 < hi and self.tokens[j + 1].is_ident("crate"):
                j += 1
                expect_segment = False
            elif tok.kind is TokenKind.IDENT and expect_segment:
                expect_segment = False
            elif tok.is_punct("!") and not expect_segment:
                nxt = self._tok(j + 1, hi)
                return j if nxt is not None and nxt.kind is TokenKind.OPEN else None
            else:
                return None
            j += 1
        return None

    def _macro_end(self, j: int, hi: int) -> int:
        """Last token of a macro body group at *j*, including a trailing ``;``."""
        tok = self._tok(j, hi)
        if tok is None or tok.kind is not TokenKind.OPEN:
            raise self._fail(j, hi, "expected a delimited macro body")
        close = self.pairs[j]
        after = self._tok(close + 1, hi)
        if after is not None and after.is_punct(";"):
            return close + 1
        return close
