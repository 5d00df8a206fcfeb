"""
Syntax highlighting for rendered text.

Highlighting is two steps. :func:`styling_map` classifies spans of the text
into categories using the same tokenizer as the unit builder; it never looks
at or changes the characters themselves. :func:`to_ansi` then paints those
spans with a Pygments theme through rich.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import StrEnum

from pygments.token import Token as PygmentsToken
from rich.console import Console
from rich.style import Style
from rich.text import Text

from expandview.errors import ExpandError
from expandview.presentation.themes import NO_THEME, load_theme
from expandview.unit.lexer import KEYWORDS, TokenKind, match_delimiters, tokenize

LOG = logging.getLogger("expandview.presentation.highlight")

TAB_SIZE = 4
# `macro_rules!` reads as a macro; other keywords before `!` do not.
NON_MACRO_KEYWORDS = KEYWORDS - {"macro_rules"}


class StyleCategory(StrEnum):
    KEYWORD = "keyword"
    STRING = "string"
    NUMBER = "number"
    COMMENT = "comment"
    DOC_COMMENT = "doc_comment"
    IDENTIFIER = "identifier"
    TYPE = "type"
    FUNCTION = "function"
    MACRO = "macro"
    ATTRIBUTE = "attribute"
    LIFETIME = "lifetime"


# Theme lookups go through the matching Pygments token type.
CATEGORY_TOKENS = {
    StyleCategory.KEYWORD: PygmentsToken.Keyword,
    StyleCategory.STRING: PygmentsToken.Literal.String,
    StyleCategory.NUMBER: PygmentsToken.Literal.Number,
    StyleCategory.COMMENT: PygmentsToken.Comment,
    StyleCategory.DOC_COMMENT: PygmentsToken.Literal.String.Doc,
    StyleCategory.IDENTIFIER: PygmentsToken.Name,
    StyleCategory.TYPE: PygmentsToken.Name.Class,
    StyleCategory.FUNCTION: PygmentsToken.Name.Function,
    StyleCategory.MACRO: PygmentsToken.Name.Function.Magic,
    StyleCategory.ATTRIBUTE: PygmentsToken.Name.Decorator,
    StyleCategory.LIFETIME: PygmentsToken.Name.Label,
}


@dataclass(frozen=True)
class StyleSpan:
    """A half-open range of the rendered text and its category."""

    start: int
    end: int
    category: StyleCategory


def styling_map(text: str) -> tuple[StyleSpan, ...]:
    """Classify *text* into styled spans, in order and non-overlapping.

    Text the tokenizer rejects (raw-tier output can be anything) is left
    unstyled.
    """
    try:
        tokens = tokenize(text)
        pairs = match_delimiters(tokens)
    except ExpandError as exc:
        LOG.debug("No highlighting: %s", exc)
        return ()

    spans: list[StyleSpan] = []
    k = 0
    n = len(tokens)
    while k < n:
        tok = tokens[k]
        nxt = tokens[k + 1] if k + 1 < n else None
        prev = tokens[k - 1] if k > 0 else None

        # Attributes are one span: `#[...]` and `#![...]`.
        if tok.is_punct("#") and nxt is not None:
            bracket = k + 1
            if nxt.is_punct("!") and k + 2 < n:
                bracket = k + 2
            if tokens[bracket].text == "[" and tokens[bracket].kind is TokenKind.OPEN:
                close = pairs[bracket]
                spans.append(StyleSpan(tok.start, tokens[close].end, StyleCategory.ATTRIBUTE))
                k = close + 1
                continue

        category: StyleCategory | None = None
        end = tok.end
        if tok.kind is TokenKind.COMMENT:
            category = StyleCategory.COMMENT
        elif tok.kind is TokenKind.DOC_COMMENT:
            category = StyleCategory.DOC_COMMENT
        elif tok.kind is TokenKind.LIFETIME:
            category = StyleCategory.LIFETIME
        elif tok.kind is TokenKind.LITERAL:
            category = StyleCategory.NUMBER if tok.text[0].isdigit() else StyleCategory.STRING
        elif tok.kind is TokenKind.IDENT:
            if nxt is not None and nxt.is_punct("!") and nxt.start == tok.end and tok.text not in NON_MACRO_KEYWORDS:
                category = StyleCategory.MACRO
                end = nxt.end
                k += 1
            elif tok.text in KEYWORDS:
                category = StyleCategory.KEYWORD
            elif prev is not None and prev.is_ident("fn"):
                category = StyleCategory.FUNCTION
            elif tok.text.removeprefix("r#")[:1].isupper():
                category = StyleCategory.TYPE
            else:
                category = StyleCategory.IDENTIFIER

        if category is not None:
            spans.append(StyleSpan(tok.start, end, category))
        k += 1

    return tuple(spans)


def theme_styles(theme: str) -> dict[StyleCategory, Style]:
    """Map each category to a rich Style taken from a Pygments theme.

    Only foreground and font attributes are used; the terminal keeps its
    own background.
    """
    style_class = load_theme(theme)
    styles: dict[StyleCategory, Style] = {}
    for category, token_type in CATEGORY_TOKENS.items():
        spec = style_class.style_for_token(token_type)
        styles[category] = Style(
            color=f"#{spec['color']}" if spec["color"] else None,
            bold=spec["bold"] or None,
            italic=spec["italic"] or None,
            underline=spec["underline"] or None,
        )
    return styles


def to_ansi(text: str, spans: tuple[StyleSpan, ...], theme: str) -> str:
    """Paint *text* with *theme* and return it with ANSI escapes."""
    if theme == NO_THEME:
        return text

    styles = theme_styles(theme)
    painted = Text(text, tab_size=TAB_SIZE, end="")
    for span in spans:
        style = styles[span.category]
        if style:
            painted.stylize(style, span.start, span.end)

    buf = io.StringIO()
    console = Console(
        file=buf,
        force_terminal=True,
        color_system="256",
        soft_wrap=True,
        highlight=False,
        markup=False,
        emoji=False,
        tab_size=TAB_SIZE,
    )
    console.print(painted, end="")
    return buf.getvalue()
