"""
Tokenizer for expanded Rust source.

Produces a flat token list with offsets into the original text. Whitespace
is dropped; comments are kept as tokens so the printer and the highlighter
can place them. Delimiters are checked for balance up front so later stages
can skip whole groups in constant time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from expandview.errors import MalformedUnit


class TokenKind(str, Enum):
    """Lexical category of a token."""

    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"
    OPEN = "open"
    CLOSE = "close"
    COMMENT = "comment"
    DOC_COMMENT = "doc_comment"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int

    def is_punct(self, text: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text == text

    def is_ident(self, text: str | None = None) -> bool:
        return self.kind is TokenKind.IDENT and (text is None or self.text == text)

    @property
    def is_inner_doc(self) -> bool:
        return self.kind is TokenKind.DOC_COMMENT and self.text[:3] in ("//!", "/*!")


# Strict and reserved keywords, plus the weak keywords that head items.
KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "self", "Self",
        "static", "struct", "super", "trait", "true", "type", "unsafe", "use",
        "where", "while", "abstract", "become", "box", "do", "final", "macro",
        "override", "priv", "try", "typeof", "unsized", "virtual", "yield", "gen",
        "union", "default", "auto", "safe", "macro_rules", "builtin",
    }
)

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}

# Longest first.
PUNCTUATION = (
    "...", "..=", "<<=", ">>=",
    "::", "->", "=>", "==", "!=", "<=", ">=", "&&", "||", "+=", "-=", "*=", "/=",
    "%=", "^=", "&=", "|=", "<<", ">>", "..",
    "+", "-", "*", "/", "%", "^", "!", "&", "|", "=", "<", ">", "@", ".", ",",
    ";", ":", "#", "$", "?", "~",
)

WHITESPACE_RE = re.compile(r"\s+")
IDENT_RE = re.compile(r"(?:[^\W\d]|_)\w*")
RAW_IDENT_RE = re.compile(r"r#(?:[^\W\d]|_)\w*")
NUMBER_RE = re.compile(
    r"(?:0[xob][0-9a-fA-F_]+"
    r"|\d[\d_]*(?:\.(?![.A-Za-z_])[\d_]*)?(?:[eE][+-]?[\d_]+)?)"
    r"(?:[A-Za-z_]\w*)?"
)
RAW_STRING_START_RE = re.compile(r'(?:b|c)?r(#*)"')
SUFFIX_RE = re.compile(r"(?:[^\W\d]|_)\w*")


def _scan_quoted(text: str, i: int, quote: str) -> int:
    """Return the offset just past the closing *quote*, honouring escapes.

    *i* points at the opening quote.
    """
    j = i + 1
    n = len(text)
    while j < n:
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        j += 1
    kind = "string" if quote == '"' else "character"
    raise MalformedUnit(i, n, f"unterminated {kind} literal")


def _with_suffix(text: str, j: int) -> int:
    m = SUFFIX_RE.match(text, j)
    return m.end() if m else j


def _block_comment_end(text: str, i: int) -> int:
    depth = 0
    j = i
    n = len(text)
    while j < n:
        if text.startswith("/*", j):
            depth += 1
            j += 2
        elif text.startswith("*/", j):
            depth -= 1
            j += 2
            if depth == 0:
                return j
        else:
            j += 1
    raise MalformedUnit(i, n, "unterminated block comment")


def _is_doc_comment(body: str) -> bool:
    if body.startswith("//"):
        return (body.startswith("///") and not body.startswith("////")) or body.startswith("//!")
    if body in ("/**/", "/***/"):
        return False
    return (body.startswith("/**") and not body.startswith("/***")) or body.startswith("/*!")


def tokenize(text: str) -> list[Token]:
    """Split *text* into tokens.

    Raises:
        MalformedUnit: unterminated literal or comment, unexpected character,
            or unbalanced delimiters.
    """
    tokens: list[Token] = []
    n = len(text)
    i = 0

    # Shebang line, but not an inner attribute.
    if text.startswith("#!") and not text[2:].lstrip().startswith("["):
        nl = text.find("\n")
        i = n if nl < 0 else nl

    while i < n:
        m = WHITESPACE_RE.match(text, i)
        if m:
            i = m.end()
            continue

        ch = text[i]

        if text.startswith("//", i):
            nl = text.find("\n", i)
            end = n if nl < 0 else nl
            body = text[i:end].rstrip("\r")
            end = i + len(body)
            kind = TokenKind.DOC_COMMENT if _is_doc_comment(body) else TokenKind.COMMENT
            tokens.append(Token(kind, body, i, end))
            i = end
            continue

        if text.startswith("/*", i):
            end = _block_comment_end(text, i)
            body = text[i:end]
            kind = TokenKind.DOC_COMMENT if _is_doc_comment(body) else TokenKind.COMMENT
            tokens.append(Token(kind, body, i, end))
            i = end
            continue

        m = RAW_STRING_START_RE.match(text, i)
        if m:
            hashes = m.group(1)
            close = '"' + hashes
            end = text.find(close, m.end())
            if end < 0:
                raise MalformedUnit(i, n, "unterminated raw string literal")
            end = _with_suffix(text, end + len(close))
            tokens.append(Token(TokenKind.LITERAL, text[i:end], i, end))
            i = end
            continue

        m = RAW_IDENT_RE.match(text, i)
        if m:
            tokens.append(Token(TokenKind.IDENT, m.group(0), i, m.end()))
            i = m.end()
            continue

        if ch in "bc" and text.startswith('"', i + 1):
            end = _with_suffix(text, _scan_quoted(text, i + 1, '"'))
            tokens.append(Token(TokenKind.LITERAL, text[i:end], i, end))
            i = end
            continue

        if ch == "b" and text.startswith("'", i + 1):
            end = _with_suffix(text, _scan_quoted(text, i + 1, "'"))
            tokens.append(Token(TokenKind.LITERAL, text[i:end], i, end))
            i = end
            continue

        if ch == '"':
            end = _with_suffix(text, _scan_quoted(text, i, '"'))
            tokens.append(Token(TokenKind.LITERAL, text[i:end], i, end))
            i = end
            continue

        if ch == "'":
            if text.startswith("\\", i + 1) or text.startswith("'", i + 2):
                end = _with_suffix(text, _scan_quoted(text, i, "'"))
                tokens.append(Token(TokenKind.LITERAL, text[i:end], i, end))
                i = end
                continue
            m = IDENT_RE.match(text, i + 1) or RAW_IDENT_RE.match(text, i + 1)
            if m:
                tokens.append(Token(TokenKind.LIFETIME, text[i : m.end()], i, m.end()))
                i = m.end()
                continue
            raise MalformedUnit(i, min(n, i + 2), "unterminated character literal")

        m = IDENT_RE.match(text, i)
        if m:
            tokens.append(Token(TokenKind.IDENT, m.group(0), i, m.end()))
            i = m.end()
            continue

        m = NUMBER_RE.match(text, i)
        if m:
            tokens.append(Token(TokenKind.LITERAL, m.group(0), i, m.end()))
            i = m.end()
            continue

        if ch in OPENERS:
            tokens.append(Token(TokenKind.OPEN, ch, i, i + 1))
            i += 1
            continue

        if ch in CLOSERS:
            tokens.append(Token(TokenKind.CLOSE, ch, i, i + 1))
            i += 1
            continue

        for punct in PUNCTUATION:
            if text.startswith(punct, i):
                tokens.append(Token(TokenKind.PUNCT, punct, i, i + len(punct)))
                i += len(punct)
                break
        else:
            raise MalformedUnit(i, i + 1, f"unexpected character {ch!r}")

    match_delimiters(tokens)
    return tokens


def match_delimiters(tokens: list[Token]) -> dict[int, int]:
    """Map the index of every opening delimiter to its closing partner and back.

    Raises:
        MalformedUnit: on a mismatched, stray or unclosed delimiter.
    """
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for idx, tok in enumerate(tokens):
        if tok.kind is TokenKind.OPEN:
            stack.append(idx)
        elif tok.kind is TokenKind.CLOSE:
            if not stack:
                raise MalformedUnit(tok.start, tok.end, f"unexpected closing delimiter {tok.text!r}")
            opener = stack.pop()
            if OPENERS[tokens[opener].text] != tok.text:
                raise MalformedUnit(
                    tokens[opener].start,
                    tok.end,
                    f"mismatched delimiters {tokens[opener].text!r} and {tok.text!r}",
                )
            pairs[opener] = idx
            pairs[idx] = opener
    if stack:
        opener = tokens[stack[-1]]
        end = tokens[-1].end if tokens else opener.end
        raise MalformedUnit(opener.start, end, f"unclosed delimiter {opener.text!r}")
    return pairs
