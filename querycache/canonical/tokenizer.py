"""Quote-aware tokenizer and renderer for query text.

The tokenizer makes a single pass over the text, keeping quoted literals
intact and checking parenthesis balance. The renderer turns a token
sequence back into text with one spacing rule per token pair, so that
rendering the tokens of a rendered string gives the same string back.
"""

from dataclasses import dataclass
from enum import Enum

from querycache.core.exceptions import MalformedQueryError


class TokenKind(str, Enum):
    """Lexical category of a token."""

    WORD = "word"
    STRING = "string"
    OPERATOR = "operator"
    COMMA = "comma"
    LPAREN = "lparen"
    RPAREN = "rparen"
    SUBQUERY = "subquery"


@dataclass(frozen=True, slots=True)
class Token:
    """Single lexical token with its span in the source text."""

    kind: TokenKind
    text: str
    start: int
    end: int

    @property
    def upper(self) -> str:
        return self.text.upper()

    def is_word(self, *words: str) -> bool:
        return self.kind is TokenKind.WORD and self.text.upper() in words


# Words rendered upper-case in canonical text. Anything else keeps its case.
RESERVED_WORDS = frozenset(
    {
        "SELECT",
        "FROM",
        "WHERE",
        "GROUP",
        "BY",
        "HAVING",
        "ORDER",
        "LIMIT",
        "OFFSET",
        "USING",
        "SCOPE",
        "WITH",
        "FOR",
        "AND",
        "OR",
        "NOT",
        "IN",
        "LIKE",
        "BETWEEN",
        "IS",
        "NULL",
        "TRUE",
        "FALSE",
        "ASC",
        "DESC",
        "NULLS",
        "DISTINCT",
        "ALL",
        "AS",
        "ON",
        "JOIN",
        "INNER",
        "LEFT",
        "RIGHT",
        "OUTER",
        "FULL",
        "CROSS",
        "UNION",
        "INTERSECT",
        "EXCEPT",
        "EXISTS",
        "INCLUDES",
        "EXCLUDES",
        "CASE",
        "WHEN",
        "THEN",
        "ELSE",
        "END",
        "ANY",
        "SOME",
    }
)

_QUOTES = frozenset("'\"`")
_WORD_EXTRA = frozenset("_.$:@#")
_TWO_CHAR_OPERATORS = frozenset({"<=", ">=", "!=", "<>", "||", "=="})
_OPERATOR_ALIASES = {"<>": "!=", "==": "="}


def _scan_quoted(text: str, start: int) -> int:
    """Return the index just past the quoted literal opening at ``start``.

    Backslash escapes the next character; a doubled quote character
    stands for itself.
    """
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    raise MalformedQueryError(
        f"Unterminated quoted literal starting at offset {start}",
        details={"offset": start, "quote": quote},
    )


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in _WORD_EXTRA


def tokenize(text: str) -> list[Token]:
    """Split query text into tokens.

    Args:
        text: Raw query text

    Returns:
        Tokens in source order (whitespace dropped)

    Raises:
        MalformedQueryError: Unterminated quoting or unbalanced parentheses
    """
    tokens: list[Token] = []
    depth = 0
    open_offsets: list[int] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch.isspace():
            i += 1
            continue

        if ch in _QUOTES:
            end = _scan_quoted(text, i)
            tokens.append(Token(TokenKind.STRING, text[i:end], i, end))
            i = end
            continue

        if _is_word_char(ch):
            end = i + 1
            while end < n and _is_word_char(text[end]):
                end += 1
            tokens.append(Token(TokenKind.WORD, text[i:end], i, end))
            i = end
            continue

        if ch == "(":
            depth += 1
            open_offsets.append(i)
            tokens.append(Token(TokenKind.LPAREN, ch, i, i + 1))
        elif ch == ")":
            if depth == 0:
                raise MalformedQueryError(
                    f"Unbalanced ')' at offset {i}", details={"offset": i}
                )
            depth -= 1
            open_offsets.pop()
            tokens.append(Token(TokenKind.RPAREN, ch, i, i + 1))
        elif ch == ",":
            tokens.append(Token(TokenKind.COMMA, ch, i, i + 1))
        else:
            pair = text[i : i + 2]
            if pair in _TWO_CHAR_OPERATORS:
                tokens.append(Token(TokenKind.OPERATOR, pair, i, i + 2))
                i += 2
                continue
            tokens.append(Token(TokenKind.OPERATOR, ch, i, i + 1))
        i += 1

    if depth:
        offset = open_offsets[-1]
        raise MalformedQueryError(
            f"Unclosed '(' at offset {offset}", details={"offset": offset}
        )

    return tokens


def matching_paren(tokens: list[Token], open_index: int) -> int:
    """Index of the RPAREN closing the LPAREN at ``open_index``.

    Tokens come from ``tokenize`` and are therefore balanced.
    """
    depth = 0
    for index in range(open_index, len(tokens)):
        kind = tokens[index].kind
        if kind is TokenKind.LPAREN:
            depth += 1
        elif kind is TokenKind.RPAREN:
            depth -= 1
            if depth == 0:
                return index
    raise MalformedQueryError(
        "Unclosed '('", details={"offset": tokens[open_index].start}
    )


def surface(token: Token) -> str:
    """Canonical spelling of a single token."""
    if token.kind is TokenKind.WORD:
        upper = token.text.upper()
        return upper if upper in RESERVED_WORDS else token.text
    if token.kind is TokenKind.OPERATOR:
        return _OPERATOR_ALIASES.get(token.text, token.text)
    return token.text


def _separator(prev: Token, current: Token) -> str:
    if current.kind in (TokenKind.COMMA, TokenKind.RPAREN):
        return ""
    if prev.kind is TokenKind.LPAREN:
        return ""
    if (
        current.kind is TokenKind.LPAREN
        and prev.kind is TokenKind.WORD
        and prev.upper not in RESERVED_WORDS
    ):
        # function call: COUNT(Id)
        return ""
    return " "


def render(tokens: list[Token]) -> str:
    """Render tokens as single-spaced canonical text.

    Example:
        >>> render(tokenize("a=b  AND  COUNT( Id )>1"))
        'a = b AND COUNT(Id) > 1'
    """
    parts: list[str] = []
    prev: Token | None = None
    for token in tokens:
        if prev is not None:
            parts.append(_separator(prev, token))
        parts.append(surface(token))
        prev = token
    return "".join(parts)
