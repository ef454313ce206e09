"""Query canonicalization.

Turns raw query text into a deterministic canonical string used as the
basis of the cache key. Two texts that differ only in whitespace,
operator spacing, keyword case, selection-field order or the order of
AND-ed predicates normalize to the same string.

Two paths are chosen by a cheap pre-scan:

    direct:     no parenthesized sub-select in the text. One tokenizing
                pass, clause-zone split, per-zone rendering. O(n).
    structural: sub-selects present. Every parenthesized sub-select is
                normalized recursively and folded back into its parent as
                a single token before the parent is processed. O(n*d) for
                nesting depth d, since each level re-scans its own text.

Predicates joined by OR keep their relative order. Only AND-ed predicates
at nesting depth zero are sorted.
"""

import logging
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict

from querycache.canonical.tokenizer import (
    Token,
    TokenKind,
    matching_paren,
    render,
    tokenize,
)
from querycache.core.exceptions import MalformedQueryError

logger = logging.getLogger(__name__)

# Clause keywords in the only order they may appear.
CLAUSE_ORDER: tuple[str, ...] = (
    "SELECT",
    "FROM",
    "USING SCOPE",
    "WHERE",
    "WITH",
    "GROUP BY",
    "HAVING",
    "ORDER BY",
    "LIMIT",
    "OFFSET",
    "FOR",
)
_CLAUSE_RANK = {clause: rank for rank, clause in enumerate(CLAUSE_ORDER)}
_TWO_WORD_CLAUSES = {"GROUP": "BY", "ORDER": "BY", "USING": "SCOPE"}
_PREDICATE_CLAUSES = frozenset({"WHERE", "HAVING"})
_SELECT_MODIFIERS = frozenset({"DISTINCT", "ALL"})

_SUBSELECT_PATTERN = re.compile(r"\(\s*select\b", re.IGNORECASE)

NormalizationPath = Literal["direct", "structural"]


class CanonicalQuery(BaseModel):
    """Canonical text plus the path that produced it."""

    model_config = ConfigDict(frozen=True)

    text: str
    path: NormalizationPath


def _sort_key(text: str) -> tuple[str, str]:
    return (text.lower(), text)


def _nesting_delta(token: Token) -> int:
    """+1 when ``token`` opens a nesting level, -1 when it closes one.

    Parentheses and ``CASE ... END`` both nest: connectives inside them
    belong to the enclosing expression, not to the filter.
    """
    if token.kind is TokenKind.LPAREN or token.is_word("CASE"):
        return 1
    if token.kind is TokenKind.RPAREN or token.is_word("END"):
        return -1
    return 0


def _split_top_level(tokens: list[Token], connective: str) -> list[list[Token]]:
    """Split on ``connective`` (a comma or a word) at nesting depth zero."""
    segments: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        delta = _nesting_delta(token)
        if delta:
            depth += delta
        elif depth == 0:
            if connective == "," and token.kind is TokenKind.COMMA:
                segments.append([])
                continue
            if token.is_word(connective):
                segments.append([])
                continue
        segments[-1].append(token)
    return segments


def _split_conjuncts(tokens: list[Token]) -> list[list[Token]]:
    """Split on top-level AND, leaving the AND of ``BETWEEN x AND y`` alone."""
    segments: list[list[Token]] = [[]]
    depth = 0
    between_open = False
    for token in tokens:
        delta = _nesting_delta(token)
        if delta:
            depth += delta
        elif depth == 0 and token.kind is TokenKind.WORD:
            upper = token.upper
            if upper == "BETWEEN":
                between_open = True
            elif upper == "AND":
                if between_open:
                    between_open = False
                else:
                    segments.append([])
                    continue
        segments[-1].append(token)
    return segments


def _split_zones(tokens: list[Token]) -> list[tuple[str, list[Token]]] | None:
    """Split tokens into clause zones.

    Returns:
        (clause, body tokens) pairs in source order, or None if the text
        does not start with SELECT or its clauses repeat or are out of order
    """
    zones: list[tuple[str, list[Token]]] = []
    depth = 0
    last_rank = -1
    index = 0
    count = len(tokens)

    while index < count:
        token = tokens[index]
        clause: str | None = None
        width = 1

        if token.kind is TokenKind.LPAREN:
            depth += 1
        elif token.kind is TokenKind.RPAREN:
            depth -= 1
        elif depth == 0 and token.kind is TokenKind.WORD:
            upper = token.upper
            follower = _TWO_WORD_CLAUSES.get(upper)
            if follower is not None:
                if index + 1 < count and tokens[index + 1].is_word(follower):
                    clause = f"{upper} {follower}"
                    width = 2
            elif upper in _CLAUSE_RANK:
                clause = upper

        if clause is not None:
            rank = _CLAUSE_RANK[clause]
            if rank <= last_rank:
                return None
            last_rank = rank
            zones.append((clause, []))
            index += width
            continue

        if not zones:
            return None
        zones[-1][1].append(token)
        index += 1

    if not zones or zones[0][0] != "SELECT":
        return None
    return zones


def _render_selection(tokens: list[Token]) -> str:
    modifier = ""
    if tokens and tokens[0].is_word(*_SELECT_MODIFIERS):
        modifier = tokens[0].upper
        tokens = tokens[1:]
    fields = sorted(
        (render(field) for field in _split_top_level(tokens, ",")), key=_sort_key
    )
    body = ", ".join(fields)
    return f"{modifier} {body}" if modifier else body


def _render_predicates(tokens: list[Token]) -> str:
    disjuncts = []
    for disjunct in _split_top_level(tokens, "OR"):
        conjuncts = sorted(
            (render(part) for part in _split_conjuncts(disjunct)), key=_sort_key
        )
        disjuncts.append(" AND ".join(conjuncts))
    return " OR ".join(disjuncts)


def _render_zone(clause: str, tokens: list[Token]) -> str:
    if clause == "SELECT":
        body = _render_selection(tokens)
    elif clause in _PREDICATE_CLAUSES:
        body = _render_predicates(tokens)
    else:
        body = render(tokens)
    return f"{clause} {body}" if body else clause


def _strip_terminators(tokens: list[Token]) -> list[Token]:
    end = len(tokens)
    while end and tokens[end - 1].text == ";":
        end -= 1
    return tokens[:end]


class Canonicalizer:
    """Deterministic query-text normalizer.

    Pure and stateless: instances may be shared freely between execution
    contexts and threads.

    Example:
        >>> canonicalizer = Canonicalizer()
        >>> canonicalizer.normalize("select Name,Id from Account where B=2 and A=1")
        'SELECT Id, Name FROM Account WHERE A = 1 AND B = 2'
    """

    def normalize(self, text: str) -> str:
        """Return the canonical form of ``text``.

        Raises:
            MalformedQueryError: Blank text, unbalanced quoting or parentheses
        """
        return self.analyze(text).text

    def analyze(self, text: str) -> CanonicalQuery:
        """Normalize ``text`` and report which path was used."""
        if not text or not text.strip():
            raise MalformedQueryError("Query text is empty")

        if _SUBSELECT_PATTERN.search(text):
            return CanonicalQuery(text=self._structural(text), path="structural")
        return CanonicalQuery(text=self._direct(text), path="direct")

    def _direct(self, text: str) -> str:
        return self._assemble(_strip_terminators(tokenize(text)))

    def _structural(self, text: str) -> str:
        tokens = _strip_terminators(tokenize(text))
        return self._assemble(self._fold_subqueries(text, tokens))

    def _fold_subqueries(self, text: str, tokens: list[Token]) -> list[Token]:
        """Replace each ``( SELECT ... )`` group with one normalized token."""
        folded: list[Token] = []
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if (
                token.kind is TokenKind.LPAREN
                and index + 1 < len(tokens)
                and tokens[index + 1].is_word("SELECT")
            ):
                close = matching_paren(tokens, index)
                inner = text[token.end : tokens[close].start]
                canonical = self.analyze(inner).text
                folded.append(
                    Token(
                        TokenKind.SUBQUERY,
                        f"({canonical})",
                        token.start,
                        tokens[close].end,
                    )
                )
                index = close + 1
                continue
            folded.append(token)
            index += 1
        return folded

    def _assemble(self, tokens: list[Token]) -> str:
        zones = _split_zones(tokens)
        if zones is None:
            logger.debug("No clause zones recognized, normalizing as opaque text")
            return render(tokens)
        return " ".join(_render_zone(clause, body) for clause, body in zones)


_default_canonicalizer = Canonicalizer()


def normalize(text: str) -> str:
    """Normalize ``text`` with a shared default ``Canonicalizer``."""
    return _default_canonicalizer.normalize(text)
