"""Query text canonicalization.

Usage:
    >>> from querycache.canonical import normalize
    >>> normalize("SELECT  Name ,Id FROM  Account")
    'SELECT Id, Name FROM Account'
"""

from querycache.canonical.normalizer import (
    CLAUSE_ORDER,
    CanonicalQuery,
    Canonicalizer,
    normalize,
)
from querycache.canonical.tokenizer import Token, TokenKind, render, tokenize

__all__ = [
    "Canonicalizer",
    "CanonicalQuery",
    "CLAUSE_ORDER",
    "normalize",
    "tokenize",
    "render",
    "Token",
    "TokenKind",
]
