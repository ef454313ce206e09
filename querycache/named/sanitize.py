"""Literal escaping for values bound into query templates."""

import math
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

_ESCAPES = {"\\": "\\\\", "'": "\\'"}


def escape_string(value: str) -> str:
    """Quote ``value`` as a string literal, neutralizing quote characters.

    Example:
        >>> escape_string("O'Brien")
        "'O\\\\'Brien'"
    """
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    return f"'{escaped}'"


def escape_literal(value: Any) -> str:
    """Render a Python value as literal query text.

    Raises:
        ValueError: NaN or infinite numbers
        TypeError: Value has no literal form
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return escape_string(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Cannot bind non-finite number: {value}")
        if isinstance(value, Decimal) and not value.is_finite():
            raise ValueError(f"Cannot bind non-finite number: {value}")
        return str(value)
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return escape_string(value.isoformat())
    if isinstance(value, date):
        return escape_string(value.isoformat())
    if isinstance(value, (set, frozenset)):
        return _escape_sequence(sorted(value, key=repr))
    if isinstance(value, (list, tuple)):
        return _escape_sequence(value)

    raise TypeError(f"Cannot bind value of type {type(value).__name__}")


def _escape_sequence(values: Iterable[Any]) -> str:
    items = [escape_literal(v) for v in values]
    if not items:
        raise ValueError("Cannot bind an empty collection")
    return "(" + ", ".join(items) + ")"
