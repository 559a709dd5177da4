"""
Cell values and their explicit coercions.

Rows arrive from a row source as ``{field_key: value}`` mappings where each
value is a plain Python scalar.  Instead of relying on ambient coercion, every
operator asks for the representation it needs through one of the functions
below; each returns ``None`` when the value cannot be represented.
"""
from __future__ import annotations

import datetime
import decimal
import enum
import math
from typing import Any, Union

from dateutil import parser as date_parser

Cell = Union[str, int, float, decimal.Decimal, bool, datetime.date, datetime.datetime, None]

_TRUE_WORDS = {"true", "1", "yes", "y", "si", "sí"}
_FALSE_WORDS = {"false", "0", "no", "n"}
_DEFAULT_A = datetime.datetime(2000, 1, 1)
_DEFAULT_B = datetime.datetime(2001, 2, 2)


class CellKind(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"
    NULL = "null"


def classify(value: Any) -> CellKind:
    """Return the runtime kind of a cell value (no coercion involved)."""
    if is_empty(value):
        return CellKind.NULL
    if isinstance(value, bool):
        return CellKind.BOOL
    if isinstance(value, (int, float, decimal.Decimal)):
        return CellKind.NULL if _is_nan(value) else CellKind.NUMBER
    if isinstance(value, (datetime.date, datetime.datetime)):
        return CellKind.DATE
    return CellKind.TEXT


def is_empty(value: Any) -> bool:
    """``None`` and blank strings count as absent values."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, decimal.Decimal)):
        return None if _is_nan(value) else float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def to_date(value: Any) -> datetime.datetime | None:
    """Coerce to a naive datetime (aware values are normalised to UTC)."""
    if isinstance(value, datetime.datetime):
        return _naive_utc(value)
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _naive_utc(date_parser.isoparse(text))
        except ValueError:
            pass
        return _parse_full_date(text)
    return None


def to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, decimal.Decimal)):
        return None if _is_nan(value) else value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def to_text(value: Any) -> str:
    """Stringify a cell for display / text matching.  ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return str(value)


def _parse_full_date(text: str) -> datetime.datetime | None:
    """Day-first free-form parse that rejects strings missing a day, month or year.

    Parsing against two different defaults exposes any component dateutil had
    to fill in.
    """
    try:
        first = date_parser.parse(text, dayfirst=True, default=_DEFAULT_A)
        second = date_parser.parse(text, dayfirst=True, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return _naive_utc(first)


def _is_nan(value: Any) -> bool:
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, decimal.Decimal):
        return value.is_nan()
    return False


def _naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
