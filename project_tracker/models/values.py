"""
Tagged field values.

Entries keep whatever loosely typed values they were saved with. Before any
comparison the raw value is coerced once, according to the declared field
type, into a ``FieldValue`` tagged as text, number, date or empty. Filtering
and sorting only ever look at the tagged form.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..errors import CoercionError
from .schema import FieldType


class ValueKind(Enum):
    """Variant tag of a coerced value."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


def is_number(value: Any) -> bool:
    """True for real numbers; booleans are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_number(value: Any) -> str:
    """Render a number without a trailing ``.0`` for integral floats."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_text(value: Any) -> str:
    """Render any stored value as text. Missing values render as ``""``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def parse_number(value: Any) -> float:
    """
    Read a value as a finite number.

    Raises:
        CoercionError: If the value is not numeric
    """
    if is_number(value):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError as e:
            raise CoercionError(f"Not a number: {value!r}", value=value, original_exception=e)
    else:
        raise CoercionError(f"Not a number: {value!r}", value=value)

    if not math.isfinite(number):
        raise CoercionError(f"Not a finite number: {value!r}", value=value)
    return number


def parse_date(value: Any) -> date:
    """
    Read a value as a calendar date. ISO datetimes are reduced to their date.

    Raises:
        CoercionError: If the value is not an ISO date or datetime
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise CoercionError(f"Not a date: {value!r}", value=value)

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # fromisoformat only accepts a trailing Z from Python 3.11 on
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise CoercionError(f"Not a date: {value!r}", value=value, original_exception=e)


@dataclass(frozen=True)
class FieldValue:
    """A stored value tagged with the kind it was coerced to."""
    kind: ValueKind
    raw: Any = None
    number: Optional[float] = None
    day: Optional[date] = None

    @property
    def text(self) -> str:
        return to_text(self.raw)

    @property
    def is_empty(self) -> bool:
        return self.kind is ValueKind.EMPTY

    def as_number(self) -> float:
        """Numeric reading of the value; raises CoercionError when there is none."""
        if self.kind is ValueKind.NUMBER:
            return self.number
        return parse_number(self.raw)

    def as_date(self) -> date:
        """Date reading of the value; raises CoercionError when there is none."""
        if self.kind is ValueKind.DATE:
            return self.day
        return parse_date(self.raw)


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def _infer(raw: Any) -> FieldValue:
    """Tag by runtime type; used for text-like fields and fields outside the schema."""
    if is_number(raw) and math.isfinite(raw):
        return FieldValue(ValueKind.NUMBER, raw=raw, number=float(raw))
    if isinstance(raw, (date, datetime)):
        return FieldValue(ValueKind.DATE, raw=raw, day=parse_date(raw))
    return FieldValue(ValueKind.TEXT, raw=raw)


def _coerce_number(raw: Any) -> FieldValue:
    try:
        return FieldValue(ValueKind.NUMBER, raw=raw, number=parse_number(raw))
    except CoercionError:
        return FieldValue(ValueKind.TEXT, raw=raw)


def _coerce_date(raw: Any) -> FieldValue:
    try:
        return FieldValue(ValueKind.DATE, raw=raw, day=parse_date(raw))
    except CoercionError:
        return FieldValue(ValueKind.TEXT, raw=raw)


_COERCERS: Dict[FieldType, Callable[[Any], FieldValue]] = {
    FieldType.TEXT: _infer,
    FieldType.TEXTAREA: _infer,
    FieldType.DROPDOWN: _infer,
    FieldType.NUMBER: _coerce_number,
    FieldType.DATE: _coerce_date,
}


def coerce_value(raw: Any, field_type: Optional[FieldType] = None) -> FieldValue:
    """
    Coerce a raw stored value into a tagged FieldValue.

    Args:
        raw: Value as stored on the entry
        field_type: Declared type of the field, or None for fields outside the schema

    Returns:
        FieldValue tagged EMPTY for None/blank text, otherwise per the field type.
        Values that do not fit a number or date field are kept as TEXT.
    """
    if _is_blank(raw):
        return FieldValue(ValueKind.EMPTY, raw=raw)
    return _COERCERS.get(field_type, _infer)(raw)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_text(a: FieldValue, b: FieldValue) -> int:
    return _cmp(a.text.casefold(), b.text.casefold())


_SAME_KIND_COMPARATORS: Dict[ValueKind, Callable[[FieldValue, FieldValue], int]] = {
    ValueKind.NUMBER: lambda a, b: _cmp(a.number, b.number),
    ValueKind.DATE: lambda a, b: _cmp(a.day, b.day),
}


def compare_values(a: FieldValue, b: FieldValue) -> int:
    """
    Three-way comparison used for sorting.

    Two numbers compare numerically and two dates chronologically; every other
    pairing, empties included, compares case-insensitively as text.
    """
    if a.kind is b.kind and a.kind in _SAME_KIND_COMPARATORS:
        return _SAME_KIND_COMPARATORS[a.kind](a, b)
    return _compare_text(a, b)
