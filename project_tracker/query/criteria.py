"""
Filter criteria, sort state and the query session that carries them.

A criterion constrains one field. Text and dropdown fields use a
case-insensitive substring match, number fields an inclusive numeric range
and date fields an inclusive date range. Criteria and sort state live on an
explicit ``QuerySession`` owned by the caller, so independent sessions never
share state.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import CoercionError, ValidationError, create_error_context
from ..models.schema import FieldSchema, FieldType
from ..models.values import FieldValue, parse_date, parse_number, to_text


class SortDirection(str, Enum):
    """Sort directions offered by the table header."""
    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass(frozen=True)
class TextMatch:
    """Case-insensitive substring match against the value's text form."""
    value: str

    def matches(self, value: FieldValue) -> bool:
        return self.value.casefold() in value.text.casefold()

    def to_dict(self) -> Any:
        return self.value


@dataclass(frozen=True)
class NumberRange:
    """Inclusive numeric range; a missing bound leaves that side open."""
    min: Optional[float] = None
    max: Optional[float] = None

    def matches(self, value: FieldValue) -> bool:
        """Raises CoercionError when the value is not numeric."""
        number = value.as_number()
        if self.min is not None and number < self.min:
            return False
        if self.max is not None and number > self.max:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range; a missing bound leaves that side open."""
    start: Optional[date] = None
    end: Optional[date] = None

    def matches(self, value: FieldValue) -> bool:
        """Raises CoercionError when the value is not a date."""
        day = value.as_date()
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "from": self.start.isoformat() if self.start else None,
            "to": self.end.isoformat() if self.end else None,
        }


Criterion = Union[TextMatch, NumberRange, DateRange]


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number_bound(field_id: str, value: Any) -> Optional[float]:
    if _blank(value):
        return None
    try:
        return parse_number(value)
    except CoercionError as e:
        raise ValidationError(
            f"Filter bound for '{field_id}' is not a number: {value!r}",
            context=create_error_context("parse_criterion", field_id=field_id),
            original_exception=e
        )


def _date_bound(field_id: str, value: Any) -> Optional[date]:
    if _blank(value):
        return None
    try:
        return parse_date(value)
    except CoercionError as e:
        raise ValidationError(
            f"Filter bound for '{field_id}' is not a date: {value!r}",
            context=create_error_context("parse_criterion", field_id=field_id),
            original_exception=e
        )


def parse_criterion(field_id: str, raw: Any) -> Criterion:
    """
    Build a criterion from its raw shape.

    A scalar becomes a TextMatch, ``{"min", "max"}`` a NumberRange and
    ``{"from", "to"}`` a DateRange. Criterion objects pass through unchanged.

    Raises:
        ValidationError: If the shape is not recognised or a bound is malformed
    """
    if isinstance(raw, (TextMatch, NumberRange, DateRange)):
        return raw

    if isinstance(raw, Mapping):
        if "from" in raw or "to" in raw:
            return DateRange(start=_date_bound(field_id, raw.get("from")),
                             end=_date_bound(field_id, raw.get("to")))
        if "min" in raw or "max" in raw:
            return NumberRange(min=_number_bound(field_id, raw.get("min")),
                               max=_number_bound(field_id, raw.get("max")))
        raise ValidationError(
            f"Unrecognised range filter for '{field_id}': {dict(raw)!r}",
            context=create_error_context("parse_criterion", field_id=field_id)
        )

    if raw is None:
        raise ValidationError(
            f"Filter value for '{field_id}' is missing",
            context=create_error_context("parse_criterion", field_id=field_id)
        )

    return TextMatch(to_text(raw))


def normalize_criteria(criteria: Optional[Mapping[str, Any]]) -> Dict[str, Criterion]:
    """Turn a mapping of field id to raw criterion into criterion objects."""
    if not criteria:
        return {}
    return {field_id: parse_criterion(field_id, raw) for field_id, raw in criteria.items()}


def collect_filters(schema: FieldSchema, form_values: Mapping[str, Any]) -> Dict[str, Criterion]:
    """
    Build criteria from filter-panel inputs.

    Text and dropdown fields read ``<id>``, number fields ``<id>-min`` and
    ``<id>-max``, date fields ``<id>-from`` and ``<id>-to``. Blank inputs are
    ignored; a range is created when either of its bounds is filled in.
    Textarea fields are not filterable.
    """
    criteria: Dict[str, Criterion] = {}

    for definition in schema.filterable_fields():
        field_id = definition.id

        if definition.type == FieldType.DATE:
            start, end = form_values.get(f"{field_id}-from"), form_values.get(f"{field_id}-to")
            if not (_blank(start) and _blank(end)):
                criteria[field_id] = DateRange(start=_date_bound(field_id, start),
                                               end=_date_bound(field_id, end))

        elif definition.type == FieldType.NUMBER:
            low, high = form_values.get(f"{field_id}-min"), form_values.get(f"{field_id}-max")
            if not (_blank(low) and _blank(high)):
                criteria[field_id] = NumberRange(min=_number_bound(field_id, low),
                                                 max=_number_bound(field_id, high))

        else:
            value = form_values.get(field_id)
            if not _blank(value):
                criteria[field_id] = TextMatch(to_text(value).strip())

    return criteria


@dataclass
class SortState:
    """Which field the view is sorted on; ``field=None`` keeps insertion order."""
    field: Optional[str] = None
    direction: SortDirection = SortDirection.ASCENDING


@dataclass
class QuerySession:
    """
    Filter and sort state for one active project.

    The state persists across ``process`` calls and changes only through the
    explicit operations below, which mirror the user actions of the table
    view: apply filters, clear filters and click a column header.
    """
    project_id: Optional[str] = None
    criteria: Dict[str, Criterion] = field(default_factory=dict)
    sort: SortState = field(default_factory=SortState)

    def apply_filters(self, criteria: Optional[Mapping[str, Any]]) -> None:
        """Replace the active criteria."""
        self.criteria = normalize_criteria(criteria)

    def clear_filters(self) -> None:
        self.criteria = {}

    def set_sort(self, field_id: Optional[str],
                 direction: Union[SortDirection, str] = SortDirection.ASCENDING) -> None:
        self.sort = SortState(field=field_id, direction=SortDirection(direction))

    def toggle_sort(self, field_id: str) -> SortState:
        """
        Column-click behaviour: the sorted column flips between ascending and
        descending, any other column starts ascending.
        """
        if self.sort.field == field_id and self.sort.direction == SortDirection.ASCENDING:
            self.set_sort(field_id, SortDirection.DESCENDING)
        else:
            self.set_sort(field_id, SortDirection.ASCENDING)
        return self.sort

    def describe(self) -> Dict[str, Any]:
        """Plain-data summary for logs and query metadata."""
        return {
            "project_id": self.project_id,
            "criteria": {field_id: criterion.to_dict() for field_id, criterion in self.criteria.items()},
            "sort_field": self.sort.field,
            "sort_direction": self.sort.direction.value,
        }
