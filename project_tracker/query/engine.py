"""
Query engine for project entries.

This module filters an entry collection against per-field criteria and sorts
the result on a single field, producing the view that both the table and the
exporter consume. Entries are never modified.
"""

import logging
import time
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import CoercionError
from ..logging_config import log_query_operation
from ..models.entities import Entry, Project
from ..models.schema import FieldSchema, FieldType
from ..models.values import FieldValue, coerce_value, compare_values
from .criteria import Criterion, QuerySession, SortDirection, normalize_criteria


@dataclass
class QueryResult:
    """Data class for a processed project view."""
    entries: List[Entry]
    total_count: int
    query_metadata: Dict[str, Any]

    @property
    def matched_count(self) -> int:
        return len(self.entries)


class QueryEngine:
    """
    Query engine for filtering and sorting entries.

    Values are read through the field schema, so a number field holding
    ``"10"`` sorts and range-filters as the number 10. Fields outside the
    schema (``id``, ``timestamp``) are tagged by their runtime type.
    """

    def __init__(self, schema: Optional[FieldSchema] = None):
        """
        Initialize the query engine.

        Args:
            schema: Field schema used to coerce values; None tags every value by runtime type
        """
        self.schema = schema
        self.logger = logging.getLogger(__name__)

    def _field_type(self, field_id: str) -> Optional[FieldType]:
        if self.schema is None:
            return None
        definition = self.schema.get(field_id)
        return definition.type if definition else None

    def value_of(self, entry: Entry, field_id: str) -> FieldValue:
        """Tagged value of one field of an entry."""
        return coerce_value(entry.get(field_id), self._field_type(field_id))

    def filter_entries(self, entries: Iterable[Entry],
                       criteria: Optional[Mapping[str, Any]]) -> List[Entry]:
        """
        Keep the entries that satisfy every criterion.

        Args:
            entries: Entries in their current order
            criteria: Field id to criterion (objects or raw shapes)

        Returns:
            Matching entries in input order. A criterion on a field the entry
            does not have is satisfied; a value that cannot be read as the
            number or date a range needs excludes the entry.
        """
        entries = list(entries)
        criteria = normalize_criteria(criteria)
        if not criteria:
            return entries

        start = time.perf_counter()
        matched = [entry for entry in entries if self._matches_all(entry, criteria)]
        log_query_operation(self.logger, "filter", len(entries), len(matched),
                            time.perf_counter() - start, criteria_fields=sorted(criteria))
        return matched

    def _matches_all(self, entry: Entry, criteria: Dict[str, Criterion]) -> bool:
        for field_id, criterion in criteria.items():
            if not entry.has_value(field_id):
                continue
            try:
                if not criterion.matches(self.value_of(entry, field_id)):
                    return False
            except CoercionError as e:
                self.logger.debug(
                    "Excluding entry %s from %s filter: %s", entry.id, field_id, e.message,
                    extra={"entry_id": entry.id, "field_id": field_id}
                )
                return False
        return True

    def sort_entries(self, entries: Iterable[Entry], field_id: Optional[str],
                     direction: Union[SortDirection, str] = SortDirection.ASCENDING) -> List[Entry]:
        """
        Return a new list of entries sorted on one field.

        Args:
            entries: Entries to sort; the input is left untouched
            field_id: Field to sort on, or None to keep the input order
            direction: Ascending or descending

        Returns:
            Sorted entries. The sort is stable in both directions: entries
            with equal values keep their input order.
        """
        entries = list(entries)
        if not field_id:
            return entries

        sign = -1 if SortDirection(direction) == SortDirection.DESCENDING else 1
        start = time.perf_counter()

        keyed = [(self.value_of(entry, field_id), entry) for entry in entries]
        keyed.sort(key=cmp_to_key(lambda a, b: sign * compare_values(a[0], b[0])))

        log_query_operation(self.logger, "sort", len(entries), len(entries),
                            time.perf_counter() - start, sort_field=field_id)
        return [entry for _, entry in keyed]

    def process(self, entries: Iterable[Entry], session: QuerySession) -> List[Entry]:
        """
        Apply the session's filters and then its sort.

        Args:
            entries: The project's entries in insertion order
            session: Active filter and sort state

        Returns:
            The view shown in the table and handed to the exporter
        """
        filtered = self.filter_entries(entries, session.criteria)
        return self.sort_entries(filtered, session.sort.field, session.sort.direction)

    def query_project(self, project: Optional[Project], session: QuerySession) -> QueryResult:
        """
        Process a loaded project into a view with counts and metadata.

        Args:
            project: Project returned by the store, or None if it was not found
            session: Active filter and sort state

        Returns:
            QueryResult; empty with ``found=False`` metadata for a missing project
        """
        if project is None:
            return QueryResult(
                entries=[],
                total_count=0,
                query_metadata={"project_id": session.project_id, "found": False}
            )

        start = time.perf_counter()
        view = self.process(project.entries, session)
        log_query_operation(self.logger, "process", len(project.entries), len(view),
                            time.perf_counter() - start, project_id=project.id)

        return QueryResult(
            entries=view,
            total_count=len(project.entries),
            query_metadata={
                **session.describe(),
                "project_id": project.id,
                "found": True,
                "matched_count": len(view)
            }
        )
