"""
Query engine and exporter.

This package filters and sorts project entries into a view and exports that
view to CSV or JSON.
"""

from .criteria import (
    DateRange,
    NumberRange,
    QuerySession,
    SortDirection,
    SortState,
    TextMatch,
    collect_filters,
    normalize_criteria
)
from .engine import QueryEngine, QueryResult
from .export import DataExporter, ExportFormat, ExportOptions, ExportResult, write_export

__all__ = [
    'DateRange', 'NumberRange', 'TextMatch', 'QuerySession', 'SortDirection', 'SortState',
    'collect_filters', 'normalize_criteria',
    'QueryEngine', 'QueryResult',
    'DataExporter', 'ExportFormat', 'ExportOptions', 'ExportResult', 'write_export'
]
