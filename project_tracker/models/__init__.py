"""
Data models for the Project Tracker.

This package provides the field schema, Pydantic models for projects and
entries, tagged field values and entry validation.
"""

from .schema import FieldType, DropdownOption, FieldDefinition, FieldSchema, load_schema
from .values import FieldValue, ValueKind, coerce_value, compare_values, to_text
from .entities import Entry, Project, is_valid_project_id
from .validation import (
    EntryValidator,
    ValidationErrorType,
    ValidationIssue,
    ValidationResult
)

__all__ = [
    # Schema
    "FieldType",
    "DropdownOption",
    "FieldDefinition",
    "FieldSchema",
    "load_schema",

    # Values
    "FieldValue",
    "ValueKind",
    "coerce_value",
    "compare_values",
    "to_text",

    # Entities
    "Entry",
    "Project",
    "is_valid_project_id",

    # Validation
    "EntryValidator",
    "ValidationErrorType",
    "ValidationIssue",
    "ValidationResult",
]
