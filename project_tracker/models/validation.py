"""
Entry validation against the field schema.

Validation failures are reported, never raised: callers get a
``ValidationResult`` whose ``is_valid`` flag decides whether an entry may be
saved.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from ..errors import CoercionError
from .schema import FieldDefinition, FieldSchema, FieldType
from .values import parse_date, parse_number


class ValidationErrorType(Enum):
    """Types of validation errors."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNKNOWN_OPTION = "unknown_option"
    INVALID_NUMBER = "invalid_number"
    OUT_OF_BOUNDS = "out_of_bounds"
    INVALID_DATE = "invalid_date"
    RESERVED_KEY = "reserved_key"


@dataclass
class ValidationIssue:
    """Represents a validation error with context."""
    error_type: ValidationErrorType
    field_id: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        """Get formatted error message."""
        return "; ".join(error.message for error in self.errors)

    def add_error(self, error: ValidationIssue) -> None:
        """Add a validation error."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a validation warning."""
        self.warnings.append(warning)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class EntryValidator:
    """Validator for entry field values."""

    def __init__(self, schema: FieldSchema):
        self.schema = schema

    def validate(self, values: Dict[str, Any]) -> ValidationResult:
        """
        Validate a mapping of field id to value.

        Args:
            values: Field values as they would be stored on the entry

        Returns:
            ValidationResult with validation status and errors
        """
        result = ValidationResult()

        for key in ('id', 'timestamp'):
            if key in values:
                result.add_error(ValidationIssue(
                    error_type=ValidationErrorType.RESERVED_KEY,
                    field_id=key,
                    message=f"'{key}' is assigned automatically and cannot be set",
                    value=values[key]
                ))

        for definition in self.schema:
            value = values.get(definition.id)
            if _is_blank(value):
                if definition.required:
                    result.add_error(ValidationIssue(
                        error_type=ValidationErrorType.MISSING_REQUIRED_FIELD,
                        field_id=definition.id,
                        message=f"{definition.label} is required",
                        value=value
                    ))
                continue
            self._validate_value(definition, value, result)

        unknown = sorted(set(values) - set(self.schema.by_id) - {'id', 'timestamp'})
        if unknown:
            result.add_warning(f"Fields not in schema: {', '.join(unknown)}")

        return result

    def _validate_value(self, definition: FieldDefinition, value: Any, result: ValidationResult) -> None:
        if definition.type == FieldType.DROPDOWN:
            if definition.find_option(value) is None:
                allowed = ", ".join(option.value for option in definition.options)
                result.add_error(ValidationIssue(
                    error_type=ValidationErrorType.UNKNOWN_OPTION,
                    field_id=definition.id,
                    message=f"{definition.label} must be one of: {allowed}",
                    value=value
                ))

        elif definition.type == FieldType.NUMBER:
            try:
                number = parse_number(value)
            except CoercionError:
                result.add_error(ValidationIssue(
                    error_type=ValidationErrorType.INVALID_NUMBER,
                    field_id=definition.id,
                    message=f"{definition.label} must be a number",
                    value=value
                ))
                return
            if (definition.min is not None and number < definition.min) or \
                    (definition.max is not None and number > definition.max):
                result.add_error(ValidationIssue(
                    error_type=ValidationErrorType.OUT_OF_BOUNDS,
                    field_id=definition.id,
                    message=f"{definition.label} must be between {_bound(definition.min)} and {_bound(definition.max)}",
                    value=value
                ))

        elif definition.type == FieldType.DATE:
            try:
                parse_date(value)
            except CoercionError:
                result.add_error(ValidationIssue(
                    error_type=ValidationErrorType.INVALID_DATE,
                    field_id=definition.id,
                    message=f"{definition.label} must be a date (YYYY-MM-DD)",
                    value=value
                ))


def _bound(value: Optional[float]) -> str:
    if value is None:
        return "any"
    return str(int(value)) if float(value).is_integer() else str(value)
