"""
Field schema models.

The schema is static configuration: an ordered list of field definitions that
drives entry validation, filter construction, table columns and CSV headers.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from ..errors import ConfigurationError, create_error_context

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "default_fields.json"


class FieldType(str, Enum):
    """Closed set of field types an entry attribute can have."""
    TEXT = "text"
    TEXTAREA = "textarea"
    DROPDOWN = "dropdown"
    NUMBER = "number"
    DATE = "date"


class DropdownOption(BaseModel):
    """One selectable value of a dropdown field."""

    value: str = Field(..., min_length=1, description="Stored code")
    label: str = Field(..., min_length=1, description="Display label")
    css_class: Optional[str] = Field(None, alias="cssClass", description="Presentation hint")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class FieldDefinition(BaseModel):
    """Schema describing one attribute's type, label and constraints."""

    id: str = Field(..., min_length=1, description="Unique stable key")
    label: str = Field(..., min_length=1, description="Human-readable name")
    type: FieldType = Field(..., description="Field type")
    required: bool = Field(False, description="Whether a value must be supplied")
    options: List[DropdownOption] = Field(default_factory=list, description="Dropdown options")
    min: Optional[float] = Field(None, description="Lower bound for number fields")
    max: Optional[float] = Field(None, description="Upper bound for number fields")

    model_config = ConfigDict(frozen=True)

    @field_validator('id', 'label')
    @classmethod
    def validate_text_fields(cls, v):
        """Ids and labels cannot be whitespace-only."""
        if not v.strip():
            raise ValueError("Field id and label cannot be empty or whitespace-only")
        return v.strip()

    @model_validator(mode='after')
    def validate_type_constraints(self):
        """Options belong to dropdowns only, bounds to numbers only."""
        if self.type == FieldType.DROPDOWN:
            if not self.options:
                raise ValueError(f"Dropdown field '{self.id}' must define options")
            values = [option.value for option in self.options]
            if len(values) != len(set(values)):
                raise ValueError(f"Dropdown field '{self.id}' has duplicate option values")
        elif self.options:
            raise ValueError(f"Only dropdown fields may define options (field '{self.id}')")

        if self.type != FieldType.NUMBER and (self.min is not None or self.max is not None):
            raise ValueError(f"Only number fields may define min/max (field '{self.id}')")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Field '{self.id}' has min greater than max")
        return self

    @property
    def is_filterable(self) -> bool:
        """Free-form textarea fields are not offered as filters."""
        return self.type != FieldType.TEXTAREA

    def find_option(self, value) -> Optional[DropdownOption]:
        """Return the option whose code equals ``value``, if any."""
        for option in self.options:
            if option.value == value:
                return option
        return None

    def display_value(self, value) -> str:
        """Render a stored value for people: dropdown codes become labels."""
        from .values import to_text

        if self.type == FieldType.DROPDOWN:
            option = self.find_option(value)
            if option is not None:
                return option.label
        return to_text(value)


class FieldSchema(BaseModel):
    """Ordered collection of field definitions with unique ids."""

    fields: List[FieldDefinition] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator('fields')
    @classmethod
    def validate_unique_ids(cls, v):
        """Field ids are unique across the schema."""
        seen = set()
        for definition in v:
            if definition.id in seen:
                raise ValueError(f"Duplicate field id '{definition.id}'")
            seen.add(definition.id)
        return v

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, field_id: str) -> bool:
        return self.get(field_id) is not None

    def get(self, field_id: str) -> Optional[FieldDefinition]:
        """Look up a field definition by id."""
        return self.by_id.get(field_id)

    @property
    def by_id(self) -> Dict[str, FieldDefinition]:
        return {definition.id: definition for definition in self.fields}

    def filterable_fields(self) -> List[FieldDefinition]:
        return [definition for definition in self.fields if definition.is_filterable]

    def required_fields(self) -> List[FieldDefinition]:
        return [definition for definition in self.fields if definition.required]

    @classmethod
    def from_json_dict(cls, data: Union[dict, list]) -> 'FieldSchema':
        """Build a schema from ``{"fields": [...]}`` or a bare list."""
        if isinstance(data, list):
            data = {"fields": data}
        return cls.model_validate(data)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


def load_schema(schema_file: Optional[str] = None) -> FieldSchema:
    """
    Load a field schema from a JSON file.

    Args:
        schema_file: Path to a JSON schema file; the packaged default is used when None

    Returns:
        Validated FieldSchema

    Raises:
        ConfigurationError: If the file cannot be read or does not describe a valid schema
    """
    path = Path(schema_file) if schema_file else DEFAULT_SCHEMA_PATH
    context = create_error_context("load_schema", schema_file=str(path))

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read field schema {path}: {e}", context=context, original_exception=e)

    try:
        return FieldSchema.from_json_dict(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid field schema {path}: {e}", context=context, original_exception=e)
