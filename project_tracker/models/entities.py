"""
Pydantic models for projects and their entries.

An entry is a flat record of field values plus an immutable ``id`` and
creation ``timestamp``. A project owns an ordered list of entries and is
identified by a 7-digit number.
"""

import re
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from .values import is_number, format_number

PROJECT_ID_PATTERN = re.compile(r"[0-9]{7}")


def is_valid_project_id(project_id: Any) -> bool:
    """Project ids are exactly seven ASCII digits."""
    return isinstance(project_id, str) and PROJECT_ID_PATTERN.fullmatch(project_id) is not None


class Entry(BaseModel):
    """One schema-conforming record inside a project."""

    RESERVED_KEYS: ClassVar[Tuple[str, ...]] = ('id', 'timestamp')

    id: str = Field(..., min_length=1, description="Globally unique entry identifier")
    timestamp: str = Field(..., description="ISO-8601 creation time")
    values: Dict[str, Any] = Field(default_factory=dict, description="Field id to stored value")

    @field_validator('id', mode='before')
    @classmethod
    def validate_id(cls, v):
        """Numeric ids from older data are kept as their text form."""
        if is_number(v):
            return format_number(v)
        return v

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v):
        """Timestamp must be an ISO-8601 datetime."""
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Timestamp is not ISO-8601: {v!r}")
        return v

    @field_validator('values')
    @classmethod
    def validate_values(cls, v):
        """Field values cannot shadow the entry's own id or timestamp."""
        clashing = [key for key in cls.RESERVED_KEYS if key in v]
        if clashing:
            raise ValueError(f"Field values cannot use reserved keys: {', '.join(clashing)}")
        return v

    def get(self, field_id: str, default: Any = None) -> Any:
        """Value of a field, with ``id`` and ``timestamp`` addressable like fields."""
        if field_id == 'id':
            return self.id
        if field_id == 'timestamp':
            return self.timestamp
        return self.values.get(field_id, default)

    def has_value(self, field_id: str) -> bool:
        """True when the field is present and not null."""
        return self.get(field_id) is not None

    def with_values(self, values: Dict[str, Any]) -> 'Entry':
        """Whole-entry replacement: new field values, same id and timestamp."""
        return Entry(id=self.id, timestamp=self.timestamp, values=dict(values))

    @model_serializer
    def serialize_model(self):
        """Flat form: ``{"id", "timestamp", <field id>: value, ...}``."""
        return {'id': self.id, 'timestamp': self.timestamp, **self.values}

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> 'Entry':
        """Create instance from the flat JSON form."""
        values = dict(data)
        entry_id = values.pop('id', None)
        timestamp = values.pop('timestamp', None)
        return cls(id=entry_id, timestamp=timestamp, values=values)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "entry_1718000000000_42",
                "timestamp": "2024-06-10T08:53:20.000Z",
                "title": "Replace firewall",
                "status": "open",
                "priority": "5"
            }
        }
    )


class Project(BaseModel):
    """A collection of entries keyed by a 7-digit identifier."""

    id: str = Field(..., description="7-digit project identifier")
    entries: List[Entry] = Field(default_factory=list, description="Entries in insertion order")

    @field_validator('id')
    @classmethod
    def validate_project_id(cls, v):
        """Validate project id format."""
        if not is_valid_project_id(v):
            raise ValueError("Project ID must be a 7-digit number")
        return v

    def entry_index(self, entry_id: str) -> int:
        """Position of an entry, or -1 if the project has no such entry."""
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return index
        return -1

    def find_entry(self, entry_id: str) -> Optional[Entry]:
        index = self.entry_index(entry_id)
        return self.entries[index] if index >= 0 else None

    def to_json_dict(self) -> Dict[str, Any]:
        """Convert to dictionary suitable for JSON storage."""
        return {
            'id': self.id,
            'entries': [entry.to_json_dict() for entry in self.entries]
        }

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> 'Project':
        """Create instance from JSON dictionary."""
        return cls(
            id=data.get('id'),
            entries=[Entry.from_json_dict(entry) for entry in data.get('entries', [])]
        )
