"""
Entry management for projects.

This module creates, updates, deletes and looks up entries inside stored
projects. Every write is validated against the field schema first; invalid
values are reported and never persisted.
"""

import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .database.storage import ProjectStore
from .models.entities import Entry, Project
from .models.schema import FieldSchema, load_schema
from .models.validation import EntryValidator, ValidationResult


def current_timestamp() -> str:
    """UTC creation time in ISO-8601 with milliseconds and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EntryManager:
    """
    CRUD operations for the entries of a project.

    Lookups of unknown projects or entries return None (or False for
    deletes) rather than raising, so callers can report "not found"
    without exception handling.
    """

    def __init__(self, store: Optional[ProjectStore] = None, schema: Optional[FieldSchema] = None):
        """
        Initialize the entry manager.

        Args:
            store: Project store; a default store when omitted
            schema: Field schema entries are validated against
        """
        self.store = store or ProjectStore()
        self.schema = schema or load_schema()
        self.validator = EntryValidator(self.schema)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def generate_entry_id(self) -> str:
        """New entry id of the form ``entry_<epoch ms>_<0-999>``."""
        return f"entry_{int(time.time() * 1000)}_{random.randrange(1000)}"

    def _unique_entry_id(self, project: Project) -> str:
        entry_id = self.generate_entry_id()
        while project.find_entry(entry_id) is not None:
            entry_id = self.generate_entry_id()
        return entry_id

    def validate(self, values: Dict[str, Any]) -> ValidationResult:
        """Full validation report for a set of field values."""
        return self.validator.validate(values)

    def validate_entry(self, values: Dict[str, Any]) -> bool:
        """True when the values satisfy the field schema."""
        return self.validate(values).is_valid

    def _check(self, operation: str, project_id: str, values: Dict[str, Any]) -> bool:
        result = self.validate(values)
        if not result.is_valid:
            self.logger.warning(
                f"Rejected {operation} in project {project_id}: {result.error_message}",
                extra={"operation": operation, "project_id": project_id,
                       "error_count": len(result.errors)}
            )
        return result.is_valid

    def add_entry(self, project_id: str, values: Dict[str, Any]) -> Optional[Entry]:
        """
        Append a new entry to a project.

        Args:
            project_id: Project to add to
            values: Field id to value

        Returns:
            The stored entry with its generated id and timestamp, or None if
            the project does not exist, the values are invalid or the write
            failed
        """
        project = self.store.load(project_id)
        if project is None:
            self.logger.info(f"Cannot add entry: project {project_id} not found")
            return None

        if not self._check("add_entry", project_id, values):
            return None

        entry = Entry(id=self._unique_entry_id(project), timestamp=current_timestamp(), values=dict(values))
        project.entries.append(entry)

        if not self.store.save(project):
            return None

        self.logger.info(f"Added entry {entry.id} to project {project_id}")
        return entry

    def update_entry(self, project_id: str, entry_id: str, values: Dict[str, Any]) -> Optional[Entry]:
        """
        Replace the field values of an entry, keeping its id and timestamp.

        Returns:
            The updated entry, or None if the project or entry does not
            exist, the values are invalid or the write failed
        """
        project = self.store.load(project_id)
        if project is None:
            return None

        index = project.entry_index(entry_id)
        if index == -1:
            self.logger.info(f"Cannot update: entry {entry_id} not found in project {project_id}")
            return None

        if not self._check("update_entry", project_id, values):
            return None

        updated = project.entries[index].with_values(values)
        project.entries[index] = updated

        if not self.store.save(project):
            return None

        self.logger.info(f"Updated entry {entry_id} in project {project_id}")
        return updated

    def delete_entry(self, project_id: str, entry_id: str) -> bool:
        """
        Remove an entry from a project.

        Returns:
            True if the entry was removed and the project saved
        """
        project = self.store.load(project_id)
        if project is None:
            return False

        index = project.entry_index(entry_id)
        if index == -1:
            return False

        del project.entries[index]
        if not self.store.save(project):
            return False

        self.logger.info(f"Deleted entry {entry_id} from project {project_id}")
        return True

    def get_entry(self, project_id: str, entry_id: str) -> Optional[Entry]:
        """The entry with the given id, or None."""
        project = self.store.load(project_id)
        if project is None:
            return None
        return project.find_entry(entry_id)
