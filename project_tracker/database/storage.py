"""
Project store backed by the key-value table.

The registry of project ids lives under ``projectRegistry`` as a JSON list in
creation order; each project document lives under ``project_<id>``.
"""

import json
import logging
import time
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_config
from ..errors import StorageError, create_error_context, handle_error
from ..logging_config import log_storage_operation
from ..models.entities import Project
from .connection import DatabaseManager, get_database_manager
from .schema import StorageItem

REGISTRY_KEY = "projectRegistry"


def project_key(project_id: str) -> str:
    """Storage key of a project document."""
    return f"project_{project_id}"


class ProjectStore:
    """
    Persistence for projects.

    Reads return None or an empty list when nothing is stored. Writes return
    False when the database rejects them; the failure is reported through
    the error handler.
    """

    def __init__(self, manager: Optional[DatabaseManager] = None,
                 suggestion_limit: Optional[int] = None,
                 suggestion_min_length: Optional[int] = None):
        """
        Initialize the project store.

        Args:
            manager: Database manager; the global one when omitted
            suggestion_limit: Maximum number of autocomplete suggestions
            suggestion_min_length: Shortest query that produces suggestions
        """
        project_config = get_config().projects
        self.manager = manager or get_database_manager()
        self.suggestion_limit = suggestion_limit if suggestion_limit is not None else project_config.suggestion_limit
        self.suggestion_min_length = (suggestion_min_length if suggestion_min_length is not None
                                      else project_config.suggestion_min_length)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # Raw key-value access

    def _read(self, session: Session, key: str) -> Optional[Any]:
        start = time.perf_counter()
        item = session.execute(select(StorageItem).where(StorageItem.key == key)).scalar_one_or_none()
        log_storage_operation(self.logger, "GET", key, time.perf_counter() - start, hit=item is not None)
        if item is None:
            return None
        try:
            return json.loads(item.value)
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Stored document '{key}' is not valid JSON",
                context=create_error_context("read", storage_key=key),
                original_exception=e
            )

    def _write(self, session: Session, key: str, document: Any) -> None:
        start = time.perf_counter()
        session.merge(StorageItem(key=key, value=json.dumps(document, ensure_ascii=False)))
        log_storage_operation(self.logger, "SET", key, time.perf_counter() - start)

    def _remove(self, session: Session, key: str) -> None:
        item = session.get(StorageItem, key)
        if item is not None:
            session.delete(item)
        log_storage_operation(self.logger, "DELETE", key, existed=item is not None)

    def _registry(self, session: Session) -> List[str]:
        registry = self._read(session, REGISTRY_KEY)
        return [str(project_id) for project_id in registry] if isinstance(registry, list) else []

    # Project operations

    def list_project_ids(self) -> List[str]:
        """All registered project ids in creation order."""
        with self.manager.get_session() as session:
            return self._registry(session)

    def exists(self, project_id: str) -> bool:
        """True when the id is in the registry."""
        return project_id in self.list_project_ids()

    def load(self, project_id: str) -> Optional[Project]:
        """
        Load a project.

        Returns:
            The project, or None if it is not registered or has no document

        Raises:
            StorageError: If the stored document is corrupt
        """
        with self.manager.get_session() as session:
            if project_id not in self._registry(session):
                return None
            document = self._read(session, project_key(project_id))

        if not document:
            return None

        try:
            return Project.from_json_dict(document)
        except PydanticValidationError as e:
            raise StorageError(
                f"Stored project '{project_id}' does not match the project model",
                context=create_error_context("load", project_id=project_id),
                original_exception=e
            )

    def save(self, project: Project) -> bool:
        """
        Persist a project, registering its id when it is new.

        Returns:
            True if the write committed
        """
        try:
            with self.manager.get_transaction() as session:
                registry = self._registry(session)
                if project.id not in registry:
                    registry.append(project.id)
                    self._write(session, REGISTRY_KEY, registry)
                self._write(session, project_key(project.id), project.to_json_dict())
            self.logger.info(f"Saved project {project.id} with {len(project.entries)} entries")
            return True
        except SQLAlchemyError as e:
            self._report_failure("save", project.id, e)
            return False

    def delete(self, project_id: str) -> bool:
        """
        Remove a project and its registry entry.

        Returns:
            True if the write committed; deleting an unknown id is not an error
        """
        try:
            with self.manager.get_transaction() as session:
                registry = [existing for existing in self._registry(session) if existing != project_id]
                self._write(session, REGISTRY_KEY, registry)
                self._remove(session, project_key(project_id))
            self.logger.info(f"Deleted project {project_id}")
            return True
        except SQLAlchemyError as e:
            self._report_failure("delete", project_id, e)
            return False

    def suggest(self, query: Optional[str]) -> List[str]:
        """
        Autocomplete project ids.

        Returns:
            Up to ``suggestion_limit`` registered ids containing ``query``, in
            registry order; nothing for queries shorter than
            ``suggestion_min_length``
        """
        if not query or len(query) < self.suggestion_min_length:
            return []
        matches = [project_id for project_id in self.list_project_ids() if query in project_id]
        return matches[:self.suggestion_limit]

    def _report_failure(self, operation: str, project_id: str, error: SQLAlchemyError) -> None:
        log_storage_operation(self.logger, operation.upper(), project_key(project_id), error=str(error))
        handle_error(
            StorageError(f"Failed to {operation} project {project_id}", original_exception=error),
            create_error_context(operation, project_id=project_id)
        )
