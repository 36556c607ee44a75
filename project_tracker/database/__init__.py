"""
Database layer for the Project Tracker.

This package provides the key-value schema, connection management and the
project store.
"""

from .schema import Base, StorageItem
from .connection import (
    DatabaseManager,
    get_database_manager,
    set_database_manager
)
from .storage import ProjectStore, REGISTRY_KEY, project_key

__all__ = [
    # Schema
    "Base",
    "StorageItem",

    # Connection management
    "DatabaseManager",
    "get_database_manager",
    "set_database_manager",

    # Storage operations
    "ProjectStore",
    "REGISTRY_KEY",
    "project_key",
]
