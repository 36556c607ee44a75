"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import logging
import pytest

from project_tracker.config import (
    SystemConfig, DatabaseConfig, ExportConfig, LoggingConfig, set_config
)
from project_tracker.database.connection import set_database_manager, DatabaseManager
from project_tracker.database.storage import ProjectStore
from project_tracker.entry_manager import EntryManager
from project_tracker.errors import set_error_handler
from project_tracker.logging_config import MetricsHandler, PerformanceFilter
from project_tracker.models.entities import Entry, Project
from project_tracker.models.schema import load_schema

TIMESTAMP = "2024-06-10T08:53:20.000Z"


def make_entry(entry_id, **values) -> Entry:
    """Entry with a fixed timestamp."""
    return Entry(id=entry_id, timestamp=TIMESTAMP, values=values)


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary configuration file for testing."""
    config_data = {
        "database": {
            "path": str(tmp_path / "from_file.db")
        },
        "projects": {
            "suggestion_limit": 3
        },
        "export": {
            "output_dir": str(tmp_path / "exports"),
            "json_indent": 4
        },
        "logging": {
            "level": "DEBUG",
            "format": "json"
        }
    }

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config_data), encoding="utf-8")
    return str(config_path)


@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Set up mock environment variables for testing."""
    env_vars = {
        "TRACKER_DB_PATH": str(tmp_path / "env.db"),
        "TRACKER_EXPORT_DIR": str(tmp_path / "env_exports"),
        "TRACKER_SUGGESTION_LIMIT": "2",
        "LOG_LEVEL": "DEBUG"
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture(autouse=True)
def setup_test_config(tmp_path):
    """Automatically set up an isolated configuration and database for all tests."""
    root_logger = logging.getLogger()
    saved_level = root_logger.level

    test_config = SystemConfig(
        database=DatabaseConfig(path=str(tmp_path / "tracker.db")),
        export=ExportConfig(output_dir=str(tmp_path / "exports")),
        logging=LoggingConfig(level="WARNING")
    )
    set_config(test_config)

    db_manager = DatabaseManager(test_config.database)
    set_database_manager(db_manager)
    set_error_handler(None)

    yield test_config

    db_manager.close()
    set_config(None)
    set_database_manager(None)
    set_error_handler(None)

    for handler in root_logger.handlers[:]:
        if isinstance(handler, MetricsHandler) or any(isinstance(f, PerformanceFilter) for f in handler.filters):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(saved_level)


@pytest.fixture(scope="session")
def schema():
    """The packaged default field schema."""
    return load_schema()


@pytest.fixture
def store():
    """Project store on the per-test database."""
    return ProjectStore()


@pytest.fixture
def entry_manager(store, schema):
    """Entry manager on the per-test database."""
    return EntryManager(store, schema)


@pytest.fixture
def project(store):
    """An empty, saved project."""
    project = Project(id="1234567")
    store.save(project)
    return project


@pytest.fixture
def sample_entries():
    """A small mixed collection in insertion order."""
    return [
        make_entry("entry_1_1", title="Replace firewall", status="open", riskRating="high",
                   priority="5", dueDate="2024-03-15", assignedTo="Dana"),
        make_entry("entry_2_2", title="Audit logs", status="closed", riskRating="low",
                   priority="3", dueDate="2024-01-20", assignedTo="Lee"),
        make_entry("entry_3_3", title="Patch servers", status="open", riskRating="medium",
                   priority="10", dueDate="2024-02-01"),
        make_entry("entry_4_4", title="Review access, part 2", status="open",
                   priority="", dueDate="not a date", comments='Says "urgent"'),
    ]
