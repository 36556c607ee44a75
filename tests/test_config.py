"""
Unit tests for the configuration management system.
"""

import pytest
import json
from project_tracker.config import (
    SystemConfig, DatabaseConfig, ProjectConfig, ExportConfig, LoggingConfig,
    get_config, set_config, load_config_from_file
)


class TestDatabaseConfig:
    """Test database configuration functionality."""

    def test_default_values(self):
        """Test default database configuration values."""
        config = DatabaseConfig()
        assert config.type == "sqlite"
        assert config.path == "data/project_tracker.db"

    def test_sqlite_connection_url(self):
        """Test SQLite connection URL generation."""
        config = DatabaseConfig(path="test_database.db")
        assert config.connection_url == "sqlite:///test_database.db"

    def test_memory_connection_url(self):
        """Test in-memory SQLite URL."""
        assert DatabaseConfig(path=":memory:").connection_url == "sqlite://"


class TestSectionDefaults:
    """Test defaults of the smaller configuration sections."""

    def test_project_defaults(self):
        config = ProjectConfig()
        assert config.suggestion_limit == 5
        assert config.suggestion_min_length == 3

    def test_export_defaults(self):
        config = ExportConfig()
        assert config.output_dir == "."
        assert config.json_indent == 2

    def test_logging_defaults(self):
        config = LoggingConfig()
        assert config.level == "WARNING"
        assert config.format == "text"
        assert config.log_file is None


class TestSystemConfig:
    """Test system configuration functionality."""

    def test_default_initialization(self):
        """Test default system configuration initialization."""
        config = SystemConfig()
        assert isinstance(config.database, DatabaseConfig)
        assert isinstance(config.projects, ProjectConfig)
        assert config.schema.schema_file is None

    def test_from_env(self, mock_env_vars):
        """Test configuration loading from environment variables."""
        config = SystemConfig.from_env()

        assert config.database.path == mock_env_vars["TRACKER_DB_PATH"]
        assert config.export.output_dir == mock_env_vars["TRACKER_EXPORT_DIR"]
        assert config.projects.suggestion_limit == 2
        assert config.logging.level == "DEBUG"

    def test_from_env_schema_file(self, monkeypatch):
        """Test schema file override from the environment."""
        monkeypatch.setenv("TRACKER_SCHEMA_FILE", "/etc/tracker/fields.json")
        assert SystemConfig.from_env().schema.schema_file == "/etc/tracker/fields.json"

    def test_from_file(self, temp_config_file):
        """Test configuration loading from JSON file."""
        config = SystemConfig.from_file(temp_config_file)

        assert config.database.path.endswith("from_file.db")
        assert config.projects.suggestion_limit == 3
        assert config.projects.suggestion_min_length == 3
        assert config.export.json_indent == 4
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"

    def test_from_file_ignores_unknown_keys(self, tmp_path):
        """Test that unknown keys in a section are ignored."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"export": {"json_indent": 3, "colour": "blue"}, "extra": {}}))

        config = SystemConfig.from_file(str(path))
        assert config.export.json_indent == 3
        assert not hasattr(config.export, "colour")

    def test_to_file(self, setup_test_config, tmp_path):
        """Test configuration saving to JSON file."""
        path = tmp_path / "saved.json"
        setup_test_config.to_file(str(path))

        saved_data = json.loads(path.read_text())
        assert saved_data["database"]["path"] == setup_test_config.database.path
        assert saved_data["projects"]["suggestion_limit"] == 5
        assert saved_data["export"]["json_indent"] == 2

        reloaded = SystemConfig.from_file(str(path))
        assert reloaded.database.path == setup_test_config.database.path
        assert reloaded.export.output_dir == setup_test_config.export.output_dir


class TestGlobalConfig:
    """Test global configuration management."""

    def test_get_config_default(self, monkeypatch):
        """Test getting default global configuration."""
        monkeypatch.delenv("TRACKER_DB_PATH", raising=False)
        set_config(None)
        config = get_config()
        assert isinstance(config, SystemConfig)
        assert config.database.path == "data/project_tracker.db"

    def test_set_and_get_config(self):
        """Test setting and getting global configuration."""
        config = SystemConfig(database=DatabaseConfig(path="other.db"))
        set_config(config)
        assert get_config() is config

    def test_load_config_from_file(self, temp_config_file):
        """Test loading global configuration from file."""
        config = load_config_from_file(temp_config_file)
        assert get_config() is config
        assert config.export.json_indent == 4
