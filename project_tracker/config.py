"""
Configuration management for the Project Tracker.

This module provides configuration classes and utilities for managing
storage location, field schema source, export defaults and logging.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
import json


@dataclass
class DatabaseConfig:
    """Key-value store settings (SQLite file)."""
    type: str = "sqlite"
    path: str = "data/project_tracker.db"

    @property
    def connection_url(self) -> str:
        """Generate database connection URL."""
        if self.path == ":memory:":
            return "sqlite://"
        return f"sqlite:///{self.path}"


@dataclass
class SchemaConfig:
    """Where field definitions are loaded from."""
    schema_file: Optional[str] = None  # None uses the packaged default schema


@dataclass
class ProjectConfig:
    """Project lookup behaviour."""
    suggestion_limit: int = 5
    suggestion_min_length: int = 3


@dataclass
class ExportConfig:
    """Export defaults."""
    output_dir: str = "."
    json_indent: int = 2


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "WARNING"
    format: str = "text"
    log_file: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 3
    structured: bool = True


@dataclass
class SystemConfig:
    """Main system configuration combining all subsystem configs."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    schema: SchemaConfig = field(default_factory=SchemaConfig)
    projects: ProjectConfig = field(default_factory=ProjectConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create configuration from environment variables."""
        config = cls()

        if os.getenv("TRACKER_DB_PATH"):
            config.database.path = os.getenv("TRACKER_DB_PATH")

        if os.getenv("TRACKER_SCHEMA_FILE"):
            config.schema.schema_file = os.getenv("TRACKER_SCHEMA_FILE")

        if os.getenv("TRACKER_SUGGESTION_LIMIT"):
            config.projects.suggestion_limit = int(os.getenv("TRACKER_SUGGESTION_LIMIT"))

        if os.getenv("TRACKER_EXPORT_DIR"):
            config.export.output_dir = os.getenv("TRACKER_EXPORT_DIR")

        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")
        if os.getenv("LOG_FORMAT"):
            config.logging.format = os.getenv("LOG_FORMAT")

        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """Load configuration from JSON file."""
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)

        config = cls()

        sections = {
            "database": config.database,
            "schema": config.schema,
            "projects": config.projects,
            "export": config.export,
            "logging": config.logging,
        }
        for name, section in sections.items():
            for key, value in config_data.get(name, {}).items():
                if hasattr(section, key):
                    setattr(section, key, value)

        return config

    def to_dict(self) -> dict:
        """Plain-data form in the layout read by ``from_file``."""
        return {
            "database": {
                "type": self.database.type,
                "path": self.database.path
            },
            "schema": {
                "schema_file": self.schema.schema_file
            },
            "projects": {
                "suggestion_limit": self.projects.suggestion_limit,
                "suggestion_min_length": self.projects.suggestion_min_length
            },
            "export": {
                "output_dir": self.export.output_dir,
                "json_indent": self.export.json_indent
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "max_file_size_mb": self.logging.max_file_size_mb,
                "backup_count": self.logging.backup_count
            }
        }

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config
