"""
Database connection management and session handling.

This module provides the SQLite engine, session lifecycle and transaction
management for the project store.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from sqlalchemy import create_engine, Engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from ..config import DatabaseConfig, get_config
from ..logging_config import log_performance_metrics
from .schema import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages the database engine, sessions and transactions."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """Initialize database manager with configuration."""
        self.config = config or get_config().database
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._tables_ready = False

    def _get_connect_args(self) -> dict:
        """Get database-specific connection arguments."""
        return {
            "check_same_thread": False,
            "timeout": 20
        }

    def _ensure_directory(self) -> None:
        if self.config.path != ":memory:":
            Path(self.config.path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def engine(self) -> Engine:
        """Get or create the SQLite engine."""
        if self._engine is None:
            if self.config.type != "sqlite":
                raise ValueError(f"Unsupported database type: {self.config.type}")

            self._ensure_directory()
            self._engine = create_engine(
                self.config.connection_url,
                echo=False,
                connect_args=self._get_connect_args()
            )

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.execute("PRAGMA temp_store=memory")
                cursor.close()

            logger.info(f"Created SQLITE database engine for {self.config.path}")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False
            )
        return self._session_factory

    def create_tables(self) -> None:
        """Create all database tables defined in the schema."""
        start = time.perf_counter()
        try:
            Base.metadata.create_all(self.engine)
            self._tables_ready = True
            log_performance_metrics(logger, "create_tables", time.perf_counter() - start)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise

    def ensure_tables(self) -> None:
        """Create tables on first use."""
        if not self._tables_ready:
            self.create_tables()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session for reads.

        Usage:
            with db_manager.get_session() as session:
                item = session.get(StorageItem, key)
        """
        self.ensure_tables()
        session = self.session_factory()
        try:
            yield session
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error, rolling back: {e}")
            raise
        finally:
            session.close()

    @contextmanager
    def get_transaction(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic transaction commit/rollback.

        Usage:
            with db_manager.get_transaction() as session:
                session.merge(item)
                # Automatic commit on success, rollback on exception
        """
        self.ensure_tables()
        session = self.session_factory()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception as e:
            session.rollback()
            logger.error(f"Database transaction failed, rolling back: {e}")
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Test database connectivity."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            logger.info("Database connection test successful")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def close(self) -> None:
        """Close database connections and clean up resources."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._tables_ready = False
            logger.info("Database engine disposed")


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def set_database_manager(manager: Optional[DatabaseManager]) -> None:
    """Set the global database manager instance."""
    global _db_manager
    _db_manager = manager

