"""
Tests for the error handling system.

Tests error classification, logging, and recovery strategies for the
failures the tracker reports: invalid input, missing records, empty exports,
unreadable values and storage problems.
"""

import pytest
from unittest.mock import Mock, patch
from json import JSONDecodeError

from sqlalchemy.exc import OperationalError

from project_tracker.errors import (
    ErrorHandler, ErrorContext, ErrorCategory, ErrorSeverity, ErrorAction,
    ValidationError, NotFoundError, FormatError, NoDataToExportError, CoercionError,
    StorageError, ConfigurationError, handle_error, create_error_context
)


class TestErrorClassification:
    """Test error classification and handling strategies."""

    def test_json_error_classification(self):
        """Test that malformed JSON is classified as a format error."""
        handler = ErrorHandler()
        context = ErrorContext(operation="load")

        error = JSONDecodeError("Invalid JSON", "test", 0)
        error_info = handler.classify_error(error, context)

        assert error_info.category == ErrorCategory.FORMAT
        assert error_info.severity == ErrorSeverity.HIGH
        assert error_info.action == ErrorAction.NOTIFY_USER

    def test_database_error_classification(self):
        """Test that SQLAlchemy errors are classified as storage errors."""
        handler = ErrorHandler()
        context = ErrorContext(operation="save", project_id="1234567")

        error = OperationalError("INSERT", {}, Exception("disk I/O error"))
        error_info = handler.classify_error(error, context)

        assert error_info.category == ErrorCategory.STORAGE
        assert error_info.severity == ErrorSeverity.HIGH
        assert "writable" in " ".join(error_info.recovery_suggestions)

    def test_missing_file_classification(self):
        """Test that a missing file is a configuration error."""
        handler = ErrorHandler()
        error_info = handler.classify_error(FileNotFoundError("config.json"), ErrorContext(operation="load_config"))

        assert error_info.category == ErrorCategory.CONFIGURATION
        assert error_info.action == ErrorAction.FAIL

    def test_value_error_classification(self):
        """Test that plain value errors count as bad input."""
        handler = ErrorHandler()
        error_info = handler.classify_error(ValueError("bad"), ErrorContext(operation="parse"))

        assert error_info.category == ErrorCategory.VALIDATION
        assert error_info.action == ErrorAction.NOTIFY_USER

    def test_custom_error_classification(self):
        """Test that custom errors maintain their classification."""
        handler = ErrorHandler()
        context = ErrorContext(operation="filter_entries", entry_id="entry_1_1")

        error = CoercionError("Not a number: 'high'", value="high", context=context)
        error_info = handler.classify_error(error, context)

        assert error_info.category == ErrorCategory.COERCION
        assert error_info.severity == ErrorSeverity.LOW
        assert error_info.action == ErrorAction.SKIP
        assert error_info.message == "Not a number: 'high'"

    def test_unknown_error_classification(self):
        """Test that unknown errors get default classification."""
        handler = ErrorHandler()
        error_info = handler.classify_error(RuntimeError("Unknown error"), ErrorContext(operation="op"))

        assert error_info.category == ErrorCategory.UNKNOWN
        assert error_info.severity == ErrorSeverity.MEDIUM
        assert error_info.action == ErrorAction.LOG_AND_CONTINUE


class TestErrorLogging:
    """Test error logging functionality."""

    @patch('project_tracker.errors.logging.getLogger')
    def test_error_logging_levels(self, mock_get_logger):
        """Test that errors are logged at appropriate levels."""
        mock_logger = Mock()
        mock_get_logger.return_value = mock_logger

        handler = ErrorHandler()
        context = ErrorContext(operation="test_operation")

        handler.handle_error(ConfigurationError("Critical config error"), context)
        mock_logger.critical.assert_called_once()

        mock_logger.reset_mock()
        handler.handle_error(StorageError("Database locked"), context)
        mock_logger.error.assert_called_once()

        mock_logger.reset_mock()
        handler.handle_error(FormatError("Bad output"), context)
        mock_logger.warning.assert_called_once()

        mock_logger.reset_mock()
        handler.handle_error(NotFoundError("No such project"), context)
        mock_logger.info.assert_called_once()

    @patch('project_tracker.errors.logging.getLogger')
    def test_contextual_logging(self, mock_get_logger):
        """Test that contextual information is included in logs."""
        mock_logger = Mock()
        mock_get_logger.return_value = mock_logger

        handler = ErrorHandler()
        context = create_error_context(
            "save",
            project_id="1234567",
            entry_id="entry_1_1",
            field_id="priority",
            storage_key="project_1234567"
        )

        handler.handle_error(StorageError("Failed to save project 1234567"), context)

        mock_logger.error.assert_called_once()
        extra_data = mock_logger.error.call_args[1]['extra']
        assert extra_data['operation'] == "save"
        assert extra_data['project_id'] == "1234567"
        assert extra_data['entry_id'] == "entry_1_1"
        assert extra_data['field_id'] == "priority"
        assert extra_data['storage_key'] == "project_1234567"
        assert extra_data['error_category'] == "storage"


class TestErrorStatistics:
    """Test error statistics tracking."""

    def test_error_count_tracking(self):
        """Test that error counts are tracked correctly."""
        handler = ErrorHandler()
        save_context = ErrorContext(operation="save")
        export_context = ErrorContext(operation="export")

        handler.handle_error(StorageError("Error 1"), save_context)
        handler.handle_error(NoDataToExportError(), export_context)
        handler.handle_error(StorageError("Error 3"), save_context)

        stats = handler.get_error_statistics()

        assert len(stats) == 2
        assert stats["storage:save"] == 2
        assert stats["format:export"] == 1

    def test_error_statistics_reset(self):
        """Test that error statistics can be reset."""
        handler = ErrorHandler()
        handler.handle_error(StorageError("Test error"), ErrorContext(operation="save"))
        assert len(handler.get_error_statistics()) > 0

        handler.reset_error_statistics()
        assert handler.get_error_statistics() == {}


class TestErrorContext:
    """Test error context creation and usage."""

    def test_error_context_creation(self):
        """Test error context creation with various parameters."""
        context = create_error_context(
            operation="update_entry",
            project_id="1234567",
            entry_id="entry_1_1",
            field_id="status",
            custom_field="custom_value"
        )

        assert context.operation == "update_entry"
        assert context.project_id == "1234567"
        assert context.entry_id == "entry_1_1"
        assert context.field_id == "status"
        assert context.additional_data == {"custom_field": "custom_value"}
        assert context.timestamp is not None

    def test_minimal_error_context(self):
        """Test error context creation with minimal parameters."""
        context = create_error_context(operation="minimal_operation")

        assert context.operation == "minimal_operation"
        assert context.project_id is None
        assert context.entry_id is None
        assert context.additional_data == {}


class TestGlobalErrorHandler:
    """Test global error handler functions."""

    def test_global_error_handler_singleton(self):
        """Test that global error handler returns the same instance."""
        from project_tracker.errors import get_error_handler, set_error_handler

        handler1 = get_error_handler()
        handler2 = get_error_handler()
        assert handler1 is handler2

        custom_handler = ErrorHandler()
        set_error_handler(custom_handler)
        assert get_error_handler() is custom_handler

    def test_global_handle_error_function(self):
        """Test global handle_error convenience function."""
        error_info = handle_error(ValidationError("Title is required"), ErrorContext(operation="add_entry"))

        assert error_info.category == ErrorCategory.VALIDATION
        assert error_info.severity == ErrorSeverity.LOW
        assert error_info.action == ErrorAction.NOTIFY_USER


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_storage_error_properties(self):
        """Test StorageError properties."""
        context = ErrorContext(operation="save")
        original_error = OSError("Original error")

        error = StorageError("Save failed", context=context, original_exception=original_error)

        assert error.category == ErrorCategory.STORAGE
        assert error.severity == ErrorSeverity.HIGH
        assert error.context is context
        assert error.original_exception is original_error
        assert str(error) == "Save failed"

    def test_no_data_to_export_defaults(self):
        """Test the empty-export signal."""
        error = NoDataToExportError()

        assert isinstance(error, FormatError)
        assert error.message == "No data to export"
        assert error.category == ErrorCategory.FORMAT
        assert error.severity == ErrorSeverity.LOW

    def test_coercion_error_keeps_value(self):
        """Test CoercionError carries the offending value."""
        error = CoercionError("Not a date: 'soon'", value="soon")

        assert error.category == ErrorCategory.COERCION
        assert error.value == "soon"
        assert error.context.operation == "unknown"

    def test_configuration_error_critical_severity(self):
        """Test that ConfigurationError has critical severity."""
        error = ConfigurationError("Config failed", context=ErrorContext(operation="config_op"))

        assert error.category == ErrorCategory.CONFIGURATION
        assert error.severity == ErrorSeverity.CRITICAL

    @pytest.mark.parametrize("error_class, category", [
        (ValidationError, ErrorCategory.VALIDATION),
        (NotFoundError, ErrorCategory.NOT_FOUND),
    ])
    def test_low_severity_user_errors(self, error_class, category):
        """Test user-facing errors are low severity."""
        error = error_class("message")
        assert error.category == category
        assert error.severity == ErrorSeverity.LOW
