"""
Error handling for the Project Tracker.

This module provides error classification, logging, and recovery strategies
for the failures the tracker can run into: invalid entries, missing projects,
empty exports, unparseable values and storage problems.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORMAT = "format"
    COERCION = "coercion"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorAction(Enum):
    """Actions to take when an error occurs."""
    SKIP = "skip"
    NOTIFY_USER = "notify_user"
    FAIL = "fail"
    LOG_AND_CONTINUE = "log_and_continue"


@dataclass
class ErrorContext:
    """Contextual information about an error."""
    operation: str
    project_id: Optional[str] = None
    entry_id: Optional[str] = None
    field_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Complete information about an error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    action: ErrorAction
    message: str
    original_exception: Exception
    context: ErrorContext
    recovery_suggestions: list[str] = field(default_factory=list)


class ProjectTrackerError(Exception):
    """Base exception class for Project Tracker errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext(operation="unknown")
        self.original_exception = original_exception


class ValidationError(ProjectTrackerError):
    """Invalid user input: entry values, project ids or filter bounds."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            context=context,
            original_exception=original_exception
        )


class NotFoundError(ProjectTrackerError):
    """A referenced project or entry does not exist."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            context=context,
            original_exception=original_exception
        )


class FormatError(ProjectTrackerError):
    """Errors raised while producing export output."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.FORMAT,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            original_exception=original_exception
        )


class NoDataToExportError(FormatError):
    """The view handed to the exporter is empty."""

    def __init__(self, message: str = "No data to export", context: Optional[ErrorContext] = None):
        super().__init__(message=message, context=context)
        self.severity = ErrorSeverity.LOW


class CoercionError(ProjectTrackerError):
    """A stored value could not be read as the type a comparison needs."""

    def __init__(self, message: str, value: Any = None, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.COERCION,
            severity=ErrorSeverity.LOW,
            context=context,
            original_exception=original_exception
        )
        self.value = value


class StorageError(ProjectTrackerError):
    """Errors related to the key-value store."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class ConfigurationError(ProjectTrackerError):
    """Errors related to system configuration or the field schema."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            original_exception=original_exception
        )


class ErrorHandler:
    """
    Error handler with classification and recovery strategies.

    Every failure in the tracker is local and recoverable, so handling means
    classifying, counting and logging; nothing here retries.
    """

    def __init__(self):
        """Initialize error handler with logger."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify an exception and determine appropriate handling strategy.

        Args:
            exception: The exception to classify
            context: Contextual information about the error

        Returns:
            ErrorInfo with classification and recommended action
        """
        if isinstance(exception, ProjectTrackerError):
            return ErrorInfo(
                category=exception.category,
                severity=exception.severity,
                action=self._determine_action(exception.category, exception.severity),
                message=exception.message,
                original_exception=exception,
                context=context,
                recovery_suggestions=self._get_recovery_suggestions(exception.category)
            )

        category, severity = self._classify_standard_exception(exception)
        action = self._determine_action(category, severity)

        return ErrorInfo(
            category=category,
            severity=severity,
            action=action,
            message=str(exception),
            original_exception=exception,
            context=context,
            recovery_suggestions=self._get_recovery_suggestions(category)
        )

    def _classify_standard_exception(self, exception: Exception) -> tuple[ErrorCategory, ErrorSeverity]:
        """Classify standard Python and library exceptions."""
        exception_type = type(exception).__name__

        if exception_type == 'JSONDecodeError':
            return ErrorCategory.FORMAT, ErrorSeverity.HIGH

        # pydantic and plain value errors both come from bad input
        if exception_type in ['ValidationError', 'ValueError', 'TypeError']:
            return ErrorCategory.VALIDATION, ErrorSeverity.LOW

        if exception_type in ['KeyError', 'LookupError']:
            return ErrorCategory.NOT_FOUND, ErrorSeverity.LOW

        if exception_type in ['SQLAlchemyError', 'OperationalError', 'IntegrityError', 'DatabaseError']:
            return ErrorCategory.STORAGE, ErrorSeverity.HIGH

        if exception_type in ['FileNotFoundError', 'PermissionError', 'IsADirectoryError']:
            return ErrorCategory.CONFIGURATION, ErrorSeverity.CRITICAL

        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def _determine_action(self, category: ErrorCategory, severity: ErrorSeverity) -> ErrorAction:
        """Determine appropriate action based on error category and severity."""
        if category == ErrorCategory.COERCION:
            return ErrorAction.SKIP  # the entry drops out of the filtered view
        elif category in (ErrorCategory.VALIDATION, ErrorCategory.NOT_FOUND, ErrorCategory.FORMAT):
            return ErrorAction.NOTIFY_USER
        elif category == ErrorCategory.STORAGE:
            return ErrorAction.FAIL if severity == ErrorSeverity.CRITICAL else ErrorAction.NOTIFY_USER
        elif category == ErrorCategory.CONFIGURATION:
            return ErrorAction.FAIL
        else:
            return ErrorAction.LOG_AND_CONTINUE

    def _get_recovery_suggestions(self, category: ErrorCategory) -> list[str]:
        """Get recovery suggestions for different error categories."""
        suggestions = {
            ErrorCategory.VALIDATION: [
                "Fill in every required field",
                "Use one of the listed options for dropdown fields",
                "Check number bounds and date formats (YYYY-MM-DD)",
                "Project IDs must be 7-digit numbers"
            ],
            ErrorCategory.NOT_FOUND: [
                "List existing projects with the 'projects' command",
                "Check the entry ID shown by the 'show' command"
            ],
            ErrorCategory.FORMAT: [
                "Relax or clear the active filters",
                "Add entries to the project before exporting"
            ],
            ErrorCategory.COERCION: [
                "Correct the stored value so it matches the field type"
            ],
            ErrorCategory.STORAGE: [
                "Check that the database path is writable",
                "Verify the database file is not corrupted"
            ],
            ErrorCategory.CONFIGURATION: [
                "Verify configuration file format and syntax",
                "Check the field schema file for duplicate ids",
                "Review environment variable settings"
            ]
        }
        return suggestions.get(category, ["Review error details and system logs"])

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Handle an error with appropriate logging and classification.

        Args:
            exception: The exception to handle
            context: Contextual information about the error

        Returns:
            ErrorInfo with handling details
        """
        error_info = self.classify_error(exception, context)

        error_key = f"{error_info.category.value}:{error_info.context.operation}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        self._log_error(error_info)

        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        """Log error with contextual information."""
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "recommended_action": error_info.action.value,
            "operation": error_info.context.operation,
            "project_id": error_info.context.project_id,
            "entry_id": error_info.context.entry_id,
            "field_id": error_info.context.field_id,
            "error_timestamp": error_info.context.timestamp.isoformat(),
            "exception_type": type(error_info.original_exception).__name__,
            "exception_message": str(error_info.original_exception),
            "recovery_suggestions": error_info.recovery_suggestions
        }

        if error_info.context.additional_data:
            log_data.update(error_info.context.additional_data)

        if error_info.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error: %s", error_info.message, extra=log_data)
        else:
            self.logger.info("Low severity error: %s", error_info.message, extra=log_data)

    def get_error_statistics(self) -> Dict[str, int]:
        """Get error count statistics."""
        return self._error_counts.copy()

    def reset_error_statistics(self) -> None:
        """Reset error count statistics."""
        self._error_counts.clear()


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Set the global error handler instance."""
    global _error_handler
    _error_handler = handler


def handle_error(exception: Exception, context: ErrorContext) -> ErrorInfo:
    """Convenience function to handle errors using the global error handler."""
    return get_error_handler().handle_error(exception, context)


def create_error_context(
    operation: str,
    project_id: Optional[str] = None,
    entry_id: Optional[str] = None,
    field_id: Optional[str] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        project_id: ID of the project involved
        entry_id: ID of the entry involved
        field_id: ID of the schema field involved
        **additional_data: Additional contextual data

    Returns:
        ErrorContext instance
    """
    return ErrorContext(
        operation=operation,
        project_id=project_id,
        entry_id=entry_id,
        field_id=field_id,
        additional_data=additional_data
    )
