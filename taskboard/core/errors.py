"""Error taxonomy and user-facing error classification."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class TaskboardError(Exception):
    """Base class for taskboard errors."""


class TaskValidationError(TaskboardError, ValueError):
    """Input rejected before any state was touched (empty title, bad dates, ...)."""


class MalformedInputError(TaskboardError, ValueError):
    """A forest or collection handed to the core is structurally invalid."""


class PersistenceError(TaskboardError, RuntimeError):
    """A record store call failed."""


class ErrorCategory(Enum):
    """Categories of errors surfaced to the user."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"
    MALFORMED_INPUT = "malformed_input"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_PROJECT_NOT_FOUND = "ERR_PROJECT_NOT_FOUND"
    ERR_RECORD_NOT_FOUND = "ERR_RECORD_NOT_FOUND"
    ERR_MALFORMED_INPUT = "ERR_MALFORMED_INPUT"
    ERR_PERSISTENCE_FAILED = "ERR_PERSISTENCE_FAILED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[Literal["network", "not_found"], dict[str, list[str] | set[str]]] = {
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "503",
            "502",
            "504",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError"},
    },
    "not_found": {
        "phrases": ["not found", "no such record"],
        "exception_types": {"KeyError", "RecordNotFoundError"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["network", "not_found"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error(exception: Exception) -> ErrorCategory:
    """Map an exception onto an ErrorCategory."""
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if isinstance(exception, TaskValidationError):
        return ErrorCategory.VALIDATION
    if isinstance(exception, MalformedInputError):
        return ErrorCategory.MALFORMED_INPUT
    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="not_found"):
        return ErrorCategory.NOT_FOUND
    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorCategory.NETWORK_ERROR
    if isinstance(exception, PersistenceError | RuntimeError):
        return ErrorCategory.PERSISTENCE
    return ErrorCategory.UNKNOWN


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a single human-readable notification.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    category = classify_error(exception)
    error_str = str(exception).lower()

    if category is ErrorCategory.VALIDATION:
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Fix the highlighted field and try again.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.MALFORMED_INPUT:
        return ErrorResponse(
            code=ErrorCode.ERR_MALFORMED_INPUT,
            message="The request did not match the current board state.",
            suggestion="Reload the board and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if category is ErrorCategory.NOT_FOUND:
        if "tasks" in error_str or "task" in error_str:
            code, message = ErrorCode.ERR_TASK_NOT_FOUND, "I couldn't find that task."
        elif "projects" in error_str or "project" in error_str:
            code, message = ErrorCode.ERR_PROJECT_NOT_FOUND, "I couldn't find that project."
        else:
            code, message = ErrorCode.ERR_RECORD_NOT_FOUND, "The requested item no longer exists."
        return ErrorResponse(
            code=code,
            message=message,
            suggestion="Reload the board to see the current items.",
            severity=ErrorSeverity.LOW,
        )

    if category is ErrorCategory.NETWORK_ERROR:
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if category is ErrorCategory.PERSISTENCE:
        return ErrorResponse(
            code=ErrorCode.ERR_PERSISTENCE_FAILED,
            message="Your change could not be saved.",
            suggestion="Reload the board; unsaved changes will be reconciled on refresh.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
