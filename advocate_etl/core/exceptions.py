"""Custom exception hierarchy."""

from typing import List, Optional, Tuple


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class StorageError(AppError):
    """Raised when the source store cannot list, read, delete or move a file."""
    pass


class ParseError(AppError):
    """Raised when a document cannot be parsed, even after repair."""

    def __init__(self, message: str, repairs: Optional[List[str]] = None, original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.repairs = repairs or []


class ValidationError(AppError):
    """Raised when field or cross-field validation fails.

    Carries every violation found as ``(path, message)`` pairs so all problems
    with a document can be reported at once.
    """

    def __init__(self, issues: List[Tuple[str, str]], message: Optional[str] = None):
        self.issues = list(issues)
        super().__init__(message or format_issues(self.issues))


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class NotFoundError(AppError):
    """Raised when a quarantine item or retry target does not exist."""
    pass


class QuarantineStateError(AppError):
    """Raised when a quarantine item cannot make the requested transition."""
    pass


def format_issues(issues: List[Tuple[str, str]]) -> str:
    """Render field issues as a human-readable, field-pathed message."""
    lines = [f"{path}: {message}" if path else message for path, message in issues]
    return "Validation failed:\n" + "\n".join(lines)
