"""
Custom Exceptions

This module defines the error taxonomy of the shortcode service.

Every exception carries an ErrorKind. Lifecycle operations translate the
recoverable ones into Err results; StoreUnavailableError is the one kind
that is raised all the way to the HTTP layer, where it becomes a 503.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""
    VALIDATION_FAILED = "validation_failed"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    EXHAUSTED_ATTEMPTS = "exhausted_attempts"
    STORE_UNAVAILABLE = "store_unavailable"


class URLShortenerException(Exception):
    """Base exception for the shortcode service."""
    kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationFailedError(URLShortenerException):
    """Raised when caller input is malformed."""
    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, detail: str, field: Optional[str] = None):
        self.field = field
        super().__init__(detail)


class InvalidURLError(ValidationFailedError):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}", field="url")


class ShortcodeUnavailableError(URLShortenerException):
    """Raised when a shortcode is reserved or already issued."""
    kind = ErrorKind.UNAVAILABLE

    def __init__(self, short_code: str, reason: str):
        self.short_code = short_code
        super().__init__(reason)


class ShortcodeConflictError(URLShortenerException):
    """Raised when the store rejects an insert because the code already exists."""
    kind = ErrorKind.CONFLICT

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code is not found or was deactivated."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class ShortcodeExpiredError(URLShortenerException):
    """Raised when a short code exists but its validity has elapsed."""
    kind = ErrorKind.EXPIRED

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' has expired")


class ExhaustedAttemptsError(URLShortenerException):
    """Raised when the generator cannot find a free code within its budget."""
    kind = ErrorKind.EXHAUSTED_ATTEMPTS

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Unable to generate a unique shortcode after {attempts} attempts")


class StoreUnavailableError(URLShortenerException):
    """Raised when database operations fail."""
    kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
