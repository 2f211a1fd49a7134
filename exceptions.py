"""
Exception hierarchy for the MoneyMatic API.

Every error raised on purpose by the application derives from
MoneyMaticError. Each subclass carries the HTTP status code the API
responds with, so route handlers can simply raise and let the error
handlers registered in ``app.py`` build the JSON response.
"""

from typing import Optional


class MoneyMaticError(Exception):
    """
    Base exception class for all MoneyMatic errors.

    Attributes:
        message: Human-readable error message (returned to API clients)
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(MoneyMaticError):
    """Raised when configuration loading or validation fails."""
    pass


class InvalidArgument(MoneyMaticError):
    """Raised when a caller supplies a missing or malformed value."""
    status_code = 400


class AuthError(MoneyMaticError):
    """Raised when credentials or tokens are rejected."""
    status_code = 401


class NotFound(MoneyMaticError):
    """Raised when a record does not exist or belongs to another user."""
    status_code = 404


class IntegrityViolation(MoneyMaticError):
    """Raised when a write breaks a uniqueness constraint (e.g. duplicate budget)."""
    status_code = 400


class DataUnavailable(MoneyMaticError):
    """Raised when the backing store cannot be reached or fails a query."""
    status_code = 503
