"""
Base exception classes for the MentorMind backend.

Each module should define its own exceptions that inherit from these bases.
Every base carries the HTTP status it maps to, so the API layer can turn
any AppError into the standard error envelope without knowing the module
that raised it.
"""

from typing import Optional, Any


class AppError(Exception):
    """
    Base exception for all MentorMind errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the `error` object of an API response."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(AppError):
    """Input validation failed."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401
    default_code = "UNAUTHORIZED"


class AuthorizationError(AppError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(AppError):
    """Resource not found."""

    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(AppError):
    """A uniqueness invariant would be violated."""

    status_code = 409
    default_code = "CONFLICT"


class InvalidStateError(AppError):
    """The operation is not allowed in the resource's current state."""

    status_code = 409
    default_code = "INVALID_STATE"


class RateLimitError(AppError):
    """The caller must wait before retrying."""

    status_code = 429
    default_code = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        retry_after: int,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.retry_after = retry_after
        self.details["retryAfter"] = retry_after


class InternalError(AppError):
    """Unexpected failure. The message is never shown to clients."""

    status_code = 500
    default_code = "INTERNAL_ERROR"


class ExternalServiceError(AppError):
    """Error communicating with an external service."""

    status_code = 503
    default_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
