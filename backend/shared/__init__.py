"""
Shared infrastructure for the MentorMind backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- repository: Base class for table repositories

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, is_unique_violation, reset_client_cache
from .exceptions import (
    AppError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    InvalidStateError,
    RateLimitError,
    InternalError,
    ExternalServiceError,
)
from .models import AuthenticatedUser, CamelModel

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "is_unique_violation",
    "reset_client_cache",
    "AppError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InvalidStateError",
    "RateLimitError",
    "InternalError",
    "ExternalServiceError",
    "AuthenticatedUser",
    "CamelModel",
]
