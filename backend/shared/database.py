"""
Database client factory for Supabase.

The backend always talks to Postgres through the service-role client: the
API issues its own tokens, so Row Level Security is not in play and every
ownership check lives in the service layer.
"""

from typing import Optional

from postgrest.exceptions import APIError
from supabase import create_client, Client

from .config import Settings, get_settings

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

# Module-level client cache
_service_client: Optional[Client] = None


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """
    Get Supabase client with service role (bypasses RLS).

    Args:
        settings: Settings to build the client from. Defaults to the
            process-wide settings.

    Returns:
        Supabase client configured with service role key
    """
    global _service_client

    if _service_client is None:
        settings = settings or get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "Supabase configuration missing. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables."
            )
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def is_unique_violation(error: Exception) -> bool:
    """Return True when a PostgREST error was caused by a unique index."""
    return isinstance(error, APIError) and error.code == UNIQUE_VIOLATION


def reset_client_cache() -> None:
    """
    Reset the cached database client.

    Useful for testing or when configuration changes.
    """
    global _service_client
    _service_client = None
