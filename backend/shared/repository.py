"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and the few helpers every table mapper needs.
"""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints

    Subclasses implement domain-specific data access and map rows to
    Pydantic models internally. Invariants that span requests (uniqueness,
    single use, compare-and-set progress) are expressed as constraints or
    filtered updates, never as a read followed by a write.

    Example:
        class UserRepository(BaseRepository[User]):
            def get_by_id(self, user_id: str) -> Optional[User]:
                result = self._db.table("users").select("*").eq("id", user_id).execute()
                row = self._first(result.data)
                return self._map_to_user(row) if row else None
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    @staticmethod
    def _first(rows: Optional[list[dict[str, Any]]]) -> Optional[dict[str, Any]]:
        """Return the first row of a result set, or None when it is empty."""
        if not rows:
            return None
        return rows[0]

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
