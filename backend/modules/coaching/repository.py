"""
Coaching repository for database access.

Encapsulates all Supabase queries and data mapping for:
- generated_modules
- module_enrollments

Module days and enrollment day completions are stored as jsonb arrays.
Enrollment progress is written with compare-and-set updates: the row is
only changed if it is still in the state the transition was computed
from, so a concurrent request that got there first makes the update
match nothing.
"""

from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.database import is_unique_violation
from shared.repository import BaseRepository

from .exceptions import ActiveEnrollmentExistsError
from .models import (
    DayCompletion,
    Enrollment,
    EnrollmentStatus,
    GeneratedModule,
    ModuleDay,
    ModuleStatus,
)


class CoachingRepository(BaseRepository[GeneratedModule]):
    """
    Repository for generated modules and enrollments.

    Note: This repository does NOT perform authorization checks beyond
    scoping lookups by user id. The service layer decides what a user may do.
    """

    # -------------------------------------------------------------------------
    # Generated modules
    # -------------------------------------------------------------------------

    def create_modules(self, rows: list[dict[str, Any]]) -> list[GeneratedModule]:
        """Insert a batch of modules and return them in insertion order."""
        result = self._db.table("generated_modules").insert(rows).execute()
        return [self._map_to_module(row) for row in result.data]

    def list_ready_modules(self, user_id: str) -> list[GeneratedModule]:
        result = (
            self._db.table("generated_modules")
            .select("*")
            .eq("user_id", user_id)
            .eq("status", ModuleStatus.READY.value)
            .order("created_at")
            .execute()
        )
        return [self._map_to_module(row) for row in result.data or []]

    def get_module(self, user_id: str, module_id: str) -> Optional[GeneratedModule]:
        """Get a module owned by the user, or None."""
        result = (
            self._db.table("generated_modules")
            .select("*")
            .eq("id", module_id)
            .eq("user_id", user_id)
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_module(row) if row else None

    # -------------------------------------------------------------------------
    # Enrollments
    # -------------------------------------------------------------------------

    def insert_enrollment(self, enrollment: Enrollment) -> Enrollment:
        """
        Insert a new active enrollment.

        Raises:
            ActiveEnrollmentExistsError: When the partial unique index on
                (user_id, module_id) WHERE status = 'active' rejects the row.
        """
        try:
            result = self._db.table("module_enrollments").insert({
                "id": enrollment.id,
                "user_id": enrollment.user_id,
                "module_id": enrollment.module_id,
                "current_day": enrollment.current_day,
                "completed_days": self._dump_completed_days(enrollment.completed_days),
                "status": enrollment.status.value,
                "started_at": enrollment.started_at.isoformat(),
            }).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise ActiveEnrollmentExistsError(enrollment.module_id)
            raise
        return self._map_to_enrollment(result.data[0])

    def get_active_enrollment(self, user_id: str, module_id: str) -> Optional[Enrollment]:
        result = (
            self._db.table("module_enrollments")
            .select("*")
            .eq("user_id", user_id)
            .eq("module_id", module_id)
            .eq("status", EnrollmentStatus.ACTIVE.value)
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_enrollment(row) if row else None

    def get_latest_enrollment(
        self,
        user_id: str,
        module_id: str,
        statuses: tuple[EnrollmentStatus, ...] = (
            EnrollmentStatus.ACTIVE,
            EnrollmentStatus.COMPLETED,
        ),
    ) -> Optional[Enrollment]:
        """Most recently started enrollment in the module with one of `statuses`."""
        result = (
            self._db.table("module_enrollments")
            .select("*")
            .eq("user_id", user_id)
            .eq("module_id", module_id)
            .in_("status", [s.value for s in statuses])
            .order("started_at", desc=True)
            .limit(1)
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_enrollment(row) if row else None

    def list_active_enrollments(self, user_id: str) -> list[Enrollment]:
        result = (
            self._db.table("module_enrollments")
            .select("*")
            .eq("user_id", user_id)
            .eq("status", EnrollmentStatus.ACTIVE.value)
            .order("started_at")
            .execute()
        )
        return [self._map_to_enrollment(row) for row in result.data or []]

    def save_progress(self, updated: Enrollment, expected_day: int) -> Optional[Enrollment]:
        """
        Write a day completion (and a possible finish) computed from
        `expected_day`.

        Returns:
            The stored enrollment, or None when the row is no longer active
            or has already moved past `expected_day`.
        """
        data: dict[str, Any] = {
            "current_day": updated.current_day,
            "completed_days": self._dump_completed_days(updated.completed_days),
            "status": updated.status.value,
            "updated_at": self._now().isoformat(),
        }
        if updated.completed_at is not None:
            data["completed_at"] = updated.completed_at.isoformat()

        result = (
            self._db.table("module_enrollments")
            .update(data)
            .eq("id", updated.id)
            .eq("status", EnrollmentStatus.ACTIVE.value)
            .eq("current_day", expected_day)
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_enrollment(row) if row else None

    def save_status(self, updated: Enrollment) -> Optional[Enrollment]:
        """
        Move an active enrollment to a terminal status.

        Returns:
            The stored enrollment, or None when it was no longer active.
        """
        data: dict[str, Any] = {
            "status": updated.status.value,
            "updated_at": self._now().isoformat(),
        }
        if updated.completed_at is not None:
            data["completed_at"] = updated.completed_at.isoformat()

        result = (
            self._db.table("module_enrollments")
            .update(data)
            .eq("id", updated.id)
            .eq("status", EnrollmentStatus.ACTIVE.value)
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_enrollment(row) if row else None

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _dump_completed_days(days: list[DayCompletion]) -> list[dict[str, Any]]:
        return [d.model_dump(mode="json") for d in days]

    def _map_to_module(self, data: dict[str, Any]) -> GeneratedModule:
        """Map database row to GeneratedModule model."""
        return GeneratedModule(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            title=data["title"],
            subtitle=data.get("subtitle") or "",
            description=data.get("description") or "",
            outcome=data.get("outcome") or "",
            module_color=data["module_color"],
            icon=data.get("icon") or "bulb-outline",
            total_days=data["total_days"],
            minutes_per_day=data.get("minutes_per_day") or 10,
            type=data.get("type") or "sprint",
            difficulty=data.get("difficulty") or "intermediate",
            days=[ModuleDay.model_validate(d) for d in data.get("days") or []],
            status=data.get("status") or ModuleStatus.READY.value,
            created_at=data.get("created_at"),
        )

    def _map_to_enrollment(self, data: dict[str, Any]) -> Enrollment:
        """Map database row to Enrollment model."""
        return Enrollment(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            module_id=str(data["module_id"]),
            current_day=data.get("current_day", 1),
            completed_days=[
                DayCompletion.model_validate(d) for d in data.get("completed_days") or []
            ],
            status=EnrollmentStatus(data["status"]),
            started_at=data["started_at"],
            completed_at=data.get("completed_at"),
        )
