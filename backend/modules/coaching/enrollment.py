"""
Enrollment lifecycle.

Pure transitions over Enrollment values: each function checks its
precondition and returns an updated copy. Persisting the result is the
repository's job, and it does so with a compare-and-set on the state the
transition started from.

    active --complete_day--> active (current_day + 1)
    active --finish--------> completed
    active --abandon-------> abandoned
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from .exceptions import (
    ActiveEnrollmentExistsError,
    DayOutOfOrderError,
    EnrollmentNotActiveError,
    ModuleNotFinishedError,
)
from .models import DayCompletion, Enrollment, EnrollmentStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


def start(
    user_id: str,
    module_id: str,
    existing: Optional[Enrollment] = None,
    now: Optional[datetime] = None,
) -> Enrollment:
    """
    Begin a module.

    Raises:
        ActiveEnrollmentExistsError: If `existing` is an active enrollment
            in the same module.
    """
    if existing is not None and existing.is_active and existing.module_id == module_id:
        raise ActiveEnrollmentExistsError(module_id)

    return Enrollment(
        id=str(uuid.uuid4()),
        user_id=user_id,
        module_id=module_id,
        current_day=1,
        completed_days=[],
        status=EnrollmentStatus.ACTIVE,
        started_at=now or _now(),
    )


def complete_day(
    enrollment: Enrollment,
    day_number: int,
    reflection_summary: Optional[str] = None,
    shift_action: Optional[str] = None,
    voice_session_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Enrollment:
    """
    Record the current day as done and move to the next one.

    Raises:
        EnrollmentNotActiveError: If the enrollment is completed or abandoned.
        DayOutOfOrderError: If `day_number` is not the current day.
    """
    _require_active(enrollment)
    if day_number != enrollment.current_day:
        raise DayOutOfOrderError(enrollment.current_day, day_number)

    completion = DayCompletion(
        day_number=day_number,
        completed_at=now or _now(),
        reflection_summary=reflection_summary,
        shift_action=shift_action,
        voice_session_id=voice_session_id,
    )
    return enrollment.model_copy(update={
        "current_day": enrollment.current_day + 1,
        "completed_days": [*enrollment.completed_days, completion],
    })


def finish(
    enrollment: Enrollment,
    total_days: int,
    now: Optional[datetime] = None,
) -> Enrollment:
    """
    Mark the module as completed once every day is done.

    Raises:
        EnrollmentNotActiveError: If the enrollment is not active.
        ModuleNotFinishedError: If days remain.
    """
    _require_active(enrollment)
    if enrollment.current_day <= total_days:
        raise ModuleNotFinishedError(enrollment.current_day, total_days)

    return enrollment.model_copy(update={
        "status": EnrollmentStatus.COMPLETED,
        "completed_at": now or _now(),
    })


def abandon(enrollment: Enrollment) -> Enrollment:
    """
    Leave a module. There is no way back to active.

    Raises:
        EnrollmentNotActiveError: If the enrollment is not active.
    """
    _require_active(enrollment)
    return enrollment.model_copy(update={"status": EnrollmentStatus.ABANDONED})


def is_finished(enrollment: Enrollment, total_days: int) -> bool:
    return enrollment.current_day > total_days


def calculate_streak(completed_days: Iterable[DayCompletion]) -> int:
    """Count consecutive day numbers ending at the most recent completed day."""
    numbers = sorted({d.day_number for d in completed_days}, reverse=True)
    if not numbers:
        return 0

    streak = 1
    for newer, older in zip(numbers, numbers[1:]):
        if newer - older != 1:
            break
        streak += 1
    return streak


def _require_active(enrollment: Enrollment) -> None:
    if not enrollment.is_active:
        raise EnrollmentNotActiveError(enrollment.status.value)
