"""
Coaching module exceptions.

Raised by the module service and the enrollment lifecycle, and rendered
into the standard error envelope by the API exception handlers.
"""

from typing import Optional

from shared.exceptions import (
    ConflictError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class GeneratedModuleNotFoundError(NotFoundError):
    """Raised when a module does not exist or belongs to another user."""

    def __init__(self, module_id: str):
        super().__init__("Module not found", details={"moduleId": module_id})
        self.module_id = module_id


class DayNotFoundError(NotFoundError):
    """Raised when a module has no day with the requested number."""

    def __init__(self, module_id: str, day_number: int):
        super().__init__(
            "Day not found",
            details={"moduleId": module_id, "dayNumber": day_number},
        )


class EnrollmentNotFoundError(NotFoundError):
    """Raised when the user has no enrollment in the module."""

    def __init__(self, module_id: str):
        super().__init__("Enrollment not found", details={"moduleId": module_id})


class ActiveEnrollmentExistsError(ConflictError):
    """Raised when starting a module the user is already enrolled in."""

    def __init__(self, module_id: str):
        super().__init__(
            "You already have an active enrollment in this module",
            details={"moduleId": module_id},
        )


class EnrollmentNotActiveError(InvalidStateError):
    """Raised when a completed or abandoned enrollment is mutated."""

    def __init__(self, status: str):
        super().__init__(
            "Enrollment is no longer active",
            details={"status": status},
        )


class DayOutOfOrderError(InvalidStateError):
    """Raised when a day other than the current one is completed."""

    def __init__(self, current_day: int, day_number: int):
        super().__init__(
            f"Day {day_number} cannot be completed; the current day is {current_day}",
            details={"currentDay": current_day, "dayNumber": day_number},
        )


class ModuleNotFinishedError(InvalidStateError):
    """Raised when finishing an enrollment that still has days left."""

    def __init__(self, current_day: int, total_days: int):
        super().__init__(
            "Module still has days to complete",
            details={"currentDay": current_day, "totalDays": total_days},
        )


class NoPersonalContextError(ValidationError):
    """Raised when modules are requested before the user described themselves."""

    def __init__(self):
        super().__init__("Personal context is required to generate modules")


class LlmError(ExternalServiceError):
    """Raised when the language model call fails or returns unusable output."""

    def __init__(self, message: str = "AI content generation failed", reason: Optional[str] = None):
        details = {"reason": reason} if reason else None
        super().__init__(message, service="openai", code="LLM_ERROR", details=details)


class EnrollmentChangedError(InvalidStateError):
    """Raised when another request changed the enrollment first."""

    def __init__(self):
        super().__init__("Enrollment was updated by another request; reload and try again")
