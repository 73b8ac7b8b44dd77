"""
Coaching module interface.

Other modules should depend on IModuleService, not the concrete
implementation.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import (
    CompleteDayRequest,
    DayCompletionResult,
    Enrollment,
    EnrollmentList,
    FrameResult,
    ModuleList,
    ReflectionResult,
    ReflectSession,
    ShiftResult,
)


@runtime_checkable
class IModuleService(Protocol):
    """
    Interface for generated modules and the daily Frame / Reflect / Shift flow.

    Every operation is scoped to the calling user; modules owned by someone
    else behave as if they did not exist.
    """

    async def generate_modules(self, user_id: str) -> ModuleList:
        """
        Generate 2-3 modules from the user's personal context.

        Returns the user's existing ready modules instead when there are any.

        Raises:
            UserNotFoundError: If the user does not exist
            NoPersonalContextError: If the user has no personal context
            LlmError: If generation fails
        """
        ...

    async def list_modules(self, user_id: str) -> ModuleList:
        ...

    async def enroll(self, user_id: str, module_id: str) -> Enrollment:
        """
        Start a module.

        Raises:
            GeneratedModuleNotFoundError: If the module does not exist
            ActiveEnrollmentExistsError: If the user is already enrolled
        """
        ...

    async def get_enrollment(self, user_id: str, module_id: str) -> Enrollment:
        """
        Get the user's active or completed enrollment in a module.

        Raises:
            EnrollmentNotFoundError: If there is none
        """
        ...

    async def list_active_enrollments(self, user_id: str) -> EnrollmentList:
        ...

    async def generate_frame(self, user_id: str, module_id: str, day_number: int) -> FrameResult:
        """
        Generate the day's reading.

        Raises:
            GeneratedModuleNotFoundError, DayNotFoundError, LlmError
        """
        ...

    async def start_reflection(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
    ) -> ReflectSession:
        """
        Open a realtime voice session configured for the day's reflection.

        Raises:
            GeneratedModuleNotFoundError, DayNotFoundError, LlmError
        """
        ...

    async def complete_reflection(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        transcript: str,
        session_id: Optional[str] = None,
    ) -> ReflectionResult:
        """
        Summarize a finished voice reflection.

        Never fails because of the language model: an empty transcript or a
        failed summary yields a generic summary.

        Raises:
            GeneratedModuleNotFoundError, DayNotFoundError
        """
        ...

    async def generate_shift(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        reflection_summary: Optional[str] = None,
    ) -> ShiftResult:
        """
        Generate the day's micro-action.

        Raises:
            GeneratedModuleNotFoundError, DayNotFoundError, LlmError
        """
        ...

    async def complete_day(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        request: CompleteDayRequest,
    ) -> DayCompletionResult:
        """
        Record the current day and finish the module after its last day.

        Raises:
            GeneratedModuleNotFoundError: If the module does not exist
            EnrollmentNotFoundError: If there is no active enrollment
            DayOutOfOrderError: If `day_number` is not the current day
        """
        ...

    async def abandon(self, user_id: str, module_id: str) -> Enrollment:
        """
        Leave a module.

        Raises:
            EnrollmentNotFoundError: If there is no active enrollment
        """
        ...
