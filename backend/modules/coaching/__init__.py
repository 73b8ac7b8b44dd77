"""
Coaching module.

AI-generated multi-day modules and the daily Frame / Reflect / Shift flow.

Public API:
- IModuleService: Interface for module and enrollment operations
- Lifecycle functions in `enrollment`: start, complete_day, finish, abandon
- Prompt builders in `prompts`
- Coaching exceptions: GeneratedModuleNotFoundError, DayOutOfOrderError, etc.
"""

from .interfaces import IModuleService
from .models import (
    DayCompletion,
    Enrollment,
    EnrollmentStatus,
    GeneratedModule,
    ModuleDay,
)
from .exceptions import (
    ActiveEnrollmentExistsError,
    DayNotFoundError,
    DayOutOfOrderError,
    EnrollmentChangedError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    LlmError,
    ModuleNotFinishedError,
    GeneratedModuleNotFoundError,
    NoPersonalContextError,
)

__all__ = [
    # Interface
    "IModuleService",
    # Models
    "DayCompletion",
    "Enrollment",
    "EnrollmentStatus",
    "GeneratedModule",
    "ModuleDay",
    # Exceptions
    "ActiveEnrollmentExistsError",
    "DayNotFoundError",
    "DayOutOfOrderError",
    "EnrollmentChangedError",
    "EnrollmentNotActiveError",
    "EnrollmentNotFoundError",
    "GeneratedModuleNotFoundError",
    "LlmError",
    "ModuleNotFinishedError",
    "NoPersonalContextError",
]
