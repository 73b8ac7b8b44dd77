"""
Coaching module data models.

Generated modules, enrollments and the structured content returned by the
language model. Everything here crosses the HTTP boundary or is parsed from
model output written in camelCase, so the models extend CamelModel.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from shared.models import CamelModel


MIN_MODULE_DAYS = 5
MAX_MODULE_DAYS = 7


class ModuleColor(str, Enum):
    """Accent color of a module card."""

    AMBER = "amber"
    BLUE = "blue"
    EMERALD = "emerald"
    VIOLET = "violet"


class ModuleType(str, Enum):
    """Shape of a module's journey."""

    SPRINT = "sprint"
    PATTERN_BREAKER = "pattern_breaker"
    FOUNDATION = "foundation"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ModuleStatus(str, Enum):
    READY = "ready"
    ERROR = "error"


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle. Only ACTIVE can change; the others are terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


# -----------------------------------------------------------------------------
# Modules
# -----------------------------------------------------------------------------


class ModuleDay(CamelModel):
    """One day of a module: a named framework, a reflection and a micro-action."""

    day_number: int = Field(..., ge=1, description="1-based position within the module")
    title: str
    subtitle: str
    goal: str
    framework: str = Field(..., description="Named framework taught on this day")
    framework_description: str
    reflection_prompt: str = Field(..., description="Question asked in the voice reflection")
    shift_focus: str = Field(..., description="Domain of the day's micro-action")


class GeneratedModule(CamelModel):
    """A personalized multi-day module stored for a user."""

    id: str = Field(..., description="Module ID (UUID)")
    user_id: str
    title: str
    subtitle: str
    description: str
    outcome: str
    module_color: ModuleColor
    icon: str = "bulb-outline"
    total_days: int = Field(..., ge=MIN_MODULE_DAYS, le=MAX_MODULE_DAYS)
    minutes_per_day: int = 10
    type: ModuleType = ModuleType.SPRINT
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    days: list[ModuleDay] = Field(default_factory=list)
    status: ModuleStatus = ModuleStatus.READY
    created_at: Optional[datetime] = None

    def get_day(self, day_number: int) -> Optional[ModuleDay]:
        for day in self.days:
            if day.day_number == day_number:
                return day
        return None


class ModuleList(CamelModel):
    modules: list[GeneratedModule]


# -----------------------------------------------------------------------------
# Enrollments
# -----------------------------------------------------------------------------


class DayCompletion(CamelModel):
    """A finished day, embedded in its enrollment."""

    day_number: int = Field(..., ge=1)
    completed_at: datetime
    reflection_summary: Optional[str] = None
    shift_action: Optional[str] = None
    voice_session_id: Optional[str] = Field(
        None, description="Realtime session that produced the reflection"
    )


class Enrollment(CamelModel):
    """A user's pass through one generated module."""

    id: str = Field(..., description="Enrollment ID (UUID)")
    user_id: str
    module_id: str
    current_day: int = Field(default=1, ge=1)
    completed_days: list[DayCompletion] = Field(default_factory=list)
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE


class EnrollmentList(CamelModel):
    enrollments: list[Enrollment]


# -----------------------------------------------------------------------------
# Language model output
# -----------------------------------------------------------------------------


class DayDraft(CamelModel):
    """A day as proposed by the language model. Days are renumbered on save."""

    day_number: Optional[int] = None
    title: str
    subtitle: str
    goal: str
    framework: str
    framework_description: str
    reflection_prompt: str
    shift_focus: str


class ModuleDraft(CamelModel):
    """A module as proposed by the language model, before defaults are applied."""

    title: str
    subtitle: str
    description: str
    outcome: str
    icon: Optional[str] = None
    total_days: int = Field(..., ge=MIN_MODULE_DAYS, le=MAX_MODULE_DAYS)
    minutes_per_day: Optional[int] = None
    type: Optional[ModuleType] = None
    difficulty: Optional[Difficulty] = None
    days: list[DayDraft]

    @model_validator(mode="after")
    def check_day_count(self) -> "ModuleDraft":
        if len(self.days) != self.total_days:
            raise ValueError(
                f"module declares {self.total_days} days but contains {len(self.days)}"
            )
        return self


class ModuleGenerationResult(CamelModel):
    modules: list[ModuleDraft] = Field(..., min_length=2, max_length=3)


class FrameContent(CamelModel):
    """The five-part daily reading."""

    hook: str
    framework_name: str
    framework_explanation: str
    personal_connection: str
    key_insight: str
    reflection_teaser: str


class ShiftContent(CamelModel):
    """The day's micro-action."""

    bridge: str
    action: str
    time_estimate: str
    why_it_matters: str
    check_in_question: Optional[str] = None


class TranscriptSummary(CamelModel):
    summary: str
    key_insight: Optional[str] = None
    framework_connection: Optional[str] = None
    growth_note: Optional[str] = None


class CompletionQuote(CamelModel):
    quote: str = Field(..., min_length=1)
    attribution: str = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------


class CompleteReflectionRequest(CamelModel):
    transcript: str = Field(default="", max_length=100_000, description="Voice session transcript")
    session_id: Optional[str] = Field(None, description="Realtime session id, echoed back")


class GenerateShiftRequest(CamelModel):
    reflection_summary: Optional[str] = Field(None, max_length=2000)


class CompleteDayRequest(CamelModel):
    reflection_summary: Optional[str] = Field(None, max_length=2000)
    shift_action: Optional[str] = Field(None, max_length=2000)
    voice_session_id: Optional[str] = None


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


class FrameResult(CamelModel):
    """Frame text plus the structured reading when the model returned one."""

    content: str
    structured: Optional[FrameContent] = None


class ShiftResult(CamelModel):
    content: str
    structured: Optional[ShiftContent] = None


class ReflectSession(CamelModel):
    """Everything the app needs to open a realtime voice session."""

    session_id: str
    token: str = Field(..., description="Ephemeral client secret")
    token_expires_at: int = Field(..., description="Unix time the token expires")
    ws_url: str
    coach_name: str = "Reflection Guide"


class ReflectionResult(CamelModel):
    reflection_summary: str
    key_insight: Optional[str] = None
    framework_connection: Optional[str] = None
    growth_note: Optional[str] = None
    session_id: Optional[str] = None


class DayPreview(CamelModel):
    title: str
    subtitle: str


class DayStats(CamelModel):
    day_number: int
    total_days: int
    reflection_summary: Optional[str] = None
    shift_action: Optional[str] = None
    streak: int
    next_day: Optional[DayPreview] = None
    is_module_complete: bool
    completion_quote: Optional[CompletionQuote] = None


class DayCompletionResult(CamelModel):
    enrollment: Enrollment
    day_stats: DayStats
