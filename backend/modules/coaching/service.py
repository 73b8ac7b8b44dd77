"""
Module service implementation.

Generates personalized modules, runs the daily Frame / Reflect / Shift
steps through the language model and the realtime voice API, and moves
enrollments through their lifecycle.
"""

import logging
from typing import Optional

from modules.auth.exceptions import UserNotFoundError
from modules.auth.interfaces import IAuthService
from modules.auth.models import User

from . import enrollment as lifecycle
from .exceptions import (
    DayNotFoundError,
    EnrollmentChangedError,
    EnrollmentNotFoundError,
    GeneratedModuleNotFoundError,
    LlmError,
    NoPersonalContextError,
)
from .generator import ContentGenerator, parse_json_reply
from .interfaces import IModuleService
from .models import (
    CompleteDayRequest,
    CompletionQuote,
    DayCompletionResult,
    DayPreview,
    DayStats,
    Difficulty,
    Enrollment,
    EnrollmentList,
    FrameContent,
    FrameResult,
    GeneratedModule,
    ModuleColor,
    ModuleDay,
    ModuleDraft,
    ModuleGenerationResult,
    ModuleList,
    ModuleStatus,
    ModuleType,
    ReflectionResult,
    ReflectSession,
    ShiftContent,
    ShiftResult,
    TranscriptSummary,
)
from .prompts import (
    FrameContext,
    ReflectionContext,
    ShiftContext,
    build_completion_quote_prompt,
    build_frame_prompt,
    build_module_generation_prompt,
    build_previous_day_summaries,
    build_reflection_instructions,
    build_shift_prompt,
    build_transcript_summary_prompt,
)
from .realtime import RealtimeSessionClient
from .repository import CoachingRepository

logger = logging.getLogger(__name__)

# Colors handed out to a batch of modules, in order
MODULE_COLORS = (ModuleColor.AMBER, ModuleColor.VIOLET, ModuleColor.EMERALD)
DEFAULT_ICON = "bulb-outline"
DEFAULT_MINUTES_PER_DAY = 10

DEFAULT_REFLECTION_SUMMARY = "User completed voice reflection."
NO_REFLECTION = "No reflection available."


class ModuleService(IModuleService):
    """
    Coaching service backed by Supabase, OpenAI chat and OpenAI Realtime.

    Implements IModuleService. User profiles come from the auth module.
    """

    def __init__(
        self,
        repository: CoachingRepository,
        generator: ContentGenerator,
        realtime: RealtimeSessionClient,
        auth: IAuthService,
    ):
        self._repository = repository
        self._generator = generator
        self._realtime = realtime
        self._auth = auth

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    async def generate_modules(self, user_id: str) -> ModuleList:
        user = await self._require_user(user_id)
        if not user.personal_context:
            raise NoPersonalContextError()

        existing = self._repository.list_ready_modules(user_id)
        if existing:
            logger.info("Modules already exist for user=%s, returning %d", user_id, len(existing))
            return ModuleList(modules=existing)

        logger.info("Generating modules for user=%s", user_id)
        prompt = build_module_generation_prompt(
            user.personal_context,
            user.first_name or None,
            user.language,
        )
        result = await self._generator.complete_json(prompt, ModuleGenerationResult)

        rows = [
            self._module_row(user_id, draft, MODULE_COLORS[i % len(MODULE_COLORS)])
            for i, draft in enumerate(result.modules)
        ]
        modules = self._repository.create_modules(rows)
        logger.info("Generated %d modules for user=%s", len(modules), user_id)
        return ModuleList(modules=modules)

    async def list_modules(self, user_id: str) -> ModuleList:
        return ModuleList(modules=self._repository.list_ready_modules(user_id))

    # -------------------------------------------------------------------------
    # Enrollments
    # -------------------------------------------------------------------------

    async def enroll(self, user_id: str, module_id: str) -> Enrollment:
        self._require_module(user_id, module_id)

        existing = self._repository.get_active_enrollment(user_id, module_id)
        draft = lifecycle.start(user_id, module_id, existing)
        stored = self._repository.insert_enrollment(draft)
        logger.info("Enrolled user=%s in module=%s", user_id, module_id)
        return stored

    async def get_enrollment(self, user_id: str, module_id: str) -> Enrollment:
        enrollment = self._repository.get_latest_enrollment(user_id, module_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(module_id)
        return enrollment

    async def list_active_enrollments(self, user_id: str) -> EnrollmentList:
        return EnrollmentList(enrollments=self._repository.list_active_enrollments(user_id))

    async def abandon(self, user_id: str, module_id: str) -> Enrollment:
        enrollment = self._require_active_enrollment(user_id, module_id)
        stored = self._repository.save_status(lifecycle.abandon(enrollment))
        if stored is None:
            raise EnrollmentChangedError()
        logger.info("User=%s abandoned module=%s", user_id, module_id)
        return stored

    # -------------------------------------------------------------------------
    # Daily steps
    # -------------------------------------------------------------------------

    async def generate_frame(self, user_id: str, module_id: str, day_number: int) -> FrameResult:
        module, day = self._require_day(user_id, module_id, day_number)
        user = await self._require_user(user_id)

        prompt = build_frame_prompt(FrameContext(
            module_title=module.title,
            module_theme=module.description,
            day_number=day.day_number,
            total_days=module.total_days,
            day_title=day.title,
            framework=day.framework,
            framework_description=day.framework_description,
            personal_context=user.personal_context,
            user_name=user.first_name or None,
            previous_day_summaries=self._previous_summaries(user_id, module_id),
            language=user.language,
        ))
        raw, structured = await self._generator.complete_structured(prompt, FrameContent)
        if structured is None:
            return FrameResult(content=raw)
        return FrameResult(content=structured.hook, structured=structured)

    async def start_reflection(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
    ) -> ReflectSession:
        module, day = self._require_day(user_id, module_id, day_number)
        user = await self._require_user(user_id)

        instructions = build_reflection_instructions(ReflectionContext(
            module_title=module.title,
            day_title=day.title,
            framework=day.framework,
            framework_description=day.framework_description,
            reflection_prompt=day.reflection_prompt,
            personal_context=user.personal_context,
            previous_day_summaries=self._previous_summaries(user_id, module_id),
            language=user.language,
        ))
        session = await self._realtime.create_session(instructions)
        logger.info(
            "Reflection session %s started: user=%s module=%s day=%d",
            session.session_id, user_id, module_id, day_number,
        )
        return session

    async def complete_reflection(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        transcript: str,
        session_id: Optional[str] = None,
    ) -> ReflectionResult:
        _, day = self._require_day(user_id, module_id, day_number)

        if not transcript.strip():
            return ReflectionResult(
                reflection_summary=DEFAULT_REFLECTION_SUMMARY,
                session_id=session_id,
            )

        prompt = build_transcript_summary_prompt(transcript, day.framework, day.reflection_prompt)
        try:
            raw = await self._generator.complete(prompt)
        except LlmError as e:
            logger.warning("Reflection summary failed, using default: %s", e.message)
            return ReflectionResult(
                reflection_summary=DEFAULT_REFLECTION_SUMMARY,
                session_id=session_id,
            )

        summary = parse_json_reply(raw, TranscriptSummary)
        if summary is None:
            return ReflectionResult(reflection_summary=raw, session_id=session_id)

        return ReflectionResult(
            reflection_summary=summary.summary,
            key_insight=summary.key_insight,
            framework_connection=summary.framework_connection,
            growth_note=summary.growth_note,
            session_id=session_id,
        )

    async def generate_shift(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        reflection_summary: Optional[str] = None,
    ) -> ShiftResult:
        module, day = self._require_day(user_id, module_id, day_number)
        user = await self._require_user(user_id)

        prompt = build_shift_prompt(ShiftContext(
            module_title=module.title,
            day_title=day.title,
            framework=day.framework,
            shift_focus=day.shift_focus,
            reflection_summary=reflection_summary or NO_REFLECTION,
            personal_context=user.personal_context,
            language=user.language,
        ))
        raw, structured = await self._generator.complete_structured(prompt, ShiftContent)
        if structured is None:
            return ShiftResult(content=raw)
        return ShiftResult(content=structured.action, structured=structured)

    async def complete_day(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
        request: CompleteDayRequest,
    ) -> DayCompletionResult:
        module = self._require_module(user_id, module_id)
        enrollment = self._require_active_enrollment(user_id, module_id)

        updated = lifecycle.complete_day(
            enrollment,
            day_number,
            reflection_summary=request.reflection_summary,
            shift_action=request.shift_action,
            voice_session_id=request.voice_session_id,
        )
        module_complete = lifecycle.is_finished(updated, module.total_days)
        if module_complete:
            updated = lifecycle.finish(updated, module.total_days)

        stored = self._repository.save_progress(updated, expected_day=day_number)
        if stored is None:
            raise EnrollmentChangedError()

        logger.info("User=%s completed day %d of module=%s", user_id, day_number, module_id)

        completion_quote = None
        if module_complete:
            logger.info("Module completed: user=%s module=%s", user_id, module_id)
            completion_quote = await self._completion_quote(user_id, module, stored)

        next_day = module.get_day(day_number + 1) if not module_complete else None
        return DayCompletionResult(
            enrollment=stored,
            day_stats=DayStats(
                day_number=day_number,
                total_days=module.total_days,
                reflection_summary=request.reflection_summary,
                shift_action=request.shift_action,
                streak=lifecycle.calculate_streak(stored.completed_days),
                next_day=DayPreview(title=next_day.title, subtitle=next_day.subtitle) if next_day else None,
                is_module_complete=module_complete,
                completion_quote=completion_quote,
            ),
        )

    # -------------------------------------------------------------------------
    # Private helpers
    # -------------------------------------------------------------------------

    async def _require_user(self, user_id: str) -> User:
        user = await self._auth.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _require_module(self, user_id: str, module_id: str) -> GeneratedModule:
        module = self._repository.get_module(user_id, module_id)
        if module is None:
            raise GeneratedModuleNotFoundError(module_id)
        return module

    def _require_day(
        self,
        user_id: str,
        module_id: str,
        day_number: int,
    ) -> tuple[GeneratedModule, ModuleDay]:
        module = self._require_module(user_id, module_id)
        day = module.get_day(day_number)
        if day is None:
            raise DayNotFoundError(module_id, day_number)
        return module, day

    def _require_active_enrollment(self, user_id: str, module_id: str) -> Enrollment:
        enrollment = self._repository.get_active_enrollment(user_id, module_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(module_id)
        return enrollment

    def _previous_summaries(self, user_id: str, module_id: str) -> str:
        enrollment = self._repository.get_active_enrollment(user_id, module_id)
        if enrollment is None:
            return ""
        return build_previous_day_summaries(enrollment.completed_days)

    async def _completion_quote(
        self,
        user_id: str,
        module: GeneratedModule,
        enrollment: Enrollment,
    ) -> Optional[CompletionQuote]:
        """Generate the closing quote. Failures are logged and yield None."""
        user = await self._auth.get_user(user_id)
        prompt = build_completion_quote_prompt(
            module.title,
            module.total_days,
            [d.reflection_summary for d in enrollment.completed_days],
            [d.shift_action for d in enrollment.completed_days],
            user.first_name if user and user.first_name else None,
        )
        try:
            return await self._generator.complete_json(prompt, CompletionQuote)
        except LlmError as e:
            logger.warning("Failed to generate completion quote: %s", e.message)
            return None

    @staticmethod
    def _module_row(user_id: str, draft: ModuleDraft, color: ModuleColor) -> dict:
        days = [
            ModuleDay(
                day_number=position,
                **day.model_dump(exclude={"day_number"}),
            ).model_dump(mode="json")
            for position, day in enumerate(draft.days, start=1)
        ]
        return {
            "user_id": user_id,
            "title": draft.title,
            "subtitle": draft.subtitle,
            "description": draft.description,
            "outcome": draft.outcome,
            "module_color": color.value,
            "icon": draft.icon or DEFAULT_ICON,
            "total_days": draft.total_days,
            "minutes_per_day": draft.minutes_per_day or DEFAULT_MINUTES_PER_DAY,
            "type": (draft.type or ModuleType.SPRINT).value,
            "difficulty": (draft.difficulty or Difficulty.INTERMEDIATE).value,
            "days": days,
            "status": ModuleStatus.READY.value,
        }
