"""
Coaching module API endpoints.

Module generation, enrollments, and the daily Frame / Reflect / Shift
steps. Every endpoint requires a bearer token.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path

from api.dependencies import get_module_service
from api.middleware.auth import get_current_user
from api.models import SuccessResponse, ok
from shared.models import AuthenticatedUser

from .interfaces import IModuleService
from .models import (
    CompleteDayRequest,
    CompleteReflectionRequest,
    DayCompletionResult,
    Enrollment,
    EnrollmentList,
    FrameResult,
    GenerateShiftRequest,
    ModuleList,
    ReflectionResult,
    ReflectSession,
    ShiftResult,
)

router = APIRouter()


@router.post("/generate", response_model=SuccessResponse[ModuleList], status_code=201)
async def generate_modules(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Generate personalized modules from the user's personal context."""
    return ok(await service.generate_modules(user.id))


@router.get("", response_model=SuccessResponse[ModuleList])
async def list_modules(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    return ok(await service.list_modules(user.id))


@router.get("/enrollments", response_model=SuccessResponse[EnrollmentList])
async def list_enrollments(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """List the user's active enrollments."""
    return ok(await service.list_active_enrollments(user.id))


# -----------------------------------------------------------------------------
# Single module
# -----------------------------------------------------------------------------


@router.post("/{module_id}/enroll", response_model=SuccessResponse[Enrollment], status_code=201)
async def enroll(
    module_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    return ok(await service.enroll(user.id, module_id))


@router.get("/{module_id}/enrollment", response_model=SuccessResponse[Enrollment])
async def get_enrollment(
    module_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    return ok(await service.get_enrollment(user.id, module_id))


@router.post("/{module_id}/abandon", response_model=SuccessResponse[Enrollment])
async def abandon(
    module_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    return ok(await service.abandon(user.id, module_id))


# -----------------------------------------------------------------------------
# Daily steps
# -----------------------------------------------------------------------------


@router.post("/{module_id}/days/{day_number}/frame", response_model=SuccessResponse[FrameResult])
async def generate_frame(
    module_id: str,
    day_number: int = Path(..., ge=1),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Generate the day's reading."""
    return ok(await service.generate_frame(user.id, module_id, day_number))


@router.post(
    "/{module_id}/days/{day_number}/reflect",
    response_model=SuccessResponse[ReflectSession],
    status_code=201,
)
async def start_reflection(
    module_id: str,
    day_number: int = Path(..., ge=1),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Open a realtime voice session for the day's reflection."""
    return ok(await service.start_reflection(user.id, module_id, day_number))


@router.post(
    "/{module_id}/days/{day_number}/reflect/complete",
    response_model=SuccessResponse[ReflectionResult],
)
async def complete_reflection(
    request: CompleteReflectionRequest,
    module_id: str,
    day_number: int = Path(..., ge=1),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Summarize the transcript of a finished voice reflection."""
    return ok(await service.complete_reflection(
        user.id,
        module_id,
        day_number,
        request.transcript,
        session_id=request.session_id,
    ))


@router.post("/{module_id}/days/{day_number}/shift", response_model=SuccessResponse[ShiftResult])
async def generate_shift(
    module_id: str,
    day_number: int = Path(..., ge=1),
    request: Optional[GenerateShiftRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Generate the day's micro-action from the reflection summary."""
    return ok(await service.generate_shift(
        user.id,
        module_id,
        day_number,
        reflection_summary=request.reflection_summary if request else None,
    ))


@router.post(
    "/{module_id}/days/{day_number}/complete",
    response_model=SuccessResponse[DayCompletionResult],
)
async def complete_day(
    module_id: str,
    day_number: int = Path(..., ge=1),
    request: Optional[CompleteDayRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IModuleService = Depends(get_module_service),
):
    """Mark the current day as done; finishing the last day completes the module."""
    return ok(await service.complete_day(
        user.id, module_id, day_number, request or CompleteDayRequest()
    ))
