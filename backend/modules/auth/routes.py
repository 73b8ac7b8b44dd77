"""
Authentication API endpoints.

Password accounts, token refresh, profile, and Google/Apple sign-in.
Errors raised by the service are AppError subclasses and are rendered by
the application's exception handlers; only the Google callback handles
failures itself, because a browser is on the other end.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from api.dependencies import get_app_settings, get_auth_service
from api.middleware.auth import get_current_user
from api.models import SuccessResponse, ok
from shared.config import Settings
from shared.exceptions import AppError
from shared.models import AuthenticatedUser

from .interfaces import IAuthService
from .models import (
    AppleAuthRequest,
    AuthResult,
    AuthTokens,
    EmailRequest,
    ExchangeSessionRequest,
    GoogleTokenRequest,
    LoginRequest,
    MessageResponse,
    PendingVerification,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenResult,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UserResponse,
    VerifyOtpRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# -----------------------------------------------------------------------------
# Password accounts
# -----------------------------------------------------------------------------


@router.post("/register", response_model=SuccessResponse[PendingVerification], status_code=201)
async def register(
    request: RegisterRequest,
    service: IAuthService = Depends(get_auth_service),
):
    """Create an account and email a verification code."""
    result = await service.register(
        request.email,
        request.password,
        request.first_name,
        request.last_name,
    )
    return ok(result)


@router.post("/login", response_model=SuccessResponse[AuthResult])
async def login(
    request: LoginRequest,
    service: IAuthService = Depends(get_auth_service),
):
    """Sign in with email and password."""
    return ok(await service.login(request.email, request.password))


@router.post(
    "/verify-otp",
    response_model=SuccessResponse[Union[AuthResult, ResetTokenResult]],
)
async def verify_otp(
    request: VerifyOtpRequest,
    service: IAuthService = Depends(get_auth_service),
):
    """
    Redeem an emailed code.

    Registration codes sign the user in; password-reset codes return a
    reset token for /reset-password.
    """
    return ok(await service.verify_otp(request.email, request.code))


@router.post("/resend-otp", response_model=SuccessResponse[MessageResponse])
async def resend_otp(
    request: EmailRequest,
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.resend_otp(request.email))


@router.post("/forgot-password", response_model=SuccessResponse[MessageResponse])
async def forgot_password(
    request: EmailRequest,
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.forgot_password(request.email))


@router.post("/reset-password", response_model=SuccessResponse[MessageResponse])
async def reset_password(
    request: ResetPasswordRequest,
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.reset_password(request.reset_token, request.new_password))


@router.post("/refresh", response_model=SuccessResponse[AuthTokens])
async def refresh(
    request: RefreshRequest,
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.refresh(request.refresh_token))


# -----------------------------------------------------------------------------
# Current user
# -----------------------------------------------------------------------------


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def me(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.get_current_user(user.id))


@router.patch("/profile", response_model=SuccessResponse[UserResponse])
async def update_profile(
    request: UpdateProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.update_profile(user.id, request))


@router.patch("/password", response_model=SuccessResponse[MessageResponse])
async def update_password(
    request: UpdatePasswordRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.update_password(user.id, request))


@router.post("/logout", response_model=SuccessResponse[MessageResponse])
async def logout(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.logout(user.id))


# -----------------------------------------------------------------------------
# Google server-side flow and session exchange
# -----------------------------------------------------------------------------


@router.get("/google", status_code=302, response_class=RedirectResponse)
async def google_auth(
    redirect_uri: str = Query(..., alias="redirectUri", min_length=1),
    platform: Optional[str] = Query(None),
    service: IAuthService = Depends(get_auth_service),
):
    """Redirect the browser to Google's consent screen."""
    return RedirectResponse(service.google_authorization_url(redirect_uri, platform), status_code=302)


@router.get("/google/callback", status_code=302, response_class=RedirectResponse)
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    service: IAuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Finish the Google flow and hand off to the app.

    Success redirects to `<redirectUri>?sessionId=<id>`; any failure
    redirects to the app's fixed error deep link.
    """
    if not code or not state:
        logger.warning("Google callback without code or state")
        return RedirectResponse(settings.mobile_auth_error_url, status_code=302)

    try:
        target = await service.complete_google_callback(code, state)
    except AppError as e:
        logger.warning("Google callback failed: %s", e.message)
        return RedirectResponse(settings.mobile_auth_error_url, status_code=302)
    except Exception:
        logger.exception("Google callback failed unexpectedly")
        return RedirectResponse(settings.mobile_auth_error_url, status_code=302)

    return RedirectResponse(target, status_code=302)


@router.post("/exchange-session", response_model=SuccessResponse[AuthResult])
async def exchange_session(
    request: ExchangeSessionRequest,
    service: IAuthService = Depends(get_auth_service),
):
    """Trade a single-use session id from the Google callback for tokens."""
    return ok(await service.exchange_session(request.session_id))


# -----------------------------------------------------------------------------
# Native sign-in (ID token posted by the app)
# -----------------------------------------------------------------------------


@router.post("/social/google", response_model=SuccessResponse[AuthResult])
async def social_google(
    request: GoogleTokenRequest,
    service: IAuthService = Depends(get_auth_service),
):
    return ok(await service.sign_in_with_google(request.token))


@router.post("/social/apple", response_model=SuccessResponse[AuthResult])
async def social_apple(
    request: AppleAuthRequest,
    service: IAuthService = Depends(get_auth_service),
):
    full_name = request.full_name
    return ok(await service.sign_in_with_apple(
        request.identity_token,
        first_name=full_name.first_name if full_name else None,
        last_name=full_name.last_name if full_name else None,
    ))
