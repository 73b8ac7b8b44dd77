"""
Subscription API endpoints.

`router` serves the signed-in user's subscription status.
`webhook_router` receives RevenueCat webhooks, authenticated by a shared
secret in the Authorization header rather than a user token.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.dependencies import get_app_settings, get_subscription_service
from api.middleware.auth import get_current_user
from api.models import SuccessResponse, ok
from shared.config import Settings
from shared.models import AuthenticatedUser

from .exceptions import WebhookAuthError
from .interfaces import ISubscriptionService
from .models import SubscriptionStatusResponse, WebhookPayload, WebhookResult

logger = logging.getLogger(__name__)

router = APIRouter()
webhook_router = APIRouter()


@router.get("/status", response_model=SuccessResponse[SubscriptionStatusResponse])
async def subscription_status(
    user: AuthenticatedUser = Depends(get_current_user),
    service: ISubscriptionService = Depends(get_subscription_service),
):
    return ok(await service.get_status(user.id))


def verify_webhook_authorization(header: Optional[str], expected_key: str) -> None:
    """
    Check the shared secret, sent raw or as `Bearer <secret>`.

    With no secret configured the check is skipped.

    Raises:
        WebhookAuthError: If the header does not match.
    """
    if not expected_key:
        logger.warning("REVENUECAT_WEBHOOK_AUTH_KEY not set - skipping webhook auth check")
        return

    received = (header or "").strip()
    if received.startswith("Bearer "):
        received = received[len("Bearer "):].strip()

    if not hmac.compare_digest(received.encode(), expected_key.strip().encode()):
        logger.warning("RevenueCat webhook rejected: authorization mismatch")
        raise WebhookAuthError()


async def require_webhook_auth(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_webhook_authorization(authorization, settings.revenuecat_webhook_auth_key)


@webhook_router.post(
    "/revenuecat",
    response_model=SuccessResponse[WebhookResult],
    dependencies=[Depends(require_webhook_auth)],
)
async def revenuecat_webhook(
    payload: WebhookPayload,
    service: ISubscriptionService = Depends(get_subscription_service),
):
    """
    Apply a RevenueCat event.

    Duplicate and out-of-date deliveries still return 200 so RevenueCat
    stops retrying them.
    """
    logger.info(
        "RevenueCat webhook %s (%s) for %s",
        payload.event.id, payload.event.type, payload.event.app_user_id,
    )
    return ok(await service.process_webhook(payload.event))
