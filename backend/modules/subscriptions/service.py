"""
Subscription service implementation.

Reports a user's plan and applies RevenueCat webhook events.

Webhook handling:
- Each event id is claimed once in processed_webhooks; a redelivery is a
  no-op. If applying the event fails, the claim is released so
  RevenueCat's retry gets processed.
- Each subscription remembers the timestamp of the newest event applied.
  An older event arriving late is ignored.
- Every status change clears cancelled_at / billing_issue_detected_at
  unless the new status is the one they describe.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from .interfaces import ISubscriptionService
from .models import (
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionStatusResponse,
    WebhookEvent,
    WebhookEventType,
    WebhookResult,
)
from .repository import SubscriptionRepository

logger = logging.getLogger(__name__)

TRIAL_PERIOD = "TRIAL"
SANDBOX_ENVIRONMENT = "SANDBOX"


def map_product_to_plan(product_id: Optional[str]) -> SubscriptionPlan:
    """Annual products mention the year in their id; everything else is monthly."""
    pid = (product_id or "").lower()
    if "annual" in pid or "yearly" in pid or "year" in pid:
        return SubscriptionPlan.ANNUAL
    return SubscriptionPlan.MONTHLY


def _from_ms(ms: Optional[int]) -> Optional[str]:
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def _is_user_id(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class SubscriptionService(ISubscriptionService):
    """
    Subscription service backed by Supabase.

    Implements ISubscriptionService.
    """

    def __init__(self, repository: SubscriptionRepository):
        self._repository = repository

    async def get_status(self, user_id: str) -> SubscriptionStatusResponse:
        subscription = self._repository.get_by_user(user_id)
        if subscription is None:
            return SubscriptionStatusResponse(
                plan=SubscriptionPlan.FREE,
                status=SubscriptionStatus.ACTIVE,
                is_pro=False,
            )

        return SubscriptionStatusResponse(
            plan=subscription.plan if subscription.is_pro else SubscriptionPlan.FREE,
            status=subscription.status,
            is_pro=subscription.is_pro,
            expires_at=subscription.expires_at,
            period_type=subscription.period_type,
        )

    async def process_webhook(self, event: WebhookEvent) -> WebhookResult:
        if not self._repository.claim_webhook(event.id, event.type):
            logger.info("Webhook already processed: %s (%s)", event.id, event.type)
            return self._result(event, processed=False, reason="duplicate")

        try:
            result = self._apply(event)
        except Exception:
            self._repository.release_webhook(event.id)
            raise

        return result

    # -------------------------------------------------------------------------
    # Event handling
    # -------------------------------------------------------------------------

    def _apply(self, event: WebhookEvent) -> WebhookResult:
        if event.type == WebhookEventType.TEST.value:
            logger.info("Received RevenueCat test webhook")
            return self._result(event, processed=True)

        event_ms = self._event_ms(event)
        fields = self._fields_for(event, event_ms)
        if fields is None:
            logger.info("Unhandled webhook event type: %s", event.type)
            return self._result(event, processed=False, reason="unhandled")

        user_id = event.app_user_id
        if not _is_user_id(user_id):
            logger.warning("Webhook app_user_id is not a user id: %s", user_id)
            return self._result(event, processed=False, reason="unknown_user")

        if event.type in (WebhookEventType.INITIAL_PURCHASE.value, WebhookEventType.RENEWAL.value):
            self._repository.ensure_exists(user_id, event.original_app_user_id or user_id)

        updated = self._repository.apply_event(user_id, fields, event_ms)
        if updated is None:
            logger.info(
                "Ignored %s for user %s: no subscription or a newer event was applied",
                event.type, user_id,
            )
            return self._result(event, processed=False, reason="stale")

        logger.info(
            "Subscription for user %s is now %s/%s after %s",
            user_id, updated.plan.value, updated.status.value, event.type,
        )
        return self._result(event, processed=True)

    def _fields_for(self, event: WebhookEvent, event_ms: int) -> Optional[dict[str, Any]]:
        """Columns to write for an event, or None for types we do not handle."""
        event_time = _from_ms(event_ms)
        kind = event.type

        if kind in (WebhookEventType.INITIAL_PURCHASE.value, WebhookEventType.RENEWAL.value):
            status = (
                SubscriptionStatus.TRIAL
                if (event.period_type or "").upper() == TRIAL_PERIOD
                else SubscriptionStatus.ACTIVE
            )
            return {
                "revenuecat_app_user_id": event.original_app_user_id or event.app_user_id,
                "product_id": event.product_id,
                "entitlement_ids": event.entitlement_ids or [],
                "plan": map_product_to_plan(event.product_id).value,
                "status": status.value,
                "store": event.store,
                "environment": event.environment,
                "purchased_at": _from_ms(event.purchased_at_ms) or event_time,
                "expires_at": _from_ms(event.expiration_at_ms),
                "period_type": event.period_type,
                "is_sandbox": event.environment == SANDBOX_ENVIRONMENT,
                "cancel_reason": None,
                "cancelled_at": None,
                "billing_issue_detected_at": None,
            }

        if kind == WebhookEventType.CANCELLATION.value:
            return {
                "status": SubscriptionStatus.CANCELLED.value,
                "cancel_reason": event.cancel_reason,
                "cancelled_at": event_time,
                "billing_issue_detected_at": None,
            }

        if kind in (WebhookEventType.EXPIRATION.value, WebhookEventType.SUBSCRIPTION_PAUSED.value):
            return {
                "status": SubscriptionStatus.EXPIRED.value,
                "cancel_reason": event.expiration_reason or event.cancel_reason,
                "cancelled_at": None,
                "billing_issue_detected_at": None,
            }

        if kind == WebhookEventType.BILLING_ISSUE.value:
            return {
                "status": SubscriptionStatus.BILLING_ISSUE.value,
                "billing_issue_detected_at": event_time,
                "cancelled_at": None,
            }

        if kind == WebhookEventType.UNCANCELLATION.value:
            return {
                "status": SubscriptionStatus.ACTIVE.value,
                "cancel_reason": None,
                "cancelled_at": None,
                "billing_issue_detected_at": None,
            }

        if kind == WebhookEventType.PRODUCT_CHANGE.value:
            product_id = event.new_product_id or event.product_id
            return {
                "product_id": product_id,
                "plan": map_product_to_plan(product_id).value,
                "entitlement_ids": event.entitlement_ids or [],
            }

        return None

    @staticmethod
    def _event_ms(event: WebhookEvent) -> int:
        if event.event_timestamp_ms is not None:
            return event.event_timestamp_ms
        if event.purchased_at_ms is not None:
            return event.purchased_at_ms
        return int(datetime.now(timezone.utc).timestamp() * 1000)

    @staticmethod
    def _result(event: WebhookEvent, processed: bool, reason: Optional[str] = None) -> WebhookResult:
        return WebhookResult(
            event_id=event.id,
            event_type=event.type,
            processed=processed,
            reason=reason,
        )
