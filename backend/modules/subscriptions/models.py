"""
Subscription module data models.

Subscriptions mirror the billing state RevenueCat reports through its
webhook. The webhook payload models accept RevenueCat's snake_case fields
and ignore anything they do not use.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shared.models import CamelModel


class SubscriptionPlan(str, Enum):
    FREE = "free"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """Validity of a subscription. Independent of the plan."""

    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    BILLING_ISSUE = "billing_issue"
    TRIAL = "trial"


PRO_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL})


class Subscription(BaseModel):
    """A user's subscription row. At most one per user."""

    user_id: str
    revenuecat_app_user_id: Optional[str] = None
    product_id: Optional[str] = None
    entitlement_ids: list[str] = Field(default_factory=list)
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    store: Optional[str] = None
    environment: Optional[str] = None
    purchased_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    period_type: Optional[str] = None
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = Field(None, description="Set only while cancelled")
    billing_issue_detected_at: Optional[datetime] = Field(
        None, description="Set only while in billing_issue"
    )
    is_sandbox: bool = False
    last_event_ms: Optional[int] = Field(
        None, description="Timestamp of the newest webhook event applied"
    )

    @property
    def is_pro(self) -> bool:
        return self.status in PRO_STATUSES


class SubscriptionStatusResponse(CamelModel):
    """What the app needs to gate pro features."""

    plan: SubscriptionPlan
    status: SubscriptionStatus
    is_pro: bool
    expires_at: Optional[datetime] = None
    period_type: Optional[str] = None


# -----------------------------------------------------------------------------
# RevenueCat webhook
# -----------------------------------------------------------------------------


class WebhookEventType(str, Enum):
    INITIAL_PURCHASE = "INITIAL_PURCHASE"
    RENEWAL = "RENEWAL"
    CANCELLATION = "CANCELLATION"
    UNCANCELLATION = "UNCANCELLATION"
    EXPIRATION = "EXPIRATION"
    BILLING_ISSUE = "BILLING_ISSUE"
    PRODUCT_CHANGE = "PRODUCT_CHANGE"
    SUBSCRIPTION_PAUSED = "SUBSCRIPTION_PAUSED"
    TEST = "TEST"


class WebhookEvent(BaseModel):
    """The `event` object of a RevenueCat webhook."""

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    app_user_id: str = ""
    original_app_user_id: Optional[str] = None
    product_id: Optional[str] = None
    new_product_id: Optional[str] = None
    entitlement_ids: Optional[list[str]] = None
    period_type: Optional[str] = None
    purchased_at_ms: Optional[int] = None
    expiration_at_ms: Optional[int] = None
    event_timestamp_ms: Optional[int] = None
    environment: Optional[str] = None
    store: Optional[str] = None
    cancel_reason: Optional[str] = None
    expiration_reason: Optional[str] = None

    model_config = {"extra": "ignore"}


class WebhookPayload(BaseModel):
    api_version: Optional[str] = None
    event: WebhookEvent

    model_config = {"extra": "ignore"}


class WebhookResult(CamelModel):
    """Outcome of one webhook delivery."""

    event_id: str
    event_type: str
    processed: bool
    reason: Optional[str] = Field(
        None, description="duplicate, stale, unknown_user or unhandled when nothing changed"
    )
