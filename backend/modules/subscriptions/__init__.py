"""
Subscriptions module.

Keeps each user's plan in sync with RevenueCat webhooks and reports
whether pro features are unlocked.

Public API:
- ISubscriptionService: Interface for subscription operations
- map_product_to_plan: RevenueCat product id to plan
"""

from .interfaces import ISubscriptionService
from .models import (
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionStatusResponse,
    WebhookEvent,
)
from .service import map_product_to_plan
from .exceptions import WebhookAuthError

__all__ = [
    "ISubscriptionService",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "SubscriptionStatusResponse",
    "WebhookEvent",
    "map_product_to_plan",
    "WebhookAuthError",
]
