"""
Subscription module interface.

Other modules should depend on ISubscriptionService, not the concrete
implementation.
"""

from typing import Protocol, runtime_checkable

from .models import SubscriptionStatusResponse, WebhookEvent, WebhookResult


@runtime_checkable
class ISubscriptionService(Protocol):
    """Interface for subscription status and billing webhook processing."""

    async def get_status(self, user_id: str) -> SubscriptionStatusResponse:
        """
        Get the user's plan and whether pro features are unlocked.

        A user without a subscription is on the free plan.
        """
        ...

    async def process_webhook(self, event: WebhookEvent) -> WebhookResult:
        """
        Apply one RevenueCat event.

        Replays of an event id and events older than the last one applied
        to the subscription change nothing.
        """
        ...
