"""
Subscription repository for database access.

Encapsulates all Supabase queries and data mapping for:
- subscriptions
- processed_webhooks

Webhook idempotency rests on the unique webhook_id column: claiming an
event is an INSERT, and a duplicate delivery fails that INSERT. Event
ordering rests on a filtered UPDATE that only matches rows whose
last_event_ms is not newer than the incoming event.
"""

from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.database import is_unique_violation
from shared.repository import BaseRepository

from .models import Subscription, SubscriptionPlan, SubscriptionStatus


class SubscriptionRepository(BaseRepository[Subscription]):
    """Repository for subscriptions and processed webhook ids."""

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def get_by_user(self, user_id: str) -> Optional[Subscription]:
        result = self._db.table("subscriptions").select("*").eq("user_id", user_id).execute()
        row = self._first(result.data)
        return self._map_to_subscription(row) if row else None

    def ensure_exists(self, user_id: str, app_user_id: str) -> None:
        """Insert an empty subscription row for the user unless one exists."""
        self._db.table("subscriptions").upsert(
            {
                "user_id": user_id,
                "revenuecat_app_user_id": app_user_id,
                "plan": SubscriptionPlan.FREE.value,
                "status": SubscriptionStatus.EXPIRED.value,
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()

    def apply_event(
        self,
        user_id: str,
        fields: dict[str, Any],
        event_ms: int,
    ) -> Optional[Subscription]:
        """
        Write `fields` unless a newer event was already applied.

        Returns:
            The updated subscription, or None when the user has no
            subscription row or the row carries a newer event.
        """
        data = {
            **fields,
            "last_event_ms": event_ms,
            "updated_at": self._now().isoformat(),
        }
        result = (
            self._db.table("subscriptions")
            .update(data)
            .eq("user_id", user_id)
            .or_(f"last_event_ms.is.null,last_event_ms.lte.{event_ms}")
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_subscription(row) if row else None

    # -------------------------------------------------------------------------
    # Processed webhooks
    # -------------------------------------------------------------------------

    def claim_webhook(self, webhook_id: str, event_type: str) -> bool:
        """
        Record a webhook id as processed.

        Returns:
            False when the id was already recorded.
        """
        try:
            self._db.table("processed_webhooks").insert({
                "webhook_id": webhook_id,
                "event_type": event_type,
                "processed_at": self._now().isoformat(),
            }).execute()
        except APIError as e:
            if is_unique_violation(e):
                return False
            raise
        return True

    def release_webhook(self, webhook_id: str) -> None:
        """Forget a claimed webhook id so a redelivery is processed again."""
        self._db.table("processed_webhooks").delete().eq("webhook_id", webhook_id).execute()

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_subscription(self, data: dict[str, Any]) -> Subscription:
        """Map database row to Subscription model."""
        return Subscription(
            user_id=str(data["user_id"]),
            revenuecat_app_user_id=data.get("revenuecat_app_user_id"),
            product_id=data.get("product_id"),
            entitlement_ids=data.get("entitlement_ids") or [],
            plan=SubscriptionPlan(data.get("plan") or "free"),
            status=SubscriptionStatus(data.get("status") or "active"),
            store=data.get("store"),
            environment=data.get("environment"),
            purchased_at=data.get("purchased_at"),
            expires_at=data.get("expires_at"),
            period_type=data.get("period_type"),
            cancel_reason=data.get("cancel_reason"),
            cancelled_at=data.get("cancelled_at"),
            billing_issue_detected_at=data.get("billing_issue_detected_at"),
            is_sandbox=bool(data.get("is_sandbox", False)),
            last_event_ms=data.get("last_event_ms"),
        )
