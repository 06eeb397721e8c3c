"""Supabase repository for subscriptions."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from platewise.domain.subscriptions import CANCELED_STATUS, Subscription
from platewise.services.subscriptions import SubscriptionRepository

_COLUMNS = (
    "user_id, status, plan_type, stripe_customer_id, stripe_subscription_id, "
    "current_period_start, current_period_end"
)


@dataclass
class SupabaseSubscriptionRepository(SubscriptionRepository):
    """Supabase implementation for subscription rows."""

    client: Client

    def get_by_user_id(self, user_id: UUID) -> Subscription | None:
        """Return the subscription for a user, if any."""
        response = (
            self.client.table("subscriptions")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_subscription(response.data[0])

    def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Subscription | None:
        """Return the subscription with a provider id, if any."""
        response = (
            self.client.table("subscriptions")
            .select(_COLUMNS)
            .eq("stripe_subscription_id", stripe_subscription_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_subscription(response.data[0])

    def upsert(self, subscription: Subscription) -> None:
        """Create or replace the subscription row for its user."""
        self.client.table("subscriptions").upsert(
            _to_row(subscription), on_conflict="user_id"
        ).execute()

    def mark_canceled(
        self, user_id: UUID, current_period_end: datetime | None
    ) -> None:
        """Set a user's subscription to canceled."""
        self.client.table("subscriptions").update(
            {
                "status": CANCELED_STATUS,
                "current_period_end": _isoformat(current_period_end),
            }
        ).eq("user_id", str(user_id)).execute()

    def mark_canceled_by_subscription_id(
        self, stripe_subscription_id: str, current_period_end: datetime
    ) -> None:
        """Set the subscription with a provider id to canceled."""
        self.client.table("subscriptions").update(
            {
                "status": CANCELED_STATUS,
                "current_period_end": current_period_end.isoformat(),
            }
        ).eq("stripe_subscription_id", stripe_subscription_id).execute()


def _to_row(subscription: Subscription) -> dict[str, object]:
    return {
        "user_id": str(subscription.user_id),
        "status": subscription.status,
        "plan_type": subscription.plan_type,
        "stripe_customer_id": subscription.stripe_customer_id,
        "stripe_subscription_id": subscription.stripe_subscription_id,
        "current_period_start": _isoformat(subscription.current_period_start),
        "current_period_end": _isoformat(subscription.current_period_end),
    }


def _parse_subscription(row: dict[str, object]) -> Subscription:
    return Subscription(
        user_id=UUID(str(row["user_id"])),
        status=str(row.get("status") or ""),
        plan_type=str(row.get("plan_type") or ""),
        stripe_customer_id=row.get("stripe_customer_id"),
        stripe_subscription_id=row.get("stripe_subscription_id"),
        current_period_start=_parse_datetime(row.get("current_period_start")),
        current_period_end=_parse_datetime(row.get("current_period_end")),
    )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_datetime(value: object) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))
