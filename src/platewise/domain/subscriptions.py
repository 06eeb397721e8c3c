"""Domain models for subscriptions and billing."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

ACTIVE_STATUS = "active"
CANCELED_STATUS = "canceled"
PREMIUM_PLAN = "Premium"


@dataclass(frozen=True)
class Subscription:
    """Subscription row synced from the payment provider."""

    user_id: UUID
    status: str
    plan_type: str
    stripe_customer_id: str | None
    stripe_subscription_id: str | None
    current_period_start: datetime | None
    current_period_end: datetime | None

    @property
    def is_premium(self) -> bool:
        """Premium analysis requires an active Premium plan."""
        return self.status == ACTIVE_STATUS and self.plan_type == PREMIUM_PLAN


@dataclass(frozen=True)
class SubscriptionPlan:
    """Plan catalog entry keyed by provider price id."""

    name: str
    stripe_price_id: str


@dataclass(frozen=True)
class ProviderSubscription:
    """Subscription state as reported by the payment provider."""

    subscription_id: str
    customer_id: str
    status: str
    price_id: str
    current_period_start: datetime | None
    current_period_end: datetime | None


@dataclass(frozen=True)
class BillingEvent:
    """Verified webhook event."""

    type: str
    data: dict[str, object]
