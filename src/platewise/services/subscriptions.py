"""Subscription lookups and premium gating."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from platewise.domain.subscriptions import Subscription

logger = logging.getLogger(__name__)


class SubscriptionRepository(Protocol):
    """Persistence interface for subscription rows."""

    def get_by_user_id(self, user_id: UUID) -> Subscription | None:
        """Return the subscription for a user, if any."""

    def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Subscription | None:
        """Return the subscription with a provider id, if any."""

    def upsert(self, subscription: Subscription) -> None:
        """Create or replace the subscription row for its user."""

    def mark_canceled(
        self, user_id: UUID, current_period_end: datetime | None
    ) -> None:
        """Set a user's subscription to canceled."""

    def mark_canceled_by_subscription_id(
        self, stripe_subscription_id: str, current_period_end: datetime
    ) -> None:
        """Set the subscription with a provider id to canceled."""


@dataclass
class SubscriptionService:
    """Read-side subscription logic."""

    repository: SubscriptionRepository

    def get_subscription(self, user_id: UUID) -> Subscription | None:
        """Return the user's subscription row."""
        return self.repository.get_by_user_id(user_id)

    def is_premium(self, user_id: UUID) -> bool:
        """Return true only for an active Premium subscription.

        Missing, past_due and canceled subscriptions all fall back to the
        free tier.
        """
        subscription = self.repository.get_by_user_id(user_id)
        if subscription is None:
            logger.debug("No subscription row", extra={"user_id": str(user_id)})
            return False
        if not subscription.is_premium:
            logger.debug(
                "Subscription is not premium",
                extra={
                    "user_id": str(user_id),
                    "status": subscription.status,
                    "plan_type": subscription.plan_type,
                },
            )
        return subscription.is_premium
