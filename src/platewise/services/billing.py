"""Subscription billing: checkout, cancellation and webhook sync."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from platewise.domain.errors import InvalidRequestError, NotFoundError, UpstreamError
from platewise.domain.models import AuthUser
from platewise.domain.subscriptions import (
    CANCELED_STATUS,
    BillingEvent,
    ProviderSubscription,
    Subscription,
    SubscriptionPlan,
)
from platewise.services.subscriptions import SubscriptionRepository

logger = logging.getLogger(__name__)

SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
CHECKOUT_COMPLETED = "checkout.session.completed"


class PaymentGateway(Protocol):
    """Interface for the payment provider.

    Implementations raise UpstreamError when a provider call fails.
    """

    def create_customer(self, email: str | None, user_id: UUID) -> str:
        """Create a customer tagged with the user id and return its id."""

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        user_id: UUID,
    ) -> str:
        """Create a subscription checkout session and return its id."""

    def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately."""

    def retrieve_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Fetch a subscription from the provider."""

    def get_customer_user_id(self, customer_id: str) -> str | None:
        """Return the user id stored in the customer's metadata."""

    def construct_event(self, payload: bytes, signature: str) -> BillingEvent:
        """Verify the webhook signature and return the event.

        Raises:
            InvalidRequestError: If the signature or payload is invalid.
        """


class PlanRepository(Protocol):
    """Read interface for the plan catalog."""

    def get_by_price_id(self, price_id: str) -> SubscriptionPlan | None:
        """Return the plan for a provider price id."""


class ProfileRepository(Protocol):
    """Persistence interface for billing fields on user profiles."""

    def get_stripe_customer_id(self, user_id: UUID) -> str | None:
        """Return the provider customer id saved for a user."""

    def set_stripe_customer_id(self, user_id: UUID, customer_id: str) -> None:
        """Save the provider customer id for a user."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class BillingService:
    """Wraps the payment provider and keeps subscription rows in sync."""

    gateway: PaymentGateway
    subscriptions: SubscriptionRepository
    plans: PlanRepository
    profiles: ProfileRepository
    app_url: str
    clock: Callable[[], datetime] = field(default=_utc_now)

    def create_checkout_session(self, user: AuthUser, price_id: str | None) -> str:
        """Create a checkout session, creating the customer on first use."""
        if not price_id:
            raise InvalidRequestError("Price ID is required")
        customer_id = self._load_customer_id(user.id)
        if not customer_id:
            customer_id = self.gateway.create_customer(user.email, user.id)
            self._save_customer_id(user.id, customer_id)
            logger.info(
                "Created payment customer",
                extra={"user_id": str(user.id), "customer_id": customer_id},
            )
        return self.gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=f"{self.app_url}/dashboard?success=true",
            cancel_url=f"{self.app_url}/pricing?canceled=true",
            user_id=user.id,
        )

    def cancel_subscription(self, user: AuthUser, subscription_id: str | None) -> None:
        """Cancel one of the caller's subscriptions."""
        if not subscription_id:
            raise InvalidRequestError("Subscription ID is required")
        try:
            existing = self.subscriptions.get_by_stripe_subscription_id(
                subscription_id
            )
        except Exception as exc:
            logger.exception(
                "Failed to load subscription",
                extra={"subscription_id": subscription_id},
            )
            raise UpstreamError("Error loading subscription", str(exc)) from exc
        if existing is None or existing.user_id != user.id:
            raise NotFoundError(f"No subscription found for ID: {subscription_id}")
        self.gateway.cancel_subscription(subscription_id)
        try:
            self.subscriptions.mark_canceled_by_subscription_id(
                subscription_id, self.clock()
            )
        except Exception as exc:
            logger.exception(
                "Failed to record canceled subscription",
                extra={"subscription_id": subscription_id},
            )
            raise UpstreamError("Error updating subscription", str(exc)) from exc
        logger.info(
            "Subscription canceled",
            extra={"user_id": str(user.id), "subscription_id": subscription_id},
        )

    def handle_webhook(self, payload: bytes, signature: str | None) -> BillingEvent:
        """Verify and apply a webhook delivery."""
        if not signature:
            raise InvalidRequestError("No signature found")
        event = self.gateway.construct_event(payload, signature)
        self.handle_event(event)
        return event

    def handle_event(self, event: BillingEvent) -> None:
        """Apply a verified event to the subscription table."""
        data = event.data.get("object")
        if not isinstance(data, Mapping):
            raise InvalidRequestError(f"Event {event.type} has no object payload")

        if event.type in {SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED}:
            provider_subscription = subscription_from_payload(data)
            self.subscriptions.upsert(self._build_subscription(provider_subscription))
        elif event.type == SUBSCRIPTION_DELETED:
            provider_subscription = subscription_from_payload(data)
            user_id = self._resolve_user_id(provider_subscription.customer_id)
            self.subscriptions.mark_canceled(
                user_id, provider_subscription.current_period_end
            )
        elif event.type == CHECKOUT_COMPLETED:
            subscription_id = data.get("subscription")
            if not isinstance(subscription_id, str) or not subscription_id:
                raise InvalidRequestError("Checkout session has no subscription")
            provider_subscription = self.gateway.retrieve_subscription(subscription_id)
            self.subscriptions.upsert(self._build_subscription(provider_subscription))
        else:
            logger.info("Ignoring billing event", extra={"event_type": event.type})
            return
        logger.info("Applied billing event", extra={"event_type": event.type})

    def _build_subscription(self, provider: ProviderSubscription) -> Subscription:
        plan = self.plans.get_by_price_id(provider.price_id)
        if plan is None:
            raise NotFoundError(f"No plan found for price ID: {provider.price_id}")
        user_id = self._resolve_user_id(provider.customer_id)
        return Subscription(
            user_id=user_id,
            status=provider.status,
            plan_type=plan.name,
            stripe_customer_id=provider.customer_id,
            stripe_subscription_id=provider.subscription_id,
            current_period_start=provider.current_period_start,
            current_period_end=provider.current_period_end,
        )

    def _resolve_user_id(self, customer_id: str) -> UUID:
        raw_user_id = self.gateway.get_customer_user_id(customer_id)
        if not raw_user_id:
            raise NotFoundError("No user ID found in customer metadata")
        try:
            return UUID(raw_user_id)
        except ValueError as exc:
            raise NotFoundError(
                f"Customer metadata has an invalid user ID: {raw_user_id}"
            ) from exc

    def _load_customer_id(self, user_id: UUID) -> str | None:
        try:
            return self.profiles.get_stripe_customer_id(user_id)
        except Exception as exc:
            logger.exception(
                "Failed to load customer profile", extra={"user_id": str(user_id)}
            )
            raise UpstreamError("Error loading customer profile", str(exc)) from exc

    def _save_customer_id(self, user_id: UUID, customer_id: str) -> None:
        try:
            self.profiles.set_stripe_customer_id(user_id, customer_id)
        except Exception as exc:
            logger.exception(
                "Failed to save customer profile", extra={"user_id": str(user_id)}
            )
            raise UpstreamError("Error saving customer profile", str(exc)) from exc


def subscription_from_payload(data: Mapping[str, object]) -> ProviderSubscription:
    """Parse a provider subscription object.

    Newer API versions report billing periods on the subscription item
    rather than on the subscription itself.
    """
    try:
        item = data["items"]["data"][0]  # type: ignore[index]
        price_id = item["price"]["id"]
        customer = data["customer"]
        subscription_id = data["id"]
    except (KeyError, IndexError, TypeError) as exc:
        raise InvalidRequestError("Malformed subscription payload") from exc
    if isinstance(customer, Mapping):
        customer = customer.get("id")
    return ProviderSubscription(
        subscription_id=str(subscription_id),
        customer_id=str(customer),
        status=str(data.get("status") or CANCELED_STATUS),
        price_id=str(price_id),
        current_period_start=_from_timestamp(
            data.get("current_period_start") or item.get("current_period_start")
        ),
        current_period_end=_from_timestamp(
            data.get("current_period_end") or item.get("current_period_end")
        ),
    )


def _from_timestamp(value: object) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return datetime.fromtimestamp(value, tz=UTC)
