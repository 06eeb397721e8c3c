"""Stripe-backed payment gateway."""

import json
from dataclasses import dataclass
from uuid import UUID

import stripe

from platewise.domain.errors import InvalidRequestError, UpstreamError
from platewise.domain.subscriptions import BillingEvent, ProviderSubscription
from platewise.services.billing import PaymentGateway, subscription_from_payload


@dataclass
class StripePaymentGateway(PaymentGateway):
    """Payment gateway backed by the Stripe API."""

    client: stripe.StripeClient
    webhook_secret: str

    @classmethod
    def create(cls, api_key: str, webhook_secret: str) -> "StripePaymentGateway":
        """Create a gateway with its own Stripe client."""
        return cls(client=stripe.StripeClient(api_key), webhook_secret=webhook_secret)

    def create_customer(self, email: str | None, user_id: UUID) -> str:
        """Create a customer tagged with the user id."""
        params: dict[str, object] = {"metadata": {"userId": str(user_id)}}
        if email:
            params["email"] = email
        try:
            customer = self.client.customers.create(params=params)
        except stripe.StripeError as exc:
            raise UpstreamError(f"Failed to create customer: {exc}") from exc
        return customer.id

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        user_id: UUID,
    ) -> str:
        """Create a subscription-mode checkout session."""
        try:
            session = self.client.checkout.sessions.create(
                params={
                    "customer": customer_id,
                    "line_items": [{"price": price_id, "quantity": 1}],
                    "mode": "subscription",
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                    "metadata": {"userId": str(user_id)},
                }
            )
        except stripe.StripeError as exc:
            raise UpstreamError(f"Failed to create checkout session: {exc}") from exc
        return session.id

    def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately."""
        try:
            self.client.subscriptions.cancel(subscription_id)
        except stripe.StripeError as exc:
            raise UpstreamError(f"Failed to cancel subscription: {exc}") from exc

    def retrieve_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Fetch and parse a subscription."""
        try:
            subscription = self.client.subscriptions.retrieve(subscription_id)
        except stripe.StripeError as exc:
            raise UpstreamError(f"Failed to retrieve subscription: {exc}") from exc
        return subscription_from_payload(subscription)

    def get_customer_user_id(self, customer_id: str) -> str | None:
        """Return metadata.userId for a customer."""
        try:
            customer = self.client.customers.retrieve(customer_id)
        except stripe.StripeError as exc:
            raise UpstreamError(f"Failed to retrieve customer: {exc}") from exc
        metadata = customer.get("metadata") or {}
        user_id = metadata.get("userId")
        return str(user_id) if user_id else None

    def construct_event(self, payload: bytes, signature: str) -> BillingEvent:
        """Verify the signature header and decode the event."""
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise InvalidRequestError(
                f"Webhook signature verification failed: {exc}"
            ) from exc
        event = json.loads(payload)
        return BillingEvent(
            type=str(event.get("type", "")), data=event.get("data") or {}
        )
