"""Supabase repositories for the plan catalog and profile billing fields."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from platewise.domain.subscriptions import SubscriptionPlan
from platewise.services.billing import PlanRepository, ProfileRepository


@dataclass
class SupabasePlanRepository(PlanRepository):
    """Reads subscription plans keyed by provider price id."""

    client: Client

    def get_by_price_id(self, price_id: str) -> SubscriptionPlan | None:
        """Return the plan for a provider price id."""
        response = (
            self.client.table("subscription_plans")
            .select("name, stripe_price_id")
            .eq("stripe_price_id", price_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return SubscriptionPlan(
            name=str(row["name"]), stripe_price_id=str(row["stripe_price_id"])
        )


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Stores the provider customer id on the user's profile."""

    client: Client

    def get_stripe_customer_id(self, user_id: UUID) -> str | None:
        """Return the saved customer id, if any."""
        response = (
            self.client.table("profiles")
            .select("stripe_customer_id")
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        customer_id = response.data[0].get("stripe_customer_id")
        return str(customer_id) if customer_id else None

    def set_stripe_customer_id(self, user_id: UUID, customer_id: str) -> None:
        """Save the customer id on the user's profile."""
        self.client.table("profiles").update(
            {"stripe_customer_id": customer_id}
        ).eq("id", str(user_id)).execute()
