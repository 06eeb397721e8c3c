"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from platewise.adapters.openai_analysis_client import OpenAIAnalysisClient
from platewise.adapters.stripe_payment_gateway import StripePaymentGateway
from platewise.adapters.supabase_auth_gateway import SupabaseAuthGateway
from platewise.adapters.supabase_billing_repository import (
    SupabasePlanRepository,
    SupabaseProfileRepository,
)
from platewise.adapters.supabase_image_storage import SupabaseImageStorage
from platewise.adapters.supabase_meal_repository import SupabaseMealRepository
from platewise.adapters.supabase_subscription_repository import (
    SupabaseSubscriptionRepository,
)
from platewise.config import Settings
from platewise.services.analysis import MealAnalysisService
from platewise.services.auth import AuthService
from platewise.services.billing import BillingService
from platewise.services.meals import MealService
from platewise.services.subscriptions import SubscriptionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    analysis_service: MealAnalysisService
    subscription_service: SubscriptionService
    meal_service: MealService
    billing_service: BillingService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    subscription_repository = SupabaseSubscriptionRepository(supabase_client)
    openai_client = OpenAIAnalysisClient.create(resolved_settings.openai_api_key)
    analysis_service = MealAnalysisService(
        client=openai_client,
        model=resolved_settings.openai_model,
        max_output_tokens=resolved_settings.openai_max_output_tokens,
    )
    subscription_service = SubscriptionService(subscription_repository)
    meal_service = MealService(
        storage=SupabaseImageStorage(
            supabase_client, bucket=resolved_settings.meal_images_bucket
        ),
        repository=SupabaseMealRepository(supabase_client),
        analysis_service=analysis_service,
        subscription_service=subscription_service,
    )
    billing_service = BillingService(
        gateway=StripePaymentGateway.create(
            api_key=resolved_settings.stripe_secret_key,
            webhook_secret=resolved_settings.stripe_webhook_secret,
        ),
        subscriptions=subscription_repository,
        plans=SupabasePlanRepository(supabase_client),
        profiles=SupabaseProfileRepository(supabase_client),
        app_url=resolved_settings.app_url,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=AuthService(SupabaseAuthGateway(supabase_client)),
        analysis_service=analysis_service,
        subscription_service=subscription_service,
        meal_service=meal_service,
        billing_service=billing_service,
        close_resources=close_resources,
    )
