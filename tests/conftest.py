"""Shared test fixtures."""

import base64
import copy
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from platewise.config import Settings
from platewise.containers import AppContainer
from platewise.domain.errors import InvalidRequestError, UpstreamError
from platewise.domain.meals import Meal
from platewise.domain.models import AuthUser
from platewise.domain.subscriptions import (
    CANCELED_STATUS,
    BillingEvent,
    ProviderSubscription,
    Subscription,
    SubscriptionPlan,
)
from platewise.services.analysis import AnalysisClient, MealAnalysisService
from platewise.services.auth import AuthGateway, AuthService
from platewise.services.billing import (
    BillingService,
    PaymentGateway,
    PlanRepository,
    ProfileRepository,
)
from platewise.services.meals import ImageStorage, MealRepository, MealService
from platewise.services.subscriptions import (
    SubscriptionRepository,
    SubscriptionService,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_BASE64 = base64.b64encode(PNG_BYTES).decode("ascii")
FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def free_analysis_payload() -> dict[str, object]:
    return {
        "analysis": "A balanced plate with lean protein and grains.",
        "foods": ["rice", "chicken"],
        "foodDetails": {
            "rice": {"category": "Grain", "description": "Steamed white rice."}
        },
        "calories": 500,
        "nutritionScore": 72,
        "nutritionScoreExplanation": "Good protein, little fiber.",
        "macronutrients": {"protein": 20, "carbs": 60, "fat": 25},
        "evaluation": {
            "strengths": ["High in protein"],
            "weaknesses": ["Low in fiber"],
            "suggestions": ["Add vegetables"],
        },
        "foodGroupsEvaluation": {
            "present": ["Grains", "Protein"],
            "missing": ["Vegetables"],
        },
        "healthScore": 7,
        "recommendations": ["Add a side salad"],
    }


def premium_analysis_payload() -> dict[str, object]:
    payload = free_analysis_payload()
    payload.update(
        {
            "micronutrients": {
                "fiber": 3.5,
                "sugar": 2,
                "sodium": 480,
                "vitamins": ["Vitamin B6"],
                "minerals": ["Iron"],
            },
            "overallNutriScore": "B",
            "nutrientBreakdown": {
                "sugar": {"amount": 2, "unit": "g", "level": "low"},
                "salt": {"amount": 1.2, "unit": "g", "level": "moderate"},
                "fiber": {"amount": 3.5, "unit": "g", "level": "good"},
                "saturatedFat": {"amount": 4, "unit": "g", "level": "moderate"},
                "proteinQuality": "Complete protein from chicken",
            },
            "personalizedRecommendations": ["Swap white rice for brown rice"],
        }
    )
    return payload


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis client returning fixed text or raising."""

    response_text: str = field(
        default_factory=lambda: json.dumps(free_analysis_payload())
    )
    error: Exception | None = None
    requests: list[dict[str, object]] = field(default_factory=list)

    async def complete_json(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        image_url: str,
        max_output_tokens: int,
    ) -> str:
        self.requests.append(
            {
                "model": model,
                "instructions": instructions,
                "prompt": prompt,
                "image_url": image_url,
                "max_output_tokens": max_output_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response_text


@dataclass
class FakeAuthGateway(AuthGateway):
    """Auth gateway with a fixed token table."""

    users: dict[str, AuthUser] = field(default_factory=dict)

    def get_user(self, access_token: str) -> AuthUser | None:
        return self.users.get(access_token)


@dataclass
class InMemoryImageStorage(ImageStorage):
    """In-memory image storage for tests."""

    blobs: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    fail: bool = False

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.blobs[path] = (data, content_type)

    def public_url(self, path: str) -> str:
        return f"https://storage.example.com/meal-images/{path}"


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    meals: list[Meal] = field(default_factory=list)
    payloads: list[dict[str, object]] = field(default_factory=list)

    def create_meal(self, payload: dict[str, object]) -> Meal:
        self.payloads.append(payload)
        meal = Meal(
            id=uuid4(),
            user_id=UUID(str(payload["user_id"])),
            image_url=str(payload["image_url"]),
            meal_name=str(payload["meal_name"]),
            description=payload.get("description"),
            meal_time=datetime.fromisoformat(str(payload["meal_time"])),
            analysis=payload.get("analysis"),
            created_at=FIXED_NOW,
            calories=payload.get("calories"),
            protein=payload.get("protein"),
            carbs=payload.get("carbs"),
            fat=payload.get("fat"),
        )
        self.meals.append(meal)
        return meal

    def list_meals(self, user_id: UUID) -> list[Meal]:
        return [meal for meal in reversed(self.meals) if meal.user_id == user_id]


@dataclass
class InMemorySubscriptionRepository(SubscriptionRepository):
    """In-memory subscription repository keyed by user id."""

    rows: dict[UUID, Subscription] = field(default_factory=dict)

    def get_by_user_id(self, user_id: UUID) -> Subscription | None:
        return self.rows.get(user_id)

    def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Subscription | None:
        for row in self.rows.values():
            if row.stripe_subscription_id == stripe_subscription_id:
                return row
        return None

    def upsert(self, subscription: Subscription) -> None:
        self.rows[subscription.user_id] = subscription

    def mark_canceled(self, user_id: UUID, current_period_end) -> None:
        row = self.rows.get(user_id)
        if row is None:
            return
        self.rows[user_id] = _replace_status(row, current_period_end)

    def mark_canceled_by_subscription_id(
        self, stripe_subscription_id: str, current_period_end
    ) -> None:
        row = self.get_by_stripe_subscription_id(stripe_subscription_id)
        if row is None:
            return
        self.rows[row.user_id] = _replace_status(row, current_period_end)


def _replace_status(row: Subscription, current_period_end) -> Subscription:
    return Subscription(
        user_id=row.user_id,
        status=CANCELED_STATUS,
        plan_type=row.plan_type,
        stripe_customer_id=row.stripe_customer_id,
        stripe_subscription_id=row.stripe_subscription_id,
        current_period_start=row.current_period_start,
        current_period_end=current_period_end,
    )


@dataclass
class InMemoryPlanRepository(PlanRepository):
    """In-memory plan catalog."""

    plans: dict[str, SubscriptionPlan] = field(
        default_factory=lambda: {
            "price_premium": SubscriptionPlan(
                name="Premium", stripe_price_id="price_premium"
            )
        }
    )

    def get_by_price_id(self, price_id: str) -> SubscriptionPlan | None:
        return self.plans.get(price_id)


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile billing fields."""

    customer_ids: dict[UUID, str] = field(default_factory=dict)

    def get_stripe_customer_id(self, user_id: UUID) -> str | None:
        return self.customer_ids.get(user_id)

    def set_stripe_customer_id(self, user_id: UUID, customer_id: str) -> None:
        self.customer_ids[user_id] = customer_id


@dataclass
class FakePaymentGateway(PaymentGateway):
    """Payment gateway that records calls."""

    customer_users: dict[str, str] = field(default_factory=dict)
    subscriptions: dict[str, ProviderSubscription] = field(default_factory=dict)
    created_customers: list[tuple[str | None, UUID]] = field(default_factory=list)
    checkout_sessions: list[dict[str, object]] = field(default_factory=list)
    canceled: list[str] = field(default_factory=list)
    valid_signature: str = "valid-signature"
    fail_cancel: bool = False

    def create_customer(self, email: str | None, user_id: UUID) -> str:
        self.created_customers.append((email, user_id))
        customer_id = f"cus_{len(self.created_customers)}"
        self.customer_users[customer_id] = str(user_id)
        return customer_id

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        user_id: UUID,
    ) -> str:
        self.checkout_sessions.append(
            {
                "customer_id": customer_id,
                "price_id": price_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "user_id": user_id,
            }
        )
        return f"cs_test_{len(self.checkout_sessions)}"

    def cancel_subscription(self, subscription_id: str) -> None:
        if self.fail_cancel:
            raise UpstreamError("Failed to cancel subscription")
        self.canceled.append(subscription_id)

    def retrieve_subscription(self, subscription_id: str) -> ProviderSubscription:
        return self.subscriptions[subscription_id]

    def get_customer_user_id(self, customer_id: str) -> str | None:
        return self.customer_users.get(customer_id)

    def construct_event(self, payload: bytes, signature: str) -> BillingEvent:
        if signature != self.valid_signature:
            raise InvalidRequestError("Webhook signature verification failed")
        event = json.loads(payload)
        return BillingEvent(type=event["type"], data=event["data"])


def subscription_event(
    event_type: str,
    customer_id: str,
    subscription_id: str = "sub_123",
    price_id: str = "price_premium",
    status: str = "active",
) -> dict[str, object]:
    return {
        "id": "evt_1",
        "type": event_type,
        "data": {
            "object": {
                "id": subscription_id,
                "object": "subscription",
                "customer": customer_id,
                "status": status,
                "current_period_start": 1714564800,
                "current_period_end": 1717243200,
                "items": {"data": [{"price": {"id": price_id}}]},
            }
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="anon-key",
        supabase_service_key="test.service.key",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        openai_api_key="openai-key",
        app_url="http://localhost:8080/",
        environment="test",
    )


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id=uuid4(), email="eater@example.com")


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def container(
    settings: Settings, user: AuthUser, analysis_client: FakeAnalysisClient
) -> AppContainer:
    subscription_repository = InMemorySubscriptionRepository()
    analysis_service = MealAnalysisService(
        client=analysis_client,
        model=settings.openai_model,
        max_output_tokens=settings.openai_max_output_tokens,
    )
    subscription_service = SubscriptionService(subscription_repository)
    meal_service = MealService(
        storage=InMemoryImageStorage(),
        repository=InMemoryMealRepository(),
        analysis_service=analysis_service,
        subscription_service=subscription_service,
        clock=lambda: FIXED_NOW,
    )
    billing_service = BillingService(
        gateway=FakePaymentGateway(),
        subscriptions=subscription_repository,
        plans=InMemoryPlanRepository(),
        profiles=InMemoryProfileRepository(),
        app_url=settings.app_url,
        clock=lambda: FIXED_NOW,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        auth_service=AuthService(FakeAuthGateway(users={"good-token": user})),
        analysis_service=analysis_service,
        subscription_service=subscription_service,
        meal_service=meal_service,
        billing_service=billing_service,
        close_resources=close_resources,
    )


def clone(payload: dict[str, object]) -> dict[str, object]:
    return copy.deepcopy(payload)
