"""Tests for HTTP-based adapters."""

import asyncio
import hashlib
import hmac
import json
import time
from datetime import UTC, datetime
from uuid import uuid4

import httpx
import openai
import pytest
import stripe

from platewise.adapters.meals_api_client import HttpxMealsApiClient
from platewise.adapters.openai_analysis_client import OpenAIAnalysisClient
from platewise.adapters.stripe_payment_gateway import StripePaymentGateway
from platewise.domain.errors import InvalidRequestError, UpstreamError
from platewise.domain.meals import ManualNutrition
from platewise.services.uploads import PreparedImage


class _FakeResponses:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, responses: _FakeResponses) -> None:
        self.responses = responses


def _complete(client: OpenAIAnalysisClient) -> str:
    return asyncio.run(
        client.complete_json(
            model="gpt-4o-mini",
            instructions="Respond in JSON",
            prompt="Analyze this meal image and respond in JSON.",
            image_url="data:image/jpeg;base64,ZmFrZQ==",
            max_output_tokens=1500,
        )
    )


def test_openai_analysis_client_requests_json_mode() -> None:
    responses = _FakeResponses(output_text='{"foods": []}')
    client = OpenAIAnalysisClient(client=_FakeOpenAI(responses))

    result = _complete(client)

    assert result == '{"foods": []}'
    payload = responses.last_payload
    assert payload is not None
    assert payload["text"] == {"format": {"type": "json_object"}}
    assert payload["max_output_tokens"] == 1500
    content = payload["input"][0]["content"]  # type: ignore[index]
    assert content[1] == {
        "type": "input_image",
        "image_url": "data:image/jpeg;base64,ZmFrZQ==",
    }


def test_openai_analysis_client_wraps_provider_errors() -> None:
    responses = _FakeResponses(error=openai.OpenAIError("rate limited"))
    client = OpenAIAnalysisClient(client=_FakeOpenAI(responses))

    with pytest.raises(UpstreamError, match="OpenAI API error: rate limited"):
        _complete(client)


def test_openai_analysis_client_rejects_empty_output() -> None:
    client = OpenAIAnalysisClient(client=_FakeOpenAI(_FakeResponses(output_text="")))

    with pytest.raises(UpstreamError, match="empty response"):
        _complete(client)


class _FakeCustomers:
    def __init__(self) -> None:
        self.created: list[dict[str, object]] = []
        self.metadata: dict[str, dict[str, str]] = {}

    def create(self, params):  # type: ignore[no-untyped-def]
        self.created.append(params)
        return type("Customer", (), {"id": "cus_new"})()

    def retrieve(self, customer_id: str):  # type: ignore[no-untyped-def]
        if customer_id not in self.metadata:
            raise stripe.InvalidRequestError("No such customer", "customer")
        return {"id": customer_id, "metadata": self.metadata[customer_id]}


class _FakeSessions:
    def __init__(self) -> None:
        self.params: dict[str, object] | None = None

    def create(self, params):  # type: ignore[no-untyped-def]
        self.params = params
        return type("Session", (), {"id": "cs_test_42"})()


class _FakeSubscriptions:
    def __init__(self) -> None:
        self.canceled: list[str] = []

    def cancel(self, subscription_id: str) -> None:
        self.canceled.append(subscription_id)

    def retrieve(self, subscription_id: str):  # type: ignore[no-untyped-def]
        return {
            "id": subscription_id,
            "customer": "cus_new",
            "status": "active",
            "current_period_start": 1714564800,
            "current_period_end": 1717243200,
            "items": {"data": [{"price": {"id": "price_premium"}}]},
        }


class _FakeStripeClient:
    def __init__(self) -> None:
        self.customers = _FakeCustomers()
        self.checkout = type("Checkout", (), {"sessions": _FakeSessions()})()
        self.subscriptions = _FakeSubscriptions()


def _gateway() -> tuple[StripePaymentGateway, _FakeStripeClient]:
    fake = _FakeStripeClient()
    return StripePaymentGateway(client=fake, webhook_secret="whsec_test"), fake


def _sign(payload: str, secret: str = "whsec_test") -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def test_stripe_gateway_checkout_and_customer() -> None:
    gateway, fake = _gateway()
    user_id = uuid4()

    customer_id = gateway.create_customer("eater@example.com", user_id)
    session_id = gateway.create_checkout_session(
        customer_id=customer_id,
        price_id="price_premium",
        success_url="https://app/dashboard?success=true",
        cancel_url="https://app/pricing?canceled=true",
        user_id=user_id,
    )

    assert customer_id == "cus_new"
    assert fake.customers.created[0] == {
        "metadata": {"userId": str(user_id)},
        "email": "eater@example.com",
    }
    assert session_id == "cs_test_42"
    params = fake.checkout.sessions.params
    assert params is not None
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_premium", "quantity": 1}]


def test_stripe_gateway_subscription_lookups() -> None:
    gateway, fake = _gateway()
    fake.customers.metadata["cus_new"] = {"userId": "user-1"}

    gateway.cancel_subscription("sub_1")
    subscription = gateway.retrieve_subscription("sub_1")

    assert fake.subscriptions.canceled == ["sub_1"]
    assert subscription.price_id == "price_premium"
    assert subscription.current_period_end == datetime.fromtimestamp(
        1717243200, tz=UTC
    )
    assert gateway.get_customer_user_id("cus_new") == "user-1"


def test_stripe_gateway_wraps_provider_errors() -> None:
    gateway, _ = _gateway()

    with pytest.raises(UpstreamError, match="Failed to retrieve customer"):
        gateway.get_customer_user_id("cus_missing")


def test_stripe_gateway_verifies_webhook_signature() -> None:
    gateway, _ = _gateway()
    payload = json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "customer": "cus_new"}},
        }
    )

    event = gateway.construct_event(payload.encode(), _sign(payload))

    assert event.type == "customer.subscription.deleted"
    assert event.data["object"]["id"] == "sub_1"  # type: ignore[index]


def test_stripe_gateway_rejects_forged_signature() -> None:
    gateway, _ = _gateway()
    payload = json.dumps({"id": "evt_1", "object": "event", "type": "x", "data": {}})

    with pytest.raises(InvalidRequestError, match="signature verification failed"):
        gateway.construct_event(payload.encode(), _sign(payload, secret="whsec_other"))


def test_meals_api_client_posts_prepared_image() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=[{"meal_name": "Lunch"}])
        return httpx.Response(200, json={"id": "meal-1", "analysis": None})

    transport = httpx.MockTransport(handler)
    client = HttpxMealsApiClient(
        base_url="https://api.example.com",
        http_client=httpx.AsyncClient(transport=transport),
    )
    image = PreparedImage(
        content_type="image/png",
        data=b"png",
        data_url="data:image/png;base64,cG5n",
    )

    created = asyncio.run(
        client.create_meal(
            access_token="token-1",
            image=image,
            meal_name="Lunch",
            meal_time=datetime(2024, 5, 1, 12, 30, tzinfo=UTC),
            nutrition=ManualNutrition(calories=400),
        )
    )
    listed = asyncio.run(client.list_meals("token-1"))

    assert created == {"id": "meal-1", "analysis": None}
    assert listed == [{"meal_name": "Lunch"}]
    post = seen[0]
    assert post.url.path == "/meals"
    assert post.headers["Authorization"] == "Bearer token-1"
    body = json.loads(post.content.decode())
    assert body["imageBase64"] == "data:image/png;base64,cG5n"
    assert body["mealTime"] == "2024-05-01T12:30:00+00:00"
    assert body["calories"] == 400
    assert "protein" not in body


def test_meals_api_client_raises_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Invalid token"})

    client = HttpxMealsApiClient(
        base_url="https://api.example.com",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.list_meals("bad"))
