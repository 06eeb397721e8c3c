"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from platewise.api.models import (
    CancelSubscriptionRequest,
    CheckoutRequest,
    MealAnalysisRequest,
    MealCreateRequest,
)
from platewise.app_logging import configure_logging
from platewise.config import parse_cors_origins
from platewise.containers import AppContainer
from platewise.domain.analysis import AnalysisFailure
from platewise.domain.errors import (
    InvalidRequestError,
    PlatewiseError,
    UnauthorizedError,
    UpstreamError,
)
from platewise.domain.meals import Meal
from platewise.domain.models import AuthUser


def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> AuthUser:
    """Resolve the bearer token on the request to a user."""
    container: AppContainer = request.app.state.container
    return container.auth_service.authenticate(authorization)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(container.settings.cors_allow_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.exception_handler(PlatewiseError)
    async def platewise_error_handler(
        request: Request, exc: PlatewiseError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": exc.message},
            )
        return _error_response(exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"][1:]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return _error_response(400, "Invalid request body", details)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/meal-analysis")
    async def meal_analysis(
        body: MealAnalysisRequest, request: Request
    ) -> dict[str, object]:
        """Analyze a meal photo and return the validated analysis."""
        state_container: AppContainer = request.app.state.container
        image = body.image
        if not image:
            raise InvalidRequestError("Either imageBase64 or imageUrl is required")
        result = await state_container.analysis_service.analyze(
            image,
            body.is_premium,
            meal_name=body.meal_name,
            description=body.description,
        )
        if isinstance(result, AnalysisFailure):
            raise PlatewiseError(result.message, result.details(), status_code=500)
        return {"analysis": result.analysis}

    @app.post("/meals")
    async def create_meal(
        body: MealCreateRequest,
        request: Request,
        user: AuthUser = Depends(require_user),
    ) -> dict[str, object]:
        """Store a meal photo, analyze it and save the meal."""
        state_container: AppContainer = request.app.state.container
        try:
            meal = await state_container.meal_service.create_meal(
                user.id, body.to_draft()
            )
        except UnauthorizedError:
            raise
        except PlatewiseError as exc:
            raise exc.with_status(400) from exc
        return _meal_payload(meal)

    @app.get("/meals")
    async def list_meals(
        request: Request, user: AuthUser = Depends(require_user)
    ) -> list[dict[str, object]]:
        """Return the caller's meals, newest first."""
        state_container: AppContainer = request.app.state.container
        try:
            meals = state_container.meal_service.list_meals(user.id)
        except Exception as exc:
            logger.exception("Failed to list meals", extra={"user_id": str(user.id)})
            raise InvalidRequestError("Error fetching meals", str(exc)) from exc
        return [_meal_payload(meal) for meal in meals]

    @app.post("/stripe-webhook")
    async def stripe_webhook(request: Request) -> JSONResponse:
        """Apply a signed subscription event from the payment provider."""
        state_container: AppContainer = request.app.state.container
        payload = await request.body()
        signature = request.headers.get("stripe-signature")
        try:
            event = state_container.billing_service.handle_webhook(payload, signature)
        except PlatewiseError as exc:
            logger.warning("Webhook rejected", extra={"error": exc.message})
            return _error_response(400, exc.message)
        except Exception as exc:
            logger.exception("Error processing webhook")
            return _error_response(400, str(exc) or type(exc).__name__)
        logger.info("Webhook processed", extra={"event_type": event.type})
        return JSONResponse({"received": True})

    @app.post("/create-checkout-session")
    async def create_checkout_session(
        body: CheckoutRequest,
        request: Request,
        user: AuthUser = Depends(require_user),
    ) -> dict[str, str]:
        """Start a subscription checkout for the caller."""
        state_container: AppContainer = request.app.state.container
        try:
            session_id = state_container.billing_service.create_checkout_session(
                user, body.price_id
            )
        except UpstreamError as exc:
            raise exc.with_status(400) from exc
        return {"sessionId": session_id}

    @app.post("/cancel-subscription")
    async def cancel_subscription(
        body: CancelSubscriptionRequest,
        request: Request,
        user: AuthUser = Depends(require_user),
    ) -> dict[str, bool]:
        """Cancel one of the caller's subscriptions."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.billing_service.cancel_subscription(
                user, body.subscription_id
            )
        except UpstreamError as exc:
            raise exc.with_status(400) from exc
        return {"success": True}

    return app


def _error_response(
    status_code: int, message: str, details: object | None = None
) -> JSONResponse:
    body: dict[str, object] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _meal_payload(meal: Meal) -> dict[str, object]:
    payload = asdict(meal)
    payload["id"] = str(meal.id)
    payload["user_id"] = str(meal.user_id)
    payload["meal_time"] = meal.meal_time.isoformat()
    payload["created_at"] = meal.created_at.isoformat()
    return payload
