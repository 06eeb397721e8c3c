"""Meal creation: image storage, analysis and persistence."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from platewise.domain.analysis import AnalysisFailure
from platewise.domain.errors import InvalidRequestError, UpstreamError
from platewise.domain.meals import Meal, MealDraft
from platewise.services.analysis import MealAnalysisService
from platewise.services.images import (
    decode_base64_image,
    detect_mime_type,
    extension_for,
)
from platewise.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


class ImageStorage(Protocol):
    """Interface for storing meal photos."""

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store a blob at the given path."""

    def public_url(self, path: str) -> str:
        """Return the public URL of a stored blob."""


class MealRepository(Protocol):
    """Persistence interface for meals."""

    def create_meal(self, payload: dict[str, object]) -> Meal:
        """Insert a meal row and return the stored record."""

    def list_meals(self, user_id: UUID) -> list[Meal]:
        """Return a user's meals, newest first."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MealService:
    """Creates meals from uploaded photos.

    The image is stored first. A failed analysis is logged and the meal is
    still saved with a null analysis, so the photo is never lost.
    """

    storage: ImageStorage
    repository: MealRepository
    analysis_service: MealAnalysisService
    subscription_service: SubscriptionService
    clock: Callable[[], datetime] = field(default=_utc_now)

    async def create_meal(self, user_id: UUID, draft: MealDraft) -> Meal:
        """Store the photo, analyze it and insert the meal row."""
        try:
            image_bytes = decode_base64_image(draft.image_base64)
        except ValueError as exc:
            raise InvalidRequestError("Missing image data", str(exc)) from exc

        image_url = self._store_image(user_id, image_bytes)
        is_premium = self._is_premium(user_id)
        analysis = await self._analyze(
            user_id, image_url, is_premium, draft.meal_name, draft.description
        )

        payload: dict[str, object] = {
            "user_id": str(user_id),
            "image_url": image_url,
            "meal_name": draft.meal_name,
            "description": draft.description,
            "meal_time": draft.meal_time.isoformat(),
            "analysis": analysis,
            **draft.nutrition.as_row(),
        }
        try:
            meal = self.repository.create_meal(payload)
        except Exception as exc:
            logger.exception("Failed to save meal", extra={"user_id": str(user_id)})
            raise UpstreamError("Error saving meal", str(exc)) from exc
        logger.info(
            "Meal created",
            extra={
                "user_id": str(user_id),
                "meal_id": str(meal.id),
                "analyzed": analysis is not None,
            },
        )
        return meal

    def list_meals(self, user_id: UUID) -> list[Meal]:
        """Return the user's meals, newest first."""
        return self.repository.list_meals(user_id)

    def _store_image(self, user_id: UUID, image_bytes: bytes) -> str:
        content_type = detect_mime_type(image_bytes)
        timestamp_ms = int(self.clock().timestamp() * 1000)
        path = f"{user_id}/{timestamp_ms}.{extension_for(content_type)}"
        try:
            self.storage.upload(path, image_bytes, content_type)
            return self.storage.public_url(path)
        except Exception as exc:
            logger.exception("Failed to upload meal image", extra={"path": path})
            raise UpstreamError("Error uploading image", str(exc)) from exc

    def _is_premium(self, user_id: UUID) -> bool:
        try:
            return self.subscription_service.is_premium(user_id)
        except Exception as exc:
            logger.exception(
                "Failed to load subscription", extra={"user_id": str(user_id)}
            )
            raise UpstreamError("Error loading subscription", str(exc)) from exc

    async def _analyze(
        self,
        user_id: UUID,
        image_url: str,
        is_premium: bool,
        meal_name: str,
        description: str | None,
    ) -> dict[str, object] | None:
        try:
            result = await self.analysis_service.analyze(
                image_url,
                is_premium,
                meal_name=meal_name,
                description=description,
            )
        except Exception:
            logger.exception(
                "Meal analysis raised; saving meal without analysis",
                extra={"user_id": str(user_id)},
            )
            return None
        if isinstance(result, AnalysisFailure):
            logger.warning(
                "Meal analysis failed; saving meal without analysis",
                extra={
                    "user_id": str(user_id),
                    "kind": result.kind.value,
                    "reason": result.message,
                },
            )
            return None
        return result.analysis
