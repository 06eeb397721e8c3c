"""Meal analysis service backed by a vision LLM."""

import logging
from dataclasses import dataclass
from typing import Protocol

from platewise.domain.analysis import (
    AnalysisErrorKind,
    AnalysisFailure,
    AnalysisResult,
)
from platewise.domain.errors import InvalidRequestError, UpstreamError
from platewise.services.images import to_image_reference
from platewise.services.prompts import SYSTEM_PROMPT, select_prompt, user_message
from platewise.services.validation import parse_analysis

logger = logging.getLogger(__name__)


class AnalysisClient(Protocol):
    """Interface for a JSON-mode vision completion."""

    async def complete_json(
        self,
        *,
        model: str,
        instructions: str,
        prompt: str,
        image_url: str,
        max_output_tokens: int,
    ) -> str:
        """Return the raw text of a single JSON-only completion.

        Raises:
            UpstreamError: If the provider call fails or returns nothing.
        """


@dataclass
class MealAnalysisService:
    """Service that prompts the model once and validates its answer."""

    client: AnalysisClient
    model: str
    max_output_tokens: int = 1500

    async def analyze(
        self,
        image: str,
        is_premium: bool,
        meal_name: str | None = None,
        description: str | None = None,
    ) -> AnalysisResult:
        """Analyze an image URL or base64 image for the requested tier."""
        if not image or not image.strip():
            raise InvalidRequestError("Either imageBase64 or imageUrl is required")
        try:
            image_url = to_image_reference(image)
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc

        try:
            raw = await self.client.complete_json(
                model=self.model,
                instructions=f"{SYSTEM_PROMPT}\n\n{select_prompt(is_premium)}",
                prompt=user_message(meal_name, description),
                image_url=image_url,
                max_output_tokens=self.max_output_tokens,
            )
        except UpstreamError as exc:
            logger.warning(
                "Analysis model call failed",
                extra={"is_premium": is_premium, "error": exc.message},
            )
            return AnalysisFailure(
                kind=AnalysisErrorKind.UPSTREAM_FAILURE, message=exc.message
            )

        result = parse_analysis(raw, is_premium)
        if isinstance(result, AnalysisFailure):
            logger.warning(
                "Analysis response rejected",
                extra={"kind": result.kind.value, "is_premium": is_premium},
            )
        return result
