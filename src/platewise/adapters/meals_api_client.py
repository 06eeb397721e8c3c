"""Public HTTP client for the meals API, used by front ends to upload meals.

Nothing in the server imports this module.
"""

from dataclasses import dataclass
from datetime import datetime

import httpx

from platewise.domain.meals import ManualNutrition
from platewise.services.uploads import PreparedImage


@dataclass
class HttpxMealsApiClient:
    """HTTPX-backed client for the meals endpoints."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxMealsApiClient":
        """Create a meals client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def create_meal(  # noqa: PLR0913
        self,
        *,
        access_token: str,
        image: PreparedImage,
        meal_name: str,
        meal_time: datetime,
        description: str | None = None,
        nutrition: ManualNutrition | None = None,
    ) -> dict[str, object]:
        """Upload a prepared photo and return the stored meal."""
        body: dict[str, object] = {
            "imageBase64": image.data_url,
            "mealName": meal_name,
            "mealTime": meal_time.isoformat(),
            "description": description,
        }
        if nutrition is not None:
            body.update(nutrition.as_row())
        response = await self.http_client.post(
            f"{self.base_url}/meals",
            headers=_auth_headers(access_token),
            json=body,
            timeout=60,
        )
        response.raise_for_status()
        return response.json()

    async def list_meals(self, access_token: str) -> list[dict[str, object]]:
        """Return the caller's meals, newest first."""
        response = await self.http_client.get(
            f"{self.base_url}/meals",
            headers=_auth_headers(access_token),
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
