"""Supabase repository for meals."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from platewise.domain.meals import Meal
from platewise.services.meals import MealRepository

_COLUMNS = (
    "id, user_id, image_url, meal_name, description, meal_time, analysis, "
    "created_at, calories, protein, carbs, fat"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meal rows."""

    client: Client

    def create_meal(self, payload: dict[str, object]) -> Meal:
        """Insert a meal row and return it."""
        response = self.client.table("meals").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create meal")
        return _parse_meal(response.data[0])

    def list_meals(self, user_id: UUID) -> list[Meal]:
        """Return a user's meals, newest first."""
        response = (
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_meal(row) for row in response.data or []]


def _parse_meal(row: dict[str, object]) -> Meal:
    return Meal(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        image_url=str(row["image_url"]),
        meal_name=str(row.get("meal_name") or ""),
        description=row.get("description"),
        meal_time=datetime.fromisoformat(str(row["meal_time"])),
        analysis=row.get("analysis"),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        calories=_optional_float(row.get("calories")),
        protein=_optional_float(row.get("protein")),
        carbs=_optional_float(row.get("carbs")),
        fat=_optional_float(row.get("fat")),
    )


def _optional_float(value: object) -> float | None:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    return None
