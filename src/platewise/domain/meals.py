"""Domain models for stored meals."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class ManualNutrition:
    """Nutrition values the user typed in alongside the photo."""

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None

    def as_row(self) -> dict[str, float]:
        """Return only the values that were provided."""
        values = {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class MealDraft:
    """Validated input for creating a meal."""

    image_base64: str
    meal_name: str
    meal_time: datetime
    description: str | None = None
    nutrition: ManualNutrition = field(default_factory=ManualNutrition)


@dataclass(frozen=True)
class Meal:
    """Persisted meal record."""

    id: UUID
    user_id: UUID
    image_url: str
    meal_name: str
    description: str | None
    meal_time: datetime
    analysis: dict[str, object] | None
    created_at: datetime
    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
