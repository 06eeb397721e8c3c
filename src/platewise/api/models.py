"""Pydantic models for HTTP request bodies."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from platewise.domain.meals import ManualNutrition, MealDraft


class _RequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MealAnalysisRequest(_RequestBody):
    """Body of the meal-analysis function."""

    image_url: str | None = Field(default=None, alias="imageUrl")
    image_base64: str | None = Field(default=None, alias="imageBase64")
    meal_name: str | None = Field(default=None, alias="mealName")
    description: str | None = None
    is_premium: bool = Field(default=False, alias="isPremium")

    @property
    def image(self) -> str | None:
        """Return the inline image if present, else the URL."""
        return self.image_base64 or self.image_url


class MealCreateRequest(_RequestBody):
    """Body of the meals function."""

    image_base64: str = Field(alias="imageBase64", min_length=1)
    meal_name: str = Field(alias="mealName", min_length=1)
    description: str | None = None
    meal_time: datetime = Field(alias="mealTime")
    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)

    def to_draft(self) -> MealDraft:
        """Convert the body to a domain draft."""
        return MealDraft(
            image_base64=self.image_base64,
            meal_name=self.meal_name,
            meal_time=self.meal_time,
            description=self.description,
            nutrition=ManualNutrition(
                calories=self.calories,
                protein=self.protein,
                carbs=self.carbs,
                fat=self.fat,
            ),
        )


class CheckoutRequest(_RequestBody):
    """Body of the checkout function."""

    price_id: str | None = Field(default=None, alias="priceId")


class CancelSubscriptionRequest(_RequestBody):
    """Body of the cancel-subscription function."""

    subscription_id: str | None = Field(default=None, alias="subscriptionId")
