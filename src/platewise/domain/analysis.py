"""Schema and result types for meal analysis responses."""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, JsonValue, StrictStr

NUTRI_SCORES = ("A", "B", "C", "D", "E")
NUTRIENT_LEVELS = ("low", "moderate", "high", "good", "excellent")


def _require_number(value: object) -> object:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


Number = Annotated[int | float, BeforeValidator(_require_number)]


class _Section(BaseModel):
    """Nested object that keeps any extra keys the model returned."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Macronutrients(_Section):
    protein: Number
    carbs: Number
    fat: Number


class Micronutrients(_Section):
    fiber: Number
    sugar: Number
    sodium: Number
    vitamins: list[JsonValue]
    minerals: list[JsonValue]


class NutrientLevel(_Section):
    """Amount of one nutrient with its unit and a level such as "low"."""

    amount: Number
    unit: StrictStr
    level: StrictStr


class NutrientBreakdown(_Section):
    sugar: NutrientLevel
    salt: NutrientLevel
    fiber: NutrientLevel
    saturated_fat: NutrientLevel = Field(alias="saturatedFat")
    protein_quality: StrictStr = Field(alias="proteinQuality")


class Evaluation(_Section):
    strengths: list[JsonValue]
    weaknesses: list[JsonValue]
    suggestions: list[JsonValue]


class FoodGroupsEvaluation(_Section):
    missing: list[JsonValue]


class FreeMealAnalysis(BaseModel):
    """Analysis shape returned for free-tier requests.

    Unknown top-level keys are dropped so a free result never carries
    premium-only fields.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tier: Literal["free"] = Field(default="free", exclude=True)
    analysis: JsonValue
    foods: list[StrictStr]
    food_details: dict[str, JsonValue] = Field(alias="foodDetails")
    calories: JsonValue
    nutrition_score: JsonValue = Field(alias="nutritionScore")
    nutrition_score_explanation: JsonValue = Field(alias="nutritionScoreExplanation")
    macronutrients: Macronutrients
    evaluation: Evaluation
    food_groups_evaluation: FoodGroupsEvaluation = Field(alias="foodGroupsEvaluation")
    health_score: JsonValue = Field(alias="healthScore")
    recommendations: list[JsonValue]


class PremiumMealAnalysis(FreeMealAnalysis):
    """Analysis shape returned for premium requests."""

    tier: Literal["premium"] = Field(  # type: ignore[assignment]
        default="premium", exclude=True
    )
    micronutrients: Micronutrients
    overall_nutri_score: Literal["A", "B", "C", "D", "E"] = Field(
        alias="overallNutriScore"
    )
    nutrient_breakdown: NutrientBreakdown = Field(alias="nutrientBreakdown")
    personalized_recommendations: list[JsonValue] = Field(
        alias="personalizedRecommendations"
    )


MealAnalysisSchema = Annotated[
    FreeMealAnalysis | PremiumMealAnalysis, Field(discriminator="tier")
]


class AnalysisErrorKind(StrEnum):
    """Reasons an analysis request can fail."""

    INVALID_RESPONSE_FORMAT = "InvalidResponseFormat"
    MISSING_FIELDS = "MissingFields"
    INVALID_TYPE = "InvalidType"
    UPSTREAM_FAILURE = "UpstreamFailure"


@dataclass(frozen=True)
class Violation:
    """Single schema violation at a dotted field path."""

    field: str
    message: str


@dataclass(frozen=True)
class AnalysisSuccess:
    """Validated and normalized analysis."""

    analysis: dict[str, object]


@dataclass(frozen=True)
class AnalysisFailure:
    """Analysis that could not be produced or validated."""

    kind: AnalysisErrorKind
    message: str
    violations: tuple[Violation, ...] = ()
    raw_excerpt: str | None = None

    def details(self) -> dict[str, object]:
        """Return a JSON-friendly diagnostic payload."""
        payload: dict[str, object] = {"kind": self.kind.value}
        if self.violations:
            payload["violations"] = [
                {"field": item.field, "message": item.message}
                for item in self.violations
            ]
        if self.raw_excerpt is not None:
            payload["rawResponse"] = self.raw_excerpt
        return payload


AnalysisResult = AnalysisSuccess | AnalysisFailure
