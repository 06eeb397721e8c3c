"""Prompt templates for meal analysis."""

_BASE_SHAPE = """\
  "analysis": "short overall summary of the meal",
  "foods": ["food 1", "food 2"],
  "foodDetails": {
    "food 1": {"category": "food group", "description": "one sentence"}
  },
  "calories": number,
  "nutritionScore": number (0-100),
  "nutritionScoreExplanation": "why the meal got this score",
  "macronutrients": {"protein": grams, "carbs": grams, "fat": grams},
  "evaluation": {
    "strengths": ["..."],
    "weaknesses": ["..."],
    "suggestions": ["..."]
  },
  "foodGroupsEvaluation": {"present": ["..."], "missing": ["..."]},
  "healthScore": number (1-10),
  "recommendations": ["..."]"""

_PREMIUM_SHAPE = """\
  "micronutrients": {
    "fiber": grams,
    "sugar": grams,
    "sodium": milligrams,
    "vitamins": ["vitamin and approximate amount"],
    "minerals": ["mineral and approximate amount"]
  },
  "overallNutriScore": "A" | "B" | "C" | "D" | "E",
  "nutrientBreakdown": {
    "sugar": {"amount": number, "unit": "g", "level": "low|moderate|high"},
    "salt": {"amount": number, "unit": "g", "level": "low|moderate|high"},
    "fiber": {"amount": number, "unit": "g", "level": "low|good|excellent"},
    "saturatedFat": {"amount": number, "unit": "g", "level": "low|moderate|high"},
    "proteinQuality": "short description"
  },
  "personalizedRecommendations": ["..."]"""

SYSTEM_PROMPT = (
    "You are a nutrition expert that analyzes photos of meals. "
    "Identify every food item, estimate portion sizes and respond with a "
    "single JSON object only, with no markdown and no extra text."
)

FREE_PROMPT = f"""Analyze this meal image and provide basic nutritional information.
Include the foods you can see, estimated calories, macronutrients in grams,
a nutrition score with a short explanation, an evaluation of strengths and
weaknesses, missing food groups and 2-3 recommendations.

Respond with JSON in exactly this structure:
{{
{_BASE_SHAPE}
}}"""

PREMIUM_PROMPT = f"""Analyze this meal image and give detailed nutritional information.
Include the foods you can see with a category and description for each,
a precise calorie estimate, macronutrients in grams, micronutrients, a
Nutri-Score grade from A to E, a per-nutrient breakdown with levels, an
evaluation of strengths and weaknesses, missing food groups, 5-7 general
recommendations and personalized recommendations.

Respond with JSON in exactly this structure:
{{
{_BASE_SHAPE},
{_PREMIUM_SHAPE}
}}"""


def select_prompt(is_premium: bool) -> str:
    """Return the prompt template for the requested tier."""
    return PREMIUM_PROMPT if is_premium else FREE_PROMPT


def user_message(meal_name: str | None, description: str | None) -> str:
    """Build the user instruction, adding any context the user supplied."""
    lines = ["Analyze this meal image and respond in JSON."]
    if meal_name:
        lines.append(f"Meal name: {meal_name}")
    if description:
        lines.append(f"Description: {description}")
    return "\n".join(lines)
