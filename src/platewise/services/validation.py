"""Validation and normalization of model analysis responses."""

import json

from pydantic import TypeAdapter, ValidationError

from platewise.domain.analysis import (
    AnalysisErrorKind,
    AnalysisFailure,
    AnalysisResult,
    AnalysisSuccess,
    MealAnalysisSchema,
    Violation,
)

RAW_EXCERPT_LIMIT = 200

REQUIRED_FIELDS = (
    "analysis",
    "foods",
    "foodDetails",
    "calories",
    "nutritionScore",
    "nutritionScoreExplanation",
    "macronutrients",
    "evaluation",
    "foodGroupsEvaluation",
    "healthScore",
    "recommendations",
)

_SCHEMA: TypeAdapter[object] = TypeAdapter(MealAnalysisSchema)


def parse_analysis(raw_text: str, is_premium: bool) -> AnalysisResult:
    """Parse raw model output and validate it for the requested tier."""
    try:
        payload = json.loads(raw_text)
    except (TypeError, ValueError):
        return _invalid_format("Model response is not valid JSON", raw_text)
    if not isinstance(payload, dict):
        return _invalid_format("Model response is not a JSON object", raw_text)
    return validate_analysis(payload, is_premium)


def validate_analysis(payload: dict[str, object], is_premium: bool) -> AnalysisResult:
    """Validate a decoded analysis payload.

    Required keys are checked first and reported together. The tier schema
    then reports every type violation at once. Foods without a details entry
    get a default entry instead of failing.
    """
    missing = [name for name in REQUIRED_FIELDS if name not in payload]
    if missing:
        return AnalysisFailure(
            kind=AnalysisErrorKind.MISSING_FIELDS,
            message=f"Missing required fields: {', '.join(missing)}",
            violations=tuple(Violation(name, "Field required") for name in missing),
        )

    tagged = {**payload, "tier": "premium" if is_premium else "free"}
    try:
        model = _SCHEMA.validate_python(tagged)
    except ValidationError as exc:
        violations = _collect_violations(exc)
        summary = "; ".join(f"{item.field}: {item.message}" for item in violations)
        return AnalysisFailure(
            kind=AnalysisErrorKind.INVALID_TYPE,
            message=f"Invalid analysis response: {summary}",
            violations=violations,
        )

    analysis = model.model_dump(by_alias=True)  # type: ignore[attr-defined]
    analysis["foodDetails"] = fill_food_details(
        analysis["foods"], analysis["foodDetails"]
    )
    return AnalysisSuccess(analysis=analysis)


def fill_food_details(
    foods: list[str], food_details: dict[str, object]
) -> dict[str, object]:
    """Return food details with a default entry for every undescribed food."""
    filled = dict(food_details)
    for food in foods:
        if food not in filled:
            filled[food] = {
                "category": "Unknown",
                "description": f"No detailed information available for {food}.",
            }
    return filled


def excerpt(raw_text: object, limit: int = RAW_EXCERPT_LIMIT) -> str:
    """Truncate raw model output for diagnostics."""
    text = raw_text if isinstance(raw_text, str) else repr(raw_text)
    return text[:limit]


def _invalid_format(message: str, raw_text: object) -> AnalysisFailure:
    return AnalysisFailure(
        kind=AnalysisErrorKind.INVALID_RESPONSE_FORMAT,
        message=f"{message}: {excerpt(raw_text)}",
        raw_excerpt=excerpt(raw_text),
    )


def _collect_violations(exc: ValidationError) -> tuple[Violation, ...]:
    violations: list[Violation] = []
    for error in exc.errors(include_url=False):
        # The first location entry is the union tag ("free" or "premium").
        location = error["loc"][1:]
        field = ".".join(str(part) for part in location) or "<root>"
        violations.append(Violation(field=field, message=error["msg"]))
    return tuple(violations)
