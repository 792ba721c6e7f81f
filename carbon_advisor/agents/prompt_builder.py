import json
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from carbon_advisor.agents.prompts import (
    BEHAVIOR_PROMPT_TEMPLATE,
    NOT_SPECIFIED,
    PREDICTION_PROMPT_TEMPLATE,
    RECOMMENDATION_PROMPT_TEMPLATE,
    SYSTEM_PROMPTS,
)
from carbon_advisor.utils.prompting import render_prompt

TASK_KINDS = ("recommendation", "prediction", "behavior")
RECENT_ACTIVITY_DAYS = 7


def _format_number(value: Any) -> str:
    try:
        return f"{float(value):g}"
    except (TypeError, ValueError):
        return str(value)


def _format_tags(tags: Any) -> str:
    if isinstance(tags, str):
        tags = [tags]
    if not tags:
        return NOT_SPECIFIED
    return ", ".join(str(tag) for tag in tags)


def build_recommendation_prompt(profile: Dict[str, Any]) -> str:
    profile = profile or {}
    footprint = profile.get("carbon_footprint")
    budget = profile.get("budget")
    location = profile.get("location")
    return render_prompt(
        RECOMMENDATION_PROMPT_TEMPLATE,
        carbon_footprint=(
            f"{_format_number(footprint)} tons CO2/year" if footprint is not None else NOT_SPECIFIED
        ),
        location=location if location else NOT_SPECIFIED,
        lifestyle=_format_tags(profile.get("lifestyle")),
        preferences=_format_tags(profile.get("preferences")),
        budget=f"${_format_number(budget)}" if budget is not None else NOT_SPECIFIED,
    )


def summarize_series(monthly_emissions: Sequence[float]) -> str:
    values = [float(v) for v in (monthly_emissions or [])]
    if not values:
        return NOT_SPECIFIED
    series = pd.Series(values, dtype="float64")
    return (
        f"count={len(series)}, mean={series.mean():.2f}, min={series.min():.2f}, "
        f"max={series.max():.2f}, first={series.iloc[0]:.2f}, last={series.iloc[-1]:.2f}"
    )


def build_prediction_prompt(
    monthly_emissions: Sequence[float],
    activities: Sequence[str],
    seasonal_factors: Any,
) -> str:
    values = list(monthly_emissions or [])
    if seasonal_factors is None:
        seasonal = NOT_SPECIFIED
    else:
        seasonal = "yes" if seasonal_factors else "no"
    return render_prompt(
        PREDICTION_PROMPT_TEMPLATE,
        monthly_emissions=", ".join(_format_number(v) for v in values) if values else NOT_SPECIFIED,
        series_summary=summarize_series(values),
        activities=_format_tags(activities),
        seasonal_factors=seasonal,
    )


def summarize_activities(recent: List[Dict[str, Any]]) -> str:
    rows = [row for row in recent if isinstance(row, dict)]
    if not rows:
        return NOT_SPECIFIED
    numeric = pd.DataFrame(rows).select_dtypes(include="number")
    if numeric.empty:
        return NOT_SPECIFIED
    means = numeric.mean()
    return ", ".join(f"{col}: {means[col]:.2f}" for col in sorted(numeric.columns, key=str))


def build_behavior_prompt(
    daily_activities: Sequence[Dict[str, Any]],
    patterns: Sequence[str],
    goals: Sequence[str],
) -> str:
    recent = list(daily_activities or [])[-RECENT_ACTIVITY_DAYS:]
    return render_prompt(
        BEHAVIOR_PROMPT_TEMPLATE,
        recent_days=RECENT_ACTIVITY_DAYS,
        recent_activities=json.dumps(recent, ensure_ascii=True, default=str) if recent else NOT_SPECIFIED,
        activity_averages=summarize_activities(recent),
        patterns=_format_tags(patterns),
        goals=_format_tags(goals),
    )


def build_prompt(task_kind: str, request: Dict[str, Any]) -> Tuple[str, str]:
    """Returns (system_instruction, user_prompt) for a task kind."""
    request = request or {}
    if task_kind == "recommendation":
        user_prompt = build_recommendation_prompt(request.get("profile") or {})
    elif task_kind == "prediction":
        user_prompt = build_prediction_prompt(
            request.get("monthly_emissions") or [],
            request.get("activities") or [],
            request.get("seasonal_factors"),
        )
    elif task_kind == "behavior":
        user_prompt = build_behavior_prompt(
            request.get("daily_activities") or [],
            request.get("patterns") or [],
            request.get("goals") or [],
        )
    else:
        raise ValueError(f"Unknown task kind: {task_kind}")
    return SYSTEM_PROMPTS[task_kind], user_prompt
