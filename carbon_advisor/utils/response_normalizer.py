import json
import math
from typing import Any, Dict, List, Optional

from carbon_advisor.utils.reward import estimate_reward

RECOMMENDATION_TYPES = ("reduction", "purchase", "optimization", "behavioral")
PRIORITIES = ("low", "medium", "high", "critical")

DEFAULT_TITLE = "Carbon Reduction Recommendation"
DEFAULT_DESCRIPTION = "Reduce your carbon footprint"
DEFAULT_IMPACT = 1.0
DEFAULT_CONFIDENCE = 80
DEFAULT_CATEGORY = "General"
DEFAULT_ACTION_STEPS = ["Implement this recommendation"]
DEFAULT_TIMEFRAME = "1-3 months"

_CLOSERS = {"[": "]", "{": "}"}


class NormalizationFailure(ValueError):
    stage = "normalization"


class ExtractionError(NormalizationFailure):
    stage = "extraction"


class ParseError(NormalizationFailure):
    stage = "parse"


class CoercionError(NormalizationFailure):
    stage = "coercion"


def _match_span(text: str, start: int) -> Optional[int]:
    """Index of the bracket closing text[start], or None if it never balances."""
    stack = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False
    for idx in range(start + 1, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("]", "}"):
            if ch != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return idx
    return None


def extract_structured_span(text: str) -> str:
    """
    Returns the first top-level JSON array found in free-form text, or the
    first top-level object when no array exists. Surrounding prose and
    unbalanced brackets are skipped.
    """
    if not isinstance(text, str) or not text:
        raise ExtractionError("Empty model response.")
    first_object: Optional[str] = None
    idx = 0
    while idx < len(text):
        ch = text[idx]
        if ch in _CLOSERS:
            end = _match_span(text, idx)
            if end is not None:
                span = text[idx : end + 1]
                if ch == "[":
                    return span
                if first_object is None:
                    first_object = span
                idx = end + 1
                continue
        idx += 1
    if first_object is not None:
        return first_object
    raise ExtractionError("No balanced JSON array or object found in model response.")


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _enum(value: Any, allowed: tuple, default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _pick(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def coerce_recommendation(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fills every recommendation field with a valid value. Unparseable values
    fall back to their defaults and numbers are clamped into range, so the
    result never carries a missing or out-of-range field.
    """
    if not isinstance(item, dict):
        raise CoercionError(f"Recommendation must be an object, got {type(item).__name__}.")

    impact = _to_float(item.get("impact"))
    impact = DEFAULT_IMPACT if impact is None else max(impact, 0.0)

    confidence = _to_float(item.get("confidence"))
    confidence = DEFAULT_CONFIDENCE if confidence is None else min(max(int(confidence), 0), 100)

    reward = _to_float(_pick(item, "reward_potential", "rewardPotential"))
    reward = estimate_reward(impact) if reward is None else max(int(reward), 0)

    cost = _to_float(_pick(item, "estimated_cost", "estimatedCost"))
    cost = 0.0 if cost is None else max(cost, 0.0)

    steps_raw = _pick(item, "action_steps", "actionSteps")
    steps: List[str] = []
    if isinstance(steps_raw, list):
        steps = [_text(step, "") for step in steps_raw]
        steps = [step for step in steps if step]
    if not steps:
        steps = list(DEFAULT_ACTION_STEPS)

    return {
        "type": _enum(item.get("type"), RECOMMENDATION_TYPES, "reduction"),
        "title": _text(item.get("title"), DEFAULT_TITLE),
        "description": _text(item.get("description"), DEFAULT_DESCRIPTION),
        "impact": impact,
        "confidence": confidence,
        "category": _text(item.get("category"), DEFAULT_CATEGORY),
        "reward_potential": reward,
        "action_steps": steps,
        "estimated_cost": cost,
        "timeframe": _text(item.get("timeframe"), DEFAULT_TIMEFRAME),
        "priority": _enum(item.get("priority"), PRIORITIES, "medium"),
    }


def _coerce_recommendations(parsed: Any) -> List[Dict[str, Any]]:
    if isinstance(parsed, dict) and isinstance(parsed.get("recommendations"), list):
        parsed = parsed["recommendations"]
    items = parsed if isinstance(parsed, list) else [parsed]
    if not items:
        raise CoercionError("Model returned an empty recommendation list.")
    return [coerce_recommendation(item) for item in items]


def _single_object(parsed: Any, task_kind: str) -> Dict[str, Any]:
    if isinstance(parsed, list) and len(parsed) == 1:
        parsed = parsed[0]
    if not isinstance(parsed, dict):
        raise CoercionError(f"{task_kind} response must be a single JSON object.")
    return parsed


def normalize_response(raw_text: str, task_kind: str) -> Any:
    """
    Extracts and validates the structured payload of a model response.

    recommendation -> list of fully defaulted recommendation dicts
    prediction / behavior -> the response object, fields untouched
    """
    span = extract_structured_span(raw_text)
    try:
        parsed = json.loads(span)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise ParseError(f"Invalid JSON in model response: {type(exc).__name__}: {exc}") from exc

    if task_kind == "recommendation":
        try:
            return _coerce_recommendations(parsed)
        except NormalizationFailure:
            raise
        except Exception as exc:
            raise CoercionError(f"Unusable recommendation value: {type(exc).__name__}: {exc}") from exc
    if task_kind in ("prediction", "behavior"):
        return _single_object(parsed, task_kind)
    raise CoercionError(f"Unknown task kind: {task_kind}")
