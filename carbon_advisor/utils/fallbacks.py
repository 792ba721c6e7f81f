import copy
from typing import Any, Dict, List, Sequence

from carbon_advisor.utils.reward import estimate_reward

_FALLBACK_IMPACT = 3.2

FALLBACK_RECOMMENDATION: Dict[str, Any] = {
    "type": "reduction",
    "title": "Optimize Home Energy Usage",
    "description": "Implement smart energy management practices to reduce your carbon footprint",
    "impact": _FALLBACK_IMPACT,
    "confidence": 90,
    "category": "Energy Efficiency",
    "reward_potential": estimate_reward(_FALLBACK_IMPACT),
    "action_steps": [
        "Install a programmable thermostat",
        "Switch to LED lighting throughout your home",
        "Unplug electronics when not in use",
        "Use energy-efficient appliances",
    ],
    "estimated_cost": 300.0,
    "timeframe": "2-4 weeks",
    "priority": "medium",
}

FALLBACK_BEHAVIOR_ANALYSIS: Dict[str, Any] = {
    "insights": [
        "Your carbon tracking shows consistent engagement with sustainability",
        "Transportation appears to be your largest emission source",
        "Energy usage patterns suggest room for optimization",
    ],
    "behavior_score": 78,
    "improvement_suggestions": [
        "Focus on reducing transportation emissions through alternative mobility",
        "Implement energy-saving habits during peak usage hours",
        "Consider renewable energy options for your home",
    ],
    "habit_recommendations": [
        "Set up automated energy-saving schedules",
        "Plan weekly sustainable transportation goals",
        "Create monthly carbon reduction challenges",
    ],
}

EMPTY_SERIES_AVERAGE = 25.5
PREDICTION_FLOOR = 20.0
PREDICTION_FACTORS = ["Historical trends", "Seasonal patterns", "Energy efficiency improvements"]


def fallback_recommendations(user_id: str) -> List[Dict[str, Any]]:
    rec = copy.deepcopy(FALLBACK_RECOMMENDATION)
    rec["user_id"] = user_id
    return [rec]


def fallback_prediction(monthly_emissions: Sequence[float] | None) -> Dict[str, Any]:
    values = [float(v) for v in (monthly_emissions or [])]
    average = sum(values) / len(values) if values else EMPTY_SERIES_AVERAGE
    return {
        "predictedEmissions": max(average * 0.95, PREDICTION_FLOOR),
        "trend": "stable",
        "factors": list(PREDICTION_FACTORS),
        "confidence": 85,
        "timeframe": "3 months",
    }


def fallback_behavior_analysis() -> Dict[str, Any]:
    return copy.deepcopy(FALLBACK_BEHAVIOR_ANALYSIS)
