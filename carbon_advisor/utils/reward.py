import math
from typing import Any


def estimate_reward(impact: Any) -> int:
    """Suggested token reward for a recommendation: floor(impact * 10), never negative."""
    try:
        value = float(impact)
    except (TypeError, ValueError):
        return 0
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return 0
    scaled = value * 10
    if math.isinf(scaled):
        return 0
    return int(math.floor(scaled))
