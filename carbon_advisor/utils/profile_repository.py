import json
import logging
import math
import os
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_PROFILES_PATH = "data/profiles.json"

# Accepted ranges for request-supplied overrides.
MAX_CARBON_FOOTPRINT = 1000.0
MAX_BUDGET = 100000.0

PROFILE_FIELDS = ("carbon_footprint", "location", "lifestyle", "preferences", "budget")


class UserNotFound(LookupError):
    pass


class ProfileRepository:
    """
    Read-only view over stored users and their carbon footprints.

    Expected file layout:
        {"users": {"<user_id>": {"preferences": {...}}},
         "footprints": [{"user_id": ..., "total_emissions": ..., "created_at": ...}]}
    """

    def __init__(self, path: str = DEFAULT_PROFILES_PATH):
        self.path = path

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def find_user_with_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        users = self._load().get("users") or {}
        user = users.get(user_id)
        if not isinstance(user, dict):
            return None
        result = dict(user)
        result["id"] = user_id
        result["preferences"] = user.get("preferences") if isinstance(user.get("preferences"), dict) else None
        return result

    def find_latest_footprint(self, user_id: str) -> Optional[Dict[str, Any]]:
        footprints = self._load().get("footprints") or []
        owned = [fp for fp in footprints if isinstance(fp, dict) and fp.get("user_id") == user_id]
        if not owned:
            return None
        return max(owned, key=lambda fp: fp.get("created_at") or "")


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


def _bounded_number(value: Any, upper: float, name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        num = None if isinstance(value, bool) else float(value)
    except (TypeError, ValueError):
        num = None
    if num is None or math.isnan(num):
        logger.warning("PROFILE_OVERRIDE_DROPPED field=%s reason=not_numeric value=%r", name, value)
        return None
    if num < 0 or num > upper:
        logger.warning("PROFILE_OVERRIDE_DROPPED field=%s reason=out_of_range value=%r", name, value)
        return None
    return num


def _tag_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return None
    return [str(tag) for tag in value if str(tag).strip()]


def _clean_overrides(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    raw = dict(overrides or {})
    location = raw.get("location")
    return {
        "carbon_footprint": _bounded_number(
            raw.get("carbon_footprint", raw.get("carbonFootprint")), MAX_CARBON_FOOTPRINT, "carbon_footprint"
        ),
        "location": location.strip() if isinstance(location, str) and location.strip() else None,
        "lifestyle": _tag_list(raw.get("lifestyle")),
        "preferences": _tag_list(raw.get("preferences")),
        "budget": _bounded_number(raw.get("budget"), MAX_BUDGET, "budget"),
    }


def resolve_user_profile(
    repository: ProfileRepository,
    user_id: str,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Builds the profile used for prompting. Stored values win over request
    overrides whenever they are present; unknown users raise UserNotFound.
    """
    user = repository.find_user_with_preferences(user_id)
    if not user:
        raise UserNotFound(f"User not found: {user_id}")
    footprint = repository.find_latest_footprint(user_id) or {}
    prefs = user.get("preferences") or {}
    cleaned = _clean_overrides(overrides)

    stored = {
        "carbon_footprint": footprint.get("total_emissions"),
        "location": prefs.get("location"),
        "lifestyle": prefs.get("lifestyle"),
        "preferences": prefs.get("preferences"),
        "budget": prefs.get("budget"),
    }
    profile: Dict[str, Any] = {}
    for field in PROFILE_FIELDS:
        profile[field] = stored[field] if _present(stored[field]) else cleaned[field]
    return profile
