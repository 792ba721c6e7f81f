import json
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from carbon_advisor.utils.response_normalizer import coerce_recommendation

DEFAULT_STORE_PATH = "data/recommendations.json"

_FILTER_KEYS = ("type", "implemented", "dismissed")


class RecommendationNotFound(LookupError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecommendationStore:
    """
    File-backed recommendation records, one JSON list per store.

    Every write rewrites the file through os.replace, so a single save is
    atomic; there is no multi-record transaction. Records are only ever
    created, implemented or dismissed here, never deleted.
    """

    def __init__(self, path: str = DEFAULT_STORE_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Recommendation store {self.path} does not hold a list.")
        return data

    def _write(self, records: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def create(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = coerce_recommendation(fields)
        timestamp = _now()
        record.update(
            {
                "id": uuid.uuid4().hex,
                "implemented": False,
                "dismissed": False,
                "implementation_notes": None,
                "created_at": timestamp,
                "updated_at": timestamp,
                "user_id": user_id,
            }
        )
        with self._lock:
            records = self._load()
            records.append(record)
            self._write(records)
        return dict(record)

    def list_for_user(self, user_id: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        active = {key: value for key, value in (filters or {}).items() if key in _FILTER_KEYS and value is not None}
        with self._lock:
            records = self._load()
        matches = [
            rec
            for rec in records
            if rec.get("user_id") == user_id and all(rec.get(key) == value for key, value in active.items())
        ]
        # Newest first; records created in the same instant keep reverse insertion order.
        return sorted(reversed(matches), key=lambda rec: rec.get("created_at") or "", reverse=True)

    def _update_owned(self, user_id: str, rec_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            records = self._load()
            for rec in records:
                if rec.get("id") == rec_id and rec.get("user_id") == user_id:
                    rec.update(changes)
                    rec["updated_at"] = _now()
                    self._write(records)
                    return dict(rec)
        raise RecommendationNotFound(f"Recommendation not found: {rec_id}")

    def implement(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        return self._update_owned(user_id, rec_id, {"implemented": True, "implementation_notes": notes})

    def dismiss(self, user_id: str, rec_id: str) -> Dict[str, Any]:
        return self._update_owned(user_id, rec_id, {"dismissed": True})
