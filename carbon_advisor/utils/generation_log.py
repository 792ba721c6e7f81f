import json
import os
from datetime import datetime, timezone
from typing import Any, Dict


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _log_path(request_id: str, log_dir: str = "logs") -> str:
    return os.path.join(log_dir, f"generation_{request_id}.jsonl")


def log_generation_event(
    request_id: str,
    event: str,
    payload: Dict[str, Any] | None = None,
    log_dir: str = "logs",
) -> None:
    """Appends one event line. The event log is best-effort and never raises."""
    record = {
        "event": event,
        "request_id": request_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload or {},
    }
    try:
        _ensure_dir(log_dir)
        with open(_log_path(request_id, log_dir), "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
    except OSError:
        pass


def read_generation_log(request_id: str, log_dir: str = "logs") -> list:
    path = _log_path(request_id, log_dir)
    if not os.path.exists(path):
        return []
    events = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                events.append(json.loads(line))
    return events
