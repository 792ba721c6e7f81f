import json

import pytest

from carbon_advisor.utils.profile_repository import ProfileRepository
from carbon_advisor.utils.recommendation_store import RecommendationStore


class ScriptedClient:
    """Stands in for GenerativeClient: returns a fixed text or raises a fixed error."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def complete(self, system_instruction, user_prompt, task_kind):
        self.calls.append(
            {"system_instruction": system_instruction, "user_prompt": user_prompt, "task_kind": task_kind}
        )
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def profiles(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps(
            {
                "users": {
                    "user-1": {
                        "preferences": {
                            "location": "San Francisco, CA",
                            "lifestyle": ["urban", "tech_worker"],
                            "preferences": ["renewable_energy", "forest_conservation"],
                            "budget": 500,
                        }
                    },
                    "user-2": {"preferences": {"location": "Austin, TX"}},
                },
                "footprints": [
                    {"user_id": "user-1", "total_emissions": 32.4, "created_at": "2024-02-01T00:00:00+00:00"}
                ],
            }
        ),
        encoding="utf-8",
    )
    return ProfileRepository(str(path))


@pytest.fixture
def store(tmp_path):
    return RecommendationStore(str(tmp_path / "data" / "recommendations.json"))
