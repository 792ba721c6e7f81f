import logging

import pytest

from carbon_advisor.graph.graph import PersistenceError, build_generation_graph
from carbon_advisor.utils.generation_log import read_generation_log
from carbon_advisor.utils.llm_client import ConfigurationError, NetworkError
from carbon_advisor.utils.profile_repository import UserNotFound
from carbon_advisor.utils.recommendation_store import RecommendationStore
from conftest import ScriptedClient


def _invoke(graph, task_kind, request, user_id=None, request_id="req-1"):
    return graph.invoke(
        {"request_id": request_id, "task_kind": task_kind, "user_id": user_id, "request": request}
    )


def test_generated_recommendations_are_persisted(profiles, store):
    client = ScriptedClient('Sure!\n[{"title": "Switch to heat pump", "impact": 2.4}, {"title": "Bike"}]')
    graph = build_generation_graph(client, store, profiles)
    state = _invoke(graph, "recommendation", {}, user_id="user-1")

    assert state["outcome"].source == "generated"
    assert [r["title"] for r in state["saved"]] == ["Switch to heat pump", "Bike"]
    assert all(r["user_id"] == "user-1" for r in state["saved"])
    assert len(store.list_for_user("user-1")) == 2
    prompt = client.calls[0]["user_prompt"]
    assert "Carbon Footprint: 32.4 tons CO2/year" in prompt
    assert "Budget: $500" in prompt


def test_network_failure_falls_back(profiles, store, caplog):
    client = ScriptedClient(NetworkError("timed out"))
    graph = build_generation_graph(client, store, profiles)
    with caplog.at_level(logging.WARNING):
        state = _invoke(graph, "recommendation", {}, user_id="user-1")

    outcome = state["outcome"]
    assert outcome.used_fallback
    assert "NetworkError" in outcome.reason
    assert state["failure_stage"] == "calling"
    assert len(state["saved"]) == 1
    assert state["saved"][0]["title"] == "Optimize Home Energy Usage"
    assert any("LLM_FALLBACK_WARNING" in r.message for r in caplog.records)


def test_malformed_response_falls_back(profiles, store):
    client = ScriptedClient("[{not json}]")
    graph = build_generation_graph(client, store, profiles)
    state = _invoke(graph, "recommendation", {}, user_id="user-1")
    assert state["failure_stage"] == "parse"
    assert state["outcome"].used_fallback
    assert state["saved"][0]["impact"] == 3.2


def test_unknown_user_aborts_before_model_call(profiles, store):
    client = ScriptedClient("[]")
    graph = build_generation_graph(client, store, profiles)
    with pytest.raises(UserNotFound):
        _invoke(graph, "recommendation", {}, user_id="ghost")
    assert client.calls == []
    assert store.list_for_user("ghost") == []


class _FailingStore(RecommendationStore):
    def __init__(self, path, fail_on):
        super().__init__(path)
        self.fail_on = fail_on
        self.attempts = 0

    def create(self, user_id, fields):
        self.attempts += 1
        if self.attempts == self.fail_on:
            raise OSError("disk full")
        return super().create(user_id, fields)


def test_partial_save_keeps_earlier_records(profiles, tmp_path):
    store = _FailingStore(str(tmp_path / "recs.json"), fail_on=2)
    client = ScriptedClient('[{"title": "A"}, {"title": "B"}, {"title": "C"}]')
    graph = build_generation_graph(client, store, profiles)
    with pytest.raises(PersistenceError) as excinfo:
        _invoke(graph, "recommendation", {}, user_id="user-1")
    assert [r["title"] for r in excinfo.value.saved] == ["A"]
    assert [r["title"] for r in store.list_for_user("user-1")] == ["A"]


def test_prediction_is_not_persisted(profiles, store):
    client = ScriptedClient('{"predictedEmissions": 28.0, "trend": "decreasing"}')
    graph = build_generation_graph(client, store, profiles)
    state = _invoke(graph, "prediction", {"monthly_emissions": [30, 29], "activities": [], "seasonal_factors": False})
    assert state["outcome"].payload == {"predictedEmissions": 28.0, "trend": "decreasing"}
    assert "saved" not in state
    assert client.calls[0]["task_kind"] == "prediction"


def test_behavior_fallback_on_missing_credentials(profiles, store):
    client = ScriptedClient(ConfigurationError("no key"))
    graph = build_generation_graph(client, store, profiles)
    state = _invoke(graph, "behavior", {"daily_activities": [], "patterns": [], "goals": []})
    assert state["outcome"].used_fallback
    assert state["outcome"].payload["behavior_score"] == 78


def test_event_log_records_fallback(profiles, store, tmp_path):
    log_dir = str(tmp_path / "logs")
    client = ScriptedClient(NetworkError("connection refused"))
    graph = build_generation_graph(client, store, profiles, event_log_dir=log_dir)
    _invoke(graph, "prediction", {"monthly_emissions": [40]}, request_id="abc")
    events = [e["event"] for e in read_generation_log("abc", log_dir=log_dir)]
    assert events == ["generation_start", "model_call_failed", "fallback_used"]
