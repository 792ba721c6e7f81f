import json
import os

import pytest

from carbon_advisor.utils.recommendation_store import RecommendationNotFound, RecommendationStore


@pytest.fixture
def store(tmp_path):
    return RecommendationStore(str(tmp_path / "data" / "recommendations.json"))


def test_create_assigns_identity_and_defaults(store):
    rec = store.create("user-1", {"title": "Insulate attic", "impact": 2.5, "confidence": 300})
    assert rec["id"]
    assert rec["user_id"] == "user-1"
    assert rec["created_at"] == rec["updated_at"]
    assert rec["implemented"] is False
    assert rec["dismissed"] is False
    assert rec["implementation_notes"] is None
    assert rec["confidence"] == 100
    assert rec["reward_potential"] == 25
    assert os.path.exists(store.path)


def test_create_ignores_caller_supplied_identity(store):
    rec = store.create("user-1", {"title": "X", "id": "forged", "user_id": "someone-else", "implemented": True})
    assert rec["id"] != "forged"
    assert rec["user_id"] == "user-1"
    assert rec["implemented"] is False


def test_list_is_scoped_and_newest_first(store):
    first = store.create("user-1", {"title": "First"})
    second = store.create("user-1", {"title": "Second"})
    store.create("user-2", {"title": "Other user"})
    listed = store.list_for_user("user-1")
    assert [r["id"] for r in listed] == [second["id"], first["id"]]


def test_list_filters_are_conjunctive(store):
    a = store.create("user-1", {"title": "A", "type": "reduction"})
    b = store.create("user-1", {"title": "B", "type": "purchase"})
    c = store.create("user-1", {"title": "C", "type": "reduction"})
    store.implement("user-1", a["id"])
    store.implement("user-1", b["id"])

    listed = store.list_for_user("user-1", {"implemented": True, "type": "reduction"})
    assert [r["id"] for r in listed] == [a["id"]]

    not_implemented = store.list_for_user("user-1", {"implemented": False, "type": None})
    assert [r["id"] for r in not_implemented] == [c["id"]]


def test_implement_sets_flag_and_notes(store):
    rec = store.create("user-1", {"title": "Solar"})
    updated = store.implement("user-1", rec["id"], notes="Installed in May")
    assert updated["implemented"] is True
    assert updated["implementation_notes"] == "Installed in May"
    assert updated["updated_at"] >= rec["updated_at"]
    assert store.list_for_user("user-1", {"implemented": True})[0]["id"] == rec["id"]


def test_lifecycle_requires_ownership(store):
    rec = store.create("owner", {"title": "Mine"})
    with pytest.raises(RecommendationNotFound):
        store.implement("intruder", rec["id"])
    with pytest.raises(RecommendationNotFound):
        store.dismiss("intruder", rec["id"])
    with pytest.raises(RecommendationNotFound):
        store.dismiss("owner", "missing-id")
    assert store.list_for_user("owner")[0]["implemented"] is False


def test_dismiss_is_idempotent(store):
    rec = store.create("user-1", {"title": "Carpool"})
    store.dismiss("user-1", rec["id"])
    again = store.dismiss("user-1", rec["id"])
    assert again["dismissed"] is True
    assert store.list_for_user("user-1", {"dismissed": True})[0]["id"] == rec["id"]


def test_implement_and_dismiss_are_not_exclusive(store):
    rec = store.create("user-1", {"title": "Compost"})
    store.dismiss("user-1", rec["id"])
    updated = store.implement("user-1", rec["id"])
    assert updated["dismissed"] is True
    assert updated["implemented"] is True


def test_records_persist_across_instances(store):
    rec = store.create("user-1", {"title": "Persisted"})
    reopened = RecommendationStore(store.path)
    assert reopened.list_for_user("user-1")[0]["id"] == rec["id"]
    with open(store.path, "r", encoding="utf-8") as f:
        assert len(json.load(f)) == 1
