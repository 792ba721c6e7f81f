import pytest

from carbon_advisor.agents.prompt_builder import (
    build_behavior_prompt,
    build_prediction_prompt,
    build_prompt,
    build_recommendation_prompt,
)
from carbon_advisor.agents.prompts import SYSTEM_PROMPTS


def test_recommendation_prompt_renders_profile():
    prompt = build_recommendation_prompt(
        {
            "carbon_footprint": 32.4,
            "location": "San Francisco, CA",
            "lifestyle": ["urban", "tech_worker"],
            "preferences": ["renewable_energy"],
            "budget": 500,
        }
    )
    assert "Carbon Footprint: 32.4 tons CO2/year" in prompt
    assert "Location: San Francisco, CA" in prompt
    assert "Lifestyle: urban, tech_worker" in prompt
    assert "Preferences: renewable_energy" in prompt
    assert "Budget: $500" in prompt
    assert "reward_potential" in prompt
    assert "$" not in prompt.replace("$500", "")


def test_recommendation_prompt_marks_absent_fields():
    prompt = build_recommendation_prompt({})
    for label in ("Carbon Footprint", "Location", "Lifestyle", "Preferences", "Budget"):
        assert f"{label}: Not specified" in prompt


def test_prompts_are_deterministic():
    profile = {"carbon_footprint": 10, "lifestyle": ["rural"]}
    assert build_recommendation_prompt(profile) == build_recommendation_prompt(dict(profile))


def test_prediction_prompt_includes_series_summary():
    prompt = build_prediction_prompt([45, 42, 48], ["electricity", "heating"], True)
    assert "Monthly emissions: 45, 42, 48 tons CO2" in prompt
    assert "count=3, mean=45.00, min=42.00, max=48.00, first=45.00, last=48.00" in prompt
    assert "Key activities: electricity, heating" in prompt
    assert "Consider seasonal factors: yes" in prompt
    assert "predictedEmissions" in prompt


def test_prediction_prompt_empty_inputs():
    prompt = build_prediction_prompt([], [], None)
    assert "Monthly emissions: Not specified" in prompt
    assert "Series summary: Not specified" in prompt
    assert "Consider seasonal factors: Not specified" in prompt


def test_behavior_prompt_uses_last_seven_days():
    log = [{"date": f"2024-01-{day:02d}", "electricity": day, "transport": 2} for day in range(1, 11)]
    prompt = build_behavior_prompt(log, ["weekend_spikes"], ["reduce_transport"])
    assert "2024-01-03" not in prompt
    assert "2024-01-04" in prompt
    assert "2024-01-10" in prompt
    assert "Average per activity: electricity: 7.00, transport: 2.00" in prompt
    assert "Identified patterns: weekend_spikes" in prompt
    assert "User goals: reduce_transport" in prompt


def test_behavior_prompt_without_numeric_columns():
    prompt = build_behavior_prompt([{"date": "2024-01-01", "note": "travel"}], [], [])
    assert "Average per activity: Not specified" in prompt
    assert "Identified patterns: Not specified" in prompt


def test_build_prompt_selects_system_instruction():
    system, user = build_prompt("prediction", {"monthly_emissions": [1, 2]})
    assert system == SYSTEM_PROMPTS["prediction"]
    assert system.startswith("You are a data scientist")
    system, _ = build_prompt("recommendation", {"profile": {}})
    assert system.startswith("You are an expert carbon footprint advisor")
    assert "valid JSON" in SYSTEM_PROMPTS["behavior"]


def test_unknown_task_kind():
    with pytest.raises(ValueError):
        build_prompt("poetry", {})
