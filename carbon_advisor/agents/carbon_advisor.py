import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from carbon_advisor.agents.prompt_builder import TASK_KINDS
from carbon_advisor.graph.graph import build_generation_graph
from carbon_advisor.utils.generation_log import log_generation_event
from carbon_advisor.utils.llm_client import GenerativeClient
from carbon_advisor.utils.llm_config import load_llm_config
from carbon_advisor.utils.outcome import GenerationOutcome
from carbon_advisor.utils.profile_repository import ProfileRepository
from carbon_advisor.utils.recommendation_store import RecommendationStore

logger = logging.getLogger(__name__)


def _numeric_series(values: Sequence[Any]) -> List[float]:
    series = []
    for value in values or []:
        if isinstance(value, bool):
            raise ValueError(f"monthly_emissions must be numbers, got {value!r}")
        try:
            series.append(float(value))
        except (TypeError, ValueError):
            raise ValueError(f"monthly_emissions must be numbers, got {value!r}") from None
    return series


class CarbonAdvisorAgent:
    """
    Generates carbon reduction recommendations, emission predictions and
    behavior analyses, and manages the recommendation lifecycle.

    Generation never fails because the model backend is missing, slow or
    returns garbage: those cases resolve to the deterministic fallback.
    """

    def __init__(
        self,
        client: Any = None,
        store: Optional[RecommendationStore] = None,
        profiles: Optional[ProfileRepository] = None,
        config: Optional[Dict[str, Any]] = None,
        event_log_dir: Optional[str] = None,
    ):
        if client is None:
            client = GenerativeClient(config if config is not None else load_llm_config())
        self.client = client
        self.store = store or RecommendationStore()
        self.profiles = profiles or ProfileRepository()
        self.event_log_dir = event_log_dir
        self.graph = build_generation_graph(self.client, self.store, self.profiles, event_log_dir=event_log_dir)
        self.last_outcome: Optional[GenerationOutcome] = None

    def _run(self, task_kind: str, request: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        if task_kind not in TASK_KINDS:
            raise ValueError(f"Unknown task kind: {task_kind}")
        request_id = uuid.uuid4().hex
        final_state = self.graph.invoke(
            {
                "request_id": request_id,
                "task_kind": task_kind,
                "user_id": user_id,
                "request": request or {},
            }
        )
        outcome = final_state["outcome"]
        self.last_outcome = outcome
        if outcome.used_fallback:
            logger.info("Generation fell back to defaults: task=%s reason=%s", task_kind, outcome.reason)
        if self.event_log_dir:
            log_generation_event(
                request_id,
                "generation_end",
                {"task_kind": task_kind, "source": outcome.source, "saved": len(final_state.get("saved") or [])},
                log_dir=self.event_log_dir,
            )
        return final_state

    def run_task(self, task_kind: str, request: Dict[str, Any], user_id: Optional[str] = None) -> GenerationOutcome:
        """Runs one task and returns the outcome with its source (generated or fallback)."""
        return self._run(task_kind, request, user_id=user_id)["outcome"]

    def generate_recommendations(
        self,
        user_id: str,
        profile_overrides: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        final_state = self._run("recommendation", dict(profile_overrides or {}), user_id=user_id)
        return final_state.get("saved") or []

    def list_recommendations(self, user_id: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.store.list_for_user(user_id, filters)

    def implement_recommendation(self, user_id: str, rec_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        return self.store.implement(user_id, rec_id, notes)

    def dismiss_recommendation(self, user_id: str, rec_id: str) -> Dict[str, Any]:
        return self.store.dismiss(user_id, rec_id)

    def predict_emissions(
        self,
        monthly_emissions: Sequence[float],
        activities: Sequence[str],
        seasonal_factors: bool,
    ) -> Dict[str, Any]:
        request = {
            "monthly_emissions": _numeric_series(monthly_emissions),
            "activities": list(activities or []),
            "seasonal_factors": seasonal_factors,
        }
        return self._run("prediction", request)["outcome"].payload

    def analyze_behavior(
        self,
        daily_activities: Sequence[Dict[str, Any]],
        patterns: Sequence[str],
        goals: Sequence[str],
    ) -> Dict[str, Any]:
        request = {
            "daily_activities": list(daily_activities or []),
            "patterns": list(patterns or []),
            "goals": list(goals or []),
        }
        return self._run("behavior", request)["outcome"].payload
