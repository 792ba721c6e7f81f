import logging
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import StateGraph, END

from carbon_advisor.agents.prompt_builder import build_prompt
from carbon_advisor.utils.fallbacks import (
    fallback_behavior_analysis,
    fallback_prediction,
    fallback_recommendations,
)
from carbon_advisor.utils.generation_log import log_generation_event
from carbon_advisor.utils.outcome import GenerationOutcome
from carbon_advisor.utils.profile_repository import resolve_user_profile
from carbon_advisor.utils.response_normalizer import NormalizationFailure, normalize_response

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """A recommendation save failed; `saved` holds the records stored before it."""

    def __init__(self, message: str, saved: List[Dict[str, Any]]):
        super().__init__(message)
        self.saved = saved


class GenerationState(TypedDict, total=False):
    request_id: str
    task_kind: str
    user_id: Optional[str]
    request: Dict[str, Any]
    profile: Dict[str, Any]
    system_instruction: str
    user_prompt: str
    raw_text: str
    error_message: str
    failure_stage: str
    outcome: GenerationOutcome
    saved: List[Dict[str, Any]]


def _fallback_payload(state: GenerationState) -> Any:
    task_kind = state["task_kind"]
    if task_kind == "recommendation":
        return fallback_recommendations(state.get("user_id"))
    if task_kind == "prediction":
        return fallback_prediction((state.get("request") or {}).get("monthly_emissions"))
    return fallback_behavior_analysis()


def build_generation_graph(client: Any, store: Any, profiles: Any, event_log_dir: Optional[str] = None):
    """
    Compiles the generation state graph:

        resolve_profile -> build_prompt -> call_model -> normalize_response
            -> persist_recommendations (recommendation task only) -> END

    A failure in call_model or normalize_response routes to fall_back, which
    rejoins the same exit. Profile resolution and persistence errors are not
    caught and propagate to the caller.
    """

    def _event(state: GenerationState, event: str, payload: Dict[str, Any] | None = None) -> None:
        if event_log_dir:
            log_generation_event(state.get("request_id") or "unknown", event, payload, log_dir=event_log_dir)

    def run_resolve_profile(state: GenerationState) -> Dict[str, Any]:
        if state["task_kind"] != "recommendation":
            return {}
        profile = resolve_user_profile(profiles, state["user_id"], state.get("request") or {})
        return {"profile": profile}

    def run_build_prompt(state: GenerationState) -> Dict[str, Any]:
        task_kind = state["task_kind"]
        request = state.get("request") or {}
        if task_kind == "recommendation":
            request = {"profile": state.get("profile") or {}}
        system_instruction, user_prompt = build_prompt(task_kind, request)
        _event(state, "generation_start", {"task_kind": task_kind, "user_id": state.get("user_id")})
        return {"system_instruction": system_instruction, "user_prompt": user_prompt}

    def run_call_model(state: GenerationState) -> Dict[str, Any]:
        task_kind = state["task_kind"]
        try:
            raw_text = client.complete(state["system_instruction"], state["user_prompt"], task_kind)
        except Exception as exc:
            logger.warning(
                "LLM_FALLBACK_WARNING context=%s stage=calling error=%s message=%s",
                task_kind,
                type(exc).__name__,
                str(exc)[:200],
            )
            _event(state, "model_call_failed", {"error": type(exc).__name__, "message": str(exc)[:200]})
            return {"error_message": f"{type(exc).__name__}: {exc}", "failure_stage": "calling"}
        return {"raw_text": raw_text}

    def run_normalize_response(state: GenerationState) -> Dict[str, Any]:
        task_kind = state["task_kind"]
        try:
            payload = normalize_response(state.get("raw_text") or "", task_kind)
        except NormalizationFailure as exc:
            logger.warning(
                "LLM_FALLBACK_WARNING context=%s stage=%s error=%s message=%s",
                task_kind,
                exc.stage,
                type(exc).__name__,
                str(exc)[:200],
            )
            _event(state, "normalization_failed", {"stage": exc.stage, "message": str(exc)[:200]})
            return {"error_message": f"{type(exc).__name__}: {exc}", "failure_stage": exc.stage}
        return {"outcome": GenerationOutcome.generated(payload)}

    def run_fall_back(state: GenerationState) -> Dict[str, Any]:
        reason = state.get("error_message") or "unknown"
        _event(state, "fallback_used", {"stage": state.get("failure_stage"), "reason": reason[:200]})
        return {"outcome": GenerationOutcome.fallback_used(_fallback_payload(state), reason)}

    def run_persist_recommendations(state: GenerationState) -> Dict[str, Any]:
        user_id = state["user_id"]
        saved: List[Dict[str, Any]] = []
        for rec in state["outcome"].payload:
            try:
                saved.append(store.create(user_id, rec))
            except Exception as exc:
                logger.error(
                    "RECOMMENDATION_SAVE_FAILED user_id=%s saved=%d error=%s",
                    user_id,
                    len(saved),
                    type(exc).__name__,
                )
                raise PersistenceError(f"Failed to save recommendation: {exc}", saved) from exc
        return {"saved": saved}

    def check_call(state: GenerationState) -> str:
        return "failed" if state.get("failure_stage") else "success"

    def check_result(state: GenerationState) -> str:
        if state.get("failure_stage") and not state.get("outcome"):
            return "failed"
        return "persist" if state["task_kind"] == "recommendation" else "done"

    workflow = StateGraph(GenerationState)

    workflow.add_node("resolve_profile", run_resolve_profile)
    workflow.add_node("build_prompt", run_build_prompt)
    workflow.add_node("call_model", run_call_model)
    workflow.add_node("normalize_response", run_normalize_response)
    workflow.add_node("fall_back", run_fall_back)
    workflow.add_node("persist_recommendations", run_persist_recommendations)

    workflow.set_entry_point("resolve_profile")
    workflow.add_edge("resolve_profile", "build_prompt")
    workflow.add_edge("build_prompt", "call_model")

    workflow.add_conditional_edges(
        "call_model",
        check_call,
        {
            "success": "normalize_response",
            "failed": "fall_back",
        },
    )
    workflow.add_conditional_edges(
        "normalize_response",
        check_result,
        {
            "failed": "fall_back",
            "persist": "persist_recommendations",
            "done": END,
        },
    )
    workflow.add_conditional_edges(
        "fall_back",
        check_result,
        {
            "persist": "persist_recommendations",
            "done": END,
        },
    )
    workflow.add_edge("persist_recommendations", END)

    return workflow.compile()
