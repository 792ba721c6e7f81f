import argparse
import json
import logging
import os
from typing import Any

from carbon_advisor.agents.carbon_advisor import CarbonAdvisorAgent
from carbon_advisor.agents.prompt_builder import TASK_KINDS, build_prompt
from carbon_advisor.utils.profile_repository import (
    DEFAULT_PROFILES_PATH,
    ProfileRepository,
    UserNotFound,
    resolve_user_profile,
)
from carbon_advisor.utils.recommendation_store import DEFAULT_STORE_PATH, RecommendationStore


def _load_json(path: str) -> Any:
    if not path or not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Carbon advisor generation utilities")
    parser.add_argument("--task", choices=TASK_KINDS, required=True, help="Task kind to run.")
    parser.add_argument("--request", type=str, default="", help="Path to the request JSON.")
    parser.add_argument("--user_id", type=str, default="", help="Owner of generated recommendations.")
    parser.add_argument("--store", type=str, default=DEFAULT_STORE_PATH, help="Recommendation store path.")
    parser.add_argument("--profiles", type=str, default=DEFAULT_PROFILES_PATH, help="Profile repository path.")
    parser.add_argument("--log_dir", type=str, default="", help="Directory for JSONL generation events.")
    parser.add_argument("--dry_prompt", action="store_true", help="Print the rendered prompts without calling a model.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    request = _load_json(args.request) if args.request else {}
    if not isinstance(request, dict):
        print(f"request error: {args.request} must contain a JSON object.")
        return 1
    if args.task == "recommendation" and not args.user_id:
        print("request error: --user_id is required for the recommendation task.")
        return 1

    profiles = ProfileRepository(args.profiles)
    try:
        if args.dry_prompt:
            if args.task == "recommendation":
                request = {"profile": resolve_user_profile(profiles, args.user_id, request)}
            system_instruction, user_prompt = build_prompt(args.task, request)
            print("SYSTEM:\n" + system_instruction + "\n")
            print("USER:\n" + user_prompt)
            return 0

        agent = CarbonAdvisorAgent(
            store=RecommendationStore(args.store),
            profiles=profiles,
            event_log_dir=args.log_dir or None,
        )
        if args.task == "recommendation":
            result: Any = agent.generate_recommendations(args.user_id, request)
        elif args.task == "prediction":
            result = agent.predict_emissions(
                request.get("monthly_emissions") or [],
                request.get("activities") or [],
                request.get("seasonal_factors"),
            )
        else:
            result = agent.analyze_behavior(
                request.get("daily_activities") or [],
                request.get("patterns") or [],
                request.get("goals") or [],
            )
    except UserNotFound as exc:
        print(f"request error: {exc}")
        return 2
    except ValueError as exc:
        print(f"request error: {exc}")
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
