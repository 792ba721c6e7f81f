from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

_PLACEHOLDER_KEYS = {"dummy", "test", "placeholder", "changeme"}

DEFAULT_OPENAI_MODEL = "gpt-4"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1200


def _is_placeholder_key(value: Optional[str]) -> bool:
    if not value or not value.strip():
        return True
    return value.strip().lower() in _PLACEHOLDER_KEYS


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def load_llm_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Returns the generation backend configuration as a plain dict:
    provider, api_key (None when missing or a placeholder), model, base_url,
    timeout_s, temperature, max_tokens.

    Reads the process environment (after load_dotenv) unless an explicit
    mapping is given.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    provider = (env.get("CARBON_LLM_PROVIDER") or "openai").strip().lower()
    if provider == "gemini":
        api_key = env.get("GOOGLE_API_KEY") or env.get("GEMINI_API_KEY")
        model = env.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL
        base_url = None
    else:
        provider = "openai"
        api_key = env.get("OPENAI_API_KEY")
        model = env.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL
        base_url = env.get("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL

    return {
        "provider": provider,
        "api_key": None if _is_placeholder_key(api_key) else api_key.strip(),
        "model": model,
        "base_url": base_url,
        "timeout_s": _read_float(env, "CARBON_LLM_TIMEOUT_S", DEFAULT_TIMEOUT_S),
        "temperature": _read_float(env, "CARBON_LLM_TEMPERATURE", DEFAULT_TEMPERATURE),
        "max_tokens": _read_int(env, "CARBON_LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS),
    }
