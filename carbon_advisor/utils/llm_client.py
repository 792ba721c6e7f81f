from typing import Any, Dict, List, Optional

import openai

from carbon_advisor.utils.llm_config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_S,
    _is_placeholder_key,
)


class GenerationError(RuntimeError):
    pass


class ConfigurationError(GenerationError):
    pass


class NetworkError(GenerationError):
    pass


def _completion_text(response: Any) -> Optional[str]:
    if response is None:
        return None
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    msg = getattr(choices[0], "message", None)
    if msg is None:
        return None
    content = getattr(msg, "content", None)
    if isinstance(content, str) and content.strip():
        return content
    return None


class GenerativeClient:
    """
    Single-shot text completion against an external model endpoint.

    One call to `complete` makes at most one outbound request. There is no
    retry: completions are billed per request and are not idempotent.
    """

    def __init__(self, config: Dict[str, Any] | None = None, client: Any = None):
        self.config = dict(config or {})
        self.provider = (self.config.get("provider") or "openai").lower()
        self.model_name = self.config.get("model")
        self.timeout_s = float(self.config.get("timeout_s") or DEFAULT_TIMEOUT_S)
        temperature = self.config.get("temperature")
        self.temperature = DEFAULT_TEMPERATURE if temperature is None else float(temperature)
        self.max_tokens = int(self.config.get("max_tokens") or DEFAULT_MAX_TOKENS)
        # Injected SDK handle: an OpenAI client, or the google.generativeai module.
        self._client = client

    @property
    def api_key(self) -> Optional[str]:
        key = self.config.get("api_key")
        return None if _is_placeholder_key(key) else key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, system_instruction: str, user_prompt: str, task_kind: str) -> str:
        if not self.is_configured():
            raise ConfigurationError(
                f"No API key configured for provider '{self.provider}' (task={task_kind})."
            )
        if self.provider == "gemini":
            return self._complete_gemini(system_instruction, user_prompt, task_kind)
        return self._complete_openai(system_instruction, user_prompt, task_kind)

    def _openai_client(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.config.get("base_url") or None,
                timeout=self.timeout_s,
                max_retries=0,
            )
        return self._client

    def _complete_openai(self, system_instruction: str, user_prompt: str, task_kind: str) -> str:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": user_prompt},
        ]
        try:
            response = self._openai_client().chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout_s,
            )
        except openai.APIError as exc:
            raise NetworkError(f"{type(exc).__name__}: {str(exc)[:200]}") from exc

        text = _completion_text(response)
        if text is None:
            raise NetworkError(f"EMPTY_COMPLETION provider=openai task={task_kind}")
        return text

    def _complete_gemini(self, system_instruction: str, user_prompt: str, task_kind: str) -> str:
        genai = self._client
        if genai is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai

        model = genai.GenerativeModel(
            model_name=self.model_name,
            generation_config={
                "temperature": self.temperature,
                "max_output_tokens": self.max_tokens,
            },
            system_instruction=system_instruction,
        )
        try:
            response = model.generate_content(
                user_prompt,
                request_options={"timeout": self.timeout_s, "retry": None},
            )
            # .text raises ValueError when the candidate was blocked or empty.
            text = response.text
        except Exception as exc:
            raise NetworkError(f"{type(exc).__name__}: {str(exc)[:200]}") from exc

        if not isinstance(text, str) or not text.strip():
            raise NetworkError(f"EMPTY_COMPLETION provider=gemini task={task_kind}")
        return text
