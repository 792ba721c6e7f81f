from typing import Any, NamedTuple, Optional

GENERATED = "generated"
FALLBACK = "fallback"


class GenerationOutcome(NamedTuple):
    """Result of one generation task: either the model's payload or the fallback's."""

    source: str
    payload: Any
    reason: Optional[str] = None

    @classmethod
    def generated(cls, payload: Any) -> "GenerationOutcome":
        return cls(GENERATED, payload, None)

    @classmethod
    def fallback_used(cls, payload: Any, reason: Optional[str] = None) -> "GenerationOutcome":
        return cls(FALLBACK, payload, reason)

    @property
    def used_fallback(self) -> bool:
        return self.source == FALLBACK
