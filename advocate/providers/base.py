"""Abstract base for all language-model gateways, plus shared parsing helpers."""

import json
import math
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from advocate.models import ContextHandle, DebateReply, Score, Source

_SCORE_FIELDS = ("logic", "evidence", "emotional_control")


class GatewayError(Exception):
    """Raised when a gateway call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class GatewayUnavailableError(GatewayError):
    """The debate context could not be opened or continued."""


class EvaluationFailure(GatewayError):
    """The judge call failed or returned an unusable score."""


class DebateGateway(ABC):
    """Abstract base for all language-model gateways."""

    @abstractmethod
    def name(self) -> str:
        """Return the short gateway name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def open_context(self, topic: str) -> ContextHandle:
        """Open a grounded conversational context for a new debate.

        Raises:
            GatewayUnavailableError: If the context cannot be created.
        """
        ...

    @abstractmethod
    async def continue_debate(self, context: ContextHandle, text: str) -> DebateReply:
        """Send the user's message into the context and return the rebuttal.

        Args:
            context: Handle returned by open_context for this session.
            text: The user's raw message.

        Returns:
            DebateReply with the generated text and sources deduplicated by URI.

        Raises:
            GatewayUnavailableError: On API failure, timeout, or empty response.
        """
        ...

    @abstractmethod
    async def score(self, user_text: str, context_text: str) -> Score:
        """Score user_text against the rubric, using context_text as grounding.

        Raises:
            EvaluationFailure: On API failure or a malformed/incomplete score.
        """
        ...


def dedupe_sources(sources: Iterable[Source]) -> tuple[Source, ...]:
    """Drop sources whose URI was already seen. First occurrence wins."""
    seen: set[str] = set()
    unique: list[Source] = []
    for source in sources:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        unique.append(source)
    return tuple(unique)


def _rating(provider_name: str, payload: dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvaluationFailure(provider_name, f"Missing or non-numeric field: {key}")
    if math.isnan(value) or not 0 <= value <= 100:
        raise EvaluationFailure(provider_name, f"Field {key} out of range: {value}")
    return float(value)


def parse_score(provider_name: str, raw: str | dict[str, Any] | None) -> Score:
    """Turn a judge response (JSON text or decoded dict) into a Score.

    Accepts either ``emotionalControl`` or ``emotional_control``. Ratings must
    be numbers in [0, 100] and feedback must be a string.

    Raises:
        EvaluationFailure: If any field is missing, mistyped or out of range.
    """
    if raw is None or raw == "":
        raise EvaluationFailure(provider_name, "No evaluation generated")

    if isinstance(raw, str):
        try:
            payload = json.loads(_json_object_span(raw))
        except json.JSONDecodeError as exc:
            raise EvaluationFailure(provider_name, f"Invalid JSON: {exc}") from exc
    else:
        payload = raw

    if not isinstance(payload, dict):
        raise EvaluationFailure(provider_name, "Evaluation is not a JSON object")

    payload = dict(payload)
    if "emotional_control" not in payload and "emotionalControl" in payload:
        payload["emotional_control"] = payload["emotionalControl"]

    logic, evidence, emotional_control = (_rating(provider_name, payload, k) for k in _SCORE_FIELDS)

    feedback = payload.get("feedback")
    if not isinstance(feedback, str):
        raise EvaluationFailure(provider_name, "Missing field: feedback")

    return Score(
        logic=logic,
        evidence=evidence,
        emotional_control=emotional_control,
        feedback=feedback,
    )


def _json_object_span(text: str) -> str:
    """Cut the outermost {...} out of a reply.

    Models sometimes wrap the object in a ```json fence or lead with prose
    ("Here is the score: {...}") despite instructions. Text without a brace
    pair is returned stripped so the decoder reports the real error.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text.strip()
    return text[start:end + 1]
