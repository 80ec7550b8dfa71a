"""Gemini gateway using google-genai SDK with native async and Search grounding."""

import asyncio
import logging
import os
import time
from typing import Any

from google import genai
from google.genai import types as genai_types

from advocate.models import ContextHandle, DebateReply, Score, Source
from advocate.providers.base import (
    DebateGateway,
    EvaluationFailure,
    GatewayError,
    GatewayUnavailableError,
    dedupe_sources,
    parse_score,
)
from config.config_loader import ModelConfig, PromptsConfig

logger = logging.getLogger(__name__)

_SCORE_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "logic": genai_types.Schema(
            type=genai_types.Type.NUMBER, description="Score 0-100 for logical consistency"
        ),
        "evidence": genai_types.Schema(
            type=genai_types.Type.NUMBER, description="Score 0-100 for factual backing"
        ),
        "emotionalControl": genai_types.Schema(
            type=genai_types.Type.NUMBER, description="Score 0-100 for tone/civility"
        ),
        "feedback": genai_types.Schema(
            type=genai_types.Type.STRING, description="One sentence constructive critique"
        ),
    },
    required=["logic", "evidence", "emotionalControl", "feedback"],
)


def _grounding_sources(response: Any) -> list[Source]:
    """Collect web sources from the first candidate's grounding chunks."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    sources: list[Source] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        title = getattr(web, "title", None)
        if uri and title:
            sources.append(Source(title=title, uri=uri))
    return sources


class GeminiGateway(DebateGateway):
    """Google Gemini gateway via google-genai SDK."""

    def __init__(
        self,
        config: ModelConfig,
        prompts: PromptsConfig,
        empty_reply: str = "I have nothing to say.",
    ) -> None:
        self._config = config
        self._prompts = prompts
        self._empty_reply = empty_reply
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise GatewayError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def open_context(self, topic: str) -> ContextHandle:
        tools = [genai_types.Tool(google_search=genai_types.GoogleSearch())] if self._config.search else None
        try:
            chat = self._client.aio.chats.create(
                model=self._config.model,
                config=genai_types.GenerateContentConfig(
                    system_instruction=self._prompts.debater,
                    tools=tools,
                    max_output_tokens=self._config.max_tokens,
                ),
            )
        except Exception as exc:
            raise GatewayUnavailableError(self._config.name, f"Could not open chat: {exc}") from exc
        logger.debug("Gemini chat opened for topic: %s", topic[:60])
        return ContextHandle(provider=self._config.name, topic=topic, chat=chat)

    async def continue_debate(self, context: ContextHandle, text: str) -> DebateReply:
        if context.chat is None:
            raise GatewayUnavailableError(self._config.name, "Chat session not initialized")

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                context.chat.send_message(text),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise GatewayUnavailableError(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s"
            ) from exc
        except Exception as exc:
            raise GatewayUnavailableError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        sources = dedupe_sources(_grounding_sources(response))

        logger.info("Gemini rebuttal: %.2fs, %d sources", latency, len(sources))

        return DebateReply(text=response.text or self._empty_reply, sources=sources)

    async def score(self, user_text: str, context_text: str) -> Score:
        prompt = self._prompts.judge_request.format(context=context_text, user_text=user_text)
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=genai_types.GenerateContentConfig(
                        system_instruction=self._prompts.judge,
                        response_mime_type="application/json",
                        response_schema=_SCORE_SCHEMA,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise EvaluationFailure(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s"
            ) from exc
        except Exception as exc:
            raise EvaluationFailure(self._config.name, f"API call failed: {exc}") from exc

        logger.info("Gemini evaluation: %.2fs", time.monotonic() - start)
        return parse_score(self._config.name, response.text)
