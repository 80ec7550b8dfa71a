"""OpenAI-compatible gateway (OpenAI, xAI Grok) using openai SDK with native async."""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from advocate.models import ContextHandle, DebateReply, Score
from advocate.providers.base import (
    DebateGateway,
    EvaluationFailure,
    GatewayError,
    GatewayUnavailableError,
    parse_score,
)
from config.config_loader import ModelConfig, PromptsConfig

logger = logging.getLogger(__name__)


class OpenAIGateway(DebateGateway):
    """OpenAI chat-completions gateway. Set base_url for compatible APIs like xAI.

    No retrieval tool is wired in, so replies carry no sources.
    """

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
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def open_context(self, topic: str) -> ContextHandle:
        return ContextHandle(
            provider=self._config.name,
            topic=topic,
            history=[{"role": "system", "content": self._prompts.debater}],
        )

    async def continue_debate(self, context: ContextHandle, text: str) -> DebateReply:
        messages = [*context.history, {"role": "user", "content": text}]
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise GatewayUnavailableError(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s"
            ) from exc
        except Exception as exc:
            raise GatewayUnavailableError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if choice is None:
            raise GatewayUnavailableError(self._config.name, "No choices in response")
        reply_text = choice.message.content or self._empty_reply

        context.history.extend([
            {"role": "user", "content": text},
            {"role": "assistant", "content": reply_text},
        ])

        logger.info("%s rebuttal: %.2fs", self._config.name, latency)
        return DebateReply(text=reply_text)

    async def score(self, user_text: str, context_text: str) -> Score:
        prompt = self._prompts.judge_request.format(context=context_text, user_text=user_text)
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=[
                        {"role": "system", "content": self._prompts.judge},
                        {"role": "user", "content": prompt},
                    ],
                    response_format={"type": "json_object"},
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise EvaluationFailure(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s"
            ) from exc
        except Exception as exc:
            raise EvaluationFailure(self._config.name, f"API call failed: {exc}") from exc

        logger.info("%s evaluation: %.2fs", self._config.name, time.monotonic() - start)
        choice = response.choices[0] if response.choices else None
        return parse_score(self._config.name, choice.message.content if choice else None)
