"""Anthropic Claude gateway using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

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

_WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}
_MAX_RESUMES = 3


class AnthropicGateway(DebateGateway):
    """Anthropic Claude gateway via anthropic SDK.

    The SDK is stateless, so the debate context is the message history kept
    on the ContextHandle.
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
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def open_context(self, topic: str) -> ContextHandle:
        return ContextHandle(provider=self._config.name, topic=topic)

    async def continue_debate(self, context: ContextHandle, text: str) -> DebateReply:
        messages = [*context.history, {"role": "user", "content": text}]
        kwargs = {"tools": [_WEB_SEARCH_TOOL]} if self._config.search else {}

        start = time.monotonic()
        response = await self._create(
            GatewayUnavailableError, system=self._prompts.debater, messages=messages, **kwargs
        )
        content = list(response.content or [])

        # Server-side tools can hand back a paused turn; send the partial
        # assistant content back unchanged to let it finish.
        resumes = 0
        while getattr(response, "stop_reason", None) == "pause_turn":
            if resumes == _MAX_RESUMES:
                logger.warning(
                    "Anthropic turn still paused after %d resumes, using partial reply", resumes
                )
                break
            resumes += 1
            response = await self._create(
                GatewayUnavailableError,
                system=self._prompts.debater,
                messages=[*messages, {"role": "assistant", "content": list(content)}],
                **kwargs,
            )
            content.extend(response.content or [])

        latency = time.monotonic() - start

        text_blocks = [b for b in content if b.type == "text"]
        reply_text = "".join(b.text for b in text_blocks).strip() or self._empty_reply

        sources: list[Source] = []
        for block in text_blocks:
            for citation in getattr(block, "citations", None) or []:
                url = getattr(citation, "url", None)
                title = getattr(citation, "title", None)
                if url and title:
                    sources.append(Source(title=title, uri=url))

        context.history.extend([
            {"role": "user", "content": text},
            {"role": "assistant", "content": reply_text},
        ])

        unique = dedupe_sources(sources)
        logger.info(
            "Anthropic rebuttal: %.2fs, %d sources, %d resumes", latency, len(unique), resumes
        )
        return DebateReply(text=reply_text, sources=unique)

    async def score(self, user_text: str, context_text: str) -> Score:
        prompt = self._prompts.judge_request.format(context=context_text, user_text=user_text)
        start = time.monotonic()
        response = await self._create(
            EvaluationFailure,
            max_tokens=1024,
            system=self._prompts.judge,
            messages=[{"role": "user", "content": prompt}],
        )

        logger.info("Anthropic evaluation: %.2fs", time.monotonic() - start)
        raw = "\n".join(b.text for b in response.content or [] if b.type == "text")
        return parse_score(self._config.name, raw)

    async def _create(self, error_cls: type[GatewayError], **params):
        """One messages.create call under the configured timeout.

        Any failure is re-raised as error_cls.
        """
        params.setdefault("max_tokens", self._config.max_tokens)
        try:
            return await asyncio.wait_for(
                self._client.messages.create(model=self._config.model, **params),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise error_cls(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s"
            ) from exc
        except Exception as exc:
            raise error_cls(self._config.name, f"API call failed: {exc}") from exc
