"""Shared pytest fixtures."""

from unittest.mock import AsyncMock

import pytest

from advocate.models import ContextHandle, DebateReply, Score, SessionEvent, Source
from advocate.orchestrator import TurnOrchestrator
from advocate.providers.base import DebateGateway
from config.config_loader import AppConfig, DefaultsConfig, FallbacksConfig, ModelConfig, PromptsConfig


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        debater="You are the Devil's Advocate.",
        judge="You are an impartial Debate Judge. Return JSON only.",
        judge_request='Context of debate: {context}\nUser\'s latest argument: "{user_text}"',
    )


@pytest.fixture
def sample_app_config(sample_prompts_config: PromptsConfig) -> AppConfig:
    model_cfg = ModelConfig(
        name="gemini",
        sdk="google-genai",
        model="gemini-2.5-flash",
        api_key_env="GEMINI_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
        search=True,
    )
    return AppConfig(
        defaults=DefaultsConfig(
            gateway="gemini",
            listening_delay_sec=0.25,
            debating_delay_sec=0.5,
            respond_to_topic=True,
        ),
        models={"gemini": model_cfg},
        prompts=sample_prompts_config,
        fallbacks=FallbacksConfig(
            debate_reply="Connection trouble, let's pause.",
            empty_reply="I have nothing to say.",
            score_feedback="Evaluation unavailable",
        ),
        preset_topics=["Social media does more harm than good.", "AI art is not real art."],
        available_gateways={"gemini"},
    )


@pytest.fixture
def sample_score() -> Score:
    return Score(logic=72, evidence=40, emotional_control=88, feedback="Cite a study next time.")


@pytest.fixture
def sample_sources() -> tuple[Source, ...]:
    return (
        Source(title="Pew Research", uri="https://pewresearch.org/a"),
        Source(title="Nature", uri="https://nature.com/b"),
    )


class MockGateway(DebateGateway):
    """Test double DebateGateway."""

    def __init__(
        self,
        gateway_name: str = "mock",
        reply_text: str = "Mock rebuttal",
        sources: tuple[Source, ...] = (),
        score: Score | None = None,
    ) -> None:
        self._name = gateway_name
        # Shadow the class methods with AsyncMocks at the instance level.
        # ABC check passes because they are defined in the class body below.
        self.open_context = AsyncMock(  # type: ignore[assignment]
            side_effect=lambda topic: ContextHandle(provider=gateway_name, topic=topic)
        )
        self.continue_debate = AsyncMock(  # type: ignore[assignment]
            return_value=DebateReply(text=reply_text, sources=sources)
        )
        self.score = AsyncMock(  # type: ignore[assignment]
            return_value=score or Score(logic=70, evidence=60, emotional_control=80, feedback="Solid.")
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def open_context(self, topic: str) -> ContextHandle:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ContextHandle(provider=self._name, topic=topic)

    async def continue_debate(self, context: ContextHandle, text: str) -> DebateReply:  # type: ignore[override]
        return DebateReply(text="Mock rebuttal")

    async def score(self, user_text: str, context_text: str) -> Score:  # type: ignore[override]
        return Score(logic=70, evidence=60, emotional_control=80, feedback="Solid.")


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def mock_gateway() -> MockGateway:
    return MockGateway()


@pytest.fixture
def events() -> list[SessionEvent]:
    return []


@pytest.fixture
def orchestrator(mock_gateway: MockGateway, events: list[SessionEvent]) -> TurnOrchestrator:
    orch = TurnOrchestrator(mock_gateway, sleep=no_sleep)
    orch.subscribe(events.append)
    return orch
