"""Tests for gateway selection, topic resolution and the session loop in advocate/cli.py."""

import asyncio
import threading

import click
import pytest

from advocate import cli
from advocate.cli import _build_gateway, _pick_gateway_name, _resolve_topic, _run_session
from advocate.models import Phase
from advocate.orchestrator import TurnOrchestrator
from advocate.providers.openai_provider import OpenAIGateway
from config.config_loader import ModelConfig
from tests.conftest import MockGateway, no_sleep

PRESETS = ["Social media does more harm than good.", "AI art is not real art."]


def test_resolve_topic_explicit_wins():
    assert _resolve_topic("Pineapple belongs on pizza.", 1, PRESETS) == "Pineapple belongs on pizza."


def test_resolve_topic_preset_is_one_based():
    assert _resolve_topic(None, 2, PRESETS) == "AI art is not real art."


@pytest.mark.parametrize("preset", [0, 3, -1, None])
def test_resolve_topic_invalid_preset(preset):
    assert _resolve_topic(None, preset, PRESETS) is None


def test_resolve_topic_blank_falls_through_to_preset():
    assert _resolve_topic("   ", 1, PRESETS) == PRESETS[0]


def test_pick_gateway_default(sample_app_config):
    assert _pick_gateway_name(sample_app_config, None) == "gemini"


def test_pick_gateway_requested_unavailable(sample_app_config):
    assert _pick_gateway_name(sample_app_config, "claude") is None


def test_pick_gateway_falls_back_to_available(sample_app_config):
    sample_app_config.defaults.gateway = "claude"
    sample_app_config.available_gateways = {"openai", "grok"}
    assert _pick_gateway_name(sample_app_config, None) == "grok"


def test_pick_gateway_none_available(sample_app_config):
    sample_app_config.available_gateways = set()
    assert _pick_gateway_name(sample_app_config, None) is None


def test_build_gateway_unknown_name(sample_app_config):
    with pytest.raises(click.BadParameter):
        _build_gateway(sample_app_config, "llama")


def test_build_gateway_grok_uses_openai_client(sample_app_config, monkeypatch):
    monkeypatch.setenv("XAI_API_KEY", "xai-test")
    sample_app_config.models["grok"] = ModelConfig(
        name="grok", sdk="openai", model="grok-4", api_key_env="XAI_API_KEY",
        timeout_sec=60, max_tokens=1024, base_url="https://api.x.ai/v1",
    )
    gateway = _build_gateway(sample_app_config, "grok")
    assert isinstance(gateway, OpenAIGateway)
    assert gateway.name() == "grok"


def _feed_input(monkeypatch, lines: list[str]) -> None:
    remaining = list(lines)

    def fake_input(prompt: str = "") -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    monkeypatch.setattr(cli.console, "input", fake_input)


async def test_run_session_processes_rebuttals_until_quit(monkeypatch):
    gateway = MockGateway()
    orch = TurnOrchestrator(gateway, sleep=no_sleep)
    _feed_input(monkeypatch, ["First rebuttal", "", "/scores", "Second rebuttal", "/quit", "ignored"])

    await _run_session(orch, "Opening topic")

    snapshot = orch.store.snapshot()
    assert len(snapshot.messages) == 6
    assert len(snapshot.scores) == 3
    assert snapshot.phase is Phase.IDLE


async def test_run_session_new_topic_command(monkeypatch):
    gateway = MockGateway()
    orch = TurnOrchestrator(gateway, sleep=no_sleep)
    _feed_input(monkeypatch, ["/new", "/new Cities should ban cars."])

    await _run_session(orch, "Opening topic")

    assert orch.store.current.topic == "Cities should ban cars."
    assert gateway.open_context.await_count == 2


async def test_run_session_stops_when_topic_rejected(monkeypatch):
    gateway = MockGateway()
    orch = TurnOrchestrator(gateway, sleep=no_sleep)
    _feed_input(monkeypatch, ["never read"])

    await _run_session(orch, "   ")

    assert orch.store.current is None
    gateway.continue_debate.assert_not_awaited()


async def test_cancel_while_waiting_for_input_returns_promptly(monkeypatch):
    gateway = MockGateway()
    orch = TurnOrchestrator(gateway, sleep=no_sleep)
    reading = threading.Event()
    release = threading.Event()
    reader_threads: list[threading.Thread] = []

    def blocking_input(prompt: str = "") -> str:
        reader_threads.append(threading.current_thread())
        reading.set()
        release.wait(timeout=5)
        return "/quit"

    monkeypatch.setattr(cli.console, "input", blocking_input)

    task = asyncio.create_task(_run_session(orch, "Topic"))
    while not reading.is_set():
        await asyncio.sleep(0.01)

    task.cancel()
    await asyncio.wait_for(task, timeout=1)

    assert not task.cancelled()
    assert reader_threads[0].daemon is True
    assert orch.store.snapshot().phase is Phase.IDLE
    release.set()


async def test_eof_on_reader_thread_ends_session(monkeypatch):
    orch = TurnOrchestrator(MockGateway(), sleep=no_sleep)

    def closed_stdin(prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr(cli.console, "input", closed_stdin)

    await asyncio.wait_for(_run_session(orch, "Topic"), timeout=1)

    assert len(orch.store.snapshot().messages) == 2
