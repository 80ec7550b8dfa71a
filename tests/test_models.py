"""Tests for advocate/models.py dataclasses."""

import dataclasses
from datetime import datetime

import pytest

from advocate.models import (
    ContextHandle,
    DebateReply,
    Message,
    Phase,
    Role,
    Score,
    Session,
    Source,
)


def test_phase_values():
    assert [p.value for p in Phase] == ["idle", "listening", "researching", "debating", "judging"]


def test_message_is_immutable():
    msg = Message(id="1", role=Role.USER, text="Hi", timestamp=datetime.now())
    with pytest.raises(dataclasses.FrozenInstanceError):
        msg.text = "changed"  # type: ignore[misc]


def test_message_optional_fields():
    msg = Message(id="1", role=Role.AGENT, text="Hi", timestamp=datetime.now())
    assert msg.sources is None
    assert msg.sentiment is None


def test_score_fields(sample_score):
    assert sample_score.logic == 72
    assert sample_score.emotional_control == 88
    assert sample_score.feedback == "Cite a study next time."
    with pytest.raises(dataclasses.FrozenInstanceError):
        sample_score.logic = 10  # type: ignore[misc]


def test_source_equality():
    assert Source("A", "https://a") == Source("A", "https://a")
    assert Source("A", "https://a") != Source("B", "https://a")


def test_debate_reply_default_sources():
    assert DebateReply(text="x").sources == ()


def test_context_handle_defaults():
    ctx = ContextHandle(provider="gemini", topic="T")
    assert ctx.chat is None
    assert ctx.history == []


def test_session_defaults():
    session = Session(topic="T", context=ContextHandle(provider="gemini", topic="T"))
    assert session.messages == []
    assert session.scores == []
    assert session.phase is Phase.IDLE


def test_sessions_do_not_share_lists():
    a = Session(topic="A", context=ContextHandle(provider="m", topic="A"))
    b = Session(topic="B", context=ContextHandle(provider="m", topic="B"))
    a.scores.append(Score(1, 2, 3, "x"))
    assert b.scores == []
