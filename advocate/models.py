"""Pure dataclasses for the Devil's Advocate debate session. No logic, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"


class Phase(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    RESEARCHING = "researching"
    DEBATING = "debating"
    JUDGING = "judging"


@dataclass(frozen=True)
class Source:
    title: str
    uri: str


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    text: str
    timestamp: datetime
    sources: tuple[Source, ...] | None = None   # agent messages only
    sentiment: str | None = None                # reserved, never populated


@dataclass(frozen=True)
class Score:
    logic: float
    evidence: float
    emotional_control: float
    feedback: str


@dataclass(frozen=True)
class DebateReply:
    text: str
    sources: tuple[Source, ...] = ()


@dataclass
class ContextHandle:
    provider: str
    topic: str
    chat: Any = None    # native SDK chat object, when the gateway keeps one
    history: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class Session:
    topic: str
    context: ContextHandle
    messages: list[Message] = field(default_factory=list)
    scores: list[Score] = field(default_factory=list)
    phase: Phase = Phase.IDLE


@dataclass(frozen=True)
class SessionSnapshot:
    topic: str
    messages: tuple[Message, ...]
    scores: tuple[Score, ...]
    phase: Phase


@dataclass(frozen=True)
class SessionEvent:
    kind: str           # "session_created", "phase", "message", "score"
    snapshot: SessionSnapshot
