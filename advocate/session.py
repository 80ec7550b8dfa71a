"""In-memory store for the single live debate session."""

import logging
import uuid
from datetime import datetime

from advocate.models import (
    ContextHandle,
    Message,
    Phase,
    Role,
    Score,
    Session,
    SessionSnapshot,
    Source,
)

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when a topic or rebuttal is empty or whitespace-only."""


def new_message(role: Role, text: str, sources: tuple[Source, ...] | None = None) -> Message:
    """Build a Message with a fresh id and the current timestamp."""
    return Message(
        id=uuid.uuid4().hex,
        role=role,
        text=text,
        timestamp=datetime.now(),
        sources=sources,
    )


class SessionStore:
    """Holds at most one Session. Creating a new one discards the old."""

    def __init__(self) -> None:
        self._current: Session | None = None

    @property
    def current(self) -> Session | None:
        return self._current

    def create_session(self, topic: str, context: ContextHandle) -> Session:
        """Start a new session seeded with the topic as the first user message.

        Raises:
            InvalidInputError: If topic is empty or whitespace-only.
        """
        if not topic or not topic.strip():
            raise InvalidInputError("Topic must not be empty")

        if self._current is not None:
            logger.info("Discarding previous session: %s", self._current.topic[:60])

        session = Session(topic=topic, context=context)
        session.messages.append(new_message(Role.USER, topic))
        self._current = session
        logger.debug("Session created for topic: %s", topic[:60])
        return session

    def append_message(self, session: Session, message: Message) -> None:
        session.messages.append(message)

    def append_score(self, session: Session, score: Score) -> None:
        session.scores.append(score)

    def set_phase(self, session: Session, phase: Phase) -> None:
        session.phase = phase

    def snapshot(self) -> SessionSnapshot | None:
        """Return a read-only view of the live session, or None."""
        session = self._current
        if session is None:
            return None
        return SessionSnapshot(
            topic=session.topic,
            messages=tuple(session.messages),
            scores=tuple(session.scores),
            phase=session.phase,
        )
