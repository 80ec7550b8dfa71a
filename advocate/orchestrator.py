"""Turn orchestration: the Idle -> Listening -> Researching -> Debating -> Judging cycle."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from advocate.models import DebateReply, Phase, Role, Score, Session, SessionEvent
from advocate.providers.base import DebateGateway, GatewayError, dedupe_sources
from advocate.session import InvalidInputError, SessionStore, new_message
from config.config_loader import AppConfig

logger = logging.getLogger(__name__)

Listener = Callable[[SessionEvent], None]
Sleep = Callable[[float], Awaitable[None]]

FALLBACK_REPLY = (
    "I apologize, but I am unable to formulate a counter-argument at this moment "
    "due to a connection issue. Let's pause and resume shortly."
)
NEUTRAL_FEEDBACK = "Evaluation unavailable"

_NEXT_PHASE: dict[Phase, Phase] = {
    Phase.IDLE: Phase.LISTENING,
    Phase.LISTENING: Phase.RESEARCHING,
    Phase.RESEARCHING: Phase.DEBATING,
    Phase.DEBATING: Phase.JUDGING,
    Phase.JUDGING: Phase.IDLE,
}


class PrematureTurnError(RuntimeError):
    """Raised when input arrives while a turn is still in flight."""


def neutral_score(feedback: str = NEUTRAL_FEEDBACK) -> Score:
    return Score(logic=50, evidence=50, emotional_control=50, feedback=feedback)


class TurnOrchestrator:
    """Owns the live session and drives one turn at a time through the gateway.

    Only Idle accepts input. Every gateway failure is replaced by a fixed
    fallback so each accepted turn appends exactly one agent message and one
    score and always ends back in Idle.
    """

    def __init__(
        self,
        gateway: DebateGateway,
        store: SessionStore | None = None,
        *,
        listening_delay_sec: float = 0.8,
        debating_delay_sec: float = 0.6,
        respond_to_topic: bool = True,
        fallback_reply: str = FALLBACK_REPLY,
        neutral_feedback: str = NEUTRAL_FEEDBACK,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._store = store if store is not None else SessionStore()
        self._listening_delay = listening_delay_sec
        self._debating_delay = debating_delay_sec
        self._respond_to_topic = respond_to_topic
        self._fallback_reply = fallback_reply
        self._neutral_feedback = neutral_feedback
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._opening = False

    @classmethod
    def from_config(
        cls,
        gateway: DebateGateway,
        config: AppConfig,
        *,
        respond_to_topic: bool | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "TurnOrchestrator":
        return cls(
            gateway,
            listening_delay_sec=config.defaults.listening_delay_sec,
            debating_delay_sec=config.defaults.debating_delay_sec,
            respond_to_topic=(
                config.defaults.respond_to_topic if respond_to_topic is None else respond_to_topic
            ),
            fallback_reply=config.fallbacks.debate_reply,
            neutral_feedback=config.fallbacks.score_feedback,
            sleep=sleep,
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def phase(self) -> Phase:
        session = self._store.current
        return session.phase if session is not None else Phase.IDLE

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every session change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Inbound intents
    # ------------------------------------------------------------------

    async def submit_topic(self, topic: str) -> bool:
        """Start a new debate on topic, replacing any idle session.

        Returns False when the topic is rejected (empty, a turn in flight,
        or the gateway could not open a context).
        """
        try:
            self._check_idle()
            _require_text(topic, "Topic")
        except (InvalidInputError, PrematureTurnError) as exc:
            logger.info("Topic rejected: %s", exc)
            return False

        self._opening = True
        try:
            context = await self._gateway.open_context(topic)
        except Exception as exc:
            logger.warning("Could not open debate context via %s: %s", self._gateway.name(), exc)
            return False
        finally:
            self._opening = False

        session = self._store.create_session(topic, context)
        self._emit("session_created")

        if self._respond_to_topic:
            self._begin_turn(session)
            await self._run_turn(session, topic)
        return True

    async def submit_user_turn(self, text: str) -> bool:
        """Run one full turn for the user's rebuttal.

        Returns False without touching the session when there is no session,
        a turn is already running, or text is blank.
        """
        try:
            self._check_idle()
            if self._store.current is None:
                raise PrematureTurnError("No active session; submit a topic first")
            _require_text(text, "Rebuttal")
        except (InvalidInputError, PrematureTurnError) as exc:
            logger.info("Turn rejected: %s", exc)
            return False

        session = self._store.current
        self._store.append_message(session, new_message(Role.USER, text))
        self._emit("message")
        self._begin_turn(session)
        await self._run_turn(session, text)
        return True

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _check_idle(self) -> None:
        if self._opening or self.phase is not Phase.IDLE:
            raise PrematureTurnError(f"Turn in progress (phase: {self.phase.value})")

    def _begin_turn(self, session: Session) -> None:
        # Leaves Idle before the first suspension point so a concurrent
        # submission is rejected.
        self._transition(session, Phase.LISTENING)

    async def _run_turn(self, session: Session, text: str) -> None:
        await self._sleep(self._listening_delay)

        self._transition(session, Phase.RESEARCHING)
        reply = await self._research(session, text)

        self._transition(session, Phase.DEBATING)
        await self._sleep(self._debating_delay)
        self._store.append_message(
            session, new_message(Role.AGENT, reply.text, dedupe_sources(reply.sources))
        )
        self._emit("message")

        self._transition(session, Phase.JUDGING)
        score = await self._judge(text, reply.text)
        self._store.append_score(session, score)
        self._emit("score")

        self._transition(session, Phase.IDLE)
        logger.info(
            "Turn complete: %d messages, %d scores", len(session.messages), len(session.scores)
        )

    def _transition(self, session: Session, phase: Phase) -> None:
        expected = _NEXT_PHASE[session.phase]
        if phase is not expected:
            raise RuntimeError(f"Invalid phase transition {session.phase.value} -> {phase.value}")
        self._store.set_phase(session, phase)
        logger.debug("Phase -> %s", phase.value)
        self._emit("phase")

    async def _research(self, session: Session, text: str) -> DebateReply:
        try:
            return await self._gateway.continue_debate(session.context, text)
        except GatewayError as exc:
            logger.warning("Debate gateway failed, using fallback reply: %s", exc)
        except Exception as exc:
            logger.warning("Unexpected debate gateway failure, using fallback reply: %s", exc)
        return DebateReply(text=self._fallback_reply)

    async def _judge(self, user_text: str, reply_text: str) -> Score:
        try:
            return await self._gateway.score(user_text, reply_text)
        except GatewayError as exc:
            logger.warning("Evaluation failed, using neutral score: %s", exc)
        except Exception as exc:
            logger.warning("Unexpected evaluation failure, using neutral score: %s", exc)
        return neutral_score(self._neutral_feedback)

    def _emit(self, kind: str) -> None:
        snapshot = self._store.snapshot()
        if snapshot is None:
            return
        event = SessionEvent(kind=kind, snapshot=snapshot)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Session listener failed on %s event", kind)


def _require_text(text: str, label: str) -> None:
    if not text or not text.strip():
        raise InvalidInputError(f"{label} must not be empty")
