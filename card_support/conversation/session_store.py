"""
Thread-safe, memory-resident store for conversation sessions.

Each session record carries its own re-entrant lock; all field updates
for a session happen under that lock, so concurrent requests for the same
session never see a torn record. The registry lock guards inserts and
removals. The sweeper may take it while holding a session lock, but no
path ever waits on a session lock while holding the registry lock.

A background sweeper thread, owned by the store, removes sessions idle
longer than the configured timeout.

Usage:
    store = SessionStore()
    sid = store.create("user123", profile)
    store.transition(sid, ConversationState.INTENT_PREDICTION)
    ...
    store.shutdown()
"""

import dataclasses
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

from card_support.config import SessionConfig, settings
from card_support.schemas.conversation_schema import (
    ConversationState,
    SessionContext,
    StateEntry,
)
from card_support.schemas.customer_schema import CustomerProfile
from card_support.schemas.intent_schema import Intent

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_S = ConversationState

# COMPLETE is reachable from every state (feedback submission closes a session).
ALLOWED_TRANSITIONS: dict[ConversationState, frozenset[ConversationState]] = {
    _S.GREETING: frozenset({_S.INTENT_PREDICTION, _S.INTENT_HANDLING, _S.COMPLETE}),
    _S.INTENT_PREDICTION: frozenset({_S.INTENT_HANDLING, _S.COMPLETE}),
    _S.INTENT_HANDLING: frozenset({_S.FEEDBACK, _S.COMPLETE}),
    _S.FEEDBACK: frozenset({_S.INTENT_HANDLING, _S.COMPLETE}),
    _S.COMPLETE: frozenset({_S.INTENT_HANDLING, _S.COMPLETE}),
}


class InvalidTransitionError(Exception):
    """Raised when a state change is not allowed from the current state."""


class SessionNotFoundError(Exception):
    """Raised when an operation targets a session that does not exist."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _SessionRecord:
    context: SessionContext
    lock: threading.RLock = field(default_factory=threading.RLock)


class SessionStore:
    """Concurrent, expiring registry of SessionContext records."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        clock: Optional[Clock] = None,
        start_sweeper: bool = True,
    ) -> None:
        self.config = config or settings.sessions
        self._clock = clock or _utc_now
        self._sessions: dict[str, _SessionRecord] = {}
        self._registry_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper:
            self.start_sweeper()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def create(self, customer_id: str, profile: Optional[CustomerProfile]) -> str:
        """Create a new session in the GREETING state and return its ID."""
        now = self._clock()
        session_id = str(uuid.uuid4())
        context = SessionContext(
            session_id=session_id,
            customer_id=customer_id,
            profile=profile,
            last_activity=now,
            history=[StateEntry(state=ConversationState.GREETING, entered_at=now)],
        )
        with self._registry_lock:
            self._sessions[session_id] = _SessionRecord(context)
        logger.info("Session created: %s (customer=%s)", session_id, customer_id)
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[SessionContext]:
        """Return a snapshot of the session, refreshing its activity time."""
        if not session_id:
            return None
        record = self._sessions.get(session_id)
        if record is None:
            return None
        with record.lock:
            self._touch(record)
            return self._snapshot(record)

    def exists(self, session_id: str) -> bool:
        """Check for a session without counting it as activity."""
        return session_id in self._sessions

    def remove(self, session_id: str) -> None:
        with self._registry_lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("Session removed: %s", session_id)

    def active_count(self) -> int:
        return len(self._sessions)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock for the duration of a whole turn.

        Store operations on the same session made inside the block re-enter
        the lock, so a retried request waits for the first to finish.
        """
        record = self._require(session_id)
        with record.lock:
            # Swept while we waited for the lock
            if self._sessions.get(session_id) is not record:
                raise SessionNotFoundError(f"Session expired: {session_id}")
            yield

    # ------------------------------------------------------------------ #
    # Field updates
    # ------------------------------------------------------------------ #

    def transition(self, session_id: str, new_state: ConversationState) -> SessionContext:
        """
        Move a session to a new conversation state.

        Raises:
            SessionNotFoundError: If the session does not exist.
            InvalidTransitionError: If the move is not in ALLOWED_TRANSITIONS.
        """
        record = self._require(session_id)
        with record.lock:
            ctx = record.context
            old_state = ctx.conversation_state
            if new_state not in ALLOWED_TRANSITIONS[old_state]:
                valid = sorted(s.value for s in ALLOWED_TRANSITIONS[old_state])
                raise InvalidTransitionError(
                    f"No valid transition from '{old_state.value}' "
                    f"to '{new_state.value}'. Valid targets: {valid}"
                )
            self._touch(record)
            ctx.conversation_state = new_state
            ctx.history.append(StateEntry(state=new_state, entered_at=ctx.last_activity))
            logger.debug(
                "State transition for %s: %s -> %s",
                session_id, old_state.value, new_state.value,
            )
            return self._snapshot(record)

    def set_current_intent(self, session_id: str, intent: Optional[Intent]) -> None:
        record = self._require(session_id)
        with record.lock:
            record.context.current_intent = intent
            self._touch(record)

    def mark_greeting_sent(self, session_id: str) -> None:
        record = self._require(session_id)
        with record.lock:
            record.context.greeting_sent = True
            self._touch(record)

    def increment_message_count(self, session_id: str) -> int:
        record = self._require(session_id)
        with record.lock:
            record.context.message_count += 1
            self._touch(record)
            return record.context.message_count

    def complete(self, session_id: str) -> SessionContext:
        """Force a session into COMPLETE. It stays until the sweeper expires it."""
        return self.transition(session_id, ConversationState.COMPLETE)

    # ------------------------------------------------------------------ #
    # Expiry
    # ------------------------------------------------------------------ #

    def sweep_expired(self, max_idle: Optional[timedelta] = None) -> int:
        """
        Remove sessions idle for longer than ``max_idle``.

        Each candidate is checked again under its own lock before removal.
        A session whose lock is busy is mid-turn and is left for the next
        pass.

        Returns:
            Number of sessions removed.
        """
        if max_idle is None:
            max_idle = timedelta(minutes=self.config.idle_timeout_minutes)
        cutoff = self._clock() - max_idle

        with self._registry_lock:
            candidates = list(self._sessions.items())

        removed = 0
        for sid, record in candidates:
            if record.context.last_activity >= cutoff:
                continue
            if not record.lock.acquire(blocking=False):
                logger.debug("Session %s is busy, skipping sweep", sid)
                continue
            try:
                if record.context.last_activity >= cutoff:
                    continue
                with self._registry_lock:
                    if self._sessions.get(sid) is record:
                        del self._sessions[sid]
                        removed += 1
            finally:
                record.lock.release()

        if removed:
            logger.info("Cleaned up %d inactive sessions", removed)
        return removed

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper, name="session-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.debug(
            "Session sweeper started (interval=%dm, timeout=%dm)",
            self.config.sweep_interval_minutes, self.config.idle_timeout_minutes,
        )

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the sweeper thread. Sessions stay readable afterwards."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None
        logger.debug("Session sweeper stopped")

    def __enter__(self) -> "SessionStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _run_sweeper(self) -> None:
        interval = self.config.sweep_interval_minutes * 60
        while not self._stop_event.wait(interval):
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Session sweep failed")

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require(self, session_id: str) -> _SessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return record

    def _touch(self, record: _SessionRecord) -> None:
        now = self._clock()
        if now > record.context.last_activity:
            record.context.last_activity = now

    @staticmethod
    def _snapshot(record: _SessionRecord) -> SessionContext:
        ctx = record.context
        return dataclasses.replace(ctx, history=list(ctx.history))
