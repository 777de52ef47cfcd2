"""Tests for the concurrent, expiring session store."""

import threading
from datetime import timedelta

import pytest

from card_support.config import SessionConfig
from card_support.conversation.session_store import (
    ALLOWED_TRANSITIONS,
    InvalidTransitionError,
    SessionNotFoundError,
    SessionStore,
)
from card_support.schemas.conversation_schema import ConversationState
from card_support.schemas.intent_schema import Intent, IntentName

from tests.conftest import FakeClock, make_profile

S = ConversationState


class TestCreateAndGet:
    def test_new_session_starts_in_greeting(self, store):
        sid = store.create("cust1", make_profile())
        ctx = store.get(sid)
        assert ctx.conversation_state == S.GREETING
        assert ctx.customer_id == "cust1"
        assert ctx.message_count == 0
        assert not ctx.greeting_sent
        assert ctx.get_state_trace() == ["greeting"]

    def test_session_ids_are_unique(self, store):
        assert store.create("a", None) != store.create("a", None)

    def test_missing_session_returns_none(self, store):
        assert store.get("nope") is None
        assert store.get(None) is None
        assert store.get("") is None

    def test_profile_may_be_absent(self, store):
        sid = store.create("ghost", None)
        assert store.get(sid).profile is None

    def test_snapshot_is_detached(self, store):
        sid = store.create("cust1", None)
        snapshot = store.get(sid)
        snapshot.message_count = 99
        snapshot.history.clear()
        fresh = store.get(sid)
        assert fresh.message_count == 0
        assert len(fresh.history) == 1

    def test_remove_and_count(self, store):
        sid = store.create("cust1", None)
        store.create("cust2", None)
        assert store.active_count() == 2
        store.remove(sid)
        assert not store.exists(sid)
        assert store.active_count() == 1
        store.remove(sid)  # no-op


class TestFieldUpdates:
    def test_set_current_intent(self, store):
        sid = store.create("cust1", None)
        intent = Intent(name=IntentName.PAYMENT_INQUIRY, confidence=0.9)
        store.set_current_intent(sid, intent)
        assert store.get(sid).current_intent == intent
        store.set_current_intent(sid, None)
        assert store.get(sid).current_intent is None

    def test_greeting_and_message_count(self, store):
        sid = store.create("cust1", None)
        store.mark_greeting_sent(sid)
        assert store.increment_message_count(sid) == 1
        assert store.increment_message_count(sid) == 2
        ctx = store.get(sid)
        assert ctx.greeting_sent
        assert ctx.message_count == 2

    def test_updates_on_missing_session_raise(self, store):
        with pytest.raises(SessionNotFoundError, match="missing"):
            store.increment_message_count("missing")
        with pytest.raises(SessionNotFoundError):
            store.transition("missing", S.COMPLETE)


class TestTransitions:
    def test_happy_path(self, store):
        sid = store.create("cust1", None)
        for state in (S.INTENT_PREDICTION, S.INTENT_HANDLING, S.FEEDBACK, S.COMPLETE):
            store.transition(sid, state)
        assert store.get(sid).get_state_trace() == [
            "greeting", "intent_prediction", "intent_handling", "feedback", "complete",
        ]

    def test_transition_returns_snapshot(self, store):
        sid = store.create("cust1", None)
        ctx = store.transition(sid, S.INTENT_PREDICTION)
        assert ctx.conversation_state == S.INTENT_PREDICTION

    def test_invalid_transition_raises(self, store):
        sid = store.create("cust1", None)
        with pytest.raises(InvalidTransitionError, match="greeting"):
            store.transition(sid, S.FEEDBACK)
        assert store.get(sid).conversation_state == S.GREETING

    def test_prediction_cannot_skip_to_feedback(self, store):
        sid = store.create("cust1", None)
        store.transition(sid, S.INTENT_PREDICTION)
        with pytest.raises(InvalidTransitionError):
            store.transition(sid, S.FEEDBACK)

    @pytest.mark.parametrize("state", list(S))
    def test_complete_reachable_from_every_state(self, state):
        assert S.COMPLETE in ALLOWED_TRANSITIONS[state]

    def test_complete_reenters_handling(self, store):
        sid = store.create("cust1", None)
        store.complete(sid)
        store.transition(sid, S.INTENT_HANDLING)
        assert store.get(sid).conversation_state == S.INTENT_HANDLING


class TestExpiry:
    def test_idle_session_is_swept(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(minutes=31)
        assert store.sweep_expired() == 1
        assert store.get(sid) is None

    def test_session_just_under_threshold_survives(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(minutes=29, seconds=59)
        assert store.sweep_expired() == 0
        assert store.get(sid) is not None

    def test_access_refreshes_activity(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(minutes=20)
        store.get(sid)
        clock.advance(minutes=20)
        assert store.sweep_expired() == 0

    def test_exists_does_not_refresh(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(minutes=20)
        store.exists(sid)
        clock.advance(minutes=11)
        assert store.sweep_expired() == 1

    def test_custom_max_idle(self, store, clock):
        store.create("cust1", None)
        clock.advance(minutes=5)
        assert store.sweep_expired(timedelta(minutes=1)) == 1

    def test_completed_sessions_linger_until_swept(self, store, clock):
        sid = store.create("cust1", None)
        store.complete(sid)
        assert store.exists(sid)
        clock.advance(hours=1)
        store.sweep_expired()
        assert not store.exists(sid)

    def test_sweep_skips_session_busy_in_another_thread(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(hours=1)
        results = []
        with store.locked(sid):
            worker = threading.Thread(target=lambda: results.append(store.sweep_expired()))
            worker.start()
            worker.join()
        assert results == [0]
        assert store.exists(sid)

    def test_session_refreshed_under_lock_survives(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(hours=1)

        class RefreshingLock:
            """Refreshes the session the moment the sweeper takes its lock."""

            def __init__(self, inner):
                self.inner = inner

            def acquire(self, blocking=True):
                acquired = self.inner.acquire(blocking)
                store._sessions[sid].context.last_activity = clock()
                return acquired

            def release(self):
                self.inner.release()

        record = store._sessions[sid]
        record.lock = RefreshingLock(record.lock)
        assert store.sweep_expired() == 0
        assert store.exists(sid)

    def test_locked_waiter_sees_sweep_as_missing(self, store, clock):
        sid = store.create("cust1", None)
        clock.advance(hours=1)
        errors = []

        def turn():
            try:
                with store.locked(sid):
                    pass
            except SessionNotFoundError as exc:
                errors.append(exc)

        with store.locked(sid):
            worker = threading.Thread(target=turn)
            worker.start()
            worker.join(timeout=0.1)
            assert store.sweep_expired() == 1
        worker.join()
        assert len(errors) == 1

    def test_activity_never_moves_backwards(self, store, clock):
        sid = store.create("cust1", None)
        before = store.get(sid).last_activity
        clock.advance(minutes=-5)
        store.increment_message_count(sid)
        assert store.get(sid).last_activity == before


class TestSweeperThread:
    def test_sweeper_removes_idle_sessions(self):
        clock = FakeClock()
        sweeps = threading.Event()

        class SignallingStore(SessionStore):
            def sweep_expired(self, max_idle=None):
                removed = super().sweep_expired(max_idle)
                sweeps.set()
                return removed

        # A sweep every few milliseconds
        config = SessionConfig(sweep_interval_minutes=0.0005)
        store = SignallingStore(config=config, clock=clock, start_sweeper=False)
        sid = store.create("cust1", None)
        clock.advance(hours=1)
        store.start_sweeper()
        try:
            assert sweeps.wait(timeout=5)
            assert not store.exists(sid)
        finally:
            store.shutdown()

    def test_shutdown_stops_thread(self):
        with SessionStore(clock=FakeClock()) as store:
            thread = store._sweeper
            assert thread is not None and thread.is_alive()
        assert not thread.is_alive()


class TestConcurrency:
    def test_parallel_increments_are_not_lost(self, store):
        sid = store.create("cust1", None)
        workers, per_worker = 8, 250

        def bump():
            for _ in range(per_worker):
                store.increment_message_count(sid)

        threads = [threading.Thread(target=bump) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get(sid).message_count == workers * per_worker

    def test_locked_block_serialises_turns(self, store):
        sid = store.create("cust1", None)
        order = []
        entered = threading.Event()

        def turn(label):
            with store.locked(sid):
                order.append(f"{label}-start")
                entered.set()
                store.increment_message_count(sid)
                order.append(f"{label}-end")

        with store.locked(sid):
            worker = threading.Thread(target=turn, args=("b",))
            worker.start()
            assert not entered.wait(timeout=0.1)
            order.append("a")
        worker.join()
        assert order == ["a", "b-start", "b-end"]

    def test_parallel_creates(self, store):
        threads = [threading.Thread(target=store.create, args=(f"c{i}", None)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.active_count() == 50

    def test_locked_requires_existing_session(self, store):
        with pytest.raises(SessionNotFoundError):
            with store.locked("missing"):
                pass
