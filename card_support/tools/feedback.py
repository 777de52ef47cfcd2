"""
In-memory feedback storage and submission.

Feedback is anonymous and recorded at most once per session: a repeat
submission returns the first record instead of failing or duplicating.
In production, the repository would be backed by a database table.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from card_support.conversation.session_store import SessionNotFoundError, SessionStore
from card_support.schemas.conversation_schema import FeedbackRating, FeedbackRecord

logger = logging.getLogger(__name__)


class FeedbackRepository:
    """Thread-safe store of feedback records keyed by session."""

    def __init__(self) -> None:
        self._by_session: dict[str, FeedbackRecord] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, session_id: str, factory: Callable[[], FeedbackRecord]
    ) -> tuple[FeedbackRecord, bool]:
        """Return the session's record, building it with ``factory`` if absent.

        Returns:
            (record, created) - created=False when feedback already existed.
        """
        with self._lock:
            existing = self._by_session.get(session_id)
            if existing is not None:
                return existing, False
            record = factory()
            self._by_session[session_id] = record
            return record, True

    def find_by_session(self, session_id: str) -> Optional[FeedbackRecord]:
        return self._by_session.get(session_id)

    def exists_by_session(self, session_id: str) -> bool:
        return session_id in self._by_session

    def find_all(self) -> list[FeedbackRecord]:
        with self._lock:
            return list(self._by_session.values())

    def count(self) -> int:
        return len(self._by_session)


@dataclass(frozen=True)
class FeedbackStatistics:
    """Rating counts across all stored feedback."""
    total: int
    happy: int
    neutral: int
    sad: int

    def _percent(self, count: int) -> float:
        return count / self.total * 100 if self.total else 0.0

    @property
    def happy_percentage(self) -> float:
        return self._percent(self.happy)

    @property
    def neutral_percentage(self) -> float:
        return self._percent(self.neutral)

    @property
    def sad_percentage(self) -> float:
        return self._percent(self.sad)


class FeedbackService:
    """Records satisfaction ratings and closes the rated session."""

    def __init__(
        self,
        sessions: SessionStore,
        repository: Optional[FeedbackRepository] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.sessions = sessions
        self.repository = repository or FeedbackRepository()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def submit_feedback(
        self,
        session_id: str,
        customer_id: Optional[str],
        rating: FeedbackRating,
        comment: Optional[str] = None,
    ) -> FeedbackRecord:
        """
        Submit a rating for a chat session.

        The customer ID is only logged; records are stored anonymously.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        logger.info(
            "Submitting feedback: session=%s, customer=%s, rating=%s",
            session_id, customer_id, rating.value,
        )
        if not self.sessions.exists(session_id):
            raise SessionNotFoundError(f"Session not found: {session_id}")

        record, created = self.repository.get_or_create(
            session_id,
            lambda: FeedbackRecord(
                feedback_id=str(uuid.uuid4()),
                session_id=session_id,
                rating=rating,
                comment=comment,
                timestamp=self._clock(),
            ),
        )
        if not created:
            logger.warning("Feedback already exists for session: %s", session_id)
            return record

        try:
            self.sessions.complete(session_id)
        except SessionNotFoundError:
            # Swept between the existence check and completion; the rating still counts.
            logger.warning("Session %s expired before it could be completed", session_id)

        logger.info("Feedback submitted: %s", record.feedback_id)
        return record

    def get_feedback_by_session(self, session_id: str) -> Optional[FeedbackRecord]:
        return self.repository.find_by_session(session_id)

    def has_feedback(self, session_id: str) -> bool:
        return self.repository.exists_by_session(session_id)

    def get_statistics(self) -> FeedbackStatistics:
        records = self.repository.find_all()
        return FeedbackStatistics(
            total=len(records),
            happy=sum(1 for r in records if r.rating == FeedbackRating.HAPPY),
            neutral=sum(1 for r in records if r.rating == FeedbackRating.NEUTRAL),
            sad=sum(1 for r in records if r.rating == FeedbackRating.SAD),
        )
