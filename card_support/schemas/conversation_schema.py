"""Conversation, session, and feedback data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from card_support.schemas.customer_schema import CustomerProfile
from card_support.schemas.intent_schema import Intent


class ConversationState(str, Enum):
    """All possible states in a support conversation."""
    GREETING = "greeting"
    INTENT_PREDICTION = "intent_prediction"
    INTENT_HANDLING = "intent_handling"
    FEEDBACK = "feedback"
    COMPLETE = "complete"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class FeedbackRating(str, Enum):
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: ConversationState
    entered_at: datetime


@dataclass
class SessionContext:
    """
    Per-session conversation state.

    Owned by the SessionStore. Callers only ever see snapshot copies;
    every mutation goes through the store so it happens under the
    session's lock.
    """
    session_id: str
    customer_id: str
    last_activity: datetime
    profile: Optional[CustomerProfile] = None
    conversation_state: ConversationState = ConversationState.GREETING
    current_intent: Optional[Intent] = None
    message_count: int = 0
    greeting_sent: bool = False
    history: list[StateEntry] = field(default_factory=list)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self.history]


class GreetingContext(BaseModel):
    """Time-of-day bucket and weather phrase used verbatim in greetings."""

    model_config = ConfigDict(frozen=True)

    time_of_day: TimeOfDay
    weather_phrase: str


class ChatReply(BaseModel):
    """Result of processing one customer message."""

    session_id: str
    text: str
    is_session_complete: bool = False
    state: Optional[ConversationState] = None
    error_code: Optional[str] = None


class FeedbackRecord(BaseModel):
    """Anonymous satisfaction rating stored once per session."""

    model_config = ConfigDict(frozen=True)

    feedback_id: str
    session_id: str
    rating: FeedbackRating
    comment: Optional[str] = None
    timestamp: datetime
    anonymous: bool = True
