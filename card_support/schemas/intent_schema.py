"""Intent data models shared by the classifier, predictor, and orchestrator."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SUGGESTION_KEY = "suggestion"


class IntentName(str, Enum):
    """Customer needs the assistant can recognise."""

    GREETING = "greeting"
    PAYMENT_INQUIRY = "payment_inquiry"
    E_STATEMENT = "e_statement"
    TRANSACTION_DISPUTE = "transaction_dispute"
    FEEDBACK_COLLECTION = "feedback_collection"
    UNKNOWN = "unknown"


class Suggestion(str, Enum):
    """Scenario tags carried by proactive suggestions."""

    OVERDUE_PAYMENT = "overdue_payment"
    RECENT_PAYMENT = "recent_payment"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    UPCOMING_DUE = "upcoming_due"
    HIGH_USAGE = "high_usage"


class DisputeAction(str, Enum):
    """Remedy chosen by the customer for a suspected duplicate charge."""

    CANCEL = "cancel"
    REPORT = "report"


UNKNOWN_RESPONSE = (
    "I'm not sure how to help with that. "
    "Could you please rephrase your question about your credit card?"
)


class Intent(BaseModel):
    """A classified or predicted customer need. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    name: IntentName
    confidence: float = Field(ge=0.0, le=1.0)
    matched_triggers: tuple[str, ...] = ()
    response_template: str = ""
    parameters: dict[str, str] = Field(default_factory=dict)
    selected_action: Optional[DisputeAction] = None

    @classmethod
    def unknown(cls) -> "Intent":
        return cls(name=IntentName.UNKNOWN, confidence=0.0, response_template=UNKNOWN_RESPONSE)

    @property
    def is_unknown(self) -> bool:
        return self.name == IntentName.UNKNOWN

    @property
    def suggestion(self) -> Optional[str]:
        return self.parameters.get(SUGGESTION_KEY)

    def is_duplicate_suggestion(self) -> bool:
        """True for the duplicate-transaction dispute suggestion."""
        return (
            self.name == IntentName.TRANSACTION_DISPUTE
            and self.suggestion == Suggestion.DUPLICATE_TRANSACTION.value
        )

    def with_action(self, action: Optional[DisputeAction]) -> "Intent":
        """Return a copy carrying the customer's chosen dispute action."""
        return self.model_copy(update={"selected_action": action})
