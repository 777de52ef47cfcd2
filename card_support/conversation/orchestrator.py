"""
Conversation orchestrator: the per-session state machine.

    GREETING -> INTENT_PREDICTION -> INTENT_HANDLING -> FEEDBACK -> COMPLETE
                                           ^                          |
                                           +------- fresh intent -----+

Each turn is computed first and committed afterwards. A state handler
returns a TurnOutcome describing the reply and the session changes it
wants; the changes are applied only once the reply exists, so a failing
collaborator leaves the session exactly as it was.

Usage:
    orchestrator = ConversationOrchestrator(SessionStore(), MockAccountService(), WeatherService())
    reply = orchestrator.handle_message("hello", customer_id="user_overdue")
    reply = orchestrator.handle_message("yes", session_id=reply.session_id)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from card_support.config import AssistantConfig, settings
from card_support.conversation.confirmation import ConfirmationDetector
from card_support.conversation.intent_classifier import IntentClassifier
from card_support.conversation.predictor import ProactivePredictor
from card_support.conversation.session_store import SessionNotFoundError, SessionStore
from card_support.errors import DataSourceError
from card_support.logging_context import get_session_logger, set_session_id
from card_support.schemas.conversation_schema import (
    ChatReply,
    ConversationState,
    SessionContext,
    TimeOfDay,
)
from card_support.schemas.customer_schema import PaymentStatus, Scenario, Transaction
from card_support.schemas.intent_schema import Intent, IntentName, UNKNOWN_RESPONSE
from card_support.tools.accounts import DISPUTE_NEXT_STEPS, AccountDataSource
from card_support.tools.weather import GreetingContextSource
from card_support.utils import format_amount, format_display_date, normalize_text

logger = get_session_logger(__name__)

CHAT_PROCESSING_ERROR = "CHAT_PROCESSING_ERROR"

TIME_GREETINGS: dict[TimeOfDay, str] = {
    TimeOfDay.MORNING: "Good morning",
    TimeOfDay.AFTERNOON: "Good afternoon",
    TimeOfDay.EVENING: "Good evening",
}

SUGGESTION_PREFIX = "💡 "
BULLET = "• "

DEFAULT_HELP_MESSAGE = "How can I help you with your credit card today?"
DECLINED_MESSAGE = "No problem! How can I help you with your credit card today?"
FEEDBACK_THANKS = "Thank you for your feedback! It helps us improve our service. Have a great day!"
FEEDBACK_NUDGE = (
    "Thank you for using our service! If you need help with anything else, just let me know."
)
WELCOME_BACK = "Hello again! How can I assist you with your credit card today?"
RETRY_MESSAGE = "Sorry, something went wrong on our side. Please try again."
ACCOUNT_NOT_FOUND = (
    "I couldn't find your account details. "
    "Could you please verify your identity so I can help you?"
)
FEEDBACK_REQUEST = (
    "Thank you for wanting to provide feedback! Your experience matters to us. Please tell me:\n"
    f"{BULLET}How would you rate our service today? (1-5 stars)\n"
    f"{BULLET}Any specific comments or suggestions?\n\n"
    "I'll make sure your feedback reaches our service improvement team."
)
DUPLICATE_ACTION_RESPONSE = (
    "I understand you want to {action} a duplicate transaction. "
    "I've identified transactions that appear to be duplicates. "
    "Would you like me to show you the details and help you {action} the duplicate transaction?"
)
DUPLICATE_GENERIC_RESPONSE = (
    "I understand you want to address a duplicate transaction. "
    "I've identified transactions that appear to be duplicates. "
    "Would you like me to show you the details and help you resolve this issue?"
)
NO_RECENT_ACTIVITY = (
    "You don't have any transactions in the last {days} days. "
    "Your account shows no recent activity."
)


@dataclass
class TurnOutcome:
    """Reply text plus the session changes a handler asks for."""
    text: str
    transitions: list[ConversationState] = field(default_factory=list)
    replace_intent: bool = False
    intent: Optional[Intent] = None
    greeting_sent: bool = False


class ConversationOrchestrator:
    """Routes each customer message through the conversation state machine."""

    def __init__(
        self,
        sessions: SessionStore,
        accounts: AccountDataSource,
        greetings: GreetingContextSource,
        classifier: Optional[IntentClassifier] = None,
        predictor: Optional[ProactivePredictor] = None,
        detector: Optional[ConfirmationDetector] = None,
        config: Optional[AssistantConfig] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.sessions = sessions
        self.accounts = accounts
        self.greetings = greetings
        self.classifier = classifier or IntentClassifier()
        self.predictor = predictor or ProactivePredictor()
        self.detector = detector or ConfirmationDetector()
        self.config = config or settings.assistant
        self._now = now or datetime.now
        self._handlers: dict[
            ConversationState, Callable[[str, SessionContext], TurnOutcome]
        ] = {
            ConversationState.GREETING: self._on_greeting,
            ConversationState.INTENT_PREDICTION: self._on_intent_prediction,
            ConversationState.INTENT_HANDLING: self._on_intent_handling,
            ConversationState.FEEDBACK: self._on_feedback,
            ConversationState.COMPLETE: self._on_complete,
        }

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def handle_message(
        self,
        text: Optional[str],
        session_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> ChatReply:
        """
        Process one customer message and return the assistant's reply.

        An unknown or missing session ID starts a new session for
        ``customer_id`` (or the default demo customer). A session that
        expires between lookup and processing is replaced by a fresh one
        for the same customer. Collaborator
        failures are logged and reported with ``error_code`` set; the
        session is left unchanged so the caller may resubmit.
        """
        text = text or ""
        active_id = session_id
        try:
            existing = self.sessions.get(session_id)
            if existing is None:
                active_id = self._open_session(customer_id)
            else:
                customer_id = existing.customer_id
            set_session_id(active_id)
            try:
                return self._process(text, active_id)
            except SessionNotFoundError:
                logger.warning("Session %s expired mid-request, starting a new one", active_id)
                active_id = self._open_session(customer_id)
                set_session_id(active_id)
                return self._process(text, active_id)
        except DataSourceError:
            logger.exception("Collaborator failure while processing message")
            current = self.sessions.get(active_id)
            return ChatReply(
                session_id=active_id or "",
                text=RETRY_MESSAGE,
                state=current.conversation_state if current else None,
                error_code=CHAT_PROCESSING_ERROR,
            )

    def _open_session(self, customer_id: Optional[str]) -> str:
        default_id = self.config.default_customer_id
        target = customer_id or default_id
        profile = self.accounts.get_profile(target)
        if profile is None and target != default_id:
            logger.info("Unknown customer %s, falling back to %s", target, default_id)
            target = default_id
            profile = self.accounts.get_profile(target)
        if profile is None:
            logger.warning("No profile available for %s", target)
        return self.sessions.create(target, profile)

    def _process(self, text: str, session_id: str) -> ChatReply:
        with self.sessions.locked(session_id):
            context = self.sessions.get(session_id)
            state = context.conversation_state
            logger.debug("Handling message in state %s", state.value)

            outcome = self._handlers[state](text, context)
            self._commit(session_id, outcome)

            final_state = outcome.transitions[-1] if outcome.transitions else state
            return ChatReply(
                session_id=session_id,
                text=outcome.text,
                is_session_complete=final_state == ConversationState.COMPLETE,
                state=final_state,
            )

    def _commit(self, session_id: str, outcome: TurnOutcome) -> None:
        if outcome.greeting_sent:
            self.sessions.mark_greeting_sent(session_id)
        if outcome.replace_intent:
            self.sessions.set_current_intent(session_id, outcome.intent)
        for new_state in outcome.transitions:
            self.sessions.transition(session_id, new_state)
        self.sessions.increment_message_count(session_id)

    # ------------------------------------------------------------------ #
    # State handlers
    # ------------------------------------------------------------------ #

    def _on_greeting(self, text: str, context: SessionContext) -> TurnOutcome:
        detected = self.classifier.classify(text)
        if detected.name != IntentName.GREETING and context.greeting_sent:
            return self._handle_intent(context, fresh_intent=detected, stored_intent=None)

        predictions = self.predictor.predict(context.profile, self._today())
        outcome = TurnOutcome(
            text=self._compose_greeting(predictions),
            transitions=[ConversationState.INTENT_PREDICTION],
            greeting_sent=True,
        )
        if predictions:
            outcome.replace_intent = True
            outcome.intent = predictions[0]
        return outcome

    def _on_intent_prediction(self, text: str, context: SessionContext) -> TurnOutcome:
        stored = context.current_intent
        if stored is not None and self.detector.is_affirmative(text, stored):
            action = self.detector.dispute_action(text, stored)
            if action is not None:
                stored = stored.with_action(action)
            logger.info("Customer confirmed suggestion: %s", stored.name.value)
            return self._handle_intent(context, fresh_intent=None, stored_intent=stored)

        if self.detector.is_negative(text):
            return TurnOutcome(text=DECLINED_MESSAGE, replace_intent=True, intent=None)

        detected = self.classifier.classify(text)
        if not detected.is_unknown:
            return self._handle_intent(context, fresh_intent=detected, stored_intent=stored)

        predictions = self.predictor.predict(context.profile, self._today())
        return TurnOutcome(text=self._format_suggestions(predictions))

    def _on_intent_handling(self, text: str, context: SessionContext) -> TurnOutcome:
        fresh = self.classifier.classify(text) if normalize_text(text) else None
        return self._handle_intent(context, fresh_intent=fresh, stored_intent=context.current_intent)

    def _on_feedback(self, text: str, context: SessionContext) -> TurnOutcome:
        detected = self.classifier.classify(text)
        if detected.name == IntentName.FEEDBACK_COLLECTION:
            return TurnOutcome(text=FEEDBACK_THANKS, transitions=[ConversationState.COMPLETE])
        if not detected.is_unknown:
            return self._handle_intent(context, fresh_intent=detected, stored_intent=None)
        return TurnOutcome(text=FEEDBACK_NUDGE)

    def _on_complete(self, text: str, context: SessionContext) -> TurnOutcome:
        detected = self.classifier.classify(text)
        if not detected.is_unknown:
            return self._handle_intent(context, fresh_intent=detected, stored_intent=None)
        return TurnOutcome(text=WELCOME_BACK)

    def _handle_intent(
        self,
        context: SessionContext,
        fresh_intent: Optional[Intent],
        stored_intent: Optional[Intent],
    ) -> TurnOutcome:
        """Answer the effective intent and move on to FEEDBACK.

        The effective intent is ``fresh_intent`` when the customer said
        something new, otherwise the stored one awaiting confirmation.
        """
        intent = fresh_intent if fresh_intent is not None else stored_intent
        if intent is None:
            intent = Intent.unknown()

        transitions = [ConversationState.FEEDBACK]
        if context.conversation_state != ConversationState.INTENT_HANDLING:
            transitions.insert(0, ConversationState.INTENT_HANDLING)

        return TurnOutcome(
            text=self._respond(intent, context),
            transitions=transitions,
            replace_intent=True,
            intent=intent,
        )

    # ------------------------------------------------------------------ #
    # Replies
    # ------------------------------------------------------------------ #

    def _respond(self, intent: Intent, context: SessionContext) -> str:
        if intent.name == IntentName.UNKNOWN:
            return UNKNOWN_RESPONSE
        if intent.name == IntentName.FEEDBACK_COLLECTION:
            return FEEDBACK_REQUEST
        if intent.name == IntentName.GREETING:
            return self._compose_greeting(self.predictor.predict(context.profile, self._today()))
        if context.profile is None:
            return ACCOUNT_NOT_FOUND
        if intent.name == IntentName.PAYMENT_INQUIRY:
            return self._payment_reply(context)
        if intent.name == IntentName.E_STATEMENT:
            return self._statement_reply(context)
        return self._dispute_reply(intent, context)

    def _compose_greeting(self, predictions: list[Intent]) -> str:
        greeting = self.greetings.current_greeting_context()
        text = f"{TIME_GREETINGS[greeting.time_of_day]}, {greeting.weather_phrase}"
        if predictions:
            text += "\n" + self._format_suggestions(predictions)
        return text

    @staticmethod
    def _format_suggestions(predictions: list[Intent]) -> str:
        if not predictions:
            return DEFAULT_HELP_MESSAGE
        return "\n".join(SUGGESTION_PREFIX + p.response_template for p in predictions)

    def _payment_reply(self, context: SessionContext) -> str:
        summary = self.accounts.get_payment_summary(context.customer_id)
        if summary is None:
            return ACCOUNT_NOT_FOUND
        currency = self.config.currency

        if summary.payment_status == PaymentStatus.OVERDUE:
            return (
                f"Your current outstanding balance is "
                f"{format_amount(summary.outstanding_balance, 0)} {currency}, "
                f"and your due date was {format_display_date(summary.due_date)}."
            )
        if context.profile.scenario == Scenario.RECENT_PAYMENT:
            return (
                f"Your outstanding balance is {format_amount(summary.outstanding_balance)} "
                f"{currency} with an available credit of "
                f"{format_amount(summary.available_credit)} {currency}."
            )
        last_payment = (
            format_display_date(summary.last_payment_date)
            if summary.last_payment_date else "No recent payment"
        )
        return "\n".join([
            "Your payment summary:",
            f"{BULLET}Outstanding balance: {format_amount(summary.outstanding_balance)} {currency}",
            f"{BULLET}Credit limit: {format_amount(summary.credit_limit)} {currency}",
            f"{BULLET}Available credit: {format_amount(summary.available_credit)} {currency}",
            f"{BULLET}Payment status: {summary.payment_status.value}",
            f"{BULLET}Next due date: {format_display_date(summary.due_date)}",
            f"{BULLET}Last payment: {last_payment}",
        ])

    def _statement_reply(self, context: SessionContext) -> str:
        days = self.config.statement_window_days
        to_date = self._today()
        from_date = to_date - timedelta(days=days)
        transactions = self.accounts.get_transaction_history(context.customer_id, from_date, to_date)
        if not transactions:
            return NO_RECENT_ACTIVITY.format(days=days)

        currency = self.config.currency
        total = abs(sum(t.amount for t in transactions))
        lines = [
            f"Here's your recent transaction summary (last {days} days):",
            f"{BULLET}Total transactions: {len(transactions)}",
            f"{BULLET}Total amount: {format_amount(total)} {currency}",
            f"{BULLET}Date range: {format_display_date(from_date)} to {format_display_date(to_date)}",
            "",
            "Recent transactions:",
        ]
        lines.extend(self._transaction_line(t) for t in self._most_recent(transactions))
        lines.extend([
            "",
            "Would you like me to show you more transaction details "
            "or help you with anything else?",
        ])
        return "\n".join(lines)

    def _most_recent(self, transactions: list[Transaction]) -> list[Transaction]:
        ordered = sorted(transactions, key=lambda t: t.transaction_date, reverse=True)
        return ordered[:self.config.statement_preview_count]

    def _transaction_line(self, txn: Transaction) -> str:
        return (
            f"{BULLET}{format_display_date(txn.transaction_date.date())}: "
            f"{format_amount(abs(txn.amount))} {self.config.currency} ({txn.merchant_name})"
        )

    def _dispute_reply(self, intent: Intent, context: SessionContext) -> str:
        is_duplicate_scenario = context.profile.scenario == Scenario.DUPLICATE_TRANSACTION
        if is_duplicate_scenario and intent.selected_action is None:
            return DUPLICATE_GENERIC_RESPONSE

        # Only an explicit cancel/report answer opens a case
        if is_duplicate_scenario:
            case = self.accounts.initiate_dispute(context.customer_id)
            if case is None:
                return ACCOUNT_NOT_FOUND
            steps = "\n".join(BULLET + step for step in case.next_steps)
            opening = DUPLICATE_ACTION_RESPONSE.format(action=intent.selected_action.value)
            return f"{opening}\n\n{steps}"

        steps = "\n".join(BULLET + step for step in DISPUTE_NEXT_STEPS)
        return (
            "I can help you dispute a transaction. Here's what happens next:\n\n"
            f"{steps}\n\n"
            "Which specific transaction would you like to dispute? "
            "You can describe it or mention the amount and date."
        )

    def _today(self) -> date:
        return self._now().date()
