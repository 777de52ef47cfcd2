"""
Proactive intent prediction from an account snapshot.

Two independent paths, never blended:
1. Scenario rules: a named account scenario yields exactly one
   high-confidence suggestion with scenario wording.
2. Generic heuristics: evaluated only when no scenario rule fired;
   every matching heuristic contributes a suggestion.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from card_support.config import PredictionConfig, settings
from card_support.schemas.customer_schema import (
    CustomerProfile,
    PaymentStatus,
    Scenario,
    Transaction,
)
from card_support.schemas.intent_schema import SUGGESTION_KEY, Intent, IntentName, Suggestion

logger = logging.getLogger(__name__)


def _suggestion(
    name: IntentName,
    confidence: float,
    suggestion: Suggestion,
    triggers: list[str],
    wording: str,
) -> Intent:
    return Intent(
        name=name,
        confidence=confidence,
        matched_triggers=tuple(triggers),
        response_template=wording,
        parameters={SUGGESTION_KEY: suggestion.value},
    )


def has_duplicate_transactions(
    transactions: Iterable[Transaction],
    tolerance: Decimal = Decimal("15"),
    window: timedelta = timedelta(hours=48),
) -> bool:
    """Return True when any two transactions look like the same charge twice.

    Amounts are compared by absolute value so a refund does not hide its
    original charge. Every pair is checked; the first match wins.
    """
    txns = list(transactions)
    for i, first in enumerate(txns):
        for second in txns[i + 1:]:
            amount_gap = abs(abs(first.amount) - abs(second.amount))
            time_gap = abs(first.transaction_date - second.transaction_date)
            if amount_gap <= tolerance and time_gap <= window:
                logger.debug(
                    "Duplicate pair found: %s / %s",
                    first.transaction_id, second.transaction_id,
                )
                return True
    return False


class ProactivePredictor:
    """Suggests intents the customer is likely to need before they ask."""

    def __init__(self, config: Optional[PredictionConfig] = None) -> None:
        self.config = config or settings.prediction

    def predict(self, profile: Optional[CustomerProfile], today: Optional[date] = None) -> list[Intent]:
        """
        Rank proactive suggestions for a customer.

        Args:
            profile: Account snapshot, or None for an unidentified customer.
            today: Reference date for date-based heuristics. Defaults to
                the local current date.

        Returns:
            Suggestions in priority order. Empty when nothing applies.
        """
        if profile is None:
            return []
        today = today or date.today()

        if profile.scenario is not None:
            scenario_prediction = self._predict_scenario(profile)
            if scenario_prediction is not None:
                logger.debug(
                    "Scenario prediction for %s: %s",
                    profile.customer_id, scenario_prediction.suggestion,
                )
                return [scenario_prediction]

        return self._predict_generic(profile, today)

    def has_duplicates(self, profile: CustomerProfile) -> bool:
        return has_duplicate_transactions(
            profile.transactions,
            tolerance=Decimal(str(self.config.duplicate_amount_tolerance)),
            window=timedelta(hours=self.config.duplicate_window_hours),
        )

    def _predict_scenario(self, profile: CustomerProfile) -> Optional[Intent]:
        if profile.scenario == Scenario.OVERDUE_PAYMENT:
            return _suggestion(
                IntentName.PAYMENT_INQUIRY, 0.9, Suggestion.OVERDUE_PAYMENT,
                ["overdue", "payment"],
                "Looks like your payment is overdue. "
                "Would you like to check your current outstanding balance?",
            )
        if profile.scenario == Scenario.RECENT_PAYMENT:
            return _suggestion(
                IntentName.PAYMENT_INQUIRY, 0.8, Suggestion.RECENT_PAYMENT,
                ["payment", "balance", "credit"],
                "I see you received a payment confirmation today. "
                "Would you like to check your updated credit balance?",
            )
        if profile.scenario == Scenario.DUPLICATE_TRANSACTION and self.has_duplicates(profile):
            return _suggestion(
                IntentName.TRANSACTION_DISPUTE, 0.7, Suggestion.DUPLICATE_TRANSACTION,
                ["duplicate", "cancel", "report", "transaction"],
                "I notice you have similar transactions. Would you like to cancel or report it?",
            )
        return None

    def _predict_generic(self, profile: CustomerProfile, today: date) -> list[Intent]:
        predictions = []

        if profile.payment_status == PaymentStatus.OVERDUE:
            predictions.append(_suggestion(
                IntentName.PAYMENT_INQUIRY, 0.8, Suggestion.OVERDUE_PAYMENT,
                ["overdue", "payment"],
                "I notice you have an overdue payment. "
                "Would you like to check your outstanding balance?",
            ))

        if profile.last_payment_date is not None and profile.last_payment_date == today:
            predictions.append(_suggestion(
                IntentName.PAYMENT_INQUIRY, 0.7, Suggestion.RECENT_PAYMENT,
                ["payment", "balance"],
                "I see you made a payment today. "
                "Would you like to see your updated credit balance?",
            ))

        if profile.due_date < today + timedelta(days=self.config.due_soon_days):
            predictions.append(_suggestion(
                IntentName.PAYMENT_INQUIRY, 0.6, Suggestion.UPCOMING_DUE,
                ["due date", "payment"],
                "Your payment is due soon. Would you like to review your balance?",
            ))

        usage_limit = profile.credit_limit * Decimal(str(self.config.high_usage_ratio))
        if profile.credit_limit > 0 and profile.current_balance >= usage_limit:
            predictions.append(_suggestion(
                IntentName.E_STATEMENT, 0.5, Suggestion.HIGH_USAGE,
                ["statement", "transactions"],
                "You're using most of your credit limit. "
                "Would you like to review your recent transactions?",
            ))

        return predictions
