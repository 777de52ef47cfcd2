"""
Detects short affirmative and negative replies to a proactive suggestion.

A vocabulary entry matches when the reply equals it or starts with it as
a whole word ("yes", "yes please", "sure, go on"). Matching is
case-insensitive.
"""

import logging
import re
from typing import Optional

from card_support.schemas.intent_schema import DisputeAction, Intent
from card_support.utils import normalize_text

logger = logging.getLogger(__name__)

AFFIRMATIVE_VOCABULARY: tuple[str, ...] = (
    "yes", "yeah", "yep", "yup", "sure", "okay", "ok", "alright", "right",
    "correct", "absolutely", "definitely", "certainly", "of course", "please", "go ahead",
)

NEGATIVE_VOCABULARY: tuple[str, ...] = (
    "no", "nope", "nah", "never", "cancel", "stop", "quit", "exit", "skip",
    "not interested", "not now", "maybe later", "not really",
)


def _compile(vocabulary: tuple[str, ...]) -> list[re.Pattern]:
    return [re.compile(r"^" + re.escape(word) + r"\b") for word in vocabulary]


def _starts_with_any(message: str, patterns: list[re.Pattern]) -> bool:
    return any(p.match(message) for p in patterns)


class ConfirmationDetector:
    """
    Classifies replies as agreement or refusal.

    For the duplicate-transaction suggestion the customer answers "cancel"
    or "report" to pick a remedy, so under that context a reply made of
    just one of those words also counts as agreement. Longer replies such
    as "cancel my card" are not a remedy choice, and anywhere else
    "cancel" stays a refusal.
    """

    def __init__(self) -> None:
        self._affirmative = _compile(AFFIRMATIVE_VOCABULARY)
        self._negative = _compile(NEGATIVE_VOCABULARY)
        self._actions = {
            action: re.compile(r"^" + re.escape(action.value) + r"[.!]?$")
            for action in DisputeAction
        }

    def is_affirmative(self, text: Optional[str], context_intent: Optional[Intent] = None) -> bool:
        message = normalize_text(text)
        if not message:
            return False
        if self.dispute_action(message, context_intent) is not None:
            return True
        return _starts_with_any(message, self._affirmative)

    def is_negative(self, text: Optional[str]) -> bool:
        message = normalize_text(text)
        if not message:
            return False
        return _starts_with_any(message, self._negative)

    def dispute_action(
        self, text: Optional[str], context_intent: Optional[Intent]
    ) -> Optional[DisputeAction]:
        """Return the remedy picked for a duplicate-charge suggestion, if any."""
        if context_intent is None or not context_intent.is_duplicate_suggestion():
            return None
        message = normalize_text(text)
        for action, pattern in self._actions.items():
            if pattern.match(message):
                logger.debug("Duplicate charge action selected: %s", action.value)
                return action
        return None
