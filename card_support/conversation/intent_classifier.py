"""
Rule-based intent classifier with confidence scoring.

Messages are scored against an ordered table of trigger lists. The order
is the disambiguation rule: on equal scores the earlier intent wins, so a
message like "hi, I want to dispute a wrong charge" is a dispute, never a
greeting.

Usage:
    classifier = IntentClassifier()
    intent = classifier.classify("What is my balance?")
    assert intent.name == IntentName.PAYMENT_INQUIRY
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from card_support.config import ClassifierConfig, settings
from card_support.schemas.intent_schema import Intent, IntentName
from card_support.utils import normalize_text

logger = logging.getLogger(__name__)

WILDCARD = ".*"


@dataclass(frozen=True)
class Trigger:
    """A literal phrase or a wildcard pattern, compiled once."""
    text: str
    pattern: re.Pattern = field(compare=False)

    @classmethod
    def compile(cls, text: str) -> "Trigger":
        if WILDCARD in text:
            return cls(text, re.compile(text))
        words = [re.escape(word) for word in text.lower().split()]
        return cls(text, re.compile(r"\b" + r"\s+".join(words) + r"\b"))

    def matches(self, message: str) -> bool:
        return self.pattern.search(message) is not None


@dataclass(frozen=True)
class IntentRule:
    """One row of the classification table."""
    name: IntentName
    triggers: tuple[Trigger, ...]
    response_template: str


def _rule(name: IntentName, triggers: list[str], response_template: str) -> IntentRule:
    return IntentRule(name, tuple(Trigger.compile(t) for t in triggers), response_template)


DEFAULT_RULES: tuple[IntentRule, ...] = (
    _rule(
        IntentName.TRANSACTION_DISPUTE,
        ["dispute", "wrong charge", "cancel.*transaction", "refund", "incorrect",
         "unauthorized", "fraud", "dispute.*charge", "want.*dispute", "cancel", "report"],
        "I understand you have concerns about a transaction. Let me help you with that.",
    ),
    _rule(
        IntentName.PAYMENT_INQUIRY,
        ["payment", "balance", "overdue", "due date", "amount", "owe", "bill", "outstanding"],
        "I can help you check your payment information and outstanding balance.",
    ),
    _rule(
        IntentName.E_STATEMENT,
        ["statement", "transactions", "summary", "history", "charges", "purchases", "spending"],
        "I can provide you with your transaction history and account summary.",
    ),
    _rule(
        IntentName.FEEDBACK_COLLECTION,
        ["feedback", "rate", "experience", "service", "satisfied", "complaint", "suggestion",
         "thanks", "thank you"],
        "Your feedback is important to us. I'd like to hear about your experience.",
    ),
    _rule(
        IntentName.GREETING,
        ["hi", "hello", "hey", "good morning", "good afternoon", "good evening", "greetings"],
        "Hello! I'm here to help with your credit card questions.",
    ),
)


class IntentClassifier:
    """
    Maps free text to a scored Intent.

    The rule table is built once and never mutated. Classification is a
    pure function of the message and the configured weights.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        rules: tuple[IntentRule, ...] = DEFAULT_RULES,
    ) -> None:
        self.config = config or settings.classifier
        self.rules = rules

    def classify(self, text: Optional[str]) -> Intent:
        message = normalize_text(text)
        if not message:
            return Intent.unknown()

        best_rule: Optional[IntentRule] = None
        best_score = 0.0
        best_matches: list[str] = []

        for rule in self.rules:
            score, matches = self._score(message, rule)
            if score > best_score:
                best_rule, best_score, best_matches = rule, score, matches

        if best_rule is None or best_score < self.config.confidence_threshold:
            logger.debug("No intent above threshold for %r (best=%.2f)", message, best_score)
            return Intent.unknown()

        logger.debug(
            "Classified %r as %s (confidence=%.2f, triggers=%s)",
            message, best_rule.name.value, best_score, best_matches,
        )
        return Intent(
            name=best_rule.name,
            confidence=best_score,
            matched_triggers=tuple(best_matches),
            response_template=best_rule.response_template,
        )

    def _score(self, message: str, rule: IntentRule) -> tuple[float, list[str]]:
        cfg = self.config
        score = 0.0
        matches = []
        for trigger in rule.triggers:
            if not trigger.matches(message):
                continue
            matches.append(trigger.text)
            score += cfg.base_weight
            if len(trigger.text) > cfg.long_trigger_length:
                score += cfg.long_trigger_bonus
            if " " in trigger.text:
                score += cfg.phrase_bonus
        return min(1.0, score), matches
