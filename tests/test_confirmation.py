"""Tests for the confirmation / negation detector."""

import pytest

from card_support.conversation.confirmation import (
    AFFIRMATIVE_VOCABULARY,
    NEGATIVE_VOCABULARY,
)
from card_support.schemas.intent_schema import (
    SUGGESTION_KEY,
    DisputeAction,
    Intent,
    IntentName,
    Suggestion,
)


def _duplicate_suggestion() -> Intent:
    return Intent(
        name=IntentName.TRANSACTION_DISPUTE,
        confidence=0.7,
        parameters={SUGGESTION_KEY: Suggestion.DUPLICATE_TRANSACTION.value},
    )


def _payment_suggestion() -> Intent:
    return Intent(
        name=IntentName.PAYMENT_INQUIRY,
        confidence=0.9,
        parameters={SUGGESTION_KEY: Suggestion.OVERDUE_PAYMENT.value},
    )


class TestAffirmative:
    @pytest.mark.parametrize("word", AFFIRMATIVE_VOCABULARY)
    def test_every_word_recognised(self, detector, word):
        assert detector.is_affirmative(word)

    @pytest.mark.parametrize("word", AFFIRMATIVE_VOCABULARY)
    def test_case_insensitive(self, detector, word):
        assert detector.is_affirmative(word.upper())

    def test_leading_word_with_trailing_text(self, detector):
        assert detector.is_affirmative("Yes please, show me")
        assert detector.is_affirmative("sure, go on")

    def test_word_must_be_whole(self, detector):
        assert not detector.is_affirmative("yesterday I paid")

    def test_word_not_at_start(self, detector):
        assert not detector.is_affirmative("I guess yes")

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_is_neither(self, detector, text):
        assert not detector.is_affirmative(text)
        assert not detector.is_negative(text)


class TestNegative:
    @pytest.mark.parametrize("word", NEGATIVE_VOCABULARY)
    def test_every_word_recognised(self, detector, word):
        assert detector.is_negative(word)

    @pytest.mark.parametrize("word", NEGATIVE_VOCABULARY)
    def test_case_insensitive(self, detector, word):
        assert detector.is_negative(word.title())

    def test_negative_is_not_affirmative(self, detector):
        assert not detector.is_affirmative("no thanks")

    def test_not_a_negative_prefix(self, detector):
        assert not detector.is_negative("nobody asked")


class TestDuplicateContext:
    @pytest.mark.parametrize("word", ["cancel", "report", "  Cancel ", "REPORT!", "cancel."])
    def test_actions_affirmative_for_duplicate(self, detector, word):
        assert detector.is_affirmative(word, _duplicate_suggestion())

    @pytest.mark.parametrize("text", ["cancel my card entirely", "report it", "Cancel it"])
    def test_longer_replies_are_not_a_remedy(self, detector, text):
        assert detector.dispute_action(text, _duplicate_suggestion()) is None
        assert not detector.is_affirmative(text, _duplicate_suggestion())

    def test_cancel_sentence_is_still_a_refusal(self, detector):
        assert detector.is_negative("cancel my card entirely")

    @pytest.mark.parametrize("word", ["cancel", "report"])
    def test_actions_not_affirmative_without_context(self, detector, word):
        assert not detector.is_affirmative(word)

    @pytest.mark.parametrize("word", ["cancel", "report"])
    def test_actions_not_affirmative_for_payment(self, detector, word):
        assert not detector.is_affirmative(word, _payment_suggestion())

    def test_cancel_stays_negative(self, detector):
        assert detector.is_negative("cancel")

    def test_dispute_action_selected(self, detector):
        assert detector.dispute_action("cancel", _duplicate_suggestion()) == DisputeAction.CANCEL
        assert detector.dispute_action("Report", _duplicate_suggestion()) == DisputeAction.REPORT

    def test_plain_yes_has_no_action(self, detector):
        assert detector.dispute_action("yes", _duplicate_suggestion()) is None

    def test_no_action_outside_duplicate_context(self, detector):
        assert detector.dispute_action("cancel", _payment_suggestion()) is None
        assert detector.dispute_action("cancel", None) is None
