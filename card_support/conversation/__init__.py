from card_support.conversation.confirmation import ConfirmationDetector
from card_support.conversation.intent_classifier import IntentClassifier
from card_support.conversation.orchestrator import ConversationOrchestrator
from card_support.conversation.predictor import ProactivePredictor
from card_support.conversation.session_store import (
    InvalidTransitionError,
    SessionNotFoundError,
    SessionStore,
)

__all__ = [
    "ConversationOrchestrator",
    "IntentClassifier",
    "ProactivePredictor",
    "ConfirmationDetector",
    "SessionStore",
    "SessionNotFoundError",
    "InvalidTransitionError",
]
