"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from card_support.conversation.confirmation import ConfirmationDetector
from card_support.conversation.intent_classifier import IntentClassifier
from card_support.conversation.orchestrator import ConversationOrchestrator
from card_support.conversation.predictor import ProactivePredictor
from card_support.conversation.session_store import SessionStore
from card_support.schemas.customer_schema import (
    CustomerProfile,
    PaymentStatus,
    Scenario,
    Transaction,
)
from card_support.tools.accounts import MockAccountService
from card_support.tools.weather import WeatherCondition, WeatherService

# Tuesday morning, 30 September 2025.
FIXED_NOW = datetime(2025, 9, 30, 10, 0)
FIXED_TODAY = FIXED_NOW.date()


class FakeClock:
    """Manually advanced clock for session expiry tests."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 9, 30, 3, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    sessions = SessionStore(clock=clock, start_sweeper=False)
    yield sessions
    sessions.shutdown()


@pytest.fixture
def classifier():
    return IntentClassifier()


@pytest.fixture
def predictor():
    return ProactivePredictor()


@pytest.fixture
def detector():
    return ConfirmationDetector()


@pytest.fixture
def accounts():
    return MockAccountService(now=lambda: FIXED_NOW)


@pytest.fixture
def weather():
    return WeatherService(now=lambda: FIXED_NOW, condition=WeatherCondition.SUNNY)


@pytest.fixture
def orchestrator(store, accounts, weather):
    return ConversationOrchestrator(store, accounts, weather, now=lambda: FIXED_NOW)


def make_txn(
    txn_id: str,
    amount: str,
    when: datetime,
    customer_id: str = "cust1",
    merchant: str = "Test Merchant",
) -> Transaction:
    """Helper to create a Transaction."""
    return Transaction(
        transaction_id=txn_id,
        customer_id=customer_id,
        amount=Decimal(amount),
        merchant_name=merchant,
        transaction_date=when,
    )


def make_profile(
    customer_id: str = "cust1",
    balance: str = "1000.00",
    credit_limit: str = "5000.00",
    due_date: date = date(2025, 10, 20),
    last_payment_date: Optional[date] = date(2025, 9, 1),
    payment_status: PaymentStatus = PaymentStatus.CURRENT,
    scenario: Optional[Scenario] = None,
    transactions: tuple[Transaction, ...] = (),
) -> CustomerProfile:
    """Helper to create a CustomerProfile with sensible defaults."""
    return CustomerProfile(
        customer_id=customer_id,
        card_number="****-****-****-0000",
        current_balance=Decimal(balance),
        credit_limit=Decimal(credit_limit),
        due_date=due_date,
        last_payment_date=last_payment_date,
        payment_status=payment_status,
        scenario=scenario,
        transactions=transactions,
    )
