"""
Mock card-account data source.

In production, this would query the card-management platform for the
customer's account, statement lines, and dispute workflow. The seeded
customers cover each proactive-suggestion scenario.
"""

import logging
import threading
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Protocol

from card_support.schemas.customer_schema import (
    CustomerProfile,
    DisputeCase,
    DisputeStatus,
    PaymentStatus,
    PaymentSummary,
    Scenario,
    Transaction,
    TransactionCategory,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

DISPUTE_NEXT_STEPS = [
    "Our disputes team will review the transaction within 3-5 business days",
    "A temporary credit may be applied to your account during the review",
    "You'll receive an update by email once the review is complete",
]


class AccountDataSource(Protocol):
    """What the conversation core needs from the account backend."""

    def get_profile(self, customer_id: str) -> Optional[CustomerProfile]: ...

    def get_transactions(self, customer_id: str) -> list[Transaction]: ...

    def get_transaction_history(
        self,
        customer_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[Transaction]: ...

    def get_payment_summary(self, customer_id: str) -> Optional[PaymentSummary]: ...

    def initiate_dispute(
        self, customer_id: str, transaction_id: Optional[str] = None
    ) -> Optional[DisputeCase]: ...


def _txn(
    txn_id: str,
    customer_id: str,
    amount: str,
    merchant: str,
    when: datetime,
    category: TransactionCategory,
    status: TransactionStatus = TransactionStatus.COMPLETED,
) -> Transaction:
    return Transaction(
        transaction_id=txn_id,
        customer_id=customer_id,
        amount=Decimal(amount),
        merchant_name=merchant,
        transaction_date=when,
        category=category,
        status=status,
    )


class MockAccountService:
    """In-memory account backend seeded with demo customers."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None) -> None:
        self._now = now or datetime.now
        self._profiles: dict[str, CustomerProfile] = {}
        self._transactions: dict[str, list[Transaction]] = {}
        self._disputes: dict[str, DisputeCase] = {}
        self._lock = threading.Lock()
        self._seed()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_profile(self, customer_id: str) -> Optional[CustomerProfile]:
        """Return the customer's account snapshot with transactions attached."""
        profile = self._profiles.get(customer_id)
        if profile is None:
            logger.debug("No profile for customer %s", customer_id)
            return None
        return profile.model_copy(
            update={"transactions": tuple(self.get_transactions(customer_id))}
        )

    def get_transactions(self, customer_id: str) -> list[Transaction]:
        return list(self._transactions.get(customer_id, []))

    def get_transaction_history(
        self,
        customer_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[Transaction]:
        """Transactions whose date falls within [from_date, to_date]. Open bounds are ignored."""
        history = []
        for txn in self.get_transactions(customer_id):
            txn_date = txn.transaction_date.date()
            if from_date is not None and txn_date < from_date:
                continue
            if to_date is not None and txn_date > to_date:
                continue
            history.append(txn)
        return history

    def get_payment_summary(self, customer_id: str) -> Optional[PaymentSummary]:
        profile = self._profiles.get(customer_id)
        if profile is None:
            return None
        return PaymentSummary(
            customer_id=customer_id,
            outstanding_balance=profile.current_balance,
            credit_limit=profile.credit_limit,
            available_credit=profile.credit_limit - profile.current_balance,
            due_date=profile.due_date,
            payment_status=profile.payment_status,
            last_payment_date=profile.last_payment_date,
        )

    def initiate_dispute(
        self, customer_id: str, transaction_id: Optional[str] = None
    ) -> Optional[DisputeCase]:
        """Open a dispute case. Returns None for unknown customers."""
        if customer_id not in self._profiles:
            return None

        disputed = None
        if transaction_id is not None:
            disputed = next(
                (t for t in self.get_transactions(customer_id) if t.transaction_id == transaction_id),
                None,
            )

        reference = f"CASE-{uuid.uuid4().hex[:8].upper()}"
        case = DisputeCase(
            dispute_id=str(uuid.uuid4()),
            case_reference=reference,
            customer_id=customer_id,
            disputed_transaction=disputed,
            initiated_at=self._now(),
            status=DisputeStatus.INITIATED,
            next_steps=[f"Your dispute case reference is {reference}", *DISPUTE_NEXT_STEPS],
        )
        with self._lock:
            self._disputes[case.dispute_id] = case
        logger.info("Dispute initiated: %s for %s", reference, customer_id)
        return case

    def get_dispute(self, dispute_id: str) -> Optional[DisputeCase]:
        return self._disputes.get(dispute_id)

    def list_disputes(self, customer_id: str) -> list[DisputeCase]:
        with self._lock:
            return [c for c in self._disputes.values() if c.customer_id == customer_id]

    # ------------------------------------------------------------------ #
    # Seed data
    # ------------------------------------------------------------------ #

    def _add(self, profile: CustomerProfile, transactions: list[Transaction]) -> None:
        self._profiles[profile.customer_id] = profile
        self._transactions[profile.customer_id] = transactions

    def _seed(self) -> None:
        now = self._now()
        today = now.date()
        cat, status = TransactionCategory, TransactionStatus

        self._add(
            CustomerProfile(
                customer_id="user123", card_number="****-****-****-1234",
                current_balance=Decimal("1250.00"), credit_limit=Decimal("5000.00"),
                due_date=date(2025, 10, 15), last_payment_date=date(2025, 9, 15),
                payment_status=PaymentStatus.CURRENT,
            ),
            [
                _txn("txn001", "user123", "85.50", "Starbucks Coffee",
                     datetime(2025, 9, 27, 8, 30), cat.DINING),
                _txn("txn002", "user123", "1200.00", "Amazon Shopping",
                     datetime(2025, 9, 25, 14, 20), cat.SHOPPING),
                _txn("txn003", "user123", "45.00", "Uber Ride",
                     datetime(2025, 9, 26, 18, 15), cat.TRAVEL, status.PENDING),
            ],
        )
        self._add(
            CustomerProfile(
                customer_id="user456", card_number="****-****-****-5678",
                current_balance=Decimal("2850.75"), credit_limit=Decimal("8000.00"),
                due_date=date(2025, 9, 20), last_payment_date=date(2025, 8, 15),
                payment_status=PaymentStatus.OVERDUE,
            ),
            [
                _txn("txn004", "user456", "2500.00", "Hotel Booking",
                     datetime(2025, 9, 20, 10, 0), cat.TRAVEL, status.DISPUTED),
                _txn("txn005", "user456", "125.80", "Electric Bill",
                     datetime(2025, 9, 22, 16, 45), cat.UTILITIES),
                _txn("txn006", "user456", "67.25", "Restaurant Dinner",
                     datetime(2025, 9, 24, 19, 30), cat.DINING),
            ],
        )
        self._add(
            CustomerProfile(
                customer_id="user789", card_number="****-****-****-9012",
                current_balance=Decimal("456.30"), credit_limit=Decimal("3000.00"),
                due_date=date(2025, 10, 5), last_payment_date=date(2025, 9, 25),
                payment_status=PaymentStatus.UPCOMING,
            ),
            [
                _txn("txn007", "user789", "156.00", "Grocery Store",
                     datetime(2025, 9, 28, 11, 15), cat.OTHER),
                _txn("txn008", "user789", "89.99", "Online Subscription",
                     datetime(2025, 9, 26, 9, 0), cat.OTHER),
            ],
        )
        self._add(
            CustomerProfile(
                customer_id="user_overdue", card_number="****-****-****-4321",
                current_balance=Decimal("120000.00"), credit_limit=Decimal("150000.00"),
                due_date=date(2025, 9, 1), last_payment_date=date(2025, 8, 1),
                payment_status=PaymentStatus.OVERDUE, scenario=Scenario.OVERDUE_PAYMENT,
            ),
            [
                _txn("txn_overdue_001", "user_overdue", "15000.00", "Shopping Mall",
                     datetime(2025, 8, 25, 14, 30), cat.SHOPPING),
                _txn("txn_overdue_002", "user_overdue", "8500.00", "Restaurant",
                     datetime(2025, 8, 28, 19, 45), cat.DINING),
                _txn("txn_overdue_003", "user_overdue", "25000.00", "Hotel Booking",
                     datetime(2025, 9, 10, 10, 0), cat.TRAVEL),
            ],
        )
        self._add(
            CustomerProfile(
                customer_id="user_recent_payment", card_number="****-****-****-8765",
                current_balance=Decimal("2500.00"), credit_limit=Decimal("10000.00"),
                due_date=today + timedelta(days=20), last_payment_date=today,
                payment_status=PaymentStatus.CURRENT, scenario=Scenario.RECENT_PAYMENT,
            ),
            [
                _txn("txn_recent_001", "user_recent_payment", "1250.00", "Department Store",
                     now - timedelta(days=10), cat.SHOPPING),
                _txn("txn_recent_002", "user_recent_payment", "650.00", "Gas Station",
                     now - timedelta(days=5), cat.UTILITIES),
                _txn("txn_recent_003", "user_recent_payment", "-5000.00", "Payment Received",
                     now - timedelta(hours=2), cat.OTHER),
            ],
        )
        self._add(
            CustomerProfile(
                customer_id="user_duplicate_txn", card_number="****-****-****-3456",
                current_balance=Decimal("5678.90"), credit_limit=Decimal("15000.00"),
                due_date=today + timedelta(days=20), last_payment_date=today - timedelta(days=10),
                payment_status=PaymentStatus.CURRENT, scenario=Scenario.DUPLICATE_TRANSACTION,
            ),
            [
                _txn("txn_dup_001", "user_duplicate_txn", "2890.00", "Online Shopping Store A",
                     now - timedelta(hours=36), cat.SHOPPING),
                _txn("txn_dup_002", "user_duplicate_txn", "2890.00", "Online Shopping Store B",
                     now - timedelta(hours=12), cat.SHOPPING),
                _txn("txn_dup_003", "user_duplicate_txn", "450.00", "Coffee Shop",
                     now - timedelta(hours=72), cat.DINING),
            ],
        )
