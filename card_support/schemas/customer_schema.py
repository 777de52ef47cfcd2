"""Card account data models returned by the account data source."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentStatus(str, Enum):
    CURRENT = "current"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


class Scenario(str, Enum):
    """Pre-classified account situations that drive proactive suggestions."""

    OVERDUE_PAYMENT = "overdue_payment"
    RECENT_PAYMENT = "recent_payment"
    DUPLICATE_TRANSACTION = "duplicate_transaction"


class TransactionCategory(str, Enum):
    DINING = "dining"
    SHOPPING = "shopping"
    TRAVEL = "travel"
    UTILITIES = "utilities"
    OTHER = "other"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    DISPUTED = "disputed"


class DisputeStatus(str, Enum):
    INITIATED = "initiated"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Transaction(BaseModel):
    """Single card transaction. Payments and refunds carry negative amounts."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    customer_id: str
    amount: Decimal
    merchant_name: str
    transaction_date: datetime
    category: TransactionCategory = TransactionCategory.OTHER
    status: TransactionStatus = TransactionStatus.COMPLETED


class CustomerProfile(BaseModel):
    """Read-only account snapshot taken when a session is created."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    card_number: str
    current_balance: Decimal
    credit_limit: Decimal
    due_date: date
    last_payment_date: Optional[date] = None
    payment_status: PaymentStatus = PaymentStatus.CURRENT
    scenario: Optional[Scenario] = None
    transactions: tuple[Transaction, ...] = ()


class PaymentSummary(BaseModel):
    """Payment figures used by the payment-inquiry reply."""

    customer_id: str
    outstanding_balance: Decimal
    credit_limit: Decimal
    available_credit: Decimal
    due_date: date
    payment_status: PaymentStatus
    last_payment_date: Optional[date] = None


class DisputeCase(BaseModel):
    """A dispute opened on behalf of the customer."""

    dispute_id: str
    case_reference: str
    customer_id: str
    disputed_transaction: Optional[Transaction] = None
    initiated_at: datetime
    status: DisputeStatus = DisputeStatus.INITIATED
    next_steps: list[str] = Field(default_factory=list)
