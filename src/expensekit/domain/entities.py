"""Domain model entities for expensekit.

These are pure data classes representing ledger concepts, independent of the
database schema. The ORM models are converted to these by the mappers, so the
services never hold on to session-bound objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Kind of ledger entry."""

    DEPOSIT = "DEPOSIT"
    PAYMENT = "PAYMENT"


class DepositSource(str, Enum):
    """Where deposited money came from."""

    MANUAL = "MANUAL"
    TRANSFER = "TRANSFER"


class PayeeType(str, Enum):
    """Recipient kind of a payment."""

    EMPLOYEE = "EMPLOYEE"
    CONTRACTOR = "CONTRACTOR"
    PERSON = "PERSON"
    BUSINESS = "BUSINESS"


@dataclass(frozen=True)
class Account:
    """Expense account domain entity.

    Root accounts have no parent. Sibling accounts point at a root account and
    stage backdated transactions until they are merged into it.
    """

    id: int
    account_number: str
    name: str
    description: Optional[str]
    balance: Decimal
    low_balance_threshold: Decimal
    is_active: bool
    parent_account_id: Optional[int]
    sibling_sequence: Optional[int]
    created_at: datetime
    updated_at: datetime

    @property
    def is_sibling(self) -> bool:
        return self.parent_account_id is not None

    @property
    def is_low_balance(self) -> bool:
        return self.balance < self.low_balance_threshold


@dataclass(frozen=True)
class Transaction:
    """Deposit or payment recorded against an account.

    Deposit-only and payment-only fields are None on the other variant.
    """

    id: int
    account_id: int
    type: TransactionType
    amount: Decimal
    occurred_at: date
    recorded_at: datetime
    description: Optional[str]
    source: Optional[DepositSource] = None
    payee_type: Optional[PayeeType] = None
    payee_id: Optional[str] = None
    category: Optional[str] = None
    batch_id: Optional[str] = None

    @property
    def is_deposit(self) -> bool:
        return self.type is TransactionType.DEPOSIT

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the balance (payments negative)."""
        return self.amount if self.is_deposit else -self.amount


@dataclass(frozen=True)
class PaymentSpec:
    """One requested payment, before it is recorded."""

    amount: Decimal
    payee_type: PayeeType
    payee_id: str
    category: Optional[str] = None
    occurred_at: Optional[date] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TransactionTotals:
    """Aggregated deposit and payment sums for one account."""

    total_deposits: Decimal = Decimal("0")
    deposit_count: int = 0
    total_payments: Decimal = Decimal("0")
    payment_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.total_deposits - self.total_payments


@dataclass(frozen=True)
class BalanceSummary:
    """Stored balance compared against the balance recomputed from entries."""

    account_id: int
    recorded_balance: Decimal
    calculated_balance: Decimal
    total_deposits: Decimal
    total_payments: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.recorded_balance == self.calculated_balance


@dataclass(frozen=True)
class AccountStats:
    """Deposit and payment activity of an account over a period."""

    account_id: int
    start_date: Optional[date]
    end_date: Optional[date]
    deposits_total: Decimal
    deposits_count: int
    payments_total: Decimal
    payments_count: int


@dataclass(frozen=True)
class AccountFamily:
    """A root account together with its sibling accounts."""

    parent: Account
    siblings: list[Account] = field(default_factory=list)


@dataclass(frozen=True)
class MergeCheck:
    """Read-only preview of what merging a sibling would require."""

    sibling_account_id: int
    parent_account_id: int
    balance: Decimal
    transaction_count: int

    @property
    def requires_privilege(self) -> bool:
        return self.balance != 0


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a completed sibling merge."""

    parent_account_id: int
    transactions_merged: int
    balance_transferred: Decimal
    merged_account_number: str
