"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from expensekit.domain.entities import (
    Account,
    Transaction,
    TransactionTotals,
    TransactionType,
)


class Database(ABC):
    """Abstract database interface for expensekit.

    Write methods called outside ``atomic()`` commit immediately. Inside
    ``atomic()`` they only flush, and the whole block commits or rolls back
    together.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Run the enclosed calls as one unit of work.

        Raises:
            ConcurrencyConflictError: If a concurrent writer changed a row this
                unit wrote, or a unique sequence was taken first
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        account_number: str,
        name: str,
        description: Optional[str] = None,
        low_balance_threshold: Decimal = Decimal("0"),
        account_sequence: Optional[int] = None,
        parent_account_id: Optional[int] = None,
        sibling_sequence: Optional[int] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_for_update(self, account_id: int) -> Optional[Account]:
        """Get account by ID, locking the row where the backend supports it.

        The row is re-read from the database even if cached in the session.
        """
        pass

    @abstractmethod
    def get_account_by_number(self, account_number: str) -> Optional[Account]:
        """Get account by account number."""
        pass

    @abstractmethod
    def list_accounts(self, include_siblings: bool = False, active_only: bool = False) -> list[Account]:
        """List accounts ordered by account number."""
        pass

    @abstractmethod
    def list_siblings(self, parent_account_id: int) -> list[Account]:
        """List sibling accounts of a parent, ordered by sibling sequence."""
        pass

    @abstractmethod
    def get_max_account_sequence(self) -> int:
        """Highest root account sequence in use, 0 if none."""
        pass

    @abstractmethod
    def get_max_sibling_sequence(self, parent_account_id: int) -> int:
        """Highest sibling sequence in use under a parent, 0 if none."""
        pass

    @abstractmethod
    def update_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Set an account's balance (version-checked)."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Hard-delete an account row (version-checked)."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
        occurred_at: date,
        recorded_at: datetime,
        description: Optional[str] = None,
        source: Optional[str] = None,
        payee_type: Optional[str] = None,
        payee_id: Optional[str] = None,
        category: Optional[str] = None,
        batch_id: Optional[str] = None,
    ) -> Transaction:
        """Append a transaction and return it."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List an account's transactions, newest ``occurred_at`` first.

        Ties are broken by ``recorded_at`` then ID, both descending.
        """
        pass

    @abstractmethod
    def count_transactions(self, account_id: int) -> int:
        """Number of transactions owned by an account."""
        pass

    @abstractmethod
    def reassign_transactions(self, from_account_id: int, to_account_id: int) -> int:
        """Move every transaction of one account to another. Returns the count moved."""
        pass

    @abstractmethod
    def get_transaction_totals(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> TransactionTotals:
        """Sum deposits and payments of an account, optionally by ``occurred_at`` range."""
        pass
