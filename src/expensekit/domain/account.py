"""Account domain service."""

import logging
from decimal import Decimal
from typing import Optional
from expensekit.config import LedgerSettings
from expensekit.database.base import Database
from expensekit.domain.entities import Account as AccountEntity, AccountFamily
from expensekit.domain.errors import (
    InvalidParentError,
    NotFoundError,
    ValidationError,
    account_not_found,
    account_number_not_found,
    nested_sibling,
)
from expensekit.domain.ledger import CENT, MAX_AMOUNT
from expensekit.domain.retry import run_atomic
from expensekit.utils.amount_parser import to_decimal

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_PREFIX = "EXP"


def format_account_number(sequence: int) -> str:
    """Root account number, e.g. 1 -> "EXP-001"."""
    return f"{ACCOUNT_NUMBER_PREFIX}-{sequence:03d}"


def format_sibling_number(parent_number: str, sibling_sequence: int) -> str:
    """Sibling account number, e.g. ("EXP-001", 2) -> "EXP-001-02"."""
    return f"{parent_number}-{sibling_sequence:02d}"


class AccountService:
    """Service for creating and querying expense accounts."""

    def __init__(self, db: Database, settings: Optional[LedgerSettings] = None):
        """Initialize account service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults to LedgerSettings())
        """
        self.db = db
        self.settings = settings or LedgerSettings()

    def _validate_name(self, name: str) -> str:
        if name is None or not name.strip():
            raise ValidationError("Account name must not be empty")
        return name.strip()

    def _validate_threshold(self, threshold: Decimal | int | str | None, default: Decimal) -> Decimal:
        if threshold is None:
            return default
        try:
            value = to_decimal(threshold)
        except ValueError as e:
            raise ValidationError(f"Invalid low balance threshold: {e}")
        if value < 0:
            raise ValidationError("Low balance threshold must not be negative")
        if value > MAX_AMOUNT:
            raise ValidationError("Low balance threshold exceeds maximum allowed value")
        if value != value.quantize(CENT):
            raise ValidationError("Low balance threshold cannot have more than 2 decimal places")
        return value.quantize(CENT)

    def create_account(
        self,
        name: str,
        description: Optional[str] = None,
        low_balance_threshold: Decimal | int | str | None = None,
    ) -> AccountEntity:
        """Create a new root account.

        The account number is the next free global sequence ("EXP-001",
        "EXP-002", ...). Two concurrent creators racing for the same number
        hit the unique constraint and the loser retries.

        Args:
            name: Account name
            description: Optional description
            low_balance_threshold: Advisory threshold, defaults to the
                configured default

        Returns:
            The created account (balance 0, active, no parent)

        Raises:
            ValidationError: If name is empty or threshold is invalid
        """
        name = self._validate_name(name)
        threshold = self._validate_threshold(
            low_balance_threshold, self.settings.default_low_balance_threshold
        )

        def work() -> int:
            sequence = self.db.get_max_account_sequence() + 1
            return self.db.create_account(
                account_number=format_account_number(sequence),
                name=name,
                description=description,
                low_balance_threshold=threshold,
                account_sequence=sequence,
            )

        account_id = run_atomic(self.db, work, self.settings.max_conflict_retries)
        account = self.get_account(account_id)
        logger.info(
            "Created account %s", account.account_number, extra={"account_id": account.id}
        )
        return account

    def create_sibling(
        self,
        parent_account_id: int,
        name: str,
        description: Optional[str] = None,
        low_balance_threshold: Decimal | int | str | None = None,
    ) -> AccountEntity:
        """Create a sibling account for entering historical transactions.

        Args:
            parent_account_id: ID of a root account
            name: Sibling account name
            description: Optional description
            low_balance_threshold: Advisory threshold, defaults to 0

        Returns:
            The created sibling (balance 0, numbered "<parent>-NN")

        Raises:
            NotFoundError: If the parent does not exist
            InvalidParentError: If the parent is itself a sibling
            ValidationError: If name is empty or threshold is invalid
        """
        name = self._validate_name(name)
        threshold = self._validate_threshold(low_balance_threshold, Decimal("0"))

        def work() -> int:
            parent = self.db.get_account(parent_account_id)
            if parent is None:
                raise NotFoundError(account_not_found(parent_account_id))
            if parent.is_sibling:
                raise InvalidParentError(nested_sibling(parent.account_number))

            sequence = self.db.get_max_sibling_sequence(parent.id) + 1
            return self.db.create_account(
                account_number=format_sibling_number(parent.account_number, sequence),
                name=name,
                description=description,
                low_balance_threshold=threshold,
                parent_account_id=parent.id,
                sibling_sequence=sequence,
            )

        account_id = run_atomic(self.db, work, self.settings.max_conflict_retries)
        sibling = self.get_account(account_id)
        logger.info(
            "Created sibling account %s",
            sibling.account_number,
            extra={"account_id": sibling.id, "parent_account_id": parent_account_id},
        )
        return sibling

    def find_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID, or None if not found."""
        return self.db.get_account(account_id)

    def get_account(self, account_id: int) -> AccountEntity:
        """Get account by ID.

        Raises:
            NotFoundError: If account not found
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_account_by_number(self, account_number: str) -> Optional[AccountEntity]:
        """Get account by account number, or None if not found."""
        return self.db.get_account_by_number(account_number)

    def get_account_by_number(self, account_number: str) -> AccountEntity:
        """Get account by account number.

        Raises:
            NotFoundError: If account not found
        """
        account = self.db.get_account_by_number(account_number)
        if account is None:
            raise NotFoundError(account_number_not_found(account_number))
        return account

    def list_accounts(self, include_siblings: bool = False, active_only: bool = False) -> list[AccountEntity]:
        """List accounts.

        Args:
            include_siblings: Also list sibling accounts
            active_only: Only list active accounts

        Returns:
            Accounts ordered by account number
        """
        return self.db.list_accounts(include_siblings=include_siblings, active_only=active_only)

    def list_siblings(self, parent_account_id: int) -> list[AccountEntity]:
        """List the siblings of a root account, ordered by sibling sequence.

        Raises:
            NotFoundError: If the parent does not exist
        """
        self.get_account(parent_account_id)
        return self.db.list_siblings(parent_account_id)

    def get_account_family(self, account_id: int) -> AccountFamily:
        """Get the root account and all its siblings, starting from either one.

        Raises:
            NotFoundError: If account not found
        """
        account = self.get_account(account_id)
        parent = self.get_account(account.parent_account_id) if account.is_sibling else account
        return AccountFamily(parent=parent, siblings=self.db.list_siblings(parent.id))

    def next_sibling_account_number(self, parent_account_id: int) -> str:
        """Account number the next sibling of a parent would get."""
        parent = self.get_account(parent_account_id)
        if parent.is_sibling:
            raise InvalidParentError(nested_sibling(parent.account_number))
        sequence = self.db.get_max_sibling_sequence(parent.id) + 1
        return format_sibling_number(parent.account_number, sequence)

    def has_active_siblings(self, account_id: int) -> bool:
        """Whether an account has at least one active sibling."""
        return any(s.is_active for s in self.db.list_siblings(account_id))

    def set_account_active(self, account_id: int, is_active: bool) -> AccountEntity:
        """Activate or deactivate an account.

        Inactive accounts keep their history but reject new deposits and
        payments.

        Raises:
            NotFoundError: If account not found
        """
        self.get_account(account_id)
        run_atomic(
            self.db,
            lambda: self.db.set_account_active(account_id, is_active),
            self.settings.max_conflict_retries,
        )
        return self.get_account(account_id)

    def list_low_balance_accounts(self) -> list[AccountEntity]:
        """Active accounts whose balance is below their threshold, lowest first."""
        accounts = self.db.list_accounts(include_siblings=True, active_only=True)
        return sorted((a for a in accounts if a.is_low_balance), key=lambda a: a.balance)
