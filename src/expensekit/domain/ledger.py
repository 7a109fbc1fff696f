"""Transaction ledger domain service.

Every write locks the owning account row, checks, appends the transaction(s)
and moves the stored balance in the same unit of work, so the balance always
equals deposits minus payments over the account's own transactions.
"""

import logging
import uuid
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Sequence
from expensekit.config import LedgerSettings
from expensekit.database.base import Database
from expensekit.domain.entities import (
    Account,
    AccountStats,
    BalanceSummary,
    DepositSource,
    PayeeType,
    PaymentSpec,
    Transaction as TransactionEntity,
    TransactionType,
)
from expensekit.domain.errors import (
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
    account_inactive,
    account_not_found,
    transaction_not_found,
)
from expensekit.domain.retry import run_atomic
from expensekit.utils.amount_parser import to_decimal

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("999999999.99")
CENT = Decimal("0.01")


def validate_amount(amount: Decimal | int | str) -> Decimal:
    """Validate a deposit or payment amount.

    Returns:
        The amount as a two-place Decimal

    Raises:
        ValidationError: If not positive, above MAX_AMOUNT or finer than a cent
    """
    try:
        value = to_decimal(amount)
    except ValueError as e:
        raise ValidationError(str(e))
    if value <= 0:
        raise ValidationError("Amount must be greater than 0")
    if value > MAX_AMOUNT:
        raise ValidationError("Amount exceeds maximum allowed value")
    if value != value.quantize(CENT):
        raise ValidationError("Amount cannot have more than 2 decimal places")
    return value.quantize(CENT)


def _parse_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {label} '{value}'. Expected one of: {choices}")


class LedgerService:
    """Service for recording deposits and payments."""

    def __init__(self, db: Database, settings: Optional[LedgerSettings] = None):
        """Initialize ledger service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults to LedgerSettings())
        """
        self.db = db
        self.settings = settings or LedgerSettings()

    def _lock_writable_account(self, account_id: int) -> Account:
        account = self.db.get_account_for_update(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if not account.is_active:
            raise ValidationError(account_inactive(account.account_number))
        return account

    def _require_account(self, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def _warn_if_low(self, account: Account, new_balance: Decimal) -> None:
        # Siblings run negative while history is backfilled
        if account.is_sibling:
            return
        if new_balance < account.low_balance_threshold:
            logger.warning(
                "Account %s balance %s is below its low balance threshold %s",
                account.account_number,
                new_balance,
                account.low_balance_threshold,
                extra={"account_id": account.id},
            )

    def _normalize_payment(self, spec: PaymentSpec, index: Optional[int] = None) -> PaymentSpec:
        prefix = f"Payment {index}: " if index is not None else ""
        try:
            amount = validate_amount(spec.amount)
            payee_type = _parse_enum(PayeeType, spec.payee_type, "payee type")
        except ValidationError as e:
            raise ValidationError(f"{prefix}{e}")
        if spec.payee_id is None or not str(spec.payee_id).strip():
            raise ValidationError(f"{prefix}Payee ID is required")
        return PaymentSpec(
            amount=amount,
            payee_type=payee_type,
            payee_id=str(spec.payee_id).strip(),
            category=spec.category,
            occurred_at=spec.occurred_at,
            description=spec.description,
        )

    def record_deposit(
        self,
        account_id: int,
        amount: Decimal | int | str,
        source: DepositSource | str = DepositSource.MANUAL,
        description: Optional[str] = None,
        occurred_at: Optional[date] = None,
    ) -> TransactionEntity:
        """Record a deposit and add it to the account balance.

        Args:
            account_id: Account ID (root or sibling)
            amount: Positive amount
            source: MANUAL (cash/external) or TRANSFER (from another account)
            description: Optional description
            occurred_at: Deposit date, defaults to today

        Returns:
            The recorded deposit

        Raises:
            ValidationError: If amount or source is invalid, or the account is inactive
            NotFoundError: If the account does not exist
        """
        amount = validate_amount(amount)
        source = _parse_enum(DepositSource, source, "deposit source")
        occurred_at = occurred_at or date.today()

        def work() -> TransactionEntity:
            account = self._lock_writable_account(account_id)
            deposit = self.db.create_transaction(
                account_id=account.id,
                transaction_type=TransactionType.DEPOSIT,
                amount=amount,
                occurred_at=occurred_at,
                recorded_at=datetime.now(UTC),
                description=description,
                source=source.value,
            )
            self.db.update_account_balance(account.id, account.balance + amount)
            return deposit

        deposit = run_atomic(self.db, work, self.settings.max_conflict_retries)
        logger.info(
            "Recorded deposit of %s",
            amount,
            extra={"account_id": account_id, "transaction_id": deposit.id, "source": source.value},
        )
        return deposit

    def record_payment(
        self,
        account_id: int,
        amount: Decimal | int | str,
        payee_type: PayeeType | str,
        payee_id: str,
        category: Optional[str] = None,
        occurred_at: Optional[date] = None,
        description: Optional[str] = None,
    ) -> TransactionEntity:
        """Record a payment and subtract it from the account balance.

        Sibling accounts accept any ``occurred_at``. Root accounts should
        record current payments; backdated root payments are accepted but
        logged, since historical entry belongs in a sibling account.

        Args:
            account_id: Account ID (root or sibling)
            amount: Positive amount
            payee_type: EMPLOYEE, CONTRACTOR, PERSON or BUSINESS
            payee_id: Identifier of the payee
            category: Optional expense category
            occurred_at: Payment date, defaults to today
            description: Optional description

        Returns:
            The recorded payment

        Raises:
            ValidationError: If an input is invalid or the account is inactive
            NotFoundError: If the account does not exist
            InsufficientFundsError: If the amount exceeds the balance
        """
        spec = PaymentSpec(
            amount=amount,
            payee_type=payee_type,
            payee_id=payee_id,
            category=category,
            occurred_at=occurred_at,
            description=description,
        )
        spec = self._normalize_payment(spec)
        return self._post_payments(account_id, [spec], batch_id=None)[0]

    def record_payment_batch(
        self, account_id: int, payments: Sequence[PaymentSpec]
    ) -> list[TransactionEntity]:
        """Record several payments all-or-nothing.

        The sum of all amounts is checked against the balance before anything
        is written. On success every payment shares one ``batch_id``.

        Args:
            account_id: Account ID (root or sibling)
            payments: Requested payments

        Returns:
            The recorded payments, in request order

        Raises:
            ValidationError: If the batch is empty or any payment is invalid
                (the message names the 1-based payment index)
            NotFoundError: If the account does not exist
            InsufficientFundsError: If the total exceeds the balance; its
                ``shortfall`` is the missing amount
        """
        if not payments:
            raise ValidationError("Payment batch must contain at least one payment")
        specs = [self._normalize_payment(p, index=i) for i, p in enumerate(payments, start=1)]
        return self._post_payments(account_id, specs, batch_id=uuid.uuid4().hex)

    def _post_payments(
        self, account_id: int, specs: list[PaymentSpec], batch_id: Optional[str]
    ) -> list[TransactionEntity]:
        total = sum((s.amount for s in specs), Decimal("0.00"))
        today = date.today()

        def work() -> list[TransactionEntity]:
            account = self._lock_writable_account(account_id)
            overdraft_allowed = account.is_sibling and self.settings.allow_sibling_overdraft
            if total > account.balance and not overdraft_allowed:
                raise InsufficientFundsError(required=total, available=account.balance)

            recorded = []
            for spec in specs:
                occurred_at = spec.occurred_at or today
                if not account.is_sibling and occurred_at != today:
                    logger.info(
                        "Payment on root account %s dated %s; historical entries belong in a sibling account",
                        account.account_number,
                        occurred_at,
                        extra={"account_id": account.id},
                    )
                recorded.append(
                    self.db.create_transaction(
                        account_id=account.id,
                        transaction_type=TransactionType.PAYMENT,
                        amount=spec.amount,
                        occurred_at=occurred_at,
                        recorded_at=datetime.now(UTC),
                        description=spec.description,
                        payee_type=spec.payee_type.value,
                        payee_id=spec.payee_id,
                        category=spec.category,
                        batch_id=batch_id,
                    )
                )
            new_balance = account.balance - total
            self.db.update_account_balance(account.id, new_balance)
            self._warn_if_low(account, new_balance)
            return recorded

        try:
            recorded = run_atomic(self.db, work, self.settings.max_conflict_retries)
        except InsufficientFundsError as e:
            logger.info(
                "Rejected payments: shortfall %s",
                e.shortfall,
                extra={"account_id": account_id, "required": str(e.required), "available": str(e.available)},
            )
            raise
        logger.info(
            "Recorded %d payment(s) totalling %s",
            len(recorded),
            total,
            extra={"account_id": account_id, "batch_id": batch_id},
        )
        return recorded

    def get_transaction(self, transaction_id: int) -> TransactionEntity:
        """Get transaction by ID.

        Raises:
            NotFoundError: If transaction not found
        """
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: TransactionType | str | None = None,
        limit: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List an account's transactions, most recent ``occurred_at`` first.

        Args:
            account_id: Account ID
            start_date: Optional inclusive start of ``occurred_at``
            end_date: Optional inclusive end of ``occurred_at``
            transaction_type: Optional DEPOSIT or PAYMENT filter
            limit: Optional maximum number of rows

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the type filter is invalid
        """
        self._require_account(account_id)
        if transaction_type is not None:
            transaction_type = _parse_enum(TransactionType, transaction_type, "transaction type")
        return self.db.list_transactions(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
            limit=limit,
        )

    def get_balance_summary(self, account_id: int) -> BalanceSummary:
        """Compare the stored balance with one recomputed from the transactions.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._require_account(account_id)
        totals = self.db.get_transaction_totals(account_id)
        summary = BalanceSummary(
            account_id=account.id,
            recorded_balance=account.balance,
            calculated_balance=totals.net,
            total_deposits=totals.total_deposits,
            total_payments=totals.total_payments,
        )
        if not summary.is_balanced:
            logger.warning(
                "Account %s balance %s does not match its transactions (%s)",
                account.account_number,
                summary.recorded_balance,
                summary.calculated_balance,
                extra={"account_id": account.id},
            )
        return summary

    def get_account_stats(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AccountStats:
        """Deposit and payment totals of an account over an ``occurred_at`` range.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._require_account(account_id)
        totals = self.db.get_transaction_totals(account_id, start_date=start_date, end_date=end_date)
        return AccountStats(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
            deposits_total=totals.total_deposits,
            deposits_count=totals.deposit_count,
            payments_total=totals.total_payments,
            payments_count=totals.payment_count,
        )
