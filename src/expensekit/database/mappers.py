"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so enum parsing and Decimal handling
live in one place rather than in every query method.
"""

from datetime import datetime, UTC
from decimal import Decimal

from expensekit.domain import entities as domain
from expensekit.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalize a stored numeric value to a two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def to_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        account_number=orm_account.account_number,
        name=orm_account.name,
        description=orm_account.description,
        balance=to_money(orm_account.balance),
        low_balance_threshold=to_money(orm_account.low_balance_threshold),
        is_active=orm_account.is_active,
        parent_account_id=orm_account.parent_account_id,
        sibling_sequence=orm_account.sibling_sequence,
        created_at=to_utc(orm_account.created_at),
        updated_at=to_utc(orm_account.updated_at),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        type=domain.TransactionType(orm_transaction.type),
        amount=to_money(orm_transaction.amount),
        occurred_at=orm_transaction.occurred_at,
        recorded_at=to_utc(orm_transaction.recorded_at),
        description=orm_transaction.description,
        source=domain.DepositSource(orm_transaction.source) if orm_transaction.source else None,
        payee_type=domain.PayeeType(orm_transaction.payee_type) if orm_transaction.payee_type else None,
        payee_id=orm_transaction.payee_id,
        category=orm_transaction.category,
        batch_id=orm_transaction.batch_id,
    )
