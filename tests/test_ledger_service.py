"""Tests for LedgerService."""

import logging
from datetime import date, timedelta
from decimal import Decimal

import pytest

from expensekit.config import LedgerSettings
from expensekit.domain.entities import DepositSource, PayeeType, PaymentSpec, TransactionType
from expensekit.domain.errors import (
    ConcurrencyConflictError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from expensekit.domain.ledger import LedgerService, validate_amount


def _payment(amount, payee_id="E-1", **kwargs):
    return PaymentSpec(amount=Decimal(amount), payee_type=PayeeType.EMPLOYEE, payee_id=payee_id, **kwargs)


def test_validate_amount():
    """Test amount validation rules."""
    assert validate_amount(Decimal("10")) == Decimal("10.00")
    assert validate_amount("1,234.5") == Decimal("1234.50")
    assert validate_amount(7) == Decimal("7.00")
    assert validate_amount(Decimal("999999999.99")) == Decimal("999999999.99")


@pytest.mark.parametrize(
    "amount,message",
    [
        (Decimal("0"), "greater than 0"),
        (Decimal("-5"), "greater than 0"),
        (Decimal("1000000000.00"), "exceeds maximum"),
        (Decimal("1.005"), "2 decimal places"),
        (10.0, "got float"),
        ("abc", "Could not parse"),
    ],
)
def test_validate_amount_rejects(amount, message):
    """Test invalid amounts are rejected."""
    with pytest.raises(ValidationError, match=message):
        validate_amount(amount)


def test_record_deposit(ledger_service, account_service, sample_account):
    """Test a deposit adds to the balance."""
    deposit = ledger_service.record_deposit(sample_account.id, Decimal("1000.00"), description="Float")

    assert deposit.type is TransactionType.DEPOSIT
    assert deposit.amount == Decimal("1000.00")
    assert deposit.source is DepositSource.MANUAL
    assert deposit.occurred_at == date.today()
    assert deposit.description == "Float"
    assert deposit.payee_type is None
    assert account_service.get_account(sample_account.id).balance == Decimal("1000.00")


def test_record_deposit_transfer_source(ledger_service, sample_account):
    """Test deposit sources are parsed case-insensitively."""
    deposit = ledger_service.record_deposit(sample_account.id, "250", source="transfer")
    assert deposit.source is DepositSource.TRANSFER


def test_record_deposit_invalid_source(ledger_service, sample_account):
    """Test an unknown deposit source is rejected."""
    with pytest.raises(ValidationError, match="Invalid deposit source"):
        ledger_service.record_deposit(sample_account.id, "250", source="CHEQUE")


def test_record_deposit_missing_account(ledger_service):
    """Test depositing into a missing account."""
    with pytest.raises(NotFoundError):
        ledger_service.record_deposit(999, Decimal("10"))


def test_record_deposit_inactive_account(ledger_service, account_service, sample_account):
    """Test inactive accounts refuse deposits."""
    account_service.set_account_active(sample_account.id, False)
    with pytest.raises(ValidationError, match="inactive"):
        ledger_service.record_deposit(sample_account.id, Decimal("10"))


def test_record_payment(ledger_service, account_service, funded_account):
    """Test a payment within the balance."""
    payment = ledger_service.record_payment(
        funded_account.id,
        Decimal("300.00"),
        payee_type=PayeeType.EMPLOYEE,
        payee_id="E-17",
        category="Fuel",
    )

    assert payment.type is TransactionType.PAYMENT
    assert payment.amount == Decimal("300.00")
    assert payment.payee_type is PayeeType.EMPLOYEE
    assert payment.payee_id == "E-17"
    assert payment.category == "Fuel"
    assert payment.batch_id is None
    assert payment.signed_amount == Decimal("-300.00")
    assert account_service.get_account(funded_account.id).balance == Decimal("700.00")


def test_record_payment_rejected_for_insufficient_funds(ledger_service, account_service, sample_account):
    """Test a payment larger than the balance leaves no trace."""
    ledger_service.record_deposit(sample_account.id, Decimal("100.00"))

    with pytest.raises(InsufficientFundsError) as exc_info:
        ledger_service.record_payment(
            sample_account.id, Decimal("150.00"), payee_type="PERSON", payee_id="P-1"
        )

    error = exc_info.value
    assert error.required == Decimal("150.00")
    assert error.available == Decimal("100.00")
    assert error.shortfall == Decimal("50.00")
    assert "Shortfall: $50.00" in str(error)
    assert account_service.get_account(sample_account.id).balance == Decimal("100.00")
    assert len(ledger_service.list_transactions(sample_account.id)) == 1


def test_record_payment_exact_balance(ledger_service, account_service, sample_account):
    """Test paying exactly the balance leaves zero."""
    ledger_service.record_deposit(sample_account.id, Decimal("100.00"))
    ledger_service.record_payment(sample_account.id, Decimal("100.00"), payee_type="PERSON", payee_id="P-1")
    assert account_service.get_account(sample_account.id).balance == Decimal("0.00")


def test_record_payment_one_cent_over(ledger_service, sample_account):
    """Test paying one cent more than the balance is refused."""
    ledger_service.record_deposit(sample_account.id, Decimal("100.00"))
    with pytest.raises(InsufficientFundsError) as exc_info:
        ledger_service.record_payment(sample_account.id, Decimal("100.01"), payee_type="PERSON", payee_id="P-1")
    assert exc_info.value.shortfall == Decimal("0.01")


def test_record_payment_empty_account(ledger_service, sample_account):
    """Test paying from a zero-balance root account."""
    with pytest.raises(InsufficientFundsError):
        ledger_service.record_payment(sample_account.id, Decimal("0.01"), payee_type="PERSON", payee_id="P-1")


def test_record_payment_invalid_payee_type(ledger_service, funded_account):
    """Test unknown payee types are rejected."""
    with pytest.raises(ValidationError, match="Invalid payee type 'VENDOR'"):
        ledger_service.record_payment(funded_account.id, Decimal("10"), payee_type="VENDOR", payee_id="V-1")


def test_record_payment_missing_payee_id(ledger_service, funded_account):
    """Test a blank payee ID is rejected."""
    with pytest.raises(ValidationError, match="Payee ID is required"):
        ledger_service.record_payment(funded_account.id, Decimal("10"), payee_type="PERSON", payee_id=" ")


def test_record_payment_backdated_in_sibling(ledger_service, account_service, sample_account, sample_sibling):
    """Test backdated payments in a sibling do not touch the parent."""
    ledger_service.record_deposit(sample_account.id, Decimal("1000.00"))
    ledger_service.record_deposit(sample_sibling.id, Decimal("200.00"), occurred_at=date(2023, 1, 1))

    payment = ledger_service.record_payment(
        sample_sibling.id,
        Decimal("150.00"),
        payee_type="CONTRACTOR",
        payee_id="C-3",
        occurred_at=date(2023, 2, 1),
    )

    assert payment.occurred_at == date(2023, 2, 1)
    assert payment.recorded_at.date() >= date.today() - timedelta(days=1)
    assert account_service.get_account(sample_sibling.id).balance == Decimal("50.00")
    assert account_service.get_account(sample_account.id).balance == Decimal("1000.00")


def test_sibling_overdraft_allowed_by_default(ledger_service, account_service, sample_sibling):
    """Test a sibling may go negative while staging historical expenses."""
    ledger_service.record_payment(sample_sibling.id, Decimal("50.00"), payee_type="PERSON", payee_id="P-1")
    assert account_service.get_account(sample_sibling.id).balance == Decimal("-50.00")


def test_sibling_overdraft_disabled(temp_db, account_service, sample_sibling):
    """Test siblings get the funds check when overdraft is turned off."""
    service = LedgerService(temp_db, LedgerSettings(allow_sibling_overdraft=False))
    with pytest.raises(InsufficientFundsError):
        service.record_payment(sample_sibling.id, Decimal("50.00"), payee_type="PERSON", payee_id="P-1")
    assert account_service.get_account(sample_sibling.id).balance == Decimal("0.00")


def test_backdated_root_payment_is_logged(ledger_service, funded_account, caplog):
    """Test backdated root payments are accepted with a log entry."""
    caplog.set_level(logging.INFO, logger="expensekit")
    payment = ledger_service.record_payment(
        funded_account.id,
        Decimal("10.00"),
        payee_type="PERSON",
        payee_id="P-1",
        occurred_at=date.today() - timedelta(days=30),
    )
    assert payment.occurred_at == date.today() - timedelta(days=30)
    assert "historical entries belong in a sibling account" in caplog.text


def test_low_balance_warning(ledger_service, funded_account, caplog):
    """Test crossing below the threshold logs a warning."""
    caplog.set_level(logging.INFO, logger="expensekit")
    ledger_service.record_payment(funded_account.id, Decimal("950.00"), payee_type="PERSON", payee_id="P-1")

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "below its low balance threshold" in warnings[0].getMessage()
    assert warnings[0].account_id == funded_account.id


def test_record_payment_batch(ledger_service, account_service, funded_account):
    """Test a batch within the balance records every payment."""
    recorded = ledger_service.record_payment_batch(
        funded_account.id,
        [_payment("100.00", "E-1"), _payment("250.00", "E-2"), _payment("50.00", "E-3")],
    )

    assert [t.payee_id for t in recorded] == ["E-1", "E-2", "E-3"]
    assert len({t.batch_id for t in recorded}) == 1
    assert recorded[0].batch_id is not None
    assert account_service.get_account(funded_account.id).balance == Decimal("600.00")


def test_record_payment_batch_all_or_nothing(ledger_service, account_service, sample_account):
    """Test a batch one cent over the balance records nothing."""
    ledger_service.record_deposit(sample_account.id, Decimal("1000.00"))

    with pytest.raises(InsufficientFundsError) as exc_info:
        ledger_service.record_payment_batch(
            sample_account.id,
            [_payment("300.00"), _payment("400.00"), _payment("300.01")],
        )

    assert exc_info.value.required == Decimal("1000.01")
    assert exc_info.value.shortfall == Decimal("0.01")
    assert account_service.get_account(sample_account.id).balance == Decimal("1000.00")
    assert ledger_service.list_transactions(sample_account.id, transaction_type="PAYMENT") == []


def test_record_payment_batch_empty(ledger_service, funded_account):
    """Test an empty batch is rejected."""
    with pytest.raises(ValidationError, match="at least one payment"):
        ledger_service.record_payment_batch(funded_account.id, [])


def test_record_payment_batch_invalid_item(ledger_service, account_service, funded_account):
    """Test an invalid item names its position and nothing is written."""
    with pytest.raises(ValidationError, match="Payment 2: Amount must be greater than 0"):
        ledger_service.record_payment_batch(funded_account.id, [_payment("10.00"), _payment("0")])
    assert account_service.get_account(funded_account.id).balance == Decimal("1000.00")


def test_balance_matches_transactions(ledger_service, sample_account):
    """Test the stored balance always equals deposits minus payments."""
    ledger_service.record_deposit(sample_account.id, Decimal("500.00"))
    ledger_service.record_payment(sample_account.id, Decimal("120.25"), payee_type="PERSON", payee_id="P-1")
    ledger_service.record_deposit(sample_account.id, Decimal("80.10"), source="TRANSFER")
    ledger_service.record_payment_batch(sample_account.id, [_payment("10.00"), _payment("0.05")])

    summary = ledger_service.get_balance_summary(sample_account.id)
    assert summary.recorded_balance == Decimal("449.80")
    assert summary.calculated_balance == Decimal("449.80")
    assert summary.total_deposits == Decimal("580.10")
    assert summary.total_payments == Decimal("130.30")
    assert summary.is_balanced


def test_balance_summary_detects_mismatch(ledger_service, temp_db, sample_account, caplog):
    """Test a tampered balance is reported."""
    ledger_service.record_deposit(sample_account.id, Decimal("100.00"))
    temp_db.update_account_balance(sample_account.id, Decimal("90.00"))

    summary = ledger_service.get_balance_summary(sample_account.id)
    assert not summary.is_balanced
    assert "does not match its transactions" in caplog.text


def test_list_transactions_order(ledger_service, sample_sibling):
    """Test transactions are listed most recent occurred_at first."""
    ledger_service.record_deposit(sample_sibling.id, "10", occurred_at=date(2023, 5, 1))
    ledger_service.record_deposit(sample_sibling.id, "20", occurred_at=date(2023, 1, 1))
    ledger_service.record_deposit(sample_sibling.id, "30", occurred_at=date(2023, 9, 1))

    transactions = ledger_service.list_transactions(sample_sibling.id)
    assert [t.occurred_at for t in transactions] == [date(2023, 9, 1), date(2023, 5, 1), date(2023, 1, 1)]


def test_list_transactions_same_day_newest_recorded_first(ledger_service, funded_account):
    """Test same-day entries are ordered by recording time."""
    first = ledger_service.record_payment(funded_account.id, "1", payee_type="PERSON", payee_id="P-1")
    second = ledger_service.record_payment(funded_account.id, "2", payee_type="PERSON", payee_id="P-2")

    payments = ledger_service.list_transactions(funded_account.id, transaction_type=TransactionType.PAYMENT)
    assert [t.id for t in payments] == [second.id, first.id]


def test_list_transactions_filters(ledger_service, sample_sibling):
    """Test date range, type and limit filters."""
    ledger_service.record_deposit(sample_sibling.id, "100", occurred_at=date(2023, 1, 10))
    ledger_service.record_payment(
        sample_sibling.id, "10", payee_type="PERSON", payee_id="P-1", occurred_at=date(2023, 2, 10)
    )
    ledger_service.record_payment(
        sample_sibling.id, "20", payee_type="PERSON", payee_id="P-2", occurred_at=date(2023, 3, 10)
    )

    in_range = ledger_service.list_transactions(
        sample_sibling.id, start_date=date(2023, 2, 1), end_date=date(2023, 3, 10)
    )
    assert len(in_range) == 2

    deposits = ledger_service.list_transactions(sample_sibling.id, transaction_type="deposit")
    assert [t.amount for t in deposits] == [Decimal("100.00")]

    limited = ledger_service.list_transactions(sample_sibling.id, limit=1)
    assert [t.occurred_at for t in limited] == [date(2023, 3, 10)]


def test_list_transactions_invalid_type(ledger_service, sample_account):
    """Test an unknown type filter is rejected."""
    with pytest.raises(ValidationError, match="Invalid transaction type"):
        ledger_service.list_transactions(sample_account.id, transaction_type="REFUND")


def test_list_transactions_missing_account(ledger_service):
    """Test listing a missing account's transactions."""
    with pytest.raises(NotFoundError):
        ledger_service.list_transactions(999)


def test_get_transaction(ledger_service, sample_account):
    """Test fetching a transaction by ID."""
    deposit = ledger_service.record_deposit(sample_account.id, "10")
    fetched = ledger_service.get_transaction(deposit.id)
    assert fetched.id == deposit.id
    assert fetched.amount == Decimal("10.00")
    assert fetched.account_id == sample_account.id

    with pytest.raises(NotFoundError, match="Transaction 999 not found"):
        ledger_service.get_transaction(999)


def test_get_account_stats(ledger_service, sample_sibling):
    """Test period statistics."""
    ledger_service.record_deposit(sample_sibling.id, "100", occurred_at=date(2023, 1, 10))
    ledger_service.record_deposit(sample_sibling.id, "50", occurred_at=date(2023, 6, 10))
    ledger_service.record_payment(
        sample_sibling.id, "30", payee_type="PERSON", payee_id="P-1", occurred_at=date(2023, 6, 11)
    )

    stats = ledger_service.get_account_stats(sample_sibling.id, start_date=date(2023, 6, 1))
    assert stats.deposits_total == Decimal("50.00")
    assert stats.deposits_count == 1
    assert stats.payments_total == Decimal("30.00")
    assert stats.payments_count == 1

    all_time = ledger_service.get_account_stats(sample_sibling.id)
    assert all_time.deposits_count == 2


def test_concurrency_conflict_is_retried(ledger_service, temp_db, account_service, funded_account, monkeypatch):
    """Test a transient conflict is retried and the payment recorded once."""
    original = temp_db.update_account_balance
    calls = []

    def flaky_update(account_id, balance):
        calls.append(balance)
        if len(calls) == 1:
            raise ConcurrencyConflictError("simulated")
        return original(account_id, balance)

    monkeypatch.setattr(temp_db, "update_account_balance", flaky_update)

    ledger_service.record_payment(funded_account.id, Decimal("100.00"), payee_type="PERSON", payee_id="P-1")

    assert len(calls) == 2
    assert account_service.get_account(funded_account.id).balance == Decimal("900.00")
    assert len(ledger_service.list_transactions(funded_account.id, transaction_type="PAYMENT")) == 1


def test_concurrency_conflict_exhausts_retries(ledger_service, temp_db, account_service, funded_account, monkeypatch):
    """Test a persistent conflict is surfaced and nothing is written."""

    def always_conflict(account_id, balance):
        raise ConcurrencyConflictError("simulated")

    monkeypatch.setattr(temp_db, "update_account_balance", always_conflict)

    with pytest.raises(ConcurrencyConflictError):
        ledger_service.record_payment(funded_account.id, Decimal("100.00"), payee_type="PERSON", payee_id="P-1")

    monkeypatch.undo()
    assert account_service.get_account(funded_account.id).balance == Decimal("1000.00")
    assert ledger_service.list_transactions(funded_account.id, transaction_type="PAYMENT") == []


def test_business_errors_are_not_retried(ledger_service, temp_db, sample_account, monkeypatch):
    """Test insufficient funds fails on the first attempt."""
    original = temp_db.get_account_for_update
    calls = []

    def counting_lock(account_id):
        calls.append(account_id)
        return original(account_id)

    monkeypatch.setattr(temp_db, "get_account_for_update", counting_lock)

    with pytest.raises(InsufficientFundsError):
        ledger_service.record_payment(sample_account.id, Decimal("5"), payee_type="PERSON", payee_id="P-1")
    assert len(calls) == 1


def _after_first_lock(monkeypatch, db, action):
    """Run ``action`` right after the first locked read of ``db``, before its writes."""
    original = db.get_account_for_update
    pending = [action]

    def lock_then_interleave(account_id):
        account = original(account_id)
        if pending:
            pending.pop()()
        return account

    monkeypatch.setattr(db, "get_account_for_update", lock_then_interleave)


def test_concurrent_payment_rechecks_funds(ledger_service, account_service, temp_db, other_db, funded_account, monkeypatch):
    """Test a payment committed by another connection is seen before spending the same funds."""
    other_ledger = LedgerService(other_db)
    _after_first_lock(
        monkeypatch,
        temp_db,
        lambda: other_ledger.record_payment(funded_account.id, Decimal("1000.00"), payee_type="PERSON", payee_id="P-2"),
    )

    with pytest.raises(InsufficientFundsError) as exc_info:
        ledger_service.record_payment(funded_account.id, Decimal("1000.00"), payee_type="PERSON", payee_id="P-1")

    monkeypatch.undo()
    assert exc_info.value.available == Decimal("0.00")
    assert exc_info.value.shortfall == Decimal("1000.00")
    assert account_service.get_account(funded_account.id).balance == Decimal("0.00")
    payments = ledger_service.list_transactions(funded_account.id, transaction_type="PAYMENT")
    assert [p.payee_id for p in payments] == ["P-2"]
    assert ledger_service.get_balance_summary(funded_account.id).is_balanced


def test_concurrent_deposit_is_not_lost(ledger_service, account_service, temp_db, other_db, funded_account, monkeypatch):
    """Test a payment retried after another connection's deposit keeps both amounts."""
    other_ledger = LedgerService(other_db)
    _after_first_lock(monkeypatch, temp_db, lambda: other_ledger.record_deposit(funded_account.id, Decimal("50.00")))

    ledger_service.record_payment(funded_account.id, Decimal("100.00"), payee_type="PERSON", payee_id="P-1")

    monkeypatch.undo()
    assert account_service.get_account(funded_account.id).balance == Decimal("950.00")
    assert len(ledger_service.list_transactions(funded_account.id)) == 3
    assert ledger_service.get_balance_summary(funded_account.id).is_balanced


def test_concurrent_batch_rechecks_funds(ledger_service, account_service, temp_db, other_db, funded_account, monkeypatch):
    """Test a batch is refused when another connection spends part of the balance first."""
    other_ledger = LedgerService(other_db)
    _after_first_lock(
        monkeypatch,
        temp_db,
        lambda: other_ledger.record_payment(funded_account.id, Decimal("500.00"), payee_type="PERSON", payee_id="P-9"),
    )

    with pytest.raises(InsufficientFundsError) as exc_info:
        ledger_service.record_payment_batch(funded_account.id, [_payment("300.00"), _payment("400.00", "E-2")])

    monkeypatch.undo()
    assert exc_info.value.shortfall == Decimal("200.00")
    assert account_service.get_account(funded_account.id).balance == Decimal("500.00")
    assert len(ledger_service.list_transactions(funded_account.id, transaction_type="PAYMENT")) == 1
    assert ledger_service.get_balance_summary(funded_account.id).is_balanced


def test_sibling_payment_has_no_low_balance_warning(ledger_service, account_service, sample_account, caplog):
    """Test siblings going negative during backfill do not log low balance warnings."""
    sibling = account_service.create_sibling(sample_account.id, name="Backfill", low_balance_threshold="100")
    caplog.set_level(logging.INFO, logger="expensekit")

    ledger_service.record_payment(
        sibling.id, Decimal("50.00"), payee_type="CONTRACTOR", payee_id="C-1", occurred_at=date(2023, 5, 1)
    )

    assert account_service.get_account(sibling.id).balance == Decimal("-50.00")
    assert [r for r in caplog.records if r.levelno == logging.WARNING] == []
