"""Shared pytest fixtures for expensekit tests."""

import tempfile
import os
from decimal import Decimal
from pathlib import Path
import pytest

from expensekit.config import LedgerSettings
from expensekit.database.factories import create_sqlite_database
from expensekit.domain.account import AccountService
from expensekit.domain.ledger import LedgerService
from expensekit.domain.merge import MergeService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def other_db(temp_db):
    """A second connection to the temporary database, as another process would have."""
    db = create_sqlite_database(database_path=temp_db.database_path)
    yield db
    db.disconnect()


@pytest.fixture
def settings():
    """Default ledger settings."""
    return LedgerSettings()


@pytest.fixture
def account_service(temp_db, settings):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db, settings)


@pytest.fixture
def ledger_service(temp_db, settings):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db, settings)


@pytest.fixture
def merge_service(temp_db, settings):
    """Create a MergeService with a temporary database."""
    return MergeService(temp_db, settings)


@pytest.fixture
def sample_account(account_service):
    """Create a sample root account (EXP-001) for testing."""
    return account_service.create_account(name="Operations", low_balance_threshold=Decimal("100.00"))


@pytest.fixture
def funded_account(sample_account, ledger_service, account_service):
    """Root account holding $1,000.00."""
    ledger_service.record_deposit(sample_account.id, Decimal("1000.00"))
    return account_service.get_account(sample_account.id)


@pytest.fixture
def sample_sibling(account_service, sample_account):
    """Create a sibling (EXP-001-01) of the sample account."""
    return account_service.create_sibling(sample_account.id, name="Operations backfill")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
