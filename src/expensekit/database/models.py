"""SQLAlchemy models for the expensekit database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Largest accepted amount is 999,999,999.99
MONEY = Numeric(12, 2)


class Account(Base):
    """Expense account model (root or sibling)."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    account_number = Column(String, unique=True, nullable=False)
    account_sequence = Column(Integer, unique=True, nullable=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    balance = Column(MONEY, default=0, nullable=False)
    low_balance_threshold = Column(MONEY, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    parent_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    sibling_sequence = Column(Integer, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("parent_account_id", "sibling_sequence", name="uq_parent_sibling_sequence"),
    )

    # UPDATE/DELETE carry "WHERE version = <loaded>"; a stale row raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    parent = relationship("Account", remote_side=[id])


class Transaction(Base):
    """Deposit or payment model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    type = Column(String(16), nullable=False)
    amount = Column(MONEY, nullable=False)
    occurred_at = Column(Date, nullable=False)
    recorded_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    description = Column(String, nullable=True)
    source = Column(String(16), nullable=True)
    payee_type = Column(String(16), nullable=True)
    payee_id = Column(String, nullable=True)
    category = Column(String, nullable=True)
    batch_id = Column(String(32), nullable=True)

    __table_args__ = (Index("ix_transactions_account_occurred", "account_id", "occurred_at"),)

    # Relationships
    account = relationship("Account")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
