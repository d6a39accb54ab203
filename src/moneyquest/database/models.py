"""SQLAlchemy models for the moneyquest database."""

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


def _now() -> datetime:
    return datetime.now(UTC)


class Wallet(Base):
    """Wallet model."""

    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, default="BRL")
    initial_balance = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_wallet_user_name"),)

    transactions = relationship("Transaction", back_populates="wallet")
    bank_lines = relationship("BankLine", back_populates="wallet")


class Transaction(Base):
    """Ledger entry model. ``amount`` is stored positive."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String(16), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    currency = Column(String(3), nullable=False, default="BRL")
    subtype = Column(String, nullable=True, index=True)
    supplier = Column(String, nullable=True)
    xp_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (Index("ix_transactions_wallet_date", "wallet_id", "date"),)

    wallet = relationship("Wallet", back_populates="transactions")


class BankLine(Base):
    """Imported bank statement line. ``amount`` is signed."""

    __tablename__ = "bank_lines"

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    bank_reference = Column(String, nullable=True)
    counterparty = Column(String, nullable=True)
    fingerprint = Column(String(64), nullable=False)
    import_batch_id = Column(String(36), nullable=False, index=True)
    source_file_name = Column(String, nullable=True)
    status = Column(String(16), nullable=False, default="pending")
    imported_at = Column(DateTime, default=_now, nullable=False)

    # Re-importing the same statement must never create a second line
    __table_args__ = (
        UniqueConstraint("wallet_id", "fingerprint", name="uq_bank_line_wallet_fingerprint"),
    )

    wallet = relationship("Wallet", back_populates="bank_lines")


class Reconciliation(Base):
    """Reconciliation model.

    Both foreign keys are unique: a line has at most one active
    reconciliation and a transaction backs at most one line.
    """

    __tablename__ = "reconciliations"

    id = Column(Integer, primary_key=True)
    bank_line_id = Column(Integer, ForeignKey("bank_lines.id"), nullable=False, unique=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, unique=True)
    match_type = Column(String(16), nullable=False)
    confidence_score = Column(Integer, nullable=True)
    reconciled_at = Column(DateTime, default=_now, nullable=False)


class Loan(Base):
    """Loan model."""

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=True)
    lender = Column(String, nullable=False)
    loan_type = Column(String(32), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    installment_count = Column(Integer, nullable=False)
    installments_paid = Column(Integer, nullable=False, default=0)
    installment_amount = Column(Numeric(12, 2), nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    first_due_date = Column(Date, nullable=False)
    contract_date = Column(Date, nullable=False)
    outstanding_balance = Column(Numeric(12, 2), nullable=False)
    status = Column(String(16), nullable=False, default="active")
    currency = Column(String(3), nullable=False, default="BRL")
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class Profile(Base):
    """Gamification profile model."""

    __tablename__ = "profiles"

    user_id = Column(String, primary_key=True)
    display_name = Column(String, nullable=False)
    xp = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)
    last_active_date = Column(Date, nullable=True)
    total_income = Column(Numeric(14, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(14, 2), nullable=False, default=0)
    financial_mood = Column(String(16), nullable=False, default="neutral")
    created_at = Column(DateTime, default=_now, nullable=False)


class Quest(Base):
    """Quest model."""

    __tablename__ = "quests"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    quest_key = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    type = Column(String(16), nullable=False)
    progress_current = Column(Integer, nullable=False, default=0)
    progress_target = Column(Integer, nullable=False)
    xp_reward = Column(Integer, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_quests_user_active", "user_id", "is_active"),)


class Badge(Base):
    """Badge model."""

    __tablename__ = "badges"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    badge_key = Column(String, nullable=False)
    name = Column(String, nullable=False)
    requirement_type = Column(String(16), nullable=False)
    requirement_value = Column(Integer, nullable=False)
    is_unlocked = Column(Boolean, nullable=False, default=False)
    unlocked_at = Column(DateTime, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "badge_key", name="uq_badge_user_key"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
