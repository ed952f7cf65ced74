"""SQLAlchemy models for churchledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Member(Base):
    """Church member model."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    bank_transactions = relationship("BankTransaction", back_populates="member")


class BankTransaction(Base):
    """Bank statement line model."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    transaction_hash = Column(String, unique=True, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    balance = Column(Numeric(10, 2), nullable=True)
    description = Column(Text, nullable=False)
    # Stored as plain strings; mappers translate to domain enums
    type = Column(String, nullable=False, default="UNKNOWN")
    status = Column(String, nullable=False, default="PENDING", index=True)
    payer_name = Column(String, nullable=True)
    external_ref_id = Column(String, nullable=True)
    check_number = Column(String, nullable=True)
    raw_data = Column(JSON, nullable=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    member = relationship("Member", back_populates="bank_transactions")


class IncomeCategory(Base):
    """Income category model with GL code."""

    __tablename__ = "income_categories"

    id = Column(Integer, primary_key=True)
    gl_code = Column(String(20), unique=True, nullable=False)
    name = Column(String, nullable=False)
    payment_type_mapping = Column(String(50), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Transaction(Base):
    """Ledger transaction (payment) model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    collected_by = Column(Integer, ForeignKey("members.id"), nullable=True)
    payment_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_type = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    status = Column(String, nullable=False, default="succeeded")
    receipt_number = Column(String(100), nullable=True)
    note = Column(Text, nullable=True)
    external_id = Column(String(191), unique=True, nullable=True)
    income_category_id = Column(Integer, ForeignKey("income_categories.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    member = relationship("Member", foreign_keys=[member_id])
    collector = relationship("Member", foreign_keys=[collected_by])
    income_category = relationship("IncomeCategory")
    ledger_entries = relationship(
        "LedgerEntry", back_populates="transaction", cascade="all, delete-orphan"
    )


class ZelleMemoMatch(Base):
    """Learned memo-to-member mapping model."""

    __tablename__ = "zelle_memo_matches"

    id = Column(Integer, primary_key=True)
    memo = Column(String, nullable=False)
    # Case-folded memo, one mapping per memo
    memo_key = Column(String, nullable=False, unique=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class LedgerEntry(Base):
    """Accounting mirror of a ledger transaction."""

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), unique=True, nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=True)
    collected_by = Column(Integer, ForeignKey("members.id"), nullable=True)
    entry_date = Column(Date, nullable=False)
    type = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=False)
    memo = Column(Text, nullable=True)
    payment_method = Column(String, nullable=True)
    source_system = Column(String, nullable=False, default="manual")
    external_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transaction = relationship("Transaction", back_populates="ledger_entries")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
