"""Mapper functions to convert between domain models and SQLAlchemy models.

Enum-valued columns are stored as plain strings. Translation to the closed
domain enums happens here, with a lenient fallback for values written by
older schemas.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, TypeVar

from churchledger.domain import entities as domain
from churchledger.database.models import (
    Member as ORMMember,
    BankTransaction as ORMBankTransaction,
    Transaction as ORMTransaction,
    ZelleMemoMatch as ORMZelleMemoMatch,
    IncomeCategory as ORMIncomeCategory,
    LedgerEntry as ORMLedgerEntry,
)

E = TypeVar("E", bound=Enum)


def _to_enum(enum_cls: type[E], value: Optional[str], default: E) -> E:
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        try:
            return enum_cls(value.upper())
        except ValueError:
            try:
                return enum_cls(value.lower())
            except ValueError:
                return default


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))


def member_to_domain(orm_member: ORMMember) -> domain.Member:
    """Convert SQLAlchemy Member model to domain Member entity."""
    return domain.Member(
        id=orm_member.id,
        first_name=orm_member.first_name,
        middle_name=orm_member.middle_name,
        last_name=orm_member.last_name,
        email=orm_member.email,
        phone=orm_member.phone,
        created_at=orm_member.created_at,
    )


def bank_transaction_to_domain(orm_txn: ORMBankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain BankTransaction entity."""
    return domain.BankTransaction(
        id=orm_txn.id,
        transaction_hash=orm_txn.transaction_hash,
        date=orm_txn.date,
        amount=_to_decimal(orm_txn.amount),
        balance=_to_decimal(orm_txn.balance),
        description=orm_txn.description,
        type=_to_enum(domain.BankTransactionType, orm_txn.type, domain.BankTransactionType.UNKNOWN),
        status=_to_enum(
            domain.BankTransactionStatus, orm_txn.status, domain.BankTransactionStatus.PENDING
        ),
        payer_name=orm_txn.payer_name,
        external_ref_id=orm_txn.external_ref_id,
        check_number=orm_txn.check_number,
        raw_data=dict(orm_txn.raw_data or {}),
        member_id=orm_txn.member_id,
        created_at=orm_txn.created_at,
    )


def ledger_transaction_to_domain(orm_txn: ORMTransaction) -> domain.LedgerTransaction:
    """Convert SQLAlchemy Transaction model to domain LedgerTransaction entity."""
    return domain.LedgerTransaction(
        id=orm_txn.id,
        member_id=orm_txn.member_id,
        collected_by=orm_txn.collected_by,
        payment_date=orm_txn.payment_date,
        amount=_to_decimal(orm_txn.amount),
        payment_type=_to_enum(domain.PaymentType, orm_txn.payment_type, domain.PaymentType.OTHER),
        payment_method=_to_enum(
            domain.PaymentMethod, orm_txn.payment_method, domain.PaymentMethod.OTHER
        ),
        status=_to_enum(domain.LedgerStatus, orm_txn.status, domain.LedgerStatus.SUCCEEDED),
        receipt_number=orm_txn.receipt_number,
        note=orm_txn.note,
        external_id=orm_txn.external_id,
        income_category_id=orm_txn.income_category_id,
        created_at=orm_txn.created_at,
    )


def memo_match_to_domain(orm_match: ORMZelleMemoMatch) -> domain.LearnedMemoMatch:
    """Convert SQLAlchemy ZelleMemoMatch model to domain LearnedMemoMatch entity."""
    return domain.LearnedMemoMatch(
        id=orm_match.id,
        memo=orm_match.memo,
        member_id=orm_match.member_id,
        first_name=orm_match.first_name,
        last_name=orm_match.last_name,
        created_at=orm_match.created_at,
    )


def income_category_to_domain(orm_category: ORMIncomeCategory) -> domain.IncomeCategory:
    """Convert SQLAlchemy IncomeCategory model to domain IncomeCategory entity."""
    return domain.IncomeCategory(
        id=orm_category.id,
        gl_code=orm_category.gl_code,
        name=orm_category.name,
        payment_type_mapping=orm_category.payment_type_mapping,
        is_active=orm_category.is_active,
    )


def ledger_entry_to_domain(orm_entry: ORMLedgerEntry) -> domain.LedgerEntry:
    """Convert SQLAlchemy LedgerEntry model to domain LedgerEntry entity."""
    return domain.LedgerEntry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        entry_date=orm_entry.entry_date,
        amount=_to_decimal(orm_entry.amount),
        type=orm_entry.type,
        category=orm_entry.category,
        memo=orm_entry.memo,
        source_system=orm_entry.source_system,
        payment_method=orm_entry.payment_method,
        member_id=orm_entry.member_id,
        collected_by=orm_entry.collected_by,
        external_id=orm_entry.external_id,
    )
