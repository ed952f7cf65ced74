"""Domain model entities for churchledger.

These are pure data classes representing business concepts, independent of
database schema. Payment types, methods and statuses are closed enums here;
the persistence layer stores them as plain strings and the mappers do the
translation, so loosely typed columns never leak into domain logic.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class BankTransactionType(str, Enum):
    """Coarse tag for a bank statement line."""

    ZELLE = "ZELLE"
    CHECK = "CHECK"
    ACH = "ACH"
    DEBIT = "DEBIT"
    UNKNOWN = "UNKNOWN"


class BankTransactionStatus(str, Enum):
    """Reconciliation lifecycle of a bank statement line."""

    PENDING = "PENDING"
    MATCHED = "MATCHED"
    IGNORED = "IGNORED"


class PaymentType(str, Enum):
    """What a ledger payment was for."""

    MEMBERSHIP_DUE = "membership_due"
    TITHE = "tithe"
    OFFERING = "offering"
    DONATION = "donation"
    VOW = "vow"
    BUILDING_FUND = "building_fund"
    EVENT = "event"
    RELIGIOUS_ITEM_SALES = "religious_item_sales"
    TIGRAY_HUNGER_FUNDRAISER = "tigray_hunger_fundraiser"
    OTHER = "other"


class PaymentMethod(str, Enum):
    """How a ledger payment was made."""

    CASH = "cash"
    CHECK = "check"
    ZELLE = "zelle"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    ACH = "ach"
    OTHER = "other"


class LedgerStatus(str, Enum):
    """Settlement status of a ledger transaction."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class Member:
    """Church member domain entity."""

    id: int
    first_name: str
    last_name: str
    created_at: datetime
    middle_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class BankTransaction:
    """One imported bank statement line."""

    id: int
    transaction_hash: str
    date: date
    amount: Decimal
    description: str
    type: BankTransactionType
    status: BankTransactionStatus
    created_at: datetime
    balance: Optional[Decimal] = None
    payer_name: Optional[str] = None
    external_ref_id: Optional[str] = None
    check_number: Optional[str] = None
    raw_data: dict[str, Any] = field(default_factory=dict)
    member_id: Optional[int] = None


@dataclass(frozen=True)
class LedgerTransaction:
    """Confirmed payment event (donation, dues, tithe, ...)."""

    id: int
    payment_date: date
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    status: LedgerStatus
    created_at: datetime
    member_id: Optional[int] = None
    collected_by: Optional[int] = None
    receipt_number: Optional[str] = None
    note: Optional[str] = None
    external_id: Optional[str] = None
    income_category_id: Optional[int] = None


@dataclass(frozen=True)
class LearnedMemoMatch:
    """Operator-confirmed mapping from a clean memo to a member."""

    id: int
    memo: str
    member_id: int
    created_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class IncomeCategory:
    """Income category with its general ledger code."""

    id: int
    gl_code: str
    name: str
    payment_type_mapping: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class LedgerEntry:
    """Accounting mirror row for a ledger transaction."""

    id: int
    transaction_id: int
    entry_date: date
    amount: Decimal
    type: str
    category: str
    memo: str
    source_system: str
    payment_method: Optional[str] = None
    member_id: Optional[int] = None
    collected_by: Optional[int] = None
    external_id: Optional[str] = None
