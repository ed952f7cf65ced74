"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from churchledger.domain.entities import (
    Member,
    BankTransaction,
    BankTransactionStatus,
    BankTransactionType,
    LedgerTransaction,
    LedgerStatus,
    LearnedMemoMatch,
    IncomeCategory,
    LedgerEntry,
    PaymentMethod,
    PaymentType,
)


class Database(ABC):
    """Abstract database interface for churchledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Group writes into one unit of work.

        Writes made inside the block are committed together when the block
        exits normally and rolled back together when it raises.
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted writes so the connection is usable again."""
        pass

    # Member operations
    @abstractmethod
    def create_member(
        self,
        first_name: str,
        last_name: str,
        middle_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        """Create a member. Returns member ID."""
        pass

    @abstractmethod
    def get_member(self, member_id: int) -> Optional[Member]:
        """Get member by ID."""
        pass

    @abstractmethod
    def list_members(self) -> list[Member]:
        """List all members."""
        pass

    @abstractmethod
    def search_members_by_name_tokens(self, tokens: list[str]) -> list[Member]:
        """Find members whose first, middle or last name contains every token."""
        pass

    @abstractmethod
    def find_member_by_email(self, email: str) -> Optional[Member]:
        """Find member by email (case-insensitive)."""
        pass

    @abstractmethod
    def find_member_by_phone(self, phone: str) -> Optional[Member]:
        """Find member by phone number."""
        pass

    # Bank transaction operations
    @abstractmethod
    def create_bank_transaction(
        self,
        transaction_hash: str,
        date: date,
        amount: Decimal,
        description: str,
        type: BankTransactionType,
        balance: Optional[Decimal] = None,
        payer_name: Optional[str] = None,
        external_ref_id: Optional[str] = None,
        check_number: Optional[str] = None,
        raw_data: Optional[dict[str, Any]] = None,
    ) -> int:
        """Create a PENDING bank transaction. Returns bank transaction ID."""
        pass

    @abstractmethod
    def get_bank_transaction(self, bank_transaction_id: int) -> Optional[BankTransaction]:
        """Get bank transaction by ID."""
        pass

    @abstractmethod
    def get_bank_transaction_by_hash(self, transaction_hash: str) -> Optional[BankTransaction]:
        """Get bank transaction by content hash."""
        pass

    @abstractmethod
    def update_bank_transaction_balance(self, bank_transaction_id: int, balance: Decimal) -> None:
        """Set the balance of a bank transaction."""
        pass

    @abstractmethod
    def set_bank_transaction_status(
        self,
        bank_transaction_id: int,
        expected_status: BankTransactionStatus,
        new_status: BankTransactionStatus,
        member_id: Optional[int] = None,
    ) -> bool:
        """Compare-and-set the status of a bank transaction.

        Returns True when the row was in expected_status and has been updated,
        False when no row matched.
        """
        pass

    @abstractmethod
    def list_bank_transactions(
        self,
        status: Optional[BankTransactionStatus] = None,
        type: Optional[BankTransactionType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> list[BankTransaction]:
        """List bank transactions with optional filters, newest first."""
        pass

    @abstractmethod
    def get_current_balance(self) -> Optional[Decimal]:
        """Get the balance of the most recent bank transaction that has one."""
        pass

    # Ledger transaction operations
    @abstractmethod
    def create_ledger_transaction(
        self,
        payment_date: date,
        amount: Decimal,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        status: LedgerStatus = LedgerStatus.SUCCEEDED,
        member_id: Optional[int] = None,
        collected_by: Optional[int] = None,
        receipt_number: Optional[str] = None,
        note: Optional[str] = None,
        external_id: Optional[str] = None,
        income_category_id: Optional[int] = None,
    ) -> int:
        """Create a ledger transaction. Returns transaction ID.

        Raises:
            DuplicateExternalIdError: If external_id is already used
        """
        pass

    @abstractmethod
    def get_ledger_transaction(self, transaction_id: int) -> Optional[LedgerTransaction]:
        """Get ledger transaction by ID."""
        pass

    @abstractmethod
    def get_ledger_transaction_by_external_id(self, external_id: str) -> Optional[LedgerTransaction]:
        """Get ledger transaction by external ID."""
        pass

    @abstractmethod
    def find_ledger_transactions_by_amount(
        self, amount: Decimal, start_date: date, end_date: date
    ) -> list[LedgerTransaction]:
        """Find ledger transactions with this exact amount in an inclusive date range."""
        pass

    @abstractmethod
    def list_ledger_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        member_id: Optional[int] = None,
    ) -> list[LedgerTransaction]:
        """List ledger transactions with optional filters, newest first."""
        pass

    @abstractmethod
    def link_ledger_transaction(
        self, transaction_id: int, external_id: str, status: LedgerStatus
    ) -> None:
        """Set external ID and status of a ledger transaction.

        Raises:
            DuplicateExternalIdError: If external_id is used by another transaction
        """
        pass

    # Learned memo operations
    @abstractmethod
    def get_memo_match(self, memo: str) -> Optional[LearnedMemoMatch]:
        """Get learned match by memo (case-insensitive exact match)."""
        pass

    @abstractmethod
    def create_memo_match(
        self,
        memo: str,
        member_id: int,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> int:
        """Create a learned memo match. Returns match ID."""
        pass

    @abstractmethod
    def list_memo_matches(self, member_id: Optional[int] = None) -> list[LearnedMemoMatch]:
        """List learned memo matches, optionally for one member."""
        pass

    # Income category operations
    @abstractmethod
    def create_income_category(
        self, gl_code: str, name: str, payment_type_mapping: Optional[str] = None
    ) -> int:
        """Create an income category. Returns category ID."""
        pass

    @abstractmethod
    def get_income_category_by_gl_code(self, gl_code: str) -> Optional[IncomeCategory]:
        """Get income category by GL code."""
        pass

    @abstractmethod
    def find_income_category_by_payment_type(self, payment_type: str) -> Optional[IncomeCategory]:
        """Find the active income category mapped to a payment type."""
        pass

    @abstractmethod
    def list_income_categories(self) -> list[IncomeCategory]:
        """List income categories ordered by GL code."""
        pass

    # Ledger entry operations
    @abstractmethod
    def upsert_ledger_entry(
        self,
        transaction_id: int,
        entry_date: date,
        amount: Decimal,
        type: str,
        category: str,
        memo: str,
        source_system: str,
        payment_method: Optional[str] = None,
        member_id: Optional[int] = None,
        collected_by: Optional[int] = None,
        external_id: Optional[str] = None,
    ) -> int:
        """Create or update the ledger entry for a transaction. Returns entry ID."""
        pass

    @abstractmethod
    def get_ledger_entry_for_transaction(self, transaction_id: int) -> Optional[LedgerEntry]:
        """Get the ledger entry mirroring a ledger transaction."""
        pass
