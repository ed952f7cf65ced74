"""Reconciliation of bank transactions against the ledger.

A decision on a pending bank transaction is applied as one unit of work: the
ledger write and the bank status change commit together or not at all. The
status change is a compare-and-set from PENDING, so a second attempt on the
same bank transaction fails with AlreadyProcessedError instead of posting
twice. Learning the memo and syncing the ledger entry happen after the
commit and are best effort.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional, Union

from churchledger.database.base import Database
from churchledger.domain.entities import (
    BankTransaction,
    BankTransactionStatus,
    BankTransactionType,
    LedgerStatus,
    LedgerTransaction,
    PaymentMethod,
    PaymentType,
)
from churchledger.domain.errors import (
    AlreadyProcessedError,
    ConflictError,
    DomainError,
    DuplicateExternalIdError,
    NotFoundError,
    bank_transaction_not_found,
    ledger_transaction_not_found,
)
from churchledger.domain.income_category import IncomeCategoryService
from churchledger.domain.ledger import LedgerTransactionService, validate_ledger_transaction
from churchledger.domain.member import MemberService
from churchledger.utils.memo import clean_memo

logger = logging.getLogger(__name__)

MIN_LEARNED_MEMO_LENGTH = 3

PAYMENT_METHOD_BY_BANK_TYPE = {
    BankTransactionType.ZELLE: PaymentMethod.ZELLE,
    BankTransactionType.CHECK: PaymentMethod.CHECK,
    BankTransactionType.ACH: PaymentMethod.ACH,
    BankTransactionType.DEBIT: PaymentMethod.DEBIT_CARD,
}


@dataclass(frozen=True)
class CreateAndLink:
    """Record a new ledger payment for the bank transaction."""

    member_id: int
    payment_type: Union[PaymentType, str]
    collected_by: Optional[int] = None
    for_year: Optional[int] = None


@dataclass(frozen=True)
class LinkToExisting:
    """Attach the bank transaction to a ledger payment already on file."""

    ledger_transaction_id: int


@dataclass(frozen=True)
class Ignore:
    """Mark the bank transaction as not a payment."""


Decision = Union[CreateAndLink, LinkToExisting, Ignore]


class ReconciliationOutcome(str, Enum):
    CREATED = "CREATED"
    LINKED = "LINKED"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class ReconciliationResult:
    outcome: ReconciliationOutcome
    bank_transaction: BankTransaction
    ledger_transaction: Optional[LedgerTransaction] = None


def payment_method_for(bank_type: BankTransactionType) -> PaymentMethod:
    """Map a bank transaction type to the ledger payment method."""
    return PAYMENT_METHOD_BY_BANK_TYPE.get(bank_type, PaymentMethod.OTHER)


def _in_year(payment_date: date, year: Optional[int]) -> date:
    if year is None or year == payment_date.year:
        return payment_date
    try:
        return payment_date.replace(year=year)
    except ValueError:
        # Feb 29 into a non-leap year
        return payment_date.replace(year=year, day=28)


class ReconciliationService:
    """Service applying operator decisions to pending bank transactions."""

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db
        self.member_service = MemberService(db)
        self.ledger_service = LedgerTransactionService(db)
        self.category_service = IncomeCategoryService(db)

    def reconcile(self, bank_transaction_id: int, decision: Decision) -> ReconciliationResult:
        """Apply a decision to a pending bank transaction.

        Args:
            bank_transaction_id: Bank transaction ID
            decision: CreateAndLink, LinkToExisting or Ignore

        Returns:
            ReconciliationResult with the refreshed bank transaction and the
            created or linked ledger transaction

        Raises:
            NotFoundError: If the bank transaction, member or ledger transaction doesn't exist
            AlreadyProcessedError: If the bank transaction is no longer PENDING
            DuplicateExternalIdError: If the bank hash is already recorded in the ledger
            ConflictError: If the ledger transaction is linked to another bank transaction
            ValidationError: If the resulting ledger transaction is invalid
        """
        bank_txn = self.db.get_bank_transaction(bank_transaction_id)
        if bank_txn is None:
            raise NotFoundError(bank_transaction_not_found(bank_transaction_id))
        if bank_txn.status != BankTransactionStatus.PENDING:
            raise AlreadyProcessedError(bank_transaction_id, bank_txn.status.value)

        if isinstance(decision, CreateAndLink):
            outcome = ReconciliationOutcome.CREATED
            ledger_id, member_id = self._create_and_link(bank_txn, decision)
        elif isinstance(decision, LinkToExisting):
            outcome = ReconciliationOutcome.LINKED
            ledger_id, member_id = self._link_to_existing(bank_txn, decision)
        elif isinstance(decision, Ignore):
            outcome = ReconciliationOutcome.IGNORED
            ledger_id, member_id = None, None
            with self.db.atomic():
                self._mark(bank_txn, BankTransactionStatus.IGNORED)
        else:
            raise TypeError(f"Unknown reconciliation decision: {decision!r}")

        logger.info(
            "Bank transaction %s reconciled: %s (ledger transaction %s)",
            bank_transaction_id,
            outcome.value,
            ledger_id,
        )

        if member_id is not None:
            self._learn_memo(bank_txn, member_id)
        if ledger_id is not None:
            self.ledger_service.sync_ledger_entry(ledger_id, source_system="bank_reconciliation")

        return ReconciliationResult(
            outcome=outcome,
            bank_transaction=self.db.get_bank_transaction(bank_transaction_id),
            ledger_transaction=(
                self.db.get_ledger_transaction(ledger_id) if ledger_id is not None else None
            ),
        )

    def batch_reconcile(
        self,
        bank_transaction_ids: list[int],
        decision: Union[Decision, Callable[[BankTransaction], Decision]],
    ) -> dict[str, list[Any]]:
        """Reconcile several bank transactions, each independently.

        Args:
            bank_transaction_ids: Bank transaction IDs
            decision: Decision applied to every bank transaction, or a callable
                building the decision for each one

        Returns:
            Dict with "success" (reconciled IDs) and "errors" (one dict per
            failure with transaction_id, code and message)
        """
        success: list[int] = []
        errors: list[dict[str, Any]] = []

        for bank_transaction_id in bank_transaction_ids:
            try:
                bank_txn = self.db.get_bank_transaction(bank_transaction_id)
                if bank_txn is None:
                    raise NotFoundError(bank_transaction_not_found(bank_transaction_id))
                chosen = decision(bank_txn) if callable(decision) else decision
                self.reconcile(bank_transaction_id, chosen)
            except AlreadyProcessedError as e:
                errors.append(_batch_error(bank_transaction_id, "ALREADY_PROCESSED", e))
            except NotFoundError as e:
                errors.append(_batch_error(bank_transaction_id, "NOT_FOUND", e))
            except DuplicateExternalIdError as e:
                errors.append(_batch_error(bank_transaction_id, "EXISTS", e))
            except (DomainError, ValueError) as e:
                errors.append(_batch_error(bank_transaction_id, "FAILED", e))
            except Exception as e:
                logger.warning(
                    "Batch reconcile of bank transaction %s failed",
                    bank_transaction_id,
                    exc_info=True,
                )
                self.db.rollback()
                errors.append(_batch_error(bank_transaction_id, "FAILED", e))
            else:
                success.append(bank_transaction_id)

        logger.info("Batch reconcile: %d reconciled, %d failed", len(success), len(errors))
        return {"success": success, "errors": errors}

    def _create_and_link(
        self, bank_txn: BankTransaction, decision: CreateAndLink
    ) -> tuple[int, int]:
        self.member_service.require_member(decision.member_id)
        if decision.collected_by is not None:
            self.member_service.require_member(decision.collected_by)

        method = payment_method_for(bank_txn.type)
        receipt_number = None
        if method == PaymentMethod.CHECK:
            receipt_number = bank_txn.check_number or bank_txn.transaction_hash[:12]

        amount, payment_type, method = validate_ledger_transaction(
            abs(bank_txn.amount), decision.payment_type, method, receipt_number
        )
        category = self.category_service.find_by_payment_type(payment_type)

        with self.db.atomic():
            self._mark(bank_txn, BankTransactionStatus.MATCHED, decision.member_id)
            ledger_id = self.db.create_ledger_transaction(
                payment_date=_in_year(bank_txn.date, decision.for_year),
                amount=amount,
                payment_type=payment_type,
                payment_method=method,
                status=LedgerStatus.SUCCEEDED,
                member_id=decision.member_id,
                collected_by=decision.collected_by,
                receipt_number=receipt_number,
                note=bank_txn.description,
                external_id=bank_txn.transaction_hash,
                income_category_id=category.id if category else None,
            )
        return ledger_id, decision.member_id

    def _link_to_existing(
        self, bank_txn: BankTransaction, decision: LinkToExisting
    ) -> tuple[int, Optional[int]]:
        ledger_txn = self.db.get_ledger_transaction(decision.ledger_transaction_id)
        if ledger_txn is None:
            raise NotFoundError(ledger_transaction_not_found(decision.ledger_transaction_id))
        if ledger_txn.external_id and ledger_txn.external_id != bank_txn.transaction_hash:
            raise ConflictError(
                f"Ledger transaction {ledger_txn.id} is already linked to "
                f"'{ledger_txn.external_id}'"
            )

        with self.db.atomic():
            self._mark(bank_txn, BankTransactionStatus.MATCHED, ledger_txn.member_id)
            self.db.link_ledger_transaction(
                ledger_txn.id, bank_txn.transaction_hash, LedgerStatus.SUCCEEDED
            )
        return ledger_txn.id, ledger_txn.member_id

    def _mark(
        self,
        bank_txn: BankTransaction,
        status: BankTransactionStatus,
        member_id: Optional[int] = None,
    ) -> None:
        """Move a bank transaction out of PENDING, or raise if it already left."""
        changed = self.db.set_bank_transaction_status(
            bank_txn.id, BankTransactionStatus.PENDING, status, member_id
        )
        if not changed:
            current = self.db.get_bank_transaction(bank_txn.id)
            raise AlreadyProcessedError(
                bank_txn.id, current.status.value if current is not None else None
            )

    def _learn_memo(self, bank_txn: BankTransaction, member_id: int) -> None:
        """Remember which member a clean memo belongs to. First write wins."""
        try:
            memo = clean_memo(bank_txn.description, bank_txn.type)
            if len(memo) < MIN_LEARNED_MEMO_LENGTH:
                return
            if self.db.get_memo_match(memo) is not None:
                return
            member = self.member_service.get_member(member_id)
            self.db.create_memo_match(
                memo=memo,
                member_id=member_id,
                first_name=member.first_name if member else None,
                last_name=member.last_name if member else None,
            )
            logger.debug("Learned memo %r for member %s", memo, member_id)
        except ConflictError:
            logger.debug("Memo for bank transaction %s was learned concurrently", bank_txn.id)
        except Exception:
            logger.warning(
                "Could not learn memo for bank transaction %s", bank_txn.id, exc_info=True
            )


def _batch_error(bank_transaction_id: int, code: str, error: Exception) -> dict[str, Any]:
    return {"transaction_id": bank_transaction_id, "code": code, "message": str(error)}
