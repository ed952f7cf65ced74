"""Ledger transaction domain service."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

from churchledger.database.base import Database
from churchledger.domain.entities import (
    LedgerStatus,
    LedgerTransaction as LedgerTransactionEntity,
    PaymentMethod,
    PaymentType,
)
from churchledger.domain.errors import (
    DomainError,
    DuplicateExternalIdError,
    NotFoundError,
    ValidationError,
    ledger_transaction_not_found,
    member_not_found,
)
from churchledger.domain.income_category import IncomeCategoryService
from churchledger.utils.amount_parser import parse_amount, to_money
from churchledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

RECEIPT_REQUIRED_METHODS = (PaymentMethod.CASH, PaymentMethod.CHECK)
LEDGER_ENTRY_TYPE = "payment"


def validate_ledger_transaction(
    amount: Union[Decimal, str, int, float, None],
    payment_type: Union[PaymentType, str],
    payment_method: Union[PaymentMethod, str],
    receipt_number: Optional[str] = None,
) -> tuple[Decimal, PaymentType, PaymentMethod]:
    """Validate ledger transaction fields.

    Args:
        amount: Payment amount, must be positive
        payment_type: Payment type or its string value
        payment_method: Payment method or its string value
        receipt_number: Receipt number, required for cash and check

    Returns:
        Tuple of (amount, payment type, payment method) in canonical form

    Raises:
        ValidationError: If any field is invalid
    """
    try:
        value = amount if isinstance(amount, Decimal) else parse_amount(str(amount))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount '{amount}'")
    value = to_money(value)
    if value <= 0:
        raise ValidationError("Amount must be greater than zero")

    try:
        ptype = PaymentType(payment_type)
    except ValueError:
        raise ValidationError(f"Invalid payment type '{payment_type}'")

    try:
        method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError(f"Invalid payment method '{payment_method}'")

    if method in RECEIPT_REQUIRED_METHODS and not (receipt_number or "").strip():
        raise ValidationError(f"Receipt number is required for {method.value} payments")

    return value, ptype, method


def coerce_payment_date(value: Union[date, str, None]) -> Optional[date]:
    """Turn a payment date given as a date or a date string into a date.

    Raises:
        ValidationError: If the value is not a date or a parseable date string
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_date(value)
        except ValueError:
            raise ValidationError(f"Invalid payment date '{value}'")
    raise ValidationError(f"Invalid payment date '{value}'")


class LedgerTransactionService:
    """Service for recording payments in the ledger."""

    def __init__(self, db: Database):
        """Initialize ledger transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.category_service = IncomeCategoryService(db)

    def create_transaction(
        self,
        amount: Union[Decimal, str],
        payment_type: Union[PaymentType, str],
        payment_method: Union[PaymentMethod, str],
        payment_date: Union[date, str, None] = None,
        member_id: Optional[int] = None,
        collected_by: Optional[int] = None,
        receipt_number: Optional[str] = None,
        note: Optional[str] = None,
        external_id: Optional[str] = None,
        status: LedgerStatus = LedgerStatus.SUCCEEDED,
        source_system: str = "manual",
    ) -> int:
        """Create a ledger transaction.

        Args:
            amount: Positive payment amount
            payment_type: Payment type
            payment_method: Payment method
            payment_date: Payment date or date string (defaults to today)
            member_id: Paying member, if known
            collected_by: Member who collected the payment, if any
            receipt_number: Receipt number (required for cash and check)
            note: Optional note
            external_id: Unique external reference (e.g. a bank transaction hash)
            status: Ledger status
            source_system: Source recorded on the mirrored ledger entry

        Returns:
            Ledger transaction ID

        Raises:
            ValidationError: If fields are invalid
            NotFoundError: If member or collector doesn't exist
            DuplicateExternalIdError: If external_id is already recorded
        """
        value, ptype, method = validate_ledger_transaction(
            amount, payment_type, payment_method, receipt_number
        )
        payment_date = coerce_payment_date(payment_date)

        for person_id in (member_id, collected_by):
            if person_id is not None and self.db.get_member(person_id) is None:
                raise NotFoundError(member_not_found(person_id))

        category = self.category_service.find_by_payment_type(ptype)

        transaction_id = self.db.create_ledger_transaction(
            payment_date=payment_date or date.today(),
            amount=value,
            payment_type=ptype,
            payment_method=method,
            status=status,
            member_id=member_id,
            collected_by=collected_by,
            receipt_number=receipt_number.strip() if receipt_number else None,
            note=note,
            external_id=external_id,
            income_category_id=category.id if category else None,
        )

        self.sync_ledger_entry(transaction_id, source_system=source_system)
        return transaction_id

    def get_transaction(self, transaction_id: int) -> Optional[LedgerTransactionEntity]:
        """Get ledger transaction by ID."""
        return self.db.get_ledger_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        member_id: Optional[int] = None,
    ) -> list[LedgerTransactionEntity]:
        """List ledger transactions, newest first."""
        return self.db.list_ledger_transactions(
            start_date=start_date, end_date=end_date, member_id=member_id
        )

    def batch_create(
        self, items: list[dict[str, Any]], collected_by: Optional[int] = None
    ) -> list[dict[str, Any]]:
        """Record a batch of externally sourced payments.

        Each item is handled independently, so one bad item never blocks the
        others. An item whose external_id is already recorded reports code
        EXISTS together with the existing transaction id.

        Args:
            items: Dicts with external_id, amount, payment_date, note,
                member_id, payment_type, payment_method, receipt_number
            collected_by: Collector applied to every item

        Returns:
            One result dict per item, in input order
        """
        results: list[dict[str, Any]] = []
        for item in items:
            if not isinstance(item, dict):
                results.append(
                    {
                        "success": False,
                        "code": "FAILED",
                        "external_id": None,
                        "message": "Payment item must be an object",
                    }
                )
                continue
            external_id = item.get("external_id")
            try:
                transaction_id = self.create_transaction(
                    amount=item.get("amount"),
                    payment_type=item.get("payment_type") or PaymentType.DONATION,
                    payment_method=item.get("payment_method") or PaymentMethod.ZELLE,
                    payment_date=item.get("payment_date"),
                    member_id=item.get("member_id"),
                    collected_by=collected_by,
                    receipt_number=item.get("receipt_number"),
                    note=item.get("note"),
                    external_id=external_id,
                    source_system="batch",
                )
            except DuplicateExternalIdError as e:
                results.append(
                    {
                        "success": False,
                        "code": "EXISTS",
                        "id": e.existing_id,
                        "external_id": external_id,
                        "message": str(e),
                    }
                )
            except (DomainError, ValueError) as e:
                results.append(
                    {
                        "success": False,
                        "code": "FAILED",
                        "external_id": external_id,
                        "message": str(e),
                    }
                )
            except Exception as e:
                # Malformed field values can fail inside the database driver
                logger.warning("Batch item %r failed", external_id, exc_info=True)
                self.db.rollback()
                results.append(
                    {
                        "success": False,
                        "code": "FAILED",
                        "external_id": external_id,
                        "message": f"Could not record payment: {e}",
                    }
                )
            else:
                results.append({"success": True, "id": transaction_id, "external_id": external_id})

        logger.info(
            "Batch create: %d created, %d failed",
            sum(1 for r in results if r["success"]),
            sum(1 for r in results if not r["success"]),
        )
        return results

    def sync_ledger_entry(
        self, ledger_transaction_id: int, source_system: str = "manual"
    ) -> Optional[int]:
        """Mirror a ledger transaction into its accounting ledger entry.

        Advisory: a failure is logged and never propagates, since the ledger
        transaction itself is already committed.

        Returns:
            Ledger entry ID, or None if syncing failed
        """
        try:
            txn = self.db.get_ledger_transaction(ledger_transaction_id)
            if txn is None:
                raise NotFoundError(ledger_transaction_not_found(ledger_transaction_id))

            gl_code = self.category_service.gl_code_for(txn.payment_type)
            label = txn.payment_type.value.replace("_", " ")
            memo = f"{gl_code} - {label} {txn.external_id or txn.receipt_number or ''}".strip()

            return self.db.upsert_ledger_entry(
                transaction_id=txn.id,
                entry_date=txn.payment_date,
                amount=txn.amount,
                type=LEDGER_ENTRY_TYPE,
                category=gl_code,
                memo=memo,
                source_system=source_system,
                payment_method=txn.payment_method.value,
                member_id=txn.member_id,
                collected_by=txn.collected_by,
                external_id=txn.external_id,
            )
        except Exception:
            logger.warning(
                "Ledger entry sync failed for transaction %s", ledger_transaction_id, exc_info=True
            )
            return None
