"""Bank statement import domain service."""

import logging
from pathlib import Path
from typing import Any, Union

from churchledger.database.base import Database
from churchledger.domain.statement_parser import ParsedBankTransaction, parse_statement

logger = logging.getLogger(__name__)


class StatementImportService:
    """Service for importing bank statement exports."""

    def __init__(self, db: Database):
        """Initialize statement import service.

        Args:
            db: Database instance
        """
        self.db = db

    def import_statement(self, statement_path: str) -> dict[str, Any]:
        """Import bank transactions from a statement CSV file.

        Args:
            statement_path: Path to the bank CSV export

        Returns:
            Dict with import statistics:
            - imported: number of new bank transactions
            - updated: number of existing rows whose missing balance was filled
            - skipped: number of duplicate rows left untouched
            - skipped_details: row number, hash and description of each skipped row
            - errors: list of error messages

        Raises:
            ValidationError: If the statement header lacks required columns
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(statement_path)
        if not path.exists():
            raise FileNotFoundError(f"Statement file not found: {statement_path}")

        result = self.import_content(path.read_bytes())
        logger.info(
            "Imported %s: %d new, %d updated, %d skipped, %d errors",
            path.name,
            result["imported"],
            result["updated"],
            result["skipped"],
            len(result["errors"]),
        )
        return result

    def import_content(self, content: Union[str, bytes]) -> dict[str, Any]:
        """Import bank transactions from in-memory statement content.

        See import_statement for the result contract.
        """
        parsed = parse_statement(content)

        imported = 0
        updated = 0
        skipped = 0
        skipped_details: list[dict[str, Any]] = []
        errors = list(parsed.errors)

        for candidate in parsed.transactions:
            try:
                outcome = self._upsert(candidate)
            except Exception as e:
                logger.exception("Failed to store statement row %d", candidate.row_num)
                errors.append(f"Row {candidate.row_num}: {e}")
                continue

            if outcome == "imported":
                imported += 1
            elif outcome == "updated":
                updated += 1
            else:
                skipped += 1
                skipped_details.append(
                    {
                        "row_num": candidate.row_num,
                        "transaction_hash": candidate.transaction_hash,
                        "description": candidate.description,
                    }
                )

        return {
            "imported": imported,
            "updated": updated,
            "skipped": skipped,
            "skipped_details": skipped_details,
            "errors": errors,
        }

    def _upsert(self, candidate: ParsedBankTransaction) -> str:
        """Insert a candidate, or backfill the balance of its existing row.

        Only a missing balance is ever filled in; a stored balance is never
        overwritten and nothing else about an existing row changes.
        """
        existing = self.db.get_bank_transaction_by_hash(candidate.transaction_hash)
        if existing is None:
            self.db.create_bank_transaction(
                transaction_hash=candidate.transaction_hash,
                date=candidate.date,
                amount=candidate.amount,
                description=candidate.description,
                type=candidate.type,
                balance=candidate.balance,
                payer_name=candidate.payer_name,
                external_ref_id=candidate.external_ref_id,
                check_number=candidate.check_number,
                raw_data=candidate.raw_data,
            )
            return "imported"

        if existing.balance is None and candidate.balance is not None:
            self.db.update_bank_transaction_balance(existing.id, candidate.balance)
            logger.debug("Backfilled balance for bank transaction %s", existing.id)
            return "updated"

        return "skipped"
