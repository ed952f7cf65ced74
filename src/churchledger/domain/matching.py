"""Match suggestion for pending bank transactions.

Everything here is read-only. A suggestion is computed per request from the
learned memo table, the member directory and the ledger.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from churchledger.database.base import Database
from churchledger.domain.entities import (
    BankTransaction,
    BankTransactionStatus,
    LedgerStatus,
    LedgerTransaction,
    Member,
)
from churchledger.domain.errors import NotFoundError, bank_transaction_not_found
from churchledger.domain.member import MemberService
from churchledger.utils.memo import clean_memo, name_tokens

DUPLICATE_WINDOW_DAYS = 5


class MatchSource(str, Enum):
    """Which step of the strategy chain produced a suggestion."""

    LEARNED = "LEARNED"
    FUZZY_NAME = "FUZZY_NAME"
    FUZZY_MEMO = "FUZZY_MEMO"
    AMBIGUOUS = "AMBIGUOUS"
    NONE = "NONE"


@dataclass(frozen=True)
class MemberSuggestion:
    """Outcome of member matching for one bank transaction."""

    source: MatchSource
    member: Optional[Member] = None
    candidates: tuple[Member, ...] = field(default_factory=tuple)

    @property
    def is_actionable(self) -> bool:
        return self.member is not None and self.source not in (
            MatchSource.AMBIGUOUS,
            MatchSource.NONE,
        )


NO_SUGGESTION = MemberSuggestion(source=MatchSource.NONE)


class MatchSuggestionService:
    """Service proposing members and possible duplicate ledger postings."""

    def __init__(self, db: Database):
        """Initialize match suggestion service.

        Args:
            db: Database instance
        """
        self.db = db
        self.member_service = MemberService(db)

    def find_member_by_name(self, text: Optional[str]) -> MemberSuggestion:
        """Fuzzy name-token match.

        Every token must be contained in the member's first, middle or last
        name. Exactly one member is a match; two or more are ambiguous.
        """
        tokens = name_tokens(text)
        if not tokens:
            return NO_SUGGESTION

        candidates = self.member_service.search_by_name_tokens(tokens)
        if len(candidates) == 1:
            return MemberSuggestion(source=MatchSource.FUZZY_NAME, member=candidates[0])
        if len(candidates) > 1:
            return MemberSuggestion(source=MatchSource.AMBIGUOUS, candidates=tuple(candidates))
        return NO_SUGGESTION

    def suggest_member(self, bank_txn: BankTransaction) -> MemberSuggestion:
        """Propose at most one member for a bank transaction.

        Strategy chain, first hit wins:
        1. learned exact match on the clean memo
        2. fuzzy match on the extracted payer name
        3. fuzzy match on the clean memo, only when no payer name was extracted
        """
        memo = clean_memo(bank_txn.description, bank_txn.type)

        if memo:
            learned = self.db.get_memo_match(memo)
            if learned is not None:
                member = self.member_service.get_member(learned.member_id)
                if member is not None:
                    return MemberSuggestion(source=MatchSource.LEARNED, member=member)

        if bank_txn.payer_name:
            return self.find_member_by_name(bank_txn.payer_name)

        if memo:
            by_memo = self.find_member_by_name(memo)
            if by_memo.source == MatchSource.FUZZY_NAME:
                return MemberSuggestion(source=MatchSource.FUZZY_MEMO, member=by_memo.member)
            return by_memo

        return NO_SUGGESTION

    def find_potential_duplicates(self, bank_txn: BankTransaction) -> list[LedgerTransaction]:
        """Find ledger transactions that may already record this bank payment.

        Same absolute amount, payment date within DUPLICATE_WINDOW_DAYS of the
        bank date, not failed, and not already linked to this bank transaction.
        """
        if bank_txn.amount is None or bank_txn.date is None:
            return []

        window = timedelta(days=DUPLICATE_WINDOW_DAYS)
        candidates = self.db.find_ledger_transactions_by_amount(
            abs(bank_txn.amount), bank_txn.date - window, bank_txn.date + window
        )
        return [
            txn
            for txn in candidates
            if txn.status != LedgerStatus.FAILED
            and txn.external_id != bank_txn.transaction_hash
        ]

    def suggest(self, bank_transaction_id: int) -> dict[str, Any]:
        """Build the suggestion payload for one bank transaction.

        Raises:
            NotFoundError: If the bank transaction doesn't exist
        """
        bank_txn = self.db.get_bank_transaction(bank_transaction_id)
        if bank_txn is None:
            raise NotFoundError(bank_transaction_not_found(bank_transaction_id))

        payload: dict[str, Any] = {
            "bank_transaction": bank_txn,
            "suggested_member": None,
            "match_source": MatchSource.NONE,
            "ambiguous_candidates": [],
            "potential_duplicate_ledger_transactions": [],
        }
        if bank_txn.status != BankTransactionStatus.PENDING:
            return payload

        suggestion = self.suggest_member(bank_txn)
        payload["match_source"] = suggestion.source
        if suggestion.is_actionable:
            payload["suggested_member"] = suggestion.member
        payload["ambiguous_candidates"] = list(suggestion.candidates)
        payload["potential_duplicate_ledger_transactions"] = self.find_potential_duplicates(
            bank_txn
        )
        return payload
