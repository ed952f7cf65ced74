"""Tests for ReconciliationService."""

import logging
import pytest
from datetime import date
from decimal import Decimal

from churchledger.domain.entities import (
    BankTransactionStatus,
    BankTransactionType,
    LedgerStatus,
    PaymentMethod,
    PaymentType,
)
from churchledger.domain.errors import (
    AlreadyProcessedError,
    ConflictError,
    DuplicateExternalIdError,
    NotFoundError,
    ValidationError,
)
from churchledger.domain.matching import MatchSource
from churchledger.domain.reconciliation import (
    CreateAndLink,
    Ignore,
    LinkToExisting,
    ReconciliationOutcome,
    payment_method_for,
)


class TestCreateAndLink:
    """Tests for the create-and-link decision."""

    def test_one_shot_reconciliation(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test a pending row is matched once and a retry is rejected."""
        member = sample_members["almaz"]
        bank_txn = make_bank_transaction()

        result = reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=member.id, payment_type=PaymentType.DONATION)
        )

        assert result.outcome == ReconciliationOutcome.CREATED
        assert result.bank_transaction.status == BankTransactionStatus.MATCHED
        assert result.bank_transaction.member_id == member.id

        ledger_txn = result.ledger_transaction
        assert ledger_txn.external_id == bank_txn.transaction_hash
        assert ledger_txn.amount == Decimal("100.00")
        assert ledger_txn.payment_date == bank_txn.date
        assert ledger_txn.payment_type == PaymentType.DONATION
        assert ledger_txn.payment_method == PaymentMethod.ZELLE
        assert ledger_txn.status == LedgerStatus.SUCCEEDED
        assert ledger_txn.member_id == member.id
        assert ledger_txn.note == bank_txn.description

        with pytest.raises(AlreadyProcessedError) as exc_info:
            reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=member.id, payment_type="donation")
            )
        assert exc_info.value.bank_transaction_id == bank_txn.id
        assert exc_info.value.status == "MATCHED"
        assert len(temp_db.list_ledger_transactions()) == 1

    def test_check_uses_check_number_as_receipt(
        self, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test check deposits carry the check number as receipt."""
        bank_txn = make_bank_transaction(
            description="CHECK 1042",
            type=BankTransactionType.CHECK,
            payer_name=None,
            check_number="1042",
            amount=Decimal("-75.00"),
        )

        result = reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=sample_members["dawit"].id, payment_type="tithe")
        )

        assert result.ledger_transaction.payment_method == PaymentMethod.CHECK
        assert result.ledger_transaction.receipt_number == "1042"
        assert result.ledger_transaction.amount == Decimal("75.00")

    def test_check_without_number_gets_receipt(
        self, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test check rows without a number still satisfy the receipt rule."""
        bank_txn = make_bank_transaction(
            description="REMOTE ONLINE DEPOSIT", type=BankTransactionType.CHECK, payer_name=None
        )

        result = reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=sample_members["dawit"].id, payment_type="tithe")
        )

        assert result.ledger_transaction.receipt_number == bank_txn.transaction_hash[:12]

    def test_for_year_moves_payment_date(
        self, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test for_year books the payment in another year."""
        bank_txn = make_bank_transaction(txn_date=date(2025, 1, 3))

        result = reconciliation_service.reconcile(
            bank_txn.id,
            CreateAndLink(
                member_id=sample_members["almaz"].id,
                payment_type="membership_due",
                for_year=2024,
            ),
        )

        assert result.ledger_transaction.payment_date == date(2024, 1, 3)

    def test_unknown_member_leaves_row_pending(
        self, temp_db, reconciliation_service, make_bank_transaction
    ):
        """Test an unknown member fails without side effects."""
        bank_txn = make_bank_transaction()

        with pytest.raises(NotFoundError):
            reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=999, payment_type="donation")
            )

        assert temp_db.get_bank_transaction(bank_txn.id).status == BankTransactionStatus.PENDING
        assert temp_db.list_ledger_transactions() == []

    def test_invalid_payment_type(self, reconciliation_service, sample_members, make_bank_transaction):
        """Test an invalid payment type is a validation error."""
        bank_txn = make_bank_transaction()

        with pytest.raises(ValidationError):
            reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="raffle")
            )

    def test_duplicate_hash_rolls_back_status(
        self, temp_db, reconciliation_service, ledger_service, sample_members, make_bank_transaction
    ):
        """Test a failed ledger write leaves the bank row pending."""
        bank_txn = make_bank_transaction()
        existing = ledger_service.create_transaction(
            amount="100.00",
            payment_type="donation",
            payment_method="zelle",
            external_id=bank_txn.transaction_hash,
        )

        with pytest.raises(DuplicateExternalIdError) as exc_info:
            reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
            )

        assert exc_info.value.existing_id == existing
        refreshed = temp_db.get_bank_transaction(bank_txn.id)
        assert refreshed.status == BankTransactionStatus.PENDING
        assert refreshed.member_id is None
        assert len(temp_db.list_ledger_transactions()) == 1

    def test_concurrent_status_change_is_rejected(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction, monkeypatch
    ):
        """Test the compare-and-set rejects a row processed after it was read."""
        stale = make_bank_transaction()
        temp_db.set_bank_transaction_status(
            stale.id, BankTransactionStatus.PENDING, BankTransactionStatus.IGNORED
        )

        real_get = temp_db.get_bank_transaction
        calls = {"n": 0}

        def get_stale_first(bank_transaction_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return stale
            return real_get(bank_transaction_id)

        monkeypatch.setattr(temp_db, "get_bank_transaction", get_stale_first)

        with pytest.raises(AlreadyProcessedError) as exc_info:
            reconciliation_service.reconcile(
                stale.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
            )

        assert exc_info.value.status == "IGNORED"
        assert temp_db.list_ledger_transactions() == []


class TestLinkToExisting:
    """Tests for the link-to-existing decision."""

    def test_link_to_existing(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test linking stamps the hash and adopts the ledger member."""
        member = sample_members["selamawit"]
        ledger_id = temp_db.create_ledger_transaction(
            payment_date=date(2025, 6, 22),
            amount=Decimal("100.00"),
            payment_type=PaymentType.DONATION,
            payment_method=PaymentMethod.ZELLE,
            status=LedgerStatus.PENDING,
            member_id=member.id,
        )
        bank_txn = make_bank_transaction()

        result = reconciliation_service.reconcile(bank_txn.id, LinkToExisting(ledger_id))

        assert result.outcome == ReconciliationOutcome.LINKED
        assert result.ledger_transaction.id == ledger_id
        assert result.ledger_transaction.external_id == bank_txn.transaction_hash
        assert result.ledger_transaction.status == LedgerStatus.SUCCEEDED
        assert result.bank_transaction.status == BankTransactionStatus.MATCHED
        assert result.bank_transaction.member_id == member.id
        assert len(temp_db.list_ledger_transactions()) == 1

    def test_link_to_missing_ledger(self, temp_db, reconciliation_service, make_bank_transaction):
        """Test linking to an unknown ledger transaction."""
        bank_txn = make_bank_transaction()

        with pytest.raises(NotFoundError):
            reconciliation_service.reconcile(bank_txn.id, LinkToExisting(999))

        assert temp_db.get_bank_transaction(bank_txn.id).status == BankTransactionStatus.PENDING

    def test_link_to_ledger_linked_elsewhere(
        self, temp_db, reconciliation_service, ledger_service, make_bank_transaction
    ):
        """Test a ledger payment already tied to another bank row cannot be relinked."""
        ledger_id = ledger_service.create_transaction(
            amount="100.00", payment_type="donation", payment_method="zelle", external_id="other-hash"
        )
        bank_txn = make_bank_transaction()

        with pytest.raises(ConflictError):
            reconciliation_service.reconcile(bank_txn.id, LinkToExisting(ledger_id))

        assert temp_db.get_bank_transaction(bank_txn.id).status == BankTransactionStatus.PENDING
        assert temp_db.get_ledger_transaction(ledger_id).external_id == "other-hash"


class TestIgnore:
    """Tests for the ignore decision."""

    def test_ignore(self, temp_db, reconciliation_service, make_bank_transaction):
        """Test ignoring marks the row without ledger effects."""
        bank_txn = make_bank_transaction(description="ONLINE TRANSFER TO SAV 1234", payer_name=None)

        result = reconciliation_service.reconcile(bank_txn.id, Ignore())

        assert result.outcome == ReconciliationOutcome.IGNORED
        assert result.ledger_transaction is None
        assert result.bank_transaction.status == BankTransactionStatus.IGNORED
        assert temp_db.list_ledger_transactions() == []
        assert temp_db.list_memo_matches() == []

        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.reconcile(bank_txn.id, Ignore())

    def test_unknown_bank_transaction(self, reconciliation_service):
        """Test unknown bank transaction raises NotFoundError."""
        with pytest.raises(NotFoundError):
            reconciliation_service.reconcile(999, Ignore())


class TestAfterCommitEffects:
    """Tests for memo learning and ledger entry sync."""

    def test_memo_learned(self, temp_db, reconciliation_service, sample_members, make_bank_transaction):
        """Test the clean memo is learned for the member."""
        member = sample_members["almaz"]
        bank_txn = make_bank_transaction()

        reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=member.id, payment_type="donation")
        )

        learned = temp_db.get_memo_match("ALMAZ G TESFAY")
        assert learned.member_id == member.id
        assert learned.first_name == "Almaz"
        assert learned.last_name == "Tesfay"

    def test_first_learned_memo_wins(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test a later reconciliation does not overwrite a learned memo."""
        first = make_bank_transaction()
        second = make_bank_transaction(txn_date=date(2025, 7, 25))

        reconciliation_service.reconcile(
            first.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
        )
        reconciliation_service.reconcile(
            second.id, CreateAndLink(member_id=sample_members["dawit"].id, payment_type="donation")
        )

        matches = temp_db.list_memo_matches()
        assert len(matches) == 1
        assert matches[0].member_id == sample_members["almaz"].id

    def test_non_ascii_memo_learned_once(
        self, temp_db, reconciliation_service, matching_service, member_service,
        sample_members, make_bank_transaction
    ):
        """Test a memo with an accented capital is learned once and then used."""
        elise = member_service.create_member(first_name="Élise", last_name="Haile")
        description = "Zelle payment from ÉLISE HAILE 27250625099"
        first = make_bank_transaction(description=description, payer_name="ÉLISE HAILE")
        second = make_bank_transaction(
            description=description, payer_name="ÉLISE HAILE", txn_date=date(2025, 7, 25)
        )
        third = make_bank_transaction(
            description=description, payer_name="ÉLISE HAILE", txn_date=date(2025, 8, 25)
        )

        reconciliation_service.reconcile(
            first.id, CreateAndLink(member_id=elise, payment_type="donation")
        )
        reconciliation_service.reconcile(
            second.id, CreateAndLink(member_id=sample_members["dawit"].id, payment_type="donation")
        )

        assert [m.memo for m in temp_db.list_memo_matches()] == ["ÉLISE HAILE"]
        suggestion = matching_service.suggest_member(temp_db.get_bank_transaction(third.id))
        assert suggestion.source == MatchSource.LEARNED
        assert suggestion.member.id == elise

    def test_memo_learned_concurrently_keeps_first(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction,
        monkeypatch, caplog
    ):
        """Test losing the learn race keeps the existing mapping without a warning."""
        temp_db.create_memo_match(memo="ALMAZ G TESFAY", member_id=sample_members["dawit"].id)
        monkeypatch.setattr(temp_db, "get_memo_match", lambda memo: None)
        bank_txn = make_bank_transaction()

        with caplog.at_level(logging.WARNING, logger="churchledger"):
            result = reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
            )

        assert result.outcome == ReconciliationOutcome.CREATED
        assert "Could not learn memo" not in caplog.text
        matches = temp_db.list_memo_matches()
        assert [m.member_id for m in matches] == [sample_members["dawit"].id]

    def test_short_memo_not_learned(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test memos under three characters are not learned."""
        bank_txn = make_bank_transaction(description="Zelle payment from AB 123", payer_name="AB")

        reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
        )

        assert temp_db.list_memo_matches() == []

    def test_memo_learning_failure_is_advisory(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction, monkeypatch, caplog
    ):
        """Test a failed memo write keeps the posting."""
        def fail(**kwargs):
            raise RuntimeError("memo store unavailable")

        monkeypatch.setattr(temp_db, "create_memo_match", fail)
        bank_txn = make_bank_transaction()

        with caplog.at_level(logging.WARNING, logger="churchledger"):
            result = reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
            )

        assert result.outcome == ReconciliationOutcome.CREATED
        assert result.bank_transaction.status == BankTransactionStatus.MATCHED
        assert "Could not learn memo" in caplog.text

    def test_ledger_entry_synced(self, temp_db, reconciliation_service, sample_members, make_bank_transaction):
        """Test the accounting mirror carries the bank hash."""
        bank_txn = make_bank_transaction()

        result = reconciliation_service.reconcile(
            bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
        )

        entry = temp_db.get_ledger_entry_for_transaction(result.ledger_transaction.id)
        assert entry.category == "INC999"
        assert bank_txn.transaction_hash in entry.memo
        assert entry.member_id == sample_members["almaz"].id
        assert entry.source_system == "bank_reconciliation"

    def test_ledger_entry_failure_is_advisory(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction, monkeypatch, caplog
    ):
        """Test a failed ledger entry sync keeps the reconciliation."""
        def fail(**kwargs):
            raise RuntimeError("ledger entries unavailable")

        monkeypatch.setattr(temp_db, "upsert_ledger_entry", fail)
        bank_txn = make_bank_transaction()

        with caplog.at_level(logging.WARNING, logger="churchledger"):
            result = reconciliation_service.reconcile(
                bank_txn.id, CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation")
            )

        assert result.outcome == ReconciliationOutcome.CREATED
        assert result.ledger_transaction is not None
        assert temp_db.get_bank_transaction(bank_txn.id).status == BankTransactionStatus.MATCHED
        assert "Ledger entry sync failed" in caplog.text


class TestBatchReconcile:
    """Tests for batch reconciliation."""

    def test_batch_reports_per_item(
        self, temp_db, reconciliation_service, ledger_service, sample_members, make_bank_transaction
    ):
        """Test each bank transaction succeeds or fails on its own."""
        ok = make_bank_transaction()
        done = make_bank_transaction()
        clash = make_bank_transaction()
        reconciliation_service.reconcile(done.id, Ignore())
        ledger_service.create_transaction(
            amount="100.00", payment_type="donation", payment_method="zelle",
            external_id=clash.transaction_hash,
        )

        result = reconciliation_service.batch_reconcile(
            [ok.id, done.id, 999, clash.id],
            CreateAndLink(member_id=sample_members["almaz"].id, payment_type="donation"),
        )

        assert result["success"] == [ok.id]
        codes = {e["transaction_id"]: e["code"] for e in result["errors"]}
        assert codes == {done.id: "ALREADY_PROCESSED", 999: "NOT_FOUND", clash.id: "EXISTS"}

    def test_unexpected_error_fails_one_item(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test a malformed decision fails its own item and rolls it back."""
        bad = make_bank_transaction()
        good = make_bank_transaction()
        almaz = sample_members["almaz"].id

        def decide(bank_txn):
            year = "2024" if bank_txn.id == bad.id else None
            return CreateAndLink(member_id=almaz, payment_type="donation", for_year=year)

        result = reconciliation_service.batch_reconcile([bad.id, good.id], decide)

        assert result["success"] == [good.id]
        assert [(e["transaction_id"], e["code"]) for e in result["errors"]] == [(bad.id, "FAILED")]
        assert temp_db.get_bank_transaction(bad.id).status == BankTransactionStatus.PENDING
        assert temp_db.get_bank_transaction(good.id).status == BankTransactionStatus.MATCHED

    def test_batch_with_decision_factory(
        self, temp_db, reconciliation_service, sample_members, make_bank_transaction
    ):
        """Test a callable builds the decision per bank transaction."""
        credit = make_bank_transaction()
        debit = make_bank_transaction(amount=Decimal("-20.00"), type=BankTransactionType.DEBIT)

        def decide(bank_txn):
            if bank_txn.amount < 0:
                return Ignore()
            return CreateAndLink(member_id=sample_members["almaz"].id, payment_type="tithe")

        result = reconciliation_service.batch_reconcile([credit.id, debit.id], decide)

        assert result["success"] == [credit.id, debit.id]
        assert result["errors"] == []
        assert temp_db.get_bank_transaction(debit.id).status == BankTransactionStatus.IGNORED


@pytest.mark.parametrize(
    "bank_type,method",
    [
        (BankTransactionType.ZELLE, PaymentMethod.ZELLE),
        (BankTransactionType.CHECK, PaymentMethod.CHECK),
        (BankTransactionType.ACH, PaymentMethod.ACH),
        (BankTransactionType.DEBIT, PaymentMethod.DEBIT_CARD),
        (BankTransactionType.UNKNOWN, PaymentMethod.OTHER),
    ],
)
def test_payment_method_for(bank_type, method):
    """Test bank type to payment method mapping."""
    assert payment_method_for(bank_type) == method
