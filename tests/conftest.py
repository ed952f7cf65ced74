"""Shared pytest fixtures for churchledger tests."""

import logging
import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from churchledger.database.factories import create_sqlite_database
from churchledger.domain.entities import BankTransactionType
from churchledger.domain.income_category import IncomeCategoryService
from churchledger.domain.ledger import LedgerTransactionService
from churchledger.domain.matching import MatchSuggestionService
from churchledger.domain.member import MemberService
from churchledger.domain.reconciliation import ReconciliationService
from churchledger.domain.statement_import import StatementImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture(autouse=True)
def reset_cli_logging():
    """Drop handlers the CLI installs so they never outlive a CliRunner stream."""
    yield
    logger = logging.getLogger("churchledger")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def member_service(temp_db):
    """Create a MemberService with a temporary database."""
    return MemberService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create an IncomeCategoryService with a temporary database."""
    return IncomeCategoryService(temp_db)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerTransactionService with a temporary database."""
    return LedgerTransactionService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db)


@pytest.fixture
def matching_service(temp_db):
    """Create a MatchSuggestionService with a temporary database."""
    return MatchSuggestionService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def sample_members(member_service):
    """Create members sharing a last name plus one unrelated member."""
    return {
        "almaz": member_service.get_member(
            member_service.create_member(first_name="Almaz", last_name="Tesfay")
        ),
        "dawit": member_service.get_member(
            member_service.create_member(first_name="Dawit", last_name="Tesfay")
        ),
        "selamawit": member_service.get_member(
            member_service.create_member(
                first_name="Selamawit", last_name="Berhe", email="selam@example.org"
            )
        ),
    }


@pytest.fixture
def make_bank_transaction(temp_db):
    """Factory inserting a bank transaction and returning the domain entity."""
    counter = {"n": 0}

    def _make(
        description="Zelle payment from ALMAZ G TESFAY 27250625041",
        amount=Decimal("100.00"),
        txn_date=date(2025, 6, 25),
        type=BankTransactionType.ZELLE,
        payer_name="ALMAZ G TESFAY",
        check_number=None,
        balance=None,
    ):
        counter["n"] += 1
        txn_id = temp_db.create_bank_transaction(
            transaction_hash=f"hash{counter['n']:04d}",
            date=txn_date,
            amount=amount,
            description=description,
            type=type,
            balance=balance,
            payer_name=payer_name,
            check_number=check_number,
        )
        return temp_db.get_bank_transaction(txn_id)

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
