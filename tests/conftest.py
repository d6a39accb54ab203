"""Shared pytest fixtures for moneyquest tests."""

import tempfile
import os
from decimal import Decimal
from pathlib import Path
import pytest

from moneyquest.database.factories import create_sqlite_database
from moneyquest.domain.csv_import import CSVImportService
from moneyquest.domain.loan import LoanService
from moneyquest.domain.progress import ProgressService
from moneyquest.domain.reconciliation import ReconciliationService
from moneyquest.domain.transaction import TransactionService
from moneyquest.domain.wallet import WalletService

USER = "me"


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


@pytest.fixture
def wallet_service(temp_db):
    """Create a WalletService with a temporary database."""
    return WalletService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def progress_service(temp_db):
    """Create a ProgressService with a temporary database."""
    return ProgressService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def loan_service(temp_db):
    """Create a LoanService with a temporary database."""
    return LoanService(temp_db)


@pytest.fixture
def csv_import_service(temp_db):
    """Create a CSVImportService with a temporary database."""
    return CSVImportService(temp_db)


@pytest.fixture
def sample_wallet(wallet_service):
    """Create a sample wallet for testing."""
    wallet_id = wallet_service.create_wallet(USER, "Checking", "BRL", Decimal("1000.00"))
    return wallet_service.get_wallet(wallet_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
