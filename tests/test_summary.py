"""Tests for the summary command."""

from datetime import date
from decimal import Decimal

from moneyquest.cli.main import cli
from moneyquest.domain.entities import TransactionType

USER = "me"


def _seed(transaction_service, wallet_id):
    transaction_service.create_transaction(
        USER, wallet_id, date(2024, 1, 5), TransactionType.INCOME, Decimal("3000"), category="Salary"
    )
    transaction_service.create_transaction(
        USER, wallet_id, date(2024, 1, 6), TransactionType.EXPENSE, Decimal("120.50"), category="Food"
    )
    transaction_service.create_transaction(
        USER, wallet_id, date(2024, 2, 6), TransactionType.EXPENSE, Decimal("99"), category="Travel"
    )


def test_summary_for_date_range(cli_runner, temp_db, transaction_service, sample_wallet):
    _seed(transaction_service, sample_wallet.id)

    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "summary",
            "--start-date",
            "2024-01-01",
            "--end-date",
            "2024-01-31",
        ],
    )

    assert result.exit_code == 0
    assert "Salary" in result.output
    assert "Food" in result.output
    assert "Travel" not in result.output
    totals = {
        label: value.strip()
        for label, _, value in (line.partition(":") for line in result.output.splitlines())
        if label in ("Income", "Expenses", "Net")
    }
    assert totals == {"Income": "3,000.00", "Expenses": "120.50", "Net": "2,879.50"}


def test_summary_defaults_to_this_month(cli_runner, temp_db, transaction_service, sample_wallet):
    _seed(transaction_service, sample_wallet.id)

    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "summary"])

    assert result.exit_code == 0
    assert "No transactions found." in result.output


def test_summary_conflicting_periods(cli_runner, temp_db, sample_wallet):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "summary", "--this-month", "--last-month"]
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_summary_unknown_wallet(cli_runner, temp_db):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "summary", "--wallet", "Nope"])

    assert result.exit_code == 1
    assert "not found" in result.output
