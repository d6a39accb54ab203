"""Tests for wallet service and commands."""

import pytest
from datetime import date
from decimal import Decimal

from moneyquest.cli.main import cli
from moneyquest.domain.entities import TransactionType
from moneyquest.domain.errors import ConflictError, NotFoundError, ValidationError
from moneyquest.utils.wallet_resolver import resolve_wallet

USER = "me"


def test_create_wallet_defaults(wallet_service):
    wallet_id = wallet_service.create_wallet(USER, "  Cash  ")
    wallet = wallet_service.get_wallet(wallet_id)

    assert wallet.name == "Cash"
    assert wallet.currency == "BRL"
    assert wallet.current_balance == Decimal("0")
    assert wallet.is_active


def test_create_wallet_rejects_duplicates_and_bad_input(wallet_service, sample_wallet):
    with pytest.raises(ConflictError):
        wallet_service.create_wallet(USER, "Checking")
    with pytest.raises(ValidationError):
        wallet_service.create_wallet(USER, "   ")
    with pytest.raises(ValidationError):
        wallet_service.create_wallet(USER, "Travel", currency="EURO")


def test_same_name_allowed_for_other_user(wallet_service, sample_wallet):
    wallet_id = wallet_service.create_wallet("someone-else", "Checking")
    assert wallet_id != sample_wallet.id


def test_current_balance_follows_ledger(wallet_service, transaction_service, sample_wallet):
    transaction_service.create_transaction(
        USER, sample_wallet.id, date(2024, 1, 15), TransactionType.INCOME, Decimal("500.00")
    )
    transaction_service.create_transaction(
        USER, sample_wallet.id, date(2024, 1, 16), TransactionType.EXPENSE, Decimal("120.50")
    )

    wallet = wallet_service.get_wallet(sample_wallet.id)
    assert wallet.current_balance == Decimal("1379.50")
    assert wallet_service.total_balance(USER) == Decimal("1379.50")


def test_archive_hides_wallet(wallet_service, sample_wallet):
    wallet_service.archive_wallet(USER, sample_wallet.id)

    assert wallet_service.list_wallets(USER) == []
    assert [w.id for w in wallet_service.list_wallets(USER, include_archived=True)] == [sample_wallet.id]


def test_require_wallet_checks_owner(wallet_service, sample_wallet):
    with pytest.raises(NotFoundError):
        wallet_service.require_wallet("someone-else", sample_wallet.id)


def test_resolve_wallet_by_name_or_id(wallet_service, sample_wallet):
    assert resolve_wallet(wallet_service, USER, "Checking") == sample_wallet.id
    assert resolve_wallet(wallet_service, USER, str(sample_wallet.id)) == sample_wallet.id
    with pytest.raises(NotFoundError):
        resolve_wallet(wallet_service, USER, "Savings")
    with pytest.raises(NotFoundError):
        resolve_wallet(wallet_service, "someone-else", sample_wallet.id)


def test_wallet_create_command(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "wallet", "create", "Savings", "--initial-balance", "250,00"]
    )

    assert result.exit_code == 0
    assert "Created wallet 'Savings'" in result.output


def test_wallet_create_duplicate_command(cli_runner, temp_db, sample_wallet):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "wallet", "create", "Checking"])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_wallet_list_command(cli_runner, temp_db, sample_wallet):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "wallet", "list"])

    assert result.exit_code == 0
    assert "Checking" in result.output
    assert "BRL 1,000.00" in result.output


def test_wallet_list_is_per_user(cli_runner, temp_db, sample_wallet):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "--user", "someone-else", "wallet", "list"]
    )

    assert result.exit_code == 0
    assert "No wallets found" in result.output


def test_wallet_archive_unknown_command(cli_runner, temp_db):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "wallet", "archive", "Nope"])

    assert result.exit_code == 1
    assert "Wallet 'Nope' not found" in result.output
