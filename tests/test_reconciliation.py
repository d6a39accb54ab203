"""Tests for bank reconciliation scoring and workflow."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from moneyquest.domain.entities import (
    BankLine,
    BankLineStatus,
    MatchType,
    Transaction,
    TransactionType,
)
from moneyquest.domain.errors import ReconciliationError, ReconciliationErrorKind
from moneyquest.domain.reconciliation import (
    MIN_CONFIDENCE,
    calculate_suggestions,
    date_points,
    score_candidate,
    text_similarity,
)

USER = "me"


def _line(amount="-150.00", day=15, description="SUPERMERCADO BOM PRECO", counterparty=None, wallet_id=1):
    return BankLine(
        id=1,
        wallet_id=wallet_id,
        transaction_date=date(2024, 1, day),
        description=description,
        amount=Decimal(amount),
        bank_reference=None,
        counterparty=counterparty,
        fingerprint="f",
        import_batch_id="batch",
        source_file_name=None,
        status=BankLineStatus.PENDING,
        imported_at=datetime(2024, 1, 20),
    )


def _txn(id=10, amount="150.00", day=15, description="Supermercado Bom Preco", category="",
         type=TransactionType.EXPENSE, subtype=None, wallet_id=1, supplier=None):
    return Transaction(
        id=id,
        user_id=USER,
        wallet_id=wallet_id,
        date=date(2024, 1, day),
        type=type,
        amount=Decimal(amount),
        category=category,
        description=description,
        currency="BRL",
        subtype=subtype,
        supplier=supplier,
        xp_earned=0,
        created_at=datetime(2024, 1, day),
    )


class TestScoring:
    def test_date_points_decrease_with_distance(self):
        points = [date_points(d) for d in range(0, 11)]
        assert points == [30, 25, 20, 15, 13, 11, 9, 7, 5, 3, 1]
        assert date_points(11) is None
        assert date_points(-2) == 20

    def test_text_similarity_ignores_case_and_spacing(self):
        assert text_similarity("Padaria  Central", "PADARIA CENTRAL") == 100
        assert text_similarity("", "PADARIA") == 0
        assert text_similarity("PADARIA", "XYZW") < 50

    def test_perfect_match(self):
        suggestion = score_candidate(_line(), _txn(category="Supermercado"))

        assert suggestion.confidence == 100
        assert suggestion.match_reasons == ("same amount", "same day", "similar description", "category match")

    def test_amount_and_date_only(self):
        suggestion = score_candidate(_line(), _txn(day=17, description="XYZW"))

        assert suggestion.confidence == 60
        assert suggestion.day_distance == 2
        assert suggestion.match_reasons == ("same amount", "within 3 days")

    def test_counterparty_is_compared_with_supplier(self):
        line = _line(description="PIX ENVIADO", counterparty="MARIA SILVA")
        suggestion = score_candidate(line, _txn(description="Aluguel", supplier="Maria Silva"))

        assert "similar description" in suggestion.match_reasons

    def test_amount_mismatch_or_far_dates_are_rejected(self):
        assert score_candidate(_line(), _txn(amount="150.02")) is None
        assert score_candidate(_line(), _txn(amount="150.009")) is not None
        assert score_candidate(_line(), _txn(day=26)) is None

    def test_weakest_candidate_in_window_is_still_suggested(self):
        weakest = _txn(day=25, description="XYZW")

        assert score_candidate(_line(), weakest).confidence == MIN_CONFIDENCE + 1
        assert [s.transaction_id for s in calculate_suggestions(_line(), [weakest])] == [weakest.id]


class TestCalculateSuggestions:
    def test_filters_ineligible_entries(self):
        candidates = [
            _txn(id=1),
            _txn(id=2, type=TransactionType.INCOME),
            _txn(id=3, subtype="transfer_out"),
            _txn(id=4, wallet_id=2),
            _txn(id=5),
        ]

        suggestions = calculate_suggestions(_line(), candidates, reconciled_ids={5})

        assert [s.transaction_id for s in suggestions] == [1]

    def test_orders_by_confidence_then_distance_then_id(self):
        candidates = [
            _txn(id=7, day=16, description="XYZW"),
            _txn(id=3, day=14, description="XYZW"),
            _txn(id=9, day=15),
            _txn(id=8, day=18, description="XYZW"),
        ]

        suggestions = calculate_suggestions(_line(), candidates)

        assert [s.transaction_id for s in suggestions] == [9, 3, 7, 8]

    def test_limits_results(self):
        candidates = [_txn(id=i) for i in range(1, 9)]
        assert len(calculate_suggestions(_line(), candidates)) == 5
        assert len(calculate_suggestions(_line(), candidates, limit=2)) == 2


@pytest.fixture
def imported_lines(csv_import_service, sample_wallet, fixtures_dir):
    """Import the January statement and return its lines keyed by description."""
    csv_import_service.import_csv(USER, sample_wallet.id, str(fixtures_dir / "extrato_janeiro.csv"))
    lines = csv_import_service.db.list_bank_lines(sample_wallet.id)
    return {line.description: line for line in lines}


@pytest.fixture
def grocery_txn(transaction_service, sample_wallet):
    return transaction_service.create_transaction(
        USER,
        sample_wallet.id,
        date(2024, 1, 15),
        TransactionType.EXPENSE,
        Decimal("150.00"),
        category="Groceries",
        description="Supermercado Bom Preco",
    )


class TestReconciliationService:
    def test_suggest_and_accept(self, reconciliation_service, imported_lines, grocery_txn, temp_db):
        line = imported_lines["SUPERMERCADO BOM PRECO"]

        suggestions = reconciliation_service.suggest_matches(USER, line.id)
        assert [s.transaction_id for s in suggestions] == [grocery_txn]

        reconciliation_service.accept_suggestion(USER, line.id, suggestions[0])

        assert temp_db.get_bank_line(line.id).status == BankLineStatus.RECONCILED
        rec = temp_db.get_reconciliation_for_line(line.id)
        assert rec.transaction_id == grocery_txn
        assert rec.match_type == MatchType.AUTO
        assert rec.confidence_score == suggestions[0].confidence

    def test_manual_match_has_no_confidence(self, reconciliation_service, imported_lines, grocery_txn, temp_db):
        line = imported_lines["SUPERMERCADO BOM PRECO"]

        reconciliation_service.reconcile(USER, line.id, grocery_txn)

        rec = temp_db.get_reconciliation_for_line(line.id)
        assert rec.match_type == MatchType.MANUAL
        assert rec.confidence_score is None

    def test_transaction_backs_only_one_line(
        self, reconciliation_service, csv_import_service, sample_wallet, imported_lines, grocery_txn
    ):
        first = imported_lines["SUPERMERCADO BOM PRECO"]
        session = csv_import_service.load_text(
            USER, sample_wallet.id, "Data;Descrição;Valor\n16/01/2024;Supermercado Bom Preco;-150,00\n"
        )
        csv_import_service.commit(USER, csv_import_service.preview(session))
        second = [
            l
            for l in reconciliation_service.list_lines(USER, sample_wallet.id, BankLineStatus.PENDING)
            if l.transaction_date == date(2024, 1, 16) and l.amount < 0
        ][0]

        reconciliation_service.reconcile(USER, first.id, grocery_txn)

        assert reconciliation_service.suggest_matches(USER, second.id) == []
        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.reconcile(USER, second.id, grocery_txn)
        assert excinfo.value.kind == ReconciliationErrorKind.ALREADY_RECONCILED

    def test_reconcile_errors(self, reconciliation_service, imported_lines, grocery_txn):
        line = imported_lines["SALARIO EMPRESA X"]

        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.reconcile(USER, line.id, 9999)
        assert excinfo.value.kind == ReconciliationErrorKind.TRANSACTION_NOT_FOUND

        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.reconcile(USER, line.id, grocery_txn)
        assert excinfo.value.kind == ReconciliationErrorKind.INELIGIBLE_TRANSACTION

        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.reconcile(USER, 9999, grocery_txn)
        assert excinfo.value.kind == ReconciliationErrorKind.BANK_LINE_NOT_FOUND

        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.reconcile("someone-else", line.id, grocery_txn)
        assert excinfo.value.kind == ReconciliationErrorKind.BANK_LINE_NOT_FOUND

    def test_create_transaction_from_line(self, reconciliation_service, imported_lines, temp_db):
        line = imported_lines["SALARIO EMPRESA X"]

        transaction_id, activity = reconciliation_service.create_transaction_from_line(
            USER, line.id, category="Salary"
        )

        txn = temp_db.get_transaction(transaction_id)
        assert txn.type == TransactionType.INCOME
        assert txn.amount == Decimal("3500.00")
        assert txn.date == date(2024, 1, 16)
        assert txn.description == "SALARIO EMPRESA X"
        assert activity.xp_earned == 100
        assert temp_db.get_bank_line(line.id).status == BankLineStatus.CREATED
        assert temp_db.get_reconciliation_for_line(line.id).match_type == MatchType.CREATED

    def test_only_pending_lines_move_forward(self, reconciliation_service, imported_lines):
        line = imported_lines["PIX RECEBIDO JOAO"]
        reconciliation_service.ignore_line(USER, line.id)

        for action in (
            lambda: reconciliation_service.ignore_line(USER, line.id),
            lambda: reconciliation_service.create_transaction_from_line(USER, line.id),
            lambda: reconciliation_service.suggest_matches(USER, line.id),
        ):
            with pytest.raises(ReconciliationError) as excinfo:
                action()
            assert excinfo.value.kind == ReconciliationErrorKind.INVALID_TRANSITION

    def test_undo_keeps_transaction(self, reconciliation_service, imported_lines, temp_db):
        line = imported_lines["SALARIO EMPRESA X"]
        transaction_id, _ = reconciliation_service.create_transaction_from_line(USER, line.id)

        reconciliation_service.undo(USER, line.id)

        assert temp_db.get_bank_line(line.id).status == BankLineStatus.PENDING
        assert temp_db.get_reconciliation_for_line(line.id) is None
        assert temp_db.get_transaction(transaction_id) is not None
        with pytest.raises(ReconciliationError) as excinfo:
            reconciliation_service.undo(USER, line.id)
        assert excinfo.value.kind == ReconciliationErrorKind.INVALID_TRANSITION

    def test_search_transactions(self, reconciliation_service, transaction_service, sample_wallet, imported_lines, grocery_txn):
        transaction_service.create_transaction(
            USER, sample_wallet.id, date(2024, 1, 2), TransactionType.EXPENSE, Decimal("30"), description="Bakery"
        )
        line = imported_lines["SUPERMERCADO BOM PRECO"]

        assert len(reconciliation_service.search_transactions(USER, line.id)) == 2
        found = reconciliation_service.search_transactions(USER, line.id, "groceries")
        assert [t.id for t in found] == [grocery_txn]

    def test_stats_and_delete_batch(self, reconciliation_service, imported_lines, grocery_txn, sample_wallet, transaction_service):
        line = imported_lines["SUPERMERCADO BOM PRECO"]
        reconciliation_service.reconcile(USER, line.id, grocery_txn)

        stats = reconciliation_service.get_stats(USER, sample_wallet.id)
        assert (stats.total, stats.pending, stats.reconciled) == (3, 2, 1)
        assert stats.total_credits == Decimal("3700.50")
        assert stats.total_debits == Decimal("150.00")
        assert stats.percent_reconciled == 33

        deleted = reconciliation_service.delete_batch(USER, sample_wallet.id, line.import_batch_id)

        assert deleted == 3
        assert reconciliation_service.list_lines(USER, sample_wallet.id) == []
        assert transaction_service.get_transaction(grocery_txn) is not None
        assert not transaction_service.is_reconciled(grocery_txn)


class TestReconcileCommands:
    def _invoke(self, cli_runner, temp_db, *args):
        from moneyquest.cli.main import cli

        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "reconcile", *args])

    def test_lines_and_stats(self, cli_runner, temp_db, imported_lines):
        lines = self._invoke(cli_runner, temp_db, "lines", "--wallet", "Checking", "--status", "pending")
        assert lines.exit_code == 0
        assert "SUPERMERCADO BOM PRECO" in lines.output

        stats = self._invoke(cli_runner, temp_db, "stats", "--wallet", "Checking")
        assert stats.exit_code == 0
        assert "Bank lines: 3" in stats.output
        assert "Reconciled: 0%" in stats.output

    def test_suggest_and_accept(self, cli_runner, temp_db, imported_lines, grocery_txn):
        line = imported_lines["SUPERMERCADO BOM PRECO"]

        suggested = self._invoke(cli_runner, temp_db, "suggest", str(line.id))
        assert suggested.exit_code == 0
        assert f"#{grocery_txn}" in suggested.output
        assert "same amount, same day" in suggested.output

        accepted = self._invoke(cli_runner, temp_db, "accept", str(line.id))
        assert accepted.exit_code == 0
        assert f"Reconciled bank line {line.id} with transaction {grocery_txn}" in accepted.output

    def test_accept_without_suggestions(self, cli_runner, temp_db, imported_lines):
        line = imported_lines["PIX RECEBIDO JOAO"]

        result = self._invoke(cli_runner, temp_db, "accept", str(line.id))

        assert result.exit_code == 1
        assert "has no suggestion #1" in result.output

    def test_create_ignore_and_undo(self, cli_runner, temp_db, imported_lines):
        salary = imported_lines["SALARIO EMPRESA X"]
        pix = imported_lines["PIX RECEBIDO JOAO"]

        created = self._invoke(cli_runner, temp_db, "create", str(salary.id), "--category", "Salary")
        assert created.exit_code == 0
        assert f"from bank line {salary.id}" in created.output
        assert "+100 XP" in created.output

        ignored = self._invoke(cli_runner, temp_db, "ignore", str(pix.id))
        assert ignored.exit_code == 0

        again = self._invoke(cli_runner, temp_db, "ignore", str(pix.id))
        assert again.exit_code == 1
        assert "it is ignored" in again.output

        undone = self._invoke(cli_runner, temp_db, "undo", str(pix.id))
        assert undone.exit_code == 0
        assert "pending again" in undone.output

    def test_match_ineligible(self, cli_runner, temp_db, imported_lines, grocery_txn):
        salary = imported_lines["SALARIO EMPRESA X"]

        result = self._invoke(cli_runner, temp_db, "match", str(salary.id), str(grocery_txn))

        assert result.exit_code == 1
        assert "cannot be matched" in result.output

    def test_delete_batch(self, cli_runner, temp_db, imported_lines):
        batch_id = imported_lines["SALARIO EMPRESA X"].import_batch_id

        result = self._invoke(cli_runner, temp_db, "delete-batch", batch_id, "--wallet", "Checking", "--yes")

        assert result.exit_code == 0
        assert "Deleted 3 bank lines" in result.output
