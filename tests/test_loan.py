"""Tests for loans, installments and payoff projections."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from moneyquest.cli.main import cli
from moneyquest.domain.entities import BudgetHealth, Loan, LoanStatus, LoanType, TransactionType
from moneyquest.domain.errors import ConflictError, DependencyError, LoanError, LoanErrorKind, ValidationError
from moneyquest.domain.loan import (
    budget_commitment,
    interest_summary,
    next_due_date,
    principal_portion,
    project_payoff_scenarios,
)

USER = "me"


def _loan(**overrides):
    fields = dict(
        id=1,
        user_id=USER,
        wallet_id=1,
        lender="Banco X",
        loan_type=LoanType.PERSONAL,
        total_amount=Decimal("1200.00"),
        installment_count=12,
        installments_paid=2,
        installment_amount=Decimal("110.00"),
        interest_rate=Decimal("1.5"),
        first_due_date=date(2024, 2, 10),
        contract_date=date(2024, 1, 10),
        outstanding_balance=Decimal("1000.00"),
        status=LoanStatus.ACTIVE,
        currency="BRL",
        notes=None,
        created_at=datetime(2024, 1, 10),
    )
    fields.update(overrides)
    return Loan(**fields)


class TestLoanMath:
    def test_principal_portion(self):
        assert principal_portion(_loan()) == Decimal("100.00")
        assert principal_portion(_loan(total_amount=Decimal("1000.00"), installment_count=3)) == Decimal("333.33")

    def test_next_due_date(self):
        assert next_due_date(_loan()) == date(2024, 4, 10)
        assert next_due_date(_loan(installments_paid=12, status=LoanStatus.PAID_OFF)) is None

    def test_next_due_date_clamps_month_end(self):
        loan = _loan(first_due_date=date(2024, 1, 31), installments_paid=1)
        assert next_due_date(loan) == date(2024, 2, 29)

    def test_projection(self):
        result = project_payoff_scenarios(_loan())

        assert result.remaining_installments == 10
        assert result.remaining_interest == Decimal("100.00")
        assert result.normal_payoff_date == date(2025, 1, 10)

        quarterly, aggressive = result.scenarios
        assert (quarterly.name, quarterly.installments, quarterly.months_saved) == ("quarterly", 8, 2)
        assert quarterly.estimated_savings == Decimal("15.00")
        assert quarterly.payoff_date == date(2024, 11, 10)
        assert (aggressive.name, aggressive.installments, aggressive.months_saved) == ("aggressive", 6, 4)
        assert aggressive.estimated_savings == Decimal("30.00")
        assert aggressive.payoff_date == date(2024, 9, 10)

    def test_projection_for_paid_off_loan(self):
        assert project_payoff_scenarios(_loan(installments_paid=12, status=LoanStatus.PAID_OFF)) is None

    def test_interest_summary(self):
        summary = interest_summary(_loan())

        assert summary["principal_paid"] == Decimal("200.00")
        assert summary["interest_paid"] == Decimal("20.00")
        assert summary["total_interest"] == Decimal("120.00")

    def test_interest_paid_needs_a_rate(self):
        assert interest_summary(_loan(interest_rate=None))["interest_paid"] == Decimal("0")

    @pytest.mark.parametrize(
        "income,installments,percentage,health",
        [
            ("5000", "1200", Decimal("24.00"), BudgetHealth.WARNING),
            ("5000", "1000", Decimal("20.00"), BudgetHealth.WARNING),
            ("5000", "900", Decimal("18.00"), BudgetHealth.HEALTHY),
            ("5000", "1500", Decimal("30.00"), BudgetHealth.CRITICAL),
            ("0", "100", Decimal("100"), BudgetHealth.CRITICAL),
            ("0", "0", Decimal("0"), BudgetHealth.HEALTHY),
        ],
    )
    def test_budget_commitment(self, income, installments, percentage, health):
        result = budget_commitment(Decimal(income), Decimal(installments))
        assert result.percentage == percentage
        assert result.health == health


@pytest.fixture
def loan_id(loan_service, sample_wallet):
    return loan_service.create_loan(
        USER,
        "Banco X",
        Decimal("1200"),
        12,
        Decimal("110"),
        date(2024, 2, 10),
        wallet_id=sample_wallet.id,
        interest_rate=Decimal("1.5"),
    )


class TestLoanService:
    def test_create_loan(self, loan_service, loan_id):
        loan = loan_service.get_loan(USER, loan_id)

        assert loan.outstanding_balance == Decimal("1200.00")
        assert loan.installments_paid == 0
        assert loan.status == LoanStatus.ACTIVE
        assert loan.currency == "BRL"
        assert loan.contract_date == date(2024, 2, 10)

    def test_create_loan_validation(self, loan_service):
        with pytest.raises(LoanError) as excinfo:
            loan_service.create_loan(USER, "Banco X", Decimal("100"), 0, Decimal("10"), date(2024, 1, 1))
        assert excinfo.value.kind == LoanErrorKind.INVALID_INSTALLMENT_COUNT

        with pytest.raises(ValidationError):
            loan_service.create_loan(USER, "Banco X", Decimal("-1"), 1, Decimal("10"), date(2024, 1, 1))
        with pytest.raises(ValidationError):
            loan_service.create_loan(USER, "  ", Decimal("100"), 1, Decimal("100"), date(2024, 1, 1))

    def test_installments_are_paid_in_order(self, loan_service, transaction_service, loan_id):
        transaction_id = loan_service.pay_installment(USER, loan_id, 1)

        loan = loan_service.get_loan(USER, loan_id)
        assert loan.installments_paid == 1
        assert loan.outstanding_balance == Decimal("1100.00")
        txn = transaction_service.get_transaction(transaction_id)
        assert txn.subtype == f"loan:{loan_id}:1"
        assert txn.amount == Decimal("110.00")
        assert txn.category == "Loans"
        assert txn.description == "Banco X installment 1/12"

        with pytest.raises(LoanError) as excinfo:
            loan_service.pay_installment(USER, loan_id, 3)
        assert excinfo.value.kind == LoanErrorKind.OUT_OF_ORDER_INSTALLMENT
        assert loan_service.get_loan(USER, loan_id).installments_paid == 1

    def test_installment_entry_is_protected(self, loan_service, transaction_service, loan_id):
        transaction_id = loan_service.pay_installment(USER, loan_id, 1)

        with pytest.raises(DependencyError):
            transaction_service.delete_transaction(USER, transaction_id)
        for changes in ({"amount": "50.00"}, {"type": TransactionType.INCOME}, {"subtype": None}):
            with pytest.raises(ConflictError):
                transaction_service.update_transaction(USER, transaction_id, **changes)

        transaction_service.update_transaction(USER, transaction_id, description="Parcela 1")
        (first, *_) = loan_service.list_installments(USER, loan_id)
        assert first.is_paid
        assert first.transaction_id == transaction_id
        txn = transaction_service.get_transaction(transaction_id)
        assert txn.amount == Decimal("110.00")
        assert txn.description == "Parcela 1"

    def test_installment_entry_admin_edit(self, loan_service, transaction_service, loan_id):
        transaction_id = loan_service.pay_installment(USER, loan_id, 1)

        transaction_service.update_transaction(USER, transaction_id, administrative=True, amount="111.00")

        assert transaction_service.get_transaction(transaction_id).amount == Decimal("111.00")

    def test_prepay_then_last_installment(self, loan_service, loan_id):
        loan_service.pay_installment(USER, loan_id, 1)

        transaction_ids = loan_service.prepay_installments(USER, loan_id, 10)

        assert len(transaction_ids) == 10
        loan = loan_service.get_loan(USER, loan_id)
        assert loan.installments_paid == 11
        assert loan.outstanding_balance == Decimal("100.00")

        loan_service.pay_installment(USER, loan_id, 12)

        loan = loan_service.get_loan(USER, loan_id)
        assert loan.outstanding_balance == Decimal("0.00")
        assert loan.status == LoanStatus.PAID_OFF
        with pytest.raises(LoanError) as excinfo:
            loan_service.pay_installment(USER, loan_id, 13)
        assert excinfo.value.kind == LoanErrorKind.LOAN_ALREADY_PAID_OFF

    def test_prepay_count_bounds(self, loan_service, loan_id):
        for count in (0, 13):
            with pytest.raises(LoanError) as excinfo:
                loan_service.prepay_installments(USER, loan_id, count)
            assert excinfo.value.kind == LoanErrorKind.INVALID_INSTALLMENT_COUNT

    def test_pay_off_loan(self, loan_service, transaction_service, loan_id):
        first = loan_service.pay_installment(USER, loan_id, 1)

        payoff_id = loan_service.pay_off_loan(USER, loan_id)

        assert transaction_service.get_transaction(payoff_id).amount == Decimal("1100.00")
        loan = loan_service.get_loan(USER, loan_id)
        assert loan.is_paid_off
        assert loan.installments_paid == 12

        schedule = loan_service.list_installments(USER, loan_id)
        assert len(schedule) == 12
        assert all(item.is_paid for item in schedule)
        assert schedule[0].transaction_id == first
        assert {item.transaction_id for item in schedule[1:]} == {payoff_id}
        assert schedule[11].due_date == date(2025, 1, 10)

    def test_payment_needs_a_wallet(self, loan_service, sample_wallet):
        loan_id = loan_service.create_loan(USER, "Tia Ana", Decimal("300"), 3, Decimal("100"), date(2024, 3, 1))

        with pytest.raises(ValidationError):
            loan_service.pay_installment(USER, loan_id, 1)

        loan_service.pay_installment(USER, loan_id, 1, wallet_id=sample_wallet.id)
        assert loan_service.get_loan(USER, loan_id).installments_paid == 1

    def test_payment_awards_xp(self, loan_service, progress_service, loan_id):
        loan_service.pay_installment(USER, loan_id, 1)
        assert progress_service.get_profile(USER).total_expenses == Decimal("110.00")

    def test_delete_loan(self, loan_service, loan_id):
        loan_service.pay_installment(USER, loan_id, 1)
        with pytest.raises(DependencyError):
            loan_service.delete_loan(USER, loan_id)

        unused = loan_service.create_loan(USER, "Banco Y", Decimal("100"), 1, Decimal("100"), date(2024, 3, 1))
        loan_service.delete_loan(USER, unused)
        with pytest.raises(LoanError) as excinfo:
            loan_service.get_loan(USER, unused)
        assert excinfo.value.kind == LoanErrorKind.LOAN_NOT_FOUND

    def test_loans_are_private(self, loan_service, loan_id):
        with pytest.raises(LoanError):
            loan_service.get_loan("someone-else", loan_id)
        assert loan_service.list_loans("someone-else") == []

    def test_totals_and_budget(self, loan_service, transaction_service, sample_wallet, loan_id):
        transaction_service.add_transaction(
            USER, sample_wallet.id, date.today(), TransactionType.INCOME, Decimal("550")
        )

        totals = loan_service.get_totals(USER)
        assert totals == {
            "active_loans": 1,
            "outstanding_balance": Decimal("1200.00"),
            "monthly_installments": Decimal("110.00"),
        }

        commitment = loan_service.get_budget_commitment(USER)
        assert commitment.monthly_income == Decimal("550.00")
        assert commitment.percentage == Decimal("20.00")
        assert commitment.health == BudgetHealth.WARNING


class TestLoanCommands:
    def test_create_pay_and_list(self, cli_runner, temp_db, sample_wallet):
        db_args = ["--db-path", temp_db.database_path]
        created = cli_runner.invoke(
            cli,
            db_args
            + [
                "loan",
                "create",
                "Banco X",
                "--total",
                "1200",
                "--installments",
                "12",
                "--installment-amount",
                "110",
                "--first-due",
                "2024-02-10",
                "--wallet",
                "Checking",
            ],
        )
        assert created.exit_code == 0
        assert "Created loan 1 from Banco X (12 installments)" in created.output

        paid = cli_runner.invoke(cli, db_args + ["loan", "pay", "1"])
        assert paid.exit_code == 0
        assert "Paid installment 1/12" in paid.output
        assert "Outstanding balance: BRL 1,100.00" in paid.output

        listed = cli_runner.invoke(cli, db_args + ["loan", "list"])
        assert listed.exit_code == 0
        assert "1/12 paid" in listed.output
        assert "next due 2024-03-10" in listed.output

    def test_out_of_order_payment(self, cli_runner, temp_db, loan_service, loan_id):
        result = cli_runner.invoke(
            cli, ["--db-path", temp_db.database_path, "loan", "pay", str(loan_id), "--installment", "2"]
        )

        assert result.exit_code == 1
        assert "next installment is 1" in result.output

    def test_projection_and_payoff(self, cli_runner, temp_db, loan_id):
        db_args = ["--db-path", temp_db.database_path]

        projection = cli_runner.invoke(cli, db_args + ["loan", "projection", str(loan_id)])
        assert projection.exit_code == 0
        assert "Remaining installments: 12" in projection.output
        assert "aggressive" in projection.output

        payoff = cli_runner.invoke(cli, db_args + ["loan", "payoff", str(loan_id), "--yes"])
        assert payoff.exit_code == 0
        assert f"Loan {loan_id} paid off" in payoff.output

        projection = cli_runner.invoke(cli, db_args + ["loan", "projection", str(loan_id)])
        assert f"Loan {loan_id} is paid off." in projection.output

    def test_unknown_loan(self, cli_runner, temp_db):
        result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "loan", "schedule", "99"])

        assert result.exit_code == 1
        assert "Error:" in result.output
