"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from moneyquest.database.models import (
    BankLine as ORMBankLine,
    Loan as ORMLoan,
    Reconciliation as ORMReconciliation,
    Transaction as ORMTransaction,
    Wallet as ORMWallet,
)
from moneyquest.database.mappers import (
    bank_line_to_domain,
    loan_to_domain,
    reconciliation_to_domain,
    transaction_to_domain,
    wallet_to_domain,
)
from moneyquest.domain.entities import (
    BankLineStatus,
    LoanStatus,
    LoanType,
    MatchType,
    TransactionType,
    Wallet,
)


class TestWalletMapper:
    """Tests for Wallet mapper."""

    def test_wallet_to_domain(self):
        """Test converting ORM Wallet to domain Wallet with a balance."""
        orm_wallet = ORMWallet(
            id=1,
            user_id="me",
            name="Checking",
            currency="BRL",
            initial_balance=Decimal("100.00"),
            is_active=True,
            created_at=datetime.now(UTC),
        )

        wallet = wallet_to_domain(orm_wallet, Decimal("75.50"))

        assert isinstance(wallet, Wallet)
        assert wallet.initial_balance == Decimal("100.00")
        assert wallet.current_balance == Decimal("75.50")


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_enum_and_amount_are_rebuilt(self):
        """Test that the stored type string becomes a TransactionType."""
        orm_txn = ORMTransaction(
            id=5,
            user_id="me",
            wallet_id=1,
            date=date(2024, 1, 15),
            type="expense",
            amount=42.1,
            category="Food",
            description="Lunch",
            currency="BRL",
            subtype=None,
            supplier=None,
            xp_earned=2,
            created_at=datetime.now(UTC),
        )

        txn = transaction_to_domain(orm_txn)

        assert txn.type == TransactionType.EXPENSE
        assert txn.amount == Decimal("42.1")
        assert txn.signed_amount == Decimal("-42.1")


class TestBankLineMapper:
    """Tests for BankLine and Reconciliation mappers."""

    def test_bank_line_to_domain(self):
        orm_line = ORMBankLine(
            id=3,
            wallet_id=1,
            transaction_date=date(2024, 1, 15),
            description="PADARIA",
            amount=Decimal("-12.00"),
            bank_reference=None,
            counterparty=None,
            fingerprint="a" * 64,
            import_batch_id="batch",
            source_file_name="extrato.csv",
            status="ignored",
            imported_at=datetime.now(UTC),
        )

        line = bank_line_to_domain(orm_line)

        assert line.status == BankLineStatus.IGNORED
        assert line.amount == Decimal("-12.00")

    def test_reconciliation_to_domain(self):
        orm_rec = ORMReconciliation(
            id=1,
            bank_line_id=3,
            transaction_id=5,
            match_type="auto",
            confidence_score=85,
            reconciled_at=datetime.now(UTC),
        )

        rec = reconciliation_to_domain(orm_rec)

        assert rec.match_type == MatchType.AUTO
        assert rec.confidence_score == 85


class TestLoanMapper:
    """Tests for Loan mapper."""

    def test_loan_to_domain(self):
        orm_loan = ORMLoan(
            id=2,
            user_id="me",
            wallet_id=None,
            lender="Banco X",
            loan_type="financing",
            total_amount=Decimal("1200.00"),
            installment_count=12,
            installments_paid=12,
            installment_amount=Decimal("110.00"),
            interest_rate=None,
            first_due_date=date(2024, 2, 10),
            contract_date=date(2024, 1, 10),
            outstanding_balance=Decimal("0.00"),
            status="paid_off",
            currency="BRL",
            notes=None,
            created_at=datetime.now(UTC),
        )

        loan = loan_to_domain(orm_loan)

        assert loan.loan_type == LoanType.FINANCING
        assert loan.status == LoanStatus.PAID_OFF
        assert loan.is_paid_off
        assert loan.remaining_installments == 0
        assert loan.interest_rate is None
