"""Loan amortization domain service.

Installments are paid strictly in order. Every paid installment is a ledger
expense tagged ``loan:{loan_id}:{number}``; paying off the remaining balance
at once creates a single expense tagged ``loan:{loan_id}:payoff``.
"""

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from moneyquest.database.base import Database
from moneyquest.domain.entities import (
    BudgetCommitment,
    BudgetHealth,
    Loan,
    LoanInstallment,
    LoanStatus,
    LoanType,
    PayoffProjection,
    PayoffScenario,
    TransactionDraft,
    TransactionType,
)
from moneyquest.domain.errors import (
    DependencyError,
    LoanError,
    LoanErrorKind,
    ValidationError,
    loan_delete_blocked,
    loan_not_found,
)
from moneyquest.domain.progress import ProgressService
from moneyquest.domain.wallet import WalletService
from moneyquest.logging_setup import get_logger
from moneyquest.utils.date_parser import add_months, local_date

logger = get_logger(__name__)

CENT = Decimal("0.01")
LOAN_CATEGORY = "Loans"

# (name, share of remaining installments, share of remaining interest saved)
PAYOFF_SCENARIOS = (
    ("quarterly", Decimal("0.75"), Decimal("0.15")),
    ("aggressive", Decimal("0.60"), Decimal("0.30")),
)

LOAN_TAG_PREFIX = "loan:"

BUDGET_WARNING_PERCENT = Decimal("20")
BUDGET_CRITICAL_PERCENT = Decimal("30")


def installment_subtype(loan_id: int, number: int) -> str:
    return f"{LOAN_TAG_PREFIX}{loan_id}:{number}"


def payoff_subtype(loan_id: int) -> str:
    return f"{LOAN_TAG_PREFIX}{loan_id}:payoff"


def loan_subtype_prefix(loan_id: int) -> str:
    return f"{LOAN_TAG_PREFIX}{loan_id}:"


def principal_portion(loan: Loan) -> Decimal:
    """Principal repaid by one installment: total amount over installment count."""
    return (loan.total_amount / loan.installment_count).quantize(CENT, rounding=ROUND_HALF_UP)


def next_due_date(loan: Loan) -> Optional[date]:
    """Due date of the next unpaid installment, None once paid off."""
    if loan.is_paid_off or loan.installments_paid >= loan.installment_count:
        return None
    return add_months(loan.first_due_date, loan.installments_paid)


def _balance_after(loan: Loan, installments_paid: int, balance: Decimal) -> Decimal:
    if installments_paid >= loan.installment_count:
        return Decimal("0.00")
    return max(Decimal("0.00"), balance - principal_portion(loan))


def project_payoff_scenarios(loan: Loan) -> Optional[PayoffProjection]:
    """Estimate the effect of paying faster than scheduled.

    This is a rough estimate, not an amortization schedule: the remaining
    interest is taken as what is left to pay minus the outstanding balance,
    and each scenario saves a fixed share of it.

    Returns:
        PayoffProjection, or None for paid-off loans
    """
    remaining = loan.remaining_installments
    if loan.is_paid_off or remaining <= 0:
        return None

    remaining_interest = max(
        Decimal("0"), remaining * loan.installment_amount - loan.outstanding_balance
    )
    scenarios = []
    for name, installment_share, savings_share in PAYOFF_SCENARIOS:
        installments = math.ceil(remaining * installment_share)
        scenarios.append(
            PayoffScenario(
                name=name,
                installments=installments,
                payoff_date=add_months(
                    loan.first_due_date, loan.installments_paid + installments - 1
                ),
                estimated_savings=(remaining_interest * savings_share).quantize(
                    CENT, rounding=ROUND_HALF_UP
                ),
                months_saved=remaining - installments,
            )
        )
    return PayoffProjection(
        remaining_installments=remaining,
        remaining_interest=remaining_interest.quantize(CENT, rounding=ROUND_HALF_UP),
        normal_payoff_date=add_months(loan.first_due_date, loan.installment_count - 1),
        scenarios=tuple(scenarios),
    )


def interest_summary(loan: Loan) -> dict[str, Decimal]:
    """Estimated interest paid so far and over the whole loan.

    Interest paid is only estimated when the loan has an interest rate.
    """
    paid_in_installments = loan.installments_paid * loan.installment_amount
    principal_paid = principal_portion(loan) * loan.installments_paid
    interest_paid = (
        max(Decimal("0"), paid_in_installments - principal_paid) if loan.interest_rate else Decimal("0")
    )
    total_interest = max(
        Decimal("0"), loan.installment_count * loan.installment_amount - loan.total_amount
    )
    return {
        "principal_paid": principal_paid,
        "interest_paid": interest_paid,
        "total_interest": total_interest,
    }


def budget_commitment(monthly_income: Decimal, monthly_installments: Decimal) -> BudgetCommitment:
    """Share of monthly income committed to loan installments.

    Healthy below 20%, warning from 20%, critical from 30%. Without income
    any installment is critical.
    """
    if monthly_income <= 0:
        percentage = Decimal("100") if monthly_installments > 0 else Decimal("0")
    else:
        percentage = (monthly_installments / monthly_income * 100).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
    if percentage >= BUDGET_CRITICAL_PERCENT:
        health = BudgetHealth.CRITICAL
    elif percentage >= BUDGET_WARNING_PERCENT:
        health = BudgetHealth.WARNING
    else:
        health = BudgetHealth.HEALTHY
    return BudgetCommitment(
        monthly_income=monthly_income,
        monthly_installments=monthly_installments,
        percentage=percentage,
        health=health,
    )


class LoanService:
    """Service for managing loans and their installment payments."""

    def __init__(self, db: Database):
        """Initialize loan service.

        Args:
            db: Database instance
        """
        self.db = db
        self.wallets = WalletService(db)
        self.progress = ProgressService(db)

    def create_loan(
        self,
        user_id: str,
        lender: str,
        total_amount: Decimal,
        installment_count: int,
        installment_amount: Decimal,
        first_due_date: date,
        loan_type: LoanType = LoanType.PERSONAL,
        wallet_id: Optional[int] = None,
        interest_rate: Optional[Decimal] = None,
        contract_date: Optional[date] = None,
        currency: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a loan.

        Args:
            user_id: Borrower
            lender: Bank or person lending the money
            total_amount: Amount borrowed
            installment_count: Number of installments (at least 1)
            installment_amount: Amount of each installment
            first_due_date: Due date of installment 1
            loan_type: Kind of loan
            wallet_id: Wallet installments are paid from
            interest_rate: Monthly interest rate in percent
            contract_date: Signing date (defaults to first_due_date)
            currency: Currency code (defaults to the wallet's, else BRL)
            notes: Free text

        Returns:
            Loan ID

        Raises:
            LoanError: INVALID_INSTALLMENT_COUNT if installment_count < 1
            ValidationError: If an amount is not positive or lender is empty
        """
        if installment_count < 1:
            raise LoanError(
                LoanErrorKind.INVALID_INSTALLMENT_COUNT,
                f"A loan needs at least one installment, got {installment_count}",
            )
        total_amount = Decimal(total_amount)
        installment_amount = Decimal(installment_amount)
        if total_amount <= 0 or installment_amount <= 0:
            raise ValidationError("Loan amounts must be positive")
        if interest_rate is not None and Decimal(interest_rate) < 0:
            raise ValidationError("Interest rate cannot be negative")
        if not lender.strip():
            raise ValidationError("Lender cannot be empty")

        if wallet_id is not None:
            wallet = self.wallets.require_wallet(user_id, wallet_id)
            currency = currency or wallet.currency

        loan_id = self.db.create_loan(
            user_id=user_id,
            wallet_id=wallet_id,
            lender=lender.strip(),
            loan_type=LoanType(loan_type),
            total_amount=total_amount.quantize(CENT),
            installment_count=installment_count,
            installment_amount=installment_amount.quantize(CENT),
            interest_rate=Decimal(interest_rate) if interest_rate is not None else None,
            first_due_date=first_due_date,
            contract_date=contract_date or first_due_date,
            currency=currency or "BRL",
            notes=notes,
        )
        logger.info("Created loan %d from %s (%d installments)", loan_id, lender, installment_count)
        return loan_id

    def get_loan(self, user_id: str, loan_id: int) -> Loan:
        """Get a loan of the user.

        Raises:
            LoanError: LOAN_NOT_FOUND if it does not exist for this user
        """
        loan = self.db.get_loan(loan_id)
        if loan is None or loan.user_id != user_id:
            raise LoanError(LoanErrorKind.LOAN_NOT_FOUND, loan_not_found(loan_id))
        return loan

    def list_loans(self, user_id: str, status: Optional[LoanStatus] = None) -> list[Loan]:
        """List the user's loans, optionally only active or paid off ones."""
        return self.db.list_loans(user_id, status=status)

    def _payment_draft(
        self, loan: Loan, wallet_id: int, amount: Decimal, subtype: str, description: str, payment_date: date
    ) -> TransactionDraft:
        return TransactionDraft(
            user_id=loan.user_id,
            wallet_id=wallet_id,
            date=payment_date,
            type=TransactionType.EXPENSE,
            amount=amount,
            category=LOAN_CATEGORY,
            description=description,
            currency=loan.currency,
            subtype=subtype,
            supplier=loan.lender,
        )

    def _payment_wallet(self, loan: Loan, wallet_id: Optional[int]) -> int:
        wallet_id = wallet_id if wallet_id is not None else loan.wallet_id
        if wallet_id is None:
            raise ValidationError(f"Loan {loan.id} has no wallet; pass the wallet to pay from")
        self.wallets.require_wallet(loan.user_id, wallet_id)
        return wallet_id

    def _require_active(self, loan: Loan) -> None:
        if loan.is_paid_off or loan.remaining_installments <= 0:
            raise LoanError(
                LoanErrorKind.LOAN_ALREADY_PAID_OFF, f"Loan {loan.id} is already paid off"
            )

    def pay_installment(
        self,
        user_id: str,
        loan_id: int,
        installment_number: int,
        wallet_id: Optional[int] = None,
        payment_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> int:
        """Pay the next installment of a loan.

        Args:
            user_id: Borrower
            loan_id: Loan ID
            installment_number: Must be exactly installments_paid + 1
            wallet_id: Wallet to pay from (defaults to the loan's)
            payment_date: Date of the expense (defaults to today)
            today: Day of the action (defaults to date.today())

        Returns:
            ID of the installment transaction

        Raises:
            LoanError: LOAN_ALREADY_PAID_OFF, or OUT_OF_ORDER_INSTALLMENT when
                the number is not the next one; nothing changes in either case
        """
        today = today or date.today()
        loan = self.get_loan(user_id, loan_id)
        self._require_active(loan)
        expected = loan.installments_paid + 1
        if installment_number != expected:
            logger.warning(
                "Rejected installment %d of loan %d; next is %d", installment_number, loan_id, expected
            )
            raise LoanError(
                LoanErrorKind.OUT_OF_ORDER_INSTALLMENT,
                f"Installment {installment_number} cannot be paid; the next installment is {expected}",
            )
        wallet_id = self._payment_wallet(loan, wallet_id)

        balance = _balance_after(loan, expected, loan.outstanding_balance)
        draft = self._payment_draft(
            loan,
            wallet_id,
            loan.installment_amount,
            installment_subtype(loan.id, expected),
            f"{loan.lender} installment {expected}/{loan.installment_count}",
            payment_date or today,
        )
        (transaction_id,) = self.db.record_loan_payments(
            loan.id,
            expected_paid=loan.installments_paid,
            installments_paid=expected,
            outstanding_balance=balance,
            status=LoanStatus.PAID_OFF if expected == loan.installment_count else LoanStatus.ACTIVE,
            payments=[draft],
        )
        logger.info("Paid installment %d/%d of loan %d", expected, loan.installment_count, loan.id)
        self.progress.record_activity(user_id, transaction_id, today)
        return transaction_id

    def prepay_installments(
        self,
        user_id: str,
        loan_id: int,
        count: int,
        wallet_id: Optional[int] = None,
        payment_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> list[int]:
        """Pay the next ``count`` installments at once.

        Creates one tagged expense per installment, all stored together.

        Returns:
            IDs of the installment transactions, in installment order

        Raises:
            LoanError: LOAN_ALREADY_PAID_OFF, or INVALID_INSTALLMENT_COUNT when
                count is below 1 or above the remaining installments
        """
        today = today or date.today()
        loan = self.get_loan(user_id, loan_id)
        self._require_active(loan)
        if count < 1 or count > loan.remaining_installments:
            raise LoanError(
                LoanErrorKind.INVALID_INSTALLMENT_COUNT,
                f"Can prepay between 1 and {loan.remaining_installments} installments, got {count}",
            )
        wallet_id = self._payment_wallet(loan, wallet_id)

        drafts = []
        balance = loan.outstanding_balance
        paid = loan.installments_paid
        for _ in range(count):
            paid += 1
            balance = _balance_after(loan, paid, balance)
            drafts.append(
                self._payment_draft(
                    loan,
                    wallet_id,
                    loan.installment_amount,
                    installment_subtype(loan.id, paid),
                    f"{loan.lender} installment {paid}/{loan.installment_count} (prepaid)",
                    payment_date or today,
                )
            )

        transaction_ids = self.db.record_loan_payments(
            loan.id,
            expected_paid=loan.installments_paid,
            installments_paid=paid,
            outstanding_balance=balance,
            status=LoanStatus.PAID_OFF if paid == loan.installment_count else LoanStatus.ACTIVE,
            payments=drafts,
        )
        logger.info("Prepaid %d installments of loan %d", count, loan.id)
        for transaction_id in transaction_ids:
            self.progress.record_activity(user_id, transaction_id, today)
        return transaction_ids

    def pay_off_loan(
        self,
        user_id: str,
        loan_id: int,
        wallet_id: Optional[int] = None,
        payment_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> int:
        """Settle the whole outstanding balance with a single expense.

        Returns:
            ID of the payoff transaction

        Raises:
            LoanError: LOAN_ALREADY_PAID_OFF
        """
        today = today or date.today()
        loan = self.get_loan(user_id, loan_id)
        self._require_active(loan)
        wallet_id = self._payment_wallet(loan, wallet_id)
        if loan.outstanding_balance <= 0:
            raise ValidationError(f"Loan {loan.id} has no outstanding balance to pay off")

        draft = self._payment_draft(
            loan,
            wallet_id,
            loan.outstanding_balance,
            payoff_subtype(loan.id),
            f"{loan.lender} payoff",
            payment_date or today,
        )
        (transaction_id,) = self.db.record_loan_payments(
            loan.id,
            expected_paid=loan.installments_paid,
            installments_paid=loan.installment_count,
            outstanding_balance=Decimal("0.00"),
            status=LoanStatus.PAID_OFF,
            payments=[draft],
        )
        logger.info("Paid off loan %d", loan.id)
        self.progress.record_activity(user_id, transaction_id, today)
        return transaction_id

    def list_installments(self, user_id: str, loan_id: int) -> list[LoanInstallment]:
        """Full payment schedule with the transaction behind each paid installment."""
        loan = self.get_loan(user_id, loan_id)
        payments = self.db.list_transactions(user_id, subtype_prefix=loan_subtype_prefix(loan.id))
        by_tag = {txn.subtype: txn.id for txn in payments}
        payoff_id = by_tag.get(payoff_subtype(loan.id))

        schedule = []
        for number in range(1, loan.installment_count + 1):
            is_paid = number <= loan.installments_paid
            transaction_id = by_tag.get(installment_subtype(loan.id, number))
            if is_paid and transaction_id is None:
                transaction_id = payoff_id
            schedule.append(
                LoanInstallment(
                    number=number,
                    due_date=add_months(loan.first_due_date, number - 1),
                    amount=loan.installment_amount,
                    is_paid=is_paid,
                    transaction_id=transaction_id,
                )
            )
        return schedule

    def delete_loan(self, user_id: str, loan_id: int) -> None:
        """Delete a loan that has no payments.

        Raises:
            DependencyError: If installment transactions exist
        """
        loan = self.get_loan(user_id, loan_id)
        payments = self.db.list_transactions(user_id, subtype_prefix=loan_subtype_prefix(loan.id))
        if payments:
            raise DependencyError(loan_delete_blocked(loan.id, len(payments)))
        self.db.delete_loan(loan.id)

    def get_totals(self, user_id: str) -> dict[str, Any]:
        """Outstanding balance and monthly installments over active loans."""
        active = self.db.list_loans(user_id, status=LoanStatus.ACTIVE)
        return {
            "active_loans": len(active),
            "outstanding_balance": sum((l.outstanding_balance for l in active), Decimal("0")),
            "monthly_installments": sum((l.installment_amount for l in active), Decimal("0")),
        }

    def get_budget_commitment(self, user_id: str, today: Optional[date] = None) -> BudgetCommitment:
        """Monthly installments against average monthly income since sign-up."""
        today = today or date.today()
        profile = self.progress.ensure_profile(user_id)
        joined = local_date(profile.created_at)
        delta = relativedelta(today, joined)
        months_active = max(1, delta.years * 12 + delta.months)
        monthly_income = (profile.total_income / months_active).quantize(CENT, rounding=ROUND_HALF_UP)
        return budget_commitment(monthly_income, self.get_totals(user_id)["monthly_installments"])
