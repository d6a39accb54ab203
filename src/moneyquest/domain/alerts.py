"""Financial alerts derived from wallets, loans and recent spending."""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from moneyquest.database.base import Database
from moneyquest.domain.entities import (
    Alert,
    AlertKind,
    Loan,
    LoanStatus,
    Transaction,
    TransactionType,
    Wallet,
)
from moneyquest.domain.loan import next_due_date
from moneyquest.utils.date_parser import add_months

MAX_ALERTS = 3
DUE_SOON_DAYS = 7
HISTORY_MONTHS = 3
SPENDING_SPIKE_FACTOR = Decimal("1.5")


def _month_start(day: date) -> date:
    return day.replace(day=1)


def build_financial_alerts(
    wallets: Sequence[Wallet],
    loans: Sequence[Loan],
    transactions: Sequence[Transaction],
    today: date,
) -> list[Alert]:
    """Build the alerts worth showing today, most severe checks first.

    Args:
        wallets: Active wallets with their current balance
        loans: The user's loans (paid off ones are ignored)
        transactions: Ledger entries covering at least the last three months
        today: Reference day

    Returns:
        At most three alerts
    """
    alerts = []

    total_balance = sum((w.current_balance for w in wallets), Decimal("0"))
    if total_balance < 0:
        alerts.append(
            Alert(
                key="negative-balance",
                kind=AlertKind.DANGER,
                title="Negative balance",
                description="Your total balance is negative. Review your finances.",
            )
        )

    for loan in loans:
        if loan.status != LoanStatus.ACTIVE:
            continue
        due = next_due_date(loan)
        if due is None:
            continue
        days_until_due = (due - today).days
        if 0 <= days_until_due <= DUE_SOON_DAYS:
            when = "today" if days_until_due == 0 else f"in {days_until_due} days"
            alerts.append(
                Alert(
                    key=f"loan-due-{loan.id}",
                    kind=AlertKind.INFO,
                    title="Upcoming installment",
                    description=f"{loan.lender}: {loan.installment_amount} {loan.currency} due {when}",
                )
            )

    month_start = _month_start(today)
    history_start = add_months(month_start, -HISTORY_MONTHS)
    current_expenses = Decimal("0")
    history_expenses = Decimal("0")
    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        if month_start <= txn.date <= today:
            current_expenses += txn.amount
        elif history_start <= txn.date < month_start:
            history_expenses += txn.amount

    average = history_expenses / HISTORY_MONTHS
    if average > 0 and current_expenses > average * SPENDING_SPIKE_FACTOR:
        alerts.append(
            Alert(
                key="high-spending",
                kind=AlertKind.WARNING,
                title="Spending above average",
                description="Your spending this month is over 50% above your three-month average.",
            )
        )

    return alerts[:MAX_ALERTS]


class AlertService:
    """Collects the inputs of build_financial_alerts for a user."""

    def __init__(self, db: Database):
        self.db = db

    def get_alerts(self, user_id: str, today: Optional[date] = None) -> list[Alert]:
        today = today or date.today()
        history_start = add_months(_month_start(today), -HISTORY_MONTHS)
        return build_financial_alerts(
            self.db.list_wallets(user_id),
            self.db.list_loans(user_id, status=LoanStatus.ACTIVE),
            self.db.list_transactions(user_id, start_date=history_start, end_date=today),
            today,
        )
