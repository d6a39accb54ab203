"""XP, level, streak and mood rules.

Pure functions; the progress service applies them to stored profiles.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from moneyquest.domain.entities import FinancialMood, StreakResult, TransactionType

XP_PER_LEVEL = 1000
INCOME_XP_CAP = 100
EXPENSE_XP_CAP = 50
MIN_XP = 1

LEVEL_TITLES = (
    (2, "Novice Saver"),
    (5, "Budget Apprentice"),
    (10, "Money Manager"),
    (20, "Finance Wizard"),
    (35, "Wealth Warrior"),
    (50, "Economy Expert"),
)
TOP_LEVEL_TITLE = "Legendary Investor"


def calculate_xp(amount: Decimal, txn_type: TransactionType) -> int:
    """XP earned for recording a transaction.

    Income earns one point per 10 units (capped at 100), expenses one per 20
    units (capped at 50). Every recorded transaction earns at least 1 XP,
    including zero or negative amounts.
    """
    amount = Decimal(amount)
    if txn_type == TransactionType.INCOME:
        xp = min(int(amount // 10), INCOME_XP_CAP)
    else:
        xp = min(int(amount // 20), EXPENSE_XP_CAP)
    return max(xp, MIN_XP)


def get_level_from_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def get_xp_progress(xp: int) -> float:
    """Percentage of the way through the current level."""
    return (xp % XP_PER_LEVEL) / XP_PER_LEVEL * 100


def get_level_title(level: int) -> str:
    for max_level, title in LEVEL_TITLES:
        if level <= max_level:
            return title
    return TOP_LEVEL_TITLE


def calculate_streak(
    last_active_date: Optional[date], current_streak: int, today: Optional[date] = None
) -> StreakResult:
    """Work out the streak after activity on ``today``.

    Returns ``new_streak == -1`` with ``is_new_day False`` when the day was
    already counted; callers leave the stored streak untouched in that case.
    """
    today = today or date.today()
    if last_active_date is None:
        return StreakResult(new_streak=1, is_new_day=True)

    days = (today - last_active_date).days
    if days <= 0:
        return StreakResult(new_streak=-1, is_new_day=False)
    if days == 1:
        return StreakResult(new_streak=current_streak + 1, is_new_day=True)
    return StreakResult(new_streak=1, is_new_day=True)


def calculate_financial_mood(total_income: Decimal, total_expenses: Decimal) -> FinancialMood:
    balance = Decimal(total_income) - Decimal(total_expenses)
    if balance > 5000:
        return FinancialMood.VERY_POSITIVE
    if balance >= 1000:
        return FinancialMood.POSITIVE
    if balance >= 0:
        return FinancialMood.NEUTRAL
    if balance >= -999:
        return FinancialMood.NEGATIVE
    return FinancialMood.CRITICAL
