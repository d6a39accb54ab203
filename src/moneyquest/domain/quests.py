"""Quest and badge catalogs.

Every quest is keyed by ``quest_key`` and carries an aggregation that
recomputes its progress from scratch over the ledger entries of the quest's
period. Recomputing is idempotent, so a refresh can run after any mutation.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Sequence

from moneyquest.domain.entities import (
    BadgeRequirement,
    Profile,
    QuestType,
    Transaction,
    TransactionType,
)
from moneyquest.utils.date_parser import period_bounds

WEEKLY_ROTATION_SIZE = 3
# Accounts younger than this many days are not offered the quest type
MIN_ACCOUNT_AGE_DAYS = {QuestType.WEEKLY: 3, QuestType.MONTHLY: 7}


@dataclass(frozen=True)
class QuestContext:
    """Inputs an aggregation may look at."""

    transactions: Sequence[Transaction]
    profile: Profile
    total_transaction_count: int


@dataclass(frozen=True)
class QuestDefinition:
    key: str
    title: str
    description: str
    type: QuestType
    target: int
    xp_reward: int
    progress: Callable[[QuestContext], int]


@dataclass(frozen=True)
class BadgeDefinition:
    key: str
    name: str
    requirement_type: BadgeRequirement
    requirement_value: int


def _count(ctx: QuestContext) -> int:
    return len(ctx.transactions)


def _active_days(ctx: QuestContext) -> int:
    return len({t.date for t in ctx.transactions})


def _expense_categories(ctx: QuestContext) -> int:
    return len({t.category for t in ctx.transactions if t.type == TransactionType.EXPENSE and t.category})


def _detailed_entries(ctx: QuestContext) -> int:
    return sum(1 for t in ctx.transactions if t.category and t.description.strip())


def _income_count(ctx: QuestContext) -> int:
    return sum(1 for t in ctx.transactions if t.type == TransactionType.INCOME)


def _saved_in_period(ctx: QuestContext) -> int:
    income = sum((t.amount for t in ctx.transactions if t.type == TransactionType.INCOME), Decimal("0"))
    spent = sum((t.amount for t in ctx.transactions if t.type == TransactionType.EXPENSE), Decimal("0"))
    return 1 if income > 0 and income > spent else 0


def _ever_logged(ctx: QuestContext) -> int:
    return min(ctx.total_transaction_count, 1)


def _streak(ctx: QuestContext) -> int:
    return ctx.profile.streak


def _total_saved(ctx: QuestContext) -> int:
    saved = ctx.profile.total_income - ctx.profile.total_expenses
    return max(int(saved), 0)


DAILY_QUESTS = (
    QuestDefinition("daily_logger", "Daily Logger", "Record a transaction today", QuestType.DAILY, 1, 20, _count),
    QuestDefinition("daily_detail", "Detailed Day", "Record 3 transactions today", QuestType.DAILY, 3, 30, _count),
)

WEEKLY_POOL = (
    QuestDefinition("weekly_balance", "Weekly Balance", "Record 5 transactions this week", QuestType.WEEKLY, 5, 200, _count),
    QuestDefinition(
        "weekly_categories",
        "Category Explorer",
        "Spend in 3 different categories this week",
        QuestType.WEEKLY,
        3,
        150,
        _expense_categories,
    ),
    QuestDefinition(
        "transaction_streak",
        "Every Single Day",
        "Record something on 7 days this week",
        QuestType.WEEKLY,
        7,
        250,
        _active_days,
    ),
    QuestDefinition(
        "detailed_tracker",
        "Detailed Tracker",
        "Record 10 categorized and described transactions this week",
        QuestType.WEEKLY,
        10,
        175,
        _detailed_entries,
    ),
    QuestDefinition("income_hunter", "Income Hunter", "Record 2 incomes this week", QuestType.WEEKLY, 2, 175, _income_count),
)

MONTHLY_QUESTS = (
    QuestDefinition(
        "monthly_saver", "Monthly Saver", "Earn more than you spend this month", QuestType.MONTHLY, 1, 300, _saved_in_period
    ),
    QuestDefinition(
        "monthly_tracker", "Monthly Tracker", "Record 30 transactions this month", QuestType.MONTHLY, 30, 200, _count
    ),
)

ACHIEVEMENT_QUESTS = (
    QuestDefinition("first_steps", "First Steps", "Record your first transaction", QuestType.ACHIEVEMENT, 1, 50, _ever_logged),
    QuestDefinition("week_warrior", "Week Warrior", "Keep a 7 day streak", QuestType.ACHIEVEMENT, 7, 100, _streak),
    QuestDefinition("saver_supreme", "Saver Supreme", "Save 1000 in total", QuestType.ACHIEVEMENT, 1000, 200, _total_saved),
)

QUEST_CATALOG = {q.key: q for q in DAILY_QUESTS + WEEKLY_POOL + MONTHLY_QUESTS + ACHIEVEMENT_QUESTS}

BADGE_CATALOG = (
    BadgeDefinition("first_transaction", "First Coin", BadgeRequirement.COUNT, 1),
    BadgeDefinition("fifty_transactions", "Bookkeeper", BadgeRequirement.COUNT, 50),
    BadgeDefinition("streak_7", "On Fire", BadgeRequirement.STREAK, 7),
    BadgeDefinition("streak_30", "Unstoppable", BadgeRequirement.STREAK, 30),
    BadgeDefinition("xp_1000", "Level Up", BadgeRequirement.XP, 1000),
    BadgeDefinition("xp_10000", "Veteran", BadgeRequirement.XP, 10000),
    BadgeDefinition("saved_1000", "Piggy Bank", BadgeRequirement.TOTAL_SAVED, 1000),
    BadgeDefinition("saved_10000", "Treasure Chest", BadgeRequirement.TOTAL_SAVED, 10000),
)


def weekly_rotation(week_start: date) -> tuple[QuestDefinition, ...]:
    """Weekly quests offered in the week starting on week_start.

    The pool rotates by ISO week number so consecutive weeks differ.
    """
    week_number = week_start.isocalendar()[1]
    offset = week_number % len(WEEKLY_POOL)
    rotated = WEEKLY_POOL[offset:] + WEEKLY_POOL[:offset]
    return rotated[:WEEKLY_ROTATION_SIZE]


def quest_window(quest_type: QuestType, today: date) -> tuple[Optional[date], Optional[date]]:
    """Period a quest of quest_type covers; (None, None) for all-time quests."""
    if quest_type in (QuestType.SPECIAL, QuestType.ACHIEVEMENT):
        return (None, None)
    return period_bounds(quest_type.value, today)


def quests_for_day(today: date, account_age_days: int) -> list[QuestDefinition]:
    """Quest definitions that should be active on ``today``."""
    start, _ = period_bounds("weekly", today)
    offered = list(DAILY_QUESTS)
    if account_age_days >= MIN_ACCOUNT_AGE_DAYS[QuestType.WEEKLY]:
        offered.extend(weekly_rotation(start))
    if account_age_days >= MIN_ACCOUNT_AGE_DAYS[QuestType.MONTHLY]:
        offered.extend(MONTHLY_QUESTS)
    offered.extend(ACHIEVEMENT_QUESTS)
    return offered


def badge_value(requirement: BadgeRequirement, profile: Profile, transaction_count: int) -> Decimal:
    """Current value of the metric a badge requirement compares against."""
    if requirement == BadgeRequirement.XP:
        return Decimal(profile.xp)
    if requirement == BadgeRequirement.STREAK:
        return Decimal(profile.streak)
    if requirement == BadgeRequirement.TOTAL_SAVED:
        return profile.total_income - profile.total_expenses
    return Decimal(transaction_count)
