"""Gamification progress domain service.

Applies XP, streak, quest and badge rules after every ledger mutation. All
counters are recomputed from stored data, so calling any refresh twice has
no further effect.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from moneyquest.database.base import Database
from moneyquest.domain.entities import (
    ActivityResult,
    Badge,
    Profile,
    Quest,
    TransactionType,
)
from moneyquest.domain.errors import NotFoundError, profile_not_found, transaction_not_found
from moneyquest.domain.gamification import (
    calculate_financial_mood,
    calculate_streak,
    calculate_xp,
    get_level_from_xp,
)
from moneyquest.domain.quests import (
    BADGE_CATALOG,
    QUEST_CATALOG,
    QuestContext,
    badge_value,
    quest_window,
    quests_for_day,
)
from moneyquest.logging_setup import get_logger
from moneyquest.utils.date_parser import local_date

logger = get_logger(__name__)


class ProgressService:
    """Service keeping profiles, quests and badges in step with the ledger."""

    def __init__(self, db: Database):
        """Initialize progress service.

        Args:
            db: Database instance
        """
        self.db = db

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None) -> Profile:
        """Return the user's profile, creating an empty one on first use."""
        profile = self.db.get_profile(user_id)
        if profile is None:
            self.db.create_profile(user_id, display_name or user_id)
            profile = self.db.get_profile(user_id)
        return profile

    def get_profile(self, user_id: str) -> Profile:
        """Get a profile or raise NotFoundError."""
        profile = self.db.get_profile(user_id)
        if profile is None:
            raise NotFoundError(profile_not_found(user_id))
        return profile

    def record_activity(
        self, user_id: str, transaction_id: int, today: Optional[date] = None
    ) -> ActivityResult:
        """Apply the progress effects of a newly recorded transaction.

        Awards XP for the transaction, moves the streak, refreshes totals and
        mood, then re-evaluates quests and badges.

        Args:
            user_id: Acting user
            transaction_id: The transaction just recorded
            today: Day of the activity (defaults to date.today())

        Returns:
            ActivityResult describing what changed

        Raises:
            NotFoundError: If the transaction does not exist
        """
        today = today or date.today()
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            raise NotFoundError(transaction_not_found(transaction_id))

        profile = self.ensure_profile(user_id)

        xp = calculate_xp(transaction.amount, transaction.type)
        self.db.update_transaction(transaction.id, xp_earned=xp)
        total_xp = self.db.increment_xp(user_id, xp)
        level_before = get_level_from_xp(total_xp - xp)

        streak_result = calculate_streak(profile.last_active_date, profile.streak, today)
        if streak_result.is_new_day:
            streak, last_active = streak_result.new_streak, today
        else:
            streak, last_active = profile.streak, profile.last_active_date

        total_income, total_expenses = self._ledger_totals(user_id)
        self.db.update_profile_activity(
            user_id,
            streak=streak,
            last_active_date=last_active,
            total_income=total_income,
            total_expenses=total_expenses,
            financial_mood=calculate_financial_mood(total_income, total_expenses),
        )

        completed = self.refresh_quests(user_id, today)
        unlocked = self.refresh_badges(user_id)

        final = self.get_profile(user_id)
        result = ActivityResult(
            xp_earned=xp,
            total_xp=final.xp,
            level=final.level,
            leveled_up=final.level > level_before,
            streak=final.streak,
            completed_quests=tuple(completed),
            unlocked_badges=tuple(unlocked),
        )
        if result.leveled_up:
            logger.info("User %s reached level %d", user_id, result.level)
        return result

    def refresh_totals(self, user_id: str) -> Profile:
        """Recompute income/expense totals and mood after an edit or deletion."""
        profile = self.ensure_profile(user_id)
        total_income, total_expenses = self._ledger_totals(user_id)
        self.db.update_profile_activity(
            user_id,
            streak=profile.streak,
            last_active_date=profile.last_active_date,
            total_income=total_income,
            total_expenses=total_expenses,
            financial_mood=calculate_financial_mood(total_income, total_expenses),
        )
        return self.get_profile(user_id)

    def _ledger_totals(self, user_id: str) -> tuple[Decimal, Decimal]:
        income = Decimal("0")
        expenses = Decimal("0")
        for txn in self.db.list_transactions(user_id):
            if txn.type == TransactionType.INCOME:
                income += txn.amount
            else:
                expenses += txn.amount
        return income, expenses

    def ensure_quests(self, user_id: str, today: Optional[date] = None) -> list[Quest]:
        """Create this period's quests and retire expired ones.

        Weekly quests are not offered to accounts younger than 3 days and
        monthly quests to accounts younger than 7 days.

        Returns:
            Active quests after the update
        """
        today = today or date.today()
        profile = self.ensure_profile(user_id)
        account_age = (today - local_date(profile.created_at)).days

        current_keys = set()
        for quest in self.db.list_quests(user_id, active_only=False):
            expired = quest.period_end is not None and not (
                quest.period_start <= today <= quest.period_end
            )
            if quest.is_active and expired:
                self.db.deactivate_quest(quest.id)
                continue
            if not expired:
                current_keys.add(quest.quest_key)

        for definition in quests_for_day(today, account_age):
            if definition.key in current_keys:
                continue
            start, end = quest_window(definition.type, today)
            self.db.create_quest(
                user_id=user_id,
                quest_key=definition.key,
                title=definition.title,
                description=definition.description,
                type=definition.type,
                progress_target=definition.target,
                xp_reward=definition.xp_reward,
                period_start=start,
                period_end=end,
            )
            current_keys.add(definition.key)

        return self.db.list_quests(user_id)

    def refresh_quests(self, user_id: str, today: Optional[date] = None) -> list[str]:
        """Recompute progress of every active quest and complete finished ones.

        A quest's XP reward is granted only by the call that flips it to
        completed, so concurrent refreshes never pay a reward twice.

        Returns:
            Titles of quests completed by this call
        """
        today = today or date.today()
        quests = self.ensure_quests(user_id, today)
        profile = self.get_profile(user_id)
        transactions = self.db.list_transactions(user_id)

        completed = []
        for quest in quests:
            definition = QUEST_CATALOG.get(quest.quest_key)
            if definition is None or quest.is_completed:
                continue

            in_window = [
                t
                for t in transactions
                if (quest.period_start is None or t.date >= quest.period_start)
                and (quest.period_end is None or t.date <= quest.period_end)
            ]
            ctx = QuestContext(
                transactions=in_window,
                profile=profile,
                total_transaction_count=len(transactions),
            )
            progress = min(definition.progress(ctx), quest.progress_target)
            if progress != quest.progress_current:
                self.db.update_quest_progress(quest.id, progress)

            if progress >= quest.progress_target and self.db.complete_quest(quest.id):
                self.db.increment_xp(user_id, quest.xp_reward)
                completed.append(quest.title)
                logger.info("User %s completed quest %s (+%d XP)", user_id, quest.quest_key, quest.xp_reward)
        return completed

    def refresh_badges(self, user_id: str) -> list[str]:
        """Seed missing badges and unlock those whose requirement is met.

        Returns:
            Names of badges unlocked by this call
        """
        badges = self.db.list_badges(user_id)
        known = {b.badge_key for b in badges}
        for definition in BADGE_CATALOG:
            if definition.key not in known:
                self.db.create_badge(
                    user_id,
                    definition.key,
                    definition.name,
                    definition.requirement_type,
                    definition.requirement_value,
                )
        badges = self.db.list_badges(user_id)

        profile = self.get_profile(user_id)
        transaction_count = len(self.db.list_transactions(user_id))
        unlocked = []
        for badge in badges:
            if badge.is_unlocked:
                continue
            value = badge_value(badge.requirement_type, profile, transaction_count)
            if value >= badge.requirement_value and self.db.unlock_badge(badge.id):
                unlocked.append(badge.name)
                logger.info("User %s unlocked badge %s", user_id, badge.badge_key)
        return unlocked

    def list_quests(self, user_id: str, today: Optional[date] = None) -> list[Quest]:
        """Active quests with up to date progress."""
        self.refresh_quests(user_id, today)
        return self.db.list_quests(user_id)

    def list_badges(self, user_id: str) -> list[Badge]:
        """Every badge of the catalog with its unlock state."""
        self.ensure_profile(user_id)
        self.refresh_badges(user_id)
        return self.db.list_badges(user_id)
