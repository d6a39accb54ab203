"""Mapper functions to convert SQLAlchemy models into domain entities.

Enum columns are stored as their string values and rebuilt here, so the
rest of the code only ever sees domain types.
"""

from decimal import Decimal
from typing import Optional

from moneyquest.domain import entities as domain
from moneyquest.database.models import (
    Wallet as ORMWallet,
    Transaction as ORMTransaction,
    BankLine as ORMBankLine,
    Reconciliation as ORMReconciliation,
    Loan as ORMLoan,
    Profile as ORMProfile,
    Quest as ORMQuest,
    Badge as ORMBadge,
)


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _optional_decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def wallet_to_domain(orm_wallet: ORMWallet, current_balance: Decimal) -> domain.Wallet:
    """Convert SQLAlchemy Wallet model to domain Wallet entity."""
    return domain.Wallet(
        id=orm_wallet.id,
        user_id=orm_wallet.user_id,
        name=orm_wallet.name,
        currency=orm_wallet.currency,
        initial_balance=_decimal(orm_wallet.initial_balance),
        is_active=orm_wallet.is_active,
        created_at=orm_wallet.created_at,
        current_balance=current_balance,
    )


def transaction_to_domain(orm_txn: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_txn.id,
        user_id=orm_txn.user_id,
        wallet_id=orm_txn.wallet_id,
        date=orm_txn.date,
        type=domain.TransactionType(orm_txn.type),
        amount=_decimal(orm_txn.amount),
        category=orm_txn.category,
        description=orm_txn.description,
        currency=orm_txn.currency,
        subtype=orm_txn.subtype,
        supplier=orm_txn.supplier,
        xp_earned=orm_txn.xp_earned,
        created_at=orm_txn.created_at,
    )


def bank_line_to_domain(orm_line: ORMBankLine) -> domain.BankLine:
    """Convert SQLAlchemy BankLine model to domain BankLine entity."""
    return domain.BankLine(
        id=orm_line.id,
        wallet_id=orm_line.wallet_id,
        transaction_date=orm_line.transaction_date,
        description=orm_line.description,
        amount=_decimal(orm_line.amount),
        bank_reference=orm_line.bank_reference,
        counterparty=orm_line.counterparty,
        fingerprint=orm_line.fingerprint,
        import_batch_id=orm_line.import_batch_id,
        source_file_name=orm_line.source_file_name,
        status=domain.BankLineStatus(orm_line.status),
        imported_at=orm_line.imported_at,
    )


def reconciliation_to_domain(orm_rec: ORMReconciliation) -> domain.Reconciliation:
    """Convert SQLAlchemy Reconciliation model to domain entity."""
    return domain.Reconciliation(
        id=orm_rec.id,
        bank_line_id=orm_rec.bank_line_id,
        transaction_id=orm_rec.transaction_id,
        match_type=domain.MatchType(orm_rec.match_type),
        confidence_score=orm_rec.confidence_score,
        reconciled_at=orm_rec.reconciled_at,
    )


def loan_to_domain(orm_loan: ORMLoan) -> domain.Loan:
    """Convert SQLAlchemy Loan model to domain Loan entity."""
    return domain.Loan(
        id=orm_loan.id,
        user_id=orm_loan.user_id,
        wallet_id=orm_loan.wallet_id,
        lender=orm_loan.lender,
        loan_type=domain.LoanType(orm_loan.loan_type),
        total_amount=_decimal(orm_loan.total_amount),
        installment_count=orm_loan.installment_count,
        installments_paid=orm_loan.installments_paid,
        installment_amount=_decimal(orm_loan.installment_amount),
        interest_rate=_optional_decimal(orm_loan.interest_rate),
        first_due_date=orm_loan.first_due_date,
        contract_date=orm_loan.contract_date,
        outstanding_balance=_decimal(orm_loan.outstanding_balance),
        status=domain.LoanStatus(orm_loan.status),
        currency=orm_loan.currency,
        notes=orm_loan.notes,
        created_at=orm_loan.created_at,
    )


def profile_to_domain(orm_profile: ORMProfile) -> domain.Profile:
    """Convert SQLAlchemy Profile model to domain Profile entity."""
    return domain.Profile(
        user_id=orm_profile.user_id,
        display_name=orm_profile.display_name,
        xp=orm_profile.xp,
        streak=orm_profile.streak,
        last_active_date=orm_profile.last_active_date,
        total_income=_decimal(orm_profile.total_income),
        total_expenses=_decimal(orm_profile.total_expenses),
        financial_mood=domain.FinancialMood(orm_profile.financial_mood),
        created_at=orm_profile.created_at,
    )


def quest_to_domain(orm_quest: ORMQuest) -> domain.Quest:
    """Convert SQLAlchemy Quest model to domain Quest entity."""
    return domain.Quest(
        id=orm_quest.id,
        user_id=orm_quest.user_id,
        quest_key=orm_quest.quest_key,
        title=orm_quest.title,
        description=orm_quest.description,
        type=domain.QuestType(orm_quest.type),
        progress_current=orm_quest.progress_current,
        progress_target=orm_quest.progress_target,
        xp_reward=orm_quest.xp_reward,
        is_completed=orm_quest.is_completed,
        is_active=orm_quest.is_active,
        period_start=orm_quest.period_start,
        period_end=orm_quest.period_end,
        completed_at=orm_quest.completed_at,
    )


def badge_to_domain(orm_badge: ORMBadge) -> domain.Badge:
    """Convert SQLAlchemy Badge model to domain Badge entity."""
    return domain.Badge(
        id=orm_badge.id,
        user_id=orm_badge.user_id,
        badge_key=orm_badge.badge_key,
        name=orm_badge.name,
        requirement_type=domain.BadgeRequirement(orm_badge.requirement_type),
        requirement_value=orm_badge.requirement_value,
        is_unlocked=orm_badge.is_unlocked,
        unlocked_at=orm_badge.unlocked_at,
    )
