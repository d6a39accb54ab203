"""Generic SQLAlchemy database implementation."""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moneyquest.database.base import Database
from moneyquest.database.models import (
    Badge,
    BankLine,
    Loan,
    Profile,
    Quest,
    Reconciliation,
    Transaction,
    Wallet,
    create_session_factory,
)
from moneyquest.database.mappers import (
    badge_to_domain,
    bank_line_to_domain,
    loan_to_domain,
    profile_to_domain,
    quest_to_domain,
    reconciliation_to_domain,
    transaction_to_domain,
    wallet_to_domain,
)
from moneyquest.domain import entities as domain
from moneyquest.domain.errors import (
    ConflictError,
    LoanError,
    LoanErrorKind,
    NotFoundError,
    ReconciliationError,
    ReconciliationErrorKind,
    bank_line_not_found,
    duplicate_wallet_name,
    loan_not_found,
    profile_not_found,
    transaction_already_reconciled,
    transaction_not_found,
    wallet_not_found,
)
from moneyquest.logging_setup import get_logger

logger = get_logger(__name__)

_TRANSACTION_FIELDS = {"date", "type", "amount", "category", "description", "subtype", "supplier", "xp_earned"}


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.session_factory = create_session_factory(database_url)
        self._session: Optional[Session] = None

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def _commit(self, session: Session) -> None:
        """Commit, rolling the session back if the commit fails."""
        try:
            session.commit()
        except Exception:
            session.rollback()
            raise

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        # Schema is created automatically by create_session_factory
        pass

    # Wallet operations
    def create_wallet(
        self, user_id: str, name: str, currency: str, initial_balance: Decimal
    ) -> int:
        """Create a new wallet. Returns wallet ID."""
        session = self._get_session()
        wallet = Wallet(
            user_id=user_id, name=name, currency=currency, initial_balance=initial_balance
        )
        session.add(wallet)
        try:
            self._commit(session)
        except IntegrityError:
            raise ConflictError(duplicate_wallet_name(name))
        return wallet.id

    def _wallet_balance(self, session: Session, orm_wallet: Wallet) -> Decimal:
        rows = session.query(Transaction.type, Transaction.amount).filter(
            Transaction.wallet_id == orm_wallet.id
        )
        balance = Decimal(str(orm_wallet.initial_balance or 0))
        for txn_type, amount in rows:
            amount = Decimal(str(amount))
            balance += amount if txn_type == domain.TransactionType.INCOME.value else -amount
        return balance

    def get_wallet(self, wallet_id: int) -> Optional[domain.Wallet]:
        """Get wallet by ID, with its current balance."""
        session = self._get_session()
        wallet = session.query(Wallet).filter(Wallet.id == wallet_id).first()
        if wallet is None:
            return None
        return wallet_to_domain(wallet, self._wallet_balance(session, wallet))

    def list_wallets(self, user_id: str, include_archived: bool = False) -> list[domain.Wallet]:
        """List wallets of a user ordered by name."""
        session = self._get_session()
        query = session.query(Wallet).filter(Wallet.user_id == user_id)
        if not include_archived:
            query = query.filter(Wallet.is_active.is_(True))
        return [
            wallet_to_domain(w, self._wallet_balance(session, w))
            for w in query.order_by(Wallet.name).all()
        ]

    def archive_wallet(self, wallet_id: int) -> None:
        """Mark a wallet inactive."""
        session = self._get_session()
        wallet = session.query(Wallet).filter(Wallet.id == wallet_id).first()
        if wallet is None:
            raise NotFoundError(wallet_not_found(wallet_id))
        wallet.is_active = False
        self._commit(session)

    # Transaction operations
    def _new_transaction(self, draft: domain.TransactionDraft) -> Transaction:
        return Transaction(
            user_id=draft.user_id,
            wallet_id=draft.wallet_id,
            date=draft.date,
            type=draft.type.value,
            amount=draft.amount,
            category=draft.category,
            description=draft.description,
            currency=draft.currency,
            subtype=draft.subtype,
            supplier=draft.supplier,
            xp_earned=draft.xp_earned,
        )

    def create_transaction(self, draft: domain.TransactionDraft) -> int:
        """Create a ledger entry. Returns transaction ID."""
        session = self._get_session()
        txn = self._new_transaction(draft)
        session.add(txn)
        self._commit(session)
        return txn.id

    def get_transaction(self, transaction_id: int) -> Optional[domain.Transaction]:
        """Get transaction by ID."""
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if txn is None:
            return None
        return transaction_to_domain(txn)

    def list_transactions(
        self,
        user_id: str,
        wallet_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        type: Optional[domain.TransactionType] = None,
        subtype_prefix: Optional[str] = None,
    ) -> list[domain.Transaction]:
        """List transactions, newest first."""
        session = self._get_session()
        query = session.query(Transaction).filter(Transaction.user_id == user_id)
        if wallet_id is not None:
            query = query.filter(Transaction.wallet_id == wallet_id)
        if start_date is not None:
            query = query.filter(Transaction.date >= start_date)
        if end_date is not None:
            query = query.filter(Transaction.date <= end_date)
        if type is not None:
            query = query.filter(Transaction.type == type.value)
        if subtype_prefix is not None:
            query = query.filter(Transaction.subtype.startswith(subtype_prefix, autoescape=True))
        txns = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
        return [transaction_to_domain(t) for t in txns]

    def update_transaction(self, transaction_id: int, **fields) -> None:
        """Update the given columns of a transaction."""
        unknown = set(fields) - _TRANSACTION_FIELDS
        if unknown:
            raise ValueError(f"Cannot update transaction fields: {', '.join(sorted(unknown))}")
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        for name, value in fields.items():
            if isinstance(value, domain.TransactionType):
                value = value.value
            setattr(txn, name, value)
        self._commit(session)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        session = self._get_session()
        txn = session.query(Transaction).filter(Transaction.id == transaction_id).first()
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        session.delete(txn)
        self._commit(session)

    # Bank line operations
    def create_bank_lines(
        self,
        lines: Sequence[domain.ParsedBankLine],
        import_batch_id: str,
        source_file_name: Optional[str],
    ) -> list[int]:
        """Insert a batch of bank lines in one commit. Returns their IDs."""
        session = self._get_session()
        orm_lines = [
            BankLine(
                wallet_id=line.wallet_id,
                transaction_date=line.transaction_date,
                description=line.description,
                amount=line.amount,
                bank_reference=line.bank_reference,
                counterparty=line.counterparty,
                fingerprint=line.fingerprint,
                import_batch_id=import_batch_id,
                source_file_name=source_file_name,
                status=domain.BankLineStatus.PENDING.value,
            )
            for line in lines
        ]
        session.add_all(orm_lines)
        try:
            self._commit(session)
        except IntegrityError:
            raise ConflictError("Statement contains lines that were already imported")
        return [line.id for line in orm_lines]

    def get_bank_line(self, bank_line_id: int) -> Optional[domain.BankLine]:
        """Get bank line by ID."""
        session = self._get_session()
        line = session.query(BankLine).filter(BankLine.id == bank_line_id).first()
        if line is None:
            return None
        return bank_line_to_domain(line)

    def list_bank_lines(
        self,
        wallet_id: int,
        status: Optional[domain.BankLineStatus] = None,
        import_batch_id: Optional[str] = None,
    ) -> list[domain.BankLine]:
        """List bank lines of a wallet, newest first."""
        session = self._get_session()
        query = session.query(BankLine).filter(BankLine.wallet_id == wallet_id)
        if status is not None:
            query = query.filter(BankLine.status == status.value)
        if import_batch_id is not None:
            query = query.filter(BankLine.import_batch_id == import_batch_id)
        lines = query.order_by(BankLine.transaction_date.desc(), BankLine.id.desc()).all()
        return [bank_line_to_domain(line) for line in lines]

    def get_existing_fingerprints(self, wallet_id: int) -> set[str]:
        """Return every fingerprint already stored for a wallet."""
        session = self._get_session()
        rows = session.query(BankLine.fingerprint).filter(BankLine.wallet_id == wallet_id)
        return {fingerprint for (fingerprint,) in rows}

    def update_bank_line_status(self, bank_line_id: int, status: domain.BankLineStatus) -> None:
        """Set the status of a bank line."""
        session = self._get_session()
        line = session.query(BankLine).filter(BankLine.id == bank_line_id).first()
        if line is None:
            raise NotFoundError(bank_line_not_found(bank_line_id))
        line.status = status.value
        self._commit(session)

    def delete_import_batch(self, wallet_id: int, import_batch_id: str) -> int:
        """Delete a batch's lines and their reconciliations. Returns lines deleted."""
        session = self._get_session()
        line_ids = [
            line_id
            for (line_id,) in session.query(BankLine.id).filter(
                BankLine.wallet_id == wallet_id, BankLine.import_batch_id == import_batch_id
            )
        ]
        if not line_ids:
            return 0
        session.query(Reconciliation).filter(
            Reconciliation.bank_line_id.in_(line_ids)
        ).delete(synchronize_session=False)
        session.query(BankLine).filter(BankLine.id.in_(line_ids)).delete(synchronize_session=False)
        self._commit(session)
        return len(line_ids)

    # Reconciliation operations
    def create_reconciliation(
        self,
        bank_line_id: int,
        transaction_id: int,
        match_type: domain.MatchType,
        confidence_score: Optional[int],
    ) -> int:
        """Link a line to a transaction and mark the line reconciled."""
        session = self._get_session()
        line = session.query(BankLine).filter(BankLine.id == bank_line_id).first()
        if line is None:
            raise NotFoundError(bank_line_not_found(bank_line_id))
        rec = Reconciliation(
            bank_line_id=bank_line_id,
            transaction_id=transaction_id,
            match_type=match_type.value,
            confidence_score=confidence_score,
        )
        session.add(rec)
        line.status = domain.BankLineStatus.RECONCILED.value
        try:
            self._commit(session)
        except IntegrityError:
            raise ReconciliationError(
                ReconciliationErrorKind.ALREADY_RECONCILED,
                transaction_already_reconciled(transaction_id),
            )
        return rec.id

    def create_transaction_and_reconcile(
        self, bank_line_id: int, draft: domain.TransactionDraft
    ) -> int:
        """Create a transaction and reconcile the line to it in one commit."""
        session = self._get_session()
        line = session.query(BankLine).filter(BankLine.id == bank_line_id).first()
        if line is None:
            raise NotFoundError(bank_line_not_found(bank_line_id))
        txn = self._new_transaction(draft)
        try:
            session.add(txn)
            session.flush()
            session.add(
                Reconciliation(
                    bank_line_id=bank_line_id,
                    transaction_id=txn.id,
                    match_type=domain.MatchType.CREATED.value,
                    confidence_score=None,
                )
            )
            line.status = domain.BankLineStatus.CREATED.value
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ReconciliationError(
                ReconciliationErrorKind.ALREADY_RECONCILED,
                f"Bank line {bank_line_id} is already reconciled",
            )
        except Exception:
            session.rollback()
            raise
        return txn.id

    def delete_reconciliation(self, bank_line_id: int) -> None:
        """Remove a line's reconciliation (if any) and set it back to pending."""
        session = self._get_session()
        line = session.query(BankLine).filter(BankLine.id == bank_line_id).first()
        if line is None:
            raise NotFoundError(bank_line_not_found(bank_line_id))
        session.query(Reconciliation).filter(
            Reconciliation.bank_line_id == bank_line_id
        ).delete(synchronize_session=False)
        line.status = domain.BankLineStatus.PENDING.value
        self._commit(session)

    def get_reconciliation_for_line(self, bank_line_id: int) -> Optional[domain.Reconciliation]:
        """Get the active reconciliation of a bank line."""
        session = self._get_session()
        rec = session.query(Reconciliation).filter(
            Reconciliation.bank_line_id == bank_line_id
        ).first()
        if rec is None:
            return None
        return reconciliation_to_domain(rec)

    def get_reconciliation_for_transaction(
        self, transaction_id: int
    ) -> Optional[domain.Reconciliation]:
        """Get the reconciliation a transaction takes part in."""
        session = self._get_session()
        rec = session.query(Reconciliation).filter(
            Reconciliation.transaction_id == transaction_id
        ).first()
        if rec is None:
            return None
        return reconciliation_to_domain(rec)

    def get_reconciled_transaction_ids(self, wallet_id: int) -> set[int]:
        """Return IDs of the wallet's transactions already reconciled."""
        session = self._get_session()
        rows = (
            session.query(Reconciliation.transaction_id)
            .join(Transaction, Transaction.id == Reconciliation.transaction_id)
            .filter(Transaction.wallet_id == wallet_id)
        )
        return {txn_id for (txn_id,) in rows}

    # Loan operations
    def create_loan(
        self,
        user_id: str,
        wallet_id: Optional[int],
        lender: str,
        loan_type: domain.LoanType,
        total_amount: Decimal,
        installment_count: int,
        installment_amount: Decimal,
        interest_rate: Optional[Decimal],
        first_due_date: date,
        contract_date: date,
        currency: str,
        notes: Optional[str],
    ) -> int:
        """Create a loan with nothing paid. Returns loan ID."""
        session = self._get_session()
        loan = Loan(
            user_id=user_id,
            wallet_id=wallet_id,
            lender=lender,
            loan_type=loan_type.value,
            total_amount=total_amount,
            installment_count=installment_count,
            installments_paid=0,
            installment_amount=installment_amount,
            interest_rate=interest_rate,
            first_due_date=first_due_date,
            contract_date=contract_date,
            outstanding_balance=total_amount,
            status=domain.LoanStatus.ACTIVE.value,
            currency=currency,
            notes=notes,
        )
        session.add(loan)
        self._commit(session)
        return loan.id

    def get_loan(self, loan_id: int) -> Optional[domain.Loan]:
        """Get loan by ID."""
        session = self._get_session()
        loan = session.query(Loan).filter(Loan.id == loan_id).first()
        if loan is None:
            return None
        return loan_to_domain(loan)

    def list_loans(
        self, user_id: str, status: Optional[domain.LoanStatus] = None
    ) -> list[domain.Loan]:
        """List loans of a user."""
        session = self._get_session()
        query = session.query(Loan).filter(Loan.user_id == user_id)
        if status is not None:
            query = query.filter(Loan.status == status.value)
        return [loan_to_domain(loan) for loan in query.order_by(Loan.first_due_date, Loan.id).all()]

    def record_loan_payments(
        self,
        loan_id: int,
        expected_paid: int,
        installments_paid: int,
        outstanding_balance: Decimal,
        status: domain.LoanStatus,
        payments: Sequence[domain.TransactionDraft],
    ) -> list[int]:
        """Apply payments if the loan still has ``expected_paid`` installments paid."""
        session = self._get_session()
        try:
            updated = (
                session.query(Loan)
                .filter(Loan.id == loan_id, Loan.installments_paid == expected_paid)
                .update(
                    {
                        Loan.installments_paid: installments_paid,
                        Loan.outstanding_balance: outstanding_balance,
                        Loan.status: status.value,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                session.rollback()
                raise LoanError(
                    LoanErrorKind.OUT_OF_ORDER_INSTALLMENT,
                    f"Loan {loan_id} changed while paying; expected {expected_paid} installments paid",
                )
            txns = [self._new_transaction(draft) for draft in payments]
            session.add_all(txns)
            session.commit()
        except LoanError:
            raise
        except Exception:
            session.rollback()
            raise
        return [txn.id for txn in txns]

    def delete_loan(self, loan_id: int) -> None:
        """Delete a loan."""
        session = self._get_session()
        loan = session.query(Loan).filter(Loan.id == loan_id).first()
        if loan is None:
            raise NotFoundError(loan_not_found(loan_id))
        session.delete(loan)
        self._commit(session)

    # Profile operations
    def create_profile(self, user_id: str, display_name: str) -> None:
        """Create a gamification profile."""
        session = self._get_session()
        session.add(Profile(user_id=user_id, display_name=display_name))
        try:
            self._commit(session)
        except IntegrityError:
            raise ConflictError(f"Profile for user '{user_id}' already exists")

    def get_profile(self, user_id: str) -> Optional[domain.Profile]:
        """Get profile by user ID."""
        session = self._get_session()
        profile = session.query(Profile).filter(Profile.user_id == user_id).first()
        if profile is None:
            return None
        return profile_to_domain(profile)

    def increment_xp(self, user_id: str, delta: int) -> int:
        """Atomically add XP. Returns the new persisted total."""
        session = self._get_session()
        updated = (
            session.query(Profile)
            .filter(Profile.user_id == user_id)
            .update({Profile.xp: Profile.xp + delta}, synchronize_session=False)
        )
        if updated == 0:
            session.rollback()
            raise NotFoundError(profile_not_found(user_id))
        self._commit(session)
        (xp,) = session.query(Profile.xp).filter(Profile.user_id == user_id).one()
        return xp

    def update_profile_activity(
        self,
        user_id: str,
        streak: int,
        last_active_date: Optional[date],
        total_income: Decimal,
        total_expenses: Decimal,
        financial_mood: domain.FinancialMood,
    ) -> None:
        """Store streak, totals and mood of a profile."""
        session = self._get_session()
        profile = session.query(Profile).filter(Profile.user_id == user_id).first()
        if profile is None:
            raise NotFoundError(profile_not_found(user_id))
        profile.streak = streak
        profile.last_active_date = last_active_date
        profile.total_income = total_income
        profile.total_expenses = total_expenses
        profile.financial_mood = financial_mood.value
        self._commit(session)

    # Quest operations
    def create_quest(
        self,
        user_id: str,
        quest_key: str,
        title: str,
        description: str,
        type: domain.QuestType,
        progress_target: int,
        xp_reward: int,
        period_start: Optional[date],
        period_end: Optional[date],
    ) -> int:
        """Create an active quest. Returns quest ID."""
        session = self._get_session()
        quest = Quest(
            user_id=user_id,
            quest_key=quest_key,
            title=title,
            description=description,
            type=type.value,
            progress_current=0,
            progress_target=progress_target,
            xp_reward=xp_reward,
            period_start=period_start,
            period_end=period_end,
        )
        session.add(quest)
        self._commit(session)
        return quest.id

    def list_quests(self, user_id: str, active_only: bool = True) -> list[domain.Quest]:
        """List quests of a user."""
        session = self._get_session()
        query = session.query(Quest).filter(Quest.user_id == user_id)
        if active_only:
            query = query.filter(Quest.is_active.is_(True))
        return [quest_to_domain(q) for q in query.order_by(Quest.id).all()]

    def update_quest_progress(self, quest_id: int, progress_current: int) -> None:
        """Store recomputed quest progress."""
        session = self._get_session()
        session.query(Quest).filter(Quest.id == quest_id).update(
            {Quest.progress_current: progress_current}, synchronize_session=False
        )
        self._commit(session)

    def complete_quest(self, quest_id: int) -> bool:
        """Mark a quest completed unless it already is."""
        session = self._get_session()
        updated = (
            session.query(Quest)
            .filter(Quest.id == quest_id, Quest.is_completed.is_(False))
            .update(
                {Quest.is_completed: True, Quest.completed_at: datetime.now(UTC)},
                synchronize_session=False,
            )
        )
        self._commit(session)
        return updated == 1

    def deactivate_quest(self, quest_id: int) -> None:
        """Mark a quest inactive."""
        session = self._get_session()
        session.query(Quest).filter(Quest.id == quest_id).update(
            {Quest.is_active: False}, synchronize_session=False
        )
        self._commit(session)

    # Badge operations
    def create_badge(
        self,
        user_id: str,
        badge_key: str,
        name: str,
        requirement_type: domain.BadgeRequirement,
        requirement_value: int,
    ) -> int:
        """Create a locked badge. Returns badge ID."""
        session = self._get_session()
        badge = Badge(
            user_id=user_id,
            badge_key=badge_key,
            name=name,
            requirement_type=requirement_type.value,
            requirement_value=requirement_value,
        )
        session.add(badge)
        try:
            self._commit(session)
        except IntegrityError:
            raise ConflictError(f"Badge '{badge_key}' already exists for user '{user_id}'")
        return badge.id

    def list_badges(self, user_id: str) -> list[domain.Badge]:
        """List badges of a user."""
        session = self._get_session()
        badges = session.query(Badge).filter(Badge.user_id == user_id).order_by(Badge.id).all()
        return [badge_to_domain(b) for b in badges]

    def unlock_badge(self, badge_id: int) -> bool:
        """Unlock a badge unless it already is."""
        session = self._get_session()
        updated = (
            session.query(Badge)
            .filter(Badge.id == badge_id, Badge.is_unlocked.is_(False))
            .update(
                {Badge.is_unlocked: True, Badge.unlocked_at: datetime.now(UTC)},
                synchronize_session=False,
            )
        )
        self._commit(session)
        return updated == 1
