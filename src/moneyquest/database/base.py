"""Abstract database interface.

Every write commits before returning, so a read issued afterwards observes
it. Multi-row writes (batch imports, reconcile-with-create, loan payments)
commit all of their rows or none of them.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from moneyquest.domain.entities import (
    Badge,
    BadgeRequirement,
    BankLine,
    BankLineStatus,
    FinancialMood,
    Loan,
    LoanStatus,
    LoanType,
    MatchType,
    ParsedBankLine,
    Profile,
    Quest,
    QuestType,
    Reconciliation,
    Transaction,
    TransactionDraft,
    TransactionType,
    Wallet,
)


class Database(ABC):
    """Abstract database interface for moneyquest."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Wallet operations
    @abstractmethod
    def create_wallet(
        self, user_id: str, name: str, currency: str, initial_balance: Decimal
    ) -> int:
        """Create a new wallet. Returns wallet ID."""
        pass

    @abstractmethod
    def get_wallet(self, wallet_id: int) -> Optional[Wallet]:
        """Get wallet by ID, with its current balance."""
        pass

    @abstractmethod
    def list_wallets(self, user_id: str, include_archived: bool = False) -> list[Wallet]:
        """List wallets of a user ordered by name."""
        pass

    @abstractmethod
    def archive_wallet(self, wallet_id: int) -> None:
        """Mark a wallet inactive."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(self, draft: TransactionDraft) -> int:
        """Create a ledger entry. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        user_id: str,
        wallet_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        type: Optional[TransactionType] = None,
        subtype_prefix: Optional[str] = None,
    ) -> list[Transaction]:
        """List transactions, newest first."""
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, **fields) -> None:
        """Update the given columns of a transaction."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    # Bank line operations
    @abstractmethod
    def create_bank_lines(
        self,
        lines: Sequence[ParsedBankLine],
        import_batch_id: str,
        source_file_name: Optional[str],
    ) -> list[int]:
        """Insert a batch of bank lines in one commit. Returns their IDs.

        Raises:
            ConflictError: If a fingerprint already exists for the wallet
        """
        pass

    @abstractmethod
    def get_bank_line(self, bank_line_id: int) -> Optional[BankLine]:
        """Get bank line by ID."""
        pass

    @abstractmethod
    def list_bank_lines(
        self,
        wallet_id: int,
        status: Optional[BankLineStatus] = None,
        import_batch_id: Optional[str] = None,
    ) -> list[BankLine]:
        """List bank lines of a wallet, newest first."""
        pass

    @abstractmethod
    def get_existing_fingerprints(self, wallet_id: int) -> set[str]:
        """Return every fingerprint already stored for a wallet."""
        pass

    @abstractmethod
    def update_bank_line_status(self, bank_line_id: int, status: BankLineStatus) -> None:
        """Set the status of a bank line."""
        pass

    @abstractmethod
    def delete_import_batch(self, wallet_id: int, import_batch_id: str) -> int:
        """Delete a batch's lines and their reconciliations. Returns lines deleted."""
        pass

    # Reconciliation operations
    @abstractmethod
    def create_reconciliation(
        self,
        bank_line_id: int,
        transaction_id: int,
        match_type: MatchType,
        confidence_score: Optional[int],
    ) -> int:
        """Link a line to a transaction and mark the line reconciled.

        Raises:
            ReconciliationError: ALREADY_RECONCILED if either side is taken
        """
        pass

    @abstractmethod
    def create_transaction_and_reconcile(
        self, bank_line_id: int, draft: TransactionDraft
    ) -> int:
        """Create a transaction and reconcile the line to it in one commit.

        The line status becomes ``created``. Returns the transaction ID.
        """
        pass

    @abstractmethod
    def delete_reconciliation(self, bank_line_id: int) -> None:
        """Remove a line's reconciliation (if any) and set it back to pending."""
        pass

    @abstractmethod
    def get_reconciliation_for_line(self, bank_line_id: int) -> Optional[Reconciliation]:
        """Get the active reconciliation of a bank line."""
        pass

    @abstractmethod
    def get_reconciliation_for_transaction(self, transaction_id: int) -> Optional[Reconciliation]:
        """Get the reconciliation a transaction takes part in."""
        pass

    @abstractmethod
    def get_reconciled_transaction_ids(self, wallet_id: int) -> set[int]:
        """Return IDs of the wallet's transactions already reconciled."""
        pass

    # Loan operations
    @abstractmethod
    def create_loan(
        self,
        user_id: str,
        wallet_id: Optional[int],
        lender: str,
        loan_type: LoanType,
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
        pass

    @abstractmethod
    def get_loan(self, loan_id: int) -> Optional[Loan]:
        """Get loan by ID."""
        pass

    @abstractmethod
    def list_loans(self, user_id: str, status: Optional[LoanStatus] = None) -> list[Loan]:
        """List loans of a user."""
        pass

    @abstractmethod
    def record_loan_payments(
        self,
        loan_id: int,
        expected_paid: int,
        installments_paid: int,
        outstanding_balance: Decimal,
        status: LoanStatus,
        payments: Sequence[TransactionDraft],
    ) -> list[int]:
        """Apply payments if the loan still has ``expected_paid`` installments paid.

        The loan update and the payment transactions commit together.
        Returns the created transaction IDs.

        Raises:
            LoanError: OUT_OF_ORDER_INSTALLMENT if another payment got there first
        """
        pass

    @abstractmethod
    def delete_loan(self, loan_id: int) -> None:
        """Delete a loan."""
        pass

    # Profile operations
    @abstractmethod
    def create_profile(self, user_id: str, display_name: str) -> None:
        """Create a gamification profile."""
        pass

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get profile by user ID."""
        pass

    @abstractmethod
    def increment_xp(self, user_id: str, delta: int) -> int:
        """Atomically add XP. Returns the new persisted total."""
        pass

    @abstractmethod
    def update_profile_activity(
        self,
        user_id: str,
        streak: int,
        last_active_date: Optional[date],
        total_income: Decimal,
        total_expenses: Decimal,
        financial_mood: FinancialMood,
    ) -> None:
        """Store streak, totals and mood of a profile."""
        pass

    # Quest operations
    @abstractmethod
    def create_quest(
        self,
        user_id: str,
        quest_key: str,
        title: str,
        description: str,
        type: QuestType,
        progress_target: int,
        xp_reward: int,
        period_start: Optional[date],
        period_end: Optional[date],
    ) -> int:
        """Create an active quest. Returns quest ID."""
        pass

    @abstractmethod
    def list_quests(self, user_id: str, active_only: bool = True) -> list[Quest]:
        """List quests of a user."""
        pass

    @abstractmethod
    def update_quest_progress(self, quest_id: int, progress_current: int) -> None:
        """Store recomputed quest progress."""
        pass

    @abstractmethod
    def complete_quest(self, quest_id: int) -> bool:
        """Mark a quest completed unless it already is. Returns True if this call did it."""
        pass

    @abstractmethod
    def deactivate_quest(self, quest_id: int) -> None:
        """Mark a quest inactive."""
        pass

    # Badge operations
    @abstractmethod
    def create_badge(
        self,
        user_id: str,
        badge_key: str,
        name: str,
        requirement_type: BadgeRequirement,
        requirement_value: int,
    ) -> int:
        """Create a locked badge. Returns badge ID."""
        pass

    @abstractmethod
    def list_badges(self, user_id: str) -> list[Badge]:
        """List badges of a user."""
        pass

    @abstractmethod
    def unlock_badge(self, badge_id: int) -> bool:
        """Unlock a badge unless it already is. Returns True if this call did it."""
        pass
