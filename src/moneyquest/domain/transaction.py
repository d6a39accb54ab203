"""Transaction (ledger) domain service."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from moneyquest.database.base import Database
from moneyquest.domain.entities import (
    ActivityResult,
    Transaction as TransactionEntity,
    TransactionDraft,
    TransactionType,
)
from moneyquest.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    transaction_not_found,
)
from moneyquest.domain.loan import LOAN_TAG_PREFIX
from moneyquest.domain.progress import ProgressService
from moneyquest.domain.wallet import WalletService

# Fields a reconciled entry still accepts without an administrative override
RECONCILED_EDITABLE_FIELDS = frozenset({"category", "description", "supplier"})
EDITABLE_FIELDS = RECONCILED_EDITABLE_FIELDS | {"date", "type", "amount", "subtype"}
# Fields that must stay in step with the loan an installment entry pays
LOAN_LOCKED_FIELDS = frozenset({"amount", "type", "subtype"})


def is_loan_payment(txn: TransactionEntity) -> bool:
    return bool(txn.subtype) and txn.subtype.startswith(LOAN_TAG_PREFIX)


class TransactionService:
    """Service for managing ledger entries."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.wallets = WalletService(db)
        self.progress = ProgressService(db)

    def build_draft(
        self,
        user_id: str,
        wallet_id: int,
        date: date,
        type: TransactionType,
        amount: Decimal,
        category: str = "",
        description: str = "",
        currency: Optional[str] = None,
        subtype: Optional[str] = None,
        supplier: Optional[str] = None,
    ) -> TransactionDraft:
        """Validate transaction input and return a draft ready to store.

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the wallet does not belong to the user
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError(f"Transaction amount must be positive, got {amount}")
        wallet = self.wallets.require_wallet(user_id, wallet_id)
        return TransactionDraft(
            user_id=user_id,
            wallet_id=wallet_id,
            date=date,
            type=TransactionType(type),
            amount=amount.quantize(Decimal("0.01")),
            category=category.strip(),
            description=description.strip(),
            currency=currency or wallet.currency,
            subtype=subtype,
            supplier=supplier,
        )

    def create_transaction(
        self,
        user_id: str,
        wallet_id: int,
        date: date,
        type: TransactionType,
        amount: Decimal,
        category: str = "",
        description: str = "",
        currency: Optional[str] = None,
        subtype: Optional[str] = None,
        supplier: Optional[str] = None,
    ) -> int:
        """Create a ledger entry without touching progress.

        Args:
            user_id: Owner of the entry
            wallet_id: Wallet ID
            date: Transaction date
            type: INCOME or EXPENSE
            amount: Positive amount
            category: Category name
            description: Free text description
            currency: Currency code (defaults to the wallet currency)
            subtype: Optional tag such as ``transfer_out`` or ``loan:3:2``
            supplier: Optional payee or payer

        Returns:
            Transaction ID

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the wallet does not belong to the user
        """
        draft = self.build_draft(
            user_id, wallet_id, date, type, amount, category, description, currency, subtype, supplier
        )
        return self.db.create_transaction(draft)

    def add_transaction(
        self, user_id: str, *args, today: Optional[date] = None, **kwargs
    ) -> tuple[int, ActivityResult]:
        """Create a ledger entry and apply its progress effects.

        Takes the same arguments as create_transaction.

        Returns:
            Tuple of (transaction ID, ActivityResult)
        """
        transaction_id = self.create_transaction(user_id, *args, **kwargs)
        return transaction_id, self.progress.record_activity(user_id, transaction_id, today)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def require_transaction(self, user_id: str, transaction_id: int) -> TransactionEntity:
        txn = self.db.get_transaction(transaction_id)
        if txn is None or txn.user_id != user_id:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        user_id: str,
        wallet_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        type: Optional[TransactionType] = None,
    ) -> list[TransactionEntity]:
        """List ledger entries, newest first."""
        return self.db.list_transactions(
            user_id, wallet_id=wallet_id, start_date=start_date, end_date=end_date, type=type
        )

    def is_reconciled(self, transaction_id: int) -> bool:
        return self.db.get_reconciliation_for_transaction(transaction_id) is not None

    def update_transaction(
        self,
        user_id: str,
        transaction_id: int,
        administrative: bool = False,
        **changes: Any,
    ) -> None:
        """Update fields of a ledger entry.

        Reconciled entries only accept category, description and supplier
        changes, and loan payment entries keep their amount, type and tag,
        unless ``administrative`` is set.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If a field is unknown or the amount is not positive
            ConflictError: If a reconciled or loan payment entry would change
                protected fields
        """
        txn = self.require_transaction(user_id, transaction_id)
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")
        if "amount" in changes:
            changes["amount"] = Decimal(changes["amount"])
            if changes["amount"] <= 0:
                raise ValidationError("Transaction amount must be positive")

        protected = set(changes) - RECONCILED_EDITABLE_FIELDS
        if protected and not administrative and self.is_reconciled(transaction_id):
            raise ConflictError(
                f"Transaction {transaction_id} is reconciled; cannot change "
                f"{', '.join(sorted(protected))}"
            )
        loan_locked = LOAN_LOCKED_FIELDS & set(changes)
        if loan_locked and not administrative and is_loan_payment(txn):
            raise ConflictError(
                f"Transaction {transaction_id} pays a loan installment; cannot change "
                f"{', '.join(sorted(loan_locked))}"
            )

        self.db.update_transaction(transaction_id, **changes)
        if {"amount", "type"} & set(changes):
            self.progress.refresh_totals(user_id)

    def delete_transaction(self, user_id: str, transaction_id: int) -> None:
        """Delete a ledger entry.

        Raises:
            NotFoundError: If the transaction does not exist
            DependencyError: If the entry is reconciled with a bank line or
                pays a loan installment
        """
        txn = self.require_transaction(user_id, transaction_id)
        if self.is_reconciled(transaction_id):
            raise DependencyError(
                f"Cannot delete transaction {transaction_id}: it is reconciled with a bank line. "
                "Undo the reconciliation first."
            )
        if is_loan_payment(txn):
            raise DependencyError(
                f"Cannot delete transaction {transaction_id}: it pays loan installment "
                f"'{txn.subtype}' and the loan still counts it as paid."
            )
        self.db.delete_transaction(transaction_id)
        self.progress.refresh_totals(user_id)

    def get_summary(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        wallet_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Income and expense totals per category over a period.

        Returns:
            Dict with ``income``, ``expense``, ``net`` and ``categories``, a list
            of ``{"category", "type", "total", "count"}`` sorted by total
            descending
        """
        transactions = self.db.list_transactions(
            user_id, wallet_id=wallet_id, start_date=start_date, end_date=end_date
        )
        income = Decimal("0")
        expense = Decimal("0")
        groups: dict[tuple[str, TransactionType], dict[str, Any]] = {}
        for txn in transactions:
            if txn.type == TransactionType.INCOME:
                income += txn.amount
            else:
                expense += txn.amount
            key = (txn.category or "Uncategorized", txn.type)
            group = groups.setdefault(
                key, {"category": key[0], "type": txn.type, "total": Decimal("0"), "count": 0}
            )
            group["total"] += txn.amount
            group["count"] += 1

        return {
            "income": income,
            "expense": expense,
            "net": income - expense,
            "categories": sorted(groups.values(), key=lambda g: (-g["total"], g["category"])),
        }
