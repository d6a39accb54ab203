"""Bank statement reconciliation.

Scores ledger entries against a bank line, and moves bank lines through
their states::

    pending -> reconciled   (suggestion accepted or manual pick)
    pending -> created      (new ledger entry created from the line)
    pending -> ignored
    reconciled | created | ignored -> pending   (undo)
"""

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from rapidfuzz.distance import JaroWinkler

from moneyquest.database.base import Database
from moneyquest.domain.entities import (
    ActivityResult,
    BankLine,
    BankLineStatus,
    MatchSuggestion,
    MatchType,
    ReconciliationStats,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from moneyquest.domain.errors import (
    ReconciliationError,
    ReconciliationErrorKind,
    bank_line_not_found,
    transaction_already_reconciled,
    transaction_not_found,
)
from moneyquest.domain.progress import ProgressService
from moneyquest.domain.wallet import WalletService
from moneyquest.logging_setup import get_logger

logger = get_logger(__name__)

# Internal movements never correspond to a bank line of their own
EXCLUDED_SUBTYPES = frozenset({"transfer_out", "transfer_in", "card_payment", "cash_adjustment"})

AMOUNT_TOLERANCE = Decimal("0.01")
MAX_DAY_DISTANCE = 10
# A matching amount scores 40 and any date inside the window adds at least 1,
# so every candidate inside the window clears this floor.
MIN_CONFIDENCE = 40
MAX_SUGGESTIONS = 5
MANUAL_SEARCH_LIMIT = 50

AMOUNT_POINTS = 40
SIMILAR_TEXT_POINTS = 25
PARTIAL_TEXT_POINTS = 10
CATEGORY_POINTS = 5

_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"[^\W_]{3,}")


def direction_for(amount: Decimal) -> TransactionType:
    """Ledger type matching a signed bank amount (zero counts as a credit)."""
    return TransactionType.INCOME if amount >= 0 else TransactionType.EXPENSE


def is_candidate(line: BankLine, txn: Transaction, reconciled_ids: Iterable[int] = ()) -> bool:
    """Whether txn may be matched to line at all."""
    return (
        txn.wallet_id == line.wallet_id
        and txn.type == direction_for(line.amount)
        and (txn.subtype or "") not in EXCLUDED_SUBTYPES
        and txn.id not in reconciled_ids
    )


def date_points(days: int) -> Optional[int]:
    """Points for a date distance in days; None beyond the matching window.

    Strictly decreasing: 30 on the same day, 25/20/15 within three days, then
    two points less per day down to 1 at ten days.
    """
    days = abs(days)
    if days > MAX_DAY_DISTANCE:
        return None
    if days <= 3:
        return 30 - 5 * days
    return 15 - 2 * (days - 3)


def _normalize(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub("", text).upper()


def text_similarity(a: Optional[str], b: Optional[str]) -> int:
    """Jaro-Winkler similarity of two descriptions on a 0-100 scale."""
    left, right = _normalize(a), _normalize(b)
    if not left or not right:
        return 0
    return int(round(JaroWinkler.normalized_similarity(left, right) * 100))


def _category_hit(category: str, description: str) -> bool:
    tokens = {t.casefold() for t in _TOKEN_RE.findall(category or "")}
    haystack = description.casefold()
    return any(token in haystack for token in tokens)


def score_candidate(line: BankLine, txn: Transaction) -> Optional[MatchSuggestion]:
    """Score one eligible ledger entry against a bank line.

    Returns None when the amounts differ or the dates are too far apart.
    """
    if abs(abs(line.amount) - txn.amount) >= AMOUNT_TOLERANCE:
        return None
    days = abs((txn.date - line.transaction_date).days)
    points_for_date = date_points(days)
    if points_for_date is None:
        return None

    confidence = AMOUNT_POINTS + points_for_date
    reasons = ["same amount"]
    if days == 0:
        reasons.append("same day")
    elif days <= 3:
        reasons.append("within 3 days")
    else:
        reasons.append(f"within {days} days")

    similarity = text_similarity(line.description, txn.description)
    if line.counterparty:
        similarity = max(similarity, text_similarity(line.counterparty, txn.supplier or txn.description))
    if similarity >= 80:
        confidence += SIMILAR_TEXT_POINTS
        reasons.append("similar description")
    elif similarity >= 50:
        confidence += PARTIAL_TEXT_POINTS
        reasons.append("partial description")

    if _category_hit(txn.category, line.description):
        confidence += CATEGORY_POINTS
        reasons.append("category match")

    return MatchSuggestion(
        transaction_id=txn.id,
        description=txn.description,
        amount=txn.amount,
        date=txn.date,
        category=txn.category,
        confidence=max(0, min(100, confidence)),
        match_reasons=tuple(reasons),
        day_distance=days,
    )


def calculate_suggestions(
    line: BankLine,
    transactions: Iterable[Transaction],
    reconciled_ids: Iterable[int] = (),
    limit: int = MAX_SUGGESTIONS,
) -> list[MatchSuggestion]:
    """Rank ledger entries that could explain a bank line.

    Ineligible entries and scores under MIN_CONFIDENCE are dropped. Results
    are ordered by confidence, then closer date, then lower id.
    """
    reconciled = set(reconciled_ids)
    suggestions = []
    for txn in transactions:
        if not is_candidate(line, txn, reconciled):
            continue
        suggestion = score_candidate(line, txn)
        if suggestion is not None and suggestion.confidence >= MIN_CONFIDENCE:
            suggestions.append(suggestion)
    suggestions.sort(key=lambda s: (-s.confidence, s.day_distance, s.transaction_id))
    return suggestions[:limit]


class ReconciliationService:
    """Service driving bank lines through the reconciliation state machine."""

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db
        self.wallets = WalletService(db)
        self.progress = ProgressService(db)

    def _require_line(self, user_id: str, bank_line_id: int) -> BankLine:
        line = self.db.get_bank_line(bank_line_id)
        if line is not None:
            wallet = self.db.get_wallet(line.wallet_id)
            if wallet is not None and wallet.user_id == user_id:
                return line
        raise ReconciliationError(
            ReconciliationErrorKind.BANK_LINE_NOT_FOUND, bank_line_not_found(bank_line_id)
        )

    def _require_pending(self, line: BankLine, action: str) -> None:
        if line.status != BankLineStatus.PENDING:
            raise ReconciliationError(
                ReconciliationErrorKind.INVALID_TRANSITION,
                f"Cannot {action} bank line {line.id}: it is {line.status.value}",
            )

    def list_lines(
        self, user_id: str, wallet_id: int, status: Optional[BankLineStatus] = None
    ) -> list[BankLine]:
        """List the wallet's bank lines, optionally filtered by status."""
        self.wallets.require_wallet(user_id, wallet_id)
        return self.db.list_bank_lines(wallet_id, status=status)

    def suggest_matches(
        self, user_id: str, bank_line_id: int, limit: int = MAX_SUGGESTIONS
    ) -> list[MatchSuggestion]:
        """Ranked ledger entries that could explain a pending bank line."""
        line = self._require_line(user_id, bank_line_id)
        self._require_pending(line, "match")
        transactions = self.db.list_transactions(
            user_id, wallet_id=line.wallet_id, type=direction_for(line.amount)
        )
        reconciled = self.db.get_reconciled_transaction_ids(line.wallet_id)
        return calculate_suggestions(line, transactions, reconciled, limit)

    def reconcile(
        self,
        user_id: str,
        bank_line_id: int,
        transaction_id: int,
        match_type: MatchType = MatchType.MANUAL,
        confidence_score: Optional[int] = None,
        today: Optional[date] = None,
    ) -> int:
        """Link a pending bank line to an existing ledger entry.

        Args:
            user_id: Acting user
            bank_line_id: Pending bank line
            transaction_id: Ledger entry the line corresponds to
            match_type: AUTO for accepted suggestions, MANUAL otherwise
            confidence_score: Suggestion confidence (AUTO only)
            today: Day of the action, for quest progress

        Returns:
            Reconciliation ID

        Raises:
            ReconciliationError: BANK_LINE_NOT_FOUND, INVALID_TRANSITION,
                TRANSACTION_NOT_FOUND, INELIGIBLE_TRANSACTION or
                ALREADY_RECONCILED
        """
        line = self._require_line(user_id, bank_line_id)
        self._require_pending(line, "reconcile")

        txn = self.db.get_transaction(transaction_id)
        if txn is None or txn.user_id != user_id:
            raise ReconciliationError(
                ReconciliationErrorKind.TRANSACTION_NOT_FOUND, transaction_not_found(transaction_id)
            )
        if not is_candidate(line, txn):
            raise ReconciliationError(
                ReconciliationErrorKind.INELIGIBLE_TRANSACTION,
                f"Transaction {transaction_id} cannot be matched to bank line {bank_line_id}: "
                "wallet, direction or subtype differ",
            )
        if self.db.get_reconciliation_for_transaction(transaction_id) is not None:
            raise ReconciliationError(
                ReconciliationErrorKind.ALREADY_RECONCILED,
                transaction_already_reconciled(transaction_id),
            )

        if match_type != MatchType.AUTO:
            confidence_score = None
        reconciliation_id = self.db.create_reconciliation(
            bank_line_id, transaction_id, match_type, confidence_score
        )
        logger.info(
            "Reconciled bank line %d with transaction %d (%s)",
            bank_line_id,
            transaction_id,
            match_type.value,
        )
        self.progress.refresh_quests(user_id, today)
        return reconciliation_id

    def accept_suggestion(
        self, user_id: str, bank_line_id: int, suggestion: MatchSuggestion, today: Optional[date] = None
    ) -> int:
        """Reconcile a line with one of its suggestions."""
        return self.reconcile(
            user_id,
            bank_line_id,
            suggestion.transaction_id,
            match_type=MatchType.AUTO,
            confidence_score=suggestion.confidence,
            today=today,
        )

    def create_transaction_from_line(
        self,
        user_id: str,
        bank_line_id: int,
        category: str = "",
        description: Optional[str] = None,
        supplier: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[int, ActivityResult]:
        """Create a ledger entry mirroring a pending line and reconcile them.

        The entry and the reconciliation are stored in one commit; if either
        fails the line stays pending.

        Returns:
            Tuple of (transaction ID, ActivityResult)
        """
        line = self._require_line(user_id, bank_line_id)
        self._require_pending(line, "create a transaction from")
        wallet = self.wallets.require_wallet(user_id, line.wallet_id)

        draft = TransactionDraft(
            user_id=user_id,
            wallet_id=line.wallet_id,
            date=line.transaction_date,
            type=direction_for(line.amount),
            amount=abs(line.amount),
            category=category.strip(),
            description=(description or line.description).strip().upper(),
            currency=wallet.currency,
            supplier=supplier or line.counterparty,
        )
        transaction_id = self.db.create_transaction_and_reconcile(bank_line_id, draft)
        logger.info("Created transaction %d from bank line %d", transaction_id, bank_line_id)
        return transaction_id, self.progress.record_activity(user_id, transaction_id, today)

    def ignore_line(self, user_id: str, bank_line_id: int) -> None:
        """Mark a pending line as not needing a ledger entry."""
        line = self._require_line(user_id, bank_line_id)
        self._require_pending(line, "ignore")
        self.db.update_bank_line_status(bank_line_id, BankLineStatus.IGNORED)

    def undo(self, user_id: str, bank_line_id: int) -> None:
        """Return a line to pending, dropping its reconciliation.

        Ledger entries are never deleted, including ones created from the line.
        """
        line = self._require_line(user_id, bank_line_id)
        if line.status == BankLineStatus.PENDING:
            raise ReconciliationError(
                ReconciliationErrorKind.INVALID_TRANSITION,
                f"Bank line {bank_line_id} is already pending",
            )
        self.db.delete_reconciliation(bank_line_id)
        logger.info("Bank line %d returned to pending", bank_line_id)

    def search_transactions(
        self, user_id: str, bank_line_id: int, query: str = "", limit: int = MANUAL_SEARCH_LIMIT
    ) -> list[Transaction]:
        """Manual lookup of ledger entries a line could be matched to.

        Filters the wallet's entries of the line's direction, skipping
        internal movements and already reconciled entries, by a
        case-insensitive substring of description, category or supplier.
        """
        line = self._require_line(user_id, bank_line_id)
        transactions = self.db.list_transactions(
            user_id, wallet_id=line.wallet_id, type=direction_for(line.amount)
        )
        reconciled = self.db.get_reconciled_transaction_ids(line.wallet_id)
        needle = query.strip().casefold()

        results = []
        for txn in transactions:
            if not is_candidate(line, txn, reconciled):
                continue
            if needle and not any(
                needle in (field or "").casefold()
                for field in (txn.description, txn.category, txn.supplier)
            ):
                continue
            results.append(txn)
            if len(results) >= limit:
                break
        return results

    def delete_batch(self, user_id: str, wallet_id: int, import_batch_id: str) -> int:
        """Remove an import batch's lines and reconciliations; ledger entries stay.

        Returns:
            Number of bank lines deleted
        """
        self.wallets.require_wallet(user_id, wallet_id)
        deleted = self.db.delete_import_batch(wallet_id, import_batch_id)
        logger.info("Deleted %d bank lines of batch %s", deleted, import_batch_id)
        return deleted

    def get_stats(self, user_id: str, wallet_id: int) -> ReconciliationStats:
        """Counts per status and credit/debit totals of a wallet's bank lines."""
        lines = self.list_lines(user_id, wallet_id)
        counts = {status: 0 for status in BankLineStatus}
        credits = Decimal("0")
        debits = Decimal("0")
        for line in lines:
            counts[line.status] += 1
            if line.amount >= 0:
                credits += line.amount
            else:
                debits += abs(line.amount)

        total = len(lines)
        done = counts[BankLineStatus.RECONCILED] + counts[BankLineStatus.CREATED]
        return ReconciliationStats(
            total=total,
            pending=counts[BankLineStatus.PENDING],
            reconciled=counts[BankLineStatus.RECONCILED],
            created=counts[BankLineStatus.CREATED],
            ignored=counts[BankLineStatus.IGNORED],
            total_credits=credits,
            total_debits=debits,
            percent_reconciled=round(done * 100 / total) if total else 0,
        )
