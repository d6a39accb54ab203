"""Domain model entities for moneyquest.

These are pure data classes representing business concepts, independent of
database schema. Services and algorithms work on these; the database layer
maps its ORM rows onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class ColumnRole(str, Enum):
    DATE = "date"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    CREDIT = "credit"
    DEBIT = "debit"
    BANK_REFERENCE = "bank_reference"
    COUNTERPARTY = "counterparty"
    IGNORE = "ignore"


class BankLineStatus(str, Enum):
    PENDING = "pending"
    RECONCILED = "reconciled"
    CREATED = "created"
    IGNORED = "ignored"


class MatchType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"
    CREATED = "created"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"


class LoanType(str, Enum):
    PERSONAL = "personal"
    FINANCING = "financing"
    PAYROLL = "payroll"
    INFORMAL = "informal"
    INSTALLMENT_PLAN = "installment_plan"


class QuestType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"
    ACHIEVEMENT = "achievement"


class BadgeRequirement(str, Enum):
    XP = "xp"
    STREAK = "streak"
    TOTAL_SAVED = "total_saved"
    COUNT = "count"


class FinancialMood(str, Enum):
    VERY_POSITIVE = "very_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    CRITICAL = "critical"


class AlertKind(str, Enum):
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"


class BudgetHealth(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Wallet:
    """Wallet (bank account, cash box, card) domain entity."""

    id: int
    user_id: str
    name: str
    currency: str
    initial_balance: Decimal
    is_active: bool
    created_at: datetime
    current_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class Transaction:
    """Ledger entry domain entity.

    ``amount`` is always positive; the direction comes from ``type``.
    """

    id: int
    user_id: str
    wallet_id: int
    date: date
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    currency: str
    subtype: Optional[str]
    supplier: Optional[str]
    xp_earned: int
    created_at: datetime

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


@dataclass(frozen=True)
class BankLine:
    """Bank statement line domain entity.

    ``amount`` is signed: positive for credits, negative for debits.
    """

    id: int
    wallet_id: int
    transaction_date: date
    description: str
    amount: Decimal
    bank_reference: Optional[str]
    counterparty: Optional[str]
    fingerprint: str
    import_batch_id: str
    source_file_name: Optional[str]
    status: BankLineStatus
    imported_at: datetime


@dataclass(frozen=True)
class Reconciliation:
    """Link between a bank line and the ledger entry it was matched to."""

    id: int
    bank_line_id: int
    transaction_id: int
    match_type: MatchType
    confidence_score: Optional[int]
    reconciled_at: datetime


@dataclass(frozen=True)
class Loan:
    """Loan domain entity."""

    id: int
    user_id: str
    wallet_id: Optional[int]
    lender: str
    loan_type: LoanType
    total_amount: Decimal
    installment_count: int
    installments_paid: int
    installment_amount: Decimal
    interest_rate: Optional[Decimal]
    first_due_date: date
    contract_date: date
    outstanding_balance: Decimal
    status: LoanStatus
    currency: str
    notes: Optional[str]
    created_at: datetime

    @property
    def remaining_installments(self) -> int:
        return self.installment_count - self.installments_paid

    @property
    def is_paid_off(self) -> bool:
        return self.status == LoanStatus.PAID_OFF


@dataclass(frozen=True)
class LoanInstallment:
    """One row of a loan payment schedule."""

    number: int
    due_date: date
    amount: Decimal
    is_paid: bool
    transaction_id: Optional[int] = None


@dataclass(frozen=True)
class PayoffScenario:
    """Estimated outcome of paying a loan faster than scheduled."""

    name: str
    installments: int
    payoff_date: date
    estimated_savings: Decimal
    months_saved: int


@dataclass(frozen=True)
class PayoffProjection:
    """Normal payoff date plus the accelerated scenarios."""

    remaining_installments: int
    remaining_interest: Decimal
    normal_payoff_date: date
    scenarios: tuple[PayoffScenario, ...]


@dataclass(frozen=True)
class Profile:
    """Gamification profile of a user."""

    user_id: str
    display_name: str
    xp: int
    streak: int
    last_active_date: Optional[date]
    total_income: Decimal
    total_expenses: Decimal
    financial_mood: FinancialMood
    created_at: datetime

    @property
    def level(self) -> int:
        return self.xp // 1000 + 1


@dataclass(frozen=True)
class Quest:
    """Quest domain entity."""

    id: int
    user_id: str
    quest_key: str
    title: str
    description: str
    type: QuestType
    progress_current: int
    progress_target: int
    xp_reward: int
    is_completed: bool
    is_active: bool
    period_start: Optional[date]
    period_end: Optional[date]
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class Badge:
    """Badge domain entity."""

    id: int
    user_id: str
    badge_key: str
    name: str
    requirement_type: BadgeRequirement
    requirement_value: int
    is_unlocked: bool
    unlocked_at: Optional[datetime]


@dataclass(frozen=True)
class CSVParseResult:
    """Header row and data rows of a delimited statement file."""

    headers: list[str]
    rows: list[list[str]]
    delimiter: str


@dataclass(frozen=True)
class ColumnMapping:
    """Role assignment for one statement column."""

    column_index: int
    header: str
    role: ColumnRole
    sample_values: tuple[str, ...] = ()

    def with_role(self, role: ColumnRole) -> "ColumnMapping":
        return ColumnMapping(self.column_index, self.header, role, self.sample_values)


@dataclass(frozen=True)
class ParsedBankLine:
    """Statement line produced by the parser, not yet persisted."""

    wallet_id: int
    transaction_date: date
    description: str
    amount: Decimal
    bank_reference: Optional[str] = None
    counterparty: Optional[str] = None
    fingerprint: str = ""


@dataclass(frozen=True)
class DeduplicationResult:
    unique: list[ParsedBankLine]
    duplicates: list[ParsedBankLine]


@dataclass(frozen=True)
class MatchSuggestion:
    """Ranked candidate ledger entry for a bank line."""

    transaction_id: int
    description: str
    amount: Decimal
    date: date
    category: str
    confidence: int
    match_reasons: tuple[str, ...]
    day_distance: int = 0


@dataclass(frozen=True)
class ReconciliationStats:
    total: int
    pending: int
    reconciled: int
    created: int
    ignored: int
    total_credits: Decimal
    total_debits: Decimal
    percent_reconciled: int


@dataclass(frozen=True)
class StreakResult:
    """Outcome of a streak update.

    ``new_streak`` is -1 when the activity falls on the already counted day.
    """

    new_streak: int
    is_new_day: bool


@dataclass(frozen=True)
class ActivityResult:
    """What a single ledger mutation did to the user's progress."""

    xp_earned: int
    total_xp: int
    level: int
    leveled_up: bool
    streak: int
    completed_quests: tuple[str, ...] = ()
    unlocked_badges: tuple[str, ...] = ()


@dataclass(frozen=True)
class Alert:
    """Financial alert shown to the user."""

    key: str
    kind: AlertKind
    title: str
    description: str


@dataclass(frozen=True)
class BudgetCommitment:
    monthly_income: Decimal
    monthly_installments: Decimal
    percentage: Decimal
    health: BudgetHealth


@dataclass
class ImportSession:
    """State of a staged statement import.

    Moves from loaded (headers/rows) to mapped (mappings) to previewed
    (unique/duplicates) to committed (batch_id, imported count).
    """

    wallet_id: int
    file_name: str
    parse_result: CSVParseResult
    mappings: list[ColumnMapping] = field(default_factory=list)
    unique: list[ParsedBankLine] = field(default_factory=list)
    duplicates: list[ParsedBankLine] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    batch_id: Optional[str] = None
    imported: int = 0


@dataclass(frozen=True)
class TransactionDraft:
    """Ledger entry about to be written; the database assigns id and created_at."""

    user_id: str
    wallet_id: int
    date: date
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    currency: str
    subtype: Optional[str] = None
    supplier: Optional[str] = None
    xp_earned: int = 0
