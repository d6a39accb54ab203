"""Shared domain error messages and error types."""

from enum import Enum
from typing import Iterable, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ParseErrorKind(str, Enum):
    EMPTY_FILE = "empty_file"
    NO_HEADERS = "no_headers"
    NO_DATA = "no_data"


class MappingErrorKind(str, Enum):
    MISSING_DATE = "missing_date"
    MISSING_DESCRIPTION = "missing_description"
    MISSING_VALUE = "missing_value"


class ReconciliationErrorKind(str, Enum):
    ALREADY_RECONCILED = "already_reconciled"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    BANK_LINE_NOT_FOUND = "bank_line_not_found"
    INVALID_TRANSITION = "invalid_transition"
    INELIGIBLE_TRANSACTION = "ineligible_transaction"


class LoanErrorKind(str, Enum):
    OUT_OF_ORDER_INSTALLMENT = "out_of_order_installment"
    LOAN_ALREADY_PAID_OFF = "loan_already_paid_off"
    INVALID_INSTALLMENT_COUNT = "invalid_installment_count"
    LOAN_NOT_FOUND = "loan_not_found"


class StatementFileErrorKind(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    INVALID_FORMAT = "invalid_format"
    TOO_MANY_ROWS = "too_many_rows"


class ParseError(ValidationError):
    """Raw statement text could not be turned into a header and rows."""

    def __init__(self, kind: ParseErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or _PARSE_MESSAGES[kind])


class MappingValidationError(ValidationError):
    """Column mappings lack one or more required roles."""

    def __init__(self, kinds: Iterable[MappingErrorKind]):
        self.kinds = list(kinds)
        details = "; ".join(_MAPPING_MESSAGES[k] for k in self.kinds)
        super().__init__(f"Invalid column mapping: {details}")


class ReconciliationError(ConflictError):
    """A reconciliation operation violated the bank line state machine."""

    def __init__(self, kind: ReconciliationErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class LoanError(ConflictError):
    """A loan payment was rejected."""

    def __init__(self, kind: LoanErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class StatementFileError(ValidationError):
    """Statement file was rejected before parsing."""

    def __init__(self, kind: StatementFileErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


_PARSE_MESSAGES = {
    ParseErrorKind.EMPTY_FILE: "The file is empty",
    ParseErrorKind.NO_HEADERS: "No header row found in the file",
    ParseErrorKind.NO_DATA: "The file has a header row but no data rows",
}

_MAPPING_MESSAGES = {
    MappingErrorKind.MISSING_DATE: "a date column is required",
    MappingErrorKind.MISSING_DESCRIPTION: "a description column is required",
    MappingErrorKind.MISSING_VALUE: "an amount column or both credit and debit columns are required",
}


def wallet_not_found(wallet_id: int) -> str:
    """Return message for missing wallet."""
    return f"Wallet {wallet_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def bank_line_not_found(bank_line_id: int) -> str:
    """Return message for missing bank line."""
    return f"Bank line {bank_line_id} not found"


def loan_not_found(loan_id: int) -> str:
    """Return message for missing loan."""
    return f"Loan {loan_id} not found"


def profile_not_found(user_id: str) -> str:
    """Return message for missing profile."""
    return f"Profile for user '{user_id}' not found"


def duplicate_wallet_name(name: str) -> str:
    """Return message for duplicate wallet name."""
    return f"Wallet with name '{name}' already exists"


def transaction_already_reconciled(transaction_id: int) -> str:
    """Return message when a transaction already backs another bank line."""
    return f"Transaction {transaction_id} is already reconciled with another bank line"


def loan_delete_blocked(loan_id: int, payment_count: int) -> str:
    """Return message when a loan still has installment transactions."""
    return (
        f"Cannot delete loan {loan_id}: it has {payment_count} "
        f"payment{'s' if payment_count != 1 else ''}. Delete them first."
    )
