"""Bank statement CSV parsing and column mapping.

Turns raw statement text into a header row and data rows, suggests a role for
every column, validates a set of mappings and converts rows into
``ParsedBankLine`` candidates.
"""

import csv
import io
import re
from decimal import Decimal
from typing import Optional, Sequence

from moneyquest.domain.entities import (
    ColumnMapping,
    ColumnRole,
    CSVParseResult,
    ParsedBankLine,
)
from moneyquest.domain.errors import (
    MappingErrorKind,
    MappingValidationError,
    ParseError,
    ParseErrorKind,
)
from moneyquest.logging_setup import get_logger
from moneyquest.utils.amount_parser import parse_amount
from moneyquest.utils.date_parser import looks_like_statement_date, parse_statement_date

logger = get_logger(__name__)

# Order matters: semicolon wins ties, comma is the default.
CANDIDATE_DELIMITERS = (";", ",", "\t")
DELIMITER_SAMPLE_LINES = 5
SAMPLE_SIZE = 5

# Header patterns in priority order. The first match decides the role.
HEADER_PATTERNS: tuple[tuple[ColumnRole, re.Pattern], ...] = (
    (ColumnRole.DATE, re.compile(r"^(data|date|dt|dia|vencimento)", re.IGNORECASE)),
    (ColumnRole.AMOUNT, re.compile(r"^(valor|amount|value|total|montante)", re.IGNORECASE)),
    (ColumnRole.CREDIT, re.compile(r"^(cr[eé]dito|credit|entrada|receita|income)", re.IGNORECASE)),
    (ColumnRole.DEBIT, re.compile(r"^(d[eé]bito|debit|sa[ií]da|despesa|expense)", re.IGNORECASE)),
    (
        ColumnRole.DESCRIPTION,
        re.compile(r"^(descri[çc][ãa]o|description|desc|hist[oó]rico|lan[çc]amento|memo)", re.IGNORECASE),
    ),
    (
        ColumnRole.BANK_REFERENCE,
        re.compile(r"^(id|c[oó]digo|code|refer[eê]ncia|ref|documento|doc|num|n[uú]mero)", re.IGNORECASE),
    ),
    (
        ColumnRole.COUNTERPARTY,
        re.compile(
            r"^(benefici[aá]rio|contraparte|counterparty|pagador|favorecido|destino|origem|payee)",
            re.IGNORECASE,
        ),
    ),
)

_NUMERIC_RE = re.compile(r"^[-+(]?\s*(R\$|[$€£])?\s*[\d.,]+\)?\s*[DC]?$", re.IGNORECASE)
_CREDIT_HINT_RE = re.compile(r"cr[eé]d|entrada|receita|income", re.IGNORECASE)
_DEBIT_HINT_RE = re.compile(r"d[eé]b|sa[ií]da|despesa|expense", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_csv_content(raw_text: str) -> CSVParseResult:
    """Split raw statement text into headers and data rows.

    Handles a UTF-8 byte order mark, CRLF/CR line endings, comma, semicolon or
    tab delimiters, quoted fields holding the delimiter and doubled quotes.
    Blank lines are dropped and every cell is trimmed.

    Args:
        raw_text: Full file content

    Returns:
        CSVParseResult with headers, data rows and the detected delimiter

    Raises:
        ParseError: EMPTY_FILE when there is no non-blank line, NO_HEADERS when
            the first line has no non-empty column
    """
    text = raw_text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    if not text.strip():
        raise ParseError(ParseErrorKind.EMPTY_FILE)

    delimiter = detect_delimiter(text)
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    rows = [[cell.strip() for cell in row] for row in reader if not _is_blank_line(row)]
    if not rows:
        raise ParseError(ParseErrorKind.EMPTY_FILE)

    headers = rows[0]
    if not any(headers):
        raise ParseError(ParseErrorKind.NO_HEADERS)

    logger.debug("Parsed %d data rows using delimiter %r", len(rows) - 1, delimiter)
    return CSVParseResult(headers=headers, rows=rows[1:], delimiter=delimiter)


def detect_delimiter(text: str) -> str:
    """Pick the delimiter occurring most often outside quotes in the first lines."""
    lines = [line for line in text.split("\n") if line.strip()][:DELIMITER_SAMPLE_LINES]
    counts = dict.fromkeys(CANDIDATE_DELIMITERS, 0)
    for line in lines:
        in_quotes = False
        for char in line:
            if char == '"':
                in_quotes = not in_quotes
            elif not in_quotes and char in counts:
                counts[char] += 1

    best, best_count = ",", 0
    for delimiter in CANDIDATE_DELIMITERS:
        if counts[delimiter] > best_count:
            best, best_count = delimiter, counts[delimiter]
    return best


def _is_blank_line(row: list[str]) -> bool:
    return not row or (len(row) == 1 and not row[0].strip())


def normalize_text(text: str) -> str:
    """Trim, collapse inner whitespace and upper-case."""
    return _WHITESPACE_RE.sub(" ", text.strip()).upper()


def detect_column_role(header: str, sample_values: Sequence[str]) -> ColumnRole:
    """Infer the role of a column from its header, falling back to sample values."""
    normalized = header.strip()
    for role, pattern in HEADER_PATTERNS:
        if pattern.search(normalized):
            return role

    samples = [v.strip() for v in sample_values if v and v.strip()][:SAMPLE_SIZE]
    if not samples:
        return ColumnRole.IGNORE

    if all(looks_like_statement_date(v) for v in samples):
        return ColumnRole.DATE

    if all(_NUMERIC_RE.match(v) for v in samples):
        has_negative = any(v.startswith("-") or v.startswith("(") for v in samples)
        if not has_negative:
            if _CREDIT_HINT_RE.search(normalized):
                return ColumnRole.CREDIT
            if _DEBIT_HINT_RE.search(normalized):
                return ColumnRole.DEBIT
        return ColumnRole.AMOUNT

    return ColumnRole.IGNORE


def suggest_mappings(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[ColumnMapping]:
    """Suggest one mapping per column, carrying up to three sample values."""
    mappings = []
    for index, header in enumerate(headers):
        samples = [row[index] for row in rows if index < len(row) and row[index].strip()]
        role = detect_column_role(header, samples[:SAMPLE_SIZE])
        mappings.append(
            ColumnMapping(
                column_index=index,
                header=header,
                role=role,
                sample_values=tuple(samples[:3]),
            )
        )
    return mappings


def validate_mappings(mappings: Sequence[ColumnMapping]) -> list[MappingErrorKind]:
    """Return every required role missing from mappings (empty when valid)."""
    roles = {m.role for m in mappings}
    errors = []
    if ColumnRole.DATE not in roles:
        errors.append(MappingErrorKind.MISSING_DATE)
    if ColumnRole.DESCRIPTION not in roles:
        errors.append(MappingErrorKind.MISSING_DESCRIPTION)
    has_split_columns = ColumnRole.CREDIT in roles and ColumnRole.DEBIT in roles
    if ColumnRole.AMOUNT not in roles and not has_split_columns:
        errors.append(MappingErrorKind.MISSING_VALUE)
    return errors


def require_valid_mappings(mappings: Sequence[ColumnMapping]) -> None:
    """Raise MappingValidationError listing every missing role."""
    errors = validate_mappings(mappings)
    if errors:
        raise MappingValidationError(errors)


def transform_with_mappings(
    rows: Sequence[Sequence[str]],
    mappings: Sequence[ColumnMapping],
    wallet_id: int,
    errors: Optional[list[str]] = None,
) -> list[ParsedBankLine]:
    """Convert data rows into bank line candidates.

    Rows that are blank, or lack a parseable date, a non-zero amount or a
    description, are skipped. When ``errors`` is given a ``Row N: reason``
    message is appended for every skipped non-blank row (N counts the header
    as row 1).

    Args:
        rows: Data rows (header excluded)
        mappings: Column mappings
        wallet_id: Wallet the lines belong to
        errors: Optional list collecting skip reasons

    Returns:
        Parsed bank lines in file order

    Raises:
        MappingValidationError: If mappings lack a required role
    """
    require_valid_mappings(mappings)
    by_role = {}
    for mapping in mappings:
        by_role.setdefault(mapping.role, mapping.column_index)

    def cell(row: Sequence[str], role: ColumnRole) -> str:
        index = by_role.get(role)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()

    def report(row_num: int, reason: str) -> None:
        if errors is not None:
            errors.append(f"Row {row_num}: {reason}")

    lines = []
    for row_num, row in enumerate(rows, start=2):
        if not any(c.strip() for c in row):
            continue

        transaction_date = parse_statement_date(cell(row, ColumnRole.DATE))
        if transaction_date is None:
            report(row_num, f"Invalid date '{cell(row, ColumnRole.DATE)}'")
            continue

        description = normalize_text(cell(row, ColumnRole.DESCRIPTION))
        if not description:
            report(row_num, "Missing description")
            continue

        try:
            amount = _row_amount(row, by_role, cell)
        except ValueError as e:
            report(row_num, str(e))
            continue
        if amount == 0:
            report(row_num, "Amount is zero")
            continue

        counterparty = normalize_text(cell(row, ColumnRole.COUNTERPARTY))
        lines.append(
            ParsedBankLine(
                wallet_id=wallet_id,
                transaction_date=transaction_date,
                description=description,
                amount=amount,
                bank_reference=cell(row, ColumnRole.BANK_REFERENCE) or None,
                counterparty=counterparty or None,
            )
        )
    return lines


def _row_amount(row, by_role, cell) -> Decimal:
    if ColumnRole.AMOUNT in by_role:
        raw = cell(row, ColumnRole.AMOUNT)
        if not raw:
            raise ValueError("Missing amount")
        return parse_amount(raw)

    credit_raw = cell(row, ColumnRole.CREDIT)
    debit_raw = cell(row, ColumnRole.DEBIT)
    credit = abs(parse_amount(credit_raw)) if credit_raw else Decimal("0")
    debit = abs(parse_amount(debit_raw)) if debit_raw else Decimal("0")
    return credit - debit
