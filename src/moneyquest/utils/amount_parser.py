"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

_CURRENCY_RE = re.compile(r"R\$|US\$|[$€£¥]")
_DEBIT_MARKER_RE = re.compile(r"^(DEB|D)\s*|\s*(DEB|D)$", re.IGNORECASE)
_CREDIT_MARKER_RE = re.compile(r"^(CRED|C)\s*|\s*(CRED|C)$", re.IGNORECASE)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles the formats found in bank statements:
    - "123.45", "-123.45", "+123.45"
    - "$123.45", "R$ 1.234,56", "€ 12,50"
    - "1,234.56" (US grouping) and "1.234,56" (Brazilian grouping)
    - "1234,56" (decimal comma)
    - "(123.45)" (negative in parentheses)
    - "150,00 D" / "D 150,00" / "150,00 C" (debit and credit markers)
    - "150,00-" (trailing minus)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = _CURRENCY_RE.sub("", amount_str.strip()).strip()

    is_negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        is_negative = True
        cleaned = cleaned[1:-1].strip()

    if _DEBIT_MARKER_RE.search(cleaned):
        is_negative = True
        cleaned = _DEBIT_MARKER_RE.sub("", cleaned).strip()
    elif _CREDIT_MARKER_RE.search(cleaned):
        cleaned = _CREDIT_MARKER_RE.sub("", cleaned).strip()

    if cleaned.startswith("-") or cleaned.endswith("-"):
        is_negative = True
        cleaned = cleaned.strip("-").strip()
    cleaned = cleaned.lstrip("+").replace(" ", "")

    cleaned = _normalize_separators(cleaned)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -abs(amount) if is_negative else amount


def _normalize_separators(value: str) -> str:
    """Rewrite grouping and decimal separators to a plain ``1234.56`` form."""
    if "," in value and "." in value:
        if value.rfind(",") > value.rfind("."):
            # Brazilian: 1.234,56
            return value.replace(".", "").replace(",", ".")
        # US: 1,234.56
        return value.replace(",", "")
    if "," in value:
        parts = value.split(",")
        if len(parts) == 2 and len(parts[1]) <= 2:
            return value.replace(",", ".")
        return value.replace(",", "")
    if value.count(".") > 1:
        # 1.234.567 is grouping only
        return value.replace(".", "")
    return value


def format_amount(amount: Decimal, currency: str = "BRL") -> str:
    """Format a Decimal with two places and its currency code."""
    return f"{currency} {amount:,.2f}"
