"""Bank line fingerprinting and duplicate suppression."""

import hashlib
import json
import re
import unicodedata
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from moneyquest.domain.entities import DeduplicationResult, ParsedBankLine

_NON_ALNUM_RE = re.compile(r"[^0-9a-z]")


def normalize_description(description: str) -> str:
    """Case-fold, strip accents and keep only ASCII letters and digits.

    Accented letters keep their base letter, so "JOÃO" and "JOAO" match.
    """
    decomposed = unicodedata.normalize("NFKD", description.casefold())
    return _NON_ALNUM_RE.sub("", decomposed)


def compute_fingerprint(
    wallet_id: int,
    transaction_date: date,
    amount: Decimal,
    description: str,
    bank_reference: Optional[str] = None,
) -> str:
    """Return a stable SHA-256 hex digest identifying a bank line.

    The digest covers the wallet, the ISO date, the amount rounded half-up to
    cents, the normalized description and the bank reference (empty when
    absent). Canonical JSON keeps the encoding independent of key order.
    """
    payload = {
        "wallet_id": wallet_id,
        "date": transaction_date.isoformat(),
        "amount": str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        "description": normalize_description(description),
        "bank_reference": (bank_reference or "").strip(),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def fingerprint_line(line: ParsedBankLine) -> ParsedBankLine:
    """Return a copy of line carrying its fingerprint."""
    return replace(
        line,
        fingerprint=compute_fingerprint(
            line.wallet_id,
            line.transaction_date,
            line.amount,
            line.description,
            line.bank_reference,
        ),
    )


def deduplicate_lines(
    candidates: Iterable[ParsedBankLine], existing_fingerprints: Iterable[str]
) -> DeduplicationResult:
    """Split candidates into unique lines and duplicates.

    A candidate is a duplicate when its fingerprint is already known or was
    seen earlier in the same batch. Neither input is modified; returned lines
    carry their fingerprint.
    """
    seen = set(existing_fingerprints)
    unique = []
    duplicates = []
    for candidate in candidates:
        line = candidate if candidate.fingerprint else fingerprint_line(candidate)
        if line.fingerprint in seen:
            duplicates.append(line)
            continue
        seen.add(line.fingerprint)
        unique.append(line)
    return DeduplicationResult(unique=unique, duplicates=duplicates)
