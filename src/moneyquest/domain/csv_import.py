"""Bank statement import domain service.

An import runs in stages: load (file checks and parsing), map (column
roles), preview (row conversion and duplicate detection) and commit (bank
lines written as one batch).
"""

import uuid
from pathlib import Path
from typing import Any, Optional, Sequence

from moneyquest.database.base import Database
from moneyquest.domain.csv_parser import (
    parse_csv_content,
    require_valid_mappings,
    suggest_mappings,
    transform_with_mappings,
)
from moneyquest.domain.deduplication import deduplicate_lines
from moneyquest.domain.entities import ColumnMapping, ImportSession
from moneyquest.domain.errors import (
    ParseError,
    ParseErrorKind,
    StatementFileError,
    StatementFileErrorKind,
    ValidationError,
)
from moneyquest.domain.wallet import WalletService
from moneyquest.logging_setup import get_logger

logger = get_logger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
MAX_ROWS = 10_000
ALLOWED_EXTENSIONS = (".csv", ".txt")


class CSVImportService:
    """Service for importing bank statement files."""

    def __init__(self, db: Database):
        """Initialize CSV import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.wallets = WalletService(db)

    def load_file(self, user_id: str, wallet_id: int, csv_file_path: str) -> ImportSession:
        """Check, read and parse a statement file.

        Args:
            user_id: Acting user
            wallet_id: Wallet the statement belongs to
            csv_file_path: Path to a .csv or .txt file

        Returns:
            ImportSession holding the parse result and suggested mappings

        Raises:
            FileNotFoundError: If the file doesn't exist
            StatementFileError: INVALID_FORMAT for other extensions or
                undecodable content, FILE_TOO_LARGE above 5 MB
            ParseError: If the content has no header or no data rows
        """
        path = Path(csv_file_path)
        if path.suffix.lower() not in ALLOWED_EXTENSIONS:
            raise StatementFileError(
                StatementFileErrorKind.INVALID_FORMAT,
                f"Unsupported file type '{path.suffix}'. Use a .csv or .txt file",
            )
        if not path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")
        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            raise StatementFileError(
                StatementFileErrorKind.FILE_TOO_LARGE,
                f"File is {size / (1024 * 1024):.1f} MB; the limit is {MAX_FILE_SIZE // (1024 * 1024)} MB",
            )

        try:
            raw_text = path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError:
            raise StatementFileError(
                StatementFileErrorKind.INVALID_FORMAT, f"{path.name} is not UTF-8 text"
            )
        return self.load_text(user_id, wallet_id, raw_text, file_name=path.name)

    def load_text(
        self, user_id: str, wallet_id: int, raw_text: str, file_name: str = "statement.csv"
    ) -> ImportSession:
        """Parse statement text and suggest column mappings."""
        self.wallets.require_wallet(user_id, wallet_id)
        parse_result = parse_csv_content(raw_text)
        if not parse_result.rows:
            raise ParseError(ParseErrorKind.NO_DATA)
        if len(parse_result.rows) > MAX_ROWS:
            raise StatementFileError(
                StatementFileErrorKind.TOO_MANY_ROWS,
                f"File has {len(parse_result.rows)} rows; the limit is {MAX_ROWS}",
            )

        session = ImportSession(wallet_id=wallet_id, file_name=file_name, parse_result=parse_result)
        session.mappings = suggest_mappings(parse_result.headers, parse_result.rows)
        return session

    def preview(
        self, session: ImportSession, mappings: Optional[Sequence[ColumnMapping]] = None
    ) -> ImportSession:
        """Convert rows with the given (or suggested) mappings and flag duplicates.

        Raises:
            MappingValidationError: If mappings lack a required role
            ParseError: NO_DATA if no row produced a bank line
        """
        if mappings is not None:
            session.mappings = list(mappings)
        require_valid_mappings(session.mappings)

        errors: list[str] = []
        lines = transform_with_mappings(
            session.parse_result.rows, session.mappings, session.wallet_id, errors
        )
        if not lines:
            raise ParseError(ParseErrorKind.NO_DATA, "No valid rows found in the file")

        result = deduplicate_lines(lines, self.db.get_existing_fingerprints(session.wallet_id))
        session.unique = result.unique
        session.duplicates = result.duplicates
        session.errors = errors
        return session

    def commit(self, user_id: str, session: ImportSession) -> ImportSession:
        """Store the previewed unique lines as one import batch.

        Fingerprints are checked again right before writing so lines stored
        since the preview are not inserted twice.
        """
        self.wallets.require_wallet(user_id, session.wallet_id)
        if not session.unique and not session.duplicates:
            raise ValidationError("Preview the import before committing it")

        result = deduplicate_lines(
            session.unique, self.db.get_existing_fingerprints(session.wallet_id)
        )
        session.duplicates = session.duplicates + result.duplicates
        session.unique = result.unique
        if not session.unique:
            session.imported = 0
            return session

        session.batch_id = str(uuid.uuid4())
        self.db.create_bank_lines(session.unique, session.batch_id, session.file_name)
        session.imported = len(session.unique)
        logger.info(
            "Imported %d bank lines into wallet %d (batch %s, %d duplicates)",
            session.imported,
            session.wallet_id,
            session.batch_id,
            len(session.duplicates),
        )
        return session

    def import_csv(
        self,
        user_id: str,
        wallet_id: int,
        csv_file_path: str,
        mappings: Optional[Sequence[ColumnMapping]] = None,
    ) -> dict[str, Any]:
        """Run every import stage on a file.

        Returns:
            Dict with import statistics:
            - imported: number of bank lines stored
            - duplicates: number of lines already known
            - skipped: number of rows that could not be converted
            - errors: list of ``Row N: reason`` messages
            - batch_id: import batch ID, or None if nothing was stored
        """
        session = self.load_file(user_id, wallet_id, csv_file_path)
        self.preview(session, mappings)
        self.commit(user_id, session)
        return {
            "imported": session.imported,
            "duplicates": len(session.duplicates),
            "skipped": len(session.errors),
            "errors": session.errors,
            "batch_id": session.batch_id,
        }
