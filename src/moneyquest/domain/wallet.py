"""Wallet domain service."""

from decimal import Decimal
from typing import Optional

from moneyquest.database.base import Database
from moneyquest.domain.entities import Wallet
from moneyquest.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    duplicate_wallet_name,
    wallet_not_found,
)


class WalletService:
    """Service for managing wallets."""

    def __init__(self, db: Database):
        """Initialize wallet service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_wallet(
        self,
        user_id: str,
        name: str,
        currency: str = "BRL",
        initial_balance: Decimal = Decimal("0"),
    ) -> int:
        """Create a new wallet.

        Args:
            user_id: Owner of the wallet
            name: Wallet name (unique per user)
            currency: ISO currency code
            initial_balance: Balance before any recorded transaction

        Returns:
            Wallet ID

        Raises:
            ValidationError: If the name or currency is empty
            ConflictError: If the user already has a wallet with this name
        """
        name = name.strip()
        if not name:
            raise ValidationError("Wallet name cannot be empty")
        currency = currency.strip().upper()
        if len(currency) != 3:
            raise ValidationError(f"Invalid currency code '{currency}'")

        existing = self.db.list_wallets(user_id, include_archived=True)
        if any(w.name == name for w in existing):
            raise ConflictError(duplicate_wallet_name(name))

        return self.db.create_wallet(user_id, name, currency, initial_balance)

    def get_wallet(self, wallet_id: int) -> Optional[Wallet]:
        """Get wallet by ID."""
        return self.db.get_wallet(wallet_id)

    def require_wallet(self, user_id: str, wallet_id: int) -> Wallet:
        """Get a wallet owned by user_id or raise NotFoundError."""
        wallet = self.db.get_wallet(wallet_id)
        if wallet is None or wallet.user_id != user_id:
            raise NotFoundError(wallet_not_found(wallet_id))
        return wallet

    def list_wallets(self, user_id: str, include_archived: bool = False) -> list[Wallet]:
        """List the user's wallets with their current balance."""
        return self.db.list_wallets(user_id, include_archived=include_archived)

    def archive_wallet(self, user_id: str, wallet_id: int) -> None:
        """Hide a wallet from listings without touching its history."""
        self.require_wallet(user_id, wallet_id)
        self.db.archive_wallet(wallet_id)

    def total_balance(self, user_id: str) -> Decimal:
        """Sum of the current balance of every active wallet."""
        return sum((w.current_balance for w in self.list_wallets(user_id)), Decimal("0"))
