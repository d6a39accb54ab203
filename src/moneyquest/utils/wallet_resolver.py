"""Utility for resolving wallet names to IDs."""

from moneyquest.domain.errors import NotFoundError
from moneyquest.domain.wallet import WalletService


def resolve_wallet(wallet_service: WalletService, user_id: str, wallet: str | int) -> int:
    """Resolve wallet name or ID to wallet ID.

    Args:
        wallet_service: WalletService instance
        user_id: Owner of the wallet
        wallet: Wallet name (str) or ID (int or string representation of int)

    Returns:
        Wallet ID

    Raises:
        NotFoundError: If the wallet is not found for this user
    """
    try:
        wallet_id = int(wallet)
    except (ValueError, TypeError):
        wallet_id = None

    if wallet_id is not None:
        wallet_obj = wallet_service.get_wallet(wallet_id)
        if wallet_obj is None or wallet_obj.user_id != user_id:
            raise NotFoundError(f"Wallet ID {wallet_id} not found")
        return wallet_id

    for w in wallet_service.list_wallets(user_id, include_archived=True):
        if w.name == wallet:
            return w.id

    raise NotFoundError(f"Wallet '{wallet}' not found")
