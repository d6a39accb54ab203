"""CLI helpers for wallet resolution."""

from __future__ import annotations

import click
from moneyquest.domain.wallet import WalletService
from moneyquest.utils.wallet_resolver import resolve_wallet


def resolve_wallet_or_exit(
    ctx: click.Context, wallet_service: WalletService, wallet: str | int
) -> int:
    """Resolve wallet name or ID for the current user, or exit with a CLI error."""
    try:
        return resolve_wallet(wallet_service, ctx.obj["user"], wallet)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
