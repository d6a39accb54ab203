"""Wallet management commands."""

import click
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.errors import DomainError
from moneyquest.domain.wallet import WalletService
from moneyquest.utils.amount_parser import format_amount, parse_amount


@click.group("wallet")
def wallet_group():
    """Manage wallets."""
    pass


@wallet_group.command("create")
@click.argument("name", metavar="WALLET_NAME")
@click.option("--currency", default="BRL", show_default=True, help="ISO currency code")
@click.option("--initial-balance", default="0", help="Balance before any transaction")
@click.pass_context
def create_wallet(ctx, name: str, currency: str, initial_balance: str):
    """Create a new wallet.

    Examples:
        moneyquest wallet create "Checking"
        moneyquest wallet create "Travel" --currency USD --initial-balance 250.00
    """
    service = WalletService(ctx.obj["db"])

    try:
        balance = parse_amount(initial_balance)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        wallet_id = service.create_wallet(
            ctx.obj["user"], name, currency=currency, initial_balance=balance
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created wallet '{name.strip()}' (ID: {wallet_id})")


@wallet_group.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived wallets")
@click.pass_context
def list_wallets(ctx, include_archived: bool):
    """List wallets with their current balance."""
    service = WalletService(ctx.obj["db"])

    wallets = service.list_wallets(ctx.obj["user"], include_archived=include_archived)
    if not wallets:
        click.echo("No wallets found.")
        return

    click.echo("\nWallets:")
    click.echo("-" * 60)
    for w in wallets:
        archived = "" if w.is_active else " (archived)"
        click.echo(
            f"ID: {w.id:3d} | {w.name:20s} | {format_amount(w.current_balance, w.currency):>18s}{archived}"
        )
    click.echo("-" * 60)
    click.echo(f"Total balance: {service.total_balance(ctx.obj['user']):,.2f}")


@wallet_group.command("archive")
@click.argument("wallet", metavar="WALLET")
@click.pass_context
def archive_wallet(ctx, wallet: str):
    """Archive a wallet.

    WALLET can be a wallet name or ID. Its history is kept.
    """
    service = WalletService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service, wallet)

    try:
        service.archive_wallet(ctx.obj["user"], wallet_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived wallet {wallet_id}")


def register_commands(cli):
    """Register wallet commands with main CLI."""
    cli.add_command(wallet_group)
