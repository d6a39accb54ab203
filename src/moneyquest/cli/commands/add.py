"""Add transaction command."""

import click
from moneyquest.cli.activity_output import echo_activity
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.entities import TransactionType
from moneyquest.domain.errors import DomainError
from moneyquest.domain.transaction import TransactionService
from moneyquest.utils.amount_parser import format_amount, parse_amount
from moneyquest.utils.date_parser import parse_date


@click.command("add")
@click.option("--wallet", required=True, help="Wallet name or ID")
@click.option(
    "--date",
    default="today",
    show_default=True,
    help="Transaction date (YYYY-MM-DD, DD/MM/YYYY or relative like 'today', 'yesterday')",
)
@click.option(
    "--amount",
    required=True,
    help="Transaction amount; negative amounts are expenses (e.g., -50.00 or 1000.00)",
)
@click.option(
    "--type",
    "txn_type",
    type=click.Choice([t.value for t in TransactionType]),
    help="Force income or expense instead of reading the amount sign",
)
@click.option("--category", default="", help="Category name")
@click.option("--description", default="", help="Transaction description")
@click.option("--supplier", help="Payee or payer")
@click.pass_context
def add_transaction(
    ctx,
    wallet: str,
    date: str,
    amount: str,
    txn_type: str | None,
    category: str,
    description: str,
    supplier: str | None,
):
    """Add a transaction manually and collect its XP.

    Examples:
        moneyquest add --wallet Checking --amount -50.00 --category Food --description "Groceries"
        moneyquest add --wallet 1 --date 2024-01-15 --amount 3000 --category Salary
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user"]
    service = TransactionService(db)

    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet)

    # Parse date
    try:
        txn_date = parse_date(date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    # Parse amount
    try:
        txn_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    if txn_type is None:
        resolved_type = TransactionType.EXPENSE if txn_amount < 0 else TransactionType.INCOME
    else:
        resolved_type = TransactionType(txn_type)

    try:
        transaction_id, activity = service.add_transaction(
            user_id,
            wallet_id,
            txn_date,
            resolved_type,
            abs(txn_amount),
            category=category,
            description=description,
            supplier=supplier,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    txn = service.get_transaction(transaction_id)
    click.echo(f"Created transaction {transaction_id}")
    click.echo(f"  Date: {txn.date}")
    click.echo(f"  {txn.type.value.capitalize()}: {format_amount(txn.amount, txn.currency)}")
    if txn.category:
        click.echo(f"  Category: {txn.category}")
    if txn.description:
        click.echo(f"  Description: {txn.description}")
    echo_activity(activity)


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
