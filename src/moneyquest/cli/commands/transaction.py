"""Transaction management commands."""

import click
from moneyquest.cli.date_filters import period_options, resolve_cli_date_range
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.entities import TransactionType
from moneyquest.domain.errors import DomainError
from moneyquest.domain.transaction import TransactionService
from moneyquest.utils.amount_parser import parse_amount
from moneyquest.utils.date_parser import parse_date


@click.group("transaction")
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("list")
@click.option("--wallet", help="Wallet name or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option(
    "--type", "txn_type", type=click.Choice([t.value for t in TransactionType]), help="Only this type"
)
@period_options
@click.pass_context
def list_transactions(ctx, wallet, start_date, end_date, txn_type, **period_flags):
    """View transactions, newest first.

    Examples:
        moneyquest transaction list --this-month
        moneyquest transaction list --wallet Checking --type expense
    """
    service = TransactionService(ctx.obj["db"])
    user_id = ctx.obj["user"]

    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )

    transactions = service.list_transactions(
        user_id,
        wallet_id=wallet_id,
        start_date=start,
        end_date=end,
        type=TransactionType(txn_type) if txn_type else None,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\n{'ID':>5s}  {'Date':10s}  {'Amount':>12s}  {'Category':15s}  Description")
    click.echo("-" * 72)
    for txn in transactions:
        marker = " *" if service.is_reconciled(txn.id) else ""
        click.echo(
            f"{txn.id:5d}  {txn.date.isoformat():10s}  {txn.signed_amount:12,.2f}  "
            f"{(txn.category or '-')[:15]:15s}  {txn.description}{marker}"
        )
    click.echo(f"\n{len(transactions)} transaction(s); * = reconciled with a bank line")


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--date", help="Transaction date")
@click.option("--amount", help="Positive transaction amount")
@click.option("--type", "txn_type", type=click.Choice([t.value for t in TransactionType]))
@click.option("--category", help="Category name")
@click.option("--description", help="Transaction description")
@click.option("--supplier", help="Payee or payer")
@click.option(
    "--admin",
    is_flag=True,
    help="Allow date, amount and type changes on reconciled transactions",
)
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    date: str | None,
    amount: str | None,
    txn_type: str | None,
    category: str | None,
    description: str | None,
    supplier: str | None,
    admin: bool,
) -> None:
    """Update a transaction.

    Updates only the fields that are provided. Reconciled transactions only
    accept category, description and supplier changes unless --admin is given.

    Examples:
        moneyquest transaction update 1 --category Groceries
        moneyquest transaction update 1 --amount 75.00 --admin
    """
    service = TransactionService(ctx.obj["db"])
    changes = {}

    if date is not None:
        try:
            changes["date"] = parse_date(date)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    if amount is not None:
        try:
            changes["amount"] = parse_amount(amount)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)

    if txn_type is not None:
        changes["type"] = TransactionType(txn_type)
    for name, value in (("category", category), ("description", description), ("supplier", supplier)):
        if value is not None:
            changes[name] = value

    if not changes:
        click.echo("Error: Nothing to update", err=True)
        ctx.exit(1)

    try:
        service.update_transaction(ctx.obj["user"], transaction_id, administrative=admin, **changes)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated transaction {transaction_id}")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.pass_context
def delete_transaction(ctx, transaction_id: int) -> None:
    """Delete a transaction.

    Reconciled transactions cannot be deleted; undo the reconciliation first.
    """
    service = TransactionService(ctx.obj["db"])
    try:
        service.delete_transaction(ctx.obj["user"], transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group)
