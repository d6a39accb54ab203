"""Bank reconciliation commands."""

import click
from moneyquest.cli.activity_output import echo_activity
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.entities import BankLineStatus
from moneyquest.domain.errors import DomainError
from moneyquest.domain.reconciliation import ReconciliationService


@click.group("reconcile")
def reconcile_group():
    """Reconcile imported bank lines with your transactions."""
    pass


@reconcile_group.command("lines")
@click.option("--wallet", required=True, help="Wallet name or ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in BankLineStatus]),
    help="Only lines in this status",
)
@click.pass_context
def list_lines(ctx, wallet: str, status: str | None):
    """List imported bank lines of a wallet."""
    service = ReconciliationService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet)

    lines = service.list_lines(
        ctx.obj["user"], wallet_id, status=BankLineStatus(status) if status else None
    )
    if not lines:
        click.echo("No bank lines found.")
        return

    click.echo(f"\n{'ID':>5s}  {'Date':10s}  {'Amount':>12s}  {'Status':10s}  Description")
    click.echo("-" * 72)
    for line in lines:
        click.echo(
            f"{line.id:5d}  {line.transaction_date.isoformat():10s}  {line.amount:12,.2f}  "
            f"{line.status.value:10s}  {line.description}"
        )


@reconcile_group.command("suggest")
@click.argument("line_id", type=int)
@click.pass_context
def suggest(ctx, line_id: int):
    """Show the best matching transactions for a pending bank line."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        suggestions = service.suggest_matches(ctx.obj["user"], line_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not suggestions:
        click.echo(f"No suggestions for bank line {line_id}.")
        return

    for rank, s in enumerate(suggestions, start=1):
        click.echo(
            f"{rank}. [{s.confidence:3d}%] #{s.transaction_id} {s.date} {s.amount:,.2f} {s.description}"
        )
        click.echo(f"     {', '.join(s.match_reasons)}")


@reconcile_group.command("accept")
@click.argument("line_id", type=int)
@click.option("--rank", default=1, show_default=True, help="Suggestion number to accept")
@click.pass_context
def accept(ctx, line_id: int, rank: int):
    """Reconcile a bank line with one of its suggestions."""
    service = ReconciliationService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    try:
        suggestions = service.suggest_matches(user_id, line_id)
        if not 1 <= rank <= len(suggestions):
            click.echo(f"Error: Bank line {line_id} has no suggestion #{rank}", err=True)
            ctx.exit(1)
        suggestion = suggestions[rank - 1]
        service.accept_suggestion(user_id, line_id, suggestion)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Reconciled bank line {line_id} with transaction {suggestion.transaction_id} "
        f"({suggestion.confidence}% confidence)"
    )


@reconcile_group.command("match")
@click.argument("line_id", type=int)
@click.argument("transaction_id", type=int)
@click.pass_context
def match(ctx, line_id: int, transaction_id: int):
    """Reconcile a bank line with a transaction you picked."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        service.reconcile(ctx.obj["user"], line_id, transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reconciled bank line {line_id} with transaction {transaction_id}")


@reconcile_group.command("create")
@click.argument("line_id", type=int)
@click.option("--category", default="", help="Category of the new transaction")
@click.option("--description", help="Description (defaults to the bank line's)")
@click.option("--supplier", help="Payee or payer (defaults to the bank line's counterparty)")
@click.pass_context
def create(ctx, line_id: int, category: str, description: str | None, supplier: str | None):
    """Create a transaction from a bank line and reconcile them."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        transaction_id, activity = service.create_transaction_from_line(
            ctx.obj["user"], line_id, category=category, description=description, supplier=supplier
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created transaction {transaction_id} from bank line {line_id}")
    echo_activity(activity)


@reconcile_group.command("ignore")
@click.argument("line_id", type=int)
@click.pass_context
def ignore(ctx, line_id: int):
    """Mark a bank line as not needing a transaction."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        service.ignore_line(ctx.obj["user"], line_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Ignored bank line {line_id}")


@reconcile_group.command("undo")
@click.argument("line_id", type=int)
@click.pass_context
def undo(ctx, line_id: int):
    """Return a bank line to pending. Transactions are kept."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        service.undo(ctx.obj["user"], line_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Bank line {line_id} is pending again")


@reconcile_group.command("search")
@click.argument("line_id", type=int)
@click.argument("query", default="")
@click.pass_context
def search(ctx, line_id: int, query: str):
    """Search transactions a bank line could be matched to."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        transactions = service.search_transactions(ctx.obj["user"], line_id, query)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No matching transactions found.")
        return
    for txn in transactions:
        click.echo(f"#{txn.id:<5d} {txn.date} {txn.amount:12,.2f}  {txn.category or '-':15s} {txn.description}")


@reconcile_group.command("stats")
@click.option("--wallet", required=True, help="Wallet name or ID")
@click.pass_context
def stats(ctx, wallet: str):
    """Reconciliation progress of a wallet."""
    service = ReconciliationService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet)
    result = service.get_stats(ctx.obj["user"], wallet_id)

    click.echo(f"Bank lines: {result.total}")
    click.echo(f"  Pending: {result.pending}")
    click.echo(f"  Reconciled: {result.reconciled}")
    click.echo(f"  Created: {result.created}")
    click.echo(f"  Ignored: {result.ignored}")
    click.echo(f"Credits: {result.total_credits:,.2f}  Debits: {result.total_debits:,.2f}")
    click.echo(f"Reconciled: {result.percent_reconciled}%")


@reconcile_group.command("delete-batch")
@click.argument("batch_id")
@click.option("--wallet", required=True, help="Wallet name or ID")
@click.confirmation_option(prompt="Delete every bank line of this import?")
@click.pass_context
def delete_batch(ctx, batch_id: str, wallet: str):
    """Delete the bank lines of one import. Transactions are kept."""
    service = ReconciliationService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet)
    try:
        deleted = service.delete_batch(ctx.obj["user"], wallet_id, batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {deleted} bank lines")


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile_group)
