"""Summary command."""

import click
from moneyquest.cli.date_filters import period_options, resolve_cli_date_range
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.transaction import TransactionService
from moneyquest.utils.date_parser import get_date_range


@click.command("summary")
@click.option("--wallet", help="Wallet name or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.pass_context
def summary(ctx, wallet, start_date, end_date, **period_flags):
    """Show income and expenses per category.

    Defaults to the current month.

    Examples:
        moneyquest summary
        moneyquest summary --last-month --wallet Checking
    """
    service = TransactionService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags=period_flags,
        default_range=get_date_range("this-month"),
    )

    result = service.get_summary(ctx.obj["user"], start_date=start, end_date=end, wallet_id=wallet_id)
    period = f"{start or 'beginning'} to {end or 'today'}"
    click.echo(f"\nSummary ({period})")
    click.echo("=" * 60)
    if not result["categories"]:
        click.echo("No transactions found.")
        return

    for group in result["categories"]:
        sign = "+" if group["type"].value == "income" else "-"
        click.echo(
            f"{sign} {group['category'][:30]:30s} {group['total']:14,.2f}  ({group['count']} transactions)"
        )
    click.echo("=" * 60)
    click.echo(f"Income:   {result['income']:14,.2f}")
    click.echo(f"Expenses: {result['expense']:14,.2f}")
    click.echo(f"Net:      {result['net']:14,.2f}")


def register_commands(cli):
    """Register summary command with main CLI."""
    cli.add_command(summary)
