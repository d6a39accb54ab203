"""Main CLI entry point."""

import click
from moneyquest.database.factories import create_sqlite_database
from moneyquest.logging_setup import configure_logging

# Import and register all commands at module level
from moneyquest.cli.commands import (
    wallet,
    add,
    transaction,
    import_cmd,
    reconcile,
    loan,
    profile,
    summary,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides MONEYQUEST_DB_PATH environment variable)",
    envvar="MONEYQUEST_DB_PATH",
)
@click.option(
    "--user",
    default="me",
    show_default=True,
    help="User whose data the command works on",
    envvar="MONEYQUEST_USER",
)
@click.option(
    "--log-level",
    help="Log level (overrides MONEYQUEST_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, user: str, log_level: str | None):
    """MoneyQuest - Gamified personal finance.

    Track income and expenses in wallets, import bank statements and
    reconcile them with your ledger, follow your loans installment by
    installment, and earn XP, quests and badges along the way.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["user"] = user


# Register all commands
wallet.register_commands(cli)
add.register_commands(cli)
transaction.register_commands(cli)
import_cmd.register_commands(cli)
reconcile.register_commands(cli)
loan.register_commands(cli)
profile.register_commands(cli)
summary.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
