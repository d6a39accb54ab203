"""CSV statement import command."""

import click
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.csv_import import CSVImportService
from moneyquest.domain.entities import ColumnMapping, ColumnRole
from moneyquest.domain.errors import DomainError


def apply_overrides(
    mappings: list[ColumnMapping], overrides: tuple[str, ...]
) -> list[ColumnMapping]:
    """Apply ``role=column`` overrides to suggested mappings.

    The column is a header name (case-insensitive) or a 1-based column
    number. A role given to a column is taken away from any other column.

    Raises:
        click.BadParameter: If an override is malformed or names no column
    """
    result = list(mappings)
    for override in overrides:
        role_name, sep, column = override.partition("=")
        if not sep or not column.strip():
            raise click.BadParameter(f"'{override}' is not role=column", param_hint="--map")
        try:
            role = ColumnRole(role_name.strip().lower())
        except ValueError:
            roles = ", ".join(r.value for r in ColumnRole)
            raise click.BadParameter(
                f"Unknown role '{role_name}'. Roles: {roles}", param_hint="--map"
            )

        column = column.strip()
        index = None
        if column.isdigit() and 1 <= int(column) <= len(result):
            index = int(column) - 1
        else:
            for m in result:
                if m.header.casefold() == column.casefold():
                    index = m.column_index
                    break
        if index is None:
            raise click.BadParameter(f"No column '{column}' in the file", param_hint="--map")

        result = [
            m.with_role(role)
            if m.column_index == index
            else (m.with_role(ColumnRole.IGNORE) if m.role == role and role != ColumnRole.IGNORE else m)
            for m in result
        ]
    return result


@click.command("import")
@click.argument("csv_file", type=click.Path())
@click.option("--wallet", required=True, help="Wallet name or ID the statement belongs to")
@click.option(
    "--map",
    "overrides",
    multiple=True,
    help="Column role override as role=column, e.g. --map date=Data --map amount=3",
)
@click.option("--dry-run", is_flag=True, help="Show the preview without storing anything")
@click.pass_context
def import_csv(ctx, csv_file: str, wallet: str, overrides: tuple[str, ...], dry_run: bool):
    """Import bank statement lines from a CSV file.

    Column roles are detected from headers and sample values; use --map to
    correct them. Lines already imported into the wallet are skipped.

    Examples:
        moneyquest import extrato.csv --wallet Checking
        moneyquest import extrato.csv --wallet 1 --map credit=Entrada --map debit=Saida --dry-run
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user"]
    service = CSVImportService(db)
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet)

    try:
        session = service.load_file(user_id, wallet_id, csv_file)
        mappings = apply_overrides(session.mappings, overrides)
        service.preview(session, mappings)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)

    click.echo("Column mapping:")
    for m in session.mappings:
        samples = ", ".join(m.sample_values)
        click.echo(f"  {m.column_index + 1}. {m.header:20s} -> {m.role.value:15s} {samples}")

    if dry_run:
        click.echo(f"\nPreview of {csv_file}:")
        click.echo(f"  New lines: {len(session.unique)}")
        click.echo(f"  Duplicates: {len(session.duplicates)}")
        for line in session.unique:
            click.echo(f"    {line.transaction_date}  {line.amount:12,.2f}  {line.description}")
    else:
        try:
            service.commit(user_id, session)
        except DomainError as e:
            handle_domain_error(ctx, e)
        click.echo("\nImport complete:")
        click.echo(f"  Imported: {session.imported} bank lines")
        click.echo(f"  Skipped: {len(session.duplicates)} duplicates")
        if session.batch_id:
            click.echo(f"  Batch: {session.batch_id}")

    if session.errors:
        click.echo(f"  Errors: {len(session.errors)}")
        for error in session.errors:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
