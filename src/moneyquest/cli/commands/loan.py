"""Loan commands."""

import click
from moneyquest.cli.error_handling import handle_domain_error
from moneyquest.cli.wallet_resolution import resolve_wallet_or_exit
from moneyquest.domain.entities import LoanStatus, LoanType
from moneyquest.domain.errors import DomainError
from moneyquest.domain.loan import LoanService, interest_summary, next_due_date, project_payoff_scenarios
from moneyquest.utils.amount_parser import format_amount, parse_amount
from moneyquest.utils.date_parser import parse_date


@click.group("loan")
def loan_group():
    """Track loans and pay their installments."""
    pass


@loan_group.command("create")
@click.argument("lender")
@click.option("--total", required=True, help="Amount borrowed")
@click.option("--installments", "installment_count", required=True, type=int, help="Number of installments")
@click.option("--installment-amount", required=True, help="Amount of each installment")
@click.option("--first-due", required=True, help="Due date of the first installment")
@click.option(
    "--type",
    "loan_type",
    type=click.Choice([t.value for t in LoanType]),
    default=LoanType.PERSONAL.value,
    show_default=True,
)
@click.option("--wallet", help="Wallet installments are paid from")
@click.option("--interest-rate", help="Monthly interest rate in percent")
@click.option("--contract-date", help="Date the loan was signed")
@click.option("--notes", help="Notes")
@click.pass_context
def create_loan(
    ctx,
    lender: str,
    total: str,
    installment_count: int,
    installment_amount: str,
    first_due: str,
    loan_type: str,
    wallet: str | None,
    interest_rate: str | None,
    contract_date: str | None,
    notes: str | None,
):
    """Register a loan.

    Examples:
        moneyquest loan create "Banco X" --total 10000 --installments 24 \\
            --installment-amount 520.00 --first-due 2024-02-10 --wallet Checking
    """
    service = LoanService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None

    try:
        total_amount = parse_amount(total)
        each = parse_amount(installment_amount)
        rate = parse_amount(interest_rate) if interest_rate else None
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        first_due_date = parse_date(first_due)
        signed = parse_date(contract_date) if contract_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        loan_id = service.create_loan(
            ctx.obj["user"],
            lender,
            total_amount,
            installment_count,
            each,
            first_due_date,
            loan_type=LoanType(loan_type),
            wallet_id=wallet_id,
            interest_rate=rate,
            contract_date=signed,
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created loan {loan_id} from {lender.strip()} ({installment_count} installments)")


@loan_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in LoanStatus]), help="Only loans in this status")
@click.pass_context
def list_loans(ctx, status: str | None):
    """List loans with their progress."""
    service = LoanService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    loans = service.list_loans(user_id, status=LoanStatus(status) if status else None)
    if not loans:
        click.echo("No loans found.")
        return

    for loan in loans:
        due = next_due_date(loan)
        next_info = f"next due {due}" if due else "paid off"
        click.echo(
            f"ID: {loan.id:3d} | {loan.lender:20s} | {loan.installments_paid}/{loan.installment_count} paid | "
            f"balance {format_amount(loan.outstanding_balance, loan.currency)} | {next_info}"
        )

    totals = service.get_totals(user_id)
    click.echo("-" * 60)
    click.echo(
        f"Active loans: {totals['active_loans']} | Outstanding: {totals['outstanding_balance']:,.2f} | "
        f"Monthly: {totals['monthly_installments']:,.2f}"
    )


@loan_group.command("pay")
@click.argument("loan_id", type=int)
@click.option("--installment", type=int, help="Installment number (defaults to the next one)")
@click.option("--wallet", help="Wallet to pay from (defaults to the loan's)")
@click.option("--date", "payment_date", help="Payment date (defaults to today)")
@click.pass_context
def pay(ctx, loan_id: int, installment: int | None, wallet: str | None, payment_date: str | None):
    """Pay the next installment of a loan."""
    service = LoanService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None

    try:
        paid_on = parse_date(payment_date) if payment_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        if installment is None:
            installment = service.get_loan(user_id, loan_id).installments_paid + 1
        transaction_id = service.pay_installment(
            user_id, loan_id, installment, wallet_id=wallet_id, payment_date=paid_on
        )
        loan = service.get_loan(user_id, loan_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Paid installment {installment}/{loan.installment_count} (transaction {transaction_id})")
    if loan.is_paid_off:
        click.echo("Loan paid off!")
    else:
        click.echo(f"Outstanding balance: {format_amount(loan.outstanding_balance, loan.currency)}")


@loan_group.command("prepay")
@click.argument("loan_id", type=int)
@click.argument("count", type=int)
@click.option("--wallet", help="Wallet to pay from (defaults to the loan's)")
@click.pass_context
def prepay(ctx, loan_id: int, count: int, wallet: str | None):
    """Pay the next COUNT installments at once."""
    service = LoanService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None
    try:
        transaction_ids = service.prepay_installments(user_id, loan_id, count, wallet_id=wallet_id)
        loan = service.get_loan(user_id, loan_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Prepaid {len(transaction_ids)} installments of loan {loan_id}")
    click.echo(f"Paid {loan.installments_paid}/{loan.installment_count}")


@loan_group.command("payoff")
@click.argument("loan_id", type=int)
@click.option("--wallet", help="Wallet to pay from (defaults to the loan's)")
@click.confirmation_option(prompt="Pay off the whole outstanding balance?")
@click.pass_context
def payoff(ctx, loan_id: int, wallet: str | None):
    """Pay off the outstanding balance in one payment."""
    service = LoanService(ctx.obj["db"])
    wallet_id = resolve_wallet_or_exit(ctx, service.wallets, wallet) if wallet else None
    try:
        transaction_id = service.pay_off_loan(ctx.obj["user"], loan_id, wallet_id=wallet_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Loan {loan_id} paid off (transaction {transaction_id})")


@loan_group.command("schedule")
@click.argument("loan_id", type=int)
@click.pass_context
def schedule(ctx, loan_id: int):
    """Show the installment schedule of a loan."""
    service = LoanService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    try:
        loan = service.get_loan(user_id, loan_id)
        installments = service.list_installments(user_id, loan_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{loan.lender} ({loan.loan_type.value})")
    for item in installments:
        state = f"paid (transaction {item.transaction_id})" if item.is_paid else "open"
        click.echo(f"  {item.number:3d}. {item.due_date}  {item.amount:10,.2f}  {state}")

    interest = interest_summary(loan)
    click.echo(f"Total interest: {interest['total_interest']:,.2f}")
    if loan.interest_rate:
        click.echo(f"Interest paid so far (estimate): {interest['interest_paid']:,.2f}")


@loan_group.command("projection")
@click.argument("loan_id", type=int)
@click.pass_context
def projection(ctx, loan_id: int):
    """Estimate the savings of paying a loan faster."""
    service = LoanService(ctx.obj["db"])
    try:
        loan = service.get_loan(ctx.obj["user"], loan_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = project_payoff_scenarios(loan)
    if result is None:
        click.echo(f"Loan {loan_id} is paid off.")
        return

    click.echo(f"Remaining installments: {result.remaining_installments}")
    click.echo(f"Remaining interest: {result.remaining_interest:,.2f}")
    click.echo(f"Normal payoff: {result.normal_payoff_date}")
    for scenario in result.scenarios:
        click.echo(
            f"  {scenario.name:10s} {scenario.installments} installments, done by {scenario.payoff_date}, "
            f"saves ~{scenario.estimated_savings:,.2f} and {scenario.months_saved} months"
        )
    click.echo("Projections are estimates, not an amortization schedule.")


@loan_group.command("budget")
@click.pass_context
def budget(ctx):
    """Share of monthly income committed to installments."""
    service = LoanService(ctx.obj["db"])
    result = service.get_budget_commitment(ctx.obj["user"])
    click.echo(f"Monthly income (average): {result.monthly_income:,.2f}")
    click.echo(f"Monthly installments: {result.monthly_installments:,.2f}")
    click.echo(f"Committed: {result.percentage}% ({result.health.value})")


@loan_group.command("delete")
@click.argument("loan_id", type=int)
@click.pass_context
def delete(ctx, loan_id: int):
    """Delete a loan without payments."""
    service = LoanService(ctx.obj["db"])
    try:
        service.delete_loan(ctx.obj["user"], loan_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted loan {loan_id}")


def register_commands(cli):
    """Register loan commands with main CLI."""
    cli.add_command(loan_group)
