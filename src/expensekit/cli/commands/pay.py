"""Payment commands."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.date_filters import parse_date_or_exit
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.batch_import import load_payment_batch
from expensekit.domain.entities import PayeeType
from expensekit.domain.errors import DomainError, ConcurrencyConflictError, format_money
from expensekit.domain.ledger import LedgerService
from expensekit.utils.amount_parser import parse_amount


@click.command("pay")
@click.option("--account", required=True, help="Account number or ID")
@click.option("--amount", required=True, help="Payment amount")
@click.option(
    "--payee-type",
    required=True,
    type=click.Choice([p.value for p in PayeeType], case_sensitive=False),
    help="Kind of payee",
)
@click.option("--payee", "payee_id", required=True, help="Payee identifier")
@click.option("--category", help="Expense category")
@click.option("--date", "date_str", help="Payment date (defaults to today; backdate only in sibling accounts)")
@click.option("--description", help="Payment description")
@click.pass_context
def pay(
    ctx,
    account: str,
    amount: str,
    payee_type: str,
    payee_id: str,
    category: str | None,
    date_str: str | None,
    description: str | None,
):
    """Record a payment from an expense account.

    Examples:
        expensekit pay --account EXP-001 --amount 120 --payee-type EMPLOYEE --payee E-17 --category Fuel
        expensekit pay --account EXP-001-01 --amount 50 --payee-type BUSINESS --payee ACME --date 2024-03-02
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)
    occurred_at = parse_date_or_exit(ctx, date_str)

    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    service = LedgerService(db, ctx.obj["settings"])
    try:
        txn = service.record_payment(
            account_id,
            value,
            payee_type=payee_type,
            payee_id=payee_id,
            category=category,
            occurred_at=occurred_at,
            description=description,
        )
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)

    balance = AccountService(db, ctx.obj["settings"]).get_account(account_id).balance
    click.echo(f"Recorded payment {txn.id} of {format_money(txn.amount)} to {txn.payee_type.value} {txn.payee_id}")
    click.echo(f"  Date: {txn.occurred_at}")
    click.echo(f"  New balance: {format_money(balance)}")


@click.command("pay-batch")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account number or ID")
@click.pass_context
def pay_batch(ctx, csv_file: str, account: str):
    """Record every payment in a CSV file, or none of them.

    CSV columns: amount, payee_type, payee_id, and optionally category, date,
    description.

    Examples:
        expensekit pay-batch payroll.csv --account EXP-001
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)

    try:
        specs = load_payment_batch(csv_file)
    except DomainError as e:
        handle_domain_error(ctx, e)

    service = LedgerService(db, ctx.obj["settings"])
    try:
        recorded = service.record_payment_batch(account_id, specs)
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)

    total = sum(t.amount for t in recorded)
    balance = AccountService(db, ctx.obj["settings"]).get_account(account_id).balance
    click.echo(f"Recorded {len(recorded)} payments totalling {format_money(total)}")
    click.echo(f"  New balance: {format_money(balance)}")


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(pay)
    cli.add_command(pay_batch)
