"""Deposit command."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.date_filters import parse_date_or_exit
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.entities import DepositSource
from expensekit.domain.errors import DomainError, ConcurrencyConflictError, format_money
from expensekit.domain.ledger import LedgerService
from expensekit.utils.amount_parser import parse_amount


@click.command("deposit")
@click.option("--account", required=True, help="Account number or ID")
@click.option("--amount", required=True, help="Deposit amount (e.g., 1000 or 1,000.00)")
@click.option(
    "--source",
    type=click.Choice([s.value for s in DepositSource], case_sensitive=False),
    default=DepositSource.MANUAL.value,
    show_default=True,
    help="Where the money came from",
)
@click.option("--description", help="Deposit description")
@click.option("--date", "date_str", help="Deposit date (defaults to today; YYYY-MM-DD or relative)")
@click.pass_context
def deposit(ctx, account: str, amount: str, source: str, description: str | None, date_str: str | None):
    """Deposit money into an expense account.

    Examples:
        expensekit deposit --account EXP-001 --amount 1000
        expensekit deposit --account EXP-001-01 --amount 250 --date "1 year ago"
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
        txn = service.record_deposit(
            account_id,
            value,
            source=source,
            description=description,
            occurred_at=occurred_at,
        )
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)

    balance = AccountService(db, ctx.obj["settings"]).get_account(account_id).balance
    click.echo(f"Recorded deposit {txn.id} of {format_money(txn.amount)} on {txn.occurred_at}")
    click.echo(f"  New balance: {format_money(balance)}")


def register_commands(cli):
    """Register deposit command with main CLI."""
    cli.add_command(deposit)
