"""Transaction viewing commands."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.date_filters import resolve_cli_date_range
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.entities import TransactionType
from expensekit.domain.errors import DomainError, format_money
from expensekit.domain.ledger import LedgerService
from expensekit.utils.date_parser import PERIODS


def _format_transaction_line(txn) -> str:
    if txn.is_deposit:
        detail = f"from {txn.source.value}" if txn.source else ""
    else:
        detail = f"to {txn.payee_type.value} {txn.payee_id}"
        if txn.category:
            detail += f" [{txn.category}]"
    description = f" - {txn.description}" if txn.description else ""
    return (
        f"{txn.id:5d} | {txn.occurred_at} | {txn.type.value:7s} | "
        f"{format_money(txn.signed_amount):>13s} | {detail}{description}"
    )


@click.group()
def transaction_group():
    """View transactions."""
    pass


@transaction_group.command("list")
@click.option("--account", required=True, help="Account number or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative)")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative)")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of explicit dates")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice([t.value for t in TransactionType], case_sensitive=False),
    help="Only deposits or only payments",
)
@click.option("--limit", type=int, help="Maximum number of transactions")
@click.pass_context
def list_transactions(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    transaction_type: str | None,
    limit: int | None,
):
    """List an account's transactions, most recent first.

    Examples:
        expensekit transaction list --account EXP-001
        expensekit transaction list --account EXP-001 --period last-month --type PAYMENT
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)

    try:
        transactions = LedgerService(db, ctx.obj["settings"]).list_transactions(
            account_id,
            start_date=start,
            end_date=end,
            transaction_type=transaction_type,
            limit=limit,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nTransactions ({len(transactions)}):")
    click.echo("-" * 80)
    for txn in transactions:
        click.echo(_format_transaction_line(txn))


@transaction_group.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_transaction(ctx, transaction_id: int):
    """Show one transaction in full."""
    db = ctx.obj["db"]
    try:
        txn = LedgerService(db, ctx.obj["settings"]).get_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    account = AccountService(db, ctx.obj["settings"]).get_account(txn.account_id)
    click.echo(f"Transaction {txn.id} ({txn.type.value})")
    click.echo(f"  Account:  {account.account_number} '{account.name}'")
    click.echo(f"  Amount:   {format_money(txn.amount)}")
    click.echo(f"  Date:     {txn.occurred_at}")
    click.echo(f"  Recorded: {txn.recorded_at:%Y-%m-%d %H:%M:%S}")
    if txn.is_deposit:
        click.echo(f"  Source:   {txn.source.value}")
    else:
        click.echo(f"  Payee:    {txn.payee_type.value} {txn.payee_id}")
        if txn.category:
            click.echo(f"  Category: {txn.category}")
        if txn.batch_id:
            click.echo(f"  Batch:    {txn.batch_id}")
    if txn.description:
        click.echo(f"  Description: {txn.description}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
