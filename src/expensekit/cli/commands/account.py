"""Account management commands."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.date_filters import resolve_cli_date_range
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.errors import DomainError, ConcurrencyConflictError, format_money
from expensekit.domain.ledger import LedgerService
from expensekit.utils.amount_parser import parse_amount
from expensekit.utils.date_parser import PERIODS


def _format_account_line(acc) -> str:
    status = "" if acc.is_active else " (inactive)"
    low = " LOW" if acc.is_active and acc.is_low_balance else ""
    return f"{acc.account_number:12s} | {acc.name:24s} | {format_money(acc.balance):>14s}{low}{status}"


@click.group()
def account_group():
    """Manage expense accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--description", help="Account description")
@click.option("--threshold", help="Low balance threshold (defaults to EXPENSEKIT_LOW_BALANCE_THRESHOLD or 500)")
@click.pass_context
def create_account(ctx, name: str, description: str | None, threshold: str | None):
    """Create a new expense account.

    Examples:
        expensekit account create "Ops"
        expensekit account create "Fuel" --threshold 200 --description "Delivery vans"
    """
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])

    threshold_value = None
    if threshold is not None:
        try:
            threshold_value = parse_amount(threshold)
        except ValueError as e:
            click.echo(f"Error: Invalid threshold: {e}", err=True)
            ctx.exit(1)

    try:
        acc = service.create_account(name=name, description=description, low_balance_threshold=threshold_value)
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account {acc.account_number} '{acc.name}' (ID: {acc.id})")


@account_group.command("list")
@click.option("--all", "include_siblings", is_flag=True, help="Include sibling accounts")
@click.option("--active", "active_only", is_flag=True, help="Only active accounts")
@click.pass_context
def list_accounts(ctx, include_siblings: bool, active_only: bool):
    """List expense accounts."""
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])

    accounts = service.list_accounts(include_siblings=include_siblings, active_only=active_only)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        click.echo(_format_account_line(acc))


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show an account and its siblings.

    ACCOUNT can be an account number or ID.
    """
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.get_account(account_id)

    click.echo(f"Account:    {acc.account_number} (ID: {acc.id})")
    click.echo(f"Name:       {acc.name}")
    if acc.description:
        click.echo(f"Description: {acc.description}")
    click.echo(f"Balance:    {format_money(acc.balance)}")
    click.echo(f"Threshold:  {format_money(acc.low_balance_threshold)}")
    click.echo(f"Active:     {'yes' if acc.is_active else 'no'}")
    if acc.is_sibling:
        parent = service.get_account(acc.parent_account_id)
        click.echo(f"Sibling of: {parent.account_number} '{parent.name}'")
    else:
        siblings = service.list_siblings(acc.id)
        if siblings:
            click.echo("Siblings:")
            for sib in siblings:
                click.echo(f"  {_format_account_line(sib)}")
    if acc.is_active and acc.is_low_balance:
        click.echo("Warning: balance is below the low balance threshold")


@account_group.command("siblings")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def list_account_siblings(ctx, account: str):
    """List the sibling accounts of a root account."""
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        siblings = service.list_siblings(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not siblings:
        click.echo("No sibling accounts found.")
        return
    for sib in siblings:
        click.echo(_format_account_line(sib))


def _set_active(ctx, account: str, is_active: bool) -> None:
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    account_id = resolve_account_or_exit(ctx, service, account)
    try:
        acc = service.set_account_active(account_id, is_active)
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Account {acc.account_number} {'activated' if is_active else 'deactivated'}")


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str):
    """Re-activate an account."""
    _set_active(ctx, account, True)


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account (history is kept, new entries are refused)."""
    _set_active(ctx, account, False)


@account_group.command("low-balance")
@click.pass_context
def low_balance(ctx):
    """List active accounts below their low balance threshold."""
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    accounts = service.list_low_balance_accounts()
    if not accounts:
        click.echo("No accounts below their threshold.")
        return
    for acc in accounts:
        click.echo(f"{_format_account_line(acc)} (threshold {format_money(acc.low_balance_threshold)})")


@account_group.command("stats")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@click.option("--period", type=click.Choice(PERIODS), help="Named period instead of explicit dates")
@click.pass_context
def account_stats(ctx, account: str, start_date: str | None, end_date: str | None, period: str | None):
    """Show deposit and payment totals for a period."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)

    stats = LedgerService(db, ctx.obj["settings"]).get_account_stats(account_id, start_date=start, end_date=end)
    click.echo(f"Deposits: {stats.deposits_count} totalling {format_money(stats.deposits_total)}")
    click.echo(f"Payments: {stats.payments_count} totalling {format_money(stats.payments_total)}")


@click.command("reconcile")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def reconcile(ctx, account: str):
    """Check an account's balance against its transactions."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), account)
    summary = LedgerService(db, ctx.obj["settings"]).get_balance_summary(account_id)

    click.echo(f"Recorded balance:   {format_money(summary.recorded_balance)}")
    click.echo(f"Calculated balance: {format_money(summary.calculated_balance)}")
    click.echo(f"  Deposits:  {format_money(summary.total_deposits)}")
    click.echo(f"  Payments:  {format_money(summary.total_payments)}")
    if summary.is_balanced:
        click.echo("Balanced")
    else:
        click.echo("Error: balance does not match transactions", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
    cli.add_command(reconcile)
