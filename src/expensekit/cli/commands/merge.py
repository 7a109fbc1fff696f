"""Sibling merge commands."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.errors import DomainError, ConcurrencyConflictError, format_money
from expensekit.domain.merge import MergeService


@click.command("merge")
@click.argument("sibling", metavar="SIBLING_ACCOUNT")
@click.option("--admin", is_flag=True, help="Act as administrator (required for a non-zero balance)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def merge(ctx, sibling: str, admin: bool, yes: bool):
    """Merge a sibling account into its parent and delete the sibling.

    All of the sibling's transactions move to the parent with their original
    dates. A sibling with a non-zero balance can only be merged with --admin.

    Examples:
        expensekit merge EXP-001-01
        expensekit merge EXP-001-02 --admin --yes
    """
    db = ctx.obj["db"]
    account_service = AccountService(db, ctx.obj["settings"])
    sibling_id = resolve_account_or_exit(ctx, account_service, sibling)
    sibling_obj = account_service.get_account(sibling_id)
    service = MergeService(db, ctx.obj["settings"])

    try:
        check = service.check_merge(sibling_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    parent = account_service.get_account(check.parent_account_id)
    if not yes and not click.confirm(
        f"Merge {sibling_obj.account_number} ({check.transaction_count} transactions, "
        f"balance {format_money(check.balance)}) into {parent.account_number}?"
    ):
        click.echo("Merge cancelled.")
        return

    try:
        result = service.merge_into_parent(sibling_id, actor_is_privileged=admin)
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Merged {result.merged_account_number} into {parent.account_number}: "
        f"{result.transactions_merged} transactions, "
        f"{format_money(result.balance_transferred)} transferred"
    )


@click.command("merge-check")
@click.argument("sibling", metavar="SIBLING_ACCOUNT")
@click.pass_context
def merge_check(ctx, sibling: str):
    """Show what merging a sibling account would do."""
    db = ctx.obj["db"]
    sibling_id = resolve_account_or_exit(ctx, AccountService(db, ctx.obj["settings"]), sibling)
    try:
        check = MergeService(db, ctx.obj["settings"]).check_merge(sibling_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Transactions to move: {check.transaction_count}")
    click.echo(f"Balance to transfer:  {format_money(check.balance)}")
    if check.requires_privilege:
        click.echo("Requires administrator (--admin): balance is not zero")
    else:
        click.echo("Standard merge: balance is zero")


def register_commands(cli):
    """Register merge commands with main CLI."""
    cli.add_command(merge)
    cli.add_command(merge_check)
