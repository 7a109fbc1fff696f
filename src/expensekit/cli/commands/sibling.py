"""Sibling account commands."""

import click
from expensekit.cli.account_resolution import resolve_account_or_exit
from expensekit.cli.error_handling import handle_domain_error
from expensekit.domain.account import AccountService
from expensekit.domain.errors import DomainError, ConcurrencyConflictError


@click.group()
def sibling_group():
    """Manage sibling accounts for historical data entry."""
    pass


@sibling_group.command("create")
@click.argument("parent", metavar="PARENT_ACCOUNT")
@click.argument("name", metavar="NAME")
@click.option("--description", help="Sibling account description")
@click.pass_context
def create_sibling(ctx, parent: str, name: str, description: str | None):
    """Create a sibling of a root account.

    Backdated payments and deposits recorded in the sibling do not touch the
    parent's balance until the sibling is merged.

    Examples:
        expensekit sibling create EXP-001 "Ops 2023 backfill"
    """
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    parent_id = resolve_account_or_exit(ctx, service, parent)

    try:
        sibling = service.create_sibling(parent_id, name=name, description=description)
    except (DomainError, ConcurrencyConflictError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created sibling account {sibling.account_number} '{sibling.name}' (ID: {sibling.id})")


@sibling_group.command("next-number")
@click.argument("parent", metavar="PARENT_ACCOUNT")
@click.pass_context
def next_number(ctx, parent: str):
    """Show the account number the next sibling would get."""
    service = AccountService(ctx.obj["db"], ctx.obj["settings"])
    parent_id = resolve_account_or_exit(ctx, service, parent)
    try:
        click.echo(service.next_sibling_account_number(parent_id))
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register sibling commands with main CLI."""
    cli.add_command(sibling_group, name="sibling")
