"""CLI error handling helpers."""

import click

from expensekit.domain.errors import (
    ConcurrencyConflictError,
    DomainError,
    InsufficientFundsError,
    PrivilegeRequiredError,
    format_money,
)


def handle_domain_error(ctx: click.Context, error: DomainError | ConcurrencyConflictError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, InsufficientFundsError):
        click.echo(
            f"Deposit at least {format_money(error.shortfall)} into the account and try again.",
            err=True,
        )
    elif isinstance(error, PrivilegeRequiredError):
        click.echo("Re-run with --admin as an administrator to merge a non-zero balance.", err=True)
    elif isinstance(error, ConcurrencyConflictError):
        click.echo("The account was changed by someone else; please retry.", err=True)
    ctx.exit(1)
