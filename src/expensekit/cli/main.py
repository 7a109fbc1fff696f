"""Main CLI entry point."""

import click
from expensekit.config import LedgerSettings
from expensekit.database.factories import create_sqlite_database
from expensekit.logging_setup import setup_logging

# Import and register all commands at module level
from expensekit.cli.commands import (
    account,
    sibling,
    deposit,
    pay,
    transaction,
    merge,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides EXPENSEKIT_DB_PATH environment variable)",
    envvar="EXPENSEKIT_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log ledger activity to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Expensekit - Expense account ledger.

    Fund expense accounts, record payments, and stage historical entries in
    sibling accounts that are later merged back into their parent.
    """
    ctx.ensure_object(dict)

    if verbose:
        setup_logging(verbose=True)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            ctx.obj["settings"] = LedgerSettings.from_env()
        except ValueError as e:
            raise click.ClickException(str(e))
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
sibling.register_commands(cli)
deposit.register_commands(cli)
pay.register_commands(cli)
transaction.register_commands(cli)
merge.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
