"""Main CLI entry point."""

import logging

import click
from churchledger.database.factories import DB_PATH_ENV_VAR, create_sqlite_database
from churchledger.logging_config import configure_logging

# Import and register all commands at module level
from churchledger.cli.commands import (
    import_cmd,
    bank,
    reconcile,
    member,
    ledger,
    category,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV_VAR} environment variable)",
    envvar=DB_PATH_ENV_VAR,
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """churchledger - Bank statement reconciliation for the church ledger.

    Import bank statement exports, review suggested members for each
    deposit, and post them to the ledger.
    """
    ctx.ensure_object(dict)
    configure_logging(logging.DEBUG if verbose else logging.INFO)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
import_cmd.register_commands(cli)
bank.register_commands(cli)
reconcile.register_commands(cli)
member.register_commands(cli)
ledger.register_commands(cli)
category.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
