"""Bank statement import command."""

import click
from churchledger.domain.statement_import import StatementImportService


@click.command("import")
@click.argument("statement_csv", type=click.Path(exists=True))
@click.pass_context
def import_statement(ctx, statement_csv: str):
    """Import bank transactions from a statement CSV export."""
    db = ctx.obj["db"]
    service = StatementImportService(db)

    try:
        result = service.import_statement(statement_csv)
        click.echo(f"\nImport complete:")
        click.echo(f"  Imported: {result['imported']} bank transactions")
        click.echo(f"  Updated: {result['updated']} balances")
        click.echo(f"  Skipped: {result['skipped']} duplicates")
        if result["errors"]:
            click.echo(f"  Errors: {len(result['errors'])}")
            for error in result["errors"]:
                click.echo(f"    {error}", err=True)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_statement)
