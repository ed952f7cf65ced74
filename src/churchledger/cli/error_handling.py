"""CLI error handling helpers."""

from datetime import date

import click

from churchledger.domain.errors import DomainError
from churchledger.utils.date_parser import parse_date


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str) -> date | None:
    """Parse an optional date option, exiting with an error if it is invalid."""
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
