"""Income category commands."""

import click
from churchledger.cli.error_handling import handle_domain_error
from churchledger.domain.entities import PaymentType
from churchledger.domain.income_category import IncomeCategoryService


@click.group()
def category_group():
    """Manage income categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List income categories."""
    db = ctx.obj["db"]
    service = IncomeCategoryService(db)

    categories = service.list_categories()
    if not categories:
        click.echo("No income categories found. Run 'category seed' to create the defaults.")
        return

    click.echo("\nIncome categories:")
    for cat in categories:
        mapping = f" [{cat.payment_type_mapping}]" if cat.payment_type_mapping else ""
        click.echo(f"  {cat.gl_code} {cat.name}{mapping}")


@category_group.command("add")
@click.argument("gl_code")
@click.argument("name")
@click.option(
    "--payment-type",
    type=click.Choice([t.value for t in PaymentType], case_sensitive=False),
    help="Payment type booked under this category",
)
@click.pass_context
def add_category(ctx, gl_code: str, name: str, payment_type: str | None):
    """Create an income category."""
    db = ctx.obj["db"]
    service = IncomeCategoryService(db)

    try:
        category_id = service.create_category(
            gl_code=gl_code,
            name=name,
            payment_type_mapping=payment_type.lower() if payment_type else None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created income category {gl_code.upper()} '{name}' (ID: {category_id})")


@category_group.command("seed")
@click.pass_context
def seed_categories(ctx):
    """Create the default income categories."""
    db = ctx.obj["db"]
    service = IncomeCategoryService(db)

    created = service.seed_defaults()
    click.echo(f"Created {created} income categories")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
