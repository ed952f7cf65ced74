"""Member directory commands."""

import click
from churchledger.cli.error_handling import handle_domain_error
from churchledger.domain.member import MemberService


@click.group()
def member_group():
    """Manage members."""
    pass


@member_group.command("add")
@click.option("--first-name", required=True, help="First name")
@click.option("--last-name", required=True, help="Last name")
@click.option("--middle-name", help="Middle name")
@click.option("--email", help="Email address")
@click.option("--phone", help="Phone number")
@click.pass_context
def add_member(
    ctx,
    first_name: str,
    last_name: str,
    middle_name: str | None,
    email: str | None,
    phone: str | None,
):
    """Add a member."""
    db = ctx.obj["db"]
    service = MemberService(db)

    try:
        member_id = service.create_member(
            first_name=first_name,
            last_name=last_name,
            middle_name=middle_name,
            email=email,
            phone=phone,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created member {first_name} {last_name} (ID: {member_id})")


@member_group.command("list")
@click.pass_context
def list_members(ctx):
    """List all members."""
    db = ctx.obj["db"]
    service = MemberService(db)

    members = service.list_members()
    if not members:
        click.echo("No members found.")
        return

    click.echo(f"\nMembers:")
    for m in members:
        contact = ", ".join(part for part in (m.email, m.phone) if part)
        suffix = f" - {contact}" if contact else ""
        click.echo(f"  {m.full_name} (ID: {m.id}){suffix}")


def register_commands(cli):
    """Register member commands with main CLI."""
    cli.add_command(member_group, name="member")
