"""Reconciliation command."""

import click
from churchledger.cli.error_handling import handle_domain_error
from churchledger.domain.entities import PaymentType
from churchledger.domain.errors import AlreadyProcessedError
from churchledger.domain.reconciliation import (
    CreateAndLink,
    Ignore,
    LinkToExisting,
    ReconciliationOutcome,
    ReconciliationService,
)


@click.command("reconcile")
@click.argument("bank_transaction_id", type=int)
@click.option("--member", "member_id", type=int, help="Member ID that made the payment")
@click.option(
    "--type",
    "payment_type",
    type=click.Choice([t.value for t in PaymentType], case_sensitive=False),
    help="Payment type for the new ledger payment",
)
@click.option("--collector", "collected_by", type=int, help="Member ID of the collector")
@click.option("--for-year", type=int, help="Book the payment in this year")
@click.option("--link", "link_id", type=int, help="Link to an existing ledger payment ID")
@click.option("--ignore", is_flag=True, help="Mark the bank transaction as not a payment")
@click.pass_context
def reconcile(
    ctx,
    bank_transaction_id: int,
    member_id: int | None,
    payment_type: str | None,
    collected_by: int | None,
    for_year: int | None,
    link_id: int | None,
    ignore: bool,
):
    """Reconcile a pending bank transaction.

    Examples:
        churchledger reconcile 12 --member 3 --type donation
        churchledger reconcile 12 --link 45
        churchledger reconcile 12 --ignore
    """
    db = ctx.obj["db"]
    service = ReconciliationService(db)

    chosen = sum(1 for flag in (member_id is not None, link_id is not None, ignore) if flag)
    if chosen != 1:
        click.echo("Error: Specify exactly one of --member, --link or --ignore.", err=True)
        ctx.exit(1)

    if member_id is None:
        create_only = [
            name
            for name, value in (
                ("--type", payment_type),
                ("--collector", collected_by),
                ("--for-year", for_year),
            )
            if value is not None
        ]
        if create_only:
            click.echo(
                f"Error: {', '.join(create_only)} can only be used with --member.", err=True
            )
            ctx.exit(1)

    if ignore:
        decision = Ignore()
    elif link_id is not None:
        decision = LinkToExisting(ledger_transaction_id=link_id)
    else:
        if not payment_type:
            click.echo("Error: --type is required with --member.", err=True)
            ctx.exit(1)
        decision = CreateAndLink(
            member_id=member_id,
            payment_type=payment_type.lower(),
            collected_by=collected_by,
            for_year=for_year,
        )

    try:
        result = service.reconcile(bank_transaction_id, decision)
    except AlreadyProcessedError as e:
        click.echo(f"Already processed: {e}", err=True)
        ctx.exit(1)
        return
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    ledger_txn = result.ledger_transaction
    if result.outcome == ReconciliationOutcome.CREATED:
        click.echo(f"Created payment {ledger_txn.id} for bank transaction {bank_transaction_id}")
    elif result.outcome == ReconciliationOutcome.LINKED:
        click.echo(
            f"Linked to existing payment {ledger_txn.id} for bank transaction {bank_transaction_id}"
        )
    else:
        click.echo(f"Ignored bank transaction {bank_transaction_id}")


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
