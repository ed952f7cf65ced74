"""Ledger transaction commands."""

import json

import click
from churchledger.cli.error_handling import handle_domain_error, parse_date_or_exit
from churchledger.domain.entities import PaymentMethod, PaymentType
from churchledger.domain.ledger import LedgerTransactionService
from churchledger.domain.member import MemberService


@click.group()
def ledger_group():
    """Manage ledger payments."""
    pass


@ledger_group.command("add")
@click.option("--amount", required=True, help="Payment amount (e.g., 50.00)")
@click.option(
    "--type",
    "payment_type",
    required=True,
    type=click.Choice([t.value for t in PaymentType], case_sensitive=False),
    help="Payment type",
)
@click.option(
    "--method",
    "payment_method",
    required=True,
    type=click.Choice([m.value for m in PaymentMethod], case_sensitive=False),
    help="Payment method",
)
@click.option("--date", "payment_date", help="Payment date (YYYY-MM-DD or relative like 'today')")
@click.option("--member", "member_id", type=int, help="Paying member ID")
@click.option("--collector", "collected_by", type=int, help="Collector member ID")
@click.option("--receipt", "receipt_number", help="Receipt number (required for cash and check)")
@click.option("--note", help="Note")
@click.option("--external-id", help="External reference, must be unique")
@click.pass_context
def add_payment(
    ctx,
    amount: str,
    payment_type: str,
    payment_method: str,
    payment_date: str | None,
    member_id: int | None,
    collected_by: int | None,
    receipt_number: str | None,
    note: str | None,
    external_id: str | None,
):
    """Record a payment in the ledger.

    Examples:
        churchledger ledger add --amount 50 --type tithe --method cash --receipt R-101 --member 3
    """
    db = ctx.obj["db"]
    service = LedgerTransactionService(db)
    txn_date = parse_date_or_exit(ctx, payment_date, "payment date")

    try:
        transaction_id = service.create_transaction(
            amount=amount,
            payment_type=payment_type.lower(),
            payment_method=payment_method.lower(),
            payment_date=txn_date,
            member_id=member_id,
            collected_by=collected_by,
            receipt_number=receipt_number,
            note=note,
            external_id=external_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created payment {transaction_id}")


@ledger_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--member", "member_id", type=int, help="Only payments by this member ID")
@click.pass_context
def list_payments(ctx, start_date: str | None, end_date: str | None, member_id: int | None):
    """List ledger payments."""
    db = ctx.obj["db"]
    service = LedgerTransactionService(db)
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    transactions = service.list_transactions(start_date=start, end_date=end, member_id=member_id)
    if not transactions:
        click.echo("No payments found.")
        return

    members = {m.id: m.full_name for m in MemberService(db).list_members()}

    click.echo(f"\nFound {len(transactions)} payment(s):")
    click.echo("-" * 100)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':>12}  {'Type':<24} {'Method':<12} {'Member':<30}"
    )
    click.echo("-" * 100)
    total = 0
    for txn in transactions:
        total += txn.amount
        amount_str = f"${txn.amount:,.2f}"
        member_name = members.get(txn.member_id, "") if txn.member_id else ""
        click.echo(
            f"{txn.id:<6} {str(txn.payment_date):<12} {amount_str:>12}  "
            f"{txn.payment_type.value:<24} {txn.payment_method.value:<12} {member_name[:30]:<30}"
        )
    click.echo("-" * 100)
    click.echo(f"Total: ${total:,.2f}")


@ledger_group.command("batch-create")
@click.argument("items_json", type=click.Path(exists=True))
@click.option("--collector", "collected_by", type=int, help="Collector member ID for every item")
@click.pass_context
def batch_create(ctx, items_json: str, collected_by: int | None):
    """Record payments from a JSON file holding a list of items.

    Items already recorded under the same external_id are reported as
    existing and skipped.
    """
    db = ctx.obj["db"]
    service = LedgerTransactionService(db)

    try:
        with open(items_json, encoding="utf-8") as f:
            items = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON: {e}", err=True)
        ctx.exit(1)
        return
    if not isinstance(items, list):
        click.echo("Error: Expected a JSON list of payment items", err=True)
        ctx.exit(1)
        return

    results = service.batch_create(items, collected_by=collected_by)
    created = [r for r in results if r["success"]]
    existing = [r for r in results if r.get("code") == "EXISTS"]
    failed = [r for r in results if r.get("code") == "FAILED"]

    click.echo(f"\nBatch complete:")
    click.echo(f"  Created: {len(created)} payments")
    click.echo(f"  Existing: {len(existing)} already recorded")
    if failed:
        click.echo(f"  Failed: {len(failed)}")
        for r in failed:
            click.echo(f"    {r['external_id']}: {r['message']}", err=True)


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
