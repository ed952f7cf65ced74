"""Bank transaction review commands."""

import click
from churchledger.cli.error_handling import handle_domain_error, parse_date_or_exit
from churchledger.domain.entities import BankTransactionStatus, BankTransactionType
from churchledger.domain.errors import NotFoundError
from churchledger.domain.matching import MatchSuggestionService, MemberSuggestion


@click.group()
def bank_group():
    """Review imported bank transactions."""
    pass


@bank_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in BankTransactionStatus], case_sensitive=False),
    help="Only show transactions with this status",
)
@click.option(
    "--type",
    "txn_type",
    type=click.Choice([t.value for t in BankTransactionType], case_sensitive=False),
    help="Only show transactions of this type",
)
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--description", help="Only show transactions whose description contains this text")
@click.pass_context
def list_bank_transactions(
    ctx,
    status: str | None,
    txn_type: str | None,
    start_date: str | None,
    end_date: str | None,
    description: str | None,
):
    """List bank transactions with optional filters.

    Pending transactions show the suggested member, if any.
    """
    db = ctx.obj["db"]
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    transactions = db.list_bank_transactions(
        status=BankTransactionStatus(status.upper()) if status else None,
        type=BankTransactionType(txn_type.upper()) if txn_type else None,
        start_date=start,
        end_date=end,
        description=description,
    )

    if not transactions:
        click.echo("No bank transactions found.")
        return

    service = MatchSuggestionService(db)

    click.echo(f"\nFound {len(transactions)} bank transaction(s):")
    click.echo("-" * 136)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':>12}  {'Type':<8} {'Status':<8} {'Payer':<24} "
        f"{'Description':<30} {'Suggested':<24}"
    )
    click.echo("-" * 136)
    for txn in transactions:
        amount_str = f"${txn.amount:,.2f}"
        payer = (txn.payer_name or "")[:24]
        txn_description = txn.description[:30]
        suggested = ""
        if txn.status == BankTransactionStatus.PENDING:
            suggested = _suggestion_label(service.suggest_member(txn))[:24]
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {amount_str:>12}  {txn.type.value:<8} "
            f"{txn.status.value:<8} {payer:<24} {txn_description:<30} {suggested:<24}"
        )

    balance = db.get_current_balance()
    click.echo("-" * 136)
    click.echo(f"Current balance: ${balance or 0:,.2f}")


def _suggestion_label(suggestion: MemberSuggestion) -> str:
    if suggestion.is_actionable:
        return suggestion.member.full_name
    if suggestion.candidates:
        return f"ambiguous ({len(suggestion.candidates)})"
    return ""


@bank_group.command("suggest")
@click.argument("bank_transaction_id", type=int)
@click.pass_context
def suggest(ctx, bank_transaction_id: int):
    """Show the suggested member and possible duplicate payments."""
    db = ctx.obj["db"]
    service = MatchSuggestionService(db)

    try:
        payload = service.suggest(bank_transaction_id)
    except NotFoundError as e:
        handle_domain_error(ctx, e)
        return

    txn = payload["bank_transaction"]
    click.echo(f"\nBank transaction {txn.id}: {txn.date} ${txn.amount:,.2f} ({txn.status.value})")
    click.echo(f"  Description: {txn.description}")
    if txn.payer_name:
        click.echo(f"  Payer: {txn.payer_name}")

    member = payload["suggested_member"]
    if member is not None:
        click.echo(
            f"  Suggested member: {member.full_name} (ID: {member.id}, "
            f"{payload['match_source'].value.lower()})"
        )
    elif payload["ambiguous_candidates"]:
        click.echo("  Suggested member: ambiguous, candidates:")
        for candidate in payload["ambiguous_candidates"]:
            click.echo(f"    {candidate.full_name} (ID: {candidate.id})")
    else:
        click.echo("  Suggested member: none")

    duplicates = payload["potential_duplicate_ledger_transactions"]
    if duplicates:
        click.echo("  Possible duplicate payments:")
        for dup in duplicates:
            click.echo(
                f"    ID {dup.id}: {dup.payment_date} ${dup.amount:,.2f} "
                f"{dup.payment_type.value} ({dup.payment_method.value})"
            )


def register_commands(cli):
    """Register bank commands with main CLI."""
    cli.add_command(bank_group, name="bank")
