"""Time entry commands."""

from decimal import Decimal

import click

from lexbill.cli.error_handling import handle_domain_error, require_user
from lexbill.cli.formatting import format_money, format_rate
from lexbill.domain.entities import TimeEntryDraft
from lexbill.domain.errors import DomainError
from lexbill.domain.time_entry import TimeEntryService
from lexbill.utils.amount_parser import parse_amount, parse_hours
from lexbill.utils.date_parser import get_date_range, parse_date

PERIODS = click.Choice(["this-week", "last-week", "this-month", "last-month"], case_sensitive=False)


def _service(ctx) -> TimeEntryService:
    return TimeEntryService(ctx.obj["db"], policy=ctx.obj["policy"], clock=ctx.obj["clock"])


@click.group()
def entry_group():
    """Inspect and check time entries."""
    pass


@entry_group.command("list")
@click.option("--for-user", "user_id", type=int, help="Filter by user (default: every user)")
@click.option("--case", "legal_case_id", type=int, help="Filter by case")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last monday')")
@click.option("--end-date", help="End date")
@click.option("--period", type=PERIODS, help="Named period instead of explicit dates")
@click.pass_context
def list_entries(
    ctx,
    user_id: int | None,
    legal_case_id: int | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
):
    """List time entries."""
    today = ctx.obj["clock"].now().date()

    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)

    start = end = None
    try:
        if period:
            start, end = get_date_range(period, today=today)
        else:
            start = parse_date(start_date, today=today) if start_date else None
            end = parse_date(end_date, today=today) if end_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    try:
        entries = _service(ctx).list_time_entries(
            ctx.obj["tenant_id"],
            user_id=user_id,
            start_date=start,
            end_date=end,
            legal_case_id=legal_case_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not entries:
        click.echo("No time entries found.")
        return

    total_hours = Decimal("0")
    total_amount = Decimal("0")
    click.echo(f"\nFound {len(entries)} time entr{'y' if len(entries) == 1 else 'ies'}:")
    click.echo("-" * 100)
    for entry in entries:
        amount = entry.hours * entry.rate if entry.rate is not None else None
        total_hours += entry.hours
        if amount is not None and entry.billable:
            total_amount += amount
        click.echo(
            f"ID: {entry.id:3d} | {entry.date} | User: {entry.user_id:3d} | Case: {entry.legal_case_id:4d} | "
            f"{entry.hours:>5}h | {format_rate(entry.rate):>12s} | {format_money(amount):>10s} | "
            f"{entry.status.value:9s} | {entry.description or ''}"
        )
    click.echo("-" * 100)
    click.echo(f"Total: {total_hours}h, billable {format_money(total_amount)}")


@entry_group.command("validate")
@click.argument("case_id", type=int)
@click.argument("hours")
@click.argument("description")
@click.option("--date", "entry_date", help="Date of the work (default: today)")
@click.option("--rate", help="Hourly rate")
@click.pass_context
def validate_entry(ctx, case_id: int, hours: str, description: str, entry_date: str | None, rate: str | None):
    """Check a time entry against the billing rules without recording it.

    HOURS accepts "1.5", "1.5h", "1:30" or "90m".

    Examples:
        lexbill --tenant 1 --user 5 entry validate 12 1.5 "Draft response to interrogatories"
    """
    user_id = require_user(ctx)
    today = ctx.obj["clock"].now().date()
    try:
        draft = TimeEntryDraft(
            user_id=user_id,
            legal_case_id=case_id,
            date=parse_date(entry_date, today=today) if entry_date else today,
            hours=parse_hours(hours),
            rate=parse_amount(rate) if rate else None,
            description=description,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        result = _service(ctx).validate_time_entry(ctx.obj["tenant_id"], draft)
    except DomainError as e:
        handle_domain_error(ctx, e)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}")
    if result.valid:
        click.echo("Time entry is valid.")
        return

    click.echo("Time entry is invalid:", err=True)
    for error in result.errors:
        click.echo(f"  - {error}", err=True)
    ctx.exit(1)


def register_commands(cli):
    """Register time entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
