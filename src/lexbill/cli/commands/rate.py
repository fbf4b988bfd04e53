"""Billing rate commands."""

import click

from lexbill.cli.error_handling import handle_domain_error
from lexbill.cli.formatting import format_rate
from lexbill.domain.billing_rates import BillingRateService
from lexbill.domain.entities import BillingRate, RateType
from lexbill.domain.errors import DomainError
from lexbill.domain.rates import RateEngine
from lexbill.utils.amount_parser import parse_amount
from lexbill.utils.date_parser import parse_date, parse_datetime

RATE_TYPES = click.Choice([rate_type.value for rate_type in RateType], case_sensitive=False)


def _scope(rate: BillingRate) -> str:
    parts = []
    if rate.user_id is not None:
        parts.append(f"user {rate.user_id}")
    else:
        parts.append("firm-wide")
    if rate.legal_case_id is not None:
        parts.append(f"case {rate.legal_case_id}")
    if rate.client_id is not None:
        parts.append(f"client {rate.client_id}")
    if rate.matter_type_id is not None:
        parts.append(f"matter type {rate.matter_type_id}")
    return ", ".join(parts)


def _echo_rate(rate: BillingRate) -> None:
    period = f"{rate.effective_date} .. {rate.end_date or 'open'}"
    status = "active" if rate.is_active else "inactive"
    click.echo(
        f"ID: {rate.id:3d} | {format_rate(rate.rate_amount):>14s} | {rate.rate_type.value:10s} | "
        f"{period:24s} | {status:8s} | {_scope(rate)}"
    )


@click.group()
def rate_group():
    """Manage billing rates."""
    pass


@rate_group.command("set")
@click.argument("amount")
@click.option("--for-user", "user_id", type=int, help="User the rate applies to (default: firm-wide)")
@click.option("--case", "legal_case_id", type=int, help="Limit the rate to a case")
@click.option("--client", "client_id", type=int, help="Limit the rate to a client")
@click.option("--matter-type", "matter_type_id", type=int, help="Limit the rate to a matter type")
@click.option("--type", "rate_type", type=RATE_TYPES, default=RateType.STANDARD.value, show_default=True)
@click.option("--effective", help="First day of the rate (default: today)")
@click.option("--end", "end_date", help="Last day of the rate")
@click.pass_context
def set_rate(
    ctx,
    amount: str,
    user_id: int | None,
    legal_case_id: int | None,
    client_id: int | None,
    matter_type_id: int | None,
    rate_type: str,
    effective: str | None,
    end_date: str | None,
):
    """Create a billing rate.

    Examples:
        lexbill --tenant 1 rate set 400 --for-user 5
        lexbill --tenant 1 rate set 450 --for-user 5 --case 12 --effective 2024-01-01
        lexbill --tenant 1 rate set 200 --matter-type 3 --type DISCOUNTED
    """
    clock = ctx.obj["clock"]
    try:
        rate_amount = parse_amount(amount)
        effective_date = parse_date(effective, today=clock.now().date()) if effective else None
        end = parse_date(end_date, today=clock.now().date()) if end_date else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    service = BillingRateService(ctx.obj["db"], clock=clock)
    try:
        rate_id = service.create_rate(
            ctx.obj["tenant_id"],
            rate_amount,
            effective_date=effective_date,
            rate_type=RateType(rate_type.upper()),
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            end_date=end,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created billing rate {rate_id}: {format_rate(rate_amount)}")


@rate_group.command("list")
@click.option("--for-user", "user_id", type=int, help="Filter by user")
@click.option("--case", "legal_case_id", type=int, help="Filter by case")
@click.option("--client", "client_id", type=int, help="Filter by client")
@click.option("--matter-type", "matter_type_id", type=int, help="Filter by matter type")
@click.option("--type", "rate_type", type=RATE_TYPES, help="Filter by rate type")
@click.option("--active", "active_only", is_flag=True, help="Only active rates")
@click.pass_context
def list_rates(
    ctx,
    user_id: int | None,
    legal_case_id: int | None,
    client_id: int | None,
    matter_type_id: int | None,
    rate_type: str | None,
    active_only: bool,
):
    """List billing rates."""
    service = BillingRateService(ctx.obj["db"], clock=ctx.obj["clock"])
    try:
        rates = service.list_rates(
            ctx.obj["tenant_id"],
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            rate_type=RateType(rate_type.upper()) if rate_type else None,
            active_only=active_only,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not rates:
        click.echo("No billing rates found.")
        return

    click.echo("\nBilling rates:")
    click.echo("-" * 100)
    for rate in rates:
        _echo_rate(rate)


@rate_group.command("deactivate")
@click.argument("rate_id", type=int)
@click.option("--end", "end_date", help="Last day of the rate (default: today)")
@click.pass_context
def deactivate_rate(ctx, rate_id: int, end_date: str | None):
    """Deactivate a billing rate."""
    clock = ctx.obj["clock"]
    end = None
    if end_date:
        try:
            end = parse_date(end_date, today=clock.now().date())
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    service = BillingRateService(ctx.obj["db"], clock=clock)
    try:
        service.deactivate_rate(ctx.obj["tenant_id"], rate_id, end_date=end)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated billing rate {rate_id}")


@rate_group.command("delete")
@click.argument("rate_id", type=int)
@click.pass_context
def delete_rate(ctx, rate_id: int):
    """Delete a billing rate."""
    service = BillingRateService(ctx.obj["db"], clock=ctx.obj["clock"])
    try:
        service.delete_rate(ctx.obj["tenant_id"], rate_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted billing rate {rate_id}")


@rate_group.command("effective")
@click.option("--for-user", "user_id", type=int, required=True, help="User doing the work")
@click.option("--case", "legal_case_id", type=int, help="Case the work is for")
@click.option("--client", "client_id", type=int, help="Client (default: the case's)")
@click.option("--matter-type", "matter_type_id", type=int, help="Matter type (default: the case's)")
@click.option("--role", help="User role for the role default rate")
@click.option("--at", "at", help="Moment of the work, e.g. '2024-01-06 19:30' (default: now)")
@click.option("--emergency", is_flag=True, help="Emergency work")
@click.pass_context
def effective_rate(
    ctx,
    user_id: int,
    legal_case_id: int | None,
    client_id: int | None,
    matter_type_id: int | None,
    role: str | None,
    at: str | None,
    emergency: bool,
):
    """Show the rate the waterfall resolves, with multipliers applied.

    Examples:
        lexbill --tenant 1 rate effective --for-user 5 --case 12
        lexbill --tenant 1 rate effective --for-user 5 --role PARTNER --at "saturday 20:00"
    """
    clock = ctx.obj["clock"]
    when = clock.now()
    if at:
        try:
            when = parse_datetime(at, now=clock.now())
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    engine = RateEngine(ctx.obj["db"], policy=ctx.obj["policy"], clock=clock)
    tenant_id = ctx.obj["tenant_id"]
    try:
        base = engine.resolve_base_rate(
            tenant_id,
            user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            on_date=when.date(),
            role=role,
        )
        effective = engine.calculate_effective_rate(
            tenant_id,
            user_id,
            legal_case_id=legal_case_id,
            when=when,
            is_emergency=emergency,
            role=role,
            client_id=client_id,
            matter_type_id=matter_type_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Base rate: {format_rate(base)}")
    click.echo(f"Effective rate at {when:%Y-%m-%d %H:%M}: {format_rate(effective)}")


@rate_group.command("history")
@click.option("--for-user", "user_id", type=int, required=True, help="User whose rates to show")
@click.pass_context
def rate_history(ctx, user_id: int):
    """Show every rate of a user, newest first."""
    service = BillingRateService(ctx.obj["db"], clock=ctx.obj["clock"])
    try:
        rates = service.get_rate_history_for_user(ctx.obj["tenant_id"], user_id)
        average = service.get_average_rate_by_user(ctx.obj["tenant_id"], user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not rates:
        click.echo(f"No billing rates for user {user_id}.")
        return

    for rate in rates:
        _echo_rate(rate)
    click.echo(f"\nAverage active rate: {format_rate(average)}")


def register_commands(cli):
    """Register billing rate commands with main CLI."""
    cli.add_command(rate_group, name="rate")
