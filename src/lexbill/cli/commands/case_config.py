"""Case rate configuration commands."""

import click

from lexbill.cli.error_handling import handle_domain_error, require_user
from lexbill.cli.formatting import format_rate
from lexbill.domain.case_rates import CaseRateConfigurationService, describe_configuration
from lexbill.domain.errors import DomainError
from lexbill.domain.rates import RateEngine
from lexbill.utils.amount_parser import parse_amount
from lexbill.utils.date_parser import parse_datetime


def _parse_optional(ctx, value: str | None, name: str):
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {name}: {e}", err=True)
        ctx.exit(1)


def _service(ctx) -> CaseRateConfigurationService:
    return CaseRateConfigurationService(ctx.obj["db"], policy=ctx.obj["policy"])


@click.group()
def case_config_group():
    """Manage per-case rate configurations."""
    pass


@case_config_group.command("create")
@click.argument("case_id", type=int)
@click.option("--rate", help="Default hourly rate for the case")
@click.option("--fixed", is_flag=True, help="Never apply multipliers on this case")
@click.option("--weekend", help="Weekend multiplier")
@click.option("--after-hours", help="After-hours multiplier")
@click.option("--emergency", help="Emergency multiplier")
@click.pass_context
def create_config(
    ctx,
    case_id: int,
    rate: str | None,
    fixed: bool,
    weekend: str | None,
    after_hours: str | None,
    emergency: str | None,
):
    """Create the rate configuration of a case.

    Examples:
        lexbill --tenant 1 case-config create 12 --rate 200
        lexbill --tenant 1 case-config create 13 --rate 350 --fixed
    """
    service = _service(ctx)
    try:
        config_id = service.create_configuration(
            ctx.obj["tenant_id"],
            case_id,
            default_rate=_parse_optional(ctx, rate, "rate"),
            allow_multipliers=not fixed,
            weekend_multiplier=_parse_optional(ctx, weekend, "weekend multiplier"),
            after_hours_multiplier=_parse_optional(ctx, after_hours, "after-hours multiplier"),
            emergency_multiplier=_parse_optional(ctx, emergency, "emergency multiplier"),
        )
        config = service.require_configuration(ctx.obj["tenant_id"], config_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created rate configuration {config_id} for case {case_id}: {describe_configuration(config)}")


@case_config_group.command("show")
@click.argument("case_id", type=int)
@click.pass_context
def show_config(ctx, case_id: int):
    """Show the active rate configuration of a case."""
    service = _service(ctx)
    try:
        config = service.get_configuration_for_case(ctx.obj["tenant_id"], case_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if config is None:
        click.echo(f"Case {case_id} has no rate configuration; policy defaults apply.")
        return
    click.echo(f"Configuration {config.id} for case {case_id}: {describe_configuration(config)}")


@case_config_group.command("update")
@click.argument("config_id", type=int)
@click.option("--rate", help="Default hourly rate")
@click.option("--multipliers/--fixed", "allow_multipliers", default=None, help="Enable or disable multipliers")
@click.option("--weekend", help="Weekend multiplier")
@click.option("--after-hours", help="After-hours multiplier")
@click.option("--emergency", help="Emergency multiplier")
@click.pass_context
def update_config(
    ctx,
    config_id: int,
    rate: str | None,
    allow_multipliers: bool | None,
    weekend: str | None,
    after_hours: str | None,
    emergency: str | None,
):
    """Update a rate configuration."""
    service = _service(ctx)
    try:
        config = service.update_configuration(
            ctx.obj["tenant_id"],
            config_id,
            default_rate=_parse_optional(ctx, rate, "rate"),
            allow_multipliers=allow_multipliers,
            weekend_multiplier=_parse_optional(ctx, weekend, "weekend multiplier"),
            after_hours_multiplier=_parse_optional(ctx, after_hours, "after-hours multiplier"),
            emergency_multiplier=_parse_optional(ctx, emergency, "emergency multiplier"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated configuration {config_id}: {describe_configuration(config)}")


@case_config_group.command("deactivate")
@click.argument("config_id", type=int)
@click.pass_context
def deactivate_config(ctx, config_id: int):
    """Deactivate a rate configuration."""
    try:
        _service(ctx).deactivate_configuration(ctx.obj["tenant_id"], config_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated configuration {config_id}")


@case_config_group.command("delete")
@click.argument("config_id", type=int)
@click.pass_context
def delete_config(ctx, config_id: int):
    """Delete a rate configuration."""
    try:
        _service(ctx).delete_configuration(ctx.obj["tenant_id"], config_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted configuration {config_id}")


@case_config_group.command("preview")
@click.argument("case_id", type=int)
@click.option("--at", "at", help="Moment to quote for, e.g. '2024-01-06 19:30' (default: now)")
@click.option("--rate", help="Explicit base rate")
@click.option("--emergency", is_flag=True, help="Emergency work")
@click.option("--no-multipliers", is_flag=True, help="Quote without multipliers")
@click.option("--role", help="User role for the role default rate")
@click.pass_context
def preview_rate(
    ctx,
    case_id: int,
    at: str | None,
    rate: str | None,
    emergency: bool,
    no_multipliers: bool,
    role: str | None,
):
    """Quote the rate a timer started on a case would get.

    Examples:
        lexbill --tenant 1 --user 5 case-config preview 12 --at "2024-01-02 19:00"
    """
    user_id = require_user(ctx)
    clock = ctx.obj["clock"]
    when = clock.now()
    if at:
        try:
            when = parse_datetime(at, now=clock.now())
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    engine = RateEngine(ctx.obj["db"], policy=ctx.obj["policy"], clock=clock)
    try:
        quote = engine.preview_rate(
            ctx.obj["tenant_id"],
            user_id,
            case_id,
            when=when,
            is_emergency=emergency,
            rate=_parse_optional(ctx, rate, "rate"),
            apply_multipliers=not no_multipliers,
            role=role,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    conditions = []
    if quote.is_emergency:
        conditions.append("emergency")
    if quote.is_weekend:
        conditions.append("weekend")
    if quote.is_after_hours:
        conditions.append("after hours")
    source = "case configuration" if quote.configuration.from_case_configuration else "policy defaults"

    click.echo(f"Quote for case {case_id} at {when:%Y-%m-%d %H:%M} ({', '.join(conditions) or 'business hours'})")
    click.echo(f"  Base rate: {format_rate(quote.base_rate)}")
    click.echo(f"  Multiplier: {quote.multiplier}x ({source})")
    click.echo(f"  Effective rate: {format_rate(quote.effective_rate)}")


def register_commands(cli):
    """Register case configuration commands with main CLI."""
    cli.add_command(case_config_group, name="case-config")
