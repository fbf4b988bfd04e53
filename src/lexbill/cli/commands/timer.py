"""Timer commands."""

import click

from lexbill.cli.error_handling import handle_domain_error, require_user
from lexbill.cli.formatting import format_duration, format_money, format_rate
from lexbill.domain.conversion import TimerConversionService
from lexbill.domain.entities import ActiveTimer
from lexbill.domain.errors import DomainError
from lexbill.domain.timer import StartTimerRequest, TimerService
from lexbill.utils.amount_parser import parse_amount


def _timer_service(ctx) -> TimerService:
    return TimerService(ctx.obj["db"], clock=ctx.obj["clock"], policy=ctx.obj["policy"])


def _echo_timer(service: TimerService, timer: ActiveTimer) -> None:
    state = "running" if timer.running else "paused"
    worked = format_duration(service.current_duration_seconds(timer))
    click.echo(
        f"ID: {timer.id:3d} | Case: {timer.legal_case_id:4d} | {state:7s} | {worked} | "
        f"{format_rate(timer.hourly_rate)} | {timer.description or ''}"
    )


@click.group()
def timer_group():
    """Run timers against legal cases."""
    pass


@timer_group.command("start")
@click.argument("case_id", type=int)
@click.option("--description", "-d", help="What the work is about")
@click.option("--rate", help="Base hourly rate (default: resolved for the case)")
@click.option("--no-multipliers", is_flag=True, help="Do not apply weekend/after-hours/emergency multipliers")
@click.option("--emergency", is_flag=True, help="Bill as emergency work")
@click.option("--work-type", help="Work type label")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--role", help="User role for the role default rate (e.g. PARTNER)")
@click.pass_context
def start_timer(
    ctx,
    case_id: int,
    description: str | None,
    rate: str | None,
    no_multipliers: bool,
    emergency: bool,
    work_type: str | None,
    tags: tuple[str, ...],
    role: str | None,
):
    """Start a timer on a case.

    Examples:
        lexbill --tenant 1 --user 5 timer start 12 -d "Draft motion to dismiss"
        lexbill --tenant 1 --user 5 timer start 12 --rate 300 --emergency
    """
    user_id = require_user(ctx)
    service = _timer_service(ctx)

    base_rate = None
    if rate is not None:
        try:
            base_rate = parse_amount(rate)
        except ValueError as e:
            click.echo(f"Error: Invalid rate: {e}", err=True)
            ctx.exit(1)

    request = StartTimerRequest(
        legal_case_id=case_id,
        description=description,
        rate=base_rate,
        apply_multipliers=not no_multipliers,
        is_emergency=emergency,
        work_type=work_type,
        tags=tags,
        role=role,
    )
    try:
        timer = service.start_timer(ctx.obj["tenant_id"], user_id, request)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Started timer {timer.id} on case {case_id} at {format_rate(timer.hourly_rate)}")
    if timer.hourly_rate != timer.base_rate:
        click.echo(f"  Base rate: {format_rate(timer.base_rate)}")


@timer_group.command("pause")
@click.argument("timer_id", type=int)
@click.pass_context
def pause_timer(ctx, timer_id: int):
    """Pause a running timer."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        timer = service.pause_timer(ctx.obj["tenant_id"], user_id, timer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Paused timer {timer.id} at {format_duration(timer.accumulated_seconds)}")


@timer_group.command("resume")
@click.argument("timer_id", type=int)
@click.pass_context
def resume_timer(ctx, timer_id: int):
    """Resume a paused timer."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        timer = service.resume_timer(ctx.obj["tenant_id"], user_id, timer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Resumed timer {timer.id} at {format_rate(timer.hourly_rate)}")


@timer_group.command("stop")
@click.argument("timer_id", type=int)
@click.pass_context
def stop_timer(ctx, timer_id: int):
    """Stop a timer and record the session."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        session = service.stop_timer(ctx.obj["tenant_id"], user_id, timer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if session is None:
        click.echo(f"Timer {timer_id} is already stopped.")
        return
    click.echo(
        f"Stopped timer {timer_id}: {format_duration(session.total_duration_seconds)} "
        f"(session {session.id})"
    )


@timer_group.command("stop-all")
@click.pass_context
def stop_all_timers(ctx):
    """Stop all of your timers."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        result = service.stop_all_timers(ctx.obj["tenant_id"], user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Stopped {len(result.sessions)} timer(s).")
    for timer_id, message in result.failures:
        click.echo(f"Error: Timer {timer_id}: {message}", err=True)
    if result.failures:
        ctx.exit(1)


@timer_group.command("list")
@click.option("--all", "all_users", is_flag=True, help="Show running timers of every user in the tenant")
@click.pass_context
def list_timers(ctx, all_users: bool):
    """List your running and paused timers."""
    service = _timer_service(ctx)
    try:
        if all_users:
            timers = service.get_all_active_timers(ctx.obj["tenant_id"])
        else:
            timers = service.get_active_timers(ctx.obj["tenant_id"], require_user(ctx))
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not timers:
        click.echo("No active timers.")
        return

    click.echo("\nTimers:")
    click.echo("-" * 80)
    for timer in timers:
        _echo_timer(service, timer)


@timer_group.command("show")
@click.argument("timer_id", type=int)
@click.pass_context
def show_timer(ctx, timer_id: int):
    """Show timer details."""
    service = _timer_service(ctx)
    try:
        timer = service.get_active_timer(ctx.obj["tenant_id"], timer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Timer {timer.id}")
    click.echo(f"  User: {timer.user_id}")
    click.echo(f"  Case: {timer.legal_case_id}")
    click.echo(f"  State: {'running' if timer.running else 'paused'}")
    click.echo(f"  Worked: {format_duration(service.current_duration_seconds(timer))}")
    click.echo(f"  Rate: {format_rate(timer.hourly_rate)} (base {format_rate(timer.base_rate)})")
    click.echo(f"  Multipliers: {'yes' if timer.apply_multipliers else 'no'}")
    if timer.is_emergency:
        click.echo("  Emergency: yes")
    if timer.description:
        click.echo(f"  Description: {timer.description}")
    if timer.work_type:
        click.echo(f"  Work type: {timer.work_type}")
    if timer.tags:
        click.echo(f"  Tags: {', '.join(timer.tags)}")
    click.echo(f"  Created: {timer.created_at:%Y-%m-%d %H:%M:%S}")


@timer_group.command("convert")
@click.argument("timer_ids", type=int, nargs=-1, required=True)
@click.option("--description", "-d", help="Entry description (default: the timer's)")
@click.pass_context
def convert_timers(ctx, timer_ids: tuple[int, ...], description: str | None):
    """Stop timers and record them as draft time entries.

    Time is rounded up to the next 0.1 hour.

    Examples:
        lexbill --tenant 1 --user 5 timer convert 3
        lexbill --tenant 1 --user 5 timer convert 3 4 -d "Review discovery documents"
    """
    user_id = require_user(ctx)
    timers = _timer_service(ctx)
    service = TimerConversionService(
        ctx.obj["db"], timer_service=timers, clock=ctx.obj["clock"], policy=ctx.obj["policy"]
    )
    try:
        results = service.convert_timers(ctx.obj["tenant_id"], user_id, timer_ids, description)
    except DomainError as e:
        handle_domain_error(ctx, e)

    failed = False
    for result in results:
        if result.entry_created:
            entry = result.time_entry
            click.echo(
                f"Timer {result.timer_id}: time entry {entry.id} created, "
                f"{entry.hours}h at {format_rate(entry.rate)} = {format_money(entry.hours * entry.rate)}"
            )
        elif result.stopped:
            failed = True
            click.echo(f"Timer {result.timer_id}: stopped but time entry rejected", err=True)
            for message in result.errors:
                click.echo(f"  - {message}", err=True)
        else:
            failed = True
            click.echo(f"Error: Timer {result.timer_id}: {'; '.join(result.errors)}", err=True)
        for warning in result.warnings:
            click.echo(f"  Warning: {warning}")

    if failed:
        ctx.exit(1)


@timer_group.command("describe")
@click.argument("timer_id", type=int)
@click.argument("description")
@click.pass_context
def describe_timer(ctx, timer_id: int, description: str):
    """Change a timer's description."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        service.update_timer_description(ctx.obj["tenant_id"], user_id, timer_id, description)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated description of timer {timer_id}")


@timer_group.command("delete")
@click.argument("timer_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_timer(ctx, timer_id: int, yes: bool):
    """Discard a timer without recording its time."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)

    if not yes and not click.confirm(f"Discard timer {timer_id} without recording its time?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_timer(ctx.obj["tenant_id"], user_id, timer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted timer {timer_id}")


@timer_group.command("long-running")
@click.option("--hours", type=float, default=8.0, show_default=True, help="Worked-time threshold")
@click.pass_context
def long_running_timers(ctx, hours: float):
    """List running timers over a worked-time threshold."""
    service = _timer_service(ctx)
    try:
        timers = service.get_long_running_timers(ctx.obj["tenant_id"], hours)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not timers:
        click.echo(f"No timers running longer than {hours:g}h.")
        return

    for timer in timers:
        _echo_timer(service, timer)


@timer_group.command("sessions")
@click.option("--unconverted", is_flag=True, help="Only sessions not yet turned into time entries")
@click.pass_context
def list_sessions(ctx, unconverted: bool):
    """List your recorded timer sessions."""
    user_id = require_user(ctx)
    service = _timer_service(ctx)
    try:
        sessions = service.list_timer_sessions(
            ctx.obj["tenant_id"], user_id=user_id, converted=False if unconverted else None
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not sessions:
        click.echo("No sessions found.")
        return

    for session in sessions:
        status = f"entry {session.time_entry_id}" if session.converted_to_time_entry else "unconverted"
        click.echo(
            f"ID: {session.id:3d} | Case: {session.legal_case_id:4d} | "
            f"{session.ended_at:%Y-%m-%d %H:%M} | {format_duration(session.total_duration_seconds)} | "
            f"{format_rate(session.hourly_rate)} | {status}"
        )


def register_commands(cli):
    """Register timer commands with main CLI."""
    cli.add_command(timer_group, name="timer")
