"""Main CLI entry point."""

import logging

import click

from lexbill.config import load_policy
from lexbill.database.factories import create_sqlite_database
from lexbill.domain.clock import SystemClock
from lexbill.domain.errors import ConfigurationError
from lexbill.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from lexbill.cli.commands import (
    case,
    case_config,
    entry,
    rate,
    timer,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEXBILL_DB_PATH environment variable)",
    envvar="LEXBILL_DB_PATH",
)
@click.option(
    "--tenant",
    "tenant_id",
    type=int,
    help="Tenant (firm) ID (overrides LEXBILL_TENANT environment variable)",
    envvar="LEXBILL_TENANT",
)
@click.option(
    "--user",
    "user_id",
    type=int,
    help="Acting user ID (overrides LEXBILL_USER environment variable)",
    envvar="LEXBILL_USER",
)
@click.option(
    "--policy",
    "policy_path",
    type=click.Path(dir_okay=False),
    help="Billing policy TOML file (overrides LEXBILL_POLICY environment variable)",
    envvar="LEXBILL_POLICY",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(
    ctx,
    db_path: str | None,
    tenant_id: int | None,
    user_id: int | None,
    policy_path: str | None,
    verbose: bool,
):
    """lexbill - Legal time tracking and billing rates.

    Run timers against legal cases, resolve hourly rates from scoped billing
    rates and case configurations, and turn timers into billable time entries.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            policy = load_policy(policy_path)
        except ConfigurationError as e:
            handle_domain_error(ctx, e)

        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)

        ctx.obj["db"] = db
        ctx.obj["tenant_id"] = tenant_id
        ctx.obj["user_id"] = user_id
        ctx.obj["policy"] = policy
        ctx.obj.setdefault("clock", SystemClock())


# Register all commands
case.register_commands(cli)
timer.register_commands(cli)
rate.register_commands(cli)
case_config.register_commands(cli)
entry.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
