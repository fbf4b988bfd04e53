"""CLI error handling helpers."""

import click

from lexbill.domain.errors import DomainError, ValidationError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    if isinstance(error, ValidationError) and len(error.messages) > 1:
        click.echo("Error:", err=True)
        for message in error.messages:
            click.echo(f"  - {message}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def require_user(ctx: click.Context) -> int:
    """Return the acting user id, or exit when none was given."""
    user_id = ctx.obj.get("user_id")
    if user_id is None:
        click.echo("Error: User context required (use --user or LEXBILL_USER)", err=True)
        ctx.exit(1)
    return user_id
