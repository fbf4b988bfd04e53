"""Legal case commands."""

import click

from lexbill.cli.error_handling import handle_domain_error
from lexbill.domain.cases import CaseService
from lexbill.domain.errors import DomainError


@click.group()
def case_group():
    """Manage legal cases."""
    pass


@case_group.command("add")
@click.argument("title")
@click.option("--number", "case_number", help="Case or docket number")
@click.option("--client", "client_id", type=int, help="Client ID")
@click.option("--matter-type", "matter_type_id", type=int, help="Matter type ID")
@click.pass_context
def add_case(ctx, title: str, case_number: str | None, client_id: int | None, matter_type_id: int | None):
    """Register a legal case.

    Examples:
        lexbill --tenant 1 case add "Smith v. Jones" --number 2024-CV-001 --client 7
    """
    service = CaseService(ctx.obj["db"])
    try:
        case_id = service.create_case(
            ctx.obj["tenant_id"],
            title=title,
            case_number=case_number,
            client_id=client_id,
            matter_type_id=matter_type_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created case '{title}' (ID: {case_id})")


@case_group.command("list")
@click.pass_context
def list_cases(ctx):
    """List cases."""
    service = CaseService(ctx.obj["db"])
    try:
        cases = service.list_cases(ctx.obj["tenant_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not cases:
        click.echo("No cases found.")
        return

    click.echo("\nCases:")
    click.echo("-" * 70)
    for legal_case in cases:
        number = legal_case.case_number or "-"
        client = legal_case.client_id if legal_case.client_id is not None else "-"
        click.echo(f"ID: {legal_case.id:3d} | {number:15s} | Client: {client!s:5s} | {legal_case.title}")


def register_commands(cli):
    """Register case commands with main CLI."""
    cli.add_command(case_group, name="case")
