"""Field validation CLI command.

Runs one of the input validators against a value and prints the
normalized form, so operators can check tenant input by hand.
"""

from enum import Enum

import typer
from rich.console import Console
from rich.markup import escape

from hostops_core import validators
from hostops_core.validators import ValidationResult

console = Console()


class FieldKind(str, Enum):
    """Validatable field kinds."""

    USERNAME = "username"
    DOMAIN = "domain"
    PATH = "path"
    PORT = "port"
    EMAIL = "email"
    DATABASE = "database"
    IPV4 = "ipv4"
    CRON = "cron"


def _run(kind: FieldKind, value: str, base_dir: str, check_reserved: bool) -> ValidationResult:
    if kind == FieldKind.PATH:
        return validators.validate_path(value, base_dir)
    if kind == FieldKind.PORT:
        return validators.validate_port(value, check_reserved=check_reserved)
    return {
        FieldKind.USERNAME: validators.validate_system_username,
        FieldKind.DOMAIN: validators.validate_domain_label_sequence,
        FieldKind.EMAIL: validators.validate_email_address,
        FieldKind.DATABASE: validators.validate_database_identifier,
        FieldKind.IPV4: validators.validate_ipv4_address,
        FieldKind.CRON: validators.validate_cron_expression,
    }[kind](value)


def validate_command(
    kind: FieldKind = typer.Argument(..., help="Field kind"),
    value: str = typer.Argument(..., help="Value to validate"),
    base_dir: str = typer.Option("/home", "--base", help="Base directory for path checks"),
    check_reserved: bool = typer.Option(
        False, "--check-reserved", help="Reject well-known ports (port checks)"
    ),
) -> None:
    """Validate a single field value."""
    result = _run(kind, value, base_dir, check_reserved)

    if not result.is_valid:
        console.print(f"[red]Invalid {kind.value}:[/red] {escape(result.error or '')}")
        raise typer.Exit(1)

    console.print(f"[green]Valid {kind.value}:[/green] {escape(result.sanitized or '')}")
