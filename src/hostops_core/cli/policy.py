"""Policy inspection CLI commands.

This module provides CLI commands for reviewing the command allow-list:
- list: Display every whitelisted command
- show: Display one command's argument patterns
- check: Pre-flight a command line without running it
- dump: Print the active policy as a YAML document
"""

from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hostops_core.config import Settings
from hostops_core.exceptions import PolicyLoadError, PolicyViolationError
from hostops_core.executor import CommandExecutor, ExecuteOptions
from hostops_core.policy import (
    PolicyTable,
    dump_policy_table,
    load_configured_policy,
    load_policy_table,
)

policy_app = typer.Typer(help="Inspect the command policy")
console = Console()

POLICY_OPTION = typer.Option(
    None, "--policy", "-p", help="Policy file (default: HOSTOPS_POLICY_FILE or built-in)"
)


def _load(policy_file: Path | None) -> PolicyTable:
    """Load the requested policy, exiting with a message on failure."""
    try:
        if policy_file is not None:
            return load_policy_table(policy_file)
        return load_configured_policy(Settings())
    except PolicyLoadError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


@policy_app.command("list")
def list_commands(policy_file: Path = POLICY_OPTION) -> None:
    """List whitelisted commands."""
    table = _load(policy_file)

    if not len(table):
        console.print("[yellow]Policy is empty; every command is denied[/yellow]")
        return

    output = Table(title="Command Policy")
    output.add_column("Command", style="cyan")
    output.add_column("Elevated", justify="center")
    output.add_column("Patterns", justify="right")
    output.add_column("Logs args", justify="center")
    output.add_column("Description")

    for definition in table:
        output.add_row(
            definition.name,
            "yes" if definition.requires_elevated_privilege else "-",
            str(len(definition.allowed_argument_patterns)),
            "yes" if definition.log_arguments else "-",
            definition.description or "-",
        )

    console.print(output)


@policy_app.command("show")
def show_command(
    command: str = typer.Argument(..., help="Command name"),
    policy_file: Path = POLICY_OPTION,
) -> None:
    """Show the argument patterns of one command."""
    definition = _load(policy_file).definition_for(command)
    if definition is None:
        console.print(f"[red]Command not in policy: {escape(command)}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]Command:[/bold] {definition.name}")
    console.print(f"[bold]Description:[/bold] {definition.description or '-'}")
    console.print(
        f"[bold]Elevated:[/bold] {'yes' if definition.requires_elevated_privilege else 'no'}"
    )
    console.print(f"[bold]Logs arguments:[/bold] {'yes' if definition.log_arguments else 'no'}")

    if not definition.allowed_argument_patterns:
        console.print("[dim]No argument patterns: only an empty argument list is accepted[/dim]")
        return

    console.print("[bold]Allowed argument patterns:[/bold]")
    for pattern in definition.allowed_argument_patterns:
        # markup=False: patterns are full of square brackets
        console.print(f"  {pattern.pattern}", markup=False)


@policy_app.command("check")
def check_command(
    command: str = typer.Argument(..., help="Command name"),
    args: list[str] = typer.Argument(None, help="Arguments (put them after --)"),
    user: str = typer.Option(None, "--user", "-u", help="Run as this user"),
    policy_file: Path = POLICY_OPTION,
) -> None:
    """Check a command line against the policy without running it."""
    executor = CommandExecutor(_load(policy_file))

    try:
        argv = executor.preflight(command, args or [], ExecuteOptions(working_user=user))
    except PolicyViolationError as e:
        console.print(f"[red]Denied:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print("[green]Allowed[/green]")
    console.print(" ".join(argv), markup=False)


@policy_app.command("dump")
def dump_policy(policy_file: Path = POLICY_OPTION) -> None:
    """Print the active policy as a YAML document."""
    document = dump_policy_table(_load(policy_file))
    typer.echo(yaml.safe_dump(document, sort_keys=False), nl=False)
