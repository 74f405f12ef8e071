"""Audit trail CLI commands.

This module provides CLI commands for reviewing recorded executions and
transactions:
- list: Display recent audit records in table format

Per project patterns: asyncio.run() to execute async database operations
in sync CLI commands.
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hostops_core.audit import SqliteAuditSink, Severity
from hostops_core.config import Settings

audit_app = typer.Typer(help="Review the audit trail")
console = Console()

_SEVERITY_STYLE = {
    Severity.INFO: "green",
    Severity.WARNING: "yellow",
    Severity.CRITICAL: "bold red",
}


@audit_app.command("list")
def list_records(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records to show"),
    actor: str = typer.Option(None, "--actor", help="Filter by actor"),
    outcome: str = typer.Option(None, "--outcome", help="Filter by outcome"),
    severity: Severity = typer.Option(None, "--severity", help="Filter by severity"),
    db_path: Path = typer.Option(
        None, "--db", help="Database path (default: HOSTOPS_AUDIT_DB_PATH)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List recent audit records."""

    async def _list():
        path = db_path or Settings().audit_db_path

        if not path.exists():
            console.print("[yellow]No audit database found. Nothing to list.[/yellow]")
            return

        sink = SqliteAuditSink(path)
        records = await sink.get_records(
            actor=actor, outcome=outcome, severity=severity, limit=limit
        )

        if json_output:
            typer.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
            return

        if not records:
            console.print("[dim]No audit records found.[/dim]")
            return

        table = Table(title="Audit Records")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Time", style="dim")
        table.add_column("Actor")
        table.add_column("Kind")
        table.add_column("Outcome")
        table.add_column("Detail")

        for record in records:
            style = _SEVERITY_STYLE[record.severity]
            detail = record.details.get("command") or record.details.get("failed_step") or "-"
            table.add_row(
                str(record.id),
                record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                escape(record.actor),
                record.operation_kind,
                f"[{style}]{record.outcome}[/{style}]",
                escape(str(detail)),
            )

        console.print(table)

    asyncio.run(_list())
