"""
SQLite-backed audit sink.

Per project patterns:
- Async methods for database operations
- Schema created lazily on first use
- JSON serialization for the details blob
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from hostops_core.audit.schema import AUDIT_SCHEMA_SQL
from hostops_core.audit.types import AuditRecord, Severity


class SqliteAuditSink:
    """
    Persist audit records to a SQLite database.

    Example:
        sink = SqliteAuditSink(Path("/var/lib/hostops/audit.db"))
        executor = CommandExecutor(policy, audit_sink=sink)
        ...
        recent = await sink.get_records(severity=Severity.CRITICAL, limit=20)
    """

    def __init__(self, db_path: Path) -> None:
        """
        Initialize the sink.

        Args:
            db_path: Path to the SQLite database file (parent created on demand)
        """
        self.db_path = Path(db_path)

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        """Create tables and indexes if they don't exist."""
        await conn.executescript(AUDIT_SCHEMA_SQL)
        await conn.commit()

    async def record(self, record: AuditRecord) -> None:
        """
        Write an audit record to the database.

        Args:
            record: The record to persist
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        details_json = json.dumps(record.details, default=str) if record.details else None

        async with aiosqlite.connect(self.db_path) as conn:
            await self._ensure_schema(conn)
            await conn.execute(
                """
                INSERT INTO audit_records (
                    timestamp, actor, operation_kind, outcome, severity, details
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.timestamp.isoformat(),
                    record.actor,
                    record.operation_kind,
                    record.outcome,
                    record.severity.value,
                    details_json,
                ),
            )
            await conn.commit()

    async def get_records(
        self,
        actor: str | None = None,
        operation_kind: str | None = None,
        outcome: str | None = None,
        severity: Severity | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """
        Query audit records with optional filters.

        Args:
            actor: Filter by actor
            operation_kind: Filter by operation kind
            outcome: Filter by outcome classification
            severity: Filter by severity
            limit: Maximum number of records to return

        Returns:
            Matching records, newest first
        """
        conditions = []
        params: list[Any] = []

        if actor is not None:
            conditions.append("actor = ?")
            params.append(actor)

        if operation_kind is not None:
            conditions.append("operation_kind = ?")
            params.append(operation_kind)

        if outcome is not None:
            conditions.append("outcome = ?")
            params.append(outcome)

        if severity is not None:
            conditions.append("severity = ?")
            params.append(Severity(severity).value)

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        query = f"""
            SELECT id, timestamp, actor, operation_kind, outcome, severity, details
            FROM audit_records
            {where_clause}
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
        """
        params.append(limit)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as conn:
            await self._ensure_schema(conn)
            conn.row_factory = aiosqlite.Row
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()

        return [
            AuditRecord(
                id=row["id"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                actor=row["actor"],
                operation_kind=row["operation_kind"],
                outcome=row["outcome"],
                severity=Severity(row["severity"]),
                details=json.loads(row["details"]) if row["details"] else {},
            )
            for row in rows
        ]
