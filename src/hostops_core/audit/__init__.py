"""
Audit trail for executions and transactions.

Exports:
    AuditRecord: One audit event
    Severity: Operator urgency of a record
    AuditSink: Protocol every sink implements
    LoggingAuditSink: Sink writing through stdlib logging
    MemoryAuditSink: In-memory sink
    MultiAuditSink: Fan-out sink
    SqliteAuditSink: aiosqlite-backed persistent sink
"""

from hostops_core.audit.sinks import (
    AuditSink,
    LoggingAuditSink,
    MemoryAuditSink,
    MultiAuditSink,
)
from hostops_core.audit.sqlite import SqliteAuditSink
from hostops_core.audit.types import AuditRecord, Severity

__all__ = [
    "AuditRecord",
    "AuditSink",
    "LoggingAuditSink",
    "MemoryAuditSink",
    "MultiAuditSink",
    "Severity",
    "SqliteAuditSink",
]
