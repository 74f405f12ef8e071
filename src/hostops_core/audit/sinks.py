"""
Audit sinks.

The executor and the transaction engine emit one AuditRecord per execution
and per transaction terminal state. Storage and retention belong to the
sink, not to the core.

Sinks provided here:
- LoggingAuditSink: Emits records through stdlib logging
- MemoryAuditSink: Keeps records in a list (tests, short-lived tools)
- MultiAuditSink: Fans a record out to several sinks

SqliteAuditSink lives in hostops_core.audit.sqlite.
"""

import json
import logging
from typing import Iterable, Protocol, runtime_checkable

from hostops_core.audit.types import AuditRecord, Severity

logger = logging.getLogger(__name__)

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CRITICAL: logging.CRITICAL,
}


@runtime_checkable
class AuditSink(Protocol):
    """Anything that can accept an audit record."""

    async def record(self, record: AuditRecord) -> None:
        ...


class LoggingAuditSink:
    """
    Audit sink that writes one log line per record.

    The log level follows the record severity, so policy violations and
    failed rollbacks surface at WARNING and CRITICAL without extra wiring.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def record(self, record: AuditRecord) -> None:
        self._log.log(
            _LEVELS[record.severity],
            "audit %s %s actor=%s %s",
            record.operation_kind,
            record.outcome,
            record.actor,
            json.dumps(record.details, default=str, sort_keys=True),
        )


class MemoryAuditSink:
    """Audit sink that keeps every record in memory, in arrival order."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    async def record(self, record: AuditRecord) -> None:
        self.records.append(record)

    def outcomes(self) -> list[str]:
        """Outcome of each record, in arrival order."""
        return [r.outcome for r in self.records]


class MultiAuditSink:
    """
    Fan-out sink.

    Every sink receives every record in order. A failing sink does not stop
    delivery to the others; the first error is re-raised once all sinks
    have been tried.
    """

    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self._sinks = list(sinks)

    async def record(self, record: AuditRecord) -> None:
        first_error: Exception | None = None
        for sink in self._sinks:
            try:
                await sink.record(record)
            except Exception as e:
                logger.error("Audit sink %s failed: %s", type(sink).__name__, e)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
