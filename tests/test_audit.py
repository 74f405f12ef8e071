"""Tests for audit sinks."""

import logging

import pytest

from hostops_core.audit import (
    AuditRecord,
    AuditSink,
    LoggingAuditSink,
    MemoryAuditSink,
    MultiAuditSink,
    Severity,
    SqliteAuditSink,
)


def make_record(outcome="success", severity=Severity.INFO, actor="system", **details) -> AuditRecord:
    return AuditRecord(
        actor=actor,
        operation_kind="execution",
        outcome=outcome,
        severity=severity,
        details=details,
    )


class BrokenSink:
    async def record(self, record: AuditRecord) -> None:
        raise OSError("disk full")


# ===== SqliteAuditSink Tests =====


class TestSqliteAuditSink:
    """Tests for the SQLite-backed sink."""

    @pytest.mark.asyncio
    async def test_record_and_read_back(self, tmp_path):
        sink = SqliteAuditSink(tmp_path / "audit" / "audit.db")

        await sink.record(make_record(command="useradd", exit_code=0))

        records = await sink.get_records()
        assert len(records) == 1
        assert records[0].id is not None
        assert records[0].outcome == "success"
        assert records[0].details == {"command": "useradd", "exit_code": 0}

    @pytest.mark.asyncio
    async def test_newest_first_and_limit(self, tmp_path):
        sink = SqliteAuditSink(tmp_path / "audit.db")
        for i in range(5):
            await sink.record(make_record(sequence=i))

        records = await sink.get_records(limit=3)

        assert [r.details["sequence"] for r in records] == [4, 3, 2]

    @pytest.mark.asyncio
    async def test_filters(self, tmp_path):
        sink = SqliteAuditSink(tmp_path / "audit.db")
        await sink.record(make_record(actor="tenant-a"))
        await sink.record(make_record(outcome="policy_violation", severity=Severity.WARNING, actor="tenant-b"))
        await sink.record(
            AuditRecord(operation_kind="transaction", outcome="rollback_failed", severity=Severity.CRITICAL)
        )

        assert [r.actor for r in await sink.get_records(actor="tenant-b")] == ["tenant-b"]
        assert [r.outcome for r in await sink.get_records(outcome="policy_violation")] == [
            "policy_violation"
        ]
        critical = await sink.get_records(severity=Severity.CRITICAL)
        assert [r.operation_kind for r in critical] == ["transaction"]
        assert len(await sink.get_records(operation_kind="execution")) == 2

    @pytest.mark.asyncio
    async def test_empty_database(self, tmp_path):
        assert await SqliteAuditSink(tmp_path / "audit.db").get_records() == []


# ===== LoggingAuditSink Tests =====


class TestLoggingAuditSink:
    """Tests for the logging sink."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "severity,level",
        [
            (Severity.INFO, logging.INFO),
            (Severity.WARNING, logging.WARNING),
            (Severity.CRITICAL, logging.CRITICAL),
        ],
    )
    async def test_level_follows_severity(self, caplog, severity, level):
        caplog.set_level(logging.DEBUG, logger="hostops_core.audit")

        await LoggingAuditSink().record(make_record(outcome="timeout", severity=severity, command="rndc"))

        assert caplog.records[-1].levelno == level
        assert "timeout" in caplog.text
        assert '"command": "rndc"' in caplog.text

    @pytest.mark.asyncio
    async def test_custom_logger(self, caplog):
        log = logging.getLogger("tests.audit")
        caplog.set_level(logging.INFO, logger="tests.audit")

        await LoggingAuditSink(log).record(make_record())

        assert caplog.records[-1].name == "tests.audit"


# ===== Composition Tests =====


class TestMultiAuditSink:
    """Tests for fan-out delivery."""

    @pytest.mark.asyncio
    async def test_every_sink_receives_record(self):
        first, second = MemoryAuditSink(), MemoryAuditSink()

        await MultiAuditSink([first, second]).record(make_record())

        assert first.outcomes() == ["success"]
        assert second.outcomes() == ["success"]

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_block_others(self):
        """Later sinks still receive the record; the error is re-raised."""
        memory = MemoryAuditSink()

        with pytest.raises(OSError, match="disk full"):
            await MultiAuditSink([BrokenSink(), memory]).record(make_record())

        assert memory.outcomes() == ["success"]

    def test_sinks_satisfy_protocol(self, tmp_path):
        for sink in (LoggingAuditSink(), MemoryAuditSink(), SqliteAuditSink(tmp_path / "a.db")):
            assert isinstance(sink, AuditSink)
