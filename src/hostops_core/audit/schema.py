"""SQLite schema for the audit trail."""

AUDIT_SCHEMA_SQL = """
-- Append-only audit trail of executions and transaction outcomes
CREATE TABLE IF NOT EXISTS audit_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,                -- ISO8601 timestamp
    actor TEXT NOT NULL,                    -- tenant, operator or 'system'
    operation_kind TEXT NOT NULL,           -- execution, transaction
    outcome TEXT NOT NULL,                  -- success, timeout, rolled_back, ...
    severity TEXT NOT NULL,                 -- info, warning, critical
    details TEXT                            -- JSON blob, arguments already redacted
);

-- Index for operator review of recent events by severity
CREATE INDEX IF NOT EXISTS idx_audit_records_severity_time
ON audit_records(severity, timestamp);

-- Index for per-actor history
CREATE INDEX IF NOT EXISTS idx_audit_records_actor
ON audit_records(actor, timestamp);
"""
