"""
Audit record types.

This module defines the structured record every execution and every
transaction terminal state produces:
- Severity: How urgently an operator should look at the record
- AuditRecord: One audit event

Per project patterns:
- Use str enum for JSON serialization compatibility
- Pydantic BaseModel for validation and serialization
- Field() with descriptions for documentation
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Audit severity, mapped onto logging levels by LoggingAuditSink."""

    INFO = "info"
    """Routine event (successful execution, committed transaction)."""

    WARNING = "warning"
    """Expected failure mode (non-zero exit, timeout, policy violation, rollback)."""

    CRITICAL = "critical"
    """Needs manual remediation (rollback failed, process could not be spawned)."""


class AuditRecord(BaseModel):
    """
    A single audit event.

    Attributes:
        id: Database ID (None before insert)
        timestamp: When the event occurred
        actor: Who requested the operation (tenant, operator, 'system')
        operation_kind: 'execution' or 'transaction'
        outcome: Outcome classification (success, nonzero_exit, timeout,
            policy_violation, spawn_error, committed, rolled_back,
            rollback_failed)
        severity: Operator urgency
        details: Outcome-specific data; never contains unredacted arguments
    """

    id: int | None = Field(default=None, description="Database ID (None before insert)")
    timestamp: datetime = Field(
        default_factory=datetime.now, description="When the event occurred"
    )
    actor: str = Field(default="system", description="Who requested the operation")
    operation_kind: str = Field(..., description="Operation kind: execution or transaction")
    outcome: str = Field(..., description="Outcome classification")
    severity: Severity = Field(default=Severity.INFO, description="Operator urgency")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Outcome-specific details"
    )
