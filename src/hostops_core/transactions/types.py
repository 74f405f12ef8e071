"""
Transaction types for saga-style provisioning.

This module defines the data structures used by the transaction engine:
- TransactionStatus: Enum for transaction terminal states
- TransactionStep: Forward/compensate pair for one provisioning action
- Transaction: Per-run state, never shared between runs
- TransactionResult: Outcome returned to callers as data

Per project patterns:
- Use str enum for JSON serialization compatibility
- Pydantic BaseModel for results crossing module boundaries
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, Field, computed_field

# Zero-argument callable, sync or async. Raising or returning False is failure.
StepAction = Callable[[], Union[Any, Awaitable[Any]]]


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle states.

    Transactions flow through these states:
        pending -> committed | rolled_back | rollback_failed
    """

    PENDING = "pending"
    """Steps are still running."""

    COMMITTED = "committed"
    """Every forward action succeeded."""

    ROLLED_BACK = "rolled_back"
    """A step failed and every required compensation succeeded."""

    ROLLBACK_FAILED = "rollback_failed"
    """A step failed and at least one compensation also failed; needs an operator."""


@dataclass
class TransactionStep:
    """
    One provisioning action and its undo.

    Steps are single-use: the engine rejects a step whose ``executed`` flag
    is already set.

    Attributes:
        name: Unique name within the transaction
        forward: Performs the action
        compensate: Undoes the action, or None if there is nothing to undo
        finalize: Runs only after the whole transaction commits (cleanup of
            rollback material such as file snapshots)
        executed: Set immediately before forward runs
    """

    name: str
    forward: StepAction
    compensate: StepAction | None = None
    finalize: StepAction | None = None
    executed: bool = False


@dataclass
class Transaction:
    """Per-run transaction state."""

    steps: list[TransactionStep]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: TransactionStatus = TransactionStatus.PENDING
    started_at: datetime = field(default_factory=datetime.now)


class TransactionResult(BaseModel):
    """
    Outcome of a transaction run.

    Attributes:
        transaction_id: Transaction.id of the run
        status: Terminal status
        failed_step_index: Index of the step that failed (None if committed)
        failed_step: Name of the step that failed (None if committed)
        step_errors: Step name -> error message for the failed forward action
        compensation_errors: Step name -> error message per failed compensation
        compensated_steps: Steps whose compensation succeeded, in the order run
        duration_ms: Wall-clock duration of the whole run
    """

    transaction_id: str = Field(..., description="Transaction identifier")
    status: TransactionStatus = Field(..., description="Terminal status")
    failed_step_index: int | None = Field(default=None, description="Index of the failed step")
    failed_step: str | None = Field(default=None, description="Name of the failed step")
    step_errors: dict[str, str] = Field(
        default_factory=dict, description="Forward failures by step name"
    )
    compensation_errors: dict[str, str] = Field(
        default_factory=dict, description="Compensation failures by step name"
    )
    compensated_steps: list[str] = Field(
        default_factory=list, description="Successfully compensated steps, in run order"
    )
    duration_ms: int = Field(default=0, ge=0, description="Run duration")

    @computed_field
    @property
    def committed(self) -> bool:
        return self.status == TransactionStatus.COMMITTED
