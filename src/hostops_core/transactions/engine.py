"""Saga-style transaction engine.

Runs an ordered list of forward/compensate step pairs. Commits only when
every forward action succeeds; otherwise compensates the steps that ran
before the failure, in strict reverse order.

Compensation is single-attempt and best-effort: a failing compensation is
recorded and rollback carries on with the earlier steps. Step and
compensation failures are returned as data in TransactionResult, never
raised.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Iterable

from hostops_core.audit import AuditRecord, AuditSink, LoggingAuditSink, Severity
from hostops_core.transactions.types import (
    StepAction,
    Transaction,
    TransactionResult,
    TransactionStatus,
    TransactionStep,
)

logger = logging.getLogger(__name__)

_SEVERITY = {
    TransactionStatus.COMMITTED: Severity.INFO,
    TransactionStatus.ROLLED_BACK: Severity.WARNING,
    TransactionStatus.ROLLBACK_FAILED: Severity.CRITICAL,
}


class StepFailed(Exception):
    """A step action returned False."""


async def invoke_action(action: StepAction) -> Any:
    """Call a sync or async zero-argument action; False counts as failure."""
    outcome = action()
    if inspect.isawaitable(outcome):
        outcome = await outcome
    if outcome is False:
        raise StepFailed("action reported failure")
    return outcome


def _describe(error: BaseException) -> str:
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class TransactionEngine:
    """
    Runs provisioning steps with reverse-order rollback.

    Steps of one transaction never run concurrently. Separate run() calls
    share no state and may run concurrently on one event loop.

    Example:
        engine = TransactionEngine(audit_sink=sink)
        result = await engine.run([
            command_step(executor, "create-user", ("useradd", ["-m", "bob"]),
                         compensate=("userdel", ["-r", "bob"])),
            command_step(executor, "reload-apache", ("systemctl", ["reload", "apache2"])),
        ])
        if result.status == TransactionStatus.ROLLBACK_FAILED:
            alert_operator(result.compensation_errors)
    """

    def __init__(self, audit_sink: AuditSink | None = None) -> None:
        """
        Initialize the engine.

        Args:
            audit_sink: Receives one record per terminal state (defaults to logging)
        """
        self._audit_sink = audit_sink or LoggingAuditSink()

    @staticmethod
    def _check_steps(steps: list[TransactionStep]) -> None:
        seen: set[str] = set()
        for step in steps:
            if step.executed:
                raise ValueError(f"Step '{step.name}' has already been executed")
            if step.name in seen:
                raise ValueError(f"Duplicate step name: {step.name}")
            seen.add(step.name)

    async def run(
        self,
        steps: Iterable[TransactionStep],
        deadline: float | None = None,
        actor: str = "system",
    ) -> TransactionResult:
        """
        Run steps in order, rolling back on the first failure.

        Args:
            steps: Ordered steps; each must be fresh and uniquely named
            deadline: Seconds from start; checked between steps, and a step
                that would start after it fails without running
            actor: Requester recorded in the audit trail

        Returns:
            TransactionResult describing the terminal state

        Raises:
            ValueError: If a step was already executed or names repeat
            asyncio.CancelledError: If the run is cancelled; executed steps
                are compensated before the cancellation propagates
        """
        transaction = Transaction(steps=list(steps))
        self._check_steps(transaction.steps)
        started = time.monotonic()

        logger.debug(
            "Transaction %s started with %d steps", transaction.id, len(transaction.steps)
        )

        failed_index: int | None = None
        step_errors: dict[str, str] = {}
        cancelled: asyncio.CancelledError | None = None

        for index, step in enumerate(transaction.steps):
            if deadline is not None and time.monotonic() - started > deadline:
                failed_index = index
                step_errors[step.name] = f"deadline of {deadline}s exceeded before step started"
                break

            step.executed = True
            try:
                await invoke_action(step.forward)
            except asyncio.CancelledError as e:
                failed_index = index
                step_errors[step.name] = "cancelled"
                cancelled = e
                break
            except Exception as e:
                failed_index = index
                step_errors[step.name] = _describe(e)
                break

        if failed_index is None:
            transaction.status = TransactionStatus.COMMITTED
            await self._finalize(transaction)
            compensated: list[str] = []
            compensation_errors: dict[str, str] = {}
        else:
            failed = transaction.steps[failed_index]
            logger.warning(
                "Transaction %s failed at step %d (%s): %s; rolling back",
                transaction.id, failed_index, failed.name, step_errors[failed.name],
            )
            compensated, compensation_errors = await self._rollback(
                transaction, transaction.steps[:failed_index]
            )
            transaction.status = (
                TransactionStatus.ROLLBACK_FAILED
                if compensation_errors
                else TransactionStatus.ROLLED_BACK
            )

        result = TransactionResult(
            transaction_id=transaction.id,
            status=transaction.status,
            failed_step_index=failed_index,
            failed_step=transaction.steps[failed_index].name if failed_index is not None else None,
            step_errors=step_errors,
            compensation_errors=compensation_errors,
            compensated_steps=compensated,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

        if result.status == TransactionStatus.ROLLBACK_FAILED:
            logger.error(
                "Transaction %s rollback failed for steps %s; manual remediation required",
                transaction.id, sorted(compensation_errors),
            )
        else:
            logger.info("Transaction %s %s", transaction.id, result.status.value)

        try:
            await self._audit_sink.record(AuditRecord(
                actor=actor,
                operation_kind="transaction",
                outcome=result.status.value,
                severity=_SEVERITY[result.status],
                details={
                    "transaction_id": result.transaction_id,
                    "step_count": len(transaction.steps),
                    "failed_step": result.failed_step,
                    "failed_step_index": result.failed_step_index,
                    "step_errors": result.step_errors,
                    "compensation_errors": result.compensation_errors,
                    "compensated_steps": result.compensated_steps,
                    "duration_ms": result.duration_ms,
                },
            ))
        except Exception:
            logger.exception(
                "Transaction %s: audit sink failed; %s result returned unaudited",
                transaction.id, result.status.value,
            )

        if cancelled is not None:
            raise cancelled
        return result

    async def _rollback(
        self, transaction: Transaction, executed: list[TransactionStep]
    ) -> tuple[list[str], dict[str, str]]:
        """Compensate executed steps in reverse order; never stops early."""
        compensated: list[str] = []
        errors: dict[str, str] = {}

        for step in reversed(executed):
            if not step.executed or step.compensate is None:
                continue
            try:
                await invoke_action(step.compensate)
            except Exception as e:
                errors[step.name] = _describe(e)
                logger.error(
                    "Transaction %s: compensation for step %s failed: %s",
                    transaction.id, step.name, errors[step.name],
                )
            else:
                compensated.append(step.name)

        return compensated, errors

    async def _finalize(self, transaction: Transaction) -> None:
        """Run post-commit cleanup; failures are logged, the commit stands."""
        for step in transaction.steps:
            if step.finalize is None:
                continue
            try:
                await invoke_action(step.finalize)
            except Exception as e:
                logger.warning(
                    "Transaction %s: cleanup for step %s failed: %s",
                    transaction.id, step.name, _describe(e),
                )
