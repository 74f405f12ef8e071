"""
Exception classes for command execution and provisioning.

This module defines the error taxonomy shared by the executor, the policy
table and the transaction engine:
- ValidationError: Caller-supplied value failed a field validator
- PolicyViolationError: Command or argument rejected by the policy table
- ExecutionTimeoutError: Process killed after exceeding its time budget
- ExecutionFailedError: Process ran and exited non-zero
- PolicyLoadError: Policy document could not be loaded

Validation and policy errors are raised before any process is spawned, so
they never partially mutate host state.

Per project patterns:
- Inherit from a common base for catch-all handling
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostops_core.executor.types import ExecutionResult


class HostOpsError(Exception):
    """Base class for all hostops-core errors."""


class ValidationError(HostOpsError):
    """
    Raised when a caller-supplied value fails a field validator.

    Always recoverable by correcting the input.

    Attributes:
        field: Name of the field that failed validation
        reason: Human-readable validation error
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class PolicyViolationError(HostOpsError):
    """
    Raised when a command or argument is rejected by the policy table.

    Indicates either a bug in an upstream caller or an attempted
    injection, so it is always logged and audited as a security event.

    Attributes:
        command: The command that was requested
        reason: Why the request was rejected
        argument_index: Index of the offending argument (None if the
            command itself was rejected)
    """

    def __init__(
        self,
        command: str,
        reason: str,
        argument_index: int | None = None,
    ) -> None:
        self.command = command
        self.reason = reason
        self.argument_index = argument_index
        super().__init__(f"Policy violation for '{command}': {reason}")


class ExecutionTimeoutError(HostOpsError):
    """
    Raised when a process was terminated after exceeding its timeout.

    Attributes:
        command: The command that timed out
        timeout_ms: The timeout that was enforced
        result: ExecutionResult with partial output and timed_out=True
    """

    def __init__(
        self,
        command: str,
        timeout_ms: int,
        result: "ExecutionResult",
    ) -> None:
        self.command = command
        self.timeout_ms = timeout_ms
        self.result = result
        super().__init__(f"Command '{command}' timed out after {timeout_ms}ms")


class ExecutionFailedError(HostOpsError):
    """
    Raised when a caller treats a non-zero exit status as fatal.

    The executor itself never raises this; see ExecutionResult.check_returncode.

    Attributes:
        command: The command that failed
        exit_code: Process exit status
        result: The full ExecutionResult
    """

    def __init__(self, command: str, exit_code: int | None, result: "ExecutionResult") -> None:
        self.command = command
        self.exit_code = exit_code
        self.result = result
        stderr = result.stderr_text.strip()
        detail = f": {stderr[:200]}" if stderr else ""
        super().__init__(f"Command '{command}' failed with exit code {exit_code}{detail}")


class PolicyLoadError(HostOpsError):
    """Raised when a policy document is missing, malformed or unsupported."""
