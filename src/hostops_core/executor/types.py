"""
Execution request and result types.

This module defines the data structures passed into and out of the
command executor:
- ExecuteOptions: Per-call options, never retained by the executor
- ExecutionResult: Immutable record of one process run
- CommandOutcome: Result-or-error value returned by try_execute

Per project patterns:
- Pydantic BaseModel for validation and serialization
- Field() with descriptions for documentation
"""

import re
from dataclasses import dataclass

from pydantic import BaseModel, Field, computed_field, field_validator

from hostops_core.exceptions import ExecutionFailedError, HostOpsError

_ENV_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class ExecuteOptions(BaseModel):
    """
    Options for a single execution.

    Attributes:
        working_user: Run the command as this account via the elevation helper
        timeout_ms: Time budget; defaults to settings and is clamped to the maximum
        cwd: Working directory for the child process
        env: Extra environment variables layered over the minimal base
        input: Bytes written to the child's stdin (stdin is /dev/null otherwise)
        actor: Who requested the execution, recorded in the audit trail
    """

    working_user: str | None = Field(
        default=None, description="Account to run as (through the elevation helper)"
    )
    timeout_ms: int | None = Field(default=None, gt=0, description="Time budget in ms")
    cwd: str | None = Field(default=None, description="Working directory")
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment variables"
    )
    input: bytes | None = Field(default=None, description="Data for the child's stdin")
    actor: str = Field(default="system", description="Requester recorded in audit")

    @field_validator("env")
    @classmethod
    def _check_env(cls, value: dict[str, str]) -> dict[str, str]:
        for name, item in value.items():
            if not _ENV_NAME.fullmatch(name):
                raise ValueError(f"invalid environment variable name {name!r}")
            if "\x00" in item:
                raise ValueError(f"environment variable {name} contains NUL")
        return value

    class Config:
        """Pydantic configuration."""

        frozen = True


class ExecutionResult(BaseModel):
    """
    Immutable record of one process run.

    Output streams are capped; when a cap is hit the head of the stream is
    kept and the corresponding ``*_truncated`` flag is set.

    Attributes:
        command: Policy command name that was run
        args: Arguments as supplied by the caller
        argv: Full argument vector handed to the OS (includes any helper prefix)
        exit_code: Process exit status (negative for signal termination)
        stdout: Captured standard output
        stderr: Captured standard error
        stdout_truncated: Whether stdout exceeded the capture cap
        stderr_truncated: Whether stderr exceeded the capture cap
        duration_ms: Wall-clock duration
        timed_out: Whether the process was terminated for exceeding its budget
        elevated: Whether the command ran through the elevation helper
        working_user: Account the command ran as, if any
    """

    command: str = Field(..., description="Policy command name")
    args: tuple[str, ...] = Field(default=(), description="Caller-supplied arguments")
    argv: tuple[str, ...] = Field(default=(), description="Argument vector given to the OS")
    exit_code: int | None = Field(default=None, description="Process exit status")
    stdout: bytes = Field(default=b"", description="Captured stdout (bounded)")
    stderr: bytes = Field(default=b"", description="Captured stderr (bounded)")
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration")
    timed_out: bool = False
    elevated: bool = False
    working_user: str | None = None

    @computed_field
    @property
    def success(self) -> bool:
        """Exited zero within its time budget."""
        return self.exit_code == 0 and not self.timed_out

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def check_returncode(self) -> "ExecutionResult":
        """
        Treat a non-zero exit as fatal.

        Returns:
            self, so calls can be chained

        Raises:
            ExecutionFailedError: If the process did not succeed
        """
        if not self.success:
            raise ExecutionFailedError(self.command, self.exit_code, self)
        return self

    class Config:
        """Pydantic configuration."""

        frozen = True


@dataclass(frozen=True)
class CommandOutcome:
    """
    Result-or-error value for callers that prefer not to catch exceptions.

    Attributes:
        result: The ExecutionResult, if a process was spawned
        error: PolicyViolationError, ExecutionTimeoutError or
            ExecutionFailedError, None on success
    """

    result: ExecutionResult | None = None
    error: HostOpsError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.success
