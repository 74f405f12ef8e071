"""Policy-checked command executor.

Runs whitelisted external programs with validated arguments and returns a
bounded, immutable record of each run.

All spawns use asyncio.create_subprocess_exec with an explicit argument
vector. No shell is ever involved, so shell metacharacters inside an
argument are inert; the per-argument policy patterns are the injection
defense, not escaping.

Every invocation, including rejected ones, produces exactly one audit
record.
"""

import asyncio
import logging
import os
import signal
import time
from typing import Any, Sequence

from hostops_core.audit import AuditRecord, AuditSink, LoggingAuditSink, Severity
from hostops_core.config import Settings
from hostops_core.exceptions import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    PolicyViolationError,
)
from hostops_core.executor.redaction import ArgumentRedactor
from hostops_core.executor.retry import RetryConfig
from hostops_core.executor.types import CommandOutcome, ExecuteOptions, ExecutionResult
from hostops_core.policy import PolicyTable
from hostops_core.validators import validate_system_username

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024


class BoundedBuffer:
    """Accumulates up to ``limit`` bytes and records whether more arrived."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.truncated = False
        self._chunks: list[bytes] = []
        self._size = 0

    def feed(self, data: bytes) -> None:
        room = self.limit - self._size
        if len(data) > room:
            self.truncated = True
            data = data[:max(room, 0)]
        if data:
            self._chunks.append(data)
            self._size += len(data)

    def getvalue(self) -> bytes:
        return b"".join(self._chunks)


class CommandExecutor:
    """
    Executor for policy-checked external commands.

    Every call is checked against the injected PolicyTable before anything
    is spawned: unknown commands and arguments that match none of their
    command's patterns raise PolicyViolationError with zero side effects.

    Example:
        executor = CommandExecutor(default_policy_table(), audit_sink=sink)
        result = await executor.execute("useradd", ["-m", "-d", "/home/bob", "bob"])
        result.check_returncode()
    """

    def __init__(
        self,
        policy: PolicyTable,
        settings: Settings | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            policy: Command allow-list; never mutated
            settings: Timeouts, output caps, elevation helper and PATH
            audit_sink: Receives one record per invocation (defaults to logging)
        """
        self._policy = policy
        self._settings = settings or Settings()
        self._audit_sink = audit_sink or LoggingAuditSink()
        self._redactor = ArgumentRedactor()

    @property
    def policy(self) -> PolicyTable:
        return self._policy

    # ===== Policy checks =====

    def preflight(
        self,
        command: str,
        args: Sequence[str] = (),
        options: ExecuteOptions | None = None,
    ) -> list[str]:
        """
        Check a command against the policy without spawning anything.

        Args:
            command: Command name
            args: Arguments
            options: Execution options (working_user affects the argv)

        Returns:
            The argument vector that execute() would hand to the OS

        Raises:
            PolicyViolationError: If the command, an argument, the working
                user or the elevation helper is rejected
        """
        argv, _ = self._build_argv(command, list(args), options or ExecuteOptions())
        return argv

    def _build_argv(
        self, command: str, args: list[str], options: ExecuteOptions
    ) -> tuple[list[str], bool]:
        helper = self._settings.elevation_helper
        # The helper is only ever reached through the prefix built below
        if command == helper:
            raise PolicyViolationError(command, "elevation helper cannot be invoked directly")

        definition = self._policy.definition_for(command)
        if definition is None:
            raise PolicyViolationError(command, "command is not in the policy table")

        for index, arg in enumerate(args):
            if not definition.argument_is_valid(arg):
                raise PolicyViolationError(
                    command,
                    f"argument {index} does not match any allowed pattern",
                    argument_index=index,
                )

        if options.working_user is not None:
            check = validate_system_username(options.working_user)
            if not check.is_valid:
                raise PolicyViolationError(command, f"invalid working user: {check.error}")
            prefix = [helper, "-n", "-u", options.working_user, "--"]
        elif definition.requires_elevated_privilege and not self._is_root():
            prefix = [helper, "-n", "--"]
        else:
            return [command, *args], False

        # The helper goes through the same whitelist as any other command
        if not self._policy.is_allowed(helper):
            raise PolicyViolationError(helper, "elevation helper is not in the policy table")
        for index, arg in enumerate(prefix[1:]):
            if not self._policy.argument_is_valid(helper, arg):
                raise PolicyViolationError(
                    helper,
                    f"helper argument {index} does not match any allowed pattern",
                    argument_index=index,
                )

        return [*prefix, command, *args], True

    @staticmethod
    def _is_root() -> bool:
        return os.geteuid() == 0

    def _effective_timeout(self, timeout_ms: int | None) -> int:
        requested = timeout_ms if timeout_ms is not None else self._settings.default_timeout_ms
        return min(requested, self._settings.max_timeout_ms)

    def _build_env(self, options: ExecuteOptions) -> dict[str, str]:
        # Fresh per call: nothing from the parent environment leaks through
        env = {"PATH": self._settings.exec_path, "LANG": "C.UTF-8"}
        env.update(options.env)
        return env

    # ===== Execution =====

    async def execute(
        self,
        command: str,
        args: Sequence[str] = (),
        options: ExecuteOptions | None = None,
    ) -> ExecutionResult:
        """
        Run a whitelisted command.

        Args:
            command: Command name present in the policy table
            args: Arguments, each checked against the command's patterns
            options: Per-call options

        Returns:
            ExecutionResult; a non-zero exit is returned, not raised
            (see ExecutionResult.check_returncode)

        Raises:
            PolicyViolationError: Rejected before spawning
            ExecutionTimeoutError: Process exceeded its budget and was killed
            OSError: The OS could not spawn the process

        Audit sink errors propagate only for runs that never spawned. Once a
        process has run, its result is returned (or its timeout raised) even
        if the sink fails, so callers can still compensate the change.
        """
        options = options or ExecuteOptions()
        args = list(args)
        definition = self._policy.definition_for(command)

        try:
            argv, elevated = self._build_argv(command, args, options)
        except PolicyViolationError as e:
            logger.warning("Policy violation: %s", e)
            await self._audit(
                options.actor,
                "policy_violation",
                Severity.WARNING,
                {
                    "command": command,
                    "argument_count": len(args),
                    "elevated": options.working_user is not None or bool(
                        definition is not None
                        and definition.requires_elevated_privilege
                        and not self._is_root()
                    ),
                    "reason": e.reason,
                    "argument_index": e.argument_index,
                },
            )
            raise

        timeout_ms = self._effective_timeout(options.timeout_ms)
        details: dict[str, Any] = {
            "command": command,
            "argument_count": len(args),
            "elevated": elevated,
            "working_user": options.working_user,
        }
        if definition is not None and definition.log_arguments:
            details["args"] = self._redactor.redact(args, command=command)

        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if options.input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.cwd,
                env=self._build_env(options),
            )
        except OSError as e:
            logger.error("Failed to spawn %s: %s", command, e)
            details["error"] = str(e)
            await self._audit(options.actor, "spawn_error", Severity.CRITICAL, details)
            raise

        stdout_buf = BoundedBuffer(self._settings.max_output_bytes)
        stderr_buf = BoundedBuffer(self._settings.max_output_bytes)
        timed_out = False
        io_tasks: list[asyncio.Task] = []
        try:
            io_tasks.append(asyncio.create_task(self._drain(proc.stdout, stdout_buf)))
            io_tasks.append(asyncio.create_task(self._drain(proc.stderr, stderr_buf)))
            if options.input is not None:
                io_tasks.append(asyncio.create_task(self._feed(proc.stdin, options.input)))

            try:
                await asyncio.wait_for(proc.wait(), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                timed_out = True
                logger.warning("Command %s timed out after %dms, terminating", command, timeout_ms)
                await self._terminate(proc)

            # Descendants may keep the pipes open after the child exits
            await asyncio.wait(io_tasks, timeout=self._settings.kill_grace_ms / 1000)
        finally:
            # Cancelled mid-run: never leave the child behind
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
            for task in io_tasks:
                task.cancel()
            await asyncio.gather(*io_tasks, return_exceptions=True)

        result = ExecutionResult(
            command=command,
            args=tuple(args),
            argv=tuple(argv),
            exit_code=proc.returncode,
            stdout=stdout_buf.getvalue(),
            stderr=stderr_buf.getvalue(),
            stdout_truncated=stdout_buf.truncated,
            stderr_truncated=stderr_buf.truncated,
            duration_ms=int((time.monotonic() - started) * 1000),
            timed_out=timed_out,
            elevated=elevated,
            working_user=options.working_user,
        )

        details.update(
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
            timed_out=timed_out,
            stdout_truncated=result.stdout_truncated,
            stderr_truncated=result.stderr_truncated,
        )
        if timed_out:
            await self._audit_completed(options.actor, "timeout", Severity.WARNING, details)
            raise ExecutionTimeoutError(command, timeout_ms, result)
        if result.exit_code == 0:
            await self._audit_completed(options.actor, "success", Severity.INFO, details)
        else:
            logger.info("Command %s exited with %s", command, result.exit_code)
            await self._audit_completed(options.actor, "nonzero_exit", Severity.WARNING, details)
        return result

    async def try_execute(
        self,
        command: str,
        args: Sequence[str] = (),
        options: ExecuteOptions | None = None,
    ) -> CommandOutcome:
        """
        Run a command, returning expected failures as values.

        Policy violations, timeouts and non-zero exits come back in
        CommandOutcome.error. Spawn failures still raise.
        """
        try:
            result = await self.execute(command, args, options)
        except PolicyViolationError as e:
            return CommandOutcome(error=e)
        except ExecutionTimeoutError as e:
            return CommandOutcome(result=e.result, error=e)

        if not result.success:
            return CommandOutcome(
                result=result,
                error=ExecutionFailedError(command, result.exit_code, result),
            )
        return CommandOutcome(result=result)

    async def execute_with_retry(
        self,
        command: str,
        args: Sequence[str] = (),
        options: ExecuteOptions | None = None,
        retry: RetryConfig | None = None,
    ) -> CommandOutcome:
        """
        Run a command, retrying the failures ``retry`` deems transient.

        Policy violations are returned immediately; retrying them cannot help.

        Args:
            command: Command name
            args: Arguments
            options: Per-call options, reused for every attempt
            retry: Which failures to retry and the backoff (defaults to RetryConfig())

        Returns:
            Outcome of the last attempt
        """
        retry = retry or RetryConfig()
        attempts = 0
        while True:
            outcome = await self.try_execute(command, args, options)
            attempts += 1
            delay = retry.next_delay(outcome, attempts)
            if delay is None:
                if retry.is_retryable(outcome):
                    logger.warning("Command %s failed after %d attempts", command, attempts)
                return outcome

            logger.info(
                "Command %s failed (attempt %d/%d), retrying in %.1fs",
                command, attempts, retry.max_attempts, delay,
            )
            await asyncio.sleep(delay)

    # ===== Process plumbing =====

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """SIGTERM, wait the grace period, then SIGKILL if still running."""
        try:
            proc.send_signal(signal.SIGTERM)
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(proc.wait(), timeout=self._settings.kill_grace_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning("Process %s ignored SIGTERM, sending SIGKILL", proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                pass  # Exited just before escalation
            await proc.wait()

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, buffer: BoundedBuffer) -> None:
        # Keep reading past the cap so the child never blocks on a full pipe
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                return
            buffer.feed(chunk)

    @staticmethod
    async def _feed(stream: asyncio.StreamWriter | None, data: bytes) -> None:
        if stream is None:
            return
        try:
            stream.write(data)
            await stream.drain()
        except (BrokenPipeError, ConnectionResetError):
            pass  # Child exited without reading its input
        finally:
            stream.close()

    async def _audit(
        self, actor: str, outcome: str, severity: Severity, details: dict[str, Any]
    ) -> None:
        await self._audit_sink.record(AuditRecord(
            actor=actor,
            operation_kind="execution",
            outcome=outcome,
            severity=severity,
            details=dict(details),
        ))

    async def _audit_completed(
        self, actor: str, outcome: str, severity: Severity, details: dict[str, Any]
    ) -> None:
        """Audit a run that already touched the host; sink errors are logged only."""
        try:
            await self._audit(actor, outcome, severity, details)
        except Exception:
            logger.exception(
                "Audit sink failed for %s (%s); record lost", details.get("command"), outcome
            )
