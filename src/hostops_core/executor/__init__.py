"""
Policy-checked execution of external commands.

Exports:
    CommandExecutor: Runs whitelisted commands without a shell
    ExecuteOptions: Per-call options
    ExecutionResult: Immutable record of one process run
    CommandOutcome: Result-or-error value from try_execute
    RetryConfig: Backoff configuration for execute_with_retry
    ArgumentRedactor: Masks secrets in arguments before auditing
"""

from hostops_core.executor.executor import CommandExecutor
from hostops_core.executor.redaction import ArgumentRedactor
from hostops_core.executor.retry import RetryConfig
from hostops_core.executor.types import CommandOutcome, ExecuteOptions, ExecutionResult

__all__ = [
    "ArgumentRedactor",
    "CommandExecutor",
    "CommandOutcome",
    "ExecuteOptions",
    "ExecutionResult",
    "RetryConfig",
]
