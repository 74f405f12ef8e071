"""
Retry rules for command execution.

Used by CommandExecutor.execute_with_retry for commands that can fail
transiently (package registries, ACME endpoints, a database still starting).
A RetryConfig decides two things from a CommandOutcome: whether the failure
is worth another attempt, and how long to wait before it.

Never retried:
- Policy violations (the same argv is rejected every time)
- Successful runs
"""

import random
from dataclasses import dataclass

from hostops_core.exceptions import ExecutionFailedError, ExecutionTimeoutError
from hostops_core.executor.types import CommandOutcome


@dataclass(frozen=True)
class RetryConfig:
    """
    Which failed executions to repeat, and the backoff between attempts.

    Attributes:
        max_attempts: Total attempts, including the first (default 3)
        base_delay_ms: Wait before the first retry; doubles per retry
        max_delay_ms: Cap on the wait before jitter is added
        jitter_fraction: Up to this fraction of the wait is added at random
        retry_on_timeout: Whether a timed-out run is retried
        retryable_exit_codes: Exit codes worth retrying; None means any
            non-zero code

    Example:
        # certbot exits 1 on a rate-limited ACME endpoint; anything else is fatal
        retry = RetryConfig(max_attempts=4, base_delay_ms=5000,
                            retryable_exit_codes=frozenset({1}))
        outcome = await executor.execute_with_retry("certbot", args, retry=retry)
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    jitter_fraction: float = 0.5
    retry_on_timeout: bool = True
    retryable_exit_codes: frozenset[int] | None = None

    def is_retryable(self, outcome: CommandOutcome) -> bool:
        """Whether the failure in outcome could go away on another attempt."""
        if outcome.ok:
            return False
        if isinstance(outcome.error, ExecutionTimeoutError):
            return self.retry_on_timeout
        if isinstance(outcome.error, ExecutionFailedError):
            return (
                self.retryable_exit_codes is None
                or outcome.error.exit_code in self.retryable_exit_codes
            )
        return False

    def backoff_ms(self, retry_number: int) -> float:
        """
        Wait before retry number ``retry_number`` (0 for the first retry).

        min(max_delay, base_delay * 2^n) plus up to jitter_fraction of that.
        """
        wait = min(self.max_delay_ms, self.base_delay_ms * (2**retry_number))
        return wait + random.uniform(0, wait * self.jitter_fraction)

    def next_delay(self, outcome: CommandOutcome, attempts_made: int) -> float | None:
        """
        Seconds to wait before the next attempt, or None to stop.

        Args:
            outcome: Outcome of the attempt just made
            attempts_made: Attempts made so far, including that one
        """
        if attempts_made >= self.max_attempts or not self.is_retryable(outcome):
            return None
        return self.backoff_ms(attempts_made - 1) / 1000
