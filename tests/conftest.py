"""Shared test helpers: a fake asyncio subprocess and small policy tables."""

import asyncio
import signal

import pytest

from hostops_core.config import Settings
from hostops_core.policy import CommandDefinition, PolicyTable


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process.

    Must be created inside a running event loop (StreamReader and Event
    bind to it).

    Args:
        returncode: Exit status reported once the process "exits"
        stdout: Bytes readable from stdout
        stderr: Bytes readable from stderr
        hang: Never exit on its own; only signals end it
        ignore_sigterm: With hang, only SIGKILL ends it
    """

    def __init__(
        self,
        returncode: int = 0,
        stdout: bytes = b"",
        stderr: bytes = b"",
        hang: bool = False,
        ignore_sigterm: bool = False,
    ) -> None:
        self.pid = 4242
        self.returncode = None
        self.stdin = None
        self.signals: list[int] = []
        self._ignore_sigterm = ignore_sigterm
        self._exited = asyncio.Event()

        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()

        if not hang:
            self._exit(returncode)

    def _exit(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)
        if sig == signal.SIGTERM and not self._ignore_sigterm:
            self._exit(-signal.SIGTERM)

    def terminate(self) -> None:
        self.send_signal(signal.SIGTERM)

    def kill(self) -> None:
        self.signals.append(signal.SIGKILL)
        self._exit(-signal.SIGKILL)


USERADD = CommandDefinition(
    name="useradd",
    requires_elevated_privilege=True,
    allowed_argument_patterns=[
        r"^-m$",
        r"^/home/[a-z][a-z0-9_-]{2,31}$",
        r"^[a-z][a-z0-9_-]{2,31}$",
    ],
    log_arguments=True,
)

SUDO = CommandDefinition(
    name="sudo",
    allowed_argument_patterns=[r"^-n$", r"^-u$", r"^--$", r"^[a-z][a-z0-9_-]{0,31}$"],
)


@pytest.fixture
def useradd_policy() -> PolicyTable:
    """useradd + sudo + a few unprivileged commands."""
    return PolicyTable([
        USERADD,
        SUDO,
        CommandDefinition(name="id", allowed_argument_patterns=[r"^[a-z][a-z0-9_-]{0,31}$"]),
        CommandDefinition(
            name="mysql",
            allowed_argument_patterns=[r"^-u[a-z]+$", r"^-p.*$", r"^[a-z_]+$"],
            log_arguments=True,
        ),
        CommandDefinition(name="chpasswd", requires_elevated_privilege=True),
    ])


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short timeouts so timeout paths run quickly."""
    return Settings(default_timeout_ms=2000, max_timeout_ms=5000, kill_grace_ms=200)
