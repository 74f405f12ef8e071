"""Step builders for common provisioning actions.

- command_step: forward and compensate run through the CommandExecutor
- file_snapshot_step: backs up a file before writing it, restores on rollback
"""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Sequence

from hostops_core.executor import CommandExecutor, ExecuteOptions
from hostops_core.transactions.engine import invoke_action
from hostops_core.transactions.types import StepAction, TransactionStep

logger = logging.getLogger(__name__)

CommandLine = tuple[str, Sequence[str]]

DEFAULT_SNAPSHOT_DIR = Path(tempfile.gettempdir()) / "hostops-snapshots"


def command_step(
    executor: CommandExecutor,
    name: str,
    forward: CommandLine,
    compensate: CommandLine | None = None,
    options: ExecuteOptions | None = None,
) -> TransactionStep:
    """
    Build a step whose actions are executor commands.

    Both commands are checked against the policy immediately, so a step
    that could never run is rejected while the transaction is being built
    rather than half-way through it. A non-zero exit, a timeout or a policy
    violation fails the action.

    Args:
        executor: Executor used for both actions
        name: Step name
        forward: (command, args) performing the action
        compensate: (command, args) undoing it, or None
        options: Execution options shared by both actions

    Returns:
        A fresh TransactionStep

    Raises:
        PolicyViolationError: If either command would be rejected
    """
    forward_cmd, forward_args = forward[0], list(forward[1])
    executor.preflight(forward_cmd, forward_args, options)

    async def run_forward() -> None:
        result = await executor.execute(forward_cmd, forward_args, options)
        result.check_returncode()

    run_compensate = None
    if compensate is not None:
        compensate_cmd, compensate_args = compensate[0], list(compensate[1])
        executor.preflight(compensate_cmd, compensate_args, options)

        async def run_compensate() -> None:
            result = await executor.execute(compensate_cmd, compensate_args, options)
            result.check_returncode()

    return TransactionStep(name=name, forward=run_forward, compensate=run_compensate)


def file_snapshot_step(
    name: str,
    path: str | Path,
    write: StepAction,
    snapshot_dir: str | Path | None = None,
) -> TransactionStep:
    """
    Build a step that writes a file and can put the old contents back.

    Forward copies the current file (if any) into snapshot_dir, then runs
    ``write``. If ``write`` fails, the snapshot is restored at once, since
    the engine never compensates the failing step itself. Compensation
    restores the snapshot, or removes the file when it did not exist
    before. After commit the snapshot is deleted.

    Args:
        name: Step name
        path: File the step writes
        write: Action that writes the file (sync or async)
        snapshot_dir: Where backups go (default: a hostops directory under
            the system temp dir)

    Returns:
        A fresh TransactionStep
    """
    target = Path(path)
    backup_dir = Path(snapshot_dir) if snapshot_dir is not None else DEFAULT_SNAPSHOT_DIR
    state: dict[str, Path | None] = {"backup": None}

    def take_snapshot() -> None:
        if not target.exists():
            state["backup"] = None
            return
        backup_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
        backup = backup_dir / f"{uuid.uuid4().hex}-{target.name}"
        shutil.copy2(target, backup)
        state["backup"] = backup
        logger.debug("File snapshot created: %s -> %s", target, backup)

    def restore() -> None:
        backup = state["backup"]
        if backup is None:
            target.unlink(missing_ok=True)
            return
        shutil.copy2(backup, target)
        backup.unlink()
        state["backup"] = None
        logger.debug("File restored: %s", target)

    def discard() -> None:
        backup = state["backup"]
        if backup is not None:
            backup.unlink(missing_ok=True)
            state["backup"] = None

    async def forward() -> None:
        take_snapshot()
        try:
            await invoke_action(write)
        except Exception:
            restore()
            raise

    return TransactionStep(name=name, forward=forward, compensate=restore, finalize=discard)
