"""
Transactional provisioning with reverse-order compensation.

Exports:
    TransactionEngine: Runs steps, commits or rolls back
    TransactionStep: Forward/compensate pair
    TransactionStatus: Terminal states
    TransactionResult: Outcome of a run
    command_step: Step built from executor commands
    file_snapshot_step: Step that writes a file with snapshot/restore
"""

from hostops_core.transactions.engine import TransactionEngine
from hostops_core.transactions.steps import command_step, file_snapshot_step
from hostops_core.transactions.types import (
    Transaction,
    TransactionResult,
    TransactionStatus,
    TransactionStep,
)

__all__ = [
    "Transaction",
    "TransactionEngine",
    "TransactionResult",
    "TransactionStatus",
    "TransactionStep",
    "command_step",
    "file_snapshot_step",
]
