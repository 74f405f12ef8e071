"""
hostops-core: policy-checked command execution and transactional provisioning.

Exports:
    PolicyTable, CommandDefinition: Command allow-list
    CommandExecutor, ExecuteOptions, ExecutionResult: Safe command execution
    TransactionEngine, TransactionStep, TransactionStatus: Saga-style provisioning
    Settings: Environment-driven configuration
"""

from hostops_core.config import Settings
from hostops_core.executor import CommandExecutor, ExecuteOptions, ExecutionResult
from hostops_core.policy import CommandDefinition, PolicyTable, default_policy_table
from hostops_core.transactions import (
    TransactionEngine,
    TransactionResult,
    TransactionStatus,
    TransactionStep,
)

__version__ = "0.1.0"

__all__ = [
    "CommandDefinition",
    "CommandExecutor",
    "ExecuteOptions",
    "ExecutionResult",
    "PolicyTable",
    "Settings",
    "TransactionEngine",
    "TransactionResult",
    "TransactionStatus",
    "TransactionStep",
    "default_policy_table",
]
