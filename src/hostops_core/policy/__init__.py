"""
Command policy: which external programs may run, and with which arguments.

Exports:
    CommandDefinition: Allow-list entry for one program
    PolicyTable: Immutable command name -> definition mapping
    DEFAULT_COMMANDS: Built-in provisioning command set
    default_policy_table: PolicyTable over DEFAULT_COMMANDS
    load_policy_table: Load a versioned YAML policy document
    load_configured_policy: Policy file from settings, or the default table
    policy_from_data: Build a table from parsed document data
    dump_policy_table: Serialize a table back to document data
"""

from hostops_core.policy.defaults import DEFAULT_COMMANDS, default_policy_table
from hostops_core.policy.loader import (
    PolicyDocument,
    dump_policy_table,
    load_configured_policy,
    load_policy_table,
    policy_from_data,
)
from hostops_core.policy.table import CommandDefinition, PolicyTable

__all__ = [
    "CommandDefinition",
    "DEFAULT_COMMANDS",
    "PolicyDocument",
    "PolicyTable",
    "default_policy_table",
    "dump_policy_table",
    "load_configured_policy",
    "load_policy_table",
    "policy_from_data",
]
