"""Command policy table.

Provides the allow-list that decides which external programs may run and
which argument shapes they accept. Anything not listed is denied.

The table is built once from a fixed configuration source and never mutated
afterward, so concurrent readers need no synchronization. Tests and callers
inject their own tables instead of relying on a process-wide global.
"""

import re
from types import MappingProxyType
from typing import Iterable, Iterator

from pydantic import BaseModel, Field, field_validator

# Program names only: no path separators, no whitespace, no shell syntax
_COMMAND_NAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9._+-]*")


class CommandDefinition(BaseModel):
    """
    Allow-list entry for a single external program.

    Arguments are checked with ``fullmatch`` against each pattern, so a
    trailing newline can never slip through an anchored ``$``.

    An empty pattern set rejects every argument (fail-closed); the command
    may then only be run with an empty argument list.

    Attributes:
        name: Program name looked up on the executor's PATH
        description: Human-readable description
        requires_elevated_privilege: Run through the elevation helper
        allowed_argument_patterns: Each argument must match at least one
        log_arguments: Include (redacted) argument values in audit records
    """

    name: str = Field(..., description="Program name, unique within a table")
    description: str = Field(default="", description="What the command is for")
    requires_elevated_privilege: bool = Field(
        default=False, description="Whether the command runs through the elevation helper"
    )
    allowed_argument_patterns: tuple[re.Pattern[str], ...] = Field(
        default=(), description="Regular expressions an argument must fully match"
    )
    log_arguments: bool = Field(
        default=False, description="Whether raw (redacted) arguments may be audited"
    )

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _COMMAND_NAME.fullmatch(value):
            raise ValueError(f"invalid command name {value!r}")
        return value

    def argument_is_valid(self, argument: str) -> bool:
        """Return True if argument fully matches at least one allowed pattern."""
        if not isinstance(argument, str):
            return False
        return any(pattern.fullmatch(argument) for pattern in self.allowed_argument_patterns)

    class Config:
        """Pydantic configuration."""

        frozen = True


class PolicyTable:
    """
    Immutable mapping from command name to CommandDefinition.

    Example:
        table = PolicyTable([
            CommandDefinition(
                name="useradd",
                requires_elevated_privilege=True,
                allowed_argument_patterns=[r"^-m$", r"^[a-z][a-z0-9_-]{2,31}$"],
            ),
        ])
        table.is_allowed("useradd")                 # True
        table.argument_is_valid("useradd", "bob")   # True
        table.argument_is_valid("rm", "-rf")        # False, unknown command
    """

    def __init__(self, definitions: Iterable[CommandDefinition] = ()) -> None:
        """
        Build the table.

        Args:
            definitions: Command definitions; names must be unique

        Raises:
            ValueError: If two definitions share a name
        """
        table: dict[str, CommandDefinition] = {}
        for definition in definitions:
            if definition.name in table:
                raise ValueError(f"Duplicate command definition: {definition.name}")
            table[definition.name] = definition
        self._definitions = MappingProxyType(table)

    def is_allowed(self, command: str) -> bool:
        """True if the command is present in the table."""
        return command in self._definitions

    def definition_for(self, command: str) -> CommandDefinition | None:
        """Return the definition for command, or None if unknown."""
        return self._definitions.get(command)

    def argument_is_valid(self, command: str, argument: str) -> bool:
        """
        Check a single argument against the command's patterns.

        Returns:
            False for unknown commands and for definitions with no patterns
        """
        definition = self._definitions.get(command)
        if definition is None:
            return False
        return definition.argument_is_valid(argument)

    def invalid_arguments(self, command: str, args: Iterable[str]) -> list[tuple[int, str]]:
        """Return (index, argument) pairs that fail the command's patterns."""
        return [
            (index, arg)
            for index, arg in enumerate(args)
            if not self.argument_is_valid(command, arg)
        ]

    def names(self) -> list[str]:
        """Sorted command names."""
        return sorted(self._definitions)

    def __contains__(self, command: object) -> bool:
        return command in self._definitions

    def __iter__(self) -> Iterator[CommandDefinition]:
        return iter(self._definitions[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._definitions)
