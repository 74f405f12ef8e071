"""Tests for CommandDefinition, PolicyTable and the built-in policy."""

import re

import pydantic
import pytest

from hostops_core.policy import CommandDefinition, PolicyTable, default_policy_table

from conftest import USERADD


# ===== CommandDefinition Tests =====


class TestCommandDefinition:
    """Tests for a single allow-list entry."""

    def test_patterns_compiled_from_strings(self):
        """String patterns are compiled on construction."""
        assert all(isinstance(p, re.Pattern) for p in USERADD.allowed_argument_patterns)

    def test_argument_must_fully_match(self):
        """A partial match is not enough."""
        assert USERADD.argument_is_valid("bob") is True
        assert USERADD.argument_is_valid("/home/bob") is True
        assert USERADD.argument_is_valid("/home/bob; rm -rf /") is False

    def test_trailing_newline_rejected(self):
        """An anchored $ must not let a trailing newline through."""
        assert USERADD.argument_is_valid("bob\n") is False

    def test_non_string_argument_rejected(self):
        """Only strings can be arguments."""
        assert USERADD.argument_is_valid(42) is False
        assert USERADD.argument_is_valid(None) is False

    def test_empty_pattern_set_rejects_everything(self):
        """No patterns means no argument is ever accepted."""
        definition = CommandDefinition(name="chpasswd")
        assert definition.argument_is_valid("") is False
        assert definition.argument_is_valid("bob") is False

    def test_invalid_regex_rejected(self):
        """Unparseable patterns fail at construction."""
        with pytest.raises(pydantic.ValidationError):
            CommandDefinition(name="x", allowed_argument_patterns=["^(unclosed$"])

    @pytest.mark.parametrize("name", ["", "/bin/rm", "rm -rf", "a;b", "-x"])
    def test_invalid_command_names_rejected(self, name):
        """Names are bare program names."""
        with pytest.raises(pydantic.ValidationError):
            CommandDefinition(name=name)

    def test_definition_is_frozen(self):
        """Definitions cannot be mutated after loading."""
        with pytest.raises(pydantic.ValidationError):
            USERADD.requires_elevated_privilege = False


# ===== PolicyTable Tests =====


class TestPolicyTable:
    """Tests for the immutable command table."""

    def test_unknown_command_not_allowed(self, useradd_policy):
        """Default deny."""
        assert useradd_policy.is_allowed("useradd") is True
        assert useradd_policy.is_allowed("rm") is False
        assert useradd_policy.definition_for("rm") is None

    def test_argument_is_valid_unknown_command(self, useradd_policy):
        """Arguments of unknown commands are never valid."""
        assert useradd_policy.argument_is_valid("rm", "-rf") is False

    def test_useradd_scenario(self, useradd_policy):
        """Benign arguments pass; an injected path does not."""
        for arg in ["-m", "/home/bob", "bob"]:
            assert useradd_policy.argument_is_valid("useradd", arg) is True
        assert useradd_policy.argument_is_valid("useradd", "/home/bob; rm -rf /") is False

    def test_invalid_arguments_reports_indices(self, useradd_policy):
        """invalid_arguments lists each failing (index, arg)."""
        bad = useradd_policy.invalid_arguments("useradd", ["-m", "$(reboot)", "bob", "-G"])
        assert bad == [(1, "$(reboot)"), (3, "-G")]

    def test_duplicate_names_rejected(self):
        """Two definitions with one name is a configuration error."""
        with pytest.raises(ValueError, match="Duplicate command definition"):
            PolicyTable([USERADD, USERADD])

    def test_iteration_is_sorted(self, useradd_policy):
        """Iteration and names() are sorted by command name."""
        names = [d.name for d in useradd_policy]
        assert names == sorted(names)
        assert useradd_policy.names() == names
        assert len(useradd_policy) == len(names)
        assert "sudo" in useradd_policy

    def test_table_cannot_be_mutated(self, useradd_policy):
        """The backing mapping is read-only."""
        with pytest.raises(TypeError):
            useradd_policy._definitions["rm"] = USERADD


# ===== Default Policy Tests =====


class TestDefaultPolicy:
    """Tests for the built-in provisioning policy."""

    def test_contains_provisioning_commands(self):
        """Core provisioning commands are present."""
        table = default_policy_table()
        for name in ["useradd", "userdel", "systemctl", "a2ensite", "certbot", "sudo"]:
            assert table.is_allowed(name), name

    def test_no_shell_interpreters(self):
        """Commands that interpret strings are never whitelisted."""
        table = default_policy_table()
        for name in ["bash", "sh", "sed", "python3", "perl", "eval"]:
            assert table.is_allowed(name) is False, name

    def test_home_paths_reject_traversal(self):
        """'..' segments cannot escape a tenant home."""
        table = default_policy_table()
        assert table.argument_is_valid("rm", "/home/bob/public_html/old") is True
        assert table.argument_is_valid("rm", "/home/bob/.htaccess") is True
        assert table.argument_is_valid("rm", "/home/bob/../../etc/shadow") is False
        assert table.argument_is_valid("chown", "/home/bob/..") is False
        assert table.argument_is_valid("chmod", "/home/bob/./x") is False

    def test_free_text_patterns_reject_options(self):
        """Free-text patterns cannot smuggle extra options."""
        table = default_policy_table()
        assert table.argument_is_valid("find", "*.log") is True
        assert table.argument_is_valid("find", "-delete") is False
        assert table.argument_is_valid("csf", "blocked by admin") is True
        assert table.argument_is_valid("csf", "-x") is False
