"""Tests for loading policy documents from YAML."""

from pathlib import Path

import pytest
import yaml

from hostops_core.config import Settings
from hostops_core.exceptions import PolicyLoadError
from hostops_core.policy import (
    default_policy_table,
    dump_policy_table,
    load_configured_policy,
    load_policy_table,
    policy_from_data,
)

EXAMPLE_POLICY = Path(__file__).resolve().parent.parent / "policies" / "example.yaml"

VALID_DOCUMENT = """
version: 1
commands:
  useradd:
    description: Create a new Linux user
    requires_elevated_privilege: true
    log_arguments: true
    allowed_argument_patterns:
      - '^-m$'
      - '^[a-z][a-z0-9_-]{2,31}$'
  chpasswd:
    requires_elevated_privilege: true
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "policy.yaml"
    path.write_text(text)
    return path


class TestLoadPolicyTable:
    """Tests for load_policy_table."""

    def test_loads_valid_document(self, tmp_path):
        """Entries become definitions with compiled patterns."""
        table = load_policy_table(_write(tmp_path, VALID_DOCUMENT))

        assert table.names() == ["chpasswd", "useradd"]
        useradd = table.definition_for("useradd")
        assert useradd.requires_elevated_privilege is True
        assert useradd.log_arguments is True
        assert table.argument_is_valid("useradd", "bob") is True
        assert table.argument_is_valid("useradd", "-r") is False

    def test_defaults_for_omitted_fields(self, tmp_path):
        """Omitted fields fall back to fail-closed defaults."""
        chpasswd = load_policy_table(_write(tmp_path, VALID_DOCUMENT)).definition_for("chpasswd")
        assert chpasswd.allowed_argument_patterns == ()
        assert chpasswd.log_arguments is False

    def test_missing_file(self, tmp_path):
        """A missing file is a PolicyLoadError, not FileNotFoundError."""
        with pytest.raises(PolicyLoadError, match="not found"):
            load_policy_table(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        """YAML syntax errors are reported as PolicyLoadError."""
        with pytest.raises(PolicyLoadError, match="not valid YAML"):
            load_policy_table(_write(tmp_path, "version: 1\ncommands: [unclosed\n"))

    def test_unsupported_version(self, tmp_path):
        """Only known document versions load."""
        with pytest.raises(PolicyLoadError, match="Unsupported policy version 2"):
            load_policy_table(_write(tmp_path, "version: 2\ncommands: {}\n"))

    def test_invalid_regex(self, tmp_path):
        """A bad pattern names the offending command."""
        text = "version: 1\ncommands:\n  rm:\n    allowed_argument_patterns: ['^(oops$']\n"
        with pytest.raises(PolicyLoadError, match="'rm'"):
            load_policy_table(_write(tmp_path, text))

    def test_unknown_keys_rejected(self, tmp_path):
        """Typos in field names are errors, not silently ignored."""
        text = "version: 1\ncommands:\n  rm:\n    allowed_arguments: ['^-r$']\n"
        with pytest.raises(PolicyLoadError, match="Invalid policy document"):
            load_policy_table(_write(tmp_path, text))

    def test_non_mapping_document(self):
        """The document root must be a mapping."""
        with pytest.raises(PolicyLoadError, match="mapping"):
            policy_from_data(["useradd"])

    def test_example_policy_loads(self):
        """The shipped example policy is valid."""
        table = load_policy_table(EXAMPLE_POLICY)
        assert table.is_allowed("useradd")
        assert table.argument_is_valid("useradd", "/home/bob")


class TestDumpAndConfigure:
    """Tests for dump_policy_table and load_configured_policy."""

    def test_dump_reloads_to_equivalent_table(self):
        """Dumping the built-in table yields a loadable document."""
        original = default_policy_table()
        document = yaml.safe_load(yaml.safe_dump(dump_policy_table(original)))
        reloaded = policy_from_data(document)

        assert reloaded.names() == original.names()
        assert reloaded.definition_for("systemctl") == original.definition_for("systemctl")

    def test_configured_default(self):
        """No policy file means the built-in table."""
        table = load_configured_policy(Settings(policy_file=None))
        assert table.names() == default_policy_table().names()

    def test_configured_file(self, tmp_path):
        """A configured policy file replaces the built-in table."""
        path = _write(tmp_path, VALID_DOCUMENT)
        table = load_configured_policy(Settings(policy_file=path))
        assert table.names() == ["chpasswd", "useradd"]
