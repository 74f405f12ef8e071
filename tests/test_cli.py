"""Tests for the hostops CLI."""

import asyncio
import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from hostops_core.audit import AuditRecord, Severity, SqliteAuditSink
from hostops_core.cli import audit as audit_cli
from hostops_core.cli.main import app

EXAMPLE_POLICY = Path(__file__).resolve().parent.parent / "policies" / "example.yaml"

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's HOSTOPS_* settings out of CLI runs."""
    monkeypatch.delenv("HOSTOPS_POLICY_FILE", raising=False)
    monkeypatch.delenv("HOSTOPS_AUDIT_DB_PATH", raising=False)


# ===== policy Tests =====


class TestPolicyCommands:
    """Tests for `hostops policy`."""

    def test_list_builtin(self):
        result = runner.invoke(app, ["policy", "list"])
        assert result.exit_code == 0
        assert "useradd" in result.output
        assert "systemctl" in result.output

    def test_list_from_file(self):
        result = runner.invoke(app, ["policy", "list", "--policy", str(EXAMPLE_POLICY)])
        assert result.exit_code == 0
        assert "chpasswd" in result.output
        assert "certbot" not in result.output

    def test_list_bad_file(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("version: 99\ncommands: {}\n")

        result = runner.invoke(app, ["policy", "list", "--policy", str(bad)])

        assert result.exit_code == 1

    def test_show(self):
        result = runner.invoke(app, ["policy", "show", "userdel", "--policy", str(EXAMPLE_POLICY)])
        assert result.exit_code == 0
        assert "^-r$" in result.output

    def test_show_unknown(self):
        result = runner.invoke(app, ["policy", "show", "bash"])
        assert result.exit_code == 1
        assert "not in policy" in result.output

    def test_show_without_patterns(self):
        result = runner.invoke(app, ["policy", "show", "chpasswd"])
        assert result.exit_code == 0
        assert "empty argument list" in result.output

    def test_check_allowed(self):
        result = runner.invoke(app, ["policy", "check", "systemctl", "--", "reload", "apache2"])
        assert result.exit_code == 0
        assert "Allowed" in result.output
        assert "systemctl reload apache2" in result.output

    def test_check_denied(self):
        result = runner.invoke(app, ["policy", "check", "useradd", "--", "-m", "bob;reboot"])
        assert result.exit_code == 1
        assert "Denied" in result.output

    def test_check_working_user(self):
        result = runner.invoke(app, ["policy", "check", "--user", "bob", "id", "--", "bob"])
        assert result.exit_code == 0
        assert "sudo -n -u bob -- id bob" in result.output

    def test_check_helper_denied(self):
        """sudo is only ever a prefix, never a command of its own."""
        result = runner.invoke(app, ["policy", "check", "sudo", "--", "-n", "--", "id", "bob"])
        assert result.exit_code == 1
        assert "Denied" in result.output
        assert "helper" in result.output

    def test_dump_reloads(self):
        result = runner.invoke(app, ["policy", "dump", "--policy", str(EXAMPLE_POLICY)])

        assert result.exit_code == 0
        document = yaml.safe_load(result.output)
        assert document["version"] == 1
        assert document["commands"]["useradd"]["requires_elevated_privilege"] is True
        assert "^-m$" in document["commands"]["useradd"]["allowed_argument_patterns"]


# ===== validate Tests =====


class TestValidateCommand:
    """Tests for `hostops validate`."""

    def test_valid_username(self):
        result = runner.invoke(app, ["validate", "username", "bob"])
        assert result.exit_code == 0
        assert "Valid username" in result.output

    def test_reserved_username(self):
        result = runner.invoke(app, ["validate", "username", "root"])
        assert result.exit_code == 1
        assert "Invalid username" in result.output

    def test_domain_normalized(self):
        result = runner.invoke(app, ["validate", "domain", "Example.COM"])
        assert result.exit_code == 0
        assert "example.com" in result.output

    def test_path_escape(self):
        result = runner.invoke(app, ["validate", "path", "../../etc/passwd", "--base", "/home/bob"])
        assert result.exit_code == 1

    def test_reserved_port(self):
        result = runner.invoke(app, ["validate", "port", "22", "--check-reserved"])
        assert result.exit_code == 1

    def test_unknown_kind(self):
        result = runner.invoke(app, ["validate", "color", "red"])
        assert result.exit_code != 0


# ===== audit Tests =====


class TestAuditCommand:
    """Tests for `hostops audit list`."""

    @staticmethod
    def _seed(db_path: Path) -> None:
        sink = SqliteAuditSink(db_path)

        async def _write():
            await sink.record(AuditRecord(
                actor="tenant-a",
                operation_kind="execution",
                outcome="success",
                details={"command": "useradd"},
            ))
            await sink.record(AuditRecord(
                operation_kind="transaction",
                outcome="rollback_failed",
                severity=Severity.CRITICAL,
                details={"failed_step": "write-vhost"},
            ))

        asyncio.run(_write())

    def test_missing_database(self, tmp_path):
        result = runner.invoke(app, ["audit", "list", "--db", str(tmp_path / "none.db")])
        assert result.exit_code == 0
        assert "No audit database" in result.output

    def test_list_table(self, tmp_path, monkeypatch):
        db = tmp_path / "audit.db"
        self._seed(db)
        monkeypatch.setattr(audit_cli.console, "width", 200)

        result = runner.invoke(app, ["audit", "list", "--db", str(db)])

        assert result.exit_code == 0
        assert "useradd" in result.output
        assert "write-vhost" in result.output

    def test_list_json_with_filter(self, tmp_path):
        db = tmp_path / "audit.db"
        self._seed(db)

        result = runner.invoke(
            app, ["audit", "list", "--db", str(db), "--severity", "critical", "--json"]
        )

        assert result.exit_code == 0
        records = json.loads(result.output)
        assert [r["outcome"] for r in records] == ["rollback_failed"]
        assert records[0]["details"]["failed_step"] == "write-vhost"
