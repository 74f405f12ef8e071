"""Environment-based configuration for hostops-core."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Executor and audit configuration.

    All settings can be overridden via environment variables with
    HOSTOPS_ prefix. For example:
        HOSTOPS_DEFAULT_TIMEOUT_MS=60000
        HOSTOPS_POLICY_FILE=/etc/hostops/policy.yaml
    """

    # Process time budget
    default_timeout_ms: int = 30000
    max_timeout_ms: int = 300000  # 5 minutes
    kill_grace_ms: int = 5000  # SIGTERM -> SIGKILL escalation window

    # Output capture cap, per stream
    max_output_bytes: int = 1024 * 1024

    # Privilege elevation helper; must itself be whitelisted in the policy table
    elevation_helper: str = "sudo"

    # Base PATH for spawned processes (env is rebuilt per call)
    exec_path: str = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

    # Policy document; None means the built-in default table
    policy_file: Path | None = None

    # Audit database
    audit_db_path: Path = Path.home() / ".hostops" / "audit.db"

    model_config = {"env_prefix": "HOSTOPS_"}
