"""Input validators for values that end up in command argument lists.

Every validator is total and side-effect free: it never touches the
filesystem, the network or the user database. Each returns a
ValidationResult; on success ``sanitized`` holds the normalized value that
callers should use from then on.

These checks run before a command is built. They complement, and never
replace, the argv-only execution and per-argument policy patterns enforced
by the executor.
"""

import posixpath
import re
from dataclasses import dataclass
from typing import Any

from hostops_core.exceptions import ValidationError


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a single field.

    Attributes:
        is_valid: Whether the value passed validation
        error: Error message if validation failed, None if valid
        sanitized: Normalized value if valid, None otherwise
    """

    is_valid: bool
    error: str | None = None
    sanitized: str | None = None


def _ok(sanitized: str) -> ValidationResult:
    return ValidationResult(is_valid=True, sanitized=sanitized)


def _fail(error: str) -> ValidationResult:
    return ValidationResult(is_valid=False, error=error)


def require(result: ValidationResult, field: str) -> str:
    """
    Unwrap a ValidationResult, raising on failure.

    Args:
        result: Result returned by one of the validate_* functions
        field: Field name used in the error message

    Returns:
        The sanitized value

    Raises:
        ValidationError: If the result is not valid
    """
    if not result.is_valid:
        raise ValidationError(field, result.error or "invalid value")
    return result.sanitized  # type: ignore[return-value]


# ===== System usernames =====

RESERVED_USERNAMES = frozenset({
    "root", "admin", "administrator", "daemon", "bin", "sys", "sync", "games",
    "man", "lp", "mail", "news", "uucp", "proxy", "www-data", "backup", "list",
    "irc", "gnats", "nobody", "systemd-network", "systemd-resolve", "syslog",
    "messagebus", "_apt", "mysql", "redis", "postfix", "dovecot", "nginx",
    "apache", "httpd", "named", "bind", "postgres", "ftp", "ssh", "sshd", "ntp",
    "hostops",
})

_USERNAME = re.compile(r"[a-z][a-z0-9_-]*")


def validate_system_username(value: Any) -> ValidationResult:
    """Validate a Linux account name: 1-32 chars, ``[a-z][a-z0-9_-]*``, not reserved."""
    if not isinstance(value, str) or not value:
        return _fail("Username is required")
    if len(value) > 32:
        return _fail("Username must be 1-32 characters")
    if not ("a" <= value[0] <= "z"):
        return _fail("Username must start with a lowercase letter")
    if not _USERNAME.fullmatch(value):
        return _fail(
            "Username can only contain lowercase letters, numbers, underscore, and dash"
        )
    if value in RESERVED_USERNAMES:
        return _fail("This username is reserved")
    return _ok(value)


# ===== Domain names =====

_LABEL = re.compile(r"[a-z0-9]([a-z0-9-]*[a-z0-9])?")


def validate_domain_label_sequence(value: Any, min_labels: int = 2) -> ValidationResult:
    """
    Validate a dot-separated domain name.

    The value is lower-cased and trimmed. Each label is 1-63 characters of
    letters, digits and internal hyphens; the whole name is at most 253
    characters and the top-level label may not be all digits.

    Args:
        value: Domain name to validate
        min_labels: Minimum number of labels (2 rejects bare hostnames)
    """
    if not isinstance(value, str) or not value.strip():
        return _fail("Domain name is required")

    sanitized = value.strip().lower()
    if len(sanitized) > 253:
        return _fail("Domain name too long (max 253 characters)")

    labels = sanitized.split(".")
    if len(labels) < min_labels:
        return _fail(f"Domain must have at least {min_labels} labels (e.g., example.com)")

    for label in labels:
        if not 1 <= len(label) <= 63:
            return _fail("Each domain label must be 1-63 characters")
        if not _LABEL.fullmatch(label):
            return _fail("Domain labels can only contain letters, numbers, and internal hyphens")

    if labels[-1].isdigit():
        return _fail("Top-level domain cannot be all numbers")

    return _ok(sanitized)


# ===== Filesystem paths =====

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _normalize(path: str) -> str:
    normalized = posixpath.normpath(path)
    # POSIX keeps a leading '//' as implementation-defined; collapse it
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def validate_path(value: Any, base_dir: str) -> ValidationResult:
    """
    Validate that a path stays inside base_dir after normalization.

    Relative paths are resolved against base_dir. ``..`` segments are
    collapsed lexically before the containment check, so ``a/../../etc``
    is rejected as an escape. The filesystem is never consulted.

    Args:
        value: Absolute or base-relative path
        base_dir: Absolute directory the path must stay within

    Returns:
        ValidationResult whose sanitized value is the normalized absolute path
    """
    if not isinstance(value, str) or not value:
        return _fail("Path is required")
    if not isinstance(base_dir, str) or not base_dir.startswith("/"):
        return _fail("Base directory must be an absolute path")
    if _CONTROL_CHARS.search(value):
        return _fail("Path contains invalid characters")

    base = _normalize(base_dir)
    candidate = _normalize(posixpath.join(base, value))

    prefix = base if base.endswith("/") else base + "/"
    if candidate != base and not candidate.startswith(prefix):
        return _fail("Path is outside allowed directory")

    return _ok(candidate)


# ===== Ports =====

RESERVED_PORTS = frozenset({
    22,  # SSH
    25,  # SMTP
    53,  # DNS
    80,  # HTTP
    110,  # POP3
    143,  # IMAP
    443,  # HTTPS
    465,  # SMTPS
    587,  # SMTP submission
    993,  # IMAPS
    995,  # POP3S
    3306,  # MySQL/MariaDB
    5432,  # PostgreSQL
    6379,  # Redis
    8130,  # Custom SSH
})


def validate_port(value: Any, check_reserved: bool = False) -> ValidationResult:
    """
    Validate a TCP port.

    Args:
        value: Port as int or decimal string
        check_reserved: Also reject well-known service ports and ports
            below 1024
    """
    if isinstance(value, bool):
        return _fail("Port must be an integer")
    if isinstance(value, str) and re.fullmatch(r"[0-9]{1,5}", value.strip()):
        value = int(value.strip())
    if not isinstance(value, int):
        return _fail("Port must be an integer")

    if not 1 <= value <= 65535:
        return _fail("Port must be between 1 and 65535")

    if check_reserved:
        if value in RESERVED_PORTS:
            return _fail("This port is reserved for system services")
        if value < 1024:
            return _fail("Ports below 1024 are reserved for system services")

    return _ok(str(value))


# ===== Email addresses =====

_EMAIL = re.compile(
    r"[a-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*"
)


def validate_email_address(value: Any) -> ValidationResult:
    """Validate an email address (simplified RFC 5322), lower-cased and trimmed."""
    if not isinstance(value, str) or not value.strip():
        return _fail("Email is required")

    sanitized = value.strip().lower()
    if not _EMAIL.fullmatch(sanitized):
        return _fail("Invalid email format")
    if len(sanitized) > 254:
        return _fail("Email too long")
    if len(sanitized.split("@", 1)[0]) > 64:
        return _fail("Email local part too long")

    return _ok(sanitized)


# ===== Database identifiers =====

RESERVED_DATABASE_NAMES = frozenset({
    "mysql", "information_schema", "performance_schema", "sys", "test",
})

_DB_IDENTIFIER = re.compile(r"[a-z][a-z0-9_]*")


def validate_database_identifier(value: Any) -> ValidationResult:
    """Validate a database or database-user name: 1-64 chars, ``[a-z][a-z0-9_]*``."""
    if not isinstance(value, str) or not value:
        return _fail("Database name is required")

    sanitized = value.lower()
    if len(sanitized) > 64:
        return _fail("Database name must be 1-64 characters")
    if not ("a" <= sanitized[0] <= "z"):
        return _fail("Database name must start with a letter")
    if not _DB_IDENTIFIER.fullmatch(sanitized):
        return _fail("Database name can only contain letters, numbers, and underscore")
    if sanitized in RESERVED_DATABASE_NAMES:
        return _fail("This database name is reserved")

    return _ok(sanitized)


# ===== IPv4 addresses =====

_OCTET = re.compile(r"0|[1-9][0-9]{0,2}")


def validate_ipv4_address(value: Any) -> ValidationResult:
    """Validate a dotted-quad IPv4 address; leading zeros are rejected."""
    if not isinstance(value, str) or not value.strip():
        return _fail("IP address is required")

    sanitized = value.strip()
    parts = sanitized.split(".")
    if len(parts) != 4:
        return _fail("Invalid IPv4 format")

    for part in parts:
        if not _OCTET.fullmatch(part) or int(part) > 255:
            return _fail("Invalid IPv4 address")

    return _ok(sanitized)


# ===== Cron expressions =====

# (name, minimum, maximum) per field: minute hour day-of-month month day-of-week
CRON_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day of month", 1, 31),
    ("month", 1, 12),
    ("day of week", 0, 6),
)

_CRON_ITEM = re.compile(r"(\*|[0-9]{1,2}(?:-[0-9]{1,2})?)(?:/([0-9]{1,2}))?")


def _cron_field_is_valid(field: str, minimum: int, maximum: int) -> bool:
    for item in field.split(","):
        match = _CRON_ITEM.fullmatch(item)
        if match is None:
            return False
        base, step = match.groups()
        if step is not None and int(step) == 0:
            return False
        if base == "*":
            continue
        bounds = [int(n) for n in base.split("-")]
        if any(n < minimum or n > maximum for n in bounds):
            return False
        if len(bounds) == 2 and bounds[0] > bounds[1]:
            return False
    return True


def validate_cron_expression(value: Any) -> ValidationResult:
    """
    Validate a standard five-field cron expression.

    Each field accepts ``*``, numbers, ranges (``a-b``), lists (``a,b``) and
    steps (``*/n`` or ``a-b/n``), with per-field range checks. Whitespace
    between fields is normalized to single spaces.
    """
    if not isinstance(value, str) or not value.strip():
        return _fail("Cron expression is required")

    parts = value.split()
    if len(parts) != len(CRON_FIELDS):
        return _fail("Cron expression must have 5 fields")

    for part, (name, minimum, maximum) in zip(parts, CRON_FIELDS):
        if not _cron_field_is_valid(part, minimum, maximum):
            return _fail(f"Invalid cron {name} field: {part!r}")

    return _ok(" ".join(parts))


# ===== Display sanitization =====

_SHELL_METACHARACTERS = re.compile(r"[`$\\!\"'<>|;&(){}\[\]]")


def sanitize_for_shell_display(value: str) -> str:
    """
    Strip shell metacharacters and collapse whitespace for display or logs.

    Defense in depth only: commands are always executed as argument
    vectors, never through a shell.
    """
    stripped = _SHELL_METACHARACTERS.sub("", value)
    return re.sub(r"\s+", " ", stripped).strip()
