"""
Argument redaction for audit records.

Raw arguments reach the audit trail only for commands whose definition sets
``log_arguments``, and even then only after passing through this module.

Per project patterns:
- Industry-standard detect-secrets library (not hand-rolled regex alone)
- Key/pattern heuristics for the shapes detect-secrets does not flag
"""

import re
from typing import Iterable

from detect_secrets.settings import default_settings, get_plugins
from detect_secrets.util.code_snippet import get_code_snippet

REDACTED = "[REDACTED]"


class ArgumentRedactor:
    """
    Redacts secrets from command arguments before audit logging.

    Uses three detection strategies:
    1. Flag-based: MySQL-style attached passwords (-psecret -> -p****)
    2. Pattern-based: Env var assignments (API_KEY=xxx), Bearer tokens,
       ``--password=xxx`` style options
    3. detect-secrets plugins: high-entropy strings, cloud keys, private keys

    Example:
        redactor = ArgumentRedactor()
        redactor.redact(["-uapp", "-phunter2", "app_db"], command="mysql")
        # ['-uapp', '-p****', 'app_db']
    """

    # Clients that take the password glued to -p
    PASSWORD_FLAG_COMMANDS = frozenset({"mysql", "mysqldump", "mysqladmin"})
    PASSWORD_FLAG = re.compile(r"^-p.+$")

    ENV_VAR_PATTERNS = [
        re.compile(r"(API_KEY|APIKEY|TOKEN|PASSWORD|PASSWD|SECRET|KEY)=([^\s]+)", re.IGNORECASE),
    ]

    OPTION_PATTERN = re.compile(
        r"^(--?(?:password|passwd|pass|secret|token|api-key|apikey))=(.+)$",
        re.IGNORECASE,
    )

    BEARER_PATTERN = re.compile(r"Bearer\s+([^\s]+)", re.IGNORECASE)

    def redact(self, args: Iterable[str], command: str | None = None) -> list[str]:
        """
        Redact every argument.

        Args:
            args: Arguments as passed to the executor
            command: Command name; enables -p<password> masking for
                the MySQL client family

        Returns:
            New list, same length and order, with secrets masked
        """
        password_flag = command in self.PASSWORD_FLAG_COMMANDS
        return [self.redact_argument(arg, password_flag) for arg in args]

    def redact_argument(self, value: str, password_flag: bool = False) -> str:
        """Redact a single argument."""
        if not value:
            return value

        if password_flag and self.PASSWORD_FLAG.match(value):
            return "-p****"

        option = self.OPTION_PATTERN.match(value)
        if option:
            return f"{option.group(1)}={REDACTED}"

        result = value
        for pattern in self.ENV_VAR_PATTERNS:
            result = pattern.sub(rf"\1={REDACTED}", result)
        result = self.BEARER_PATTERN.sub(f"Bearer {REDACTED}", result)

        return self._redact_detected(result)

    def _redact_detected(self, value: str) -> str:
        """
        Mask anything the detect-secrets plugins flag in value.

        An argument is one token, so it is scanned as a quoted string: the
        entropy plugins then weigh the whole argument against their
        configured limits instead of flagging every bare word.
        """
        line = f'"{value}"'
        context = get_code_snippet(lines=[line], line_number=1)
        with default_settings():
            secrets = {
                secret.secret_value
                for plugin in get_plugins()
                for secret in plugin.analyze_line(
                    filename="argv", line=line, line_number=1, context=context
                )
                if secret.secret_value and secret.secret_value not in REDACTED
            }
        for secret in sorted(secrets, key=len, reverse=True):
            value = value.replace(secret, REDACTED)
        return value
