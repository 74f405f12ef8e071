"""Built-in command policy for single-host provisioning.

Covers user management, Apache, systemd services, file operations under
tenant home directories, MySQL/MariaDB, Bind9, Postfix, certbot, the CSF
firewall, PM2, package managers and a handful of read-only inspection tools.

Commands that would hand an attacker-influenced string to an interpreter
(``bash -c``, ``sed`` scripts) are intentionally absent.
"""

from hostops_core.policy.table import CommandDefinition, PolicyTable

# Shared argument shapes
USERNAME = r"^[a-z][a-z0-9_-]{0,31}$"
# One path component; "." and ".." never match
SEGMENT = r"/(?!\.\.?(?:/|$))[a-zA-Z0-9._-]+"
HOME_PATH = rf"^/home/[a-z][a-z0-9_-]{{0,31}}({SEGMENT})*$"
HOME_SUBPATH = rf"^/home/[a-z][a-z0-9_-]{{0,31}}({SEGMENT})+$"
DOMAIN = r"^[a-z0-9][a-z0-9.-]{0,253}$"
SITE_CONF = r"^[a-z0-9][a-z0-9.-]{0,253}\.conf$"
SHELLS = (r"^/bin/(bash|sh|false|nologin)$", r"^/usr/sbin/nologin$")
OCTAL_MODE = r"^[0-7]{3,4}$"
APACHE_SITE_FILE = r"^/etc/(apache2|httpd)/sites-(available|enabled)/[a-z0-9][a-z0-9.-]{0,253}\.conf$"
PHP_POOL_FILE = r"^/etc/php/[0-9.]+/fpm/pool\.d/[a-z][a-z0-9_-]{0,31}\.conf$"
ZONE_FILES = (
    r"^/var/named/[a-z0-9][a-z0-9.-]{0,253}\.zone$",
    r"^/etc/bind/zones/[a-z0-9][a-z0-9.-]{0,253}\.zone$",
)


def _flags(*flags: str) -> tuple[str, ...]:
    return tuple(f"^{flag}$" for flag in flags)


DEFAULT_COMMANDS: tuple[CommandDefinition, ...] = (
    # Privilege elevation helper (sudo -n [-u user] -- command ...)
    CommandDefinition(
        name="sudo",
        description="Privilege elevation helper",
        allowed_argument_patterns=(*_flags("-n", "-u", "--"), USERNAME),
        log_arguments=True,
    ),
    # User management
    CommandDefinition(
        name="useradd",
        description="Create a new Linux user",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags("-m", "-d", "-s", "-g", "-G", "--home-dir", "--shell"),
            r"^/home/[a-z][a-z0-9_-]{0,31}$",
            *SHELLS,
            USERNAME,
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="userdel",
        description="Delete a Linux user",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("-r", "-f"), USERNAME),
        log_arguments=True,
    ),
    CommandDefinition(
        name="usermod",
        description="Modify a Linux user",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("-a", "-G", "-s", "-L", "-U"), USERNAME, *SHELLS),
        log_arguments=True,
    ),
    # Password is fed on stdin; no arguments accepted
    CommandDefinition(
        name="chpasswd",
        description="Update user password",
        requires_elevated_privilege=True,
    ),
    # Apache
    CommandDefinition(
        name="a2ensite",
        description="Enable Apache site",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(SITE_CONF,),
        log_arguments=True,
    ),
    CommandDefinition(
        name="a2dissite",
        description="Disable Apache site",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(SITE_CONF,),
        log_arguments=True,
    ),
    CommandDefinition(
        name="a2enmod",
        description="Enable Apache module",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(r"^[a-z][a-z0-9_-]{0,63}$",),
        log_arguments=True,
    ),
    CommandDefinition(
        name="a2dismod",
        description="Disable Apache module",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(r"^[a-z][a-z0-9_-]{0,63}$",),
        log_arguments=True,
    ),
    CommandDefinition(
        name="apachectl",
        description="Apache control",
        requires_elevated_privilege=True,
        allowed_argument_patterns=_flags("configtest", "graceful", "restart", "start", "stop"),
        log_arguments=True,
    ),
    # Services
    CommandDefinition(
        name="systemctl",
        description="Control system services",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags(
                "start", "stop", "restart", "reload", "enable", "disable",
                "status", "is-active", "is-enabled",
            ),
            *_flags(
                "apache2", "httpd", "nginx", "mariadb", "mysql", "redis",
                "redis-server", "postfix", "dovecot", "named", "bind9", "csf", "lfd",
            ),
            r"^php[0-9.]+-fpm$",
        ),
        log_arguments=True,
    ),
    # File operations, confined to tenant homes and service config paths
    CommandDefinition(
        name="chown",
        description="Change file ownership",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            "^-R$",
            r"^[a-z][a-z0-9_-]{0,31}:[a-z][a-z0-9_-]{0,31}$",
            USERNAME,
            HOME_PATH,
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="chmod",
        description="Change file permissions",
        requires_elevated_privilege=True,
        allowed_argument_patterns=("^-R$", OCTAL_MODE, HOME_PATH),
        log_arguments=True,
    ),
    CommandDefinition(
        name="mkdir",
        description="Create directory",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags("-p", "-m"),
            OCTAL_MODE,
            HOME_PATH,
            r"^/var/log/[a-z][a-z0-9_-]{0,31}$",
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="rm",
        description="Remove file or directory",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags("-r", "-f", "-rf"),
            HOME_SUBPATH,
            APACHE_SITE_FILE,
            PHP_POOL_FILE,
            *ZONE_FILES,
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="cp",
        description="Copy file",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("-r", "-p", "-a"), HOME_PATH),
        log_arguments=True,
    ),
    CommandDefinition(
        name="mv",
        description="Move file",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(HOME_PATH,),
        log_arguments=True,
    ),
    CommandDefinition(
        name="ln",
        description="Create links",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("-s", "-sf", "-f"), APACHE_SITE_FILE, HOME_PATH),
        log_arguments=True,
    ),
    CommandDefinition(
        name="tee",
        description="Write stdin to a file",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            "^-a$",
            HOME_SUBPATH,
            r"^/etc/(apache2|httpd)/sites-available/[a-z0-9][a-z0-9.-]{0,253}\.conf$",
            PHP_POOL_FILE,
            r"^/etc/php-fpm\.d/[a-z][a-z0-9_-]{0,31}\.conf$",
            *ZONE_FILES,
        ),
        log_arguments=True,
    ),
    # Databases (arguments may carry -p<password>; never logged)
    CommandDefinition(
        name="mysql",
        description="MySQL/MariaDB client",
        allowed_argument_patterns=(
            r"^-u[a-z][a-z0-9_-]{0,31}$",
            *_flags("-u", "-e", "-N", "-B", "--execute"),
            r"^-p.*$",
            r"^[a-z][a-z0-9_-]{0,63}$",
        ),
    ),
    CommandDefinition(
        name="mysqldump",
        description="MySQL/MariaDB dump",
        allowed_argument_patterns=(
            r"^-u[a-z][a-z0-9_-]{0,31}$",
            *_flags("-u", "--single-transaction", "--quick", "--lock-tables"),
            r"^-p.*$",
            r"^[a-z][a-z0-9_-]{0,63}$",
        ),
    ),
    # DNS (Bind9)
    CommandDefinition(
        name="rndc",
        description="Bind9 control",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("reload", "reconfig", "flush", "status"), DOMAIN),
        log_arguments=True,
    ),
    CommandDefinition(
        name="named-checkzone",
        description="Check DNS zone file",
        allowed_argument_patterns=(DOMAIN, *ZONE_FILES),
        log_arguments=True,
    ),
    CommandDefinition(
        name="named-checkconf",
        description="Check Bind9 configuration",
        allowed_argument_patterns=(r"^/etc/named\.conf$", r"^/etc/bind/named\.conf$"),
        log_arguments=True,
    ),
    # Mail
    CommandDefinition(
        name="postmap",
        description="Postfix map utility",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(r"^/etc/postfix/[a-z][a-z0-9_-]{0,63}$",),
        log_arguments=True,
    ),
    CommandDefinition(
        name="postfix",
        description="Postfix control",
        requires_elevated_privilege=True,
        allowed_argument_patterns=_flags("reload", "start", "stop", "check"),
        log_arguments=True,
    ),
    # Certificates
    CommandDefinition(
        name="certbot",
        description="Let's Encrypt certificate management",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags(
                "certonly", "renew", "revoke", "delete", "--webroot", "--standalone",
                "--apache", "--nginx", "-w", "--webroot-path", "-d", "--domain",
                "--agree-tos", "--non-interactive", "-n", "--email",
            ),
            r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
            DOMAIN,
            r"^/home/[a-z][a-z0-9_-]{0,31}/public_html$",
        ),
        log_arguments=True,
    ),
    # Firewall
    CommandDefinition(
        name="csf",
        description="ConfigServer Firewall",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(
            *_flags(
                "-r", "-q", "-l", "-s", "-f", "-t", "-td", "-ta", "-dr", "-tr",
                "-a", "-d", "-ar", "--version",
            ),
            r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$",
            r"^\d+$",
            r"^[a-zA-Z0-9][a-zA-Z0-9 _-]{0,99}$",
        ),
        log_arguments=True,
    ),
    # Process managers and toolchains, run as the tenant user
    CommandDefinition(
        name="pm2",
        description="PM2 process manager",
        allowed_argument_patterns=(
            *_flags(
                "start", "stop", "restart", "reload", "delete", "list", "jlist",
                "show", "logs", "flush", "save", "startup", "--name", "--watch",
                "--max-memory-restart", "--env", "--interpreter", "--cwd",
                "--lines", "--nostream", "--json", "node",
            ),
            r"^[a-z][a-z0-9_-]{0,63}$",
            r"^\d+$",
            r"^[0-9]+[KMG]?$",
            HOME_PATH,
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="git",
        description="Git version control",
        allowed_argument_patterns=(
            *_flags(
                "clone", "pull", "fetch", "checkout", "reset", "status", "log",
                "-b", "-1", "--single-branch", "--hard", "--soft", "origin",
            ),
            r"^HEAD~?\d*$",
            r"^[a-zA-Z0-9_][a-zA-Z0-9._/-]*$",
            r"^https?://[a-zA-Z0-9][a-zA-Z0-9.-]+/[a-zA-Z0-9._/-]+\.git$",
            r"^git@[a-zA-Z0-9][a-zA-Z0-9.-]+:[a-zA-Z0-9._/-]+\.git$",
            HOME_PATH,
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="npm",
        description="NPM package manager",
        allowed_argument_patterns=(
            *_flags(
                "install", "ci", "run", "build", "start", "test", "--production",
                "--legacy-peer-deps", "--no-audit", "--prefer-offline",
            ),
            r"^[a-z][a-z0-9_-]*$",
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="yarn",
        description="Yarn package manager",
        allowed_argument_patterns=(
            *_flags(
                "install", "build", "start", "test", "--production",
                "--frozen-lockfile", "--prefer-offline",
            ),
            r"^[a-z][a-z0-9_-]*$",
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="pnpm",
        description="PNPM package manager",
        allowed_argument_patterns=(
            *_flags("install", "build", "start", "test", "--prod", "--frozen-lockfile"),
            r"^[a-z][a-z0-9_-]*$",
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="composer",
        description="PHP Composer",
        allowed_argument_patterns=_flags(
            "install", "update", "dump-autoload", "--no-dev",
            "--optimize-autoloader", "--no-interaction", "--prefer-dist",
        ),
        log_arguments=True,
    ),
    CommandDefinition(
        name="node",
        description="Node.js runtime",
        allowed_argument_patterns=(
            *_flags("--version", "-v"),
            rf"^/home/[a-z][a-z0-9_-]{{0,31}}({SEGMENT})*\.js$",
        ),
        log_arguments=True,
    ),
    # Local HTTP only (e.g. OPcache reset endpoints)
    CommandDefinition(
        name="curl",
        description="HTTP client, localhost only",
        allowed_argument_patterns=(
            *_flags("-s", "-X", "GET", "POST"),
            r"^http://127\.0\.0\.1(:\d+)?/[a-zA-Z0-9._/-]*$",
            r"^http://localhost(:\d+)?/[a-zA-Z0-9._/-]*$",
        ),
        log_arguments=True,
    ),
    # Quotas
    CommandDefinition(
        name="setquota",
        description="Set disk quota",
        requires_elevated_privilege=True,
        allowed_argument_patterns=("^-u$", USERNAME, r"^\d+$", "^/home$", "^/$"),
        log_arguments=True,
    ),
    CommandDefinition(
        name="repquota",
        description="Report disk quota",
        requires_elevated_privilege=True,
        allowed_argument_patterns=(*_flags("-a", "-u", "-s"), "^/home$", "^/$"),
        log_arguments=True,
    ),
    # Read-only inspection
    CommandDefinition(
        name="ss",
        description="Socket statistics",
        allowed_argument_patterns=(*_flags("-t", "-l", "-n", "-p", "-tlnp"), r"^sport = :\d+$"),
        log_arguments=True,
    ),
    CommandDefinition(
        name="id",
        description="Check if user exists",
        allowed_argument_patterns=(USERNAME,),
        log_arguments=True,
    ),
    CommandDefinition(
        name="getent",
        description="Get entries from NSS databases",
        allowed_argument_patterns=(*_flags("passwd", "group", "shadow"), USERNAME),
        log_arguments=True,
    ),
    CommandDefinition(
        name="du",
        description="Disk usage",
        allowed_argument_patterns=(*_flags("-s", "-m", "-sm", "-h"), HOME_PATH),
        log_arguments=True,
    ),
    CommandDefinition(
        name="find",
        description="Find files",
        allowed_argument_patterns=(
            HOME_PATH,
            *_flags("-type", "-name"),
            r"^[fdl]$",
            r"^[a-zA-Z0-9*?._][a-zA-Z0-9*?._-]*$",
        ),
        log_arguments=True,
    ),
)


def default_policy_table() -> PolicyTable:
    """Return a PolicyTable built from DEFAULT_COMMANDS."""
    return PolicyTable(DEFAULT_COMMANDS)
