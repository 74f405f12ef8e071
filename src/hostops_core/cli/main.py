"""hostops CLI - inspect command policy, validate fields and review the audit trail."""

import logging

import typer

from hostops_core.cli.audit import audit_app
from hostops_core.cli.policy import policy_app
from hostops_core.cli.validate import validate_command

app = typer.Typer(
    name="hostops",
    help="Policy-checked command execution for host provisioning",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(policy_app, name="policy")
app.add_typer(audit_app, name="audit")
app.command("validate")(validate_command)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Policy-checked command execution for host provisioning."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
