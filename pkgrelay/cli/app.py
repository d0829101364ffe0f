"""Main Typer application: imports and registers all CLI commands.

Entry point: ``pkgrelay`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer

from pkgrelay.cli.commands.dispatch import dispatch_cmd
from pkgrelay.cli.commands.rules import rules_cmd
from pkgrelay.cli.commands.validate import validate_cmd
from pkgrelay.cli.commands.workflow import workflow_cmd
from pkgrelay.config import RelaySettings

app = typer.Typer(
    name="pkgrelay",
    help="pkgrelay: event-driven dispatch to the Quilt package engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def configure(
    log_level: str = typer.Option(
        None, "--log-level", help="Log level (defaults to PKGRELAY_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or RelaySettings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="rules", help="List registered dispatch rules.")(rules_cmd)
app.command(name="validate", help="Validate a path template against parameter values.")(validate_cmd)
app.command(name="dispatch", help="Route one event to the backend.")(dispatch_cmd)
app.command(name="workflow", help="Run a getter workflow and publish its result.")(workflow_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
