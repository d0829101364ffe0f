"""``pkgrelay rules``: list the registered dispatch rules."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from pkgrelay.cli.render import rules_table
from pkgrelay.config import RelaySettings
from pkgrelay.core.registry import RuleRegistry

console = Console()


def rules_cmd(
    rules_file: Path = typer.Option(
        None,
        "--rules",
        "-r",
        help="TOML rules file (defaults to PKGRELAY_RULES_PATH or the built-in table).",
    ),
    getters_only: bool = typer.Option(
        False, "--getters", help="Only show getter rules."
    ),
) -> None:
    """Show every rule the registry would hold at startup."""
    settings = RelaySettings()
    if rules_file is not None:
        settings = settings.model_copy(update={"rules_path": rules_file})

    registry = RuleRegistry.from_config(settings.registry_config())
    for exc in registry.errors:
        console.print(f"[red]Rule definition error:[/red] {escape(str(exc))}")

    listing = registry.getters() if getters_only else registry.list()
    if not listing:
        console.print("[dim]No rules registered.[/dim]")
    else:
        console.print(rules_table(listing))
    if registry.errors:
        raise typer.Exit(code=1)
