"""``pkgrelay workflow``: run a getter workflow (call, then publish)."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from pkgrelay.cli.render import run_panel
from pkgrelay.config import RelaySettings
from pkgrelay.core.registry import RuleNotFoundError
from pkgrelay.service import RelayService

console = Console()


def workflow_cmd(
    getter: str = typer.Argument(..., help="Getter name: info, health, test_api_key."),
) -> None:
    """Call a getter endpoint and publish its result to the notification sinks."""
    with RelayService(RelaySettings()) as service:
        try:
            run = service.run_getter(getter)
        except RuleNotFoundError as exc:
            names = ", ".join(rule.name for rule in service.registry.getters())
            console.print(f"[red]Unknown getter {escape(repr(getter))}.[/red] Known: {names}")
            raise typer.Exit(code=2) from exc

    console.print(run_panel(run))
    if not run.succeeded:
        raise typer.Exit(code=1)
