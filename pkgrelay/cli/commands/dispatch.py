"""``pkgrelay dispatch``: route one event against the configured backend."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.markup import escape

from pkgrelay.cli.render import outcome_panel, run_panel
from pkgrelay.config import RelaySettings
from pkgrelay.models.events import DispatchOutcome, InboundEvent
from pkgrelay.service import RelayService

console = Console()


def dispatch_cmd(
    event_type: str = typer.Option(..., "--type", "-t", help="Event type, e.g. CreatePackage."),
    source: str = typer.Option(None, "--source", "-s", help="Event source (defaults to the configured source)."),
    detail: str = typer.Option("{}", "--detail", "-d", help="Event detail as a JSON object."),
) -> None:
    """Send a single event through the relay and show the outcome."""
    try:
        detail_data = json.loads(detail)
    except json.JSONDecodeError as exc:
        console.print(f"[red]--detail is not valid JSON:[/red] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc
    if not isinstance(detail_data, dict):
        console.print("[red]--detail must be a JSON object.[/red]")
        raise typer.Exit(code=2)

    settings = RelaySettings()
    event = InboundEvent(
        source=source or settings.event_source, type=event_type, detail=detail_data
    )

    with RelayService(settings) as service:
        result = service.handle(event)

    if isinstance(result, DispatchOutcome):
        console.print(outcome_panel(result))
        ok = result.ok
    else:
        console.print(run_panel(result))
        ok = result.succeeded
    if not ok:
        raise typer.Exit(code=1)
