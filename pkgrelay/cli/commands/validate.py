"""``pkgrelay validate``: check a path template against parameter values."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from pkgrelay.core.path_template import placeholder_names, validate_path_template

console = Console()


def validate_cmd(
    template: str = typer.Argument(..., help="Path template, e.g. /registries/{bucket}/packages"),
    values: list[str] = typer.Argument(None, help="Path parameter values, in order."),
) -> None:
    """Validate that TEMPLATE has exactly one placeholder per value."""
    result = validate_path_template(template, values or [])
    names = ", ".join(placeholder_names(template)) or "none"
    if result.ok:
        console.print(f"[green]OK[/green] {escape(result.message)} (placeholders: {escape(names)})")
        return
    console.print(f"[red]MISMATCH[/red] {escape(result.message)} (placeholders: {escape(names)})")
    raise typer.Exit(code=1)
