"""Rich renderables for rules, dispatch outcomes and workflow runs.

Color scheme
------------
- green   : dispatched / completed
- red     : backend failure / failed
- yellow  : unroutable / invalid event
- magenta : missing path parameter
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pkgrelay.models.events import DispatchOutcome, DispatchStatus
from pkgrelay.models.rules import DispatchRule
from pkgrelay.models.workflow import WorkflowRun, WorkflowState

_STATUS_STYLES: dict[DispatchStatus, str] = {
    DispatchStatus.DISPATCHED: "bold green",
    DispatchStatus.BACKEND_FAILURE: "bold red",
    DispatchStatus.UNROUTABLE: "yellow",
    DispatchStatus.INVALID_EVENT: "yellow",
    DispatchStatus.MISSING_PATH_PARAMETER: "magenta",
}

_STATE_STYLES: dict[WorkflowState, str] = {
    WorkflowState.START: "dim",
    WorkflowState.CALL_BACKEND: "yellow",
    WorkflowState.PUBLISH_NOTIFICATION: "cyan",
    WorkflowState.COMPLETED: "bold green",
    WorkflowState.FAILED: "bold red",
}


def rules_table(rules: Iterable[DispatchRule]) -> Table:
    rules = list(rules)
    sources = sorted({rule.event_source for rule in rules})
    table = Table(
        title="Dispatch Rules",
        caption=f"source: {', '.join(sources)}" if sources else None,
        header_style="bold cyan",
    )
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Event Type", no_wrap=True)
    table.add_column("Method", style="green", no_wrap=True)
    table.add_column("Path")
    table.add_column("Bindings")
    table.add_column("Getter", justify="center")

    for rule in rules:
        bindings = [f"{{}} <- {value}" for value in rule.path_param_values]
        bindings += [f"{param} <- {path}" for param, path in rule.query_mapping.items()]
        table.add_row(
            rule.name,
            rule.event_type,
            rule.method.value,
            rule.path_template,
            "\n".join(bindings) or "[dim]-[/dim]",
            "[green]Yes[/green]" if rule.notify else "[dim]No[/dim]",
        )
    return table


def outcome_panel(outcome: DispatchOutcome) -> Panel:
    style = _STATUS_STYLES.get(outcome.status, "white")
    lines = [
        f"[bold]Event:[/bold]    {outcome.source}/{outcome.type}",
        f"[bold]Status:[/bold]   [{style}]{outcome.status.value}[/{style}]",
        f"[bold]Rule:[/bold]     {outcome.rule_name or '-'}",
    ]
    if outcome.request is not None:
        lines.append(
            f"[bold]Request:[/bold]  {outcome.request.method.value} {escape(outcome.request.path)}"
        )
        for key, value in outcome.request.query.items():
            lines.append(f"           {escape(key)}={escape(value)}")
    if outcome.response is not None:
        lines.append(
            f"[bold]Response:[/bold] {outcome.response.status_code} "
            f"{outcome.response.status_text}"
        )
    if outcome.error:
        lines.append(f"[bold]Error:[/bold]    [red]{escape(outcome.error)}[/red]")
    return Panel("\n".join(lines), title="[bold]Dispatch[/bold]", border_style=style)


def run_panel(run: WorkflowRun) -> Panel:
    style = _STATE_STYLES.get(run.state, "white")
    lines = [f"[bold]Workflow:[/bold] {run.workflow_id}", ""]
    for transition in run.transitions:
        to_style = _STATE_STYLES.get(transition.to_state, "white")
        reason = f"  [dim]{escape(transition.reason)}[/dim]" if transition.reason else ""
        lines.append(
            f"  {transition.from_state.value} -> "
            f"[{to_style}]{transition.to_state.value}[/{to_style}]{reason}"
        )
    if run.message is not None:
        lines += [
            "",
            f"[bold]Published:[/bold] {', '.join(run.published_to)}",
            f"[bold]Status:[/bold]    {run.message.status_code} {run.message.status_text}",
            f"[bold]Date:[/bold]      {run.message.date or '-'}",
            f"[bold]Body:[/bold]      {escape(run.message.response_body)}",
        ]
    if run.error:
        lines += ["", f"[bold]Error:[/bold] [red]{escape(run.error)}[/red]"]
    return Panel("\n".join(lines), title=f"[bold]{run.state.value}[/bold]", border_style=style)
