"""Status, metrics and log panels for an execution view."""

from rich.console import Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from flowmon.cli_ui.formatting import (
    format_duration,
    format_time,
    short_id,
    status_color,
    status_markup,
)
from flowmon.core.execution import DisplayState, ExecutionView
from flowmon.core.logs import LogEntry, LogSource, filter_options
from flowmon.core.snapshot import ExecutionSnapshot

FOOTER_MESSAGES = {
    DisplayState.IDLE: "[dim]No workflow submitted[/]",
    DisplayState.WAITING: "[yellow]● Waiting for first status...[/]",
    DisplayState.LIVE: "[green]● Live monitoring active[/]",
    DisplayState.STOPPED: "[dim]Polling stopped[/]",
    DisplayState.CONNECTION_LOST: "[red bold]✗ Connection lost - showing last known state[/]",
}


def render_metrics(snapshot: ExecutionSnapshot) -> Table:
    """Two-column grid of run metrics."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="dim")
    grid.add_column()
    grid.add_column(style="dim")
    grid.add_column()

    status = snapshot.status.value
    grid.add_row(
        "Total Nodes",
        str(snapshot.total_node_count),
        "Status",
        f"[{status_color(status)}]{status.upper()}[/]",
    )
    grid.add_row(
        "Started At",
        format_time(snapshot.started_at),
        "Ended At",
        format_time(snapshot.ended_at),
    )
    grid.add_row("Duration", format_duration(snapshot.duration_ms), "", "")
    return grid


def render_progress(progress: int) -> Table:
    grid = Table.grid(padding=(0, 1), expand=True)
    grid.add_column(ratio=1)
    grid.add_column(justify="right", width=5)
    grid.add_row(ProgressBar(total=100, completed=progress), f"{progress}%")
    return grid


def render_footer(view: ExecutionView) -> str:
    if view.display_state == DisplayState.FINISHED:
        if view.is_completed:
            return "[green]✓ Workflow completed successfully[/]"
        if view.is_failed:
            return "[red]✗ Workflow execution failed[/]"
        return status_markup(view.snapshot.status if view.snapshot else None)
    if view.display_state == DisplayState.STALE:
        error = escape(str(view.last_error)) if view.last_error else "unknown error"
        return f"[yellow]⚠ Status request failed, showing previous data: {error}[/]"
    return FOOTER_MESSAGES.get(view.display_state, "")


def render_log_line(entry: LogEntry) -> Text:
    if entry.source == LogSource.WORKFLOW:
        tag_style = "blue"
    else:
        tag_style = "bright_black"
    line = Text()
    line.append(f"[{entry.label}] ", style=tag_style)
    line.append(entry.text)
    return line


def render_logs(view: ExecutionView, max_lines: int | None = None) -> RenderableType:
    """Log lines for the view's filter (most recent ``max_lines`` when set)."""
    entries = list(view.logs)
    if not entries:
        return Text("No logs available for the selected filter", style="dim")
    if max_lines is not None and len(entries) > max_lines:
        entries = entries[-max_lines:]
    return Group(*(render_log_line(e) for e in entries))


def render_filter_menu(snapshot: ExecutionSnapshot | None, selected: str) -> Text:
    """Available filter values with counts, marking the selected one."""
    text = Text()
    for index, option in enumerate(filter_options(snapshot)):
        if index:
            text.append("  ")
        style = "bold reverse" if option.value == selected else "dim"
        text.append(option.label, style=style)
    return text


def render_status_panel(view: ExecutionView, max_log_lines: int | None = 20) -> Panel:
    """Full status panel: metrics, progress, error, logs and footer."""
    parts: list[RenderableType] = []
    snapshot = view.snapshot

    if view.run_id:
        parts.append(Text.from_markup(f"[dim]Workflow ID:[/] {escape(short_id(view.run_id))}"))

    if snapshot is None:
        parts.append(Text("No data yet", style="dim"))
    else:
        parts.append(render_metrics(snapshot))
        if view.progress > 0:
            parts.append(render_progress(view.progress))
        if snapshot.error_message:
            parts.append(
                Panel(
                    f"[red]{escape(snapshot.error_message)}[/]",
                    title="Error Details",
                    style="red",
                )
            )
        parts.append(render_filter_menu(snapshot, view.log_filter))
        parts.append(render_logs(view, max_log_lines))

    parts.append(Text.from_markup(render_footer(view)))

    border = status_color(snapshot.status.value) if snapshot else "dim"
    return Panel(Group(*parts), title="Workflow Status", border_style=border)
