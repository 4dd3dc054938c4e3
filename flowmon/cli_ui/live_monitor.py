"""Live execution monitoring for workflows.

Provides real-time terminal display of workflow execution progress.
"""

import asyncio

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel

from flowmon.cli_ui.formatting import short_id
from flowmon.cli_ui.graph_renderer import StatusTableRenderer, TerminalGraphRenderer
from flowmon.cli_ui.status_panel import render_filter_menu, render_footer, render_logs, render_progress
from flowmon.core.execution import ExecutionSession, ExecutionView
from flowmon.core.graph_schema import WorkflowGraph
from flowmon.core.logs import FILTER_ALL


class LiveExecutionMonitor:
    """
    Real-time terminal UI for monitoring a workflow run.

    Features:
    - Live-updating graph tree (when the local graph is known)
    - Node status table
    - Progress bar for overall completion
    - Filtered log stream

    Design Notes:
    - The monitor never fetches; ExecutionPoller owns the request schedule.
      The monitor only re-renders the latest view at REFRESH_INTERVAL.
    - Exits when the polling loop exits (terminal status, stop(),
      connection lost) or cancel() is called, after one final render.
    """

    REFRESH_INTERVAL = 0.25
    MAX_LOG_LINES = 12

    def __init__(
        self,
        session: ExecutionSession,
        graph: WorkflowGraph | None = None,
        console: Console | None = None,
        log_filter: str = FILTER_ALL,
    ):
        self.session = session
        self.graph = graph
        self.console = console or Console()
        self.log_filter = log_filter
        self.graph_renderer = TerminalGraphRenderer(self.console)
        self.status_renderer = StatusTableRenderer(self.console)
        self._cancelled = False

    def create_layout(self) -> Layout:
        """Create the terminal layout"""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main"),
            Layout(name="logs", size=self.MAX_LOG_LINES + 3),
            Layout(name="footer", size=4),
        )

        layout["main"].split_row(Layout(name="graph", ratio=1), Layout(name="status", ratio=1))

        return layout

    def cancel(self):
        """Signal the monitor to stop rendering."""
        self._cancelled = True

    def _header_text(self, view: ExecutionView) -> str:
        safe_id = escape(short_id(view.run_id))
        if view.is_completed:
            return f"[bold green]✓ Completed:[/] {safe_id}"
        if view.is_failed:
            return f"[bold red]✗ Failed:[/] {safe_id}"
        if view.is_running:
            return f"[bold blue]⟳ Executing:[/] {safe_id}"
        return f"[bold]{safe_id}[/]"

    def update_layout(self, layout: Layout, view: ExecutionView) -> None:
        layout["header"].update(Panel(self._header_text(view), style="bold"))

        if self.graph is not None:
            tree = self.graph_renderer.render_as_tree(self.graph, view.nodes, title="Workflow Graph")
            layout["graph"].update(Panel(tree, title="Workflow Graph"))
            table = self.status_renderer.render_status_table(view.nodes, view.run_id)
            layout["status"].update(Panel(table, title="Node Status"))
        elif view.snapshot is not None:
            table = self.status_renderer.render_results_table(view.snapshot)
            layout["graph"].update(Panel(table, title="Node Results"))
            layout["status"].update(Panel(render_filter_menu(view.snapshot, view.log_filter), title="Log Filters"))
        else:
            layout["graph"].update(Panel("[dim]Waiting for first status...[/]", title="Node Results"))
            layout["status"].update(Panel("", title="Log Filters"))

        layout["logs"].update(Panel(render_logs(view, self.MAX_LOG_LINES), title="Execution Logs"))
        layout["footer"].update(
            Panel(render_progress(view.progress), title="Progress", subtitle=render_footer(view))
        )

    async def monitor(self) -> ExecutionView:
        """
        Render the session until polling ends.

        Returns:
            The final view, so callers can print a summary
        """
        layout = self.create_layout()

        with Live(layout, console=self.console, refresh_per_second=4) as live:
            while not self._cancelled:
                view = self.session.view(self.log_filter)
                self.update_layout(layout, view)
                live.refresh()
                if not self.session.poller.is_active:
                    break
                await asyncio.sleep(self.REFRESH_INTERVAL)

            # Show final state
            view = self.session.view(self.log_filter)
            self.update_layout(layout, view)
            live.refresh()

        return view
