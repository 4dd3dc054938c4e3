"""Node inspection for run debugging.

Shows one node's reported result, error and logs from a snapshot.
"""

import json

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from flowmon.cli_ui.formatting import format_duration, format_time, status_markup
from flowmon.core.snapshot import ExecutionSnapshot, NodeResult


class NodeInspector:
    """
    Node inspection in the terminal.

    SECURITY: All server-supplied strings are escaped to prevent Rich markup injection.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def inspect_node(self, snapshot: ExecutionSnapshot, node_id: str | None = None) -> bool:
        """
        Show details for one node, or a summary of all nodes.

        Returns:
            False if ``node_id`` was given but the snapshot has no result for it
        """
        if node_id is None:
            self._list_nodes(snapshot)
            return True

        result = snapshot.result_for(node_id)
        if result is None:
            self.console.print(f"[yellow]No execution data for {escape(node_id)}[/]")
            return False
        self._inspect_node(result)
        return True

    def _list_nodes(self, snapshot: ExecutionSnapshot):
        """List all reported nodes"""
        table = Table(title="Reported Nodes")
        table.add_column("ID")
        table.add_column("Type")
        table.add_column("Status")
        table.add_column("Error")

        for result in snapshot.node_results:
            table.add_row(
                escape(result.node_id),
                escape(result.node_type or "-"),
                status_markup(result.status),
                escape(result.error) if result.error else "-",
            )

        self.console.print(table)

    def _json_panel(self, value, title: str) -> Panel:
        try:
            body = json.dumps(value, indent=2)
        except (TypeError, ValueError):
            return Panel(f"[dim]<Unserializable: {escape(str(value)[:100])}>[/]", title=title)
        return Panel(Syntax(body, "json", theme="monokai"), title=title)

    def _inspect_node(self, result: NodeResult):
        """Show detailed node information"""
        safe_id = escape(result.node_id)

        # Use Group to compose renderables without stringifying them
        info_parts = [
            Text.from_markup(f"[bold]ID:[/] {safe_id}"),
            Text.from_markup(f"[bold]Type:[/] {escape(result.node_type or '-')}"),
            Text.from_markup(f"[bold]Status:[/] {status_markup(result.status)}"),
            Text.from_markup(f"[bold]Started:[/] {format_time(result.timestamp_sec)}"),
            Text.from_markup(f"[bold]Duration:[/] {format_duration(result.duration_ms)}"),
        ]
        self.console.print(Panel(Group(*info_parts), title=f"Node: {safe_id}"))

        if result.result is not None:
            self.console.print(self._json_panel(result.result, "Result"))

        if result.meta is not None:
            self.console.print(self._json_panel(result.meta, "Meta"))

        if result.logs:
            lines = Text("\n".join(result.logs))
            self.console.print(Panel(lines, title=f"Logs ({len(result.logs)})"))

        if result.error:
            self.console.print(Panel(f"[red]{escape(result.error)}[/]", title="Error", style="red"))
