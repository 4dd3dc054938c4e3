"""Terminal graph rendering for workflow visualization.

Provides tree-based visualization of workflow graphs and node status tables
using Rich.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from flowmon.cli_ui.formatting import format_duration, format_time, status_color, status_markup
from flowmon.core.graph_schema import Edge, ExecutionStatus, Node, NodeKind, WorkflowGraph
from flowmon.core.snapshot import ExecutionSnapshot


def describe_params(node: Node) -> str:
    """One-line summary of a node's parameters."""
    if node.type == NodeKind.HTTP_REQUEST:
        return f"{node.params.method} {node.params.url}"
    if node.type == NodeKind.WAIT:
        return format_duration(node.params.duration)
    return node.params.label or ""


class TerminalGraphRenderer:
    """
    Renders workflow graphs as a Rich tree in the terminal.

    Features:
    - Starts from entry nodes (no incoming edges) and follows edges
    - Color-coded node kinds
    - Execution status indicators from the overlay fields

    Performance Notes:
    - Uses node_map/edge_map for O(1) lookups instead of O(N) list scans
    """

    NODE_STYLES = {
        NodeKind.MANUAL_START: ("[▶]", "cyan"),
        NodeKind.HTTP_REQUEST: ("[H]", "magenta"),
        NodeKind.WAIT: ("[W]", "blue"),
    }

    STATUS_INDICATORS = {
        "success": " ✓",
        "error": " ✗",
        "running": " ⟳",
        "skipped": " ⊘",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _build_edge_map(self, graph: WorkflowGraph) -> dict[str, list[Edge]]:
        """Build O(1) lookup map for outgoing edges by source node ID."""
        edge_map: dict[str, list[Edge]] = {n.id: [] for n in graph.nodes}
        for edge in graph.edges:
            if edge.source in edge_map:
                edge_map[edge.source].append(edge)
        return edge_map

    def render_as_tree(
        self,
        graph: WorkflowGraph,
        nodes: list[Node] | None = None,
        title: str = "Workflow",
        max_depth: int = 50,
    ) -> Tree:
        """
        Render the graph as a Rich Tree.

        Args:
            graph: Graph supplying the edges
            nodes: Nodes to display (typically overlaid with execution status);
                defaults to the graph's own nodes
            title: Tree root label
            max_depth: Maximum tree depth to prevent exponential blow-up
        """
        tree = Tree(f"[bold]{escape(title)}[/]")
        nodes = nodes if nodes is not None else graph.nodes
        node_map = {n.id: n for n in nodes}
        edge_map = self._build_edge_map(graph)

        roots = [node_map[n.id] for n in graph.entry_nodes() if n.id in node_map]
        if not roots:
            if nodes:
                tree.add("[red]No entry node (graph is cyclic)[/]")
            else:
                tree.add("[dim]Empty workflow[/]")
            return tree

        for root in roots:
            self._add_node_to_tree(tree, root, node_map, edge_map, set(), 0, max_depth)
        return tree

    def _node_text(self, node: Node) -> str:
        # SECURITY: Escape labels and params to prevent Rich markup injection
        symbol, color = self.NODE_STYLES.get(node.type, ("[ ]", "white"))
        safe_id = escape(node.id)
        summary = describe_params(node)
        safe_summary = f" [dim]{escape(summary)}[/]" if summary else ""
        status = node.execution_status.value

        if status == ExecutionStatus.PENDING.value:
            return f"[{color}]{escape(symbol)} {safe_id}[/]{safe_summary}"

        indicator = self.STATUS_INDICATORS.get(status, "")
        duration = ""
        if node.execution_duration is not None:
            duration = f" [dim]({format_duration(node.execution_duration)})[/]"
        return (
            f"[{status_color(status)}]{escape(symbol)} {safe_id}{indicator}[/]"
            f"{safe_summary}{duration}"
        )

    def _add_node_to_tree(
        self,
        parent: Tree,
        node: Node,
        node_map: dict[str, Node],
        edge_map: dict[str, list[Edge]],
        visited: set,
        depth: int,
        max_depth: int,
    ):
        """Recursively add nodes to tree with depth limiting."""
        if depth >= max_depth:
            parent.add("[dim]... (max depth reached)[/]")
            return
        if node.id in visited:
            parent.add(f"[dim]↩ {escape(node.id)} (loop)[/]")
            return

        visited.add(node.id)
        branch = parent.add(self._node_text(node))

        for edge in edge_map.get(node.id, []):
            child_node = node_map.get(edge.target)
            if child_node:
                self._add_node_to_tree(
                    branch, child_node, node_map, edge_map, visited.copy(), depth + 1, max_depth
                )


class StatusTableRenderer:
    """Renders node execution status as a Rich table.

    SECURITY: All server-supplied strings (ids, errors, results) are escaped
    to prevent Rich markup injection.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render_status_table(self, nodes: list[Node], run_id: str | None = None) -> Table:
        """Table of local graph nodes with their overlaid execution status."""
        title = f"Run: {escape(run_id[:8])}..." if run_id else "Nodes"
        table = Table(title=title)

        table.add_column("Node", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Status", justify="center")
        table.add_column("Duration", justify="right")
        table.add_column("Output", max_width=40)

        for node in nodes:
            data = node.execution_data or {}
            output = data.get("error") or data.get("result")
            output_str = str(output) if output is not None else ""
            if len(output_str) > 40:
                output_str = output_str[:37] + "..."
            output_str = escape(output_str)

            table.add_row(
                escape(node.id),
                node.type.value,
                status_markup(node.execution_status),
                format_duration(node.execution_duration),
                output_str,
            )

        return table

    def render_results_table(self, snapshot: ExecutionSnapshot) -> Table:
        """Table of node results straight from a snapshot (no local graph needed)."""
        table = Table(title=f"Run: {escape(snapshot.run_id[:8] or '-')}...")

        table.add_column("Node", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Status", justify="center")
        table.add_column("Started", justify="right")
        table.add_column("Duration", justify="right")
        table.add_column("Logs", justify="right")

        for result in snapshot.node_results:
            table.add_row(
                escape(result.node_id),
                escape(result.node_type or "-"),
                status_markup(result.status),
                format_time(result.timestamp_sec),
                format_duration(result.duration_ms),
                str(len(result.logs)),
            )

        return table
