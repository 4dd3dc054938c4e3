"""CLI entry point for flowmon.

Commands:
- flowmon init: Create .flowmon/config.yaml and an example workflow
- flowmon validate: Validate a workflow file
- flowmon run: Submit a workflow and monitor it until it settles
- flowmon watch: Monitor an existing run
- flowmon status: Show the current status of a run
- flowmon logs: Print a run's logs for a filter
- flowmon inspect: Show one node's result, error and logs
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import pydantic
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from flowmon import __version__
from flowmon.cli_ui.graph_renderer import StatusTableRenderer, TerminalGraphRenderer
from flowmon.cli_ui.live_monitor import LiveExecutionMonitor
from flowmon.cli_ui.node_inspector import NodeInspector
from flowmon.cli_ui.status_panel import render_log_line, render_status_panel
from flowmon.core.config import CONFIG_DIR, CONFIG_FILE, DEFAULT_CONFIG_YAML, ClientConfig, load_config
from flowmon.core.errors import FlowmonError, GraphValidationError
from flowmon.core.execution import DisplayState, ExecutionSession, ExecutionView, build_view
from flowmon.core.graph_schema import WorkflowGraph
from flowmon.core.logs import FILTER_ALL, FILTER_WORKFLOW, aggregate_logs, available_nodes
from flowmon.core.poller import PollingSession
from flowmon.core.snapshot import ExecutionSnapshot, parse_snapshot
from flowmon.core.transport import WorkflowClient

console = Console()

EXAMPLE_WORKFLOW_YAML = """# Example workflow: start, wait one second, then call an HTTP endpoint
nodes:
  - id: start
    type: manualStartNode
    data:
      label: Start
  - id: pause
    type: waitingNode
    data:
      duration: "1000"
  - id: fetch_fact
    type: httpRequestNode
    data:
      method: GET
      url: https://catfact.ninja/fact
edges:
  - id: start-pause
    source: start
    target: pause
  - id: pause-fetch
    source: pause
    target: fetch_fact
"""


def get_repo_path() -> Path:
    """Get the project path (current directory)."""
    return Path.cwd()


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _load_config() -> ClientConfig:
    try:
        return load_config(get_repo_path())
    except yaml.YAMLError as e:
        _fail(f"Invalid YAML in {CONFIG_DIR}/{CONFIG_FILE}: {escape(str(e))}")
    except pydantic.ValidationError as e:
        console.print("[red]Error validating configuration:[/red]")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  - {loc}: {err['msg']}")
        sys.exit(1)
    except ValueError as e:
        _fail(escape(str(e)))


def _load_graph(workflow_file: str) -> WorkflowGraph:
    try:
        return WorkflowGraph.from_file(workflow_file)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        console.print(f"[red]Error parsing workflow file '{escape(workflow_file)}':[/red]")
        console.print(f"  {escape(str(e))}")
        sys.exit(1)
    except pydantic.ValidationError as e:
        console.print("[red]Error validating workflow schema:[/red]")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  - {loc}: {err['msg']}")
        sys.exit(1)
    except (ValueError, TypeError) as e:
        console.print("[red]Error validating workflow:[/red]")
        console.print(f"  {escape(str(e))}")
        sys.exit(1)


def _print_validation_errors(errors: list[str]) -> None:
    console.print("[red]Validation errors:[/red]")
    for error in errors:
        console.print(f"  - {escape(error)}")


async def _fetch_snapshot(config: ClientConfig, run_id: str) -> ExecutionSnapshot:
    async with WorkflowClient(config) as client:
        raw = await client.fetch_status(run_id)
    return parse_snapshot(raw, run_id=run_id)


def _snapshot_view(run_id: str, snapshot: ExecutionSnapshot, log_filter: str = FILTER_ALL) -> ExecutionView:
    session = PollingSession(run_id=run_id, last_snapshot=snapshot)
    return build_view(session, log_filter=log_filter)


async def _follow(
    session: ExecutionSession,
    graph: WorkflowGraph | None,
    live: bool,
    log_filter: str,
) -> ExecutionView:
    if live:
        monitor = LiveExecutionMonitor(session, graph, console=console, log_filter=log_filter)
        try:
            return await monitor.monitor()
        finally:
            session.stop()
    await session.wait()
    return session.view(log_filter)


def _print_summary(view: ExecutionView, graph: WorkflowGraph | None) -> None:
    console.print(render_status_panel(view, max_log_lines=None))
    if graph is not None:
        console.print(StatusTableRenderer(console).render_status_table(view.nodes, view.run_id))
    elif view.snapshot is not None:
        console.print(StatusTableRenderer(console).render_results_table(view.snapshot))


def _exit_code(view: ExecutionView) -> int:
    if view.is_failed or view.display_state == DisplayState.CONNECTION_LOST:
        return 1
    return 0


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Flowmon - submit workflow graphs and monitor their execution."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@main.command()
def init() -> None:
    """Initialize project for flowmon."""
    config_dir = get_repo_path() / CONFIG_DIR

    if config_dir.exists():
        console.print("[yellow]Project already initialized[/yellow]")
        return

    config_dir.mkdir(parents=True)
    (config_dir / CONFIG_FILE).write_text(DEFAULT_CONFIG_YAML)

    example_path = get_repo_path() / "workflow.yaml"
    if not example_path.exists():
        example_path.write_text(EXAMPLE_WORKFLOW_YAML)

    console.print(
        Panel(
            "[green]Project initialized![/green]\n\n"
            f"Created: {config_dir}\n"
            f"- {CONFIG_FILE}: Service location and polling settings\n"
            "- workflow.yaml: Example workflow",
            title="Flowmon Initialized",
        )
    )


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False))
def validate(workflow_file: str) -> None:
    """Validate a workflow file without submitting it."""
    graph = _load_graph(workflow_file)

    errors = graph.validate_graph()
    if errors:
        _print_validation_errors(errors)
        sys.exit(1)

    console.print("[green]Workflow validation passed[/green]")
    console.print(f"  Nodes: {len(graph.nodes)}")
    console.print(f"  Edges: {len(graph.edges)}")
    console.print(TerminalGraphRenderer(console).render_as_tree(graph))


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--live/--no-live", default=True, help="Show live execution monitor")
@click.option("--log-filter", default=FILTER_ALL, help="Log filter: all, workflow or a node id")
def run(workflow_file: str, live: bool, log_filter: str) -> None:
    """Submit a workflow and monitor it until it finishes.

    Example:
        flowmon run workflow.yaml --no-live
    """
    graph = _load_graph(workflow_file)
    config = _load_config()

    async def execute() -> ExecutionView:
        async with WorkflowClient(config) as client:
            session = ExecutionSession(client, config)
            run_id = await session.run(graph)
            console.print(f"[blue]Started execution: {escape(run_id)}[/blue]")
            return await _follow(session, graph, live, log_filter)

    try:
        view = asyncio.run(execute())
    except GraphValidationError as e:
        _print_validation_errors(e.errors)
        sys.exit(1)
    except FlowmonError as e:
        _fail(escape(str(e)))

    _print_summary(view, graph)
    sys.exit(_exit_code(view))


@main.command()
@click.argument("run_id")
@click.option("--live/--no-live", default=True, help="Show live execution monitor")
@click.option("--log-filter", default=FILTER_ALL, help="Log filter: all, workflow or a node id")
def watch(run_id: str, live: bool, log_filter: str) -> None:
    """Monitor an existing run until it finishes."""
    config = _load_config()

    async def execute() -> ExecutionView:
        async with WorkflowClient(config) as client:
            session = ExecutionSession(client, config)
            session.watch(run_id)
            return await _follow(session, None, live, log_filter)

    try:
        view = asyncio.run(execute())
    except FlowmonError as e:
        _fail(escape(str(e)))

    _print_summary(view, None)
    sys.exit(_exit_code(view))


@main.command()
@click.argument("run_id")
def status(run_id: str) -> None:
    """Show the current status of a run."""
    config = _load_config()
    try:
        snapshot = asyncio.run(_fetch_snapshot(config, run_id))
    except FlowmonError as e:
        _fail(escape(str(e)))

    _print_summary(_snapshot_view(run_id, snapshot), None)


@main.command()
@click.argument("run_id")
@click.option(
    "--filter",
    "log_filter",
    default=FILTER_ALL,
    help="all, workflow or a node id",
)
def logs(run_id: str, log_filter: str) -> None:
    """Print a run's logs."""
    config = _load_config()
    try:
        snapshot = asyncio.run(_fetch_snapshot(config, run_id))
    except FlowmonError as e:
        _fail(escape(str(e)))

    known = {FILTER_ALL, FILTER_WORKFLOW} | {r.node_id for r in available_nodes(snapshot)}
    if log_filter not in known:
        console.print(f"[yellow]No logs for filter '{escape(log_filter)}'[/yellow]")
        console.print(f"[dim]Available: {escape(', '.join(sorted(known)))}[/dim]")
        return

    entries = list(aggregate_logs(snapshot, log_filter))
    if not entries:
        console.print("[dim]No logs available for the selected filter[/dim]")
        return
    for entry in entries:
        console.print(render_log_line(entry))


@main.command()
@click.argument("run_id")
@click.argument("node_id", required=False)
def inspect(run_id: str, node_id: str | None) -> None:
    """Show a node's result, error and logs (all nodes when NODE_ID is omitted)."""
    config = _load_config()
    try:
        snapshot = asyncio.run(_fetch_snapshot(config, run_id))
    except FlowmonError as e:
        _fail(escape(str(e)))

    if not NodeInspector(console).inspect_node(snapshot, node_id):
        sys.exit(1)


if __name__ == "__main__":
    main()
