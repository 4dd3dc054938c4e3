"""Run a workflow graph and expose a consistent view of its progress.

ExecutionSession ties the pieces together the way the editor uses them:
submit the graph, start polling the new run, and on every read derive
progress, logs and node overlays from the latest snapshot.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from flowmon.core.config import ClientConfig
from flowmon.core.errors import GraphValidationError
from flowmon.core.graph_schema import Node, WorkflowGraph
from flowmon.core.logs import FILTER_ALL, LogView, aggregate_logs, available_nodes
from flowmon.core.poller import ExecutionPoller, PollingSession
from flowmon.core.progress import compute_progress
from flowmon.core.snapshot import ExecutionSnapshot, NodeResult
from flowmon.core.sync import overlay_execution
from flowmon.core.transport import WorkflowClient

logger = logging.getLogger(__name__)


class DisplayState(str, Enum):
    """What the UI should communicate about the tracked run"""

    IDLE = "idle"  # Nothing submitted
    WAITING = "waiting"  # Polling, no snapshot yet
    LIVE = "live"  # Fresh data from the latest tick
    STALE = "stale"  # Showing older data, latest tick failed
    CONNECTION_LOST = "connection_lost"  # Gave up after repeated failures
    FINISHED = "finished"  # Terminal result, polling stopped
    STOPPED = "stopped"  # Polling stopped by the user before the run settled


def display_state(session: PollingSession) -> DisplayState:
    if session.run_id is None:
        return DisplayState.IDLE
    if session.connection_lost:
        return DisplayState.CONNECTION_LOST
    if session.last_snapshot is None:
        return DisplayState.WAITING if session.is_polling else DisplayState.STOPPED
    if session.last_error is not None:
        return DisplayState.STALE
    if session.last_snapshot.is_terminal and not session.is_polling:
        return DisplayState.FINISHED
    if not session.is_polling:
        return DisplayState.STOPPED
    return DisplayState.LIVE


@dataclass(frozen=True)
class ExecutionView:
    """Everything needed to render the tracked run at one moment."""

    run_id: str | None
    snapshot: ExecutionSnapshot | None
    progress: int
    logs: LogView
    available_nodes: list[NodeResult]
    nodes: list[Node]
    display_state: DisplayState
    last_error: Exception | None
    is_polling: bool
    is_running: bool = False
    is_completed: bool = False
    is_failed: bool = False
    is_finished: bool = False
    log_filter: str = field(default=FILTER_ALL)


def build_view(
    session: PollingSession,
    nodes: list[Node] | None = None,
    log_filter: str = FILTER_ALL,
) -> ExecutionView:
    """Derive a view from a session copy; pure apart from reading ``session``."""
    snapshot = session.last_snapshot
    return ExecutionView(
        run_id=session.run_id,
        snapshot=snapshot,
        progress=compute_progress(snapshot),
        logs=aggregate_logs(snapshot, log_filter),
        available_nodes=available_nodes(snapshot),
        nodes=overlay_execution(nodes or [], snapshot),
        display_state=display_state(session),
        last_error=session.last_error,
        is_polling=session.is_polling,
        is_running=session.is_running,
        is_completed=session.is_completed,
        is_failed=session.is_failed,
        is_finished=session.is_finished,
        log_filter=log_filter,
    )


class ExecutionSession:
    """
    Submit graphs and follow their execution.

    USAGE:
        async with WorkflowClient(config) as client:
            session = ExecutionSession(client, config)
            run_id = await session.run(graph)
            await session.wait()
            view = session.view()
    """

    def __init__(
        self,
        client: WorkflowClient,
        config: ClientConfig | None = None,
        nodes: list[Node] | None = None,
        keep_polling_when_finished: bool = False,
    ):
        self.client = client
        self.config = config or client.config
        self.nodes: list[Node] = list(nodes or [])
        self.poller = ExecutionPoller(
            client,
            self.config,
            keep_polling_when_finished=keep_polling_when_finished,
        )

    @property
    def run_id(self) -> str | None:
        return self.poller.run_id

    async def run(self, graph: WorkflowGraph) -> str:
        """Validate, submit and start polling a graph.

        Raises:
            GraphValidationError: Graph failed validation (nothing submitted)
            TransportFailure: Submission rejected or unreachable service
        """
        errors = graph.validate_graph()
        if errors:
            logger.warning(f"Workflow graph rejected with {len(errors)} validation error(s)")
            raise GraphValidationError(errors)

        run_id = await self.client.submit(graph)
        self.nodes = list(graph.nodes)
        self.poller.start(run_id)
        return run_id

    def watch(self, run_id: str) -> None:
        """Start polling an existing run (nodes are not known locally)."""
        self.poller.start(run_id)

    def stop(self) -> None:
        self.poller.stop()

    def clear(self) -> None:
        self.poller.clear()
        self.nodes = overlay_execution(self.nodes, None)

    async def refresh(self) -> bool:
        return await self.poller.refresh()

    async def wait(self) -> None:
        await self.poller.wait()

    def view(self, log_filter: str = FILTER_ALL) -> ExecutionView:
        return build_view(self.poller.session, self.nodes, log_filter)
