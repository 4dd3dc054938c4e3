"""Core modules for the flowmon execution monitor."""

from flowmon.core.config import ClientConfig, load_config
from flowmon.core.errors import (
    FlowmonError,
    GraphValidationError,
    MalformedPayload,
    NotInitialized,
    TransportFailure,
)
from flowmon.core.execution import DisplayState, ExecutionSession, ExecutionView
from flowmon.core.graph_schema import Edge, ExecutionStatus, Node, NodeKind, WorkflowGraph
from flowmon.core.logs import LogEntry, LogSource, aggregate_logs, available_nodes
from flowmon.core.poller import ExecutionPoller, PollerState, PollingSession
from flowmon.core.progress import compute_progress
from flowmon.core.snapshot import ExecutionSnapshot, NodeResult, RunStatus, parse_snapshot
from flowmon.core.sync import overlay_execution
from flowmon.core.transport import WorkflowClient

__all__ = [
    "ClientConfig",
    "DisplayState",
    "Edge",
    "ExecutionPoller",
    "ExecutionSession",
    "ExecutionSnapshot",
    "ExecutionStatus",
    "ExecutionView",
    "FlowmonError",
    "GraphValidationError",
    "LogEntry",
    "LogSource",
    "MalformedPayload",
    "Node",
    "NodeKind",
    "NodeResult",
    "NotInitialized",
    "PollerState",
    "PollingSession",
    "RunStatus",
    "TransportFailure",
    "WorkflowClient",
    "WorkflowGraph",
    "aggregate_logs",
    "available_nodes",
    "compute_progress",
    "load_config",
    "overlay_execution",
    "parse_snapshot",
]
