"""Merged, filterable view of workflow-level and per-node logs.

Entries are rebuilt from the snapshot on every read and never mutated. The
default order is all workflow logs first, then node logs grouped by node in
the order the service reported the nodes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from flowmon.core.snapshot import ExecutionSnapshot, NodeResult

FILTER_ALL = "all"
FILTER_WORKFLOW = "workflow"


class LogSource(str, Enum):
    """Where a log line came from"""

    WORKFLOW = "workflow"
    NODE = "node"


@dataclass(frozen=True)
class LogEntry:
    """One log line tagged with its source.

    ``sequence_index`` is the line's position within its own source (it
    restarts at 0 for every node) and together with the source forms a stable
    key; it is not a global ordering.
    """

    source: LogSource
    text: str
    sequence_index: int
    node_id: str | None = None

    @property
    def key(self) -> str:
        return f"{self.source.value}-{self.node_id or 'workflow'}-{self.sequence_index}"

    @property
    def label(self) -> str:
        return "WORKFLOW" if self.source == LogSource.WORKFLOW else str(self.node_id)


@dataclass(frozen=True)
class FilterOption:
    """Choice offered in a log filter menu"""

    value: str
    label: str
    count: int


def _iter_entries(snapshot: ExecutionSnapshot) -> Iterator[LogEntry]:
    for index, text in enumerate(snapshot.workflow_logs):
        yield LogEntry(source=LogSource.WORKFLOW, text=text, sequence_index=index)
    for result in snapshot.node_results:
        for index, text in enumerate(result.logs):
            yield LogEntry(
                source=LogSource.NODE,
                text=text,
                sequence_index=index,
                node_id=result.node_id,
            )


def _matches(entry: LogEntry, log_filter: str) -> bool:
    if log_filter == FILTER_ALL:
        return True
    if log_filter == FILTER_WORKFLOW:
        return entry.source == LogSource.WORKFLOW
    return entry.node_id == log_filter


class LogView:
    """Lazy, restartable sequence of log entries for one ``(snapshot, filter)``.

    Every iteration walks the snapshot again, so the view holds no cursor
    state and can be consumed any number of times.
    """

    def __init__(self, snapshot: ExecutionSnapshot | None, log_filter: str = FILTER_ALL):
        self.snapshot = snapshot
        self.log_filter = log_filter

    def __iter__(self) -> Iterator[LogEntry]:
        if self.snapshot is None:
            return
        for entry in _iter_entries(self.snapshot):
            if _matches(entry, self.log_filter):
                yield entry

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return next(iter(self), None) is not None


def aggregate_logs(snapshot: ExecutionSnapshot | None, log_filter: str = FILTER_ALL) -> LogView:
    """Merge workflow and node logs and apply a filter.

    Args:
        snapshot: Snapshot to read (None yields an empty view)
        log_filter: ``"all"``, ``"workflow"`` or a node id

    Returns:
        LogView over the matching entries
    """
    return LogView(snapshot, log_filter)


def available_nodes(snapshot: ExecutionSnapshot | None) -> list[NodeResult]:
    """Node results with at least one log line; these drive the filter menu."""
    if snapshot is None:
        return []
    return [r for r in snapshot.node_results if r.logs]


def filter_options(snapshot: ExecutionSnapshot | None) -> list[FilterOption]:
    """Filter menu entries with their line counts."""
    if snapshot is None:
        return []
    total = len(aggregate_logs(snapshot, FILTER_ALL))
    options = [
        FilterOption(value=FILTER_ALL, label=f"All Sources ({total})", count=total),
        FilterOption(
            value=FILTER_WORKFLOW,
            label=f"Workflow ({len(snapshot.workflow_logs)})",
            count=len(snapshot.workflow_logs),
        ),
    ]
    for result in available_nodes(snapshot):
        options.append(
            FilterOption(
                value=result.node_id,
                label=f"Node {result.node_id} ({len(result.logs)})",
                count=len(result.logs),
            )
        )
    return options
