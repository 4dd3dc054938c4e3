"""Overlay execution results onto the editor's node collection."""

from typing import Any, Iterable

from flowmon.core.graph_schema import ExecutionStatus, Node
from flowmon.core.snapshot import ExecutionSnapshot, NodeResult

RESULT_STATUS_MAP = {
    "success": ExecutionStatus.SUCCESS,
    "error": ExecutionStatus.ERROR,
    "skipped": ExecutionStatus.SKIPPED,
}


def _execution_data(result: NodeResult) -> dict[str, Any]:
    return {
        "result": result.result,
        "error": result.error,
        "logs": list(result.logs),
        "meta": result.meta,
        "timestamp": result.timestamp_sec,
    }


def overlay_execution(
    nodes: Iterable[Node],
    snapshot: ExecutionSnapshot | None,
) -> list[Node]:
    """Return new nodes carrying the snapshot's per-node results.

    Only the execution overlay fields change; id, type, params (including
    extra editor keys) and position are carried over untouched. Nodes without
    a matching result, or every node when there is no snapshot, are reset to
    ``pending`` with no duration. Results for node ids absent from ``nodes``
    are ignored. The input collection is never mutated, and applying the same
    snapshot twice gives the same nodes as applying it once.
    """
    results: dict[str, NodeResult] = {}
    if snapshot is not None:
        for result in snapshot.node_results:
            # First report wins if the service ever repeats a node
            results.setdefault(result.node_id, result)

    updated = []
    for node in nodes:
        result = results.get(node.id)
        if result is None:
            update = {
                "execution_status": ExecutionStatus.PENDING,
                "execution_duration": None,
                "execution_data": None,
            }
        else:
            update = {
                "execution_status": RESULT_STATUS_MAP[result.status.value],
                "execution_duration": result.duration_ms,
                "execution_data": _execution_data(result),
            }
        updated.append(node.model_copy(update=update))
    return updated
