"""Completion percentage for an execution snapshot."""

from flowmon.core.snapshot import ExecutionSnapshot, NodeResultStatus, RunStatus

COMPLETED_NODE_STATUSES = {NodeResultStatus.SUCCESS, NodeResultStatus.ERROR}


def compute_progress(snapshot: ExecutionSnapshot | None) -> int:
    """Return completion as an integer percentage in [0, 100].

    Terminal runs short-circuit: success is always 100 and error is always 0,
    even when some nodes succeeded before the failure. Running (and skipped)
    runs report the share of nodes that finished, successfully or not.
    """
    if snapshot is None:
        return 0
    if snapshot.status == RunStatus.SUCCESS:
        return 100
    if snapshot.status == RunStatus.ERROR:
        return 0

    total = snapshot.total_node_count
    if total <= 0:
        return 0

    completed = sum(1 for r in snapshot.node_results if r.status in COMPLETED_NODE_STATUSES)
    # Round half up; builtin round() would round 12.5 down to 12
    percent = int(100 * completed / total + 0.5)
    return max(0, min(100, percent))
