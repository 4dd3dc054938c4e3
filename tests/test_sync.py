"""Tests for overlaying execution results onto editor nodes."""

from __future__ import annotations

from helpers import make_payload, node_result

from flowmon.core.graph_schema import ExecutionStatus
from flowmon.core.snapshot import parse_snapshot
from flowmon.core.sync import overlay_execution


class TestOverlayExecution:
    """Tests for overlay_execution."""

    def test_unmatched_node_is_pending(self, sample_graph):
        """A node with no result is pending with no duration."""
        snapshot = parse_snapshot(make_payload(nodes=[node_result("other")]))
        nodes = overlay_execution(sample_graph.nodes[:1], snapshot)
        assert nodes[0].id == "start"
        assert nodes[0].execution_status == ExecutionStatus.PENDING
        assert nodes[0].execution_duration is None
        assert nodes[0].execution_data is None

    def test_matched_nodes_take_result(self, sample_graph, success_snapshot):
        nodes = {n.id: n for n in overlay_execution(sample_graph.nodes, success_snapshot)}
        fetch = nodes["fetch"]
        assert fetch.execution_status == ExecutionStatus.SUCCESS
        assert fetch.execution_duration == 2500
        assert fetch.execution_data["result"] == {"ok": True}
        assert fetch.execution_data["logs"] == ["GET https://example.com", "200 OK"]
        assert fetch.execution_data["timestamp"] == 1700000001

    def test_error_and_skipped_statuses(self, sample_graph):
        snapshot = parse_snapshot(
            make_payload(
                nodes=[
                    node_result("pause", status="error", error="boom"),
                    node_result("fetch", status="skipped"),
                ]
            )
        )
        nodes = {n.id: n for n in overlay_execution(sample_graph.nodes, snapshot)}
        assert nodes["pause"].execution_status == ExecutionStatus.ERROR
        assert nodes["pause"].execution_data["error"] == "boom"
        assert nodes["fetch"].execution_status == ExecutionStatus.SKIPPED

    def test_no_snapshot_resets_everything(self, sample_graph, success_snapshot):
        overlaid = overlay_execution(sample_graph.nodes, success_snapshot)
        reset = overlay_execution(overlaid, None)
        assert all(n.execution_status == ExecutionStatus.PENDING for n in reset)
        assert all(n.execution_duration is None for n in reset)

    def test_idempotent(self, sample_graph, success_snapshot):
        once = overlay_execution(sample_graph.nodes, success_snapshot)
        twice = overlay_execution(once, success_snapshot)
        assert once == twice

    def test_input_not_mutated(self, sample_graph, success_snapshot):
        before = [n.model_dump() for n in sample_graph.nodes]
        overlay_execution(sample_graph.nodes, success_snapshot)
        assert [n.model_dump() for n in sample_graph.nodes] == before

    def test_non_overlay_fields_preserved(self, sample_graph, success_snapshot):
        for old, new in zip(sample_graph.nodes, overlay_execution(sample_graph.nodes, success_snapshot)):
            assert new.id == old.id
            assert new.type == old.type
            assert new.params == old.params
            assert new.position == old.position
            assert new.extras == old.extras

    def test_results_for_unknown_nodes_ignored(self, sample_graph):
        snapshot = parse_snapshot(make_payload(nodes=[node_result("ghost")]))
        nodes = overlay_execution(sample_graph.nodes, snapshot)
        assert [n.id for n in nodes] == ["start", "pause", "fetch"]

    def test_first_duplicate_result_wins(self, sample_graph):
        snapshot = parse_snapshot(
            make_payload(
                nodes=[
                    node_result("fetch", status="success", durationMs=1),
                    node_result("fetch", status="error", durationMs=2),
                ]
            )
        )
        fetch = overlay_execution(sample_graph.nodes, snapshot)[2]
        assert fetch.execution_status == ExecutionStatus.SUCCESS
        assert fetch.execution_duration == 1

    def test_empty_nodes(self, success_snapshot):
        assert overlay_execution([], success_snapshot) == []
