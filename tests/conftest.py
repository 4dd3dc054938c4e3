# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the flowmon test suite.

This module provides foundational fixtures used across all test modules:
- Sample snapshot payloads as the workflow service reports them
- A sample editor graph
- A fast polling configuration

Payload builders and the scriptable status source live in helpers.py.

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
"""

from __future__ import annotations

from typing import Any

import pytest
from helpers import make_payload, node_result

from flowmon.core.config import ClientConfig
from flowmon.core.graph_schema import WorkflowGraph
from flowmon.core.snapshot import ExecutionSnapshot, parse_snapshot


# =============================================================================
# Snapshot Fixtures
# =============================================================================


@pytest.fixture
def running_payload() -> dict[str, Any]:
    """A running workflow with one finished node and logs on both levels."""
    return make_payload(
        status="running",
        number_of_nodes=3,
        nodes=[node_result("start", nodeType="manualStartNode", logs=["Trigger fired"])],
        logs=["Starting workflow execution with node: start"],
    )


@pytest.fixture
def success_payload() -> dict[str, Any]:
    """A finished workflow with workflow logs and logs on two of three nodes."""
    return make_payload(
        status="success",
        number_of_nodes=3,
        nodes=[
            node_result("start", nodeType="manualStartNode", logs=["Trigger fired"]),
            node_result("pause", nodeType="waitingNode", logs=[], durationMs=1000),
            node_result("fetch", logs=["GET https://example.com", "200 OK"], durationMs=2500),
        ],
        logs=["Starting workflow execution with node: start", "Workflow finished"],
        endedAt=1700000004,
        durationMs=4000,
    )


@pytest.fixture
def success_snapshot(success_payload) -> ExecutionSnapshot:
    return parse_snapshot(success_payload)


@pytest.fixture
def running_snapshot(running_payload) -> ExecutionSnapshot:
    return parse_snapshot(running_payload)


# =============================================================================
# Graph Fixtures
# =============================================================================


@pytest.fixture
def editor_graph_data() -> dict[str, Any]:
    """Editor export for start -> pause -> fetch."""
    return {
        "nodes": [
            {
                "id": "start",
                "type": "manualStartNode",
                "data": {"label": "Start", "color": "#fff"},
                "position": {"x": 0, "y": 0},
            },
            {
                "id": "pause",
                "type": "waitingNode",
                "data": {"duration": "1000"},
                "position": {"x": 0, "y": 100},
            },
            {
                "id": "fetch",
                "type": "httpRequestNode",
                "data": {"method": "get", "url": "https://example.com"},
                "position": {"x": 0, "y": 200},
            },
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "pause"},
            {"id": "e2", "source": "pause", "target": "fetch"},
        ],
    }


@pytest.fixture
def sample_graph(editor_graph_data) -> WorkflowGraph:
    return WorkflowGraph.from_editor(editor_graph_data)


# =============================================================================
# Polling Fixtures
# =============================================================================


@pytest.fixture
def fast_config() -> ClientConfig:
    """Config with tiny intervals so polling tests finish quickly."""
    return ClientConfig(
        poll_interval=0.01,
        max_poll_interval=0.02,
        request_timeout=2.0,
        max_consecutive_failures=3,
    )
