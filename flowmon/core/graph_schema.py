"""Workflow graph schema definitions using Pydantic models.

A workflow is a directed graph of typed task nodes as authored in the editor:
manual start triggers, HTTP requests and timed waits. Each node kind carries a
typed parameter record; keys the client does not know about are kept in the
record's extra map so an editor round-trip never drops data.

Nodes also carry execution overlay fields (status, duration, result data)
written by the status synchronizer. Those fields are client-side only and are
never sent to the workflow service.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import networkx as nx
import yaml
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator


class NodeKind(str, Enum):
    """Supported node types (values are the editor/wire type names)"""

    MANUAL_START = "manualStartNode"  # Entry trigger, exactly one per graph
    HTTP_REQUEST = "httpRequestNode"  # Outbound HTTP call
    WAIT = "waitingNode"  # Fixed delay in milliseconds


class ExecutionStatus(str, Enum):
    """Per-node execution status shown in the editor"""

    PENDING = "pending"  # No result reported yet
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ManualStartParams(BaseModel):
    """Parameters for manual start nodes"""

    model_config = {"extra": "allow"}

    label: str | None = None


class HttpRequestParams(BaseModel):
    """Parameters for HTTP request nodes"""

    model_config = {"extra": "allow"}

    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"] = "GET"
    url: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v):
        return v.upper() if isinstance(v, str) else v


class WaitParams(BaseModel):
    """Parameters for wait nodes.

    The editor stores ``duration`` as text; the worker parses it as a string,
    so it is serialized back as a decimal string.
    """

    model_config = {"extra": "allow"}

    duration: int = Field(default=0, ge=0)  # Milliseconds

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        if v is None or v == "":
            return 0
        if isinstance(v, str):
            v = v.strip()
            if not v.lstrip("-").isdigit():
                raise ValueError(f"Invalid duration: '{v}'")
            return int(v)
        return v

    @field_serializer("duration")
    def serialize_duration(self, v: int) -> str:
        return str(v)


NodeParams = ManualStartParams | HttpRequestParams | WaitParams

PARAMS_MODELS: dict[NodeKind, type[BaseModel]] = {
    NodeKind.MANUAL_START: ManualStartParams,
    NodeKind.HTTP_REQUEST: HttpRequestParams,
    NodeKind.WAIT: WaitParams,
}

# Overlay fields owned by the status synchronizer
EXECUTION_FIELDS = ("execution_status", "execution_duration", "execution_data")


class Edge(BaseModel):
    """Directed edge between nodes"""

    id: str
    source: str  # Source node ID
    target: str  # Target node ID
    type: str | None = None  # Editor edge style, passed through

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target, "type": self.type}


class Node(BaseModel):
    """Graph node with kind-specific parameters and execution overlay"""

    model_config = {"frozen": True}

    id: str
    type: NodeKind
    params: NodeParams
    position: dict[str, float] | None = None  # Editor coordinates

    execution_status: ExecutionStatus = ExecutionStatus.PENDING
    execution_duration: int | None = None  # Milliseconds
    execution_data: dict[str, Any] | None = None

    @field_validator("id")
    @classmethod
    def validate_node_id(cls, v):
        if not v or not v.strip():
            raise ValueError("Node ID must not be empty")
        return v

    @model_validator(mode="before")
    @classmethod
    def build_params_for_type(cls, data: Any) -> Any:
        """Validate ``params`` against the model registered for the node type.

        Without this step pydantic would pick the first union member that
        accepts the record, and every kind accepts an arbitrary mapping.
        """
        if not isinstance(data, dict):
            return data
        try:
            kind = NodeKind(data.get("type"))
        except ValueError:
            return data  # Let field validation report the bad type
        params = data.get("params")
        expected = PARAMS_MODELS[kind]
        if params is None:
            params = {}
        if isinstance(params, BaseModel) and not isinstance(params, expected):
            params = params.model_dump()
        if isinstance(params, dict):
            data = {**data, "params": expected.model_validate(params)}
        return data

    @property
    def extras(self) -> dict[str, Any]:
        """Editor data keys not covered by the typed parameter record."""
        return dict(self.params.model_extra or {})

    @classmethod
    def from_editor(cls, record: dict[str, Any]) -> "Node":
        """Build a node from an editor record ``{id, type, data, position?}``."""
        return cls(
            id=record.get("id"),
            type=record.get("type"),
            params=record.get("data") or {},
            position=record.get("position"),
        )

    def to_payload(self) -> dict[str, Any]:
        """Wire form sent to the service; execution overlay fields are excluded."""
        return {
            "id": self.id,
            "type": self.type.value,
            "data": self.params.model_dump(mode="json", exclude_none=True),
        }


class WorkflowGraph(BaseModel):
    """Complete workflow definition"""

    id: str | None = None
    nodes: list[Node]
    edges: list[Edge] = Field(default_factory=list)

    @classmethod
    def from_editor(cls, data: dict[str, Any]) -> "WorkflowGraph":
        """Build a graph from the editor export ``{nodes: [...], edges: [...]}``."""
        nodes = [Node.from_editor(n) for n in data.get("nodes") or []]
        edges = [Edge(**e) for e in data.get("edges") or []]
        return cls(id=data.get("id"), nodes=nodes, edges=edges)

    @classmethod
    def from_file(cls, path: str | Path) -> "WorkflowGraph":
        """Load a graph from a YAML or JSON file of editor records.

        Raises:
            ValueError: If the file does not contain a mapping
            yaml.YAMLError / json.JSONDecodeError: On syntax errors
            pydantic.ValidationError: On schema errors
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid workflow file '{path}'. "
                f"Expected a dictionary, got {type(data).__name__}."
            )
        return cls.from_editor(data)

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def to_payload(self, run_id: str) -> dict[str, Any]:
        """Submission body ``{nodes, edges, id}``."""
        return {
            "nodes": [n.to_payload() for n in self.nodes],
            "edges": [e.to_payload() for e in self.edges],
            "id": run_id,
        }

    def validate_graph(self) -> list[str]:
        """
        Validate graph structure using NetworkX.
        Returns list of validation errors.
        """
        errors = []

        if not self.nodes:
            errors.append("No nodes provided")
            return errors

        seen_node_ids = set()
        for node in self.nodes:
            if node.id in seen_node_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_node_ids.add(node.id)
        node_ids = seen_node_ids

        seen_edge_ids = set()
        for edge in self.edges:
            if edge.id in seen_edge_ids:
                errors.append(f"Duplicate edge ID: '{edge.id}'")
            seen_edge_ids.add(edge.id)

        seen_edge_pairs = set()
        for edge in self.edges:
            pair = (edge.source, edge.target)
            if pair in seen_edge_pairs:
                errors.append(f"Duplicate edge from '{edge.source}' to '{edge.target}'")
            seen_edge_pairs.add(pair)

        for edge in self.edges:
            if edge.source not in node_ids:
                errors.append(f"Edge {edge.id}: source '{edge.source}' not found")
            if edge.target not in node_ids:
                errors.append(f"Edge {edge.id}: target '{edge.target}' not found")

        # The worker requires exactly one manual start node
        start_nodes = [n for n in self.nodes if n.type == NodeKind.MANUAL_START]
        if not start_nodes:
            errors.append("No manual start node found")
        elif len(start_nodes) > 1:
            ids = ", ".join(n.id for n in start_nodes)
            errors.append(f"Multiple manual start nodes found: {ids}")

        for node in self.nodes:
            if node.type == NodeKind.HTTP_REQUEST and not node.params.url:
                errors.append(f"HTTP node '{node.id}' is missing a URL")
            if node.type == NodeKind.WAIT and node.params.duration <= 0:
                errors.append(f"Wait node '{node.id}' needs a positive duration")

        G = self._to_networkx()
        try:
            cycle = nx.find_cycle(G)
            cycle_path = " -> ".join(edge[0] for edge in cycle)
            errors.append(f"Cycle detected: {cycle_path}")
        except nx.NetworkXNoCycle:
            pass

        return errors

    def _to_networkx(self) -> nx.DiGraph:
        """Convert to NetworkX DiGraph for analysis"""
        G = nx.DiGraph()
        for node in self.nodes:
            G.add_node(node.id)
        for edge in self.edges:
            G.add_edge(edge.source, edge.target)
        return G

    def entry_nodes(self) -> list[Node]:
        """Nodes with no incoming edges, in graph order"""
        G = self._to_networkx()
        return [n for n in self.nodes if G.in_degree(n.id) == 0]

    def execution_levels(self) -> list[list[str]]:
        """Topological levels of node IDs (empty when the graph has cycles)"""
        G = self._to_networkx()
        try:
            return [sorted(level) for level in nx.topological_generations(G)]
        except nx.NetworkXUnfeasible:
            return []
