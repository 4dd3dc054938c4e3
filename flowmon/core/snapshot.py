"""Execution snapshot models and payload parsing.

The workflow service reports a run as a JSON document::

    {
      "workflowId": "...", "status": "running",
      "startedAt": 1700000000, "endedAt": 0, "durationMs": 0,
      "numberOfNodes": 3,
      "nodes": [{"nodeId": "a", "status": "success", "timestamp": ...,
                 "durationMs": 12, "logs": [...], "result": {...}}],
      "logs": ["Starting workflow execution with node: a"],
      "error": null, "meta": {}
    }

STRICT on shape: ``status`` and ``nodes`` (an array) are required and typed.
LENIENT on content: optional fields default to empty values and unknown
fields are ignored so newer servers keep working.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from flowmon.core.errors import MalformedPayload


class RunStatus(str, Enum):
    """Workflow-level execution status"""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


class NodeResultStatus(str, Enum):
    """Per-node execution outcome reported by the service"""

    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class NodeResult(BaseModel):
    """Outcome of one executed node."""

    model_config = {"frozen": True, "populate_by_name": True}

    node_id: str = Field(alias="nodeId")
    node_type: str | None = Field(default=None, alias="nodeType")
    status: NodeResultStatus
    timestamp_sec: int = Field(default=0, alias="timestamp")
    duration_ms: int = Field(default=0, alias="durationMs")
    logs: list[str] = Field(default_factory=list)
    result: Any = None
    error: str | None = None
    meta: Any = None

    @field_validator("logs", mode="before")
    @classmethod
    def coerce_logs(cls, v):
        return [] if v is None else v


class ExecutionSnapshot(BaseModel):
    """Read-only view of one remote execution at a point in time."""

    model_config = {"frozen": True, "populate_by_name": True}

    run_id: str = Field(default="", alias="workflowId")
    status: RunStatus
    started_at: int | None = Field(default=None, alias="startedAt")
    ended_at: int | None = Field(default=None, alias="endedAt")
    duration_ms: int = Field(default=0, alias="durationMs")
    declared_node_count: int | None = Field(default=None, alias="numberOfNodes")
    node_results: list[NodeResult] = Field(alias="nodes")
    workflow_logs: list[str] = Field(default_factory=list, alias="logs")
    error_message: str | None = Field(default=None, alias="error")
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("workflow_logs", mode="before")
    @classmethod
    def coerce_logs(cls, v):
        return [] if v is None else v

    @field_validator("meta", mode="before")
    @classmethod
    def coerce_meta(cls, v):
        return {} if v is None else v

    @property
    def total_node_count(self) -> int:
        """Nodes in the submitted graph.

        The service declares ``numberOfNodes``; older servers omit it, in which
        case the number of reported results is the best available count.
        """
        if self.declared_node_count:
            return self.declared_node_count
        return len(self.node_results)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def result_for(self, node_id: str) -> NodeResult | None:
        return next((r for r in self.node_results if r.node_id == node_id), None)


def _describe_errors(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_snapshot(raw: Any, run_id: str | None = None) -> ExecutionSnapshot:
    """Validate and normalize a raw payload into an ExecutionSnapshot.

    Args:
        raw: JSON text (str/bytes) or an already-decoded mapping
        run_id: Run id to use when the payload does not carry ``workflowId``

    Returns:
        Validated snapshot (zero nodes and zero logs are valid)

    Raises:
        MalformedPayload: Invalid JSON, or ``status``/``nodes`` missing or mistyped
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayload(f"Snapshot is not valid UTF-8: {e}") from e

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedPayload(f"Invalid JSON in snapshot: {e}") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise MalformedPayload(
            f"Snapshot must be a JSON object, got {type(data).__name__}"
        )
    if "status" not in data:
        raise MalformedPayload("Snapshot is missing required field 'status'")
    if not isinstance(data.get("nodes"), list):
        raise MalformedPayload("Snapshot field 'nodes' must be an array")

    try:
        snapshot = ExecutionSnapshot.model_validate(data)
    except ValidationError as e:
        raise MalformedPayload(f"Snapshot doesn't match schema: {_describe_errors(e)}") from e

    if not snapshot.run_id and run_id:
        snapshot = snapshot.model_copy(update={"run_id": run_id})
    return snapshot
