"""Builders and fakes shared by the test modules."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx


def make_payload(
    status: str = "running",
    nodes: list[dict[str, Any]] | None = None,
    logs: list[str] | None = None,
    number_of_nodes: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a snapshot document in the service's wire shape."""
    payload: dict[str, Any] = {
        "workflowId": extra.pop("workflowId", "run-1"),
        "status": status,
        "startedAt": 1700000000,
        "endedAt": 0,
        "durationMs": 0,
        "nodes": nodes if nodes is not None else [],
        "logs": logs if logs is not None else [],
        "error": None,
        "meta": {},
    }
    if number_of_nodes is not None:
        payload["numberOfNodes"] = number_of_nodes
    payload.update(extra)
    return payload


def node_result(node_id: str, status: str = "success", logs: list[str] | None = None, **extra) -> dict:
    """Build one entry of the snapshot's ``nodes`` array."""
    result = {
        "nodeId": node_id,
        "nodeType": extra.pop("nodeType", "httpRequestNode"),
        "status": status,
        "timestamp": 1700000001,
        "durationMs": extra.pop("durationMs", 12),
        "logs": logs if logs is not None else [],
        "result": extra.pop("result", {"ok": True}),
        "error": None,
        "meta": None,
    }
    result.update(extra)
    return result


def service_body(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a snapshot the way ``GET /workflow/{id}`` returns it."""
    return {"data": {"results": json.dumps(payload)}}


class FakeStatusSource:
    """Scriptable stand-in for WorkflowClient.fetch_status.

    Each call pops the next scripted response: a payload dict is returned as
    JSON text, an exception instance is raised. The last response repeats
    once the script runs out. When ``gate`` is set, each call waits for it
    before answering, which lets a test hold a fetch in flight.
    """

    def __init__(self, responses: list[Any], gate: asyncio.Event | None = None):
        self.responses = list(responses)
        self.gate = gate
        self.calls: list[str] = []
        self.started = asyncio.Event()

    async def fetch_status(self, run_id: str) -> str:
        self.calls.append(run_id)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return json.dumps(response)


class FakeService:
    """httpx.MockTransport handler standing in for the workflow service.

    Accepts submissions with ``submit_status`` and answers status requests by
    replaying ``payloads`` (the last one repeats). A non-200 ``status_code``
    makes every status request fail with that code.
    """

    def __init__(self, payloads, submit_status: int = 201, status_code: int = 200):
        self.payloads = list(payloads)
        self.submit_status = submit_status
        self.status_code = status_code
        self.submitted = []
        self.status_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.submitted.append(request)
            return httpx.Response(self.submit_status)
        self.status_requests += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        payload = self.payloads.pop(0) if len(self.payloads) > 1 else self.payloads[0]
        return httpx.Response(200, json=service_body(payload))
