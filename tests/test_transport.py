"""Tests for the HTTP client, using httpx.MockTransport in place of the service."""

from __future__ import annotations

import asyncio
import json
import uuid

import httpx
import pytest
from helpers import make_payload, service_body

from flowmon.core.config import ClientConfig
from flowmon.core.errors import MalformedPayload, NotInitialized, TransportFailure
from flowmon.core.snapshot import RunStatus, parse_snapshot
from flowmon.core.transport import WorkflowClient


def call(handler, method: str, *args):
    """Invoke one client method against a mock handler."""

    async def scenario():
        async with WorkflowClient(ClientConfig(), transport=httpx.MockTransport(handler)) as client:
            return await getattr(client, method)(*args)

    return asyncio.run(scenario())


# =============================================================================
# Submit
# =============================================================================


class TestSubmit:
    """Tests for WorkflowClient.submit."""

    def test_submit_posts_graph(self, sample_graph):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"ok": True})

        run_id = call(handler, "submit", sample_graph)

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/workflow"
        body = json.loads(request.content)
        assert body["id"] == run_id
        assert [n["id"] for n in body["nodes"]] == ["start", "pause", "fetch"]
        assert len(body["edges"]) == 2
        uuid.UUID(run_id)

    def test_submit_accepts_200(self, sample_graph):
        run_id = call(lambda r: httpx.Response(200), "submit", sample_graph, "fixed-id")
        assert run_id == "fixed-id"

    def test_submit_rejects_server_error(self, sample_graph):
        with pytest.raises(TransportFailure) as exc_info:
            call(lambda r: httpx.Response(500, text="boom"), "submit", sample_graph)
        assert exc_info.value.status_code == 500

    def test_submit_network_error(self, sample_graph):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailure, match="failed") as exc_info:
            call(handler, "submit", sample_graph)
        assert exc_info.value.status_code is None

    def test_submit_timeout(self, sample_graph):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportFailure, match="timed out"):
            call(handler, "submit", sample_graph)

    def test_fresh_run_ids(self, sample_graph):
        ids = {call(lambda r: httpx.Response(201), "submit", sample_graph) for _ in range(3)}
        assert len(ids) == 3


# =============================================================================
# Fetch Status
# =============================================================================


class TestFetchStatus:
    """Tests for WorkflowClient.fetch_status."""

    def test_returns_embedded_document(self):
        payload = make_payload(status="success")
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=service_body(payload))

        raw = call(handler, "fetch_status", "run-1")
        assert seen[0].url.path == "/v1/workflow/run-1"
        assert parse_snapshot(raw).status == RunStatus.SUCCESS

    def test_object_results_are_accepted(self):
        payload = make_payload(status="running")
        raw = call(
            lambda r: httpx.Response(200, json={"data": {"results": payload}}),
            "fetch_status",
            "run-1",
        )
        assert json.loads(raw) == payload

    def test_not_found(self):
        with pytest.raises(TransportFailure) as exc_info:
            call(lambda r: httpx.Response(404), "fetch_status", "run-1")
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("run_id", ["", "   "])
    def test_empty_run_id(self, run_id):
        with pytest.raises(NotInitialized, match="Invalid workflow ID"):
            call(lambda r: httpx.Response(200), "fetch_status", run_id)

    def test_empty_body(self):
        with pytest.raises(MalformedPayload, match="No data"):
            call(lambda r: httpx.Response(200, content=b""), "fetch_status", "run-1")

    def test_non_json_body(self):
        with pytest.raises(MalformedPayload, match="not JSON"):
            call(lambda r: httpx.Response(200, text="<html>"), "fetch_status", "run-1")

    def test_missing_data(self):
        with pytest.raises(MalformedPayload, match="missing data"):
            call(lambda r: httpx.Response(200, json={"status": "ok"}), "fetch_status", "run-1")

    def test_missing_results(self):
        with pytest.raises(MalformedPayload, match="missing results"):
            call(lambda r: httpx.Response(200, json={"data": {"other": 1}}), "fetch_status", "run-1")

    def test_invalid_embedded_json(self):
        with pytest.raises(MalformedPayload, match="Invalid JSON"):
            call(
                lambda r: httpx.Response(200, json={"data": {"results": "{oops"}}),
                "fetch_status",
                "run-1",
            )


class TestClientConfigWiring:
    """Tests for how config reaches the HTTP client."""

    def test_base_url_from_config(self, sample_graph):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201)

        async def scenario():
            config = ClientConfig(host="workers", port=9000, ssl=True, api_version="V2")
            async with WorkflowClient(config, transport=httpx.MockTransport(handler)) as client:
                await client.submit(sample_graph)

        asyncio.run(scenario())
        assert str(seen[0].url) == "https://workers:9000/v2/workflow"
        assert seen[0].headers["content-type"] == "application/json"
