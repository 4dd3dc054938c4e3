"""HTTP client for the workflow service.

Two calls make up the whole wire contract:

- ``POST /workflow`` with ``{nodes, edges, id}``; 200 or 201 means accepted.
  The run id is generated on the client and returned to the caller.
- ``GET /workflow/{id}`` returning ``{"data": {"results": "<snapshot JSON>"}}``.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

import httpx

from flowmon.core.config import ClientConfig
from flowmon.core.errors import MalformedPayload, NotInitialized, TransportFailure
from flowmon.core.graph_schema import WorkflowGraph

logger = logging.getLogger(__name__)

SUBMIT_OK_STATUSES = (200, 201)


def new_run_id() -> str:
    return str(uuid.uuid4())


class WorkflowClient:
    """Async client for submitting graphs and fetching run status.

    USAGE:
        async with WorkflowClient(config) as client:
            run_id = await client.submit(graph)
            raw = await client.fetch_status(run_id)
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=self.config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> WorkflowClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{method} {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{method} {path} failed: {e}") from e

    async def submit(self, graph: WorkflowGraph, run_id: str | None = None) -> str:
        """Submit a graph for execution.

        Args:
            graph: Graph to run (validated by the caller)
            run_id: Id to use; a fresh UUID4 is generated when omitted

        Returns:
            The run id

        Raises:
            TransportFailure: Network error or a status other than 200/201
        """
        run_id = run_id or new_run_id()
        payload = graph.to_payload(run_id)
        response = await self._request("POST", "/workflow", json=payload)

        if response.status_code not in SUBMIT_OK_STATUSES:
            logger.error(f"Unexpected status {response.status_code} submitting workflow")
            raise TransportFailure(
                f"Server returned status {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"Workflow submitted with ID: {run_id}")
        return run_id

    async def fetch_status(self, run_id: str) -> str:
        """Fetch the raw snapshot JSON for a run.

        Returns:
            The embedded snapshot document (JSON text), not yet parsed

        Raises:
            NotInitialized: Empty run id
            TransportFailure: Network error or a status other than 200
            MalformedPayload: Missing body, missing ``data.results`` or invalid embedded JSON
        """
        if not run_id or not run_id.strip():
            raise NotInitialized("Invalid workflow ID provided")

        response = await self._request("GET", f"/workflow/{run_id}")
        if response.status_code != 200:
            raise TransportFailure(
                f"Server returned status {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            raise MalformedPayload("No data received from server")
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedPayload(f"Response body is not JSON: {e}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data or not isinstance(data, dict):
            raise MalformedPayload("Invalid response structure: missing data field")

        results = data.get("results")
        if not results:
            raise MalformedPayload("Invalid response structure: missing results field")

        if isinstance(results, str):
            try:
                json.loads(results)
            except json.JSONDecodeError as e:
                raise MalformedPayload("Invalid JSON in results field") from e
            return results
        # Some deployments embed the document directly rather than as text
        return json.dumps(results)
