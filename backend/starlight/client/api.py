"""
Starlight REST Client

Async client for the topology backend's REST API. Every response is
wrapped as ``{"success": bool, "data": ..., "error": ...}``; transport
errors and HTTP error codes are folded into the same shape so callers never
see an exception.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from starlight.config import get_config, settings
from starlight.models import (
    ApiResponse,
    Connection,
    Group,
    GroupConnection,
    NetworkTopology,
    Node,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StarlightApiClient:
    """
    Async client implementing ``TopologyPersistence``.

    Usage:
        async with StarlightApiClient() as client:
            response = await client.get_topology()
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or get_config().api.timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "StarlightApiClient":
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        model: type[M] | None = None,
        json: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Make a request and normalise the result into an ApiResponse."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        try:
            response = await self._client.request(method, endpoint, json=json)
        except httpx.HTTPError as e:
            logger.error("API %s %s failed: %s", method, endpoint, e)
            return ApiResponse.fail(str(e) or type(e).__name__)

        if response.status_code == 401:
            return ApiResponse.fail("Unauthorized - please log in again")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            error = body.get("error") if isinstance(body, dict) else None
            return ApiResponse.fail(error or f"HTTP error: {response.status_code}")

        if not isinstance(body, dict):
            return ApiResponse.fail("Malformed response body")

        data = body.get("data")
        if model is not None and data is not None:
            try:
                data = model.model_validate(data)
            except ValidationError as e:
                logger.warning("API %s %s returned unexpected data: %s", method, endpoint, e)
                return ApiResponse.fail("Malformed response data")

        return ApiResponse(
            success=bool(body.get("success", True)),
            data=data,
            error=body.get("error"),
            message=body.get("message"),
        )

    # ─────────────────────────────────────────────────────────────
    # Network
    # ─────────────────────────────────────────────────────────────

    async def get_topology(self) -> ApiResponse[NetworkTopology]:
        """Full topology: nodes, connections, groups and group connections."""
        return await self._request("GET", "/api/network", NetworkTopology)

    # ─────────────────────────────────────────────────────────────
    # Nodes
    # ─────────────────────────────────────────────────────────────

    async def create_node(self, data: dict[str, Any]) -> ApiResponse[Node]:
        return await self._request("POST", "/api/nodes", Node, json=data)

    async def update_node(self, node_id: str, data: dict[str, Any]) -> ApiResponse[Node]:
        return await self._request("PUT", f"/api/nodes/{node_id}", Node, json=data)

    async def update_node_position(self, node_id: str, x: float, y: float) -> ApiResponse[Node]:
        return await self._request(
            "PATCH",
            f"/api/nodes/{node_id}/position",
            Node,
            json={"positionX": x, "positionY": y},
        )

    async def delete_node(self, node_id: str) -> ApiResponse[None]:
        return await self._request("DELETE", f"/api/nodes/{node_id}")

    # ─────────────────────────────────────────────────────────────
    # Connections
    # ─────────────────────────────────────────────────────────────

    async def create_connection(self, data: dict[str, Any]) -> ApiResponse[Connection]:
        return await self._request("POST", "/api/connections", Connection, json=data)

    async def update_connection(self, connection_id: str, data: dict[str, Any]) -> ApiResponse[Connection]:
        return await self._request("PUT", f"/api/connections/{connection_id}", Connection, json=data)

    async def delete_connection(self, connection_id: str) -> ApiResponse[None]:
        return await self._request("DELETE", f"/api/connections/{connection_id}")

    async def set_active_source(self, connection_id: str) -> ApiResponse[Connection]:
        """Mark an internet connection as the active source for its target."""
        return await self._request("PATCH", f"/api/connections/{connection_id}/set-active", Connection)

    # ─────────────────────────────────────────────────────────────
    # Groups
    # ─────────────────────────────────────────────────────────────

    async def create_group(self, data: dict[str, Any]) -> ApiResponse[Group]:
        return await self._request("POST", "/api/groups", Group, json=data)

    async def update_group(self, group_id: str, data: dict[str, Any]) -> ApiResponse[Group]:
        return await self._request("PUT", f"/api/groups/{group_id}", Group, json=data)

    async def update_group_position(
        self,
        group_id: str,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> ApiResponse[Group]:
        body: dict[str, Any] = {"positionX": x, "positionY": y}
        if width is not None:
            body["width"] = width
        if height is not None:
            body["height"] = height
        return await self._request("PATCH", f"/api/groups/{group_id}/position", Group, json=body)

    async def delete_group(self, group_id: str) -> ApiResponse[None]:
        return await self._request("DELETE", f"/api/groups/{group_id}")

    async def assign_node(self, group_id: str, node_id: str) -> ApiResponse[Node]:
        return await self._request(
            "POST", f"/api/groups/{group_id}/assign-node", Node, json={"nodeId": node_id}
        )

    async def unassign_node(self, group_id: str, node_id: str) -> ApiResponse[Node]:
        return await self._request(
            "POST", f"/api/groups/{group_id}/unassign-node", Node, json={"nodeId": node_id}
        )

    # ─────────────────────────────────────────────────────────────
    # Group connections
    # ─────────────────────────────────────────────────────────────

    async def create_group_connection(self, data: dict[str, Any]) -> ApiResponse[GroupConnection]:
        return await self._request("POST", "/api/group-connections", GroupConnection, json=data)

    async def delete_group_connection(self, link_id: str) -> ApiResponse[None]:
        return await self._request("DELETE", f"/api/group-connections/{link_id}")
