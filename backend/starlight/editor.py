"""
Topology Editor

User actions against the topology. Edits the user makes directly (drag,
delete, assign, set-active-source) are applied to the Entity Store first
and persisted afterwards. Creations wait for the backend, because the
backend assigns the id; the matching broadcast is then a no-op.

A failed persistence call is logged and leaves local state as it is.
Every action returns the ApiResponse so callers can react.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from starlight.client import TopologyPersistence
from starlight.config import LayoutConfig
from starlight.layout import LayoutResult, auto_arrange
from starlight.models import ApiResponse, ConnectionUpdate, GroupUpdate, NodeUpdate
from starlight.store import EntityStore

logger = logging.getLogger(__name__)


def _rejected(action: str, error: ValidationError) -> ApiResponse:
    """Invalid edit: nothing is applied or sent."""
    logger.warning("%s rejected locally: %s", action, error.errors())
    return ApiResponse.fail(f"Invalid update: {error.error_count()} field error(s)")


class TopologyEditor:
    """Binds an EntityStore to a persistence collaborator."""

    def __init__(
        self,
        store: EntityStore,
        persistence: TopologyPersistence,
        layout_config: LayoutConfig | None = None,
    ):
        self.store = store
        self.persistence = persistence
        self.layout_config = layout_config

    async def _call(self, action: str, call) -> ApiResponse:
        """Await a persistence call, folding exceptions into a failed response."""
        try:
            response = await call
        except Exception as e:
            logger.error("%s failed: %s", action, e)
            return ApiResponse.fail(str(e) or type(e).__name__)

        if not response.success:
            logger.warning("%s rejected: %s", action, response.error)
        return response

    # ─────────────────────────────────────────────────────────────
    # Network
    # ─────────────────────────────────────────────────────────────

    async def fetch_network(self) -> ApiResponse:
        """Replace local state with the backend's full topology."""
        self.store.is_loading = True
        self.store.error = None

        response = await self._call("Fetch network", self.persistence.get_topology())
        if response.success and response.data is not None:
            self.store.load(response.data)
            logger.info(
                "Loaded topology: %d nodes, %d connections, %d groups",
                len(self.store.nodes),
                len(self.store.connections),
                len(self.store.groups),
            )
        else:
            self.store.error = response.error or "Failed to fetch network"
            self.store.is_loading = False
        return response

    # ─────────────────────────────────────────────────────────────
    # Nodes
    # ─────────────────────────────────────────────────────────────

    async def create_node(self, data: dict[str, Any]) -> ApiResponse:
        response = await self._call("Create node", self.persistence.create_node(data))
        if response.success and response.data is not None:
            self.store.add_node(response.data)
        return response

    async def update_node(self, node_id: str, data: dict[str, Any]) -> ApiResponse:
        try:
            update = NodeUpdate.model_validate({**data, "id": node_id})
            self.store.update_node(node_id, update.changes())
        except ValidationError as e:
            return _rejected(f"Update node {node_id}", e)
        response = await self._call(
            f"Update node {node_id}",
            self.persistence.update_node(node_id, update.to_wire(exclude_unset=True, exclude={"id"})),
        )
        if response.success and response.data is not None:
            # Server-side fields such as updated_at
            self.store.update_node(node_id, dict(response.data))
        return response

    async def move_node(self, node_id: str, x: float, y: float) -> ApiResponse:
        self.store.update_node_position(node_id, x, y)
        return await self._call(
            f"Save position of node {node_id}",
            self.persistence.update_node_position(node_id, x, y),
        )

    async def delete_node(self, node_id: str) -> ApiResponse:
        self.store.remove_node(node_id)
        return await self._call(f"Delete node {node_id}", self.persistence.delete_node(node_id))

    # ─────────────────────────────────────────────────────────────
    # Connections
    # ─────────────────────────────────────────────────────────────

    async def create_connection(self, source_node_id: str, target_node_id: str, **fields) -> ApiResponse:
        data = {"sourceNodeId": source_node_id, "targetNodeId": target_node_id, **fields}
        response = await self._call("Create connection", self.persistence.create_connection(data))
        if response.success and response.data is not None:
            self.store.add_connection(response.data)
        self.store.cancel_connecting()
        return response

    async def update_connection(self, connection_id: str, data: dict[str, Any]) -> ApiResponse:
        try:
            update = ConnectionUpdate.model_validate(data)
            self.store.update_connection(connection_id, update.changes())
        except ValidationError as e:
            return _rejected(f"Update connection {connection_id}", e)
        return await self._call(
            f"Update connection {connection_id}",
            self.persistence.update_connection(connection_id, update.to_wire(exclude_unset=True)),
        )

    async def delete_connection(self, connection_id: str) -> ApiResponse:
        self.store.remove_connection(connection_id)
        return await self._call(
            f"Delete connection {connection_id}",
            self.persistence.delete_connection(connection_id),
        )

    async def set_active_source(self, connection_id: str) -> ApiResponse:
        """Make a connection the live uplink for its target node."""
        connection = self.store.connections.get(connection_id)
        if connection is None:
            return ApiResponse.fail(f"Unknown connection: {connection_id}")

        self.store.set_active_source(connection_id, connection.target_node_id)
        return await self._call(
            f"Set active source {connection_id}",
            self.persistence.set_active_source(connection_id),
        )

    # ─────────────────────────────────────────────────────────────
    # Groups
    # ─────────────────────────────────────────────────────────────

    async def create_group(self, data: dict[str, Any]) -> ApiResponse:
        response = await self._call("Create group", self.persistence.create_group(data))
        if response.success and response.data is not None:
            self.store.add_group(response.data)
        return response

    async def update_group(self, group_id: str, data: dict[str, Any]) -> ApiResponse:
        try:
            update = GroupUpdate.model_validate({**data, "id": group_id})
            self.store.update_group(group_id, update.changes())
        except ValidationError as e:
            return _rejected(f"Update group {group_id}", e)
        response = await self._call(
            f"Update group {group_id}",
            self.persistence.update_group(group_id, update.to_wire(exclude_unset=True, exclude={"id"})),
        )
        if response.success and response.data is not None:
            self.store.update_group(group_id, dict(response.data))
        return response

    async def move_group(
        self,
        group_id: str,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> ApiResponse:
        """Move and optionally resize a group."""
        self.store.update_group_position(group_id, x, y, width, height)
        return await self._call(
            f"Save position of group {group_id}",
            self.persistence.update_group_position(group_id, x, y, width, height),
        )

    async def delete_group(self, group_id: str) -> ApiResponse:
        self.store.remove_group(group_id)
        return await self._call(f"Delete group {group_id}", self.persistence.delete_group(group_id))

    async def assign_node_to_group(self, node_id: str, group_id: Optional[str]) -> ApiResponse:
        """Move a node into ``group_id``, or out of its group when None."""
        node = self.store.get_node(node_id)
        if node is None:
            return ApiResponse.fail(f"Unknown node: {node_id}")

        previous = node.group_id
        if previous == group_id:
            return ApiResponse(success=True, data=node)

        self.store.assign_node_to_group(node_id, group_id)
        if group_id is None:
            call = self.persistence.unassign_node(previous, node_id)
        else:
            call = self.persistence.assign_node(group_id, node_id)
        return await self._call(f"Assign node {node_id}", call)

    async def create_group_connection(self, source_group_id: str, target_group_id: str, **fields) -> ApiResponse:
        data = {"sourceGroupId": source_group_id, "targetGroupId": target_group_id, **fields}
        response = await self._call("Create group connection", self.persistence.create_group_connection(data))
        if response.success and response.data is not None:
            self.store.add_group_connection(response.data)
        self.store.cancel_connecting_groups()
        return response

    async def delete_group_connection(self, link_id: str) -> ApiResponse:
        self.store.remove_group_connection(link_id)
        return await self._call(
            f"Delete group connection {link_id}",
            self.persistence.delete_group_connection(link_id),
        )

    # ─────────────────────────────────────────────────────────────
    # Layout
    # ─────────────────────────────────────────────────────────────

    async def auto_arrange(self) -> LayoutResult:
        return await auto_arrange(self.store, self.persistence, self.layout_config)
