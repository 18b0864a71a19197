"""Contract the engine expects from the topology backend."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from starlight.models import (
    ApiResponse,
    Connection,
    Group,
    GroupConnection,
    NetworkTopology,
    Node,
)


class TopologyPersistence(Protocol):
    """
    CRUD plus position updates for each entity type.

    Implementations report failure through ``ApiResponse.success`` rather
    than raising. Callers treat a failed response exactly like a network
    error: log it and leave local state alone.
    """

    async def get_topology(self) -> ApiResponse[NetworkTopology]: ...

    async def create_node(self, data: dict[str, Any]) -> ApiResponse[Node]: ...

    async def update_node(self, node_id: str, data: dict[str, Any]) -> ApiResponse[Node]: ...

    async def update_node_position(self, node_id: str, x: float, y: float) -> ApiResponse[Node]: ...

    async def delete_node(self, node_id: str) -> ApiResponse[None]: ...

    async def create_connection(self, data: dict[str, Any]) -> ApiResponse[Connection]: ...

    async def update_connection(self, connection_id: str, data: dict[str, Any]) -> ApiResponse[Connection]: ...

    async def delete_connection(self, connection_id: str) -> ApiResponse[None]: ...

    async def set_active_source(self, connection_id: str) -> ApiResponse[Connection]: ...

    async def create_group(self, data: dict[str, Any]) -> ApiResponse[Group]: ...

    async def update_group(self, group_id: str, data: dict[str, Any]) -> ApiResponse[Group]: ...

    async def update_group_position(
        self,
        group_id: str,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> ApiResponse[Group]: ...

    async def delete_group(self, group_id: str) -> ApiResponse[None]: ...

    async def assign_node(self, group_id: str, node_id: str) -> ApiResponse[Node]: ...

    async def unassign_node(self, group_id: str, node_id: str) -> ApiResponse[Node]: ...

    async def create_group_connection(self, data: dict[str, Any]) -> ApiResponse[GroupConnection]: ...

    async def delete_group_connection(self, link_id: str) -> ApiResponse[None]: ...
