"""
Entity Store

Authoritative in-memory cache of nodes, connections, groups and group
connections, keyed by id. Entities are treated as immutable values: every
mutation replaces the stored model with an updated copy.

Mutations return True when the store changed and False for a no-op, and
bump ``revision`` only on change. They touch memory only; persistence and
broadcast belong to the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from starlight import arbiter
from starlight.config import CanvasConfig
from starlight.models import (
    Connection,
    Group,
    GroupConnection,
    NetworkTopology,
    Node,
    NodeStatusUpdate,
    NodeType,
    Status,
    StatusSummary,
)


class EditorMode(str, Enum):
    SELECT = "select"
    ADD = "add"
    CONNECT = "connect"
    CONNECT_GROUPS = "connectGroups"
    DELETE = "delete"
    GROUP = "group"


@dataclass
class CanvasState:
    """Viewport transform. Local to this session, never synchronised."""

    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass
class _UiState:
    editor_mode: EditorMode = EditorMode.SELECT
    selected_node_id: Optional[str] = None
    selected_group_id: Optional[str] = None
    connecting_from_id: Optional[str] = None
    connecting_from_group_id: Optional[str] = None
    canvas: CanvasState = field(default_factory=CanvasState)
    ws_connected: bool = False


def _merge(model, changes: Mapping[str, Any], protected: Iterable[str] = ("id",)):
    """Validated copy of ``model`` with known, unprotected fields replaced."""
    fields = type(model).model_fields
    updates = {k: v for k, v in changes.items() if k in fields and k not in protected}
    if not updates:
        return model
    return type(model).model_validate({**model.model_dump(), **updates})


class EntityStore:
    """Topology state plus the editor's scalar UI state."""

    def __init__(self, canvas_config: CanvasConfig | None = None):
        self._canvas_config = canvas_config or CanvasConfig()

        self.nodes: dict[str, Node] = {}
        self.connections: dict[str, Connection] = {}
        self.groups: dict[str, Group] = {}
        self.group_connections: dict[str, GroupConnection] = {}

        self.is_loading = False
        self.error: Optional[str] = None
        self.revision = 0
        self.ui = _UiState()

    def _changed(self) -> bool:
        self.revision += 1
        return True

    # ─────────────────────────────────────────────────────────────
    # Bulk load / snapshot
    # ─────────────────────────────────────────────────────────────

    def load(self, topology: NetworkTopology) -> None:
        """Replace all four collections with a fetched topology."""
        self.nodes = {n.id: n for n in topology.nodes}
        self.connections = {c.id: c for c in topology.connections}
        self.groups = {g.id: g for g in topology.groups}
        self.group_connections = {gc.id: gc for gc in topology.group_connections}
        self._apply_flags(arbiter.normalize(self.connections, self.nodes))
        self.is_loading = False
        self.error = None
        self._changed()

    def snapshot(self) -> NetworkTopology:
        return NetworkTopology(
            nodes=list(self.nodes.values()),
            connections=list(self.connections.values()),
            groups=list(self.groups.values()),
            group_connections=list(self.group_connections.values()),
        )

    # ─────────────────────────────────────────────────────────────
    # Nodes
    # ─────────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> bool:
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        if node.type == NodeType.INTERNET:
            # Connections that arrived before their uplink were never arbitrated
            self._apply_flags(arbiter.normalize(self.connections, self.nodes))
        return self._changed()

    def update_node(self, node_id: str, changes: Mapping[str, Any]) -> bool:
        node = self.nodes.get(node_id)
        if node is None:
            return False

        updated = _merge(node, changes)
        if updated == node:
            return False
        self.nodes[node_id] = updated

        # A node turning into an uplink can expose stale flags on its edges
        if updated.type != node.type and NodeType.INTERNET in (updated.type, node.type):
            self._apply_flags(arbiter.normalize(self.connections, self.nodes))
        return self._changed()

    def update_node_position(self, node_id: str, x: float, y: float) -> bool:
        return self.update_node(node_id, {"position_x": x, "position_y": y})

    def remove_node(self, node_id: str) -> bool:
        """Delete a node and every connection touching it. Groups are untouched."""
        if node_id not in self.nodes:
            return False

        del self.nodes[node_id]
        self.connections = {
            cid: conn
            for cid, conn in self.connections.items()
            if conn.source_node_id != node_id and conn.target_node_id != node_id
        }
        if self.ui.selected_node_id == node_id:
            self.ui.selected_node_id = None
        return self._changed()

    def update_node_status(self, payload: NodeStatusUpdate) -> bool:
        node = self.nodes.get(payload.node_id)
        if node is None:
            return False
        changes = payload.changes()
        if not changes:
            return False
        self.nodes[node.id] = node.model_copy(update=changes)
        return self._changed()

    def batch_update_node_status(self, updates: Iterable[NodeStatusUpdate]) -> bool:
        """Apply many status deltas in one pass over the nodes."""
        by_node = {u.node_id: u for u in updates}
        if not by_node:
            return False

        changed = False
        for node_id, node in self.nodes.items():
            update = by_node.get(node_id)
            if update is None:
                continue
            changes = update.changes()
            if changes:
                self.nodes[node_id] = node.model_copy(update=changes)
                changed = True

        return self._changed() if changed else False

    def assign_node_to_group(self, node_id: str, group_id: Optional[str]) -> bool:
        node = self.nodes.get(node_id)
        if node is None or node.group_id == group_id:
            return False
        self.nodes[node_id] = node.model_copy(update={"group_id": group_id})
        return self._changed()

    # ─────────────────────────────────────────────────────────────
    # Connections
    # ─────────────────────────────────────────────────────────────

    def add_connection(self, connection: Connection) -> bool:
        if connection.id in self.connections:
            return False
        self.connections[connection.id] = connection
        if connection.is_active_source and arbiter.is_internet_sourced(connection, self.nodes):
            # The newest active uplink wins over any existing one
            changes = arbiter.activate(
                self.connections, self.nodes, connection.id, connection.target_node_id
            )
            self._apply_flags(changes)
        return self._changed()

    def update_connection(self, connection_id: str, changes: Mapping[str, Any]) -> bool:
        conn = self.connections.get(connection_id)
        if conn is None:
            return False
        updated = _merge(
            conn,
            changes,
            protected=("id", "is_active_source", "source_node_id", "target_node_id"),
        )
        if updated == conn:
            return False
        self.connections[connection_id] = updated
        return self._changed()

    def remove_connection(self, connection_id: str) -> bool:
        if self.connections.pop(connection_id, None) is None:
            return False
        return self._changed()

    def set_active_source(self, connection_id: str, target_node_id: str) -> bool:
        """
        Make one connection the active uplink for a target.

        Every other internet-sourced connection into ``target_node_id`` that is
        currently active is switched to standby. This is the only path that
        sets the flag to True on an existing connection.
        """
        changes = arbiter.activate(self.connections, self.nodes, connection_id, target_node_id)
        if not changes:
            return False
        self._apply_flags(changes)
        return self._changed()

    def _apply_flags(self, changes: Mapping[str, bool]) -> None:
        for conn_id, flag in changes.items():
            self.connections[conn_id] = self.connections[conn_id].model_copy(
                update={"is_active_source": flag}
            )

    # ─────────────────────────────────────────────────────────────
    # Groups
    # ─────────────────────────────────────────────────────────────

    def add_group(self, group: Group) -> bool:
        if group.id in self.groups:
            return False
        self.groups[group.id] = group
        return self._changed()

    def update_group(self, group_id: str, changes: Mapping[str, Any]) -> bool:
        group = self.groups.get(group_id)
        if group is None:
            return False
        updated = _merge(group, changes)
        if updated == group:
            return False
        self.groups[group_id] = updated
        return self._changed()

    def update_group_position(
        self,
        group_id: str,
        x: float,
        y: float,
        width: float | None = None,
        height: float | None = None,
    ) -> bool:
        changes: dict[str, Any] = {"position_x": x, "position_y": y}
        if width is not None:
            changes["width"] = width
        if height is not None:
            changes["height"] = height
        return self.update_group(group_id, changes)

    def remove_group(self, group_id: str) -> bool:
        """Delete a group, its incident links, and unassign (not delete) its members."""
        if group_id not in self.groups:
            return False

        del self.groups[group_id]
        self.group_connections = {
            gid: link
            for gid, link in self.group_connections.items()
            if link.source_group_id != group_id and link.target_group_id != group_id
        }
        for node_id, node in self.nodes.items():
            if node.group_id == group_id:
                self.nodes[node_id] = node.model_copy(update={"group_id": None})
        if self.ui.selected_group_id == group_id:
            self.ui.selected_group_id = None
        return self._changed()

    def add_group_connection(self, link: GroupConnection) -> bool:
        if link.id in self.group_connections:
            return False
        self.group_connections[link.id] = link
        return self._changed()

    def remove_group_connection(self, link_id: str) -> bool:
        if self.group_connections.pop(link_id, None) is None:
            return False
        return self._changed()

    # ─────────────────────────────────────────────────────────────
    # Layout commit
    # ─────────────────────────────────────────────────────────────

    def apply_layout(
        self,
        node_positions: Mapping[str, tuple[float, float]],
        group_geometry: Mapping[str, tuple[float, float, float, float]],
    ) -> bool:
        """Write a computed layout in one step. Ids no longer present are skipped."""
        changed = False
        for node_id, (x, y) in node_positions.items():
            node = self.nodes.get(node_id)
            if node is not None:
                self.nodes[node_id] = node.model_copy(update={"position_x": x, "position_y": y})
                changed = True
        for group_id, (x, y, width, height) in group_geometry.items():
            group = self.groups.get(group_id)
            if group is not None:
                self.groups[group_id] = group.model_copy(
                    update={"position_x": x, "position_y": y, "width": width, "height": height}
                )
                changed = True
        return self._changed() if changed else False

    # ─────────────────────────────────────────────────────────────
    # UI state (not synchronised)
    # ─────────────────────────────────────────────────────────────

    def set_selected_node(self, node_id: Optional[str]) -> None:
        self.ui.selected_node_id = node_id
        self.ui.selected_group_id = None

    def set_selected_group(self, group_id: Optional[str]) -> None:
        self.ui.selected_group_id = group_id
        self.ui.selected_node_id = None

    def set_editor_mode(self, mode: EditorMode) -> None:
        self.ui.editor_mode = mode
        self.ui.connecting_from_id = None
        self.ui.connecting_from_group_id = None
        if mode != EditorMode.SELECT:
            self.ui.selected_node_id = None

    def start_connecting(self, from_node_id: str) -> None:
        self.ui.connecting_from_id = from_node_id

    def cancel_connecting(self) -> None:
        self.ui.connecting_from_id = None

    def start_connecting_groups(self, from_group_id: str) -> None:
        self.ui.connecting_from_group_id = from_group_id

    def cancel_connecting_groups(self) -> None:
        self.ui.connecting_from_group_id = None

    def _clamp_scale(self, scale: float) -> float:
        return max(self._canvas_config.min_scale, min(self._canvas_config.max_scale, scale))

    def set_canvas_scale(self, scale: float) -> None:
        self.ui.canvas.scale = self._clamp_scale(scale)

    def set_canvas_offset(self, x: float, y: float) -> None:
        self.ui.canvas.offset_x = x
        self.ui.canvas.offset_y = y

    def set_canvas_transform(self, scale: float, offset_x: float, offset_y: float) -> None:
        self.ui.canvas = CanvasState(self._clamp_scale(scale), offset_x, offset_y)

    def reset_canvas(self) -> None:
        self.ui.canvas = CanvasState()

    def set_ws_connected(self, connected: bool) -> None:
        self.ui.ws_connected = connected

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def get_group(self, group_id: str) -> Group | None:
        return self.groups.get(group_id)

    def nodes_in_group(self, group_id: str) -> list[Node]:
        return [n for n in self.nodes.values() if n.group_id == group_id]

    def connections_for_node(self, node_id: str) -> list[Connection]:
        return [
            c
            for c in self.connections.values()
            if c.source_node_id == node_id or c.target_node_id == node_id
        ]

    def group_connections_for_group(self, group_id: str) -> list[GroupConnection]:
        return [
            gc
            for gc in self.group_connections.values()
            if gc.source_group_id == group_id or gc.target_group_id == group_id
        ]

    def status_summary(self) -> StatusSummary:
        """Counts over PROBE nodes only."""
        probes = [n for n in self.nodes.values() if n.type == NodeType.PROBE]
        return StatusSummary(
            total=len(probes),
            online=sum(1 for p in probes if p.status == Status.ONLINE),
            offline=sum(1 for p in probes if p.status == Status.OFFLINE),
            degraded=sum(1 for p in probes if p.status == Status.DEGRADED),
            unknown=sum(1 for p in probes if p.status == Status.UNKNOWN),
            internet_online=sum(1 for p in probes if p.internet_status == Status.ONLINE),
            internet_offline=sum(1 for p in probes if p.internet_status == Status.OFFLINE),
        )
