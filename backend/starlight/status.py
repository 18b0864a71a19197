"""
Status Aggregator

Derives connection, group and group-connection status from raw node status.
Nothing here is stored: every view is recomputed from the Entity Store on
read, and entities with a dangling endpoint are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from starlight.models import Connection, Node, NodeType, Status

if TYPE_CHECKING:
    from starlight.store import EntityStore


STATUS_COLORS = {
    Status.ONLINE: "#39ff14",
    Status.OFFLINE: "#ff2a6d",
    Status.DEGRADED: "#fffc00",
    Status.UNKNOWN: "#6b7280",
}

ACTIVE_SOURCE_COLOR = "#39ff14"
STANDBY_SOURCE_COLOR = "#ff6b35"


class ConnectionState(str, Enum):
    NORMAL = "NORMAL"  # Both endpoints fine; use the connection's own colour
    OFFLINE = "OFFLINE"
    DEGRADED = "DEGRADED"
    ACTIVE = "ACTIVE"  # Internet uplink carrying traffic
    STANDBY = "STANDBY"  # Internet uplink held in reserve


class GroupStatus(str, Enum):
    INTERNET = "INTERNET"
    LOCAL = "LOCAL"
    OFFLINE = "OFFLINE"
    UNKNOWN = "UNKNOWN"


GROUP_STATUS_COLORS = {
    GroupStatus.INTERNET: "#39ff14",
    GroupStatus.LOCAL: "#ff6b35",
    GroupStatus.OFFLINE: "#ff2a6d",
    GroupStatus.UNKNOWN: "#6b7280",
}


@dataclass(frozen=True)
class ConnectionView:
    connection_id: str
    state: ConnectionState
    color: str


@dataclass(frozen=True)
class GroupView:
    group_id: str
    status: GroupStatus
    color: str
    member_count: int


@dataclass(frozen=True)
class GroupConnectionView:
    group_connection_id: str
    status: GroupStatus
    color: str


# ─────────────────────────────────────────────────────────────────────────────
# Connections
# ─────────────────────────────────────────────────────────────────────────────


def connection_state(connection: Connection, source: Node, target: Node) -> ConnectionState:
    """
    Display state of a node-to-node connection.

    Internet uplinks use ACTIVE/STANDBY/OFFLINE driven by the source node and
    the active-source flag. Everything else goes OFFLINE if either endpoint is
    offline, then DEGRADED if either is degraded, otherwise NORMAL.
    """
    if source.type == NodeType.INTERNET:
        if source.internet_status == Status.OFFLINE or source.status == Status.OFFLINE:
            return ConnectionState.OFFLINE
        if connection.is_active_source:
            return ConnectionState.ACTIVE
        return ConnectionState.STANDBY

    if source.status == Status.OFFLINE or target.status == Status.OFFLINE:
        return ConnectionState.OFFLINE
    if source.status == Status.DEGRADED or target.status == Status.DEGRADED:
        return ConnectionState.DEGRADED
    return ConnectionState.NORMAL


def connection_color(connection: Connection, state: ConnectionState) -> str:
    if state == ConnectionState.OFFLINE:
        return STATUS_COLORS[Status.OFFLINE]
    if state == ConnectionState.DEGRADED:
        return STATUS_COLORS[Status.DEGRADED]
    if state == ConnectionState.ACTIVE:
        return ACTIVE_SOURCE_COLOR
    if state == ConnectionState.STANDBY:
        return STANDBY_SOURCE_COLOR
    return connection.color


def connection_view(store: EntityStore, connection_id: str) -> ConnectionView | None:
    connection = store.connections.get(connection_id)
    if connection is None:
        return None
    source = store.nodes.get(connection.source_node_id)
    target = store.nodes.get(connection.target_node_id)
    if source is None or target is None:
        return None

    state = connection_state(connection, source, target)
    return ConnectionView(connection.id, state, connection_color(connection, state))


def connection_views(store: EntityStore) -> list[ConnectionView]:
    views = (connection_view(store, conn_id) for conn_id in list(store.connections))
    return [v for v in views if v is not None]


# ─────────────────────────────────────────────────────────────────────────────
# Groups
# ─────────────────────────────────────────────────────────────────────────────


def _has_internet(node: Node) -> bool:
    if node.internet_status == Status.ONLINE:
        return True
    return node.type == NodeType.INTERNET and node.status in (Status.ONLINE, Status.DEGRADED)


def group_status(members: Iterable[Node]) -> GroupStatus:
    """
    Aggregate status of a group, in strict precedence order:

    1. No members: UNKNOWN
    2. Any member with internet connectivity: INTERNET
    3. Any member ONLINE or DEGRADED: LOCAL
    4. Every member OFFLINE: OFFLINE
    5. Otherwise: UNKNOWN
    """
    members = list(members)
    if not members:
        return GroupStatus.UNKNOWN
    if any(_has_internet(n) for n in members):
        return GroupStatus.INTERNET
    if any(n.status in (Status.ONLINE, Status.DEGRADED) for n in members):
        return GroupStatus.LOCAL
    if all(n.status == Status.OFFLINE for n in members):
        return GroupStatus.OFFLINE
    return GroupStatus.UNKNOWN


def combine_group_statuses(source: GroupStatus, target: GroupStatus) -> GroupStatus:
    """Status of a link between two groups."""
    # OFFLINE only when both ends are; OFFLINE with UNKNOWN stays UNKNOWN
    if source == GroupStatus.OFFLINE and target == GroupStatus.OFFLINE:
        return GroupStatus.OFFLINE
    if GroupStatus.INTERNET in (source, target):
        return GroupStatus.INTERNET
    if GroupStatus.LOCAL in (source, target):
        return GroupStatus.LOCAL
    return GroupStatus.UNKNOWN


def group_view(store: EntityStore, group_id: str) -> GroupView | None:
    if group_id not in store.groups:
        return None
    members = store.nodes_in_group(group_id)
    status = group_status(members)
    return GroupView(group_id, status, GROUP_STATUS_COLORS[status], len(members))


def group_views(store: EntityStore) -> list[GroupView]:
    return [group_view(store, group_id) for group_id in list(store.groups)]


def group_connection_view(store: EntityStore, group_connection_id: str) -> GroupConnectionView | None:
    link = store.group_connections.get(group_connection_id)
    if link is None:
        return None
    if link.source_group_id not in store.groups or link.target_group_id not in store.groups:
        return None

    status = combine_group_statuses(
        group_status(store.nodes_in_group(link.source_group_id)),
        group_status(store.nodes_in_group(link.target_group_id)),
    )
    return GroupConnectionView(link.id, status, GROUP_STATUS_COLORS[status])


def group_connection_views(store: EntityStore) -> list[GroupConnectionView]:
    views = (group_connection_view(store, gc_id) for gc_id in list(store.group_connections))
    return [v for v in views if v is not None]

