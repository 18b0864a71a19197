"""
Active-Source Arbiter

Among connections sourced from INTERNET nodes that feed the same target,
at most one may carry ``is_active_source = True``. These helpers compute
the flag changes needed to keep that true; the Entity Store applies them.
"""

from __future__ import annotations

from collections.abc import Mapping

from starlight.models import Connection, Node, NodeType


def is_internet_sourced(connection: Connection, nodes: Mapping[str, Node]) -> bool:
    source = nodes.get(connection.source_node_id)
    return source is not None and source.type == NodeType.INTERNET


def activate(
    connections: Mapping[str, Connection],
    nodes: Mapping[str, Node],
    connection_id: str,
    target_node_id: str,
) -> dict[str, bool]:
    """
    Flag changes that make ``connection_id`` the active source for a target.

    Returns a mapping of connection id to the new flag value, containing only
    connections whose flag actually changes. An unknown ``connection_id``
    yields no changes. The connection's own target is authoritative; a
    differing ``target_node_id`` is ignored.
    """
    if connection_id not in connections:
        return {}
    target_node_id = connections[connection_id].target_node_id

    changes: dict[str, bool] = {}
    if not connections[connection_id].is_active_source:
        changes[connection_id] = True

    for conn in connections.values():
        if conn.id == connection_id:
            continue
        if (
            conn.target_node_id == target_node_id
            and conn.is_active_source
            and is_internet_sourced(conn, nodes)
        ):
            changes[conn.id] = False

    return changes


def normalize(
    connections: Mapping[str, Connection],
    nodes: Mapping[str, Node],
) -> dict[str, bool]:
    """
    Flag changes that repair exclusivity across the whole collection.

    The first active internet-sourced connection per target (in collection
    order) keeps its flag; later ones are cleared.
    """
    seen_targets: set[str] = set()
    changes: dict[str, bool] = {}

    for conn in connections.values():
        if not conn.is_active_source or not is_internet_sourced(conn, nodes):
            continue
        if conn.target_node_id in seen_targets:
            changes[conn.id] = False
        else:
            seen_targets.add(conn.target_node_id)

    return changes


def violations(
    connections: Mapping[str, Connection],
    nodes: Mapping[str, Node],
) -> dict[str, list[str]]:
    """Targets that currently have more than one active internet source."""
    active: dict[str, list[str]] = {}
    for conn in connections.values():
        if conn.is_active_source and is_internet_sourced(conn, nodes):
            active.setdefault(conn.target_node_id, []).append(conn.id)
    return {target: ids for target, ids in active.items() if len(ids) > 1}
