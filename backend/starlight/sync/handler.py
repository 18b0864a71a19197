"""
Sync Protocol Handler

Applies the ordered stream of topology events to the Entity Store. Every
rule is idempotent against the store's current contents:

- create for an id already present: no-op (replay, or our own optimistic add)
- update for an absent id: no-op (late delivery after a delete)
- delete for an absent id: no-op
- batch status: one store mutation for the whole batch
- active-source change: same arbiter path as a local user action

Malformed or unknown events are logged and dropped; nothing raises out of
``apply`` so one bad message cannot stall the stream.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from starlight.models import NetworkTopology
from starlight.models.events import (
    EVENT_MODELS,
    KNOWN_EVENT_TYPES,
    ActiveSourceChangedEvent,
    BatchStatusUpdateEvent,
    ConnectionCreatedEvent,
    ConnectionDeletedEvent,
    EventType,
    GroupConnectionCreatedEvent,
    GroupConnectionDeletedEvent,
    GroupCreatedEvent,
    GroupDeletedEvent,
    GroupUpdatedEvent,
    NodeCreatedEvent,
    NodeDeletedEvent,
    NodeGroupChangedEvent,
    NodeStatusUpdateEvent,
    NodeUpdatedEvent,
    PingEvent,
    TopologyEvent,
    topology_event_adapter,
)
from starlight.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class SyncStats:
    applied: int = 0
    no_op: int = 0
    ignored: int = 0
    malformed: int = 0


class SyncHandler:
    """Feeds inbound events into an EntityStore."""

    # Every EventType must have an entry; checked at import time below
    _DISPATCH: dict[EventType, str] = {
        EventType.NODE_STATUS_UPDATE: "_on_node_status",
        EventType.BATCH_STATUS_UPDATE: "_on_batch_status",
        EventType.NODE_CREATED: "_on_node_created",
        EventType.NODE_UPDATED: "_on_node_updated",
        EventType.NODE_DELETED: "_on_node_deleted",
        EventType.CONNECTION_CREATED: "_on_connection_created",
        EventType.CONNECTION_DELETED: "_on_connection_deleted",
        EventType.CONNECTION_ACTIVE_SOURCE_CHANGED: "_on_active_source_changed",
        EventType.GROUP_CREATED: "_on_group_created",
        EventType.GROUP_UPDATED: "_on_group_updated",
        EventType.GROUP_DELETED: "_on_group_deleted",
        EventType.GROUP_CONNECTION_CREATED: "_on_group_connection_created",
        EventType.GROUP_CONNECTION_DELETED: "_on_group_connection_deleted",
        EventType.NODE_GROUP_CHANGED: "_on_node_group_changed",
        EventType.PING: "_on_ping",
    }

    def __init__(self, store: EntityStore):
        self.store = store
        self.stats = SyncStats()

    # ─────────────────────────────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────────────────────────────

    def parse(self, raw: Any) -> TopologyEvent | None:
        """Decode an envelope from JSON text, bytes or a dict. None if unusable."""
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                logger.warning("Dropping undecodable event: %s", e)
                self.stats.malformed += 1
                return None

        if not isinstance(raw, dict):
            logger.warning("Dropping event that is not an object: %r", type(raw).__name__)
            self.stats.malformed += 1
            return None

        event_type = raw.get("type")
        if event_type not in KNOWN_EVENT_TYPES:
            logger.debug("Ignoring unknown event type: %r", event_type)
            self.stats.ignored += 1
            return None

        try:
            return topology_event_adapter.validate_python(raw)
        except ValidationError as e:
            logger.warning("Dropping malformed %s event: %s", event_type, e.errors())
            self.stats.malformed += 1
            return None

    def apply(self, raw: Any) -> bool:
        """Apply one event. Returns True if the store changed."""
        event = raw if isinstance(raw, EVENT_MODELS) else self.parse(raw)
        if event is None:
            return False
        if event.type == EventType.PING.value:
            return False

        handler = getattr(self, self._DISPATCH[EventType(event.type)])
        try:
            changed = handler(event)
        except ValidationError as e:
            logger.warning("Rejected %s payload: %s", event.type, e.errors())
            self.stats.malformed += 1
            return False

        if changed:
            self.stats.applied += 1
        else:
            self.stats.no_op += 1
            logger.debug("%s was a no-op", event.type)
        return changed

    def absorb_snapshot(self, topology: NetworkTopology) -> int:
        """
        Merge a full-state snapshot as a run of creation events.

        Used after a transport reconnect. Entities already present are left
        as they are. Returns the number of entities added.
        """
        added = 0
        for node in topology.nodes:
            added += self.store.add_node(node)
        for group in topology.groups:
            added += self.store.add_group(group)
        for connection in topology.connections:
            added += self.store.add_connection(connection)
        for link in topology.group_connections:
            added += self.store.add_group_connection(link)

        logger.info("Absorbed snapshot: %d new entities", added)
        return added

    # ─────────────────────────────────────────────────────────────
    # Per-event rules
    # ─────────────────────────────────────────────────────────────

    def _on_node_status(self, event: NodeStatusUpdateEvent) -> bool:
        return self.store.update_node_status(event.payload)

    def _on_batch_status(self, event: BatchStatusUpdateEvent) -> bool:
        return self.store.batch_update_node_status(event.payload.updates)

    def _on_node_created(self, event: NodeCreatedEvent) -> bool:
        return self.store.add_node(event.payload)

    def _on_node_updated(self, event: NodeUpdatedEvent) -> bool:
        return self.store.update_node(event.payload.id, event.payload.changes())

    def _on_node_deleted(self, event: NodeDeletedEvent) -> bool:
        return self.store.remove_node(event.payload.id)

    def _on_connection_created(self, event: ConnectionCreatedEvent) -> bool:
        return self.store.add_connection(event.payload)

    def _on_connection_deleted(self, event: ConnectionDeletedEvent) -> bool:
        return self.store.remove_connection(event.payload.id)

    def _on_active_source_changed(self, event: ActiveSourceChangedEvent) -> bool:
        change = event.payload
        if not change.is_active_source:
            # Deactivation only ever happens as a side effect of activation
            return False
        return self.store.set_active_source(change.connection_id, change.target_node_id)

    def _on_group_created(self, event: GroupCreatedEvent) -> bool:
        return self.store.add_group(event.payload)

    def _on_group_updated(self, event: GroupUpdatedEvent) -> bool:
        return self.store.update_group(event.payload.id, event.payload.changes())

    def _on_group_deleted(self, event: GroupDeletedEvent) -> bool:
        return self.store.remove_group(event.payload.id)

    def _on_group_connection_created(self, event: GroupConnectionCreatedEvent) -> bool:
        return self.store.add_group_connection(event.payload)

    def _on_group_connection_deleted(self, event: GroupConnectionDeletedEvent) -> bool:
        return self.store.remove_group_connection(event.payload.id)

    def _on_node_group_changed(self, event: NodeGroupChangedEvent) -> bool:
        return self.store.assign_node_to_group(event.payload.node_id, event.payload.group_id)

    def _on_ping(self, event: PingEvent) -> bool:
        return False


_missing = set(EventType) - set(SyncHandler._DISPATCH)
if _missing:
    raise RuntimeError(f"SyncHandler has no rule for: {sorted(t.value for t in _missing)}")
