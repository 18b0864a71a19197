"""Inbound topology event envelopes.

Every event is ``{type, payload, timestamp}``. The ``type`` tag selects the
payload model, so each kind is a distinct class in the ``TopologyEvent``
union rather than a loosely typed dict.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import Field, TypeAdapter

from .base import WireModel
from .connection import Connection, GroupConnection
from .group import Group, GroupUpdate
from .node import Node, NodeStatusUpdate, NodeUpdate


class EventType(str, Enum):
    NODE_STATUS_UPDATE = "NODE_STATUS_UPDATE"
    BATCH_STATUS_UPDATE = "BATCH_STATUS_UPDATE"
    NODE_CREATED = "NODE_CREATED"
    NODE_UPDATED = "NODE_UPDATED"
    NODE_DELETED = "NODE_DELETED"
    CONNECTION_CREATED = "CONNECTION_CREATED"
    CONNECTION_DELETED = "CONNECTION_DELETED"
    CONNECTION_ACTIVE_SOURCE_CHANGED = "CONNECTION_ACTIVE_SOURCE_CHANGED"
    GROUP_CREATED = "GROUP_CREATED"
    GROUP_UPDATED = "GROUP_UPDATED"
    GROUP_DELETED = "GROUP_DELETED"
    GROUP_CONNECTION_CREATED = "GROUP_CONNECTION_CREATED"
    GROUP_CONNECTION_DELETED = "GROUP_CONNECTION_DELETED"
    NODE_GROUP_CHANGED = "NODE_GROUP_CHANGED"
    PING = "PING"


# ─────────────────────────────────────────────────────────────────────────────
# Payloads
# ─────────────────────────────────────────────────────────────────────────────


class EntityRef(WireModel):
    id: str


class BatchStatusPayload(WireModel):
    updates: list[NodeStatusUpdate] = []


class ActiveSourceChange(WireModel):
    connection_id: str
    target_node_id: str
    is_active_source: bool = True


class NodeGroupChange(WireModel):
    node_id: str
    group_id: Optional[str]


# ─────────────────────────────────────────────────────────────────────────────
# Envelopes
# ─────────────────────────────────────────────────────────────────────────────


class _Envelope(WireModel):
    timestamp: Optional[datetime] = None


class NodeStatusUpdateEvent(_Envelope):
    type: Literal["NODE_STATUS_UPDATE"]
    payload: NodeStatusUpdate


class BatchStatusUpdateEvent(_Envelope):
    type: Literal["BATCH_STATUS_UPDATE"]
    payload: BatchStatusPayload


class NodeCreatedEvent(_Envelope):
    type: Literal["NODE_CREATED"]
    payload: Node


class NodeUpdatedEvent(_Envelope):
    type: Literal["NODE_UPDATED"]
    payload: NodeUpdate


class NodeDeletedEvent(_Envelope):
    type: Literal["NODE_DELETED"]
    payload: EntityRef


class ConnectionCreatedEvent(_Envelope):
    type: Literal["CONNECTION_CREATED"]
    payload: Connection


class ConnectionDeletedEvent(_Envelope):
    type: Literal["CONNECTION_DELETED"]
    payload: EntityRef


class ActiveSourceChangedEvent(_Envelope):
    type: Literal["CONNECTION_ACTIVE_SOURCE_CHANGED"]
    payload: ActiveSourceChange


class GroupCreatedEvent(_Envelope):
    type: Literal["GROUP_CREATED"]
    payload: Group


class GroupUpdatedEvent(_Envelope):
    type: Literal["GROUP_UPDATED"]
    payload: GroupUpdate


class GroupDeletedEvent(_Envelope):
    type: Literal["GROUP_DELETED"]
    payload: EntityRef


class GroupConnectionCreatedEvent(_Envelope):
    type: Literal["GROUP_CONNECTION_CREATED"]
    payload: GroupConnection


class GroupConnectionDeletedEvent(_Envelope):
    type: Literal["GROUP_CONNECTION_DELETED"]
    payload: EntityRef


class NodeGroupChangedEvent(_Envelope):
    type: Literal["NODE_GROUP_CHANGED"]
    payload: NodeGroupChange


class PingEvent(_Envelope):
    type: Literal["PING"]
    payload: Any = None


TopologyEvent = Annotated[
    Union[
        NodeStatusUpdateEvent,
        BatchStatusUpdateEvent,
        NodeCreatedEvent,
        NodeUpdatedEvent,
        NodeDeletedEvent,
        ConnectionCreatedEvent,
        ConnectionDeletedEvent,
        ActiveSourceChangedEvent,
        GroupCreatedEvent,
        GroupUpdatedEvent,
        GroupDeletedEvent,
        GroupConnectionCreatedEvent,
        GroupConnectionDeletedEvent,
        NodeGroupChangedEvent,
        PingEvent,
    ],
    Field(discriminator="type"),
]

topology_event_adapter: TypeAdapter[TopologyEvent] = TypeAdapter(TopologyEvent)

KNOWN_EVENT_TYPES = frozenset(t.value for t in EventType)

EVENT_MODELS: tuple[type[WireModel], ...] = get_args(get_args(TopologyEvent)[0])
