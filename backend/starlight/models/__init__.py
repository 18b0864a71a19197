# Pydantic models
from .node import MonitoringMethod, Node, NodeStatusUpdate, NodeType, NodeUpdate, Status
from .connection import Connection, ConnectionUpdate, GroupConnection
from .group import Group, GroupUpdate
from .topology import ApiResponse, NetworkTopology, StatusSummary
from .events import EventType, TopologyEvent

__all__ = [
    "MonitoringMethod",
    "Node",
    "NodeStatusUpdate",
    "NodeType",
    "NodeUpdate",
    "Status",
    "Connection",
    "ConnectionUpdate",
    "GroupConnection",
    "Group",
    "GroupUpdate",
    "ApiResponse",
    "NetworkTopology",
    "StatusSummary",
    "EventType",
    "TopologyEvent",
]
