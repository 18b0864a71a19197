"""Node models for Starlight."""

from datetime import datetime
from enum import Enum
from typing import Optional

from .base import WireModel


class NodeType(str, Enum):
    PROBE = "PROBE"
    ROUTER = "ROUTER"
    SWITCH = "SWITCH"
    SERVER = "SERVER"
    GATEWAY = "GATEWAY"
    ACCESS_POINT = "ACCESS_POINT"
    FIREWALL = "FIREWALL"
    VIRTUAL = "VIRTUAL"
    INTERNET = "INTERNET"  # External uplink
    MAIN_LINK = "MAIN_LINK"  # Aggregation point


class Status(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    DEGRADED = "DEGRADED"
    UNKNOWN = "UNKNOWN"


class MonitoringMethod(str, Enum):
    MQTT = "MQTT"
    PING = "PING"
    SNMP = "SNMP"
    HTTP = "HTTP"
    NONE = "NONE"


class Node(WireModel):
    """A monitored or purely visual entity on the canvas."""

    id: str
    name: str
    type: NodeType = NodeType.PROBE
    description: Optional[str] = None
    position_x: float = 0
    position_y: float = 0

    # Weak reference; the group never stores its members
    group_id: Optional[str] = None

    # Monitoring configuration
    monitoring_method: MonitoringMethod = MonitoringMethod.NONE
    ip_address: Optional[str] = None
    ping_interval: int = 30
    mqtt_topic: Optional[str] = None
    snmp_community: Optional[str] = None
    snmp_version: str = "2c"
    http_endpoint: Optional[str] = None
    http_expected_code: int = 200
    check_internet_access: bool = False

    # Live status
    status: Status = Status.UNKNOWN
    internet_status: Status = Status.UNKNOWN
    latency: Optional[float] = None
    last_seen: Optional[datetime] = None
    internet_last_check: Optional[datetime] = None

    # ISP details (INTERNET nodes)
    isp_name: Optional[str] = None
    isp_organization: Optional[str] = None

    color: str = "#4F46E5"
    icon: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NodeUpdate(WireModel):
    """Partial node payload; only fields present on the wire are applied."""

    id: str
    name: Optional[str] = None
    type: Optional[NodeType] = None
    description: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    group_id: Optional[str] = None
    monitoring_method: Optional[MonitoringMethod] = None
    ip_address: Optional[str] = None
    ping_interval: Optional[int] = None
    mqtt_topic: Optional[str] = None
    snmp_community: Optional[str] = None
    snmp_version: Optional[str] = None
    http_endpoint: Optional[str] = None
    http_expected_code: Optional[int] = None
    check_internet_access: Optional[bool] = None
    status: Optional[Status] = None
    internet_status: Optional[Status] = None
    latency: Optional[float] = None
    last_seen: Optional[datetime] = None
    internet_last_check: Optional[datetime] = None
    isp_name: Optional[str] = None
    isp_organization: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    updated_at: Optional[datetime] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class NodeStatusUpdate(WireModel):
    """Live status delta for one node.

    Absent fields keep the node's existing value. An explicit null is
    treated the same as absent.
    """

    node_id: str
    status: Optional[Status] = None
    internet_status: Optional[Status] = None
    latency: Optional[float] = None
    last_seen: Optional[datetime] = None
    internet_last_check: Optional[datetime] = None

    def changes(self) -> dict:
        return {
            key: value
            for key, value in self.model_dump(exclude={"node_id"}).items()
            if value is not None
        }
