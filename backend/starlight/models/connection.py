"""Connection models for Starlight."""

from datetime import datetime
from typing import Optional

from .base import WireModel


class Connection(WireModel):
    """Directed edge between two nodes."""

    id: str
    source_node_id: str
    target_node_id: str
    label: Optional[str] = None
    bandwidth: Optional[str] = None
    # Only meaningful when the source node is an INTERNET uplink
    is_active_source: bool = False
    color: str = "#6B7280"
    animated: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConnectionUpdate(WireModel):
    """Editable connection fields. The active-source flag is not one of them."""

    label: Optional[str] = None
    bandwidth: Optional[str] = None
    color: Optional[str] = None
    animated: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class GroupConnection(WireModel):
    """Directed edge between two groups (inter-area links)."""

    id: str
    source_group_id: str
    target_group_id: str
    label: Optional[str] = None
    bandwidth: Optional[str] = None
    color: str = "#6B7280"
    animated: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
