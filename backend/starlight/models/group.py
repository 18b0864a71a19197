"""Group models for Starlight."""

from datetime import datetime
from typing import Optional

from .base import WireModel


class Group(WireModel):
    """Rectangular container. Membership lives on Node.group_id."""

    id: str
    name: str
    description: Optional[str] = None
    position_x: float = 0
    position_y: float = 0
    width: float = 300
    height: float = 200
    color: str = "#3b82f6"
    opacity: float = 0.15
    z_index: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GroupUpdate(WireModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    color: Optional[str] = None
    opacity: Optional[float] = None
    z_index: Optional[int] = None
    updated_at: Optional[datetime] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})
