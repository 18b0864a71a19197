"""Topology snapshot and API envelope models for Starlight."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from .base import WireModel
from .connection import Connection, GroupConnection
from .group import Group
from .node import Node

T = TypeVar("T")


class NetworkTopology(WireModel):
    """Complete topology as returned by the full fetch."""

    nodes: list[Node] = []
    connections: list[Connection] = []
    groups: list[Group] = []
    group_connections: list[GroupConnection] = []


class ApiResponse(BaseModel, Generic[T]):
    """Result of a persistence call. Failures carry an error string."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def fail(cls, error: str) -> "ApiResponse[Any]":
        return cls(success=False, error=error)


class StatusSummary(WireModel):
    """Probe status counts for the header panel."""

    total: int = 0
    online: int = 0
    offline: int = 0
    degraded: int = 0
    unknown: int = 0
    internet_online: int = 0
    internet_offline: int = 0
