"""Event stream synchronisation."""

from starlight.sync.handler import SyncHandler, SyncStats
from starlight.sync.listener import EventStreamListener

__all__ = ["SyncHandler", "SyncStats", "EventStreamListener"]
