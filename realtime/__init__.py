# Real-time WebSocket updates module
from .events import EventType, SessionEvent, SnapshotBroadcaster, create_snapshot_event
from .manager import ConnectionManager, get_connection_manager

__all__ = [
    "ConnectionManager",
    "EventType",
    "SessionEvent",
    "SnapshotBroadcaster",
    "create_snapshot_event",
    "get_connection_manager"
]
