# WebSocket Event Types and Broadcasting Utilities
# Standardized event format for pushing session snapshots to clients

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from agents.state import ProcessStatus, SessionSnapshot

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be broadcast to clients."""

    # Connection events
    CONNECTED = "connected"

    # Session events
    SNAPSHOT = "snapshot"
    PROGRESS_UPDATE = "progress"
    COMPLETED = "complete"
    ERROR = "error"


@dataclass
class SessionEvent:
    """
    Standardized event format for session updates.

    Attributes:
        type: The type of event
        session_id: The session this event relates to
        message: Human-readable message
        progress: Extraction progress percentage (0-100)
        data: The snapshot as a dictionary
        timestamp: When the event occurred
    """
    type: EventType
    session_id: str | None = None
    message: str | None = None
    progress: float | None = None
    data: dict[str, Any] | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "timestamp": self.timestamp
        }

        if self.session_id:
            result["session_id"] = self.session_id
        if self.message:
            result["message"] = self.message
        if self.progress is not None:
            result["progress"] = self.progress
        if self.data:
            result["data"] = self.data

        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


STATUS_MESSAGES = {
    ProcessStatus.IDLE: None,
    ProcessStatus.EXTRACTING: "Extraindo evidências acadêmicas...",
    ProcessStatus.SYNTHESIZING: "Gerando síntese sistemática...",
    ProcessStatus.COMPLETED: "Síntese concluída",
}


def create_snapshot_event(snapshot: SessionSnapshot) -> SessionEvent:
    """Map a snapshot to the event type clients react to."""
    if snapshot.status == ProcessStatus.EXTRACTING:
        event_type = EventType.PROGRESS_UPDATE
        message = (
            f"Analisando o artigo {snapshot.progress.current} de {snapshot.progress.total}"
            if snapshot.progress.current
            else STATUS_MESSAGES[snapshot.status]
        )
        progress = snapshot.progress.percent
    elif snapshot.status == ProcessStatus.COMPLETED:
        event_type, message, progress = EventType.COMPLETED, STATUS_MESSAGES[snapshot.status], 100.0
    elif snapshot.status == ProcessStatus.ERROR:
        event_type, message, progress = EventType.ERROR, snapshot.error, None
    else:
        event_type = EventType.SNAPSHOT
        message = snapshot.notice or STATUS_MESSAGES[snapshot.status]
        progress = None

    return SessionEvent(
        type=event_type,
        session_id=snapshot.session_id,
        message=message,
        progress=progress,
        data=snapshot.to_dict(),
    )


class SnapshotBroadcaster:
    """
    Session listener that forwards every snapshot to WebSocket subscribers.

    Session listeners are synchronous; the broadcast is scheduled on the
    running event loop. Without a running loop the snapshot is only logged.
    """

    def __init__(self, manager):
        self.manager = manager
        self._pending: set[asyncio.Task] = set()

    def __call__(self, snapshot: SessionSnapshot) -> None:
        event = create_snapshot_event(snapshot)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, snapshot v{snapshot.version} not broadcast")
            return

        task = loop.create_task(
            self.manager.broadcast_to_session(snapshot.session_id, event.to_dict())
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
