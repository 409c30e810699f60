# WebSocket Connection Manager for Real-Time Updates
# Manages WebSocket connections and broadcasts session snapshots to connected clients

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    session_id: str
    connected_at: datetime


class ConnectionManager:
    """
    Manages WebSocket connections for real-time session updates.

    Usage:
        manager = ConnectionManager()

        @app.websocket("/ws/sessions/{session_id}")
        async def stream(websocket: WebSocket, session_id: str):
            await manager.connect(websocket, session_id)
            try:
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                await manager.disconnect(websocket)
    """

    def __init__(self):
        # Map of session_id -> set of websockets subscribed to it
        self._session_connections: dict[str, set[WebSocket]] = {}

        # Map of websocket -> connection info
        self._connection_info: dict[WebSocket, ConnectionInfo] = {}

        self._lock = asyncio.Lock()

        # Statistics
        self._total_connections = 0
        self._total_messages_sent = 0

    async def connect(self, websocket: WebSocket, session_id: str, initial: dict | None = None) -> bool:
        """
        Accept a WebSocket connection and subscribe it to a session.

        Args:
            websocket: The WebSocket connection
            session_id: The session to subscribe to
            initial: Optional current snapshot sent right after the confirmation

        Returns:
            True if connection was established successfully
        """
        try:
            await websocket.accept()

            async with self._lock:
                self._connection_info[websocket] = ConnectionInfo(
                    websocket=websocket,
                    session_id=session_id,
                    connected_at=datetime.now(UTC),
                )
                self._session_connections.setdefault(session_id, set()).add(websocket)
                self._total_connections += 1

            logger.info(
                f"WebSocket connected: session={session_id}, "
                f"total_connections={len(self._connection_info)}"
            )

            await self._send_to_websocket(
                websocket,
                {
                    "type": "connected",
                    "session_id": session_id,
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            )
            if initial is not None:
                await self._send_to_websocket(websocket, initial)

            return True

        except Exception as e:
            logger.error(f"Failed to establish WebSocket connection: {e}")
            return False

    async def disconnect(self, websocket: WebSocket):
        """Clean up when a WebSocket disconnects."""
        async with self._lock:
            info = self._connection_info.pop(websocket, None)
            if info is None:
                return

            sockets = self._session_connections.get(info.session_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self._session_connections[info.session_id]

        logger.info(
            f"WebSocket disconnected: session={info.session_id}, "
            f"remaining_connections={len(self._connection_info)}"
        )

    async def close_session(self, session_id: str, code: int = 4410):
        """Close and forget every connection subscribed to a session that no longer exists."""
        async with self._lock:
            sockets = self._session_connections.pop(session_id, set())
            for websocket in sockets:
                self._connection_info.pop(websocket, None)

        for websocket in sockets:
            try:
                await websocket.close(code=code)
            except Exception as e:
                logger.warning(f"Failed to close WebSocket for session {session_id}: {e}")

        if sockets:
            logger.info(f"Closed {len(sockets)} WebSocket(s) of ended session {session_id}")

    async def broadcast_to_session(self, session_id: str, message: dict):
        """Broadcast a message to all connections subscribed to a session."""
        if session_id not in self._session_connections:
            return

        if "timestamp" not in message:
            message["timestamp"] = datetime.now(UTC).isoformat()

        # Snapshot the subscribers so sending happens outside the lock
        async with self._lock:
            connections = list(self._session_connections.get(session_id, set()))

        disconnected = []
        for websocket in connections:
            success = await self._send_to_websocket(websocket, message)
            if not success:
                disconnected.append(websocket)

        for websocket in disconnected:
            await self.disconnect(websocket)

    async def _send_to_websocket(self, websocket: WebSocket, message: dict) -> bool:
        try:
            await websocket.send_json(message)
            self._total_messages_sent += 1
            return True
        except Exception as e:
            logger.warning(f"Failed to send WebSocket message: {e}")
            return False

    def get_session_subscriber_count(self, session_id: str) -> int:
        return len(self._session_connections.get(session_id, set()))

    def get_stats(self) -> dict:
        return {
            "active_connections": len(self._connection_info),
            "active_sessions": len(self._session_connections),
            "total_connections": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
        }


# Singleton instance
_manager_instance: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get or create the singleton ConnectionManager instance."""
    global _manager_instance
    if _manager_instance is None:
        _manager_instance = ConnectionManager()
    return _manager_instance
