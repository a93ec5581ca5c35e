"""WebSocket connection manager for real-time slot and trip updates."""
import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import WebSocket

from app.services.event_dispatcher import Event

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks dashboard sockets and fans dispatcher events out to them."""

    def __init__(self):
        # Map of websocket to the terminal it follows (None = every terminal)
        self.active_connections: Dict[WebSocket, Optional[str]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, terminal_id: Optional[str] = None) -> None:
        """Register a WebSocket connection (already accepted by router)."""
        async with self._lock:
            self.active_connections[websocket] = terminal_id
        logger.debug("WebSocket connected - terminal filter: %s", terminal_id or "*")

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self.active_connections.pop(websocket, None)
        logger.debug("WebSocket disconnected")

    async def broadcast(self, message: dict, terminal_id: Optional[str] = None) -> None:
        """Send ``message`` to every socket following ``terminal_id`` or all terminals."""
        async with self._lock:
            targets = [
                ws
                for ws, followed in self.active_connections.items()
                if followed is None or terminal_id is None or followed == terminal_id
            ]

        disconnected: List[WebSocket] = []
        for connection in targets:
            try:
                await connection.send_json(message)
            except Exception:
                disconnected.append(connection)

        # Clean up disconnected connections
        if disconnected:
            async with self._lock:
                for conn in disconnected:
                    self.active_connections.pop(conn, None)
            logger.info("Dropped %d stale WebSocket connections", len(disconnected))

    async def handle_event(self, event: Event) -> None:
        """Dispatcher handler: forward every domain event to subscribers."""
        await self.broadcast(event.to_message(), terminal_id=event.terminal_id)

    def get_connection_count(self) -> int:
        return len(self.active_connections)


# Global connection manager instance
manager = ConnectionManager()
