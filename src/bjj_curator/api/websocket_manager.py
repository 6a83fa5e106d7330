"""WebSocket connection management for curation progress streams."""

import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Manages WebSocket connections grouped by run id."""

    def __init__(self):
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, key: str, websocket: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the pool.

        Args:
            key: The grouping key (a run id)
            websocket: The WebSocket connection to add
        """
        await websocket.accept()
        self.connections.setdefault(key, []).append(websocket)

    async def send(self, websocket: WebSocket, message: dict) -> bool:
        """Send to a single socket; False if it has gone away."""
        if websocket.client_state != WebSocketState.CONNECTED:
            return False
        try:
            await websocket.send_json(message)
        except (RuntimeError, ConnectionError) as e:
            logger.debug(f"WebSocket send failed: {e}")
            return False
        return True

    async def broadcast(self, key: str, message: dict) -> None:
        """Broadcast a message to every socket watching ``key``.

        Sockets that fail to receive are dropped from the pool.
        """
        disconnected = []
        for ws in list(self.connections.get(key, [])):
            if not await self.send(ws, message):
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(key, ws)

    def disconnect(self, key: str, websocket: WebSocket) -> None:
        if key in self.connections and websocket in self.connections[key]:
            self.connections[key].remove(websocket)
            if not self.connections[key]:
                del self.connections[key]

    def connection_count(self, key: str) -> int:
        return len(self.connections.get(key, []))
