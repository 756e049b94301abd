from typing import Dict, Set
from fastapi import WebSocket
import asyncio
import logging

logger = logging.getLogger(__name__)

CALENDAR_CHANNEL = "calendar"

class ConnectionManager:
    """Live calendar clients grouped by channel. Everything published goes to one channel."""

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self.lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, channel: str = CALENDAR_CHANNEL):
        await websocket.accept()
        async with self.lock:
            self.active_connections.setdefault(channel, set()).add(websocket)
        await websocket.send_json({"type": "connection", "status": "connected"})
        logger.info(f"Client joined {channel}. Total connections: {self.count(channel)}")

    def disconnect(self, websocket: WebSocket, channel: str = CALENDAR_CHANNEL):
        connections = self.active_connections.get(channel)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            del self.active_connections[channel]

    def count(self, channel: str = CALENDAR_CHANNEL) -> int:
        return len(self.active_connections.get(channel, ()))

    async def publish(self, message_type: str, channel: str = CALENDAR_CHANNEL, **payload):
        """Send ``{"type": message_type, **payload}`` to every client on the channel."""
        message = {"type": message_type, **payload}
        stale = []
        for connection in list(self.active_connections.get(channel, ())):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping calendar client after failed {message_type} push: {e}")
                stale.append(connection)

        if stale:
            async with self.lock:
                for connection in stale:
                    self.disconnect(connection, channel)

    async def close_all(self):
        async with self.lock:
            connections = [c for group in self.active_connections.values() for c in group]
            self.active_connections.clear()
        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")

# Global WebSocket manager instance
manager = ConnectionManager()
