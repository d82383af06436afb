"""Connection management helpers for realtime websockets."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationConnectionManager:
    """Manage active websocket connections grouped by user."""

    def __init__(self) -> None:
        self._connections: DefaultDict[int, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        """Accept the websocket connection and register it for ``user_id``."""

        await websocket.accept()
        self._connections[user_id].add(websocket)

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        """Remove ``websocket`` from the pool for ``user_id``."""

        connections = self._connections.get(user_id)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(user_id, None)

    def connection_count(self) -> int:
        return sum(len(connections) for connections in self._connections.values())

    async def send_to_user(self, user_id: int, message: dict[str, Any]) -> None:
        """Send ``message`` to every active connection for ``user_id``."""

        for connection in list(self._connections.get(user_id, set())):
            await self._send(user_id, connection, message)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send ``message`` once to every registered connection."""

        for user_id, connections in list(self._connections.items()):
            for connection in list(connections):
                await self._send(user_id, connection, message)

    async def _send(self, user_id: int, connection: WebSocket, message: dict[str, Any]) -> None:
        try:
            await connection.send_json(message)
        except Exception:  # pragma: no cover - closed sockets are dropped
            logger.debug("Dropping websocket for user %s after failed send", user_id)
            self.disconnect(user_id, connection)


notification_manager = NotificationConnectionManager()
whatsapp_status_manager = NotificationConnectionManager()


__all__ = [
    "NotificationConnectionManager",
    "notification_manager",
    "whatsapp_status_manager",
]
