"""Helpers to broadcast realtime events to every connected listener."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any

from .manager import NotificationConnectionManager, whatsapp_status_manager

logger = logging.getLogger(__name__)


class RealtimeEventPublisher:
    """Dispatch structured realtime events to websocket subscribers."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager
        self._pending: set[asyncio.Task[None]] = set()

    def broadcast(self, event_type: str, payload: Any) -> None:
        """Schedule ``event_type`` for every listener; dropped outside a loop."""

        message = {"type": event_type, "data": copy.deepcopy(payload)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s event not broadcast", event_type)
            return
        task = loop.create_task(self._manager.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


whatsapp_status_publisher = RealtimeEventPublisher(whatsapp_status_manager)


__all__ = ["RealtimeEventPublisher", "whatsapp_status_publisher"]
