"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
from typing import Any

from anyio import from_thread

from jeenora_api.domain.entities import Notification

from .manager import NotificationConnectionManager, notification_manager


class NotificationPublisher:
    """Serialize notifications and schedule their delivery."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, notification: Notification) -> None:
        """Schedule ``notification`` to be delivered to its user's dashboard."""

        message = {"type": "notification", "data": serialize_notification(notification)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            from_thread.run(self._manager.send_to_user, notification.user_id, message)
        else:
            task = loop.create_task(self._manager.send_to_user(notification.user_id, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation shared by websocket and HTTP payloads."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "category": notification.category,
        "link": notification.link,
        "channels": list(notification.channels),
        "meta": notification.meta or {},
        "is_read": notification.is_read,
        "sent_status": notification.sent_status.as_dict(),
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
        "expires_at": notification.expires_at.isoformat()
        if notification.expires_at
        else None,
    }


notification_publisher = NotificationPublisher(notification_manager)


def dispatch_notification(notification: Notification) -> None:
    """Public helper that delegates to the shared publisher instance."""

    notification_publisher.dispatch(notification)


__all__ = [
    "NotificationPublisher",
    "dispatch_notification",
    "notification_publisher",
    "serialize_notification",
]
