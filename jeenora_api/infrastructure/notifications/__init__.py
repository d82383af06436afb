"""Realtime notification helpers for the infrastructure layer."""

from .manager import (
    NotificationConnectionManager,
    notification_manager,
    whatsapp_status_manager,
)
from .publisher import (
    NotificationPublisher,
    dispatch_notification,
    notification_publisher,
    serialize_notification,
)
from .realtime import RealtimeEventPublisher, whatsapp_status_publisher

__all__ = [
    "NotificationConnectionManager",
    "NotificationPublisher",
    "RealtimeEventPublisher",
    "dispatch_notification",
    "notification_manager",
    "notification_publisher",
    "serialize_notification",
    "whatsapp_status_manager",
    "whatsapp_status_publisher",
]
