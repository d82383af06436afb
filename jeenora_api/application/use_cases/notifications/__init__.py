"""Notification fan-out, inbox maintenance and automated triggers."""

from .inbox import (
    delete_notification,
    delete_user_notification,
    get_notification_stats,
    list_all_notifications,
    list_user_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    purge_expired_notifications,
)
from .service import DEFAULT_NOTIFICATION_TTL, NotificationService
from .triggers import TRIGGER_POLICIES, AutomatedNotificationTriggers, TriggerPolicy

__all__ = [
    "AutomatedNotificationTriggers",
    "DEFAULT_NOTIFICATION_TTL",
    "NotificationService",
    "TRIGGER_POLICIES",
    "TriggerPolicy",
    "delete_notification",
    "delete_user_notification",
    "get_notification_stats",
    "list_all_notifications",
    "list_user_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "purge_expired_notifications",
]
