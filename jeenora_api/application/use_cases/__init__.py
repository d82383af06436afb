"""Aggregate application use cases."""

from .notifications import AutomatedNotificationTriggers, NotificationService

__all__ = [
    "AutomatedNotificationTriggers",
    "NotificationService",
]
