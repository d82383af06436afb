"""Repository implementations for infrastructure layer."""

from .analytics_repository import WhatsAppAnalyticsRepository, make_analytics_sink
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "NotificationRepository",
    "UserRepository",
    "WhatsAppAnalyticsRepository",
    "make_analytics_sink",
]
