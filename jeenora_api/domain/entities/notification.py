"""Domain entity representing a user notification and its delivery state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

CHANNEL_DASHBOARD = "dashboard"
CHANNEL_EMAIL = "email"
CHANNEL_WHATSAPP = "whatsapp"
NOTIFICATION_CHANNELS = (CHANNEL_DASHBOARD, CHANNEL_EMAIL, CHANNEL_WHATSAPP)

NOTIFICATION_TYPES = ("job", "interview", "payment", "status", "system")
NOTIFICATION_CATEGORIES = ("Job", "System", "Alert", "Interview", "Payment")


@dataclass
class SentStatus:
    """Per channel delivery flags for a notification."""

    dashboard: bool = False
    email: bool = False
    whatsapp: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {
            CHANNEL_DASHBOARD: self.dashboard,
            CHANNEL_EMAIL: self.email,
            CHANNEL_WHATSAPP: self.whatsapp,
        }


@dataclass
class Notification:
    """Information message delivered to a specific user over one or more channels.

    ``channels`` lists the channels that were actually attempted, which can be
    narrower than the ones requested when WhatsApp was unavailable.
    """

    id: int | None
    user_id: int
    title: str
    message: str
    type: str = "system"
    category: str = "System"
    link: str | None = None
    channels: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    sent_status: SentStatus = field(default_factory=SentStatus)
    scheduled_at: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass
class NotificationTemplate:
    """Content shared by every recipient of a bulk notification."""

    title: str
    message: str
    type: str = "system"
    category: str = "System"
    link: str | None = None
    channels: list[str] = field(default_factory=lambda: [CHANNEL_DASHBOARD])
    meta: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "CHANNEL_DASHBOARD",
    "CHANNEL_EMAIL",
    "CHANNEL_WHATSAPP",
    "NOTIFICATION_CHANNELS",
    "NOTIFICATION_TYPES",
    "NOTIFICATION_CATEGORIES",
    "Notification",
    "NotificationTemplate",
    "SentStatus",
]
