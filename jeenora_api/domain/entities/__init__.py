"""Domain entities exposed by the application."""

from .delivery import DeliveryAttemptResult
from .hire import JobSummary, PlanSummary
from .notification import (
    CHANNEL_DASHBOARD,
    CHANNEL_EMAIL,
    CHANNEL_WHATSAPP,
    NOTIFICATION_CATEGORIES,
    NOTIFICATION_CHANNELS,
    NOTIFICATION_TYPES,
    Notification,
    NotificationTemplate,
    SentStatus,
)
from .user import ROLE_ADMIN, ROLE_CANDIDATE, ROLE_EMPLOYER, User
from .whatsapp import ConnectionPhase, PairingInfo, PhoneAnalysis, RefreshOutcome

__all__ = [
    "CHANNEL_DASHBOARD",
    "CHANNEL_EMAIL",
    "CHANNEL_WHATSAPP",
    "ConnectionPhase",
    "DeliveryAttemptResult",
    "JobSummary",
    "NOTIFICATION_CATEGORIES",
    "NOTIFICATION_CHANNELS",
    "NOTIFICATION_TYPES",
    "Notification",
    "NotificationTemplate",
    "PairingInfo",
    "PhoneAnalysis",
    "PlanSummary",
    "ROLE_ADMIN",
    "ROLE_CANDIDATE",
    "ROLE_EMPLOYER",
    "RefreshOutcome",
    "SentStatus",
    "User",
]
