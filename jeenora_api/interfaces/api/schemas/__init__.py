from .common import ActionResponse, PaginationRead
from .notification import (
    AdminNotificationListResponse,
    CategoryStatRead,
    NotificationChannelStatusRead,
    NotificationListResponse,
    NotificationRead,
    NotificationSendRequest,
    NotificationSendResponse,
    NotificationStatsRead,
    SentStatusRead,
    TypeStatRead,
)
from .whatsapp import (
    BulkResultItem,
    BulkSendResponse,
    ContactRead,
    DeliveryResultRead,
    GroupRead,
    PhoneAnalysisRead,
    PlatformRead,
    QRCodeRead,
    SendBulkRequest,
    SendMediaRequest,
    SendSingleRequest,
    WhatsAppStatusRead,
)

__all__ = [
    "ActionResponse",
    "AdminNotificationListResponse",
    "BulkResultItem",
    "BulkSendResponse",
    "CategoryStatRead",
    "ContactRead",
    "DeliveryResultRead",
    "GroupRead",
    "NotificationChannelStatusRead",
    "NotificationListResponse",
    "NotificationRead",
    "NotificationSendRequest",
    "NotificationSendResponse",
    "NotificationStatsRead",
    "PaginationRead",
    "PhoneAnalysisRead",
    "PlatformRead",
    "QRCodeRead",
    "SendBulkRequest",
    "SendMediaRequest",
    "SendSingleRequest",
    "SentStatusRead",
    "TypeStatRead",
    "WhatsAppStatusRead",
]
