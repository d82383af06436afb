"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .common import PaginationRead

NotificationType = Literal["job", "interview", "payment", "status", "system"]
NotificationCategory = Literal["Job", "System", "Alert", "Interview", "Payment"]
NotificationChannel = Literal["dashboard", "email", "whatsapp"]


class SentStatusRead(BaseModel):
    dashboard: bool = False
    email: bool = False
    whatsapp: bool = False


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    user_id: int
    title: str
    message: str
    type: str
    category: str
    link: str | None = None
    channels: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    sent_status: SentStatusRead
    created_at: datetime | None = None
    expires_at: datetime | None = None


class NotificationListResponse(BaseModel):
    success: bool = True
    items: list[NotificationRead]
    unread_count: int
    pagination: PaginationRead


class CategoryStatRead(BaseModel):
    category: str
    count: int
    unread: int


class NotificationStatsRead(BaseModel):
    total: int
    unread: int
    by_category: list[CategoryStatRead]


class TypeStatRead(BaseModel):
    type: str
    count: int


class AdminNotificationListResponse(BaseModel):
    success: bool = True
    items: list[NotificationRead]
    stats: list[TypeStatRead]
    pagination: PaginationRead


class NotificationSendRequest(BaseModel):
    """Payload used by administrators to notify users."""

    user_ids: Literal["all"] | list[int] = Field(
        ..., description="'all' for every active user or a list of user ids"
    )
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: NotificationType = "system"
    category: NotificationCategory = "System"
    link: str | None = None
    channels: list[NotificationChannel] = Field(default_factory=lambda: ["dashboard"], min_length=1)
    meta: dict[str, Any] = Field(default_factory=dict)


class NotificationSendResponse(BaseModel):
    success: bool
    message: str
    count: int
    notifications: list[NotificationRead]


class NotificationChannelStatusRead(BaseModel):
    connected: bool
    phase: str
    message: str


__all__ = [
    "AdminNotificationListResponse",
    "CategoryStatRead",
    "NotificationChannelStatusRead",
    "NotificationListResponse",
    "NotificationRead",
    "NotificationSendRequest",
    "NotificationSendResponse",
    "NotificationStatsRead",
    "SentStatusRead",
    "TypeStatRead",
]
