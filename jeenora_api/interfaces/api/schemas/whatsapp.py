"""Pydantic models for the WhatsApp endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SendSingleRequest(BaseModel):
    """Payload to send one message to one number."""

    model_config = ConfigDict(populate_by_name=True)

    number: str = Field(..., min_length=1, description="Recipient phone number")
    message: str = Field(..., min_length=1, description="Text body of the message")
    media_url: str | None = Field(
        default=None, alias="mediaUrl", description="Optional attachment URL"
    )
    campaign_id: str | None = Field(
        default=None, alias="campaignId", description="Campaign used to record analytics"
    )


class SendBulkRequest(BaseModel):
    """Payload to send the same message to several numbers."""

    model_config = ConfigDict(populate_by_name=True)

    contacts: list[str] = Field(..., min_length=1, description="Recipient phone numbers")
    message: str = Field(..., min_length=1)
    media_url: str | None = Field(default=None, alias="mediaUrl")
    campaign_id: str | None = Field(default=None, alias="campaignId")


class SendMediaRequest(BaseModel):
    """Payload to send an attachment with an optional caption."""

    model_config = ConfigDict(populate_by_name=True)

    number: str = Field(..., min_length=1)
    media_url: str = Field(..., min_length=1, alias="mediaUrl")
    caption: str = ""
    campaign_id: str | None = Field(default=None, alias="campaignId")


class PhoneAnalysisRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    original: str | None
    formatted: str | None
    is_valid: bool
    length: int
    type: str


class DeliveryResultRead(BaseModel):
    """Outcome of a single send; failures are reported, not raised."""

    success: bool
    message: str
    message_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    recipient: str | None = None
    phone_analysis: PhoneAnalysisRead | None = None


class BulkResultItem(BaseModel):
    contact: str
    success: bool
    message_id: str | None = None
    error: str | None = None
    error_code: str | None = None


class BulkSendResponse(BaseModel):
    success: bool
    message: str
    total: int
    sent: int
    failed: int
    results: list[BulkResultItem]


class WhatsAppStatusRead(BaseModel):
    """Connection snapshot pushed to dashboards and returned by ``/status``."""

    model_config = ConfigDict(populate_by_name=True)

    initializing: bool
    connected: bool
    qr_needed: bool = Field(alias="qrNeeded")
    message: str
    phase: str
    timestamp: datetime
    state: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class QRCodeRead(BaseModel):
    success: bool
    message: str
    qr: str | None = Field(default=None, description="PNG data URL of the pairing code")
    issued_at: datetime | None = None
    expires_at: datetime | None = None


class ContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str | None
    phone: str | None
    is_business: bool = False
    is_enterprise: bool = False


class GroupRead(BaseModel):
    id: str
    name: str | None
    participants: int
    is_read_only: bool = False


class PlatformRead(BaseModel):
    platform: str
    architecture: str
    python_version: str
    browser_executable: str | None
    session_path: str
    headless: bool


__all__ = [
    "BulkResultItem",
    "BulkSendResponse",
    "ContactRead",
    "DeliveryResultRead",
    "GroupRead",
    "PhoneAnalysisRead",
    "PlatformRead",
    "QRCodeRead",
    "SendBulkRequest",
    "SendMediaRequest",
    "SendSingleRequest",
    "WhatsAppStatusRead",
]
