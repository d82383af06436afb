"""SQLAlchemy model for WhatsApp campaign delivery events."""

from sqlalchemy import Column, DateTime, Integer, String, Text

from jeenora_api.infrastructure.database import Base
from jeenora_api.utils import storage_now


class WhatsAppAnalyticsModel(Base):
    """One row per WhatsApp delivery attempt made on behalf of a campaign."""

    __tablename__ = "whatsapp_analytics"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(String(64), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="whatsapp")
    event = Column(String(20), nullable=False)
    recipient = Column(String(32), nullable=True)
    message_id = Column(String(128), nullable=True)
    error = Column(Text, nullable=True)
    timestamp = Column(DateTime(), nullable=False, default=storage_now)


__all__ = ["WhatsAppAnalyticsModel"]
