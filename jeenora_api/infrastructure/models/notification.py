"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from jeenora_api.infrastructure.database import Base
from jeenora_api.utils import storage_now


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="system")
    category = Column(String(20), nullable=False, default="System")
    link = Column(String(255), nullable=True)
    channels = Column(JSON, nullable=False, default=list)
    meta = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    sent_dashboard = Column(Boolean, nullable=False, default=True)
    sent_email = Column(Boolean, nullable=False, default=False)
    sent_whatsapp = Column(Boolean, nullable=False, default=False)
    scheduled_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=storage_now)
    expires_at = Column(DateTime(), nullable=False, index=True)

    user = relationship("UserModel", lazy="joined")


__all__ = ["NotificationModel"]
