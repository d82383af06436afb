"""SQLAlchemy model for the user table."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from jeenora_api.infrastructure.database import Base


class UserModel(Base):
    """Database representation of a Hire portal user."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(80), nullable=False)
    email = Column(String(120), nullable=True, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default="candidate")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


__all__ = ["UserModel"]
