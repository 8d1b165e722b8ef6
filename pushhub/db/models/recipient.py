"""Recipient database model."""
import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from pushhub.db.base import Base


class SubscriptionTier(str, enum.Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"
    PRO = "PRO"


class Recipient(Base):
    """An end user that notifications are addressed to."""

    __tablename__ = "recipients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))

    # Subscription
    subscription_tier = Column(
        Enum(SubscriptionTier, native_enum=False, length=20),
        nullable=False,
        default=SubscriptionTier.FREE,
        index=True,
    )

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, nullable=False, default=True)
    is_admin = Column(Boolean, nullable=False, default=False)
