"""Notification and delivery history models."""
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pushhub.db.base import Base
from pushhub.db.types import JSONDict


class NotificationType(str, enum.Enum):
    GENERAL = "GENERAL"
    NEW_FEATURE = "NEW_FEATURE"
    SONG_REQUEST_COMPLETED = "SONG_REQUEST_COMPLETED"
    SONG_ADDED = "SONG_ADDED"


class NotificationAudience(str, enum.Enum):
    ALL = "ALL"
    PREMIUM_USERS = "PREMIUM_USERS"
    FREE_USERS = "FREE_USERS"
    SPECIFIC_USER = "SPECIFIC_USER"


class NotificationStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"  # claimed by a worker, delivery in flight
    SENT = "SENT"
    FAILED = "FAILED"


class DeliveryStatus(str, enum.Enum):
    DELIVERED = "DELIVERED"
    READ = "READ"
    CLICKED = "CLICKED"


class Notification(Base):
    """A logical notification addressed to an audience."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSONDict)

    type = Column(
        Enum(NotificationType, native_enum=False, length=40),
        nullable=False,
        default=NotificationType.GENERAL,
        index=True,
    )
    audience = Column(
        Enum(NotificationAudience, native_enum=False, length=20),
        nullable=False,
        default=NotificationAudience.ALL,
        index=True,
    )
    recipient_id = Column(
        UUID(as_uuid=True), ForeignKey("recipients.id", ondelete="CASCADE"), index=True
    )
    status = Column(
        Enum(NotificationStatus, native_enum=False, length=20), nullable=False, index=True
    )
    failure_reason = Column(Text)
    # Set when a worker moves the row into SENDING; bounds how long it may stay there.
    claimed_at = Column(DateTime(timezone=True))

    scheduled_at = Column(DateTime(timezone=True), index=True)
    sent_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    recipient = relationship("Recipient")
    history = relationship("NotificationHistory", back_populates="notification", passive_deletes=True)


class NotificationHistory(Base):
    """Per-recipient delivery record for a dispatched notification."""

    __tablename__ = "notification_history"
    __table_args__ = (
        UniqueConstraint("notification_id", "recipient_id", name="uq_notification_history_recipient"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    notification_id = Column(
        UUID(as_uuid=True), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipient_id = Column(
        UUID(as_uuid=True), ForeignKey("recipients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        Enum(DeliveryStatus, native_enum=False, length=20),
        nullable=False,
        default=DeliveryStatus.DELIVERED,
    )

    delivered_at = Column(DateTime(timezone=True))
    read_at = Column(DateTime(timezone=True))
    clicked_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    notification = relationship("Notification", back_populates="history")
