"""Pydantic models for notification API interactions."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pushhub.db.models.notification import (
    DeliveryStatus,
    NotificationAudience,
    NotificationStatus,
    NotificationType,
)


class NotificationCreate(BaseModel):
    """Schema for creating a notification."""

    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1)
    data: Optional[Dict[str, Any]] = None
    type: NotificationType = NotificationType.GENERAL
    audience: NotificationAudience = NotificationAudience.ALL
    recipient_id: Optional[uuid.UUID] = Field(
        default=None, description="Target recipient, required iff audience is SPECIFIC_USER"
    )
    scheduled_at: Optional[datetime] = Field(
        default=None, description="Send later; past or missing values send immediately"
    )


class NotificationUpdate(BaseModel):
    """Schema for partial updates to an unsent notification."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    body: Optional[str] = Field(default=None, min_length=1)
    data: Optional[Dict[str, Any]] = None
    type: Optional[NotificationType] = None
    scheduled_at: Optional[datetime] = None
    status: Optional[NotificationStatus] = Field(
        default=None, description="Set to SCHEDULED to retry a FAILED notification"
    )

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def ensure_payload_not_empty(self) -> "NotificationUpdate":
        if not any(value is not None for value in self.model_dump().values()):
            raise ValueError("At least one field must be provided")
        return self


class NotificationRead(BaseModel):
    """Schema returned for notification retrieval."""

    id: uuid.UUID
    title: str
    body: str
    data: Optional[Dict[str, Any]]
    type: NotificationType
    audience: NotificationAudience
    recipient_id: Optional[uuid.UUID]
    status: NotificationStatus
    failure_reason: Optional[str]
    claimed_at: Optional[datetime]
    scheduled_at: Optional[datetime]
    sent_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class NotificationFilter(BaseModel):
    """Optional filters for listing notifications."""

    status: Optional[NotificationStatus] = None
    type: Optional[NotificationType] = None
    audience: Optional[NotificationAudience] = None
    recipient_id: Optional[uuid.UUID] = None


class AcknowledgeRequest(BaseModel):
    """Client acknowledgement that a delivered notification was read or clicked."""

    status: DeliveryStatus = Field(description="READ or CLICKED")


class NotificationHistoryRead(BaseModel):
    """Per-recipient delivery record."""

    id: uuid.UUID
    notification_id: uuid.UUID
    recipient_id: uuid.UUID
    status: DeliveryStatus
    delivered_at: Optional[datetime]
    read_at: Optional[datetime]
    clicked_at: Optional[datetime]
    created_at: Optional[datetime]
    notification: Optional[NotificationRead] = None

    model_config = ConfigDict(from_attributes=True)


class SweepResponse(BaseModel):
    processed: int
