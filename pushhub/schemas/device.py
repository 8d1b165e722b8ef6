"""Pydantic models for device token registration."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceTokenCreate(BaseModel):
    """Schema for registering a push token for the current recipient."""

    token: str = Field(min_length=1, description="FCM registration token")
    device_type: Literal["android", "ios", "web"]
    device_name: Optional[str] = Field(default=None, max_length=255)


class DeviceTokenRead(BaseModel):
    id: uuid.UUID
    token: str
    recipient_id: uuid.UUID
    device_type: str
    device_name: Optional[str]
    is_active: bool
    last_used_at: Optional[datetime]
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class DeviceTokenUnregisterResponse(BaseModel):
    outcome: str = Field(description="deactivated or not_found")
