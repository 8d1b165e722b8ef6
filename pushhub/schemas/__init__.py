"""Pydantic schemas package."""

from pushhub.schemas.auth import TokenPayload
from pushhub.schemas.device import (
    DeviceTokenCreate,
    DeviceTokenRead,
    DeviceTokenUnregisterResponse,
)
from pushhub.schemas.notification import (
    AcknowledgeRequest,
    NotificationCreate,
    NotificationFilter,
    NotificationHistoryRead,
    NotificationRead,
    NotificationUpdate,
    SweepResponse,
)

__all__ = [
    "TokenPayload",
    "DeviceTokenCreate",
    "DeviceTokenRead",
    "DeviceTokenUnregisterResponse",
    "AcknowledgeRequest",
    "NotificationCreate",
    "NotificationFilter",
    "NotificationHistoryRead",
    "NotificationRead",
    "NotificationUpdate",
    "SweepResponse",
]
