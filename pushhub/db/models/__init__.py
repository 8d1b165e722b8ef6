"""Database models package."""
from pushhub.db.models.recipient import Recipient, SubscriptionTier
from pushhub.db.models.device_token import DeviceToken
from pushhub.db.models.notification import (
    DeliveryStatus,
    Notification,
    NotificationAudience,
    NotificationHistory,
    NotificationStatus,
    NotificationType,
)

__all__ = [
    "Recipient",
    "SubscriptionTier",
    "DeviceToken",
    "DeliveryStatus",
    "Notification",
    "NotificationAudience",
    "NotificationHistory",
    "NotificationStatus",
    "NotificationType",
]
