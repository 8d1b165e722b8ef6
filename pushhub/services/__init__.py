"""Service layer package."""

from pushhub.services.audience import AudienceResolver
from pushhub.services.devices import DeviceRegistry, UnregisterOutcome
from pushhub.services.dispatcher import DeliveryDispatcher, DispatchOutcome
from pushhub.services.notifications import NotificationService
from pushhub.services.push_transport import FirebaseTransport, PushTransport
from pushhub.services.recipients import RecipientDirectory
from pushhub.services.scheduler import SchedulerSweep

__all__ = [
    "AudienceResolver",
    "DeliveryDispatcher",
    "DeviceRegistry",
    "DispatchOutcome",
    "FirebaseTransport",
    "NotificationService",
    "PushTransport",
    "RecipientDirectory",
    "SchedulerSweep",
    "UnregisterOutcome",
]
