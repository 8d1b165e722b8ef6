"""Notification management endpoints."""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from pushhub.api import deps
from pushhub.db.models.notification import NotificationAudience, NotificationStatus, NotificationType
from pushhub.db.models.recipient import Recipient
from pushhub.schemas import (
    NotificationCreate,
    NotificationFilter,
    NotificationRead,
    NotificationUpdate,
    SweepResponse,
)
from pushhub.services.notifications import NotificationService
from pushhub.services.scheduler import SchedulerSweep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    service: NotificationService = Depends(deps.get_notification_service),
    _: Recipient = Depends(deps.get_current_admin),
) -> NotificationRead:
    """Create a notification; it is sent immediately unless scheduled for later."""

    return NotificationRead.model_validate(service.create(payload))


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    status_filter: Optional[NotificationStatus] = Query(None, alias="status"),
    type: Optional[NotificationType] = None,
    audience: Optional[NotificationAudience] = None,
    recipient_id: Optional[uuid.UUID] = None,
    service: NotificationService = Depends(deps.get_notification_service),
    _: Recipient = Depends(deps.get_current_admin),
) -> list[NotificationRead]:
    filters = NotificationFilter(
        status=status_filter, type=type, audience=audience, recipient_id=recipient_id
    )
    return [
        NotificationRead.model_validate(notification)
        for notification in service.list_notifications(filters)
    ]


@router.post("/process-scheduled", response_model=SweepResponse)
def process_scheduled_notifications(
    sweep: SchedulerSweep = Depends(deps.get_scheduler_sweep),
    _: Recipient = Depends(deps.get_current_admin),
) -> SweepResponse:
    """Send every scheduled notification that is due."""

    return SweepResponse(processed=sweep.sweep_due())


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(
    notification_id: uuid.UUID,
    service: NotificationService = Depends(deps.get_notification_service),
    _: Recipient = Depends(deps.get_current_admin),
) -> NotificationRead:
    return NotificationRead.model_validate(service.get(notification_id))


@router.patch("/{notification_id}", response_model=NotificationRead)
def update_notification(
    notification_id: uuid.UUID,
    payload: NotificationUpdate,
    service: NotificationService = Depends(deps.get_notification_service),
    _: Recipient = Depends(deps.get_current_admin),
) -> NotificationRead:
    """Edit a notification that has not been sent yet."""

    return NotificationRead.model_validate(service.update(notification_id, payload))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: uuid.UUID,
    service: NotificationService = Depends(deps.get_notification_service),
    _: Recipient = Depends(deps.get_current_admin),
) -> Response:
    service.remove(notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
