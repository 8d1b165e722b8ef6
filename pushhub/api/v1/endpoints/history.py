"""Delivery history endpoints for the authenticated recipient."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status

from pushhub.api import deps
from pushhub.db.models.recipient import Recipient
from pushhub.schemas import AcknowledgeRequest, NotificationHistoryRead, NotificationRead
from pushhub.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["history"])


@router.get("/history", response_model=list[NotificationHistoryRead])
def get_my_history(
    service: NotificationService = Depends(deps.get_notification_service),
    current_recipient: Recipient = Depends(deps.get_current_recipient),
) -> list[NotificationHistoryRead]:
    """Return the notifications delivered to the current recipient, newest first."""

    return [
        NotificationHistoryRead.model_validate(entry)
        for entry in service.recipient_history(current_recipient.id)
    ]


@router.patch("/history/{notification_id}", response_model=NotificationHistoryRead)
def acknowledge_notification(
    notification_id: uuid.UUID,
    payload: AcknowledgeRequest,
    service: NotificationService = Depends(deps.get_notification_service),
    current_recipient: Recipient = Depends(deps.get_current_recipient),
) -> NotificationHistoryRead:
    """Mark a delivered notification as read or clicked."""

    entry = service.acknowledge(notification_id, current_recipient.id, payload.status)
    return NotificationHistoryRead.model_validate(entry)


@router.post("/test", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def send_test_notification(
    service: NotificationService = Depends(deps.get_notification_service),
    current_recipient: Recipient = Depends(deps.get_current_recipient),
) -> NotificationRead:
    """Send a test notification to the current recipient's devices."""

    return NotificationRead.model_validate(service.send_test(current_recipient.id))
