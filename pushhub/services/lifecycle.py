"""Notification status state machine and guarded status writes."""
from __future__ import annotations

import enum
import uuid
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import ColumnElement, update
from sqlalchemy.orm import Session

from pushhub.db.models.notification import Notification, NotificationStatus
from pushhub.utils.exceptions import IllegalTransitionError


class LifecycleEvent(str, enum.Enum):
    SCHEDULE = "SCHEDULE"
    SEND_NOW = "SEND_NOW"
    CLAIM = "CLAIM"
    DELIVERED = "DELIVERED"
    FAIL = "FAIL"
    RESCHEDULE = "RESCHEDULE"
    EXPIRE = "EXPIRE"


# (current status, event) -> next status. ``None`` is a notification not yet persisted.
TRANSITIONS: Dict[tuple[Optional[NotificationStatus], LifecycleEvent], NotificationStatus] = {
    (None, LifecycleEvent.SCHEDULE): NotificationStatus.SCHEDULED,
    (None, LifecycleEvent.SEND_NOW): NotificationStatus.SENDING,
    (NotificationStatus.SCHEDULED, LifecycleEvent.CLAIM): NotificationStatus.SENDING,
    (NotificationStatus.SENDING, LifecycleEvent.DELIVERED): NotificationStatus.SENT,
    (NotificationStatus.SENDING, LifecycleEvent.FAIL): NotificationStatus.FAILED,
    (NotificationStatus.FAILED, LifecycleEvent.RESCHEDULE): NotificationStatus.SCHEDULED,
    # The worker holding the claim never settled it.
    (NotificationStatus.SENDING, LifecycleEvent.EXPIRE): NotificationStatus.FAILED,
}


def transition(
    current: Optional[NotificationStatus], event: LifecycleEvent
) -> NotificationStatus:
    """Return the status reached from ``current`` on ``event`` or raise ``IllegalTransitionError``."""

    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        state = current.value if current is not None else "NEW"
        raise IllegalTransitionError(
            f"Cannot apply {event.value} to a {state} notification",
            details={"status": state, "event": event.value},
        ) from None


def apply_transition(
    db: Session,
    notification_id: uuid.UUID,
    expected: NotificationStatus,
    event: LifecycleEvent,
    *criteria: ColumnElement[bool],
    **values: Any,
) -> bool:
    """Compare-and-set the status of a persisted notification.

    The row is updated only while its status is still ``expected``. Returns
    ``False`` when another writer moved it first; the caller must then abort.
    Extra ``criteria`` narrow the guard and extra ``values`` are written in
    the same statement. Does NOT commit.
    """

    target = transition(expected, event)
    result = db.execute(
        update(Notification)
        .where(Notification.id == notification_id)
        .where(Notification.status == expected)
        .where(*criteria)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info(
            "Status transition lost to a concurrent writer",
            notification_id=str(notification_id),
            expected=expected.value,
            event=event.value,
        )
        return False
    return True
