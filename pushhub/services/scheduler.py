"""Scheduler sweep: promote due SCHEDULED notifications into the send path."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from pushhub.db.models.notification import Notification, NotificationStatus
from pushhub.services.notifications import NotificationService, as_utc, utcnow
from pushhub.services.push_transport import PushTransport


class SchedulerSweep:
    """Find due scheduled notifications and hand each one to ``NotificationService.send``."""

    def __init__(
        self,
        db: Session,
        transport: PushTransport,
        service: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.service = service or NotificationService(db, transport)

    def due_ids(self, now: datetime) -> List[uuid.UUID]:
        stmt = (
            select(Notification.id)
            .where(Notification.status == NotificationStatus.SCHEDULED)
            .where(Notification.scheduled_at.is_not(None))
            .where(Notification.scheduled_at <= as_utc(now))
            .order_by(Notification.scheduled_at)
        )
        return list(self.db.scalars(stmt))

    def sweep_due(self, now: datetime | None = None) -> int:
        """Send every notification due at ``now``; return how many this call processed.

        Safe to run concurrently: each notification is claimed with a
        compare-and-set before dispatch, so only one sweep delivers it.
        Claims older than the SENDING lease are failed first.
        """

        now = now or utcnow()
        expired = self.service.expire_stale_claims(now=now)
        due = self.due_ids(now)
        logger.info("Processing scheduled notifications", due=len(due), expired=expired)

        processed = 0
        skipped = 0
        errors = 0
        for notification_id in due:
            notification = self.db.get(Notification, notification_id, populate_existing=True)
            if notification is None or notification.status != NotificationStatus.SCHEDULED:
                skipped += 1
                continue
            try:
                if self.service.send(notification):
                    processed += 1
                else:
                    skipped += 1
            except Exception as exc:
                self.db.rollback()
                logger.error(
                    "Failed to process scheduled notification",
                    notification_id=str(notification_id),
                    error=str(exc),
                )
                errors += 1

        logger.info(
            "Scheduled notifications processed",
            processed=processed,
            skipped=skipped,
            errors=errors,
        )
        return processed
