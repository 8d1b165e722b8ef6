"""Notification lifecycle: create, send, edit, delete and acknowledge."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from pushhub.config import settings
from pushhub.db.models.notification import (
    DeliveryStatus,
    Notification,
    NotificationAudience,
    NotificationHistory,
    NotificationStatus,
    NotificationType,
)
from pushhub.schemas.notification import NotificationCreate, NotificationFilter, NotificationUpdate
from pushhub.services.devices import DeviceRegistry
from pushhub.services.dispatcher import DeliveryDispatcher
from pushhub.services.lifecycle import LifecycleEvent, apply_transition, transition
from pushhub.services.push_transport import PushTransport
from pushhub.services.recipients import RecipientDirectory
from pushhub.utils.exceptions import ConflictError, DispatchError, NotFoundError, ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class NotificationService:
    """Own the notification status lifecycle and orchestrate delivery."""

    def __init__(
        self,
        db: Session,
        transport: PushTransport,
        *,
        dispatcher: DeliveryDispatcher | None = None,
        registry: DeviceRegistry | None = None,
        directory: RecipientDirectory | None = None,
    ) -> None:
        self.db = db
        self.registry = registry or DeviceRegistry(db)
        self.directory = directory or RecipientDirectory(db)
        self.dispatcher = dispatcher or DeliveryDispatcher(db, transport)

    # ------------------------------------------------------------------
    # Creation and delivery
    # ------------------------------------------------------------------
    def create(self, payload: NotificationCreate, *, now: datetime | None = None) -> Notification:
        """Persist a notification and send it now unless it is scheduled in the future.

        Delivery failures do not raise; they leave the notification FAILED.
        """

        self._validate_target(payload.audience, payload.recipient_id)

        now = now or utcnow()
        scheduled_at = as_utc(payload.scheduled_at) if payload.scheduled_at else None
        if scheduled_at is not None and scheduled_at > now:
            event = LifecycleEvent.SCHEDULE
        else:
            event = LifecycleEvent.SEND_NOW
            scheduled_at = None

        notification = Notification(
            title=payload.title,
            body=payload.body,
            data=payload.data,
            type=payload.type,
            audience=payload.audience,
            recipient_id=payload.recipient_id,
            status=transition(None, event),
            scheduled_at=scheduled_at,
            claimed_at=now if event == LifecycleEvent.SEND_NOW else None,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        logger.info(
            "Notification created",
            notification_id=str(notification.id),
            audience=notification.audience.value,
            status=notification.status.value,
        )

        if event == LifecycleEvent.SEND_NOW:
            self._deliver(notification)
        return notification

    def send(self, notification: Notification) -> bool:
        """Claim a SCHEDULED notification and deliver it.

        Returns ``False`` without dispatching when another worker claimed the
        notification first.
        """

        if not apply_transition(
            self.db,
            notification.id,
            NotificationStatus.SCHEDULED,
            LifecycleEvent.CLAIM,
            claimed_at=utcnow(),
        ):
            self.db.rollback()
            return False
        self.db.commit()
        self.db.refresh(notification)
        self._deliver(notification)
        return True

    def _deliver(self, notification: Notification) -> None:
        """Dispatch a SENDING notification and settle it as SENT or FAILED."""

        try:
            outcome = self.dispatcher.dispatch(notification)
        except DispatchError as exc:
            self.db.rollback()
            logger.error(
                "Failed to send notification",
                notification_id=str(notification.id),
                error=exc.message,
            )
            self._settle_failed(notification, exc.message)
            return
        except Exception as exc:
            self.db.rollback()
            self._settle_failed(notification, str(exc))
            raise

        if not apply_transition(
            self.db,
            notification.id,
            NotificationStatus.SENDING,
            LifecycleEvent.DELIVERED,
            sent_at=utcnow(),
            failure_reason=None,
        ):
            # Someone else settled the row; drop the staged history.
            self.db.rollback()
            self.db.refresh(notification)
            return
        self.db.commit()
        self.db.refresh(notification)

        if outcome.invalid_tokens:
            deactivated = self.registry.deactivate_tokens(outcome.invalid_tokens)
            logger.info(
                "Deactivated invalid device tokens",
                notification_id=str(notification.id),
                count=deactivated,
            )

    def _settle_failed(self, notification: Notification, reason: str) -> None:
        apply_transition(
            self.db,
            notification.id,
            NotificationStatus.SENDING,
            LifecycleEvent.FAIL,
            failure_reason=reason,
        )
        self.db.commit()
        self.db.refresh(notification)

    def expire_stale_claims(
        self, *, now: datetime | None = None, lease_seconds: float | None = None
    ) -> int:
        """Fail SENDING notifications whose claim outlived the lease.

        A worker that dies between claiming and settling leaves the row in
        SENDING; failing it lets ``update`` reschedule it. Rows without a
        claim timestamp count as stale.
        """

        lease = lease_seconds or settings.SENDING_LEASE_SECONDS
        cutoff = as_utc(now or utcnow()) - timedelta(seconds=lease)
        is_stale = or_(Notification.claimed_at.is_(None), Notification.claimed_at <= cutoff)

        stale_ids = list(
            self.db.scalars(
                select(Notification.id)
                .where(Notification.status == NotificationStatus.SENDING)
                .where(is_stale)
            )
        )
        expired = 0
        for notification_id in stale_ids:
            if apply_transition(
                self.db,
                notification_id,
                NotificationStatus.SENDING,
                LifecycleEvent.EXPIRE,
                is_stale,
                failure_reason=f"Delivery did not complete within {lease:g} seconds",
            ):
                expired += 1
                logger.warning(
                    "Expired stale notification claim", notification_id=str(notification_id)
                )
        self.db.commit()
        return expired

    def _validate_target(
        self, audience: NotificationAudience, recipient_id: uuid.UUID | None
    ) -> None:
        if audience == NotificationAudience.SPECIFIC_USER:
            if recipient_id is None:
                raise ValidationError("Recipient ID is required when audience is SPECIFIC_USER")
            if self.directory.find_by_id(recipient_id) is None:
                raise ValidationError(
                    "Target recipient does not exist",
                    details={"recipient_id": str(recipient_id)},
                )
        elif recipient_id is not None:
            raise ValidationError(
                "Recipient ID is only allowed when audience is SPECIFIC_USER",
                details={"audience": audience.value},
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, notification_id: uuid.UUID) -> Notification:
        notification = self.db.get(Notification, notification_id, populate_existing=True)
        if notification is None:
            raise NotFoundError(f"Notification with ID {notification_id} not found")
        return notification

    def list_notifications(self, filters: NotificationFilter | None = None) -> List[Notification]:
        """Return notifications matching ``filters``, newest first."""

        filters = filters or NotificationFilter()
        stmt = select(Notification)
        if filters.status is not None:
            stmt = stmt.where(Notification.status == filters.status)
        if filters.type is not None:
            stmt = stmt.where(Notification.type == filters.type)
        if filters.audience is not None:
            stmt = stmt.where(Notification.audience == filters.audience)
        if filters.recipient_id is not None:
            stmt = stmt.where(Notification.recipient_id == filters.recipient_id)
        stmt = stmt.order_by(Notification.created_at.desc())
        return list(self.db.scalars(stmt))

    def recipient_history(self, recipient_id: uuid.UUID) -> List[NotificationHistory]:
        stmt = (
            select(NotificationHistory)
            .where(NotificationHistory.recipient_id == recipient_id)
            .options(selectinload(NotificationHistory.notification))
            .order_by(NotificationHistory.created_at.desc())
        )
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def update(self, notification_id: uuid.UUID, patch: NotificationUpdate) -> Notification:
        """Edit a notification that has not been sent.

        SENT and in-flight notifications are rejected with ``ConflictError``.
        Setting ``status`` to SCHEDULED reschedules a FAILED notification.
        """

        notification = self.get(notification_id)
        current = notification.status
        if current == NotificationStatus.SENT:
            raise ConflictError("Cannot modify a sent notification")
        if current == NotificationStatus.SENDING:
            raise ConflictError("Cannot modify a notification while it is being sent")

        changes: Dict[str, Any] = {
            field: value
            for field, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or field == "data"
        }
        if changes.get("scheduled_at") is not None:
            changes["scheduled_at"] = as_utc(changes["scheduled_at"])

        requested = changes.pop("status", None)
        if requested is not None and requested != current:
            if requested != NotificationStatus.SCHEDULED:
                raise ValidationError(
                    "Status can only be changed to SCHEDULED",
                    details={"status": requested.value},
                )
            changes.setdefault("scheduled_at", notification.scheduled_at or utcnow())
            changes["failure_reason"] = None
            changes["claimed_at"] = None
            applied = apply_transition(
                self.db, notification.id, current, LifecycleEvent.RESCHEDULE, **changes
            )
        elif changes:
            result = self.db.execute(
                update(Notification)
                .where(Notification.id == notification.id)
                .where(Notification.status == current)
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount > 0
        else:
            return notification

        if not applied:
            self.db.rollback()
            raise ConflictError("Notification changed state while it was being updated")
        self.db.commit()
        self.db.refresh(notification)
        logger.info(
            "Notification updated",
            notification_id=str(notification.id),
            fields=sorted(changes),
        )
        return notification

    def remove(self, notification_id: uuid.UUID) -> None:
        """Delete a notification and its delivery history, whatever its status."""

        notification = self.get(notification_id)
        self.db.execute(
            delete(NotificationHistory).where(
                NotificationHistory.notification_id == notification.id
            )
        )
        self.db.delete(notification)
        self.db.commit()
        logger.info("Notification deleted", notification_id=str(notification_id))

    def acknowledge(
        self,
        notification_id: uuid.UUID,
        recipient_id: uuid.UUID,
        status: DeliveryStatus,
    ) -> NotificationHistory:
        """Record that a recipient read or clicked a delivered notification.

        The timestamp stamped depends only on the requested status and is kept
        from the first acknowledgement. Status never moves backwards.
        """

        now = utcnow()
        if status == DeliveryStatus.READ:
            values = {
                "read_at": func.coalesce(NotificationHistory.read_at, now),
                "status": case(
                    (NotificationHistory.status == DeliveryStatus.DELIVERED.value, DeliveryStatus.READ.value),
                    else_=NotificationHistory.status,
                ),
            }
        elif status == DeliveryStatus.CLICKED:
            values = {
                "clicked_at": func.coalesce(NotificationHistory.clicked_at, now),
                "status": DeliveryStatus.CLICKED,
            }
        else:
            raise ValidationError(
                "Acknowledgement status must be READ or CLICKED",
                details={"status": status.value},
            )

        result = self.db.execute(
            update(NotificationHistory)
            .where(NotificationHistory.notification_id == notification_id)
            .where(NotificationHistory.recipient_id == recipient_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError(
                f"Notification history not found for notification {notification_id} "
                f"and recipient {recipient_id}"
            )
        self.db.commit()

        entry = self.db.scalars(
            select(NotificationHistory)
            .where(NotificationHistory.notification_id == notification_id)
            .where(NotificationHistory.recipient_id == recipient_id)
            .execution_options(populate_existing=True)
        ).one()
        return entry

    # ------------------------------------------------------------------
    # Convenience senders
    # ------------------------------------------------------------------
    def notify_song_request_completed(self, email: str, song_name: str) -> Optional[Notification]:
        """Tell the requester that their song request has been completed."""

        return self._notify_by_email(
            email,
            title="Song Request Completed",
            body=f'Your song request for "{song_name}" has been completed!',
            type=NotificationType.SONG_REQUEST_COMPLETED,
            data={"songName": song_name},
        )

    def notify_song_added(self, email: str, song_name: str, song_id: str) -> Optional[Notification]:
        """Tell the requester that the song they asked for is now available."""

        return self._notify_by_email(
            email,
            title="Song Added",
            body=f'The song "{song_name}" you requested has been added!',
            type=NotificationType.SONG_ADDED,
            data={"songId": song_id, "songName": song_name},
        )

    def send_test(self, recipient_id: uuid.UUID) -> Notification:
        return self.create(
            NotificationCreate(
                title="Test Notification",
                body="This is a test notification from the API",
                type=NotificationType.GENERAL,
                audience=NotificationAudience.SPECIFIC_USER,
                recipient_id=recipient_id,
                data={"test": True, "timestamp": utcnow().isoformat()},
            )
        )

    def _notify_by_email(
        self,
        email: str,
        *,
        title: str,
        body: str,
        type: NotificationType,
        data: Dict[str, Any],
    ) -> Optional[Notification]:
        recipient = self.directory.find_by_email(email)
        if recipient is None:
            logger.warning("Recipient not found for notification", email=email, type=type.value)
            return None
        return self.create(
            NotificationCreate(
                title=title,
                body=body,
                type=type,
                audience=NotificationAudience.SPECIFIC_USER,
                recipient_id=recipient.id,
                data=data,
            )
        )
