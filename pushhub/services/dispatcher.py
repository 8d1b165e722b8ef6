"""Delivery dispatcher: build the multicast message, send it, record history."""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence

from loguru import logger
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pushhub.config import settings
from pushhub.db.models.notification import DeliveryStatus, Notification, NotificationHistory
from pushhub.services.audience import AudienceResolver
from pushhub.services.push_transport import AndroidHints, PushMessage, PushTransport
from pushhub.utils.exceptions import DispatchError

HISTORY_INSERT_BATCH = 500


@dataclass
class DispatchOutcome:
    """Aggregated transport outcome for one notification."""

    success_count: int = 0
    failure_count: int = 0
    recipient_ids: set[uuid.UUID] = field(default_factory=set)
    invalid_tokens: List[str] = field(default_factory=list)


def stringify_data(data: Mapping[str, Any] | None) -> Dict[str, str]:
    """Coerce a payload to the string-only map the transport accepts."""

    result: Dict[str, str] = {}
    for key, value in (data or {}).items():
        if isinstance(value, str):
            result[key] = value
        elif value is None or isinstance(value, (dict, list, tuple, bool)):
            result[key] = json.dumps(value)
        else:
            result[key] = str(value)
    return result


def build_message(
    notification: Notification,
    tokens: Sequence[str],
    *,
    android_channel_id: str = "high_importance_channel",
) -> PushMessage:
    """Build the multicast message for ``notification``.

    The data block repeats title and body so data-only consumers can render
    the notification without the notification block.
    """

    data = stringify_data(notification.data)
    data.update(
        title=notification.title,
        body=notification.body,
        notificationId=str(notification.id),
    )
    return PushMessage(
        tokens=list(tokens),
        title=notification.title,
        body=notification.body,
        data=data,
        android=AndroidHints(channel_id=android_channel_id),
    )


def _chunks(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class DeliveryDispatcher:
    """Send a notification to its resolved audience through a push transport."""

    def __init__(
        self,
        db: Session,
        transport: PushTransport,
        resolver: AudienceResolver | None = None,
        *,
        batch_size: int | None = None,
        android_channel_id: str | None = None,
    ) -> None:
        self.db = db
        self.transport = transport
        self.resolver = resolver or AudienceResolver(db)
        self.batch_size = batch_size or settings.PUSH_MULTICAST_BATCH_SIZE
        self.android_channel_id = android_channel_id or settings.ANDROID_CHANNEL_ID

    def dispatch(self, notification: Notification) -> DispatchOutcome:
        """Deliver ``notification`` and stage its history rows. Does NOT commit.

        Raises ``DispatchError`` when the transport fails at batch level, in
        which case no history is staged.
        """

        tokens = sorted(self.resolver.resolve(notification.audience, notification.recipient_id))
        if not tokens:
            logger.warning(
                "No device tokens found for notification",
                notification_id=str(notification.id),
                audience=notification.audience.value,
            )
            return DispatchOutcome()

        outcome = DispatchOutcome()
        for chunk in _chunks(tokens, self.batch_size):
            message = build_message(
                notification, chunk, android_channel_id=self.android_channel_id
            )
            try:
                result = self.transport.multicast_send(message)
            except Exception as exc:
                raise DispatchError(
                    f"Push transport failed: {exc}",
                    details={"notification_id": str(notification.id)},
                ) from exc
            outcome.success_count += result.success_count
            outcome.failure_count += result.failure_count
            outcome.invalid_tokens.extend(result.invalid_tokens)

        outcome.recipient_ids = self.resolver.resolve_recipient_ids(
            notification.audience, notification.recipient_id
        )
        self.record_history(notification.id, outcome.recipient_ids)

        logger.info(
            "Notification dispatched",
            notification_id=str(notification.id),
            tokens=len(tokens),
            success=outcome.success_count,
            failures=outcome.failure_count,
            recipients=len(outcome.recipient_ids),
        )
        return outcome

    def record_history(
        self, notification_id: uuid.UUID, recipient_ids: Iterable[uuid.UUID]
    ) -> None:
        """Insert one DELIVERED row per recipient, skipping rows that already exist."""

        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": uuid.uuid4(),
                "notification_id": notification_id,
                "recipient_id": recipient_id,
                "status": DeliveryStatus.DELIVERED,
                "delivered_at": now,
            }
            for recipient_id in sorted(recipient_ids, key=str)
        ]
        insert = pg_insert if self.db.get_bind().dialect.name == "postgresql" else sqlite_insert
        for start in range(0, len(rows), HISTORY_INSERT_BATCH):
            self.db.execute(
                insert(NotificationHistory)
                .values(rows[start : start + HISTORY_INSERT_BATCH])
                .on_conflict_do_nothing(index_elements=["notification_id", "recipient_id"])
            )
