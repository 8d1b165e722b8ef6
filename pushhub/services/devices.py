"""Device registry: which push tokens belong to which recipient."""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Union

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushhub.db.models.device_token import DeviceToken
from pushhub.db.models.recipient import Recipient, SubscriptionTier


@dataclass(frozen=True)
class AllActive:
    """Every active token in the system."""


@dataclass(frozen=True)
class ByTier:
    """Active tokens owned by recipients on one of the given tiers."""

    tiers: frozenset[SubscriptionTier]


@dataclass(frozen=True)
class ByRecipient:
    """Active tokens owned by a single recipient."""

    recipient_id: uuid.UUID


TokenSelector = Union[AllActive, ByTier, ByRecipient]


class UnregisterOutcome(str, enum.Enum):
    """Best-effort result of unregistering a token."""

    DEACTIVATED = "deactivated"
    NOT_FOUND = "not_found"


class DeviceRegistry:
    """Register, deactivate and look up delivery endpoints."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def register(
        self,
        recipient_id: uuid.UUID,
        token: str,
        device_type: str,
        device_name: str | None = None,
    ) -> DeviceToken:
        """Upsert a token, (re)assigning it to ``recipient_id`` and reactivating it."""

        try:
            device = self._upsert(recipient_id, token, device_type, device_name)
            self.db.commit()
        except IntegrityError:
            # A concurrent registration inserted the same token first.
            self.db.rollback()
            device = self._upsert(recipient_id, token, device_type, device_name)
            self.db.commit()

        self.db.refresh(device)
        logger.info(
            "Device token registered",
            recipient_id=str(recipient_id),
            device_type=device_type,
        )
        return device

    def _upsert(
        self,
        recipient_id: uuid.UUID,
        token: str,
        device_type: str,
        device_name: str | None,
    ) -> DeviceToken:
        now = datetime.now(timezone.utc)
        device = self.db.scalars(select(DeviceToken).where(DeviceToken.token == token)).first()
        if device is None:
            device = DeviceToken(token=token)
            self.db.add(device)
        device.recipient_id = recipient_id
        device.device_type = device_type
        device.device_name = device_name
        device.is_active = True
        device.last_used_at = now
        self.db.flush()
        return device

    def unregister(self, token: str) -> UnregisterOutcome:
        """Deactivate a token. Unknown tokens are a no-op."""

        result = self.db.execute(
            update(DeviceToken).where(DeviceToken.token == token).values(is_active=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            logger.info("Unregister requested for unknown device token")
            return UnregisterOutcome.NOT_FOUND
        return UnregisterOutcome.DEACTIVATED

    def deactivate_tokens(self, tokens: Iterable[str]) -> int:
        """Deactivate tokens the transport reported as no longer valid."""

        tokens = list(tokens)
        if not tokens:
            return 0
        result = self.db.execute(
            update(DeviceToken)
            .where(DeviceToken.token.in_(tokens))
            .values(is_active=False)
        )
        self.db.commit()
        return result.rowcount

    def lookup(self, selector: TokenSelector) -> set[str]:
        """Return the active tokens matched by ``selector``."""

        return set(self.lookup_owners(selector))

    def lookup_owners(self, selector: TokenSelector) -> dict[str, uuid.UUID]:
        """Return ``{token: owning recipient id}`` for active tokens matched by ``selector``."""

        stmt = select(DeviceToken.token, DeviceToken.recipient_id).where(
            DeviceToken.is_active.is_(True)
        )
        if isinstance(selector, ByRecipient):
            stmt = stmt.where(DeviceToken.recipient_id == selector.recipient_id)
        elif isinstance(selector, ByTier):
            stmt = stmt.join(Recipient, Recipient.id == DeviceToken.recipient_id).where(
                Recipient.subscription_tier.in_(list(selector.tiers))
            )
        elif not isinstance(selector, AllActive):
            raise TypeError(f"Unsupported token selector: {selector!r}")

        return {token: recipient_id for token, recipient_id in self.db.execute(stmt)}

    def list_for_recipient(self, recipient_id: uuid.UUID) -> list[DeviceToken]:
        stmt = (
            select(DeviceToken)
            .where(DeviceToken.recipient_id == recipient_id)
            .order_by(DeviceToken.last_used_at.desc())
        )
        return list(self.db.scalars(stmt))
