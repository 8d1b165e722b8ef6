"""Read-only access to recipients and their subscription tiers."""
from __future__ import annotations

import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from pushhub.db.models.recipient import Recipient, SubscriptionTier


class RecipientDirectory:
    """Encapsulates recipient lookups used by audience resolution."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, recipient_id: uuid.UUID) -> Recipient | None:
        """Return a recipient by identifier, or ``None`` when it does not exist."""

        return self.db.get(Recipient, recipient_id)

    def find_by_email(self, email: str) -> Recipient | None:
        stmt = select(Recipient).where(Recipient.email == email)
        return self.db.scalars(stmt).first()

    def list_ids_by_tier(self, tiers: Iterable[SubscriptionTier]) -> set[uuid.UUID]:
        """Return ids of recipients whose subscription tier is one of ``tiers``."""

        stmt = select(Recipient.id).where(Recipient.subscription_tier.in_(list(tiers)))
        return set(self.db.scalars(stmt))

    def list_all_ids(self) -> set[uuid.UUID]:
        return set(self.db.scalars(select(Recipient.id)))
