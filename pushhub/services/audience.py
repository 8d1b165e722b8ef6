"""Audience resolution: turn an audience selector into tokens or recipients."""
from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from pushhub.db.models.notification import NotificationAudience
from pushhub.db.models.recipient import SubscriptionTier
from pushhub.services.devices import AllActive, ByRecipient, ByTier, DeviceRegistry, TokenSelector
from pushhub.services.recipients import RecipientDirectory
from pushhub.utils.exceptions import ValidationError

PREMIUM_TIERS = frozenset({SubscriptionTier.PREMIUM, SubscriptionTier.PRO})
FREE_TIERS = frozenset({SubscriptionTier.FREE})


class AudienceResolver:
    """Resolve audiences against the device registry and recipient directory."""

    def __init__(
        self,
        db: Session,
        registry: DeviceRegistry | None = None,
        directory: RecipientDirectory | None = None,
    ) -> None:
        self.registry = registry or DeviceRegistry(db)
        self.directory = directory or RecipientDirectory(db)

    def resolve(
        self, audience: NotificationAudience, target_recipient_id: uuid.UUID | None = None
    ) -> set[str]:
        """Return the active tokens addressed by ``audience``. May be empty."""

        return self.registry.lookup(self._selector(audience, target_recipient_id))

    def resolve_recipient_ids(
        self, audience: NotificationAudience, target_recipient_id: uuid.UUID | None = None
    ) -> set[uuid.UUID]:
        """Return one id per recipient selected by ``audience``, however many devices each owns."""

        if audience == NotificationAudience.SPECIFIC_USER:
            return {self._require_target(target_recipient_id)}
        if audience == NotificationAudience.PREMIUM_USERS:
            return self.directory.list_ids_by_tier(PREMIUM_TIERS)
        if audience == NotificationAudience.FREE_USERS:
            return self.directory.list_ids_by_tier(FREE_TIERS)
        return self.directory.list_all_ids()

    def _selector(
        self, audience: NotificationAudience, target_recipient_id: uuid.UUID | None
    ) -> TokenSelector:
        if audience == NotificationAudience.SPECIFIC_USER:
            return ByRecipient(self._require_target(target_recipient_id))
        if audience == NotificationAudience.PREMIUM_USERS:
            return ByTier(PREMIUM_TIERS)
        if audience == NotificationAudience.FREE_USERS:
            return ByTier(FREE_TIERS)
        return AllActive()

    @staticmethod
    def _require_target(target_recipient_id: uuid.UUID | None) -> uuid.UUID:
        if target_recipient_id is None:
            raise ValidationError("Recipient ID is required when audience is SPECIFIC_USER")
        return target_recipient_id
