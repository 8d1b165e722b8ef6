"""Tests for audience resolution."""
from __future__ import annotations

import pytest

from pushhub.db.models import NotificationAudience, SubscriptionTier
from pushhub.services.audience import AudienceResolver
from pushhub.utils.exceptions import ValidationError


@pytest.fixture()
def population(make_recipient, make_device):
    free = make_recipient(tier=SubscriptionTier.FREE)
    premium = make_recipient(tier=SubscriptionTier.PREMIUM)
    pro = make_recipient(tier=SubscriptionTier.PRO)
    silent = make_recipient(tier=SubscriptionTier.FREE)
    make_device(free, token="free-phone")
    make_device(free, token="free-tablet")
    make_device(premium, token="premium-phone")
    make_device(pro, token="pro-phone")
    make_device(pro, token="pro-retired", is_active=False)
    return {"free": free, "premium": premium, "pro": pro, "silent": silent}


def test_resolve_all(db_session, population):
    tokens = AudienceResolver(db_session).resolve(NotificationAudience.ALL)

    assert tokens == {"free-phone", "free-tablet", "premium-phone", "pro-phone"}


def test_resolve_premium_includes_pro(db_session, population):
    tokens = AudienceResolver(db_session).resolve(NotificationAudience.PREMIUM_USERS)

    assert tokens == {"premium-phone", "pro-phone"}


def test_resolve_free(db_session, population):
    tokens = AudienceResolver(db_session).resolve(NotificationAudience.FREE_USERS)

    assert tokens == {"free-phone", "free-tablet"}


def test_resolve_specific_user(db_session, population):
    resolver = AudienceResolver(db_session)

    assert resolver.resolve(
        NotificationAudience.SPECIFIC_USER, population["free"].id
    ) == {"free-phone", "free-tablet"}
    assert resolver.resolve(NotificationAudience.SPECIFIC_USER, population["silent"].id) == set()


def test_specific_user_requires_target(db_session):
    resolver = AudienceResolver(db_session)

    with pytest.raises(ValidationError):
        resolver.resolve(NotificationAudience.SPECIFIC_USER)
    with pytest.raises(ValidationError):
        resolver.resolve_recipient_ids(NotificationAudience.SPECIFIC_USER)


def test_recipient_ids_count_each_recipient_once(db_session, population):
    resolver = AudienceResolver(db_session)

    assert resolver.resolve_recipient_ids(NotificationAudience.FREE_USERS) == {
        population["free"].id,
        population["silent"].id,
    }
    assert resolver.resolve_recipient_ids(NotificationAudience.PREMIUM_USERS) == {
        population["premium"].id,
        population["pro"].id,
    }
    assert len(resolver.resolve_recipient_ids(NotificationAudience.ALL)) == 4
