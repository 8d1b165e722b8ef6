"""Tests for the device registry."""
from __future__ import annotations

from pushhub.db.models import DeviceToken, SubscriptionTier
from pushhub.services.devices import (
    AllActive,
    ByRecipient,
    ByTier,
    DeviceRegistry,
    UnregisterOutcome,
)


def test_register_creates_active_token(db_session, make_recipient):
    recipient = make_recipient()
    registry = DeviceRegistry(db_session)

    device = registry.register(recipient.id, "tok-1", "android", "Pixel")

    assert device.recipient_id == recipient.id
    assert device.is_active is True
    assert device.device_name == "Pixel"
    assert registry.lookup(ByRecipient(recipient.id)) == {"tok-1"}


def test_register_reassigns_existing_token(db_session, make_recipient):
    alice = make_recipient()
    bob = make_recipient()
    registry = DeviceRegistry(db_session)

    registry.register(alice.id, "shared", "ios")
    registry.unregister("shared")
    device = registry.register(bob.id, "shared", "ios")

    assert device.recipient_id == bob.id
    assert device.is_active is True
    assert db_session.query(DeviceToken).filter(DeviceToken.token == "shared").count() == 1
    assert registry.lookup(ByRecipient(alice.id)) == set()
    assert registry.lookup(ByRecipient(bob.id)) == {"shared"}


def test_unregister_known_token(db_session, make_recipient, make_device):
    recipient = make_recipient()
    make_device(recipient, token="tok-1")
    registry = DeviceRegistry(db_session)

    assert registry.unregister("tok-1") == UnregisterOutcome.DEACTIVATED
    assert registry.lookup(AllActive()) == set()


def test_unregister_unknown_token_is_a_no_op(db_session):
    registry = DeviceRegistry(db_session)

    assert registry.unregister("missing") == UnregisterOutcome.NOT_FOUND


def test_deactivate_tokens_reports_count(db_session, make_recipient, make_device):
    recipient = make_recipient()
    make_device(recipient, token="a")
    make_device(recipient, token="b")
    make_device(recipient, token="c")
    registry = DeviceRegistry(db_session)

    assert registry.deactivate_tokens(["a", "c", "unknown"]) == 2
    assert registry.deactivate_tokens([]) == 0
    assert registry.lookup(ByRecipient(recipient.id)) == {"b"}


def test_lookup_by_tier_ignores_inactive_tokens(db_session, make_recipient, make_device):
    free = make_recipient(tier=SubscriptionTier.FREE)
    premium = make_recipient(tier=SubscriptionTier.PREMIUM)
    pro = make_recipient(tier=SubscriptionTier.PRO)
    make_device(free, token="free-1")
    make_device(premium, token="premium-1")
    make_device(premium, token="premium-old", is_active=False)
    make_device(pro, token="pro-1")
    registry = DeviceRegistry(db_session)

    paid = ByTier(frozenset({SubscriptionTier.PREMIUM, SubscriptionTier.PRO}))

    assert registry.lookup(paid) == {"premium-1", "pro-1"}
    assert registry.lookup(ByTier(frozenset({SubscriptionTier.FREE}))) == {"free-1"}
    assert registry.lookup_owners(AllActive()) == {
        "free-1": free.id,
        "premium-1": premium.id,
        "pro-1": pro.id,
    }


def test_list_for_recipient_includes_inactive(db_session, make_recipient, make_device):
    recipient = make_recipient()
    make_device(recipient, token="on")
    make_device(recipient, token="off", is_active=False)

    tokens = {device.token for device in DeviceRegistry(db_session).list_for_recipient(recipient.id)}

    assert tokens == {"on", "off"}
