"""Tests for the notification status state machine."""
from __future__ import annotations

import pytest

from pushhub.db.models import Notification, NotificationAudience, NotificationStatus
from pushhub.services.lifecycle import TRANSITIONS, LifecycleEvent, apply_transition, transition
from pushhub.utils.exceptions import ConflictError, IllegalTransitionError


@pytest.mark.parametrize(
    ("current", "event", "expected"),
    [
        (None, LifecycleEvent.SCHEDULE, NotificationStatus.SCHEDULED),
        (None, LifecycleEvent.SEND_NOW, NotificationStatus.SENDING),
        (NotificationStatus.SCHEDULED, LifecycleEvent.CLAIM, NotificationStatus.SENDING),
        (NotificationStatus.SENDING, LifecycleEvent.DELIVERED, NotificationStatus.SENT),
        (NotificationStatus.SENDING, LifecycleEvent.FAIL, NotificationStatus.FAILED),
        (NotificationStatus.FAILED, LifecycleEvent.RESCHEDULE, NotificationStatus.SCHEDULED),
        (NotificationStatus.SENDING, LifecycleEvent.EXPIRE, NotificationStatus.FAILED),
    ],
)
def test_allowed_transitions(current, event, expected):
    assert transition(current, event) == expected


def test_sent_is_terminal():
    for event in LifecycleEvent:
        with pytest.raises(IllegalTransitionError):
            transition(NotificationStatus.SENT, event)


def test_illegal_transition_is_a_conflict():
    with pytest.raises(ConflictError) as exc_info:
        transition(NotificationStatus.SCHEDULED, LifecycleEvent.DELIVERED)

    assert exc_info.value.details == {"status": "SCHEDULED", "event": "DELIVERED"}


def test_no_transition_leaves_sent():
    assert not [key for key in TRANSITIONS if key[0] == NotificationStatus.SENT]


def _persist(db_session, status: NotificationStatus) -> Notification:
    notification = Notification(
        title="Hello",
        body="World",
        audience=NotificationAudience.ALL,
        status=status,
    )
    db_session.add(notification)
    db_session.commit()
    return notification


def test_apply_transition_updates_matching_row(db_session):
    notification = _persist(db_session, NotificationStatus.SCHEDULED)

    assert apply_transition(
        db_session, notification.id, NotificationStatus.SCHEDULED, LifecycleEvent.CLAIM
    )
    db_session.commit()
    db_session.refresh(notification)

    assert notification.status == NotificationStatus.SENDING


def test_apply_transition_loses_when_status_moved(db_session):
    notification = _persist(db_session, NotificationStatus.SENDING)

    assert not apply_transition(
        db_session, notification.id, NotificationStatus.SCHEDULED, LifecycleEvent.CLAIM
    )
    db_session.rollback()
    db_session.refresh(notification)

    assert notification.status == NotificationStatus.SENDING


def test_apply_transition_rejects_illegal_event_before_writing(db_session):
    notification = _persist(db_session, NotificationStatus.SCHEDULED)

    with pytest.raises(IllegalTransitionError):
        apply_transition(
            db_session, notification.id, NotificationStatus.SCHEDULED, LifecycleEvent.FAIL
        )

    db_session.refresh(notification)
    assert notification.status == NotificationStatus.SCHEDULED
