"""API tests for notification, device and history routes."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from pushhub.db.models import DeviceToken, NotificationHistory, SubscriptionTier
from pushhub.main import create_app

PREFIX = "/api/v1/notifications"


@pytest.fixture()
def admin(make_recipient):
    return make_recipient(email="admin@example.com", tier=SubscriptionTier.PRO, is_admin=True)


@pytest.fixture()
def member(make_recipient):
    return make_recipient(email="member@example.com")


def test_transport_is_opened_and_closed_by_lifespan(transport):
    with TestClient(create_app(transport=transport)):
        assert transport.opened is True
    assert transport.closed is True


def test_requires_authentication(client):
    response = client.get(f"{PREFIX}/history")

    assert response.status_code == 401


def test_admin_routes_reject_members(client, member, auth_headers):
    response = client.post(
        PREFIX, json={"title": "Hi", "body": "There"}, headers=auth_headers(member)
    )

    assert response.status_code == 403


def test_register_and_unregister_device_token(client, db_session, member, auth_headers):
    headers = auth_headers(member)

    created = client.post(
        f"{PREFIX}/device-token",
        json={"token": "fcm-abc", "device_type": "android", "device_name": "Pixel"},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["recipient_id"] == str(member.id)
    assert created.json()["is_active"] is True

    listed = client.get(f"{PREFIX}/device-token", headers=headers)
    assert [device["token"] for device in listed.json()] == ["fcm-abc"]

    removed = client.delete(f"{PREFIX}/device-token/fcm-abc", headers=headers)
    assert removed.json() == {"outcome": "deactivated"}
    device = db_session.query(DeviceToken).filter_by(token="fcm-abc").one()
    db_session.refresh(device)
    assert device.is_active is False

    missing = client.delete(f"{PREFIX}/device-token/unknown", headers=headers)
    assert missing.status_code == 200
    assert missing.json() == {"outcome": "not_found"}


def test_register_rejects_unknown_device_type(client, member, auth_headers):
    response = client.post(
        f"{PREFIX}/device-token",
        json={"token": "fcm-abc", "device_type": "fridge"},
        headers=auth_headers(member),
    )

    assert response.status_code == 422


def test_create_notification_sends_immediately(client, db_session, transport, admin, member, make_device, auth_headers):
    make_device(member, token="member-phone")

    response = client.post(
        PREFIX,
        json={"title": "Hi", "body": "There", "data": {"screen": "home"}},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "SENT"
    assert body["sent_at"] is not None
    assert transport.messages[0].data["screen"] == "home"
    recipients = {row.recipient_id for row in db_session.query(NotificationHistory).all()}
    assert recipients == {admin.id, member.id}


def test_create_specific_user_without_target_is_rejected(client, admin, auth_headers):
    response = client.post(
        PREFIX,
        json={"title": "Hi", "body": "There", "audience": "SPECIFIC_USER"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 422
    assert "SPECIFIC_USER" in response.json()["detail"]


def test_list_and_filter_notifications(client, admin, auth_headers):
    headers = auth_headers(admin)
    later = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
    client.post(PREFIX, json={"title": "Now", "body": "Body"}, headers=headers)
    client.post(PREFIX, json={"title": "Later", "body": "Body", "scheduled_at": later}, headers=headers)

    everything = client.get(PREFIX, headers=headers)
    scheduled = client.get(PREFIX, params={"status": "SCHEDULED"}, headers=headers)

    assert len(everything.json()) == 2
    assert [item["title"] for item in scheduled.json()] == ["Later"]


def test_get_unknown_notification(client, admin, auth_headers):
    response = client.get(f"{PREFIX}/{uuid.uuid4()}", headers=auth_headers(admin))

    assert response.status_code == 404


def test_update_sent_notification_conflicts(client, admin, auth_headers):
    headers = auth_headers(admin)
    created = client.post(PREFIX, json={"title": "Hi", "body": "There"}, headers=headers).json()

    response = client.patch(f"{PREFIX}/{created['id']}", json={"title": "Changed"}, headers=headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot modify a sent notification"
    assert client.get(f"{PREFIX}/{created['id']}", headers=headers).json()["title"] == "Hi"


def test_update_requires_fields(client, admin, auth_headers):
    response = client.patch(f"{PREFIX}/{uuid.uuid4()}", json={}, headers=auth_headers(admin))

    assert response.status_code == 422
    assert "At least one field must be provided" in response.json()["detail"][0]["msg"]


def test_delete_notification(client, admin, auth_headers):
    headers = auth_headers(admin)
    created = client.post(PREFIX, json={"title": "Hi", "body": "There"}, headers=headers).json()

    response = client.delete(f"{PREFIX}/{created['id']}", headers=headers)

    assert response.status_code == 204
    assert client.get(f"{PREFIX}/{created['id']}", headers=headers).status_code == 404


def test_history_and_acknowledge(client, admin, member, make_device, auth_headers):
    make_device(member)
    created = client.post(
        PREFIX, json={"title": "Hi", "body": "There"}, headers=auth_headers(admin)
    ).json()
    headers = auth_headers(member)

    history = client.get(f"{PREFIX}/history", headers=headers).json()
    assert [entry["notification_id"] for entry in history] == [created["id"]]
    assert history[0]["status"] == "DELIVERED"
    assert history[0]["notification"]["title"] == "Hi"

    read = client.patch(f"{PREFIX}/history/{created['id']}", json={"status": "READ"}, headers=headers)
    assert read.status_code == 200
    assert read.json()["read_at"] is not None

    clicked = client.patch(
        f"{PREFIX}/history/{created['id']}", json={"status": "CLICKED"}, headers=headers
    ).json()
    assert clicked["status"] == "CLICKED"
    assert clicked["read_at"] is not None
    assert clicked["clicked_at"] is not None


def test_acknowledge_unknown_history(client, member, auth_headers):
    response = client.patch(
        f"{PREFIX}/history/{uuid.uuid4()}", json={"status": "READ"}, headers=auth_headers(member)
    )

    assert response.status_code == 404


def test_send_test_notification(client, transport, member, make_device, auth_headers):
    make_device(member, token="member-phone")

    response = client.post(f"{PREFIX}/test", headers=auth_headers(member))

    assert response.status_code == 201
    assert response.json()["recipient_id"] == str(member.id)
    assert transport.sent_tokens == ["member-phone"]


def test_process_scheduled_endpoint(client, admin, auth_headers):
    headers = auth_headers(admin)
    soon = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
    client.post(PREFIX, json={"title": "Later", "body": "Body", "scheduled_at": soon}, headers=headers)

    response = client.post(f"{PREFIX}/process-scheduled", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"processed": 0}
