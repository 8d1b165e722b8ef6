"""Pytest fixtures for service and API tests."""

import os
import uuid
from collections.abc import Generator
from typing import Callable, List, Optional

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pushhub.api.deps import get_db
from pushhub.core.security import create_access_token
from pushhub.db import models  # noqa: F401  # Imported for side effects
from pushhub.db.base import Base
from pushhub.db.models import DeviceToken, Notification, NotificationHistory, Recipient, SubscriptionTier
from pushhub.main import create_app
from pushhub.services.push_transport import MulticastResult, PushMessage


class RecordingTransport:
    """In-memory push transport that records every multicast request."""

    def __init__(self) -> None:
        self.opened = False
        self.closed = False
        self.messages: List[PushMessage] = []
        self.invalid_tokens: set[str] = set()
        self.error: Optional[Exception] = None

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def multicast_send(self, message: PushMessage) -> MulticastResult:
        if self.error is not None:
            raise self.error
        self.messages.append(message)
        invalid = [token for token in message.tokens if token in self.invalid_tokens]
        return MulticastResult(
            success_count=len(message.tokens) - len(invalid),
            failure_count=len(invalid),
            invalid_tokens=invalid,
        )

    @property
    def sent_tokens(self) -> List[str]:
        return [token for message in self.messages for token in message.tokens]


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.query(NotificationHistory).delete()
        db.query(Notification).delete()
        db.query(DeviceToken).delete()
        db.query(Recipient).delete()
        db.commit()
        db.close()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def make_recipient(db_session: Session) -> Callable[..., Recipient]:
    def factory(
        email: Optional[str] = None,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        is_admin: bool = False,
    ) -> Recipient:
        recipient = Recipient(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            full_name="Test Recipient",
            subscription_tier=tier,
            is_active=True,
            is_admin=is_admin,
        )
        db_session.add(recipient)
        db_session.commit()
        db_session.refresh(recipient)
        return recipient

    return factory


@pytest.fixture()
def make_device(db_session: Session) -> Callable[..., DeviceToken]:
    def factory(recipient: Recipient, token: Optional[str] = None, is_active: bool = True) -> DeviceToken:
        device = DeviceToken(
            token=token or f"token-{uuid.uuid4().hex}",
            recipient_id=recipient.id,
            device_type="android",
            is_active=is_active,
        )
        db_session.add(device)
        db_session.commit()
        db_session.refresh(device)
        return device

    return factory


@pytest.fixture()
def auth_headers() -> Callable[[Recipient], dict[str, str]]:
    def build(recipient: Recipient) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(recipient.id)}"}

    return build


@pytest.fixture()
def client(db_session: Session, transport: RecordingTransport) -> Generator[TestClient, None, None]:
    app = create_app(transport=transport)

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
