"""Push transport abstraction and its Firebase Cloud Messaging implementation."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging
from loguru import logger

from pushhub.config import settings


@dataclass(frozen=True)
class AndroidHints:
    """High priority delivery on a sound and vibration enabled channel."""

    channel_id: str = "high_importance_channel"
    priority: str = "high"
    default_sound: bool = True
    default_vibrate_timings: bool = True


@dataclass(frozen=True)
class ApnsHints:
    """Wake the app in the background and show an alert with sound and badge."""

    content_available: bool = True
    sound: str = "default"
    badge: int = 1
    priority: str = "10"


@dataclass
class PushMessage:
    """Transport-neutral multicast message."""

    tokens: List[str]
    title: str
    body: str
    data: Dict[str, str]
    android: AndroidHints = field(default_factory=AndroidHints)
    apns: ApnsHints = field(default_factory=ApnsHints)


@dataclass
class MulticastResult:
    """Per-batch outcome reported by the transport."""

    success_count: int
    failure_count: int
    invalid_tokens: List[str] = field(default_factory=list)


class PushTransport(Protocol):
    """Protocol shared by transport implementations."""

    def open(self) -> None:  # pragma: no cover - interface definition
        """Acquire clients and credentials."""

    def close(self) -> None:  # pragma: no cover - interface definition
        """Release clients and credentials."""

    def multicast_send(self, message: PushMessage) -> MulticastResult:  # pragma: no cover - interface definition
        """Deliver ``message`` to every token, raising on batch-level failure."""


class TransportNotReadyError(RuntimeError):
    """Raised when sending through a transport that was not opened."""


@dataclass
class FirebaseTransport:
    """Send multicast messages through Firebase Cloud Messaging.

    Owns a named ``firebase_admin.App`` created in :meth:`open` and deleted in
    :meth:`close`, so several transports (and tests) never share a default app.
    """

    app_name: str = "pushhub"
    credentials_path: Optional[Path] = None
    project_id: Optional[str] = None
    timeout_seconds: float = 10.0

    _app: Optional[firebase_admin.App] = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(cls) -> "FirebaseTransport":
        return cls(
            app_name=settings.FIREBASE_APP_NAME,
            credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
            project_id=settings.FIREBASE_PROJECT_ID,
            timeout_seconds=settings.PUSH_TIMEOUT_SECONDS,
        )

    def open(self) -> None:
        if self._app is not None:
            return
        credential = (
            credentials.Certificate(str(self.credentials_path))
            if self.credentials_path
            else credentials.ApplicationDefault()
        )
        options: Dict[str, object] = {"httpTimeout": self.timeout_seconds}
        if self.project_id:
            options["projectId"] = self.project_id
        self._app = firebase_admin.initialize_app(credential, options=options, name=self.app_name)
        logger.info("Firebase transport initialized", app_name=self.app_name)

    def close(self) -> None:
        if self._app is None:
            return
        firebase_admin.delete_app(self._app)
        self._app = None
        logger.info("Firebase transport closed", app_name=self.app_name)

    def multicast_send(self, message: PushMessage) -> MulticastResult:
        if self._app is None:
            raise TransportNotReadyError("Firebase transport has not been opened")

        response = messaging.send_each_for_multicast(self._to_firebase(message), app=self._app)

        invalid_tokens = [
            token
            for token, item in zip(message.tokens, response.responses)
            if not item.success
            and isinstance(
                item.exception,
                (messaging.UnregisteredError, firebase_exceptions.InvalidArgumentError),
            )
        ]
        return MulticastResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            invalid_tokens=invalid_tokens,
        )

    @staticmethod
    def _to_firebase(message: PushMessage) -> messaging.MulticastMessage:
        android = message.android
        apns = message.apns
        return messaging.MulticastMessage(
            tokens=message.tokens,
            notification=messaging.Notification(title=message.title, body=message.body),
            data=message.data,
            android=messaging.AndroidConfig(
                priority=android.priority,
                notification=messaging.AndroidNotification(
                    channel_id=android.channel_id,
                    priority=android.priority,
                    default_sound=android.default_sound,
                    default_vibrate_timings=android.default_vibrate_timings,
                ),
            ),
            apns=messaging.APNSConfig(
                headers={"apns-priority": apns.priority},
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        alert=messaging.ApsAlert(title=message.title, body=message.body),
                        badge=apns.badge,
                        sound=apns.sound,
                        content_available=apns.content_available,
                    )
                ),
            ),
        )
