"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from pushhub.config import settings
from pushhub.core.security import InvalidTokenError, decode_token
from pushhub.db.models.recipient import Recipient
from pushhub.db.session import get_db
from pushhub.schemas import TokenPayload
from pushhub.services.devices import DeviceRegistry
from pushhub.services.notifications import NotificationService
from pushhub.services.push_transport import PushTransport
from pushhub.services.scheduler import SchedulerSweep

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/token")


def get_transport(request: Request) -> PushTransport:
    """Return the push transport opened by the application lifespan."""

    transport = getattr(request.app.state, "push_transport", None)
    if transport is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push transport is not configured",
        )
    return transport


def get_current_recipient(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> Recipient:
    """Resolve the authenticated recipient from the Authorization header."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise InvalidTokenError("Token must be an access token")
        token_data = TokenPayload.model_validate(payload)
    except (InvalidTokenError, ValidationError, ValueError, KeyError) as exc:
        raise credentials_exception from exc

    recipient = db.get(Recipient, token_data.sub)
    if not recipient or not recipient.is_active:
        raise credentials_exception
    return recipient


def get_current_admin(recipient: Recipient = Depends(get_current_recipient)) -> Recipient:
    """Require an administrator for notification management routes."""

    if not recipient.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return recipient


def get_notification_service(
    db: Session = Depends(get_db), transport: PushTransport = Depends(get_transport)
) -> NotificationService:
    return NotificationService(db, transport)


def get_device_registry(db: Session = Depends(get_db)) -> DeviceRegistry:
    return DeviceRegistry(db)


def get_scheduler_sweep(
    db: Session = Depends(get_db), transport: PushTransport = Depends(get_transport)
) -> SchedulerSweep:
    return SchedulerSweep(db, transport)
