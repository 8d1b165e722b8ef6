"""Device token registration endpoints for the authenticated recipient."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from pushhub.api import deps
from pushhub.db.models.recipient import Recipient
from pushhub.schemas import DeviceTokenCreate, DeviceTokenRead, DeviceTokenUnregisterResponse
from pushhub.services.devices import DeviceRegistry

router = APIRouter(prefix="/notifications/device-token", tags=["devices"])


@router.post("", response_model=DeviceTokenRead, status_code=status.HTTP_201_CREATED)
def register_device_token(
    payload: DeviceTokenCreate,
    registry: DeviceRegistry = Depends(deps.get_device_registry),
    current_recipient: Recipient = Depends(deps.get_current_recipient),
) -> DeviceTokenRead:
    """Register (or re-register) a push token for the current recipient."""

    device = registry.register(
        current_recipient.id, payload.token, payload.device_type, payload.device_name
    )
    return DeviceTokenRead.model_validate(device)


@router.get("", response_model=list[DeviceTokenRead])
def list_device_tokens(
    registry: DeviceRegistry = Depends(deps.get_device_registry),
    current_recipient: Recipient = Depends(deps.get_current_recipient),
) -> list[DeviceTokenRead]:
    return [
        DeviceTokenRead.model_validate(device)
        for device in registry.list_for_recipient(current_recipient.id)
    ]


@router.delete("/{token}", response_model=DeviceTokenUnregisterResponse)
def unregister_device_token(
    token: str,
    registry: DeviceRegistry = Depends(deps.get_device_registry),
    _: Recipient = Depends(deps.get_current_recipient),
) -> DeviceTokenUnregisterResponse:
    """Deactivate a push token. Unknown tokens succeed with outcome ``not_found``."""

    outcome = registry.unregister(token)
    return DeviceTokenUnregisterResponse(outcome=outcome.value)
