"""Device token registration for push notifications."""

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.dependencies import get_current_user_id, get_db
from petnotify.schemas.device import DeviceRegisterRequest, DeviceRegisterResponse, DeviceUnregisterRequest
from petnotify.services.device_registry import DeviceTokenRegistry

router = APIRouter(prefix="/notifications", tags=["devices"])


@router.post("/push-token", response_model=DeviceRegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    body: DeviceRegisterRequest,
    response: Response,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register a push token for the current user.

    Re-registering a token that belongs to someone else moves it to the
    caller; re-registering your own token changes nothing.
    """
    device, created = await DeviceTokenRegistry(db).register(
        user_id=user_id,
        token=body.token,
        device_id=body.device_id,
        platform=body.platform,
    )
    if not created:
        response.status_code = status.HTTP_200_OK

    return DeviceRegisterResponse(
        message="Token registered" if created else "Token updated",
        id=str(device.id),
        platform=device.platform,
        device_id=device.device_id,
        created=created,
    )


@router.delete("/push-token")
async def unregister_device(
    body: DeviceUnregisterRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Remove the caller's registration of a token (logout)."""
    removed = await DeviceTokenRegistry(db).unregister(user_id, body.token)
    return {"status": "ok", "removed": removed}
