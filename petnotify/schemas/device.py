"""Device token registration schemas."""

from pydantic import BaseModel, ConfigDict, Field


class DeviceRegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1, max_length=512)
    device_id: str | None = Field(None, alias="deviceId", max_length=255)
    platform: str | None = Field(None, max_length=20)  # Anything unrecognized is stored as "unknown"


class DeviceUnregisterRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)


class DeviceRegisterResponse(BaseModel):
    message: str
    id: str
    platform: str
    device_id: str | None = None
    created: bool
