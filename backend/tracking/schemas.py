from pydantic import BaseModel, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, Optional
from datetime import datetime

from tracking.utils.datetime_utils import serialize_datetime_utc

UTCDateTime = Annotated[datetime, PlainSerializer(serialize_datetime_utc, return_type=str)]


class CamelModel(BaseModel):
    """Response model with camelCase wire names and UTC 'Z' datetimes."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class DeviceSummary(CamelModel):
    id: int
    imei: str
    name: Optional[str] = None


class DeviceOut(CamelModel):
    id: int
    imei: str
    name: Optional[str] = None
    phone_no: Optional[str] = None
    email_address: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class LocationDataOut(CamelModel):
    id: int
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    bearing: Optional[float] = None
    speed: Optional[float] = None
    device_rdt: Optional[str] = Field(default=None, alias="deviceRDT")
    gmt_settings: Optional[str] = None
    ig_status: Optional[int] = None
    imei: Optional[str] = None
    local_primary_id: Optional[str] = None
    name: Optional[str] = None
    phone_no: Optional[str] = None
    email_address: Optional[str] = None
    provider: Optional[str] = None
    reason: Optional[str] = None
    version_no: Optional[str] = None
    # 64-bit epoch millis travel as decimal strings
    time: Optional[str] = None
    device_id: Optional[int] = None
    created_at: UTCDateTime

    @field_validator("time", mode="before")
    @classmethod
    def _time_as_string(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class ConfigFields(CamelModel):
    gps_timer: Optional[str] = None
    config_timer: Optional[str] = None
    upload_timer: Optional[str] = None
    retry_counter: Optional[str] = None
    angle_threshold: Optional[str] = None
    over_speeding_threshold: Optional[str] = None
    travel_start_timer: Optional[str] = None
    travel_stop_timer: Optional[str] = None
    moving_timer: Optional[str] = None
    stop_timer: Optional[str] = None
    distance_threshold: Optional[str] = None
    heartbeat_timer: Optional[str] = None
    live_status_update_timer: Optional[str] = None
    base_url: Optional[str] = None


class DefaultConfigOut(ConfigFields):
    id: int
    created_at: UTCDateTime
    updated_at: UTCDateTime


class DeviceConfigOut(ConfigFields):
    id: int
    device_imei: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


def serialize_device(device, location_count: Optional[int] = None) -> dict[str, Any]:
    data = DeviceOut.model_validate(device).dump()
    if location_count is not None:
        data["_count"] = {"locationData": location_count}
    return data


def serialize_location(location, include_device: bool = False) -> dict[str, Any]:
    data = LocationDataOut.model_validate(location).dump()
    if include_device:
        device = location.device
        data["device"] = DeviceOut.model_validate(device).dump() if device is not None else None
    return data


def serialize_device_config(config, device=None) -> dict[str, Any]:
    data = DeviceConfigOut.model_validate(config).dump()
    if device is not None:
        data["device"] = DeviceSummary.model_validate(device).dump()
    return data


def serialize_default_config(config) -> dict[str, Any]:
    return DefaultConfigOut.model_validate(config).dump()
