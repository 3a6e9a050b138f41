from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Response

from tracking.config import settings
from tracking.schemas import (
    ConfigFields,
    DeviceSummary,
    serialize_device,
    serialize_device_config,
    serialize_location,
)
from tracking.services import configs, queries
from tracking.store import Store, get_store
from tracking.validation import CONFIG_FIELDS

router = APIRouter(prefix="/devices", tags=["Device"])

_WIRE_NAMES = {attr: key for key, attr in CONFIG_FIELDS.items()}


@router.get("")
async def get_all_devices(
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    devices, pagination = await queries.list_devices(store, limit, offset)
    return {
        "success": True,
        "data": [serialize_device(device, count) for device, count in devices],
        "pagination": pagination,
    }


@router.get("/imei/{imei}/config")
async def get_device_config_by_imei(imei: str, store: Store = Depends(get_store)):
    """Alternate lookup path for a device's configuration"""
    config = await configs.get_device_config(store, imei)
    return {"success": True, "data": serialize_device_config(config, config.device)}


@router.get("/{imei}")
async def get_device_by_imei(imei: str, store: Store = Depends(get_store)):
    """Device with its sample count and its most recent samples"""
    device, count, recent = await queries.get_device_detail(
        store, imei, settings.RECENT_LOCATIONS_LIMIT
    )
    data = serialize_device(device, count)
    data["locationData"] = [serialize_location(loc) for loc in recent]
    return {"success": True, "data": data}


@router.get("/{imei}/locations")
async def get_location_data_by_imei(
    imei: str,
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    locations, pagination = await queries.device_locations(store, imei, limit, offset)
    return {
        "success": True,
        "data": [serialize_location(loc, include_device=True) for loc in locations],
        "pagination": pagination,
    }


@router.get("/{imei}/config")
async def get_device_config(imei: str, store: Store = Depends(get_store)):
    config = await configs.get_device_config(store, imei)
    return {"success": True, "data": serialize_device_config(config, config.device)}


@router.get("/{imei}/config/effective")
async def get_effective_device_config(imei: str, store: Store = Depends(get_store)):
    """Device overrides layered over the default configuration"""
    resolved = await configs.resolve_effective_config(store, imei)
    data = ConfigFields(**resolved["values"]).dump()
    data["overrides"] = [_WIRE_NAMES[attr] for attr in resolved["overridden"]]
    data["device"] = DeviceSummary.model_validate(resolved["device"]).dump()
    return {"success": True, "data": data}


@router.post("/{imei}/config")
async def set_device_config(
    imei: str,
    response: Response,
    payload: Any = Body(...),
    store: Store = Depends(get_store),
):
    config, created = await configs.set_device_config(store, imei, payload)
    response.status_code = 201 if created else 200
    return {
        "success": True,
        "message": f"Device configuration {'created' if created else 'updated'} successfully",
        "data": serialize_device_config(config, config.device),
    }


@router.delete("/{imei}/config")
async def delete_device_config(imei: str, store: Store = Depends(get_store)):
    await configs.delete_device_config(store, imei)
    return {"success": True, "message": "Device configuration deleted successfully"}
