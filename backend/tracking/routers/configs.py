from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from tracking.config import settings
from tracking.schemas import serialize_default_config, serialize_device_config
from tracking.services import configs
from tracking.services.queries import build_pagination
from tracking.store import Store, get_store

router = APIRouter(prefix="/configs", tags=["Configuration"])


@router.get("")
async def get_all_device_configs(
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    """All device configurations, most recently updated first"""
    items, total = await configs.list_device_configs(store, limit, offset)
    return {
        "success": True,
        "data": [serialize_device_config(config, config.device) for config in items],
        "pagination": build_pagination(total, limit, offset, len(items)),
    }


@router.get("/default")
async def get_default_config(store: Store = Depends(get_store)):
    """The singleton default configuration, seeded on first access"""
    config = await configs.ensure_default_config(store)
    return {"success": True, "data": serialize_default_config(config)}


@router.put("/default")
async def update_default_config(
    payload: Any = Body(...),
    store: Store = Depends(get_store),
):
    config = await configs.update_default_config(store, payload)
    return {
        "success": True,
        "message": "Default configuration updated successfully",
        "data": serialize_default_config(config),
    }
