from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from tracking.config import settings
from tracking.schemas import serialize_device, serialize_location
from tracking.services import ingestion, queries
from tracking.store import Store, get_store

router = APIRouter(prefix="/location", tags=["Location"])


@router.post("", status_code=201)
async def save_location_data(
    payload: Any = Body(...),
    store: Store = Depends(get_store),
):
    """Save a location sample, creating its device on first sighting"""
    location = await ingestion.ingest_location(store, payload)
    return {
        "success": True,
        "message": "Location data saved successfully",
        "data": serialize_location(location, include_device=True),
    }


@router.get("")
async def get_all_location_data(
    imei: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    store: Store = Depends(get_store),
):
    """Location history filtered by IMEI and ingestion date, newest first"""
    locations, pagination = await queries.query_locations(
        store, limit, offset, imei=imei, start_date=start_date, end_date=end_date
    )
    devices = await queries.device_overview(store)
    return {
        "success": True,
        "data": [serialize_location(loc, include_device=True) for loc in locations],
        "devices": [serialize_device(device, count) for device, count in devices],
        "filters": {
            "imei": imei or None,
            "startDate": start_date or None,
            "endDate": end_date or None,
        },
        "pagination": pagination,
    }


@router.get("/imeis")
async def get_all_imeis(store: Store = Depends(get_store)):
    """Distinct IMEIs seen in location samples"""
    return {"success": True, "data": await queries.list_imeis(store)}
