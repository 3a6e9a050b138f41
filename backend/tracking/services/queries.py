"""
Read side: filtered, paginated location history and device listings.
"""
import math
from typing import Any, Optional

from tracking.errors import NotFoundError, ValidationError
from tracking.models import Device, LocationData
from tracking.store import Store
from tracking.utils.datetime_utils import end_of_day, start_of_day


def build_pagination(total: int, limit: int, offset: int, result_count: int) -> dict[str, Any]:
    current_page = offset // limit + 1
    total_pages = math.ceil(total / limit)
    return {
        "currentPage": current_page,
        "totalPages": total_pages,
        "limit": limit,
        "offset": offset,
        "total": total,
        "hasNextPage": current_page < total_pages,
        "hasPreviousPage": current_page > 1,
        "resultCount": result_count,
    }


def date_range(start_date: Optional[str], end_date: Optional[str]):
    """Inclusive createdAt bounds for the given calendar days."""
    try:
        start = start_of_day(start_date) if start_date else None
        end = end_of_day(end_date) if end_date else None
    except ValueError:
        raise ValidationError(
            "Invalid date filter",
            errors=["startDate and endDate must be ISO-8601 dates (YYYY-MM-DD)"],
        ) from None
    return start, end


async def query_locations(
    store: Store,
    limit: int,
    offset: int,
    imei: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> tuple[list[LocationData], dict[str, Any]]:
    start, end = date_range(start_date, end_date)
    locations = await store.find_locations(limit, offset, imei=imei, start=start, end=end)
    total = await store.count_locations(imei=imei, start=start, end=end)
    return locations, build_pagination(total, limit, offset, len(locations))


async def list_devices(store: Store, limit: int, offset: int) -> tuple[list[tuple[Device, int]], dict[str, Any]]:
    devices = await store.list_devices(limit, offset)
    total = await store.count_devices()
    return devices, build_pagination(total, limit, offset, len(devices))


async def get_device_detail(store: Store, imei: str, recent: int) -> tuple[Device, int, list[LocationData]]:
    detail = await store.get_device_detail(imei, recent)
    if detail is None:
        raise NotFoundError("Device not found")
    return detail


async def device_locations(
    store: Store, imei: str, limit: int, offset: int
) -> tuple[list[LocationData], dict[str, Any]]:
    device = await store.get_device(imei)
    if device is None:
        raise NotFoundError("Device not found")
    locations = await store.find_locations(limit, offset, device_id=device.id)
    total = await store.count_locations(device_id=device.id)
    return locations, build_pagination(total, limit, offset, len(locations))


async def list_imeis(store: Store) -> list[str]:
    return await store.distinct_imeis()


async def device_overview(store: Store) -> list[tuple[Device, int]]:
    """Every device with its sample count, for the history view's device picker."""
    return await store.list_devices()
