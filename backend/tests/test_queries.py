"""
Tests for location history queries, pagination and device listings.
"""
from datetime import datetime, timezone

import pytest

from tracking.errors import NotFoundError, ValidationError
from tracking.services import queries
from tracking.services.ingestion import ingest_location


def at(day: int, hour: int = 12, minute: int = 0, second: int = 0, micro: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, minute, second, micro, tzinfo=timezone.utc)


class TestBuildPagination:
    def test_middle_page(self):
        pagination = queries.build_pagination(total=95, limit=10, offset=20, result_count=10)

        assert pagination == {
            "currentPage": 3,
            "totalPages": 10,
            "limit": 10,
            "offset": 20,
            "total": 95,
            "hasNextPage": True,
            "hasPreviousPage": True,
            "resultCount": 10,
        }

    def test_last_partial_page(self):
        pagination = queries.build_pagination(total=95, limit=10, offset=90, result_count=5)

        assert pagination["currentPage"] == 10
        assert pagination["hasNextPage"] is False

    def test_empty_result(self):
        pagination = queries.build_pagination(total=0, limit=50, offset=0, result_count=0)

        assert pagination["totalPages"] == 0
        assert pagination["currentPage"] == 1
        assert pagination["hasNextPage"] is False
        assert pagination["hasPreviousPage"] is False


class TestDateRange:
    def test_bounds_cover_whole_days(self):
        start, end = queries.date_range("2025-01-10", "2025-01-12")

        assert start == at(10, 0)
        assert end == at(12, 23, 59, 59, 999000)

    def test_open_ended(self):
        assert queries.date_range(None, None) == (None, None)

    def test_malformed_date(self):
        with pytest.raises(ValidationError) as exc_info:
            queries.date_range("yesterday", None)

        assert exc_info.value.message == "Invalid date filter"


class TestQueryLocations:
    @pytest.fixture
    async def history(self, store):
        device, _ = await store.ensure_device("865632050026800")
        other, _ = await store.ensure_device("352099001761481")
        rows = [
            ("865632050026800", device.id, at(9, 23, 59, 59)),
            ("865632050026800", device.id, at(10, 0)),
            ("352099001761481", other.id, at(11, 8)),
            ("865632050026800", device.id, at(12, 23, 59, 59, 999000)),
            ("865632050026800", device.id, at(13, 0)),
        ]
        for imei, device_id, created_at in rows:
            await store.create_location(
                latitude=1.0, longitude=2.0, imei=imei, device_id=device_id, created_at=created_at
            )
        return device

    async def test_newest_first(self, store, history):
        locations, pagination = await queries.query_locations(store, 50, 0)

        created = [location.created_at.replace(tzinfo=None) for location in locations]
        assert created == sorted(created, reverse=True)
        assert pagination["total"] == 5

    async def test_date_bounds_are_inclusive(self, store, history):
        locations, pagination = await queries.query_locations(
            store, 50, 0, start_date="2025-01-10", end_date="2025-01-12"
        )

        assert pagination["total"] == 3
        assert {location.created_at.day for location in locations} == {10, 11, 12}

    async def test_filters_combine(self, store, history):
        locations, pagination = await queries.query_locations(
            store, 50, 0, imei="865632050026800", start_date="2025-01-10"
        )

        assert pagination["total"] == 3
        assert all(location.imei == "865632050026800" for location in locations)

    async def test_paging(self, store, history):
        locations, pagination = await queries.query_locations(store, 2, 2)

        assert len(locations) == 2
        assert pagination["currentPage"] == 2
        assert pagination["totalPages"] == 3
        assert pagination["resultCount"] == 2

    async def test_device_locations(self, store, history):
        locations, pagination = await queries.device_locations(store, "352099001761481", 50, 0)

        assert pagination["total"] == 1
        assert locations[0].device.imei == "352099001761481"

    async def test_device_locations_unknown_device(self, store):
        with pytest.raises(NotFoundError):
            await queries.device_locations(store, "000000000000000", 50, 0)


class TestDevices:
    async def test_detail_with_recent_samples(self, store):
        for i in range(12):
            await ingest_location(store, {"latitude": i, "longitude": i, "imei": "865632050026800"})

        device, count, recent = await queries.get_device_detail(store, "865632050026800", 10)

        assert device.imei == "865632050026800"
        assert count == 12
        assert len(recent) == 10
        assert recent[0].latitude == 11.0

    async def test_detail_unknown_device(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await queries.get_device_detail(store, "000000000000000", 10)

        assert exc_info.value.message == "Device not found"

    async def test_list_counts_samples(self, store):
        await ingest_location(store, {"latitude": 1, "longitude": 1, "imei": "A"})
        await ingest_location(store, {"latitude": 1, "longitude": 1, "imei": "A"})
        await store.ensure_device("B")

        devices, pagination = await queries.list_devices(store, 50, 0)

        assert [(device.imei, count) for device, count in devices] == [("B", 0), ("A", 2)]
        assert pagination["total"] == 2

    async def test_distinct_imeis(self, store):
        for imei in ["B", "A", "B", "", None]:
            await ingest_location(store, {"latitude": 1, "longitude": 1, "imei": imei})

        assert await queries.list_imeis(store) == ["A", "B"]

    async def test_overview_is_unpaginated(self, store):
        for imei in ["A", "B", "C"]:
            await ingest_location(store, {"latitude": 1, "longitude": 1, "imei": imei})

        overview = await queries.device_overview(store)

        assert [(device.imei, count) for device, count in overview] == [("C", 1), ("B", 1), ("A", 1)]
