"""
Persistence gateway over the tracking database.

``Store`` is the only component that talks to SQLAlchemy. Each public method
runs in its own transaction, and any multi-step sequence that must not race
(device find-or-create, default config seeding, device config upsert) is a
single method here rather than a find followed by a write in the caller.

Find-or-create relies on the store's uniqueness guarantees rather than on
in-process locks: rows are inserted with ``ON CONFLICT DO NOTHING`` and then
read back inside the same transaction, so concurrent first writers converge
on a single row.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tracking.db import Database
from tracking.errors import StoreError
from tracking.models import (
    DEFAULT_CONFIG_ID,
    DefaultConfig,
    Device,
    DeviceConfig,
    LocationData,
)

logger = logging.getLogger(__name__)

# Seeded into the singleton default configuration
DEFAULT_CONFIG_VALUES = {
    "gps_timer": "5",
    "config_timer": "60",
    "upload_timer": "10",
    "retry_counter": "10",
    "angle_threshold": "45",
    "over_speeding_threshold": "60",
    "travel_start_timer": "20",
    "travel_stop_timer": "20",
    "moving_timer": "60",
    "stop_timer": "130",
    "distance_threshold": "1000",
    "heartbeat_timer": "30",
    "live_status_update_timer": "30",
    "base_url": "https://connectlive.commtw.com:446/twconnectlive/TrackingServices.asmx",
}

_INSERT_CONSTRUCTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class Store:
    def __init__(self, database: Database):
        self.database = database
        try:
            self._insert = _INSERT_CONSTRUCTS[database.dialect]
        except KeyError:
            raise StoreError(f"Unsupported database dialect: {database.dialect}") from None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session with an open transaction; commits on success."""
        try:
            async with self.database.session() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise StoreError("Database operation failed") from exc

    async def _insert_ignore(self, session: AsyncSession, model, values: dict, conflict_column: str) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING; True when a row was written."""
        stmt = (
            self._insert(model)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[conflict_column])
            .returning(model.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def get_device(self, imei: str) -> Optional[Device]:
        async with self.transaction() as session:
            result = await session.execute(select(Device).where(Device.imei == imei))
            return result.scalars().first()

    async def ensure_device(
        self,
        imei: str,
        name: Optional[str] = None,
        phone_no: Optional[str] = None,
        email_address: Optional[str] = None,
    ) -> tuple[Device, bool]:
        """Return the device for ``imei``, creating it on first sighting."""
        async with self.transaction() as session:
            created = await self._insert_ignore(
                session,
                Device,
                {
                    "imei": imei,
                    "name": name,
                    "phone_no": phone_no,
                    "email_address": email_address,
                },
                "imei",
            )
            result = await session.execute(select(Device).where(Device.imei == imei))
            device = result.scalars().one()
        return device, created

    async def get_device_detail(self, imei: str, recent: int) -> Optional[tuple[Device, int, list[LocationData]]]:
        """Device, its sample count and its ``recent`` newest samples."""
        async with self.transaction() as session:
            result = await session.execute(select(Device).where(Device.imei == imei))
            device = result.scalars().first()
            if device is None:
                return None
            count = await session.scalar(
                select(func.count(LocationData.id)).where(LocationData.device_id == device.id)
            )
            result = await session.execute(
                select(LocationData)
                .where(LocationData.device_id == device.id)
                .order_by(LocationData.created_at.desc(), LocationData.id.desc())
                .limit(recent)
            )
            return device, count or 0, list(result.scalars().all())

    async def list_devices(self, limit: Optional[int] = None, offset: int = 0) -> list[tuple[Device, int]]:
        """Devices newest first, each with its sample count; every device when ``limit`` is None."""
        counts = (
            select(LocationData.device_id, func.count(LocationData.id).label("location_count"))
            .group_by(LocationData.device_id)
            .subquery()
        )
        stmt = (
            select(Device, func.coalesce(counts.c.location_count, 0))
            .outerjoin(counts, counts.c.device_id == Device.id)
            .order_by(Device.created_at.desc(), Device.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)
        async with self.transaction() as session:
            result = await session.execute(stmt)
            return [(device, count) for device, count in result.all()]

    async def count_devices(self) -> int:
        async with self.transaction() as session:
            return await session.scalar(select(func.count(Device.id))) or 0

    # ------------------------------------------------------------------
    # Default configuration
    # ------------------------------------------------------------------

    async def _seed_default_config(self, session: AsyncSession) -> bool:
        return await self._insert_ignore(
            session,
            DefaultConfig,
            {"id": DEFAULT_CONFIG_ID, **DEFAULT_CONFIG_VALUES},
            "id",
        )

    async def ensure_default_config(self) -> tuple[DefaultConfig, bool]:
        """Fetch the singleton default config, seeding it if absent."""
        async with self.transaction() as session:
            existing = await session.get(DefaultConfig, DEFAULT_CONFIG_ID)
            if existing is not None:
                return existing, False
            created = await self._seed_default_config(session)
            config = await session.get(DefaultConfig, DEFAULT_CONFIG_ID)
        return config, created

    async def update_default_config(self, apply: Callable[[DefaultConfig], None]) -> DefaultConfig:
        """Seed if needed, then apply a merge to the locked singleton row."""
        async with self.transaction() as session:
            await self._seed_default_config(session)
            result = await session.execute(
                select(DefaultConfig)
                .where(DefaultConfig.id == DEFAULT_CONFIG_ID)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            config = result.scalars().one()
            apply(config)
            await session.flush()
        return config

    # ------------------------------------------------------------------
    # Device configuration
    # ------------------------------------------------------------------

    async def get_device_config(self, imei: str) -> Optional[DeviceConfig]:
        async with self.transaction() as session:
            result = await session.execute(
                select(DeviceConfig)
                .options(selectinload(DeviceConfig.device))
                .where(DeviceConfig.device_imei == imei)
            )
            return result.scalars().first()

    async def upsert_device_config(
        self,
        imei: str,
        values: dict,
        apply: Callable[[DeviceConfig], None],
    ) -> tuple[DeviceConfig, bool]:
        """Create the device's config from ``values`` or merge into the existing one.

        Creation stores ``values`` as given. When a config already exists it
        is locked and handed to ``apply``; both paths commit as one
        transaction, so concurrent writers serialise on the row.
        """
        async with self.transaction() as session:
            created = await self._insert_ignore(
                session,
                DeviceConfig,
                {"device_imei": imei, **values},
                "device_imei",
            )
            result = await session.execute(
                select(DeviceConfig)
                .options(selectinload(DeviceConfig.device))
                .where(DeviceConfig.device_imei == imei)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            config = result.scalars().one()
            if not created:
                apply(config)
                await session.flush()
        return config, created

    async def delete_device_config(self, imei: str) -> bool:
        async with self.transaction() as session:
            result = await session.execute(
                select(DeviceConfig).where(DeviceConfig.device_imei == imei)
            )
            config = result.scalars().first()
            if config is None:
                return False
            await session.delete(config)
        return True

    async def list_device_configs(self, limit: int, offset: int) -> list[DeviceConfig]:
        async with self.transaction() as session:
            result = await session.execute(
                select(DeviceConfig)
                .options(selectinload(DeviceConfig.device))
                .order_by(DeviceConfig.updated_at.desc(), DeviceConfig.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all())

    async def count_device_configs(self) -> int:
        async with self.transaction() as session:
            return await session.scalar(select(func.count(DeviceConfig.id))) or 0

    # ------------------------------------------------------------------
    # Location samples
    # ------------------------------------------------------------------

    async def create_location(self, **values) -> LocationData:
        async with self.transaction() as session:
            location = LocationData(**values)
            session.add(location)
            await session.flush()
            result = await session.execute(
                select(LocationData)
                .options(selectinload(LocationData.device))
                .where(LocationData.id == location.id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().one()

    def _location_filters(
        self,
        imei: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        device_id: Optional[int] = None,
    ) -> list:
        filters = []
        if imei:
            filters.append(LocationData.imei == imei)
        if device_id is not None:
            filters.append(LocationData.device_id == device_id)
        if start is not None:
            filters.append(LocationData.created_at >= start)
        if end is not None:
            filters.append(LocationData.created_at <= end)
        return filters

    async def find_locations(
        self,
        limit: int,
        offset: int,
        imei: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        device_id: Optional[int] = None,
    ) -> list[LocationData]:
        """Samples matching the filters, newest ingestion first."""
        stmt = (
            select(LocationData)
            .options(selectinload(LocationData.device))
            .where(*self._location_filters(imei, start, end, device_id))
            .order_by(LocationData.created_at.desc(), LocationData.id.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.transaction() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_locations(
        self,
        imei: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        device_id: Optional[int] = None,
    ) -> int:
        stmt = select(func.count(LocationData.id)).where(
            *self._location_filters(imei, start, end, device_id)
        )
        async with self.transaction() as session:
            return await session.scalar(stmt) or 0

    async def distinct_imeis(self) -> list[str]:
        stmt = (
            select(LocationData.imei)
            .where(LocationData.imei.isnot(None), LocationData.imei != "")
            .distinct()
            .order_by(LocationData.imei.asc())
        )
        async with self.transaction() as session:
            result = await session.execute(stmt)
            return [imei for imei in result.scalars().all()]

    async def ping(self) -> bool:
        try:
            return await self.database.ping()
        except SQLAlchemyError as exc:
            raise StoreError("Database unreachable") from exc


# Dependency for FastAPI routes
def get_store(request: Request) -> Store:
    return request.app.state.store
