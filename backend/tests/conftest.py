"""
Shared pytest fixtures and configuration for all tests.

Tests run against an on-disk SQLite database (via aiosqlite) created fresh
for every test, so concurrent sessions really use separate connections.
"""
import os

import pytest
from fastapi.testclient import TestClient
from hypothesis import Verbosity, settings as hypothesis_settings

from tracking.config import Settings
from tracking.db import Database
from tracking.main import create_app
from tracking.store import Store

hypothesis_settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)
hypothesis_settings.register_profile("ci", max_examples=200, deadline=None, derandomize=True)
hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'tracking.db'}"


@pytest.fixture
async def database(database_url):
    db = Database(database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def store(database) -> Store:
    return Store(database)


@pytest.fixture
def app_settings(database_url) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=database_url,
        ENVIRONMENT="development",
        LOG_LEVEL="WARNING",
        CREATE_TABLES_ON_STARTUP=True,
        SEED_DEFAULT_CONFIG_ON_STARTUP=False,
    )


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


@pytest.fixture
def sample_location() -> dict:
    """A report as sent by the tracker app."""
    return {
        "accuracy": 3.9,
        "altitude": 198,
        "bearing": 201,
        "deviceRDT": "30/01/2025 02:04:27.703",
        "emailAddress": "device@example.com",
        "gmtSettings": "GMT+05:00 2025",
        "igStatus": 1,
        "imei": "865632050026800",
        "latitude": 31.3025483,
        "localPrimaryId": 10253,
        "longitude": 74.0778433,
        "name": "Tracker Device 1",
        "phoneNo": "TST123",
        "provider": "fused",
        "reason": "Turn",
        "speed": 95,
        "time": 1738227867703,
        "versionNo": "v 250111",
    }
