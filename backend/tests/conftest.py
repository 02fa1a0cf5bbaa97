"""Shared fixtures: a throwaway SQLite database and a TestClient per test.

Environment variables are set before any ``app`` import so the cached settings
and the module-level engine point at the test database.
"""
import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="geo-projects-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/test.db"
os.environ["READ_CACHE_BACKEND"] = "memory"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from app.api.deps import get_read_cache, get_transaction_runner
from app.database import async_session_maker, create_tables, drop_tables, get_db
from app.main import app
from app.services.read_cache import MemoryReadCache
from app.services.transactions import TransactionRunner


async def _reset_database():
    await drop_tables()
    await create_tables()


@pytest.fixture
def client():
    """TestClient over a freshly created schema and an empty read cache."""
    with TestClient(app) as test_client:
        test_client.portal.call(_reset_database)
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sleeps():
    """Backoff delays requested by runners built with ``no_backoff``."""
    return []


@pytest.fixture
def no_backoff(sleeps):
    """Make request-scoped runners record their backoff instead of sleeping."""
    async def record_sleep(delay):
        sleeps.append(delay)

    def runner_without_sleep(db=Depends(get_db), cache=Depends(get_read_cache)):
        return TransactionRunner(db, cache, sleep=record_sleep)

    app.dependency_overrides[get_transaction_runner] = runner_without_sleep
    yield record_sleep
    app.dependency_overrides.pop(get_transaction_runner, None)


@pytest.fixture
async def db_session():
    """Session on a fresh schema for service-level tests."""
    await _reset_database()
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def read_cache():
    return MemoryReadCache(ttl_seconds=300)


@pytest.fixture
def region(client):
    response = client.post("/api/regions", json={"name": "North America"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def project(client, region):
    response = client.post(
        f"/api/regions/{region['id']}/projects",
        json={
            "name": "Manhattan Survey",
            "geo_json": {
                "type": "Polygon",
                "coordinates": [[[-74.02, 40.70], [-73.93, 40.70], [-73.93, 40.80], [-74.02, 40.70]]],
            },
        },
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def pin(client, project):
    response = client.post(
        f"/api/projects/{project['id']}/pins",
        json={"latitude": 40.7128, "longitude": -74.0060},
    )
    assert response.status_code == 201
    return response.json()
