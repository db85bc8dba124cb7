"""
Diary Backend — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── memory_store:   In-memory KVStore (no database needed)
    ├── fixed_clock:    Clock pinned to FIXED_NOW
    ├── app:            Fresh FastAPI app wired to memory_store
    ├── test_client:    HTTPX AsyncClient for API endpoint testing
    └── unconfigured_client: Client whose store binding is absent
"""

import os

# Override settings for testing BEFORE any diary_api imports
os.environ["DIARY_KV_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "true"

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from diary_api.services.kv_base import KVListResult, KVStore
from diary_api.services.kv_store import decode_cursor, encode_cursor, get_kv_store
from diary_api.services.record_service import record_service
from diary_api.services.summary_service import summary_service

FIXED_NOW = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Store
# ══════════════════════════════════════════════════════════════════════════

class MemoryKVStore(KVStore):
    """
    Dict-backed KVStore with the same ordering and cursor semantics as SQLKVStore.

    Values go through a JSON round trip so tests see what a real store would return.
    """

    def __init__(self, max_list_limit: int = 1000):
        self.data: Dict[str, str] = {}
        self.max_list_limit = max_list_limit

    async def put(self, key: str, value: Any) -> None:
        self.data[key] = json.dumps(value, ensure_ascii=False)

    async def get(self, key: str) -> Optional[Any]:
        document = self.data.get(key)
        return json.loads(document) if document is not None else None

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def list(
        self,
        prefix: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> KVListResult:
        page_size = min(limit or self.max_list_limit, self.max_list_limit)
        after = decode_cursor(cursor) if cursor else None
        keys = sorted(
            key for key in self.data
            if key.startswith(prefix) and (after is None or key > after)
        )
        page = keys[:page_size]
        has_more = len(keys) > page_size
        return KVListResult(keys=page, cursor=encode_cursor(page[-1]) if has_more else None)

    def stored(self, key: str) -> Any:
        """Synchronous peek at a stored value, for assertions."""
        return json.loads(self.data[key])


class InFlightKVStore(MemoryKVStore):
    """MemoryKVStore that records the peak number of concurrent get() calls."""

    def __init__(self, max_list_limit: int = 1000):
        super().__init__(max_list_limit)
        self.in_flight = 0
        self.peak = 0

    async def get(self, key: str) -> Optional[Any]:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0)
            return await super().get(key)
        finally:
            self.in_flight -= 1


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def memory_store():
    return MemoryKVStore()


@pytest.fixture
def fixed_clock():
    """Clock returning FIXED_NOW, for services constructed in tests."""
    return lambda: FIXED_NOW


@pytest.fixture
def app(memory_store, fixed_clock, monkeypatch):
    """
    Provides a fresh FastAPI app whose store dependency is the memory store.

    The module-level services get the fixed clock so keys and the summary
    window are deterministic.
    """
    from diary_api.main import create_app

    monkeypatch.setattr(record_service, "clock", fixed_clock)
    monkeypatch.setattr(summary_service, "clock", fixed_clock)

    application = create_app()
    application.dependency_overrides[get_kv_store] = lambda: memory_store
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def unconfigured_client(app):
    """Client for an app with no key-value store binding."""
    app.dependency_overrides[get_kv_store] = lambda: None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
