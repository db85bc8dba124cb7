"""
Diary Backend — SQL Key-Value Store Tests
==========================================

What:  Tests for SQLKVStore against a real SQLite database (aiosqlite).
How:   Each test gets a fresh database file in pytest's tmp_path with the
       kv_entries table created from the ORM metadata.
"""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from diary_api.database import Base
from diary_api.exceptions import (
    MSG_INVALID_CURSOR,
    MSG_READ_FAILED,
    MSG_WRITE_FAILED,
    BadRequestError,
    StoreFailureError,
)
from diary_api.models.kv_entry import KVEntry
from diary_api.services.kv_store import SQLKVStore, decode_cursor, encode_cursor, get_kv_store


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SQLKVStore(session_factory, max_list_limit=3)


class TestCursor:

    def test_cursor_round_trip(self):
        key = "diary:2026-10-19:日记"
        assert decode_cursor(encode_cursor(key)) == key

    @pytest.mark.parametrize("cursor", ["abc", "é", "_w=="])
    def test_undecodable_cursor(self, cursor):
        with pytest.raises(BadRequestError) as exc_info:
            decode_cursor(cursor)
        assert exc_info.value.message == MSG_INVALID_CURSOR


class TestSQLKVStore:

    @pytest.mark.asyncio
    async def test_put_get_overwrite_delete(self, sql_store):
        await sql_store.put("diary:2026-10-19:a", {"data": {"note": "头痛"}})
        assert await sql_store.get("diary:2026-10-19:a") == {"data": {"note": "头痛"}}

        await sql_store.put("diary:2026-10-19:a", {"data": {}})
        assert await sql_store.get("diary:2026-10-19:a") == {"data": {}}

        await sql_store.delete("diary:2026-10-19:a")
        assert await sql_store.get("diary:2026-10-19:a") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key_succeeds(self, sql_store):
        await sql_store.delete("diary:never")

    @pytest.mark.asyncio
    async def test_list_paginates_lexicographically(self, sql_store):
        keys = [f"diary:2026-10-{day:02d}:x" for day in (5, 1, 4, 2, 3)]
        for key in keys:
            await sql_store.put(key, {})
        await sql_store.put("zzz:other", {})

        first = await sql_store.list(prefix="diary:", limit=2)
        assert first.keys == ["diary:2026-10-01:x", "diary:2026-10-02:x"]
        assert first.cursor is not None

        second = await sql_store.list(prefix="diary:", limit=2, cursor=first.cursor)
        assert second.keys == ["diary:2026-10-03:x", "diary:2026-10-04:x"]

        third = await sql_store.list(prefix="diary:", limit=2, cursor=second.cursor)
        assert third.keys == ["diary:2026-10-05:x"]
        assert third.cursor is None
        assert third.exhausted

    @pytest.mark.asyncio
    async def test_list_exact_page_has_no_cursor(self, sql_store):
        for name in "ab":
            await sql_store.put(f"diary:{name}", {})

        page = await sql_store.list(prefix="diary:", limit=2)
        assert page.keys == ["diary:a", "diary:b"]
        assert page.cursor is None

    @pytest.mark.asyncio
    async def test_list_limit_is_clamped(self, sql_store):
        for name in "abcde":
            await sql_store.put(f"diary:{name}", {})

        page = await sql_store.list(prefix="diary:", limit=100)
        assert len(page.keys) == 3
        assert page.cursor is not None

    @pytest.mark.asyncio
    async def test_list_prefix_wildcards_are_literal(self, sql_store):
        await sql_store.put("a_b:1", {})
        await sql_store.put("axb:1", {})
        await sql_store.put("a%b:1", {})

        page = await sql_store.list(prefix="a_b")
        assert page.keys == ["a_b:1"]

    @pytest.mark.asyncio
    async def test_health_check(self, sql_store):
        assert await sql_store.health_check() is True


class TestSQLKVStoreFailures:
    """Driver errors surface as StoreFailureError with a generic message."""

    def _broken_store(self):
        session = MagicMock()
        session.__aenter__.side_effect = OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        return SQLKVStore(MagicMock(return_value=session), max_list_limit=10)

    @pytest.mark.asyncio
    async def test_write_failure(self):
        with pytest.raises(StoreFailureError) as exc_info:
            await self._broken_store().put("diary:x", {})
        assert exc_info.value.message == MSG_WRITE_FAILED
        assert exc_info.value.operation == "put"
        assert "disk" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_read_failure(self):
        with pytest.raises(StoreFailureError) as exc_info:
            await self._broken_store().get("diary:x")
        assert exc_info.value.message == MSG_READ_FAILED

    @pytest.mark.asyncio
    async def test_health_check_reports_failure(self):
        assert await self._broken_store().health_check() is False

    @pytest.mark.asyncio
    async def test_corrupt_value_is_read_failure(self, session_factory):
        async with session_factory() as session:
            session.add(KVEntry(key="diary:corrupt", value="{not json"))
            await session.commit()

        with pytest.raises(StoreFailureError) as exc_info:
            await SQLKVStore(session_factory).get("diary:corrupt")
        assert exc_info.value.message == MSG_READ_FAILED


def test_get_kv_store_without_binding():
    assert get_kv_store() is None
