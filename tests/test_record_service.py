"""
Diary Backend — Record Service Unit Tests
==========================================

What:  Tests for RecordService business logic (create, list, update, delete).
How:   Runs the service against the in-memory store with a pinned clock.

What we test:
    ✅ passcode is never persisted
    ✅ update keeps received_at and stamps updated_at
    ✅ update of an unknown key creates it
    ✅ delete is idempotent
    ✅ key validation and missing store binding
    ✅ list pagination and null records
"""

from datetime import date, timedelta

import pytest

from conftest import FIXED_NOW, InFlightKVStore, MemoryKVStore
from diary_api.config import settings
from diary_api.exceptions import (
    MSG_INVALID_CURSOR,
    MSG_INVALID_KEY,
    MSG_STORE_UNAVAILABLE,
    BadRequestError,
    StoreUnavailableError,
)
from diary_api.services.record_keys import (
    cutoff_date,
    extract_date_from_key,
    is_within_window,
    to_iso_timestamp,
)
from diary_api.services.record_service import RecordService, strip_passcode


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestRecordKeys:
    """Tests for the key and timestamp helpers."""

    def test_iso_timestamp_has_millis_and_z(self):
        assert to_iso_timestamp(FIXED_NOW) == "2026-10-19T08:30:00.000Z"

    def test_extract_date_from_key(self):
        assert extract_date_from_key("diary:2026-10-19:abc") == "2026-10-19"
        assert extract_date_from_key("diary") == ""

    def test_cutoff_date_includes_today(self):
        assert cutoff_date(1, FIXED_NOW.date()) == "2026-10-19"
        assert cutoff_date(7, FIXED_NOW.date()) == "2026-10-13"

    def test_cutoff_date_clamps_to_first_date(self):
        today = FIXED_NOW.date()
        whole_range = (today - date.min).days + 1

        assert cutoff_date(whole_range, today) == "0001-01-01"
        assert cutoff_date(whole_range + 1, today) == "0001-01-01"
        assert cutoff_date(1_000_000, today) == "0001-01-01"

    def test_is_within_window(self):
        assert is_within_window("diary:2026-10-13:x", "2026-10-13")
        assert not is_within_window("diary:2026-10-12:x", "2026-10-13")
        assert not is_within_window("diary:", "2026-10-13")


class TestRecordServiceCreate:

    def setup_method(self):
        self.clock = MutableClock(FIXED_NOW)
        self.service = RecordService(clock=self.clock)

    def test_strip_passcode(self):
        assert strip_passcode({"passcode": "1234", "headache": "yes"}) == {"headache": "yes"}

    @pytest.mark.asyncio
    async def test_create_strips_passcode(self, memory_store):
        result = await self.service.create_record(
            memory_store, {"headache": "yes", "passcode": "1234"}
        )

        assert result.ok is True
        assert result.key.startswith("diary:2026-10-19:")
        stored = memory_store.stored(result.key)
        assert stored == {
            "received_at": "2026-10-19T08:30:00.000Z",
            "data": {"headache": "yes"},
        }

    @pytest.mark.asyncio
    async def test_create_generates_unique_keys(self, memory_store):
        first = await self.service.create_record(memory_store, {})
        second = await self.service.create_record(memory_store, {})
        assert first.key != second.key

    @pytest.mark.asyncio
    async def test_create_without_store_raises(self):
        with pytest.raises(StoreUnavailableError) as exc_info:
            await self.service.create_record(None, {"headache": "no"})
        assert exc_info.value.message == MSG_STORE_UNAVAILABLE


class TestRecordServiceUpdate:

    def setup_method(self):
        self.clock = MutableClock(FIXED_NOW)
        self.service = RecordService(clock=self.clock)

    @pytest.mark.asyncio
    async def test_update_preserves_received_at(self, memory_store):
        created = await self.service.create_record(memory_store, {"headache": "yes"})
        self.clock.now = FIXED_NOW + timedelta(hours=2)

        await self.service.update_record(
            memory_store, created.key, {"headache": "no", "passcode": "x"}
        )

        stored = memory_store.stored(created.key)
        assert stored["received_at"] == "2026-10-19T08:30:00.000Z"
        assert stored["updated_at"] == "2026-10-19T10:30:00.000Z"
        assert stored["data"] == {"headache": "no"}

    @pytest.mark.asyncio
    async def test_update_unknown_key_creates_record(self, memory_store):
        key = "diary:2026-10-01:missing"
        result = await self.service.update_record(memory_store, key, {"overall": "normal"})

        assert result.key == key
        stored = memory_store.stored(key)
        assert stored["received_at"] == stored["updated_at"] == "2026-10-19T08:30:00.000Z"

    @pytest.mark.asyncio
    async def test_update_non_object_data_becomes_empty(self, memory_store):
        key = "diary:2026-10-19:abc"
        await self.service.update_record(memory_store, key, ["not", "an", "object"])
        assert memory_store.stored(key)["data"] == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["note:2026-10-19:abc", "", None, 42])
    async def test_update_rejects_invalid_key(self, memory_store, key):
        with pytest.raises(BadRequestError) as exc_info:
            await self.service.update_record(memory_store, key, {})
        assert exc_info.value.message == MSG_INVALID_KEY
        assert memory_store.data == {}

    @pytest.mark.asyncio
    async def test_update_checks_store_before_key(self):
        with pytest.raises(StoreUnavailableError):
            await self.service.update_record(None, "bad-key", {})


class TestRecordServiceDelete:

    def setup_method(self):
        self.service = RecordService(clock=MutableClock(FIXED_NOW))

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, memory_store):
        created = await self.service.create_record(memory_store, {})
        result = await self.service.delete_record(memory_store, created.key)

        assert result.key == created.key
        assert created.key not in memory_store.data

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, memory_store):
        key = "diary:2026-10-19:never-existed"
        first = await self.service.delete_record(memory_store, key)
        second = await self.service.delete_record(memory_store, key)
        assert first.ok and second.ok

    @pytest.mark.asyncio
    async def test_delete_rejects_invalid_key(self, memory_store):
        with pytest.raises(BadRequestError):
            await self.service.delete_record(memory_store, "other:key")


class TestRecordServiceList:

    def setup_method(self):
        self.service = RecordService(clock=MutableClock(FIXED_NOW))

    @pytest.mark.asyncio
    async def test_list_paginates_in_key_order(self, memory_store):
        for key in ("diary:2026-10-03:a", "diary:2026-10-01:a", "diary:2026-10-02:a"):
            await memory_store.put(key, {"received_at": "t", "data": {}})
        await memory_store.put("settings:theme", "dark")

        first = await self.service.list_records(memory_store, limit=2)
        assert [item.key for item in first.items] == ["diary:2026-10-01:a", "diary:2026-10-02:a"]
        assert first.cursor is not None

        second = await self.service.list_records(memory_store, limit=2, cursor=first.cursor)
        assert [item.key for item in second.items] == ["diary:2026-10-03:a"]
        assert second.cursor is None

    @pytest.mark.asyncio
    async def test_list_returns_records(self, memory_store):
        created = await self.service.create_record(memory_store, {"headache": "yes"})
        page = await self.service.list_records(memory_store)

        assert len(page.items) == 1
        assert page.items[0].key == created.key
        assert page.items[0].record["data"] == {"headache": "yes"}

    @pytest.mark.asyncio
    async def test_list_reads_are_bounded(self, monkeypatch):
        monkeypatch.setattr(settings, "list_fetch_concurrency", 2)
        store = InFlightKVStore()
        for index in range(10):
            await store.put(f"diary:2026-10-19:{index:02d}", {"data": {}})

        page = await self.service.list_records(store, limit=10)

        assert len(page.items) == 10
        assert all(item.record == {"data": {}} for item in page.items)
        assert 1 < store.peak <= 2

    @pytest.mark.asyncio
    async def test_list_keeps_vanished_keys_as_null(self):
        class VanishingStore(MemoryKVStore):
            async def get(self, key):
                return None

        store = VanishingStore()
        await store.put("diary:2026-10-19:gone", {"data": {}})

        page = await self.service.list_records(store)
        assert page.items[0].key == "diary:2026-10-19:gone"
        assert page.items[0].record is None

    @pytest.mark.asyncio
    async def test_list_rejects_undecodable_cursor(self, memory_store):
        with pytest.raises(BadRequestError) as exc_info:
            await self.service.list_records(memory_store, cursor="abc")
        assert exc_info.value.message == MSG_INVALID_CURSOR

    @pytest.mark.asyncio
    async def test_list_without_store_raises(self):
        with pytest.raises(StoreUnavailableError):
            await self.service.list_records(None)
