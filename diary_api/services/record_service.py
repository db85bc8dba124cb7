"""
Diary Backend — Record Service
===============================

What:  Create, list, update and delete diary records in the key-value store.
How:   Each operation checks the store binding, applies the record rules
       (passcode stripping, key format, timestamp stamping) and calls the
       store primitives.
Who:   Called by the /api route handlers.

Record Rules:
    - `passcode` is never persisted (stripped on create and update)
    - update keeps the original received_at and always stamps updated_at
    - update of a missing key creates it (upsert)
    - delete of a missing key succeeds
"""

import logging
from typing import Any, Dict, Optional

from diary_api.config import settings
from diary_api.exceptions import MSG_INVALID_KEY, BadRequestError
from diary_api.schemas.diary import DiaryListItem, DiaryListResponse, DiaryRecord, KeyResponse
from diary_api.services.kv_base import KVStore, require_store
from diary_api.services.record_keys import (
    RECORD_PREFIX,
    Clock,
    is_record_key,
    make_record_key,
    to_iso_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

PASSCODE_FIELD = "passcode"


def strip_passcode(data: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow copy of `data` without the passcode field."""
    return {name: value for name, value in data.items() if name != PASSCODE_FIELD}


class RecordService:
    """
    Business logic for diary record CRUD.

    Stateless apart from the clock, which tests replace to control
    timestamps.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    async def create_record(self, store: Optional[KVStore], payload: Dict[str, Any]) -> KeyResponse:
        """
        Persist a new record built from a submitted questionnaire.

        Args:
            store:   Store binding (None when unconfigured)
            payload: Decoded JSON object from the request body

        Returns:
            KeyResponse with the generated RecordKey

        Raises:
            StoreUnavailableError: No store binding
            StoreFailureError:     The write failed
        """
        kv = require_store(store)

        now = self.clock()
        record = DiaryRecord(received_at=to_iso_timestamp(now), data=strip_passcode(payload))
        key = make_record_key(now)

        await kv.put(key, record.to_document())
        logger.info("Record created: %s (%d fields)", key, len(record.data))
        return KeyResponse(key=key)

    async def list_records(
        self,
        store: Optional[KVStore],
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> DiaryListResponse:
        """
        Return one page of records in key order.

        The page's keys come from the store listing; their values are then
        read concurrently, at most settings.list_fetch_concurrency at a time.
        A value that vanished in between is returned as a null record rather
        than dropped, so the page size matches the listing.

        Args:
            limit:  Page size (default settings.list_default_limit)
            cursor: Token from the previous page, or None for the first page
        """
        kv = require_store(store)

        page = await kv.list(
            prefix=RECORD_PREFIX,
            limit=limit or settings.list_default_limit,
            cursor=cursor or None,
        )
        values = await kv.get_many(page.keys, settings.list_fetch_concurrency)

        items = [
            DiaryListItem(key=key, record=value)
            for key, value in zip(page.keys, values)
        ]
        logger.debug("Listed %d records (more=%s)", len(items), not page.exhausted)
        return DiaryListResponse(items=items, cursor=page.cursor or None)

    async def update_record(self, store: Optional[KVStore], key: Any, data: Any) -> KeyResponse:
        """
        Replace the data of a record, keeping its creation time.

        Read-modify-write without a version check: concurrent updates of
        the same key resolve as last write wins.

        Args:
            key:  RecordKey from the request body; must start with "diary:"
            data: New questionnaire answers; a non-object is treated as {}

        Raises:
            StoreUnavailableError: No store binding
            BadRequestError:       Key is missing or has the wrong prefix
            StoreFailureError:     The read or write failed
        """
        kv = require_store(store)
        if not is_record_key(key):
            raise BadRequestError(message=MSG_INVALID_KEY, field="key")

        fields = data if isinstance(data, dict) else {}
        existing = await kv.get(key)
        now = to_iso_timestamp(self.clock())

        received_at = None
        if isinstance(existing, dict) and isinstance(existing.get("received_at"), str):
            received_at = existing["received_at"]
        if existing is None:
            logger.info("Update of unknown key %s; creating it", key)

        record = DiaryRecord(
            received_at=received_at or now,
            updated_at=now,
            data=strip_passcode(fields),
        )
        await kv.put(key, record.to_document())
        logger.info("Record updated: %s", key)
        return KeyResponse(key=key)

    async def delete_record(self, store: Optional[KVStore], key: Any) -> KeyResponse:
        """
        Permanently remove a record. Idempotent: unknown keys also succeed.

        Raises:
            StoreUnavailableError: No store binding
            BadRequestError:       Key is missing or has the wrong prefix
            StoreFailureError:     The delete failed
        """
        kv = require_store(store)
        if not is_record_key(key):
            raise BadRequestError(message=MSG_INVALID_KEY, field="key")

        await kv.delete(key)
        logger.info("Record deleted: %s", key)
        return KeyResponse(key=key)


# ── Singleton Instance ────────────────────────────────────────────────────
record_service = RecordService()
