"""
Diary Backend — SQL-Backed Key-Value Store
===========================================

What:  KVStore implementation over the `kv_entries` table using async SQLAlchemy.
How:   Every primitive opens its own short-lived session from the shared
       session factory, so concurrent reads (summary fan-out, list hydration)
       never share a session. Driver errors are wrapped in StoreFailureError.
Who:   Provided to routes through the get_kv_store() FastAPI dependency.

Cursor format:
    URL-safe base64 of the last key returned on the page. The next page
    continues strictly after that key. Clients must treat it as opaque.

Pagination query (one page):
    SELECT key FROM kv_entries
    WHERE key LIKE :prefix || '%' AND key > :after
    ORDER BY key
    LIMIT :limit + 1
    → the extra row only tells us whether another page exists.
"""

import base64
import binascii
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from diary_api.config import settings
from diary_api.database import get_session_factory
from diary_api.exceptions import (
    MSG_INVALID_CURSOR,
    MSG_READ_FAILED,
    MSG_WRITE_FAILED,
    BadRequestError,
    StoreFailureError,
)
from diary_api.models.kv_entry import KVEntry
from diary_api.services.kv_base import KVListResult, KVStore

logger = logging.getLogger(__name__)

_READ_OPERATIONS = {"get", "list"}


def encode_cursor(last_key: str) -> str:
    """Turn the last key of a page into an opaque cursor."""
    return base64.urlsafe_b64encode(last_key.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> str:
    """
    Recover the last key of the previous page from a cursor.

    Raises:
        BadRequestError: The cursor is not something encode_cursor() produced.
    """
    try:
        return base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
    except (binascii.Error, ValueError):
        raise BadRequestError(message=MSG_INVALID_CURSOR, field="cursor")


class SQLKVStore(KVStore):
    """
    Ordered key-value store persisted in a relational database.

    Args:
        session_factory: async_sessionmaker bound to the store's engine.
        max_list_limit:  Ceiling (and default) for list() page sizes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_list_limit: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self.max_list_limit = max_list_limit or settings.kv_max_list_limit

    @asynccontextmanager
    async def _session(self, operation: str, key: Optional[str] = None) -> AsyncIterator[AsyncSession]:
        """Session scoped to one primitive; commits on success, wraps driver errors."""
        try:
            async with self._session_factory() as session:
                yield session
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Store %s failed (key=%s): %s", operation, key, str(e), exc_info=True)
            message = MSG_READ_FAILED if operation in _READ_OPERATIONS else MSG_WRITE_FAILED
            raise StoreFailureError(
                message=message,
                operation=operation,
                context={"key": key, "error_type": type(e).__name__},
            ) from e

    async def put(self, key: str, value: Any) -> None:
        document = json.dumps(value, ensure_ascii=False)
        async with self._session("put", key) as session:
            await session.merge(
                KVEntry(key=key, value=document, updated_at=datetime.now(timezone.utc))
            )
        logger.debug("Stored %s (%d bytes)", key, len(document))

    async def get(self, key: str) -> Optional[Any]:
        async with self._session("get", key) as session:
            entry = await session.get(KVEntry, key)
            document = entry.value if entry is not None else None

        if document is None:
            return None
        try:
            return json.loads(document)
        except ValueError as e:
            logger.error("Stored value for %s is not valid JSON", key)
            raise StoreFailureError(
                message=MSG_READ_FAILED,
                operation="get",
                context={"key": key, "error_type": type(e).__name__},
            ) from e

    async def delete(self, key: str) -> None:
        async with self._session("delete", key) as session:
            await session.execute(delete(KVEntry).where(KVEntry.key == key))

    async def list(
        self,
        prefix: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> KVListResult:
        page_size = min(limit or self.max_list_limit, self.max_list_limit)
        after = decode_cursor(cursor) if cursor else None

        query = select(KVEntry.key).where(KVEntry.key.startswith(prefix, autoescape=True))
        if after is not None:
            query = query.where(KVEntry.key > after)
        query = query.order_by(KVEntry.key.asc()).limit(page_size + 1)

        async with self._session("list") as session:
            result = await session.execute(query)
            keys = list(result.scalars().all())

        has_more = len(keys) > page_size
        if has_more:
            keys = keys[:page_size]

        return KVListResult(
            keys=keys,
            cursor=encode_cursor(keys[-1]) if has_more and keys else None,
        )


# ── FastAPI Dependency ────────────────────────────────────────────────────
def get_kv_store() -> Optional[KVStore]:
    """
    Resolve the configured store binding for a request.

    Returns None when DIARY_KV_URL is unset; the services turn that into
    StoreUnavailableError so the absence is reported per request.
    """
    session_factory = get_session_factory()
    if session_factory is None:
        return None
    return SQLKVStore(session_factory)
