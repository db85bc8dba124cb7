"""
Diary Backend — Abstract Key-Value Store Interface
===================================================

What:  Abstract base class defining the store contract the services depend on.
How:   Concrete implementations inherit from KVStore and implement the four
       primitives: put, get, delete, list.
Who:   Called by RecordService and SummaryService. Tests provide an in-memory
       implementation; production uses SQLKVStore.

Contract summary:
    put(key, value)               → store JSON-serializable value (insert or overwrite)
    get(key)                      → decoded value, or None when absent
    delete(key)                   → remove key; absent keys are not an error
    list(prefix, limit, cursor)   → KVListResult(keys, cursor)
    get_many(keys, concurrency)   → values of keys, reads bounded by concurrency

Listing must be lexicographic by key, scoped to the prefix, and paginated
by an opaque cursor that is None once the listing is exhausted.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from diary_api.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class KVListResult:
    """
    One page of a prefix listing.

    Attributes:
        keys:   Key names in lexicographic order.
        cursor: Token for the next page; None when no keys remain.
    """

    keys: List[str] = field(default_factory=list)
    cursor: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return not self.cursor


class KVStore(ABC):
    """
    Abstract ordered key-value store.

    Implementations wrap their own driver errors in StoreFailureError so
    callers only ever see application exceptions.
    """

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            StoreFailureError: The write failed.
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Return the decoded value stored under `key`, or None if absent.

        Raises:
            StoreFailureError: The read failed.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove `key`. Deleting an absent key succeeds silently.

        Raises:
            StoreFailureError: The delete failed.
        """
        ...

    @abstractmethod
    async def list(
        self,
        prefix: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> KVListResult:
        """
        List key names starting with `prefix`, in lexicographic order.

        Args:
            prefix: Only keys starting with this string are returned.
            limit:  Page size. None means the implementation's maximum.
            cursor: Token from a previous page; None starts from the beginning.

        Returns:
            KVListResult whose cursor is non-None iff more keys remain.

        Raises:
            BadRequestError:   The cursor could not be decoded.
            StoreFailureError: The listing failed.
        """
        ...

    async def get_many(self, keys: Sequence[str], concurrency: int) -> List[Optional[Any]]:
        """
        Read the values of `keys`, at most `concurrency` reads in flight.

        Returns values in the order of `keys`; absent keys give None.
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def fetch(key: str) -> Optional[Any]:
            async with semaphore:
                return await self.get(key)

        return await asyncio.gather(*(fetch(key) for key in keys))

    async def health_check(self) -> bool:
        """Lightweight reachability probe used by /health."""
        try:
            await self.list(prefix="", limit=1)
            return True
        except Exception:
            return False


def require_store(store: Optional[KVStore]) -> KVStore:
    """
    Return the store, or raise StoreUnavailableError when no binding is configured.

    Called first by every record and summary operation.
    """
    if store is None:
        logger.error("Key-value store binding is not configured (DIARY_KV_URL)")
        raise StoreUnavailableError()
    return store
