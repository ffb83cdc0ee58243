"""
Two-tier lookup cache: a bounded in-process map in front of a durable store.

Entries carry an absolute expiry (epoch seconds). Expired entries are never
returned from either tier; the durable tier is expired lazily on read.
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from authentik.services.errors import CacheStoreError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 500
COORDINATE_PRECISION = 3
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore(ABC):
    """Durable backing tier for :class:`LookupCache`."""

    @abstractmethod
    def fetch(self, key: str) -> Optional[CacheEntry]:
        """
        Load an entry regardless of its expiry.

        Returns:
            The stored entry, or None when the key is absent
        """
        pass

    @abstractmethod
    def save(self, entry: CacheEntry, kind: str) -> None:
        """Insert or replace an entry."""
        pass


def normalize_query(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text.strip().lower())


def round_coordinate(value: float) -> float:
    # 3 decimals is roughly 110 m at the equator.
    return round(value, COORDINATE_PRECISION)


def make_cache_key(kind: str, *parts: object) -> str:
    signature = json.dumps([kind, *parts], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(signature.encode("utf-8")).hexdigest()


class LookupCache:
    """
    Memory tier evicts the oldest inserted entry when full. Replacing an
    existing key keeps its original position.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._store = store
        self._capacity = capacity
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._memory)

    def __contains__(self, key: str) -> bool:
        entry = self._memory.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    async def get(self, key: str) -> Any:
        now = self._clock()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                return entry.value
            del self._memory[key]

        entry = await self._fetch_durable(key)
        if entry is None or entry.is_expired(now):
            return None

        self._remember(entry)
        return entry.value

    async def put(self, key: str, value: Any, ttl_seconds: float, kind: str = "generic") -> None:
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)
        self._remember(entry)
        await self._save_durable(entry, kind)

    def clear_memory(self) -> None:
        self._memory.clear()

    def _remember(self, entry: CacheEntry) -> None:
        if entry.key not in self._memory and len(self._memory) >= self._capacity:
            oldest = next(iter(self._memory))
            del self._memory[oldest]
        self._memory[entry.key] = entry

    async def _fetch_durable(self, key: str) -> Optional[CacheEntry]:
        if self._store is None:
            return None
        try:
            return await run_in_threadpool(self._store.fetch, key)
        except (CacheStoreError, ConnectionError, TimeoutError) as error:
            logger.warning("Durable cache read failed, treating as miss: %s", error)
            return None

    async def _save_durable(self, entry: CacheEntry, kind: str) -> None:
        if self._store is None:
            return
        try:
            await run_in_threadpool(self._store.save, entry, kind)
        except (CacheStoreError, ConnectionError, TimeoutError) as error:
            logger.warning("Durable cache write failed for kind=%s: %s", kind, error)
