from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from authentik.services.errors import CacheStoreError
from authentik.services.lookup_cache import CacheEntry, CacheStore

logger = logging.getLogger(__name__)

STORE_ERRORS = (APIError, httpx.HTTPError)


def _parse_expiry(value: object) -> Optional[float]:
    if not isinstance(value, str):
        return None
    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    # timestamp without time zone columns come back naive
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


class SupabaseCacheStore(CacheStore):
    """Durable cache tier in the lookup_cache table (key, kind, value jsonb, expires_at)."""

    TABLE_NAME = "lookup_cache"

    def __init__(self, client: Client):
        self._client = client

    def fetch(self, key: str) -> Optional[CacheEntry]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("key, value, expires_at")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except STORE_ERRORS as error:
            raise CacheStoreError("fetch", str(error)) from error

        if not result.data:
            return None

        row = result.data[0]
        expires_at = _parse_expiry(row.get("expires_at"))
        if expires_at is None:
            logger.warning("Ignoring cache row with unreadable expiry: key=%s", key)
            return None
        return CacheEntry(key=key, value=row.get("value"), expires_at=expires_at)

    def save(self, entry: CacheEntry, kind: str) -> None:
        row = {
            "key": entry.key,
            "kind": kind,
            "value": entry.value,
            "expires_at": datetime.fromtimestamp(entry.expires_at, tz=timezone.utc).isoformat(),
        }
        try:
            self._client.table(self.TABLE_NAME).upsert(row, on_conflict="key").execute()
        except STORE_ERRORS as error:
            raise CacheStoreError("save", str(error)) from error
