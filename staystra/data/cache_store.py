import json
from datetime import datetime
from typing import Optional

from .base import CacheStore, CacheEntry
from .db import Database
from ..core.config import settings

class MemoryCacheStore(CacheStore):
    """
    Dict-backed property cache for local dev and tests. Same upsert
    semantics as the table: one entry per address, last write wins.
    """
    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, address: str) -> Optional[CacheEntry]:
        return self._entries.get(address)

    async def upsert(self, address: str, payload: dict, fetched_at: datetime) -> None:
        self._entries[address] = CacheEntry(payload=payload, last_fetched=fetched_at)

class PostgresCacheStore(CacheStore):
    """
    property_cache table:
      address TEXT PRIMARY KEY, raw_api_response JSONB,
      source_api TEXT, last_fetched TIMESTAMPTZ
    """
    SOURCE_API = "External"

    def __init__(self, db: Database):
        self.db = db

    async def get(self, address: str) -> Optional[CacheEntry]:
        row = await self.db.fetchrow(
            "SELECT raw_api_response, last_fetched FROM property_cache WHERE address = $1",
            address,
        )
        if row is None:
            return None
        payload = row["raw_api_response"]
        # asyncpg hands jsonb back as text unless a codec is registered
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        return CacheEntry(payload=payload, last_fetched=row["last_fetched"])

    async def upsert(self, address: str, payload: dict, fetched_at: datetime) -> None:
        await self.db.execute(
            """
            INSERT INTO property_cache (address, raw_api_response, source_api, last_fetched)
            VALUES ($1, $2::jsonb, $3, $4)
            ON CONFLICT (address) DO UPDATE
            SET raw_api_response = EXCLUDED.raw_api_response,
                last_fetched = EXCLUDED.last_fetched,
                source_api = EXCLUDED.source_api
            """,
            address, json.dumps(payload), self.SOURCE_API, fetched_at,
        )

def cache_store(db: Optional[Database]) -> CacheStore:
    if settings.CACHE_BACKEND == "postgres" and db is not None:
        return PostgresCacheStore(db)
    return MemoryCacheStore()
