import hmac
from typing import Any, Optional

from .base import ApiKeyStore
from .db import Database
from ..core.config import settings

class PostgresApiKeyStore(ApiKeyStore):
    def __init__(self, db: Database):
        self.db = db

    async def lookup(self, key: str) -> Optional[Any]:
        return await self.db.fetchval("SELECT id FROM ss_api_keys WHERE key = $1", key)

class StaticApiKeyStore(ApiKeyStore):
    """Single key from settings; handy for dev and single-tenant deploys."""
    def __init__(self, api_key: str):
        self.api_key = api_key

    async def lookup(self, key: str) -> Optional[Any]:
        return "static" if hmac.compare_digest(key.encode("utf-8"), self.api_key.encode("utf-8")) else None

def api_key_store(db: Optional[Database]) -> Optional[ApiKeyStore]:
    """
    DB-backed keys when a pool exists, else the static key, else None
    (auth disabled).
    """
    if db is not None:
        return PostgresApiKeyStore(db)
    if settings.API_KEY:
        return StaticApiKeyStore(settings.API_KEY)
    return None
