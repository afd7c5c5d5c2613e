"""
Cache-first resolution of the provider payload for one address.

    CheckCache --hit--------------------------------------------> Done(cache)
        |--miss--------------> FetchFresh --ok--> Persist -----> Done(api)
        '--error (alerted)---> FetchFresh --ok--> Persist -----> Done(api_due_to_cache_error)
                                   '--error--> Failed (ProviderUnavailable / MalformedProviderPayload)

Persist is best-effort: a failed write is alerted and the fresh payload is
still returned. Nothing here is retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from ..core.config import settings
from ..core.errors import (
    AnalysisError,
    CachePersistFailure,
    CacheUnavailable,
    ProviderUnavailable,
)
from ..core.metrics import PAYLOAD_SOURCE
from ..core.utils import normalize_address
from ..data.alerts import format_alert
from ..data.base import AlertSink, CacheEntry, CacheStore, ProviderClient, ProviderRequest
from .payload import validate_payload

logger = logging.getLogger(__name__)


class PayloadSource(str, Enum):
    CACHE = "cache"
    API = "api"
    API_DUE_TO_CACHE_ERROR = "api_due_to_cache_error"


@dataclass
class Resolution:
    payload: dict
    source: PayloadSource


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheReconciler:
    def __init__(
        self,
        store: CacheStore,
        provider: ProviderClient,
        alerts: AlertSink,
        freshness: timedelta = timedelta(days=settings.CACHE_FRESHNESS_DAYS),
        store_timeout: float = settings.DB_COMMAND_TIMEOUT_SECONDS,
        fetch_timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.provider = provider
        self.alerts = alerts
        self.freshness = freshness
        self.store_timeout = store_timeout
        self.fetch_timeout = fetch_timeout
        self.clock = clock

    async def resolve(self, address: str, request: Optional[ProviderRequest] = None) -> Resolution:
        key = normalize_address(address)
        request = request or ProviderRequest(address=address)

        source = PayloadSource.API
        try:
            entry = await self.check_cache(key)
        except CacheUnavailable as exc:
            logger.error("Cache check failed for %r: %s", key, exc.detail, exc_info=exc.__cause__)
            self.alerts.notify(
                "StaySTRA Analyzer Cache Check Error",
                format_alert(address, error=exc.detail),
            )
            source = PayloadSource.API_DUE_TO_CACHE_ERROR
        else:
            if entry is not None:
                logger.info("Cache hit for %r (fetched %s)", key, entry.last_fetched.isoformat())
                PAYLOAD_SOURCE.labels(source=PayloadSource.CACHE.value).inc()
                return Resolution(payload=entry.payload, source=PayloadSource.CACHE)
            logger.info("Cache miss for %r", key)

        try:
            payload = await self.fetch_fresh(request)
            # Only well-formed payloads are worth caching; a bad one is terminal.
            validate_payload(payload)
        except AnalysisError as exc:
            exc.source = source
            raise
        await self.persist(key, address, payload)
        PAYLOAD_SOURCE.labels(source=source.value).inc()
        return Resolution(payload=payload, source=source)

    async def check_cache(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry for ``key`` or None. Storage failures become CacheUnavailable."""
        try:
            entry = await asyncio.wait_for(self.store.get(key), timeout=self.store_timeout)
        except Exception as exc:
            raise CacheUnavailable(f"{type(exc).__name__}: {exc}") from exc
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def is_fresh(self, entry: CacheEntry) -> bool:
        fetched = entry.last_fetched
        if fetched.tzinfo is None:
            fetched = fetched.replace(tzinfo=timezone.utc)
        return self.clock() - fetched < self.freshness

    async def fetch_fresh(self, request: ProviderRequest) -> dict:
        try:
            return await asyncio.wait_for(self.provider.fetch(request), timeout=self.fetch_timeout)
        except AnalysisError:
            raise
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailable(f"Provider call exceeded {self.fetch_timeout}s") from exc
        except Exception as exc:
            raise ProviderUnavailable(f"Provider call failed: {type(exc).__name__}: {exc}") from exc

    async def persist(self, key: str, address: str, payload: dict) -> None:
        try:
            await asyncio.wait_for(
                self.store.upsert(key, payload, self.clock()), timeout=self.store_timeout
            )
        except Exception as exc:
            failure = CachePersistFailure(f"{type(exc).__name__}: {exc}")
            logger.error("Cache write failed for %r: %s", key, failure.detail, exc_info=exc)
            self.alerts.notify(
                "StaySTRA Analyzer Cache Save Error",
                format_alert(address, error=failure.detail),
            )
            return
        logger.info("Cache write succeeded for %r", key)
