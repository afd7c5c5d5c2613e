"""
Process-wide collaborators, built once by the app lifespan and stored on
``app.state.deps``. Tests build their own ``Dependencies`` from fakes and
pass it to ``create_app``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.config import settings
from .data.alerts import alert_sink
from .data.api_keys import api_key_store
from .data.base import AlertSink, ApiKeyStore
from .data.cache_store import cache_store
from .data.db import Database
from .data.provider_client import provider_client
from .data.query_log import query_log
from .services.analysis_service import AnalysisService
from .services.cache_reconciler import CacheReconciler


@dataclass
class Dependencies:
    analysis: AnalysisService
    alerts: AlertSink
    api_keys: Optional[ApiKeyStore] = None
    db: Optional[Database] = None

    async def aclose(self) -> None:
        await self.alerts.aclose()
        if self.db is not None:
            await self.db.close()


async def build_dependencies() -> Dependencies:
    db = None
    if settings.DATABASE_URL:
        db = Database(
            settings.DATABASE_URL,
            min_size=settings.DB_POOL_MIN,
            max_size=settings.DB_POOL_MAX,
            command_timeout=settings.DB_COMMAND_TIMEOUT_SECONDS,
        )
        await db.connect()

    alerts = alert_sink()
    reconciler = CacheReconciler(cache_store(db), provider_client(), alerts)
    return Dependencies(
        analysis=AnalysisService(reconciler, query_log(db), alerts),
        alerts=alerts,
        api_keys=api_key_store(db),
        db=db,
    )
