import logging
import traceback
from dataclasses import dataclass
from typing import Any, Optional

from ..core.errors import (
    AnalysisError,
    InternalError,
    MalformedProviderPayload,
    ProviderUnavailable,
    UserInputError,
)
from ..core.metrics import ANALYSIS_RESULTS
from ..core.utils import dig, parse_float, parse_int, round_half_up, to_number
from ..data.alerts import format_alert
from ..data.base import AlertSink, ProjectedRevenue, ProviderRequest, QueryLog
from ..models.base import RevenueModel
from ..models.revenue_model import RevenueCalculator
from .cache_reconciler import CacheReconciler, PayloadSource
from .payload import ProviderData, extract

logger = logging.getLogger(__name__)

@dataclass
class AnalysisResult:
    success: bool
    message: str
    data: Optional[dict] = None
    source: Optional[PayloadSource] = None
    error_code: Optional[str] = None

def build_provider_request(address: str, bedrooms: Any = None, bathrooms: Any = None,
                           occupancy: Any = None) -> ProviderRequest:
    """
    Guest capacity sent to the provider: the explicit occupancy when given,
    otherwise two guests per bedroom.
    """
    beds = parse_int(bedrooms)
    occ = parse_int(occupancy)
    accommodates = beds * 2 if not occ and beds > 0 else occ
    return ProviderRequest(
        address=address,
        bedrooms=beds,
        bathrooms=parse_float(bathrooms),
        accommodates=accommodates,
    )

def shape_response(provider: ProviderData, revenue: ProjectedRevenue) -> dict:
    market = provider.market_info if isinstance(provider.market_info, dict) else {}
    adr = to_number(dig(provider.statistics, "adr", "ltm"))
    occupancy = to_number(dig(provider.statistics, "occupancy", "ltm"))
    return {
        "property_details": provider.details,
        "property_statistics": provider.statistics,
        "comps": provider.comps,
        "market_name": market.get("airdna_market_name") or market.get("market_name"),
        "submarket_name": market.get("submarket_name"),
        "market_score": market.get("market_score"),
        "submarket_score": market.get("submarket_score"),
        "ard": f"${round_half_up(adr)}" if adr else "N/A",
        "occupancy": f"{round_half_up(occupancy * 100)}%" if occupancy else "N/A",
        "projected_revenue_typical": revenue.typical,
        "projected_revenue_top_25": revenue.top25,
        "projected_revenue_top_10": revenue.top10,
    }

class AnalysisService:
    """
    Orchestrates:
      address -> cache-or-provider payload -> shape check -> revenue projection
    and turns every failure into a user-safe AnalysisResult. Full diagnostics
    go to logs, alerts and the query_errors audit table only.
    """
    def __init__(self, reconciler: CacheReconciler, query_log: QueryLog, alerts: AlertSink,
                 calculator: Optional[RevenueModel] = None):
        self.reconciler = reconciler
        self.query_log = query_log
        self.alerts = alerts
        self.calculator = calculator or RevenueCalculator()

    async def analyze(self, address: Optional[str], bedrooms: Any = None, bathrooms: Any = None,
                      occupancy: Any = None, *, referrer: Optional[str] = None,
                      utm_source: Optional[str] = None, agent_id: Optional[str] = None) -> AnalysisResult:
        address = address.strip() if isinstance(address, str) else ""
        if not address:
            err = UserInputError("Analysis request missing address")
            logger.warning("Analysis request missing address")
            ANALYSIS_RESULTS.labels(outcome="user_error").inc()
            return AnalysisResult(success=False, message=err.user_message, error_code=err.code)

        logger.info("Received analysis request for address %r", address)
        query_id = await self._start_query(address, referrer, utm_source, agent_id)

        source: Optional[PayloadSource] = None
        try:
            request = build_provider_request(address, bedrooms, bathrooms, occupancy)
            resolution = await self.reconciler.resolve(address, request)
            source = resolution.source
            provider = extract(resolution.payload)
            revenue = self.calculator.project(provider.market_statistics, provider.comparables)
            data = shape_response(provider, revenue)
        except AnalysisError as exc:
            return await self._fail(exc, address, query_id, source)
        except Exception as exc:
            err = InternalError(f"{type(exc).__name__}: {exc}\n{traceback.format_exc()}")
            return await self._fail(err, address, query_id, source)

        await self._mark_success(query_id)
        ANALYSIS_RESULTS.labels(outcome="success").inc()
        return AnalysisResult(
            success=True,
            message=f"Analysis completed (Source: {source.value})",
            data=data,
            source=source,
        )

    async def _fail(self, err: AnalysisError, address: str, query_id: Optional[int],
                    source: Optional[PayloadSource]) -> AnalysisResult:
        source = source or err.source
        src = source.value if source else "unknown"
        if isinstance(err, ProviderUnavailable):
            outcome = "provider_unavailable"
            subject = "StaySTRA Analyzer External API Error"
            fields = {"error": err.detail}
            if err.status_code is not None:
                fields["status"] = err.status_code
                fields["response_body"] = err.body or ""
        elif isinstance(err, MalformedProviderPayload):
            outcome = "malformed_payload"
            subject = "StaySTRA Analyzer Unexpected External Data"
            fields = {"source": src, "error": err.detail}
        else:
            outcome = "internal_error"
            subject = "StaySTRA Analyzer Internal API Error"
            fields = {"error": err.detail}

        logger.error("Analysis failed for %r [%s, source=%s]: %s", address, err.code, src, err.detail)
        self.alerts.notify(subject, format_alert(address, **fields))
        await self._record_error(address, err.code, f"Source: {src}. {err.detail}", query_id)
        ANALYSIS_RESULTS.labels(outcome=outcome).inc()
        return AnalysisResult(success=False, message=err.user_message, source=source, error_code=err.code)

    # ----- audit trail (never fails the request) -----

    async def _start_query(self, address, referrer, utm_source, agent_id) -> Optional[int]:
        try:
            return await self.query_log.start(address, referrer, utm_source, agent_id)
        except Exception as exc:
            logger.error("Failed to log initial query for %r", address, exc_info=exc)
            self.alerts.notify(
                "StaySTRA Analyzer DB Logging Error",
                format_alert(address, error=f"{type(exc).__name__}: {exc}"),
            )
            return None

    async def _mark_success(self, query_id: Optional[int]) -> None:
        if query_id is None:
            return
        try:
            await self.query_log.mark_success(query_id)
        except Exception as exc:
            logger.error("Failed to mark query %s as successful", query_id, exc_info=exc)

    async def _record_error(self, address, code: str, message: str, query_id: Optional[int]) -> None:
        try:
            await self.query_log.record_error(address, code, message, query_id)
        except Exception as exc:
            logger.error("Failed to record %s for query %s", code, query_id, exc_info=exc)

