import logging
import math
from statistics import fmean
from typing import Any, Callable, Sequence

from .base import RevenueModel
from .jitter import RandomJitter
from ..data.base import MarketStatistics, ComparableProperty, ProjectedRevenue

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
TOP_25_SHARE = 0.25
TOP_10_SHARE = 0.10

def tier_size(n: int, share: float) -> int:
    """ceil(n * share), at least 1 and never more than n."""
    return min(n, max(1, math.ceil(n * share)))

class RevenueCalculator(RevenueModel):
    """
    Projects annual gross revenue for a short-term rental from the market's
    last-twelve-months statistics and its comparable listings.

    - typical:  revenue LTM + cleaning fee LTM
    - top 25%/10%: mean ADR of the best-priced comps in that tier
      * occupancy LTM * 365 + cleaning fee LTM

    Top tiers fall back to 0 when no comp has a positive ADR or the market
    occupancy is not positive. All three results go through ``jitter``.
    """
    def __init__(self, jitter: Callable[[float], float] | None = None):
        self.jitter = jitter or RandomJitter()

    def project(self, stats: MarketStatistics, comps: Sequence[ComparableProperty]) -> ProjectedRevenue:
        typical = stats.revenue_ltm + stats.cleaning_fee_ltm

        rates = sorted((c.adr_ltm for c in comps if c.adr_ltm > 0), reverse=True)
        top25 = top10 = 0.0
        if rates and stats.occupancy_ltm > 0:
            top25 = self._tier_revenue(rates, TOP_25_SHARE, stats)
            top10 = self._tier_revenue(rates, TOP_10_SHARE, stats)
        else:
            logger.warning(
                "No comps with a positive ADR (%d given) or occupancy %.3f <= 0; top-tier revenue set to 0",
                len(comps), stats.occupancy_ltm,
            )

        return ProjectedRevenue(
            typical=self.jitter(typical),
            top25=self.jitter(top25),
            top10=self.jitter(top10),
        )

    @staticmethod
    def _tier_revenue(rates: Sequence[float], share: float, stats: MarketStatistics) -> float:
        tier = rates[:tier_size(len(rates), share)]
        return fmean(tier) * stats.occupancy_ltm * DAYS_PER_YEAR + stats.cleaning_fee_ltm

def calculate_revenues(raw_stats: Any, raw_comps: Any,
                       jitter: Callable[[float], float] | None = None) -> ProjectedRevenue:
    """Convenience wrapper over the provider's raw property_statistics / comps."""
    stats = MarketStatistics.from_payload(raw_stats)
    comps = [ComparableProperty.from_payload(c) for c in (raw_comps if isinstance(raw_comps, list) else [])]
    return RevenueCalculator(jitter).project(stats, comps)
