from typing import Protocol, Sequence
from ..data.base import MarketStatistics, ComparableProperty, ProjectedRevenue

class RevenueModel(Protocol):
    def project(self, stats: MarketStatistics, comps: Sequence[ComparableProperty]) -> ProjectedRevenue:
        """
        Returns typical / top-25% / top-10% projected annual gross revenue.
        Must not raise on degraded inputs.
        """
        ...
