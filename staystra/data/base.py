from typing import Any, Protocol, Optional
from dataclasses import dataclass
from datetime import datetime

from ..core.utils import dig, to_number

# ----- Data shapes (thin & explicit) -----

@dataclass(frozen=True)
class MarketStatistics:
    # Last-twelve-months aggregates from the provider's property_statistics
    revenue_ltm: float = 0.0
    cleaning_fee_ltm: float = 0.0
    occupancy_ltm: float = 0.0      # fraction, 0..1

    @classmethod
    def from_payload(cls, stats: Any) -> "MarketStatistics":
        """Missing or malformed numbers default to 0."""
        return cls(
            revenue_ltm=to_number(dig(stats, "revenue", "ltm")),
            cleaning_fee_ltm=to_number(dig(stats, "cleaning_fee", "ltm")),
            occupancy_ltm=to_number(dig(stats, "occupancy", "ltm")),
        )

@dataclass(frozen=True)
class ComparableProperty:
    adr_ltm: float = 0.0            # average daily rate; <= 0 means "no usable ADR"

    @classmethod
    def from_payload(cls, comp: Any) -> "ComparableProperty":
        return cls(adr_ltm=to_number(dig(comp, "stats", "adr", "ltm")))

@dataclass(frozen=True)
class ProjectedRevenue:
    typical: float
    top25: float
    top10: float

@dataclass
class CacheEntry:
    payload: dict
    last_fetched: datetime

@dataclass(frozen=True)
class ProviderRequest:
    address: str
    bedrooms: int = 0
    bathrooms: float = 0.0
    accommodates: int = 0

# ----- Protocols (interfaces) -----

class ProviderClient(Protocol):
    async def fetch(self, request: ProviderRequest) -> dict: ...

class CacheStore(Protocol):
    async def get(self, address: str) -> Optional[CacheEntry]: ...
    async def upsert(self, address: str, payload: dict, fetched_at: datetime) -> None: ...

class QueryLog(Protocol):
    async def start(
        self, address: str, referrer: Optional[str], utm_source: Optional[str], agent_id: Optional[str]
    ) -> Optional[int]: ...
    async def mark_success(self, query_id: int) -> None: ...
    async def record_error(
        self, address: Optional[str], code: str, message: str, query_id: Optional[int]
    ) -> None: ...

class ApiKeyStore(Protocol):
    async def lookup(self, key: str) -> Optional[Any]: ...

class AlertSink(Protocol):
    def notify(self, subject: str, body: str) -> None: ...
    async def aclose(self) -> None: ...
