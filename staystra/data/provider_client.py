import logging
import random
from .base import ProviderClient, ProviderRequest
from ..core.config import settings
from ..core.errors import MalformedProviderPayload, ProviderUnavailable
from ..core.utils import format_provider_address, truncate
import httpx

logger = logging.getLogger(__name__)

class MockProvider(ProviderClient):
    """
    Synthetic rentalizer response keyed off the address hash. Same shape
    as the real provider so the whole pipeline runs offline.
    """
    async def fetch(self, request: ProviderRequest) -> dict:
        # str seeds are hashed deterministically, so one address always gets one payload
        rng = random.Random(request.address.lower())
        r = [rng.random() for _ in range(6)]
        bedrooms = request.bedrooms or 1 + int(r[0] * 4)          # 1..4
        adr = round(90 + r[1] * 260 + bedrooms * 25, 2)
        occupancy = round(0.35 + r[2] * 0.4, 2)                   # 35%..75%
        cleaning = round(60 + bedrooms * 35 + r[3] * 40, 2)
        revenue = round(adr * occupancy * 365, 2)

        comps = []
        for i in range(8 + int(r[4] * 12)):
            cr = [rng.random() for _ in range(3)]
            comp_adr = round(adr * (0.6 + cr[0] * 0.9), 2)
            comp_occ = round(0.3 + cr[1] * 0.5, 2)
            comps.append({
                "airbnb_property_id": str(10_000_000 + int(cr[2] * 89_999_999)),
                "title": f"Comparable listing {i + 1}",
                "bedrooms": bedrooms,
                "stats": {
                    "adr": {"ltm": comp_adr},
                    "occupancy": {"ltm": comp_occ},
                    "revenue": {"ltm": round(comp_adr * comp_occ * 365, 2)},
                },
            })

        markets = ["Austin", "Nashville", "Scottsdale", "Destin", "Gatlinburg", "Asheville"]
        midx = int(r[5] * len(markets)) % len(markets)
        return {
            "data": {
                "property_details": {
                    "address": request.address,
                    "bedrooms": bedrooms,
                    "bathrooms": request.bathrooms or max(1.0, bedrooms - 1.0),
                    "accommodates": request.accommodates or bedrooms * 2,
                },
                "property_statistics": {
                    "adr": {"ltm": adr},
                    "occupancy": {"ltm": occupancy},
                    "revenue": {"ltm": revenue},
                    "cleaning_fee": {"ltm": cleaning},
                },
                "comps": comps,
                "combined_market_info": {
                    "airdna_market_name": markets[midx],
                    "submarket_name": f"{markets[midx]} Central",
                    "market_score": 50 + int(r[1] * 50),
                    "submarket_score": 40 + int(r[2] * 60),
                },
            }
        }

class HttpProvider(ProviderClient):
    """
    Rentalizer endpoint behind RapidAPI. One attempt per request with a
    bounded timeout; any non-2xx status, timeout or transport error
    surfaces as ProviderUnavailable.
    """
    def __init__(self, base_url: str | None, api_key: str | None, api_host: str | None,
                 timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
                 user_agent: str = settings.PROVIDER_USER_AGENT,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url
        self.api_key = api_key
        self.api_host = api_host
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    @staticmethod
    def build_params(request: ProviderRequest) -> dict:
        params: dict = {"address": format_provider_address(request.address)}
        if request.bedrooms > 0:
            params["bedrooms"] = request.bedrooms
        if request.bathrooms > 0:
            params["bathrooms"] = request.bathrooms
        if request.accommodates > 0:
            params["accommodates"] = request.accommodates
        return params

    async def fetch(self, request: ProviderRequest) -> dict:
        if not (self.base_url and self.api_key and self.api_host):
            raise ProviderUnavailable("External API configuration missing (base url, key or host)")

        params = self.build_params(request)
        headers = {
            "x-rapidapi-host": self.api_host,
            "x-rapidapi-key": self.api_key,
            "User-Agent": self.user_agent,
        }
        logger.info("Calling provider for %r (key ...%s)", params["address"], self.api_key[-5:])
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(self.base_url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise ProviderUnavailable(f"Provider call timed out after {self.timeout}s: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(f"Provider transport error: {exc!r}") from exc

        if not r.is_success:
            body = truncate(r.text, 500)
            raise ProviderUnavailable(
                f"Provider returned {r.status_code} {r.reason_phrase}",
                status_code=r.status_code,
                body=body,
            )
        try:
            return r.json()
        except ValueError as exc:
            raise MalformedProviderPayload(
                f"Provider returned non-JSON body: {truncate(r.text, 1000)}"
            ) from exc

def provider_client() -> ProviderClient:
    if settings.PROVIDER == "http":
        return HttpProvider(settings.PROVIDER_BASE_URL, settings.PROVIDER_API_KEY, settings.PROVIDER_API_HOST)
    return MockProvider()
