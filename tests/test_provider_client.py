# tests/test_provider_client.py
import httpx
import pytest

from staystra.core.errors import MalformedProviderPayload, ProviderUnavailable
from staystra.data.base import ProviderRequest
from staystra.data.provider_client import HttpProvider, MockProvider
from staystra.services.payload import validate_payload

BASE_URL = "https://rentalizer.example.test/rentalizer"


def make_provider(handler, **kwargs):
    return HttpProvider(
        kwargs.pop("base_url", BASE_URL),
        kwargs.pop("api_key", "key-123456789"),
        kwargs.pop("api_host", "rentalizer.example.test"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_request_carries_params_and_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"data": {}})

    provider = make_provider(handler)
    body = await provider.fetch(ProviderRequest("123 Main St Austin", bedrooms=3, bathrooms=0, accommodates=6))

    assert body == {"data": {}}
    assert seen["params"] == {"address": "123 Main St, Austin", "bedrooms": "3", "accommodates": "6"}
    assert seen["headers"]["x-rapidapi-host"] == "rentalizer.example.test"
    assert seen["headers"]["x-rapidapi-key"] == "key-123456789"
    assert seen["headers"]["user-agent"].startswith("StaySTRAAnalyzer")


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_and_truncated_body():
    def handler(request):
        return httpx.Response(503, text="x" * 2000)

    with pytest.raises(ProviderUnavailable) as info:
        await make_provider(handler).fetch(ProviderRequest("1 Elm St Boise"))

    err = info.value
    assert err.status_code == 503
    assert err.code == "EXTERNAL_FETCH_ERROR_503"
    assert "Status 503" in err.user_message
    assert len(err.body) <= 503


@pytest.mark.asyncio
async def test_timeout_raises_provider_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(ProviderUnavailable) as info:
        await make_provider(handler).fetch(ProviderRequest("1 Elm St Boise"))
    assert info.value.status_code is None
    assert info.value.code == "EXTERNAL_FETCH_ERROR"


@pytest.mark.asyncio
async def test_transport_error_raises_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderUnavailable):
        await make_provider(handler).fetch(ProviderRequest("1 Elm St Boise"))


@pytest.mark.asyncio
async def test_non_json_body_is_malformed():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(MalformedProviderPayload):
        await make_provider(handler).fetch(ProviderRequest("1 Elm St Boise"))


@pytest.mark.asyncio
async def test_missing_configuration_is_provider_unavailable():
    def handler(request):  # pragma: no cover - never reached
        raise AssertionError("should not call out")

    with pytest.raises(ProviderUnavailable):
        await make_provider(handler, api_key=None).fetch(ProviderRequest("1 Elm St Boise"))


@pytest.mark.asyncio
async def test_mock_provider_is_deterministic_and_well_formed():
    provider = MockProvider()
    a = await provider.fetch(ProviderRequest("77 Lake Rd Destin", bedrooms=3))
    b = await provider.fetch(ProviderRequest("77 Lake Rd Destin", bedrooms=3))

    assert a == b
    data = validate_payload(a)
    assert data["property_details"]["bedrooms"] == 3
    assert data["comps"]
    assert all(c["stats"]["adr"]["ltm"] > 0 for c in data["comps"])
