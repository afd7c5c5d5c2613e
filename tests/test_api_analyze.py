# tests/test_api_analyze.py
import pytest
from fastapi.testclient import TestClient

from staystra.data.api_keys import StaticApiKeyStore
from staystra.main import create_app

from fakes import FakeProvider, make_deps

DATA_FIELDS = {
    "property_details", "property_statistics", "comps", "market_name", "submarket_name",
    "market_score", "submarket_score", "ard", "occupancy",
    "projected_revenue_typical", "projected_revenue_top_25", "projected_revenue_top_10",
}


@pytest.fixture
def client():
    with TestClient(create_app(make_deps())) as c:
        yield c


def test_missing_address_is_200_without_data(client):
    r = client.post("/api/v2/property/analyze", json={"bedrooms": 3})
    assert r.status_code == 200
    assert r.json() == {"success": False, "message": "Property address is required for analysis."}


@pytest.mark.parametrize("version", ["v1", "v2"])
def test_analyze_returns_full_projection(client, version):
    r = client.post(
        f"/api/{version}/property/analyze",
        json={"address": "123 Main St Austin", "bedrooms": "2", "bathrooms": "1", "utm_source": "fb"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Analysis completed (Source: api)"
    assert set(body["data"]) == DATA_FIELDS
    assert body["data"]["projected_revenue_typical"] == 1100
    assert body["data"]["projected_revenue_top_25"] == 54850
    assert body["data"]["ard"] == "$180"


def test_provider_failure_is_200_with_user_message():
    from staystra.core.errors import ProviderUnavailable

    deps = make_deps(provider=FakeProvider(error=ProviderUnavailable("down", status_code=502)))
    with TestClient(create_app(deps)) as c:
        r = c.post("/api/v2/property/analyze", json={"address": "1 Elm St Boise"})

    assert r.status_code == 200
    assert r.json() == {
        "success": False,
        "message": "External analysis service responded with an error (Status 502). Please try again later.",
    }


def test_api_key_is_enforced_when_configured():
    with TestClient(create_app(make_deps(api_keys=StaticApiKeyStore("s3cret-key")))) as c:
        missing = c.post("/api/v2/property/analyze", json={"address": "1 Elm St Boise"})
        wrong = c.post(
            "/api/v2/property/analyze", json={"address": "1 Elm St Boise"}, headers={"x-api-key": "nope"}
        )
        ok = c.post(
            "/api/v2/property/analyze", json={"address": "1 Elm St Boise"}, headers={"x-api-key": "s3cret-key"}
        )

    assert missing.status_code == 401
    assert wrong.status_code == 403
    assert ok.status_code == 200
    assert ok.json()["success"] is True


def test_request_id_is_echoed(client):
    r = client.post(
        "/api/v2/property/analyze", json={"address": "1 Elm St Boise"}, headers={"X-Request-Id": "req-abc"}
    )
    assert r.headers["X-Request-Id"] == "req-abc"


def test_extra_fields_are_ignored(client):
    r = client.post("/api/v1/property/analyze", json={"address": "1 Elm St Boise", "nonce": "wp-123"})
    assert r.status_code == 200
    assert r.json()["success"] is True
