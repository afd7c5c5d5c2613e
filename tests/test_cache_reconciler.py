# tests/test_cache_reconciler.py
from datetime import datetime, timedelta

import pytest

from staystra.core.errors import (
    MalformedProviderPayload,
    MissingProviderSections,
    ProviderUnavailable,
)
from staystra.services.cache_reconciler import CacheReconciler, PayloadSource

from fakes import NOW, FakeCacheStore, FakeProvider, make_payload


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_provider_call(reconciler, store, provider):
    cached = make_payload(revenue=777)
    await store.upsert("123 main st austin", cached, NOW - timedelta(days=3))
    store.upserts.clear()

    res = await reconciler.resolve("  123 Main St   Austin ")

    assert res.source is PayloadSource.CACHE
    assert res.payload == cached
    assert provider.calls == []
    assert store.upserts == []


@pytest.mark.asyncio
async def test_miss_fetches_and_persists_under_normalized_key(reconciler, store, provider, alerts):
    res = await reconciler.resolve("123 Main St Austin")

    assert res.source is PayloadSource.API
    assert len(provider.calls) == 1
    assert store.upserts == [("123 main st austin", NOW)]
    entry = await store.get("123 main st austin")
    assert entry.payload == res.payload
    assert alerts.sent == []


@pytest.mark.asyncio
async def test_stale_entry_is_refreshed(reconciler, store, provider):
    await store.upsert("9 elm rd", make_payload(revenue=1), NOW - timedelta(days=30))

    res = await reconciler.resolve("9 Elm Rd")

    assert res.source is PayloadSource.API
    assert len(provider.calls) == 1
    entry = await store.get("9 elm rd")
    assert entry.last_fetched == NOW


@pytest.mark.asyncio
async def test_naive_timestamps_are_read_as_utc(reconciler, store, provider):
    naive = (NOW - timedelta(days=29, hours=23)).replace(tzinfo=None)
    await store.upsert("9 elm rd", make_payload(), naive)

    res = await reconciler.resolve("9 elm rd")

    assert res.source is PayloadSource.CACHE
    assert provider.calls == []


@pytest.mark.asyncio
async def test_cache_read_failure_falls_through_to_fetch(provider, alerts):
    store = FakeCacheStore(get_error=ConnectionError("db down"))
    reconciler = CacheReconciler(store, provider, alerts, clock=lambda: NOW)

    res = await reconciler.resolve("1 Ocean Dr Miami")

    assert res.source is PayloadSource.API_DUE_TO_CACHE_ERROR
    assert len(provider.calls) == 1
    assert alerts.subjects == ["StaySTRA Analyzer Cache Check Error"]
    assert "db down" in alerts.sent[0][1]


@pytest.mark.asyncio
async def test_slow_cache_read_counts_as_failure(provider, alerts):
    store = FakeCacheStore(get_delay=1.0)
    reconciler = CacheReconciler(store, provider, alerts, store_timeout=0.05, clock=lambda: NOW)

    res = await reconciler.resolve("1 Ocean Dr Miami")

    assert res.source is PayloadSource.API_DUE_TO_CACHE_ERROR
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_provider_error_is_terminal_and_nothing_is_cached(store, alerts):
    provider = FakeProvider(error=ProviderUnavailable("503", status_code=503, body="busy"))
    reconciler = CacheReconciler(store, provider, alerts, clock=lambda: NOW)

    with pytest.raises(ProviderUnavailable) as info:
        await reconciler.resolve("1 Ocean Dr Miami")

    assert info.value.status_code == 503
    assert store.upserts == []


@pytest.mark.asyncio
async def test_unexpected_provider_exception_becomes_provider_unavailable(store, alerts):
    provider = FakeProvider(error=OSError("connection reset"))
    reconciler = CacheReconciler(store, provider, alerts, clock=lambda: NOW)

    with pytest.raises(ProviderUnavailable) as info:
        await reconciler.resolve("1 Ocean Dr Miami")
    assert info.value.status_code is None


@pytest.mark.asyncio
async def test_provider_timeout_is_terminal(store, alerts):
    provider = FakeProvider(delay=1.0)
    reconciler = CacheReconciler(store, provider, alerts, fetch_timeout=0.05, clock=lambda: NOW)

    with pytest.raises(ProviderUnavailable):
        await reconciler.resolve("1 Ocean Dr Miami")
    assert store.upserts == []


@pytest.mark.asyncio
async def test_persist_failure_still_returns_fresh_payload(provider, alerts):
    store = FakeCacheStore(upsert_error=RuntimeError("disk full"))
    reconciler = CacheReconciler(store, provider, alerts, clock=lambda: NOW)

    res = await reconciler.resolve("1 Ocean Dr Miami")

    assert res.source is PayloadSource.API
    assert res.payload == provider.payload
    assert alerts.subjects == ["StaySTRA Analyzer Cache Save Error"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload,error",
    [
        ({"message": "You are not subscribed to this API."}, MalformedProviderPayload),
        ({"data": None}, MalformedProviderPayload),
        ({"data": {"property_details": {"bedrooms": 2}, "property_statistics": {"x": 1}}}, MissingProviderSections),
        (
            {"data": {"property_details": {}, "property_statistics": {}, "combined_market_info": None}},
            MissingProviderSections,
        ),
    ],
)
async def test_malformed_fresh_payload_is_not_cached(store, alerts, payload, error):
    reconciler = CacheReconciler(store, FakeProvider(payload=payload), alerts, clock=lambda: NOW)

    with pytest.raises(error):
        await reconciler.resolve("1 Ocean Dr Miami")
    assert store.upserts == []


@pytest.mark.asyncio
async def test_empty_sections_are_still_cached(store, alerts):
    payload = make_payload()
    payload["data"]["property_details"] = {}
    payload["data"]["combined_market_info"] = {}
    reconciler = CacheReconciler(store, FakeProvider(payload=payload), alerts, clock=lambda: NOW)

    res = await reconciler.resolve("1 Ocean Dr Miami")

    assert res.source is PayloadSource.API
    assert store.upserts == [("1 ocean dr miami", NOW)]


def test_freshness_window_boundary(reconciler):
    from staystra.data.base import CacheEntry

    assert reconciler.is_fresh(CacheEntry({}, NOW - timedelta(days=29, hours=23, minutes=59)))
    assert not reconciler.is_fresh(CacheEntry({}, NOW - timedelta(days=30)))
    assert reconciler.is_fresh(CacheEntry({}, datetime(2025, 6, 1, 11, 0)))
