# tests/conftest.py
import pytest

from staystra.services.analysis_service import AnalysisService
from staystra.services.cache_reconciler import CacheReconciler

from fakes import NOW, FakeCacheStore, FakeProvider, RecordingAlerts, RecordingQueryLog


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def store():
    return FakeCacheStore()


@pytest.fixture
def alerts():
    return RecordingAlerts()


@pytest.fixture
def query_log():
    return RecordingQueryLog()


@pytest.fixture
def reconciler(store, provider, alerts):
    return CacheReconciler(store, provider, alerts, clock=lambda: NOW)


@pytest.fixture
def service(reconciler, query_log, alerts):
    return AnalysisService(reconciler, query_log, alerts)
