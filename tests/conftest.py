"""
Pytest configuration and shared fixtures for Broker Radar tests.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from core.config.settings import (
    Environment,
    LoggingSettings,
    NonceSettings,
    RateLimitSettings,
    Settings,
    StockbitSettings,
)
from core.storage import InMemoryStorage, InMemoryStorageWithTTL, StorageOptions


class FakeClock:
    """Manually advanced millisecond clock for deterministic expiry."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStorage(clock=clock)


@pytest.fixture
def ttl_store(clock):
    """TTL store without a background sweep; tests call cleanup() explicitly."""
    storage = InMemoryStorageWithTTL(StorageOptions(default_ttl_ms=1_000, auto_cleanup=False), clock=clock)
    yield storage
    storage.stop_cleanup()


@pytest.fixture
def test_settings(monkeypatch):
    """Test settings configuration."""
    for legacy in ("STOCKBIT_ACCESS_TOKEN", "USE_MOCK", "PORT"):
        monkeypatch.delenv(legacy, raising=False)
    return Settings(
        environment=Environment.TESTING,
        stockbit=StockbitSettings(use_mock=True, access_token=""),
        nonce=NonceSettings(ttl_ms=60_000),
        rate_limit=RateLimitSettings(max_requests=1_000),
        logging=LoggingSettings(level="WARNING", file_enabled=False, console_json_format=False),
    )


@pytest.fixture
def app(test_settings):
    from api.main import create_app

    application = create_app(test_settings)
    yield application
    for expiring in application.state.container.expiring_stores():
        expiring.stop_cleanup()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def nonce_headers():
    """Factory producing a fresh nonce header for every call."""
    def _headers(**extra):
        headers = {"X-Nonce": uuid.uuid4().hex}
        headers.update(extra)
        return headers

    return _headers
