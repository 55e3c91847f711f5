"""
Tests for the HTTP surface: /api/bitcoin/price, /healthz, rate limiting and headers.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import T0, FakeProvider, failing
from orangepill.main import create_app


@pytest.fixture
def providers():
    return [failing("A"), FakeProvider("B", 185320.50), FakeProvider("C", 1.0)]


@pytest.fixture
def client(settings, providers, clock):
    app = create_app(settings, [p.provider for p in providers], clock)
    with TestClient(app) as c:
        yield c


def test_price_from_first_working_provider(client, providers):
    response = client.get("/api/bitcoin/price")
    assert response.status_code == 200
    assert response.json() == {
        "bitcoin": {"pen": 185320.50, "provider": "B", "timestamp": T0}
    }
    assert [p.calls for p in providers] == [1, 1, 0]


def test_fresh_cache_serves_identical_payload(client, providers, clock):
    first = client.get("/api/bitcoin/price").json()
    clock.advance(10_000)
    second = client.get("/api/bitcoin/price").json()
    assert second == first
    assert [p.calls for p in providers] == [1, 1, 0]


def test_stale_fallback(client, providers, clock):
    client.get("/api/bitcoin/price")
    providers[1].result = TimeoutError("B down")
    providers[2].result = TimeoutError("C down")
    clock.advance(1_000_000)
    response = client.get("/api/bitcoin/price")
    assert response.status_code == 200
    assert response.json() == {
        "bitcoin": {"pen": 185320.50, "provider": "B", "timestamp": T0},
        "stale": True,
    }


def test_no_data_is_503(client, providers, clock):
    client.get("/api/bitcoin/price")
    for p in providers:
        p.result = TimeoutError(f"{p.name} down")
    clock.advance(1_800_000)
    response = client.get("/api/bitcoin/price")
    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "Unable to fetch Bitcoin price"
    assert "C down" in body["details"]


def test_cold_start_all_failing_is_503(settings, clock):
    app = create_app(settings, [failing("A").provider], clock)
    with TestClient(app) as c:
        response = c.get("/api/bitcoin/price")
    assert response.status_code == 503
    assert set(response.json()) == {"error", "details"}
    assert response.headers["ratelimit-limit"] == "100"
    assert response.headers["ratelimit-remaining"] == "99"


def test_api_responses_are_not_cacheable(client):
    response = client.get("/api/bitcoin/price")
    assert response.headers["cache-control"].startswith("no-store")
    assert response.headers["pragma"] == "no-cache"
    assert response.headers["expires"] == "0"


def test_unknown_api_path(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "API endpoint not found"}


def test_health(client):
    client.get("/api/bitcoin/price")
    response = client.get("/healthz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["providers"] == ["A", "B", "C"]
    assert data["price_cached_at"] == T0
    assert data["price_age_ms"] == 0
    assert data["price_error"] is None


def test_rate_limit(settings, providers, clock):
    settings.RATE_LIMIT_MAX = 2
    app = create_app(settings, [p.provider for p in providers], clock)
    with TestClient(app) as c:
        ok = c.get("/api/bitcoin/price")
        assert ok.headers["ratelimit-limit"] == "2"
        assert ok.headers["ratelimit-remaining"] == "1"
        assert c.get("/api/bitcoin/price").status_code == 200
        limited = c.get("/api/bitcoin/price")
        assert limited.status_code == 429
        assert limited.json() == {"error": "Too many requests, please try again later."}
        assert int(limited.headers["retry-after"]) > 0
        # health checks are never limited
        assert c.get("/healthz").status_code == 200


def test_rate_limit_disabled(settings, providers, clock):
    settings.RATE_LIMIT_MAX = 0
    app = create_app(settings, [p.provider for p in providers], clock)
    with TestClient(app) as c:
        for _ in range(5):
            assert c.get("/api/bitcoin/price").status_code == 200


def test_cors_allows_configured_origin(client):
    response = client.get("/api/bitcoin/price", headers={"Origin": "http://localhost:3000"})
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_preflight(client):
    response = client.options(
        "/api/bitcoin/price",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "GET" in response.headers["access-control-allow-methods"]


def test_cors_ignores_unknown_origin(client):
    response = client.get("/api/bitcoin/price", headers={"Origin": "https://evil.example"})
    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers
