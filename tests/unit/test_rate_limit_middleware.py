"""Unit tests for rate limiting middleware

Tests cover:
- Requests under limit allowed
- Minute limit enforcement with Retry-After
- Window slides with the clock
- Non-API paths bypass
- Per-IP isolation
- Forwarded headers ignored in production unless a proxy is trusted
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from folio.api.middleware.rate_limit import RateLimitMiddleware
from folio.infrastructure.settings import Settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def make_app(settings: Settings, clock: FakeClock) -> FastAPI:
    test_app = FastAPI()

    # Use low limits for testing
    test_app.add_middleware(
        RateLimitMiddleware, settings=settings, requests_per_minute=5, clock=clock
    )

    @test_app.get("/api/test")
    async def test_endpoint():
        return {"status": "ok"}

    @test_app.get("/health")
    async def health():
        return {"status": "healthy"}

    return test_app


@pytest.fixture
def app(clock):
    """Create test FastAPI app with rate limiting (development settings)"""
    return make_app(Settings(env="development"), clock)


def test_requests_under_limit_allowed(app):
    """Requests under the limit are allowed"""
    client = TestClient(app)

    for _ in range(5):
        response = client.get("/api/test")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


def test_minute_limit_enforced(app):
    """The sixth request in a minute is refused with Retry-After"""
    client = TestClient(app)

    for _ in range(5):
        client.get("/api/test")

    response = client.get("/api/test")
    assert response.status_code == 429
    assert response.json()["error"] == "Too many requests, please try again later."
    assert int(response.headers["Retry-After"]) >= 1
    assert response.json()["retry_after"] == int(response.headers["Retry-After"])


def test_window_slides(app, clock):
    """After a minute the caller may send again"""
    client = TestClient(app)

    for _ in range(5):
        client.get("/api/test")
    assert client.get("/api/test").status_code == 429

    clock.now += 61
    assert client.get("/api/test").status_code == 200


def test_non_api_paths_bypass(app):
    """Health checks are never limited"""
    client = TestClient(app)

    for _ in range(10):
        assert client.get("/health").status_code == 200


def test_per_ip_isolation(app):
    """Each client address has its own bucket (X-Forwarded-For trusted in development)"""
    client = TestClient(app)

    for _ in range(5):
        client.get("/api/test", headers={"X-Forwarded-For": "203.0.113.1"})
    assert client.get("/api/test", headers={"X-Forwarded-For": "203.0.113.1"}).status_code == 429

    response = client.get("/api/test", headers={"X-Forwarded-For": "203.0.113.2"})
    assert response.status_code == 200


def test_spoofed_forwarded_headers_still_limited(clock):
    """In production without a trusted proxy, rotating X-Forwarded-For does not help"""
    client = TestClient(make_app(Settings(env="production"), clock))

    statuses = [
        client.get(
            "/api/test",
            headers={"X-Cloud-Trace-Context": "x", "X-Forwarded-For": f"1.2.3.{n}"},
        ).status_code
        for n in range(6)
    ]

    assert statuses == [200] * 5 + [429]


def test_trusted_proxy_uses_last_hop(clock):
    """Behind a trusted proxy only the hop the proxy appended identifies the client"""
    client = TestClient(make_app(Settings(env="production", trust_proxy=True), clock))

    for n in range(5):
        client.get("/api/test", headers={"X-Forwarded-For": f"1.2.3.{n}, 203.0.113.9"})
    spoofed = client.get("/api/test", headers={"X-Forwarded-For": "1.2.3.99, 203.0.113.9"})
    other = client.get("/api/test", headers={"X-Forwarded-For": "203.0.113.10"})

    assert spoofed.status_code == 429
    assert other.status_code == 200
