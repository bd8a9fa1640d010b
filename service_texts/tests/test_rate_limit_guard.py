"""
Unit tests for the rate limit FastAPI guard.
"""

import pytest
import fakeredis
from unittest.mock import AsyncMock, MagicMock
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from service_texts.app.auth.tokens import TokenManager
from service_texts.app.ratelimit.fixed_window import FixedWindowRateLimiter
from service_texts.app.ratelimit.guard import RateLimitGuard
from service_texts.app.ratelimit.policies import RateLimitPolicy
from service_texts.app.store.redis_store import RedisKeyValueStore
from shared.errors import RateLimitError, StoreUnavailableError


POLICIES = {
    "login": RateLimitPolicy("login", 60000, 2, "ip", "Too many login attempts."),
    "analysis": RateLimitPolicy("analysis", 60000, 1, "user", "Too many analysis requests."),
}


def build_app(guard: RateLimitGuard) -> FastAPI:
    """Minimal app exercising the guard."""
    app = FastAPI()

    @app.exception_handler(RateLimitError)
    async def rate_limit_handler(request, exc: RateLimitError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=exc.headers)

    @app.post("/login", dependencies=[Depends(guard.dependency("login"))])
    async def login():
        return {"ok": True}

    @app.get("/analysis", dependencies=[Depends(guard.dependency("analysis"))])
    async def analysis():
        return {"ok": True}

    return app


class TestRateLimitGuard:
    """Test cases for RateLimitGuard."""

    @pytest.fixture
    def token_manager(self):
        return TokenManager("test-secret")

    @pytest.fixture
    def rate_limiter(self):
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
        return FixedWindowRateLimiter(RedisKeyValueStore(client))

    @pytest.fixture
    def guard(self, rate_limiter, token_manager):
        return RateLimitGuard(rate_limiter, POLICIES, token_manager)

    @pytest.fixture
    def client(self, guard):
        with TestClient(build_app(guard)) as client:
            yield client

    def test_admitted_response_has_quota_headers(self, client):
        """Test RateLimit-* headers on admitted requests."""
        response = client.post("/login")

        assert response.status_code == 200
        assert response.headers["RateLimit-Limit"] == "2"
        assert response.headers["RateLimit-Remaining"] == "1"
        assert response.headers["RateLimit-Reset"].endswith("Z")

    def test_rejection_is_429_with_retry_after(self, client):
        """Test the request over quota is rejected."""
        client.post("/login")
        client.post("/login")
        response = client.post("/login")

        assert response.status_code == 429
        assert response.json()["message"] == "Too many login attempts."
        assert int(response.headers["Retry-After"]) >= 1
        assert response.headers["RateLimit-Remaining"] == "0"

    def test_forwarded_headers_ignored_by_default(self, client):
        """Test a client cannot escape its quota by rotating proxy headers."""
        statuses = [
            client.post("/login", headers={"X-Forwarded-For": f"10.0.0.{i}", "X-Real-IP": f"10.0.1.{i}"}).status_code
            for i in range(3)
        ]

        assert statuses == [200, 200, 429]

    def test_trusted_proxy_headers(self, rate_limiter, token_manager):
        """Test clients behind a trusted proxy are limited separately."""
        guard = RateLimitGuard(rate_limiter, POLICIES, token_manager, trust_forwarded_for=True)

        with TestClient(build_app(guard)) as client:
            for _ in range(2):
                client.post("/login", headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})

            assert client.post("/login", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
            assert client.post("/login", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200
            assert client.post("/login", headers={"X-Real-IP": "10.0.0.3"}).status_code == 200

    def test_user_identity_from_bearer_token(self, client, token_manager):
        """Test per-user policies key on the token's user."""
        alice = {"Authorization": f"Bearer {token_manager.issue('a' * 32, 'alice@example.com')}"}
        bob = {"Authorization": f"Bearer {token_manager.issue('b' * 32, 'bob@example.com')}"}

        assert client.get("/analysis", headers=alice).status_code == 200
        assert client.get("/analysis", headers=alice).status_code == 429
        assert client.get("/analysis", headers=bob).status_code == 200

    def test_user_policy_falls_back_to_ip(self, guard, token_manager):
        """Test anonymous callers of per-user policies are keyed by address."""
        request = MagicMock()
        request.client.host = "192.168.1.5"
        request.headers = {"Authorization": "Bearer not-a-token", "X-Real-IP": "10.9.9.9"}

        assert guard.resolve_identity(request, POLICIES["analysis"]) == "ip:192.168.1.5"

    def test_store_outage_admits(self, token_manager):
        """Test requests pass while the store is down."""
        store = AsyncMock()
        store.increment.side_effect = StoreUnavailableError("increment")
        guard = RateLimitGuard(FixedWindowRateLimiter(store), POLICIES, token_manager)

        with TestClient(build_app(guard)) as client:
            statuses = [client.post("/login").status_code for _ in range(5)]

        assert statuses == [200] * 5

    def test_disabled_guard_skips_limiter(self, rate_limiter, token_manager):
        """Test rate limiting can be switched off."""
        guard = RateLimitGuard(rate_limiter, POLICIES, token_manager, enabled=False)

        with TestClient(build_app(guard)) as client:
            responses = [client.post("/login") for _ in range(5)]

        assert all(r.status_code == 200 for r in responses)
        assert "RateLimit-Limit" not in responses[0].headers

    def test_unknown_policy(self, guard):
        with pytest.raises(ValueError):
            guard.dependency("missing")
