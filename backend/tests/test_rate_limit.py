# =============================================================================
# tests/test_rate_limit.py - Rate Limiting Tests
# =============================================================================

import pytest
from fastapi.testclient import TestClient

from roamplan.core.app import create_app
from roamplan.core.config_loader import parse_rate, settings
from roamplan.core.middleware import SlidingWindowLimiter
from roamplan.core.security import create_access_token
from roamplan.db.sqlite_store import get_store


class TestParseRate:
    def test_parse(self):
        assert parse_rate("5/60") == (5, 60)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_rate("0/60")


class TestSlidingWindowLimiter:
    def test_allows_up_to_limit(self):
        limiter = SlidingWindowLimiter()
        key = ("default", "ip:1.2.3.4")

        results = [limiter.hit(key, limit=3, window=60, now=100.0) for _ in range(4)]

        assert [r[0] for r in results] == [True, True, True, False]
        assert [r[1] for r in results[:3]] == [2, 1, 0]

    def test_retry_after_counts_down(self):
        limiter = SlidingWindowLimiter()
        key = ("auth", "ip:1.2.3.4")
        limiter.hit(key, limit=1, window=60, now=100.0)

        allowed, remaining, retry_after = limiter.hit(key, limit=1, window=60, now=130.5)

        assert not allowed
        assert remaining == 0
        assert retry_after == 30

    def test_window_slides(self):
        limiter = SlidingWindowLimiter()
        key = ("default", "user:1")
        limiter.hit(key, limit=1, window=10, now=0.0)

        assert limiter.hit(key, limit=1, window=10, now=10.0)[0] is True

    def test_keys_are_independent(self):
        limiter = SlidingWindowLimiter()
        limiter.hit(("auth", "ip:a"), limit=1, window=60, now=0.0)

        assert limiter.hit(("auth", "ip:b"), limit=1, window=60, now=0.0)[0] is True
        assert limiter.hit(("default", "ip:a"), limit=1, window=60, now=0.0)[0] is True

    def test_idle_keys_are_swept(self):
        limiter = SlidingWindowLimiter(sweep_interval=100)

        for i in range(10000):
            limiter.hit(("default", f"ip:10.0.{i // 256}.{i % 256}"), limit=5, window=1, now=float(i))

        assert len(limiter) <= 100

    def test_sweep_keeps_active_keys(self):
        limiter = SlidingWindowLimiter(sweep_interval=2)
        limiter.hit(("auth", "ip:a"), limit=1, window=60, now=0.0)
        limiter.hit(("auth", "ip:b"), limit=1, window=60, now=1.0)

        assert len(limiter) == 2
        assert limiter.hit(("auth", "ip:a"), limit=1, window=60, now=2.0)[0] is False

    def test_sweep_drops_keys_once_window_passes(self):
        limiter = SlidingWindowLimiter(sweep_interval=3)
        limiter.hit(("default", "ip:a"), limit=5, window=10, now=0.0)
        limiter.hit(("default", "ip:b"), limit=5, window=10, now=1.0)
        assert len(limiter) == 2

        limiter.hit(("default", "ip:c"), limit=5, window=10, now=20.0)

        assert len(limiter) == 1


@pytest.fixture
def limited_client(monkeypatch, store):
    monkeypatch.setattr(settings, "RATE_LIMIT_AUTH", "2/60")
    monkeypatch.setattr(settings, "RATE_LIMIT_DEFAULT", "3/60")

    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c


class TestRateLimitMiddleware:
    def test_auth_bucket_returns_429(self, limited_client):
        body = {"email": "ghost@example.com", "password": "whatever1"}

        first = limited_client.post("/api/v1/auth/login", json=body)
        assert first.status_code == 401
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"

        limited_client.post("/api/v1/auth/login", json=body)
        blocked = limited_client.post("/api/v1/auth/login", json=body)

        assert blocked.status_code == 429
        assert blocked.json()["code"] == "RATE_LIMITED"
        assert int(blocked.headers["Retry-After"]) >= 1
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        # security headers still applied
        assert blocked.headers["X-Frame-Options"] == "DENY"

    def test_default_bucket_separate_from_auth(self, limited_client):
        for _ in range(2):
            limited_client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "x"})

        resp = limited_client.post("/api/v1/hotels/rank", json={"budget_per_night": 10, "hotels": []})
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == "3"

    def test_authenticated_users_limited_per_user(self, limited_client):
        alice = {"Authorization": f"Bearer {create_access_token('1')}"}
        bob = {"Authorization": f"Bearer {create_access_token('2')}"}
        body = {"budget_per_night": 10, "hotels": []}

        for _ in range(3):
            assert limited_client.post("/api/v1/hotels/rank", json=body, headers=alice).status_code == 200

        assert limited_client.post("/api/v1/hotels/rank", json=body, headers=alice).status_code == 429
        assert limited_client.post("/api/v1/hotels/rank", json=body, headers=bob).status_code == 200

    def test_health_exempt(self, limited_client):
        for _ in range(10):
            assert limited_client.get("/").status_code == 200
