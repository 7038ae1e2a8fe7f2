"""Tests for the fixed-window rate limiter."""

import threading

import pytest
from starlette.requests import Request

from conftest import FakeClock
from foliovault.app.core.config import settings
from foliovault.app.exceptions import RateLimitExceededError
from foliovault.app.middleware.rate_limit import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    get_client_ip,
    get_rate_limiter,
    policies,
    raise_if_limited,
    set_rate_limiter,
)


def _request(headers: dict | None = None, client=("10.0.0.9", 1234)) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "headers": raw_headers, "client": client})


class TestInMemoryRateLimitStore:
    """Tests for the fixed-window counter store."""

    @pytest.fixture
    def store(self, clock):
        return InMemoryRateLimitStore(clock=clock)

    def test_first_request_opens_window(self, store, clock):
        result = store.check_limit("k", 5, 60_000)
        assert result == RateLimitResult(
            allowed=True, remaining=4, reset_at=clock.now + 60_000, retry_after_ms=0
        )

    def test_order_limit_scenario(self, store):
        """Ten orders in a tight loop pass, the eleventh is rejected."""
        remaining = [store.check_limit("order:u1", 10, 60_000).remaining for _ in range(10)]
        assert remaining == [9, 8, 7, 6, 5, 4, 3, 2, 1, 0]

        rejected = store.check_limit("order:u1", 10, 60_000)
        assert rejected.allowed is False
        assert rejected.remaining == 0
        assert 0 < rejected.retry_after_ms <= 60_000

    def test_rejection_does_not_consume(self, store, clock):
        for _ in range(3):
            store.check_limit("k", 3, 1000)
        clock.advance(400)
        first = store.check_limit("k", 3, 1000)
        second = store.check_limit("k", 3, 1000)
        assert first.allowed is False and second.allowed is False
        assert first.retry_after_ms == 600
        assert first.reset_at == second.reset_at

    def test_window_expires_after_reset(self, store, clock):
        for _ in range(4):
            store.check_limit("k", 3, 1000)
        clock.advance(1001)
        result = store.check_limit("k", 3, 1000)
        assert result.allowed is True
        assert result.remaining == 2
        assert result.reset_at == clock.now + 1000

    def test_request_exactly_at_reset_counts_against_old_window(self, store, clock):
        for _ in range(3):
            store.check_limit("k", 3, 1000)
        clock.advance(1000)  # now == reset_at
        result = store.check_limit("k", 3, 1000)
        assert result.allowed is False
        assert result.retry_after_ms == 0

        clock.advance(1)
        assert store.check_limit("k", 3, 1000).allowed is True

    def test_burst_across_window_boundary_is_admitted(self, store, clock):
        """Up to 2x max requests fit in a short span around a boundary."""
        max_requests, window = 10, 60_000
        store.check_limit("burst", max_requests, window)  # opens the window at t0
        clock.advance(window - 5)
        tail = [store.check_limit("burst", max_requests, window).allowed for _ in range(max_requests - 1)]
        clock.advance(10)
        head = [store.check_limit("burst", max_requests, window).allowed for _ in range(max_requests)]

        assert all(tail)
        assert all(head)
        assert store.check_limit("burst", max_requests, window).allowed is False

    def test_keys_are_independent(self, store):
        for _ in range(2):
            store.check_limit("a", 2, 1000)
        assert store.check_limit("a", 2, 1000).allowed is False
        assert store.check_limit("b", 2, 1000).allowed is True

    def test_sweep_removes_only_expired_entries(self, store, clock):
        store.check_limit("old", 5, 1000)
        clock.advance(500)
        store.check_limit("new", 5, 1000)
        clock.advance(501)

        assert store.sweep() == 1
        assert "old" not in store
        assert "new" in store
        assert len(store) == 1

    def test_swept_key_starts_fresh(self, store, clock):
        for _ in range(2):
            store.check_limit("k", 2, 1000)
        clock.advance(1001)
        store.sweep()
        assert store.check_limit("k", 2, 1000).remaining == 1

    def test_concurrent_threads_never_exceed_max(self):
        store = InMemoryRateLimitStore(clock=FakeClock())
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                if store.check_limit("shared", 100, 60_000).allowed:
                    with lock:
                        admitted.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 100


class TestRateLimitResult:
    def test_retry_after_seconds_rounds_up(self):
        assert RateLimitResult(False, 0, 0, retry_after_ms=1).retry_after_seconds == 1
        assert RateLimitResult(False, 0, 0, retry_after_ms=1000).retry_after_seconds == 1
        assert RateLimitResult(False, 0, 0, retry_after_ms=1001).retry_after_seconds == 2
        assert RateLimitResult(True, 3, 0).retry_after_seconds == 0


class TestRateLimiter:
    """Tests for the preset policies."""

    def test_public_policy_is_60_per_minute_by_ip(self, limiter):
        for _ in range(60):
            assert limiter.check_public("1.2.3.4").allowed
        assert limiter.check_public("1.2.3.4").allowed is False
        assert limiter.check_public("5.6.7.8").allowed is True

    def test_user_policy_is_30_per_minute(self, limiter):
        results = [limiter.check_user("u1") for _ in range(31)]
        assert [r.allowed for r in results].count(True) == 30
        assert results[-1].allowed is False

    def test_order_policy_is_10_per_minute(self, limiter):
        results = [limiter.check_order("u1") for _ in range(11)]
        assert results[9].remaining == 0
        assert results[10].allowed is False

    def test_policies_use_separate_namespaces(self, limiter):
        for _ in range(10):
            limiter.check_order("u1")
        assert limiter.check_order("u1").allowed is False
        assert limiter.check_user("u1").allowed is True
        assert limiter.check(policies.SUPPORT, "u1").allowed is True

    def test_policy_key_format(self):
        assert policies.BINANCE_PUBLIC.key_for("1.2.3.4") == "binance:public:1.2.3.4"
        assert policies.BINANCE_USER.key_for("u1") == "binance:user:u1"
        assert policies.BINANCE_ORDER.key_for("u1") == "binance:order:u1"

    def test_account_policies(self):
        assert (policies.SIGNUP.max_requests, policies.SIGNUP.window_ms) == (10, 15 * 60 * 1000)
        assert (policies.FORGOT_PASSWORD.max_requests, policies.FORGOT_PASSWORD.window_ms) == (5, 15 * 60 * 1000)
        assert (policies.SUPPORT.max_requests, policies.SUPPORT.window_ms) == (3, 60 * 60 * 1000)
        names = [p.name for p in policies.ALL_POLICIES]
        assert len(names) == len(set(names))

    def test_window_resets_with_clock(self, limiter, clock):
        policy = RateLimitPolicy("test", 1, 1000)
        assert limiter.check(policy, "x").allowed
        assert limiter.check(policy, "x").allowed is False
        clock.advance(1001)
        assert limiter.check(policy, "x").allowed

    def test_application_limiter_can_be_replaced(self, limiter):
        set_rate_limiter(limiter)
        try:
            assert get_rate_limiter() is limiter
        finally:
            set_rate_limiter(None)
        assert get_rate_limiter() is not limiter


class TestRaiseIfLimited:
    def test_allowed_result_is_returned(self):
        result = RateLimitResult(True, 4, 1000)
        assert raise_if_limited(result) is result

    def test_rejected_result_raises_with_retry_after(self):
        with pytest.raises(RateLimitExceededError) as exc_info:
            raise_if_limited(RateLimitResult(False, 0, 5000, retry_after_ms=2500), "slow down")
        assert exc_info.value.retry_after_seconds == 3
        assert exc_info.value.reset_at == 5000
        assert exc_info.value.message == "slow down"
        assert exc_info.value.status_code == 429


class TestClientIp:
    def test_first_forwarded_for_entry(self):
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_real_ip_fallback(self):
        assert get_client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"

    def test_socket_peer_fallback(self):
        assert get_client_ip(_request()) == "10.0.0.9"

    def test_unknown_without_any_source(self):
        assert get_client_ip(_request(client=None)) == "unknown"

    def test_proxy_headers_ignored_when_untrusted(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_trust_forwarded_for", False)
        request = _request({"X-Forwarded-For": "203.0.113.7"})
        assert get_client_ip(request) == "10.0.0.9"
