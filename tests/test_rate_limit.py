"""Tests for client IP extraction and the per-IP rate limiter."""

from types import SimpleNamespace

import pytest
from fastapi import HTTPException, Request
from realvisit.middleware import rate_limit
from realvisit.middleware.rate_limit import check_rate_limit, get_client_ip, rate_limit_ip


def _request(headers: dict[str, str] | None = None, client=("10.9.8.7", 51000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/track",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestGetClientIP:
    def test_forwarded_for_first_hop(self):
        req = _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1, 10.0.0.2"})
        assert get_client_ip(req) == "203.0.113.5"

    def test_forwarded_for_beats_other_headers(self):
        req = _request({
            "X-Forwarded-For": "203.0.113.5",
            "CF-Connecting-IP": "198.51.100.1",
            "X-Real-IP": "198.51.100.2",
        })
        assert get_client_ip(req) == "203.0.113.5"

    @pytest.mark.parametrize("header", ["CF-Connecting-IP", "X-Real-IP", "X-Vercel-Forwarded-For"])
    def test_fallback_headers(self, header):
        assert get_client_ip(_request({header: "198.51.100.9"})) == "198.51.100.9"

    @pytest.mark.parametrize("bogus", ["y" * 120, "unknown", "not-an-ip, 203.0.113.5"])
    def test_malformed_header_ignored(self, bogus):
        req = _request({"X-Forwarded-For": bogus, "X-Real-IP": "198.51.100.2"})
        assert get_client_ip(req) == "198.51.100.2"

    def test_ipv6_accepted(self):
        assert get_client_ip(_request({"X-Forwarded-For": "2001:db8::1"})) == "2001:db8::1"

    def test_socket_peer_when_no_headers(self):
        assert get_client_ip(_request()) == "10.9.8.7"

    def test_none_without_any_source(self):
        assert get_client_ip(_request(client=None)) is None


class TestRateLimit:
    def test_allows_up_to_limit(self):
        remaining = [check_rate_limit("ip:test", limit=3) for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_429_over_limit(self):
        for _ in range(3):
            check_rate_limit("ip:test", limit=3)
        with pytest.raises(HTTPException) as exc:
            check_rate_limit("ip:test", limit=3)
        assert exc.value.status_code == 429
        assert exc.value.headers["Retry-After"] == "60"

    def test_keys_are_independent(self):
        for _ in range(2):
            rate_limit_ip(_request({"X-Forwarded-For": "203.0.113.5"}), limit=2)
        # Different client, fresh window
        rate_limit_ip(_request({"X-Forwarded-For": "203.0.113.6"}), limit=2)
        with pytest.raises(HTTPException):
            rate_limit_ip(_request({"X-Forwarded-For": "203.0.113.5"}), limit=2)

    def test_idle_keys_swept(self, monkeypatch):
        clock = [1_000_000.0]
        monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))
        monkeypatch.setattr(rate_limit, "SWEEP_THRESHOLD", 100)

        for i in range(500):
            check_rate_limit(f"ip:198.51.100.{i}", limit=5)
        # All still inside their window, nothing to sweep yet
        assert len(rate_limit._memory_store) == 500

        # An hour later every one of those windows has expired
        clock[0] += 3600
        check_rate_limit("ip:203.0.113.5", limit=5)
        assert list(rate_limit._memory_store) == ["ip:203.0.113.5"]

    def test_active_keys_survive_sweep(self, monkeypatch):
        clock = [1_000_000.0]
        monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))
        monkeypatch.setattr(rate_limit, "SWEEP_THRESHOLD", 10)

        for i in range(20):
            check_rate_limit(f"ip:idle-{i}", limit=5)
        clock[0] += 120
        check_rate_limit("ip:busy", limit=2)
        check_rate_limit("ip:busy", limit=2)

        with pytest.raises(HTTPException):
            check_rate_limit("ip:busy", limit=2)
        assert "ip:busy" in rate_limit._memory_store
        assert not any(k.startswith("ip:idle") for k in rate_limit._memory_store)
