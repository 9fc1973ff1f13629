"""Tests for geo lookup enrichment."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from realvisit.config import Settings
from realvisit.core.geo import EMPTY_GEO, GeoData, is_private_ip, lookup_geo

IP_API_SUCCESS = {
    "status": "success",
    "country": "Germany",
    "countryCode": "DE",
    "regionName": "Berlin",
    "city": "Berlin",
    "timezone": "Europe/Berlin",
}


def _client(body=None, exc=None) -> MagicMock:
    client = MagicMock()
    if exc is not None:
        client.get = AsyncMock(side_effect=exc)
    else:
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json = MagicMock(return_value=body)
        client.get = AsyncMock(return_value=resp)
    return client


@pytest.fixture
def geo_enabled(monkeypatch):
    settings = Settings(geo_lookup_enabled=True)
    monkeypatch.setattr("realvisit.core.geo.get_settings", lambda: settings)
    return settings


class TestPrivateIP:
    @pytest.mark.parametrize("ip", ["10.0.0.1", "172.16.4.4", "172.31.255.1", "192.168.1.1", "127.0.0.1", "::1"])
    def test_private(self, ip):
        assert is_private_ip(ip) is True

    @pytest.mark.parametrize("ip", ["8.8.8.8", "172.32.0.1", "73.15.2.9"])
    def test_public(self, ip):
        assert is_private_ip(ip) is False


class TestLookupGeo:
    def test_success_maps_fields(self, geo_enabled):
        client = _client(IP_API_SUCCESS)
        geo = asyncio.run(lookup_geo("88.99.10.10", client=client))
        assert geo == GeoData(
            country="Germany",
            country_code="DE",
            region="Berlin",
            city="Berlin",
            timezone="Europe/Berlin",
        )
        url = client.get.call_args[0][0]
        assert url == "http://ip-api.com/json/88.99.10.10"

    def test_result_is_cached(self, geo_enabled):
        client = _client(IP_API_SUCCESS)
        asyncio.run(lookup_geo("88.99.10.10", client=client))
        asyncio.run(lookup_geo("88.99.10.10", client=client))
        assert client.get.await_count == 1

    def test_failed_status_returns_empty(self, geo_enabled):
        client = _client({"status": "fail", "message": "reserved range"})
        assert asyncio.run(lookup_geo("88.99.10.10", client=client)) == EMPTY_GEO

    def test_failure_not_cached(self, geo_enabled):
        client = _client({"status": "fail"})
        asyncio.run(lookup_geo("88.99.10.10", client=client))
        asyncio.run(lookup_geo("88.99.10.10", client=client))
        assert client.get.await_count == 2

    def test_http_error_returns_empty(self, geo_enabled):
        client = _client(exc=httpx.ConnectError("connection refused"))
        assert asyncio.run(lookup_geo("88.99.10.10", client=client)) == EMPTY_GEO

    def test_non_json_body_returns_empty(self, geo_enabled):
        client = _client(["unexpected"])
        assert asyncio.run(lookup_geo("88.99.10.10", client=client)) == EMPTY_GEO

    @pytest.mark.parametrize("ip", [None, "", "192.168.0.10"])
    def test_skips_missing_and_private(self, geo_enabled, ip):
        client = _client(IP_API_SUCCESS)
        assert asyncio.run(lookup_geo(ip, client=client)) == EMPTY_GEO
        client.get.assert_not_called()

    def test_disabled_by_config(self):
        # conftest sets RV_GEO_LOOKUP_ENABLED=false
        client = _client(IP_API_SUCCESS)
        assert asyncio.run(lookup_geo("88.99.10.10", client=client)) == EMPTY_GEO
        client.get.assert_not_called()
