"""
Geo lookup for visit enrichment (country / region / city / timezone).

Calls an ip-api.com compatible JSON endpoint. Free tier is rate limited
(45 req/min), so successful answers are cached in-process for an hour.
Any failure returns an empty GeoData — geo is nice-to-have and must never
fail a tracking request.
"""

import re
import time
from dataclasses import dataclass

import httpx
import structlog

from realvisit.config import get_settings

logger = structlog.get_logger()

GEO_FIELDS = "status,country,countryCode,regionName,city,timezone"

PRIVATE_IP_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE) for p in [
        r"^10\.",
        r"^172\.(1[6-9]|2[0-9]|3[0-1])\.",
        r"^192\.168\.",
        r"^127\.",
        r"^localhost$",
        r"^::1$",
        r"^fc00:",
        r"^fe80:",
    ]
]


@dataclass(frozen=True)
class GeoData:
    country: str | None = None
    country_code: str | None = None
    region: str | None = None
    city: str | None = None
    timezone: str | None = None


EMPTY_GEO = GeoData()

_geo_cache: dict[str, tuple[GeoData, float]] = {}


def is_private_ip(ip: str) -> bool:
    return any(p.search(ip) for p in PRIVATE_IP_PATTERNS)


def _cache_get(ip: str, ttl: int) -> GeoData | None:
    entry = _geo_cache.get(ip)
    if entry and time.time() - entry[1] < ttl:
        return entry[0]
    return None


def _cache_put(ip: str, data: GeoData, ttl: int) -> None:
    now = time.time()
    _geo_cache[ip] = (data, now)

    # Periodic cleanup
    if len(_geo_cache) > 10000:
        expired = [k for k, (_, ts) in _geo_cache.items() if now - ts >= ttl]
        for k in expired:
            del _geo_cache[k]


def clear_geo_cache() -> None:
    _geo_cache.clear()


async def lookup_geo(ip: str | None, client: httpx.AsyncClient | None = None) -> GeoData:
    settings = get_settings()
    if not ip or not settings.geo_lookup_enabled or is_private_ip(ip):
        return EMPTY_GEO

    cached = _cache_get(ip, settings.geo_cache_ttl_seconds)
    if cached is not None:
        return cached

    url = settings.geo_lookup_url.format(ip=ip)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.geo_lookup_timeout_seconds) as c:
                resp = await c.get(url, params={"fields": GEO_FIELDS})
        else:
            resp = await client.get(
                url,
                params={"fields": GEO_FIELDS},
                timeout=settings.geo_lookup_timeout_seconds,
            )
        resp.raise_for_status()
        body = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("geo_lookup_failed", ip=ip, error=str(e))
        return EMPTY_GEO

    if not isinstance(body, dict) or body.get("status") != "success":
        logger.debug("geo_lookup_no_result", ip=ip)
        return EMPTY_GEO

    data = GeoData(
        country=body.get("country") or None,
        country_code=body.get("countryCode") or None,
        region=body.get("regionName") or None,
        city=body.get("city") or None,
        timezone=body.get("timezone") or None,
    )
    _cache_put(ip, data, settings.geo_cache_ttl_seconds)
    return data
