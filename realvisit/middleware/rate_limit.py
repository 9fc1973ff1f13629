"""
Rate limiter — in-memory sliding window per client IP.

The tracker beacons every 30s plus on exit events, so a real shopper sends
a handful of requests a minute. Anything far above that is a script
hammering the endpoint; it gets a 429 instead of a visit row.
"""

import ipaddress
import time
from fastapi import HTTPException, Request
from realvisit.config import get_settings

import structlog

logger = structlog.get_logger()

_memory_store: dict[str, list[float]] = {}

# Idle keys are swept once the store grows past this
SWEEP_THRESHOLD = 10000

# Proxy headers checked in order; the first one present wins
CLIENT_IP_HEADERS = (
    "x-forwarded-for",         # may be a chain: client, proxy1, proxy2
    "cf-connecting-ip",        # Cloudflare
    "x-real-ip",               # nginx
    "x-vercel-forwarded-for",  # Vercel
)


def _sliding_window_check(key: str, limit: int, window_seconds: int = 60) -> tuple[bool, int]:
    now = time.time()
    cutoff = now - window_seconds

    if len(_memory_store) > SWEEP_THRESHOLD:
        _sweep_idle_keys(cutoff)

    if key not in _memory_store:
        _memory_store[key] = []

    _memory_store[key] = [t for t in _memory_store[key] if t > cutoff]
    current_count = len(_memory_store[key])

    if current_count >= limit:
        return False, 0

    _memory_store[key].append(now)
    return True, limit - current_count - 1


def _sweep_idle_keys(cutoff: float) -> None:
    idle = [k for k, stamps in _memory_store.items() if not stamps or stamps[-1] <= cutoff]
    for k in idle:
        del _memory_store[k]
    if idle:
        logger.debug("rate_limit_swept", keys=len(idle), remaining=len(_memory_store))


def check_rate_limit(key: str, limit: int, window: int = 60):
    allowed, remaining = _sliding_window_check(key, limit, window)
    if not allowed:
        logger.info("rate_limited", key=key, limit=limit)
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded. Slow down.",
            headers={
                "Retry-After": str(window),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
        )
    return remaining


def reset_rate_limits() -> None:
    _memory_store.clear()


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_client_ip(request: Request) -> str | None:
    """
    Client IP from proxy headers, falling back to the socket peer.

    Assumes a trusted proxy in front that overwrites these headers. Exposed
    directly, a client can claim any address and dodge both the per-IP
    limit and the datacenter check. Values that aren't an IP are ignored.
    """
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if _is_ip(first):
                return first
    return request.client.host if request.client else None


def rate_limit_ip(request: Request, limit: int | None = None):
    settings = get_settings()
    ip = get_client_ip(request) or "unknown"
    return check_rate_limit(
        f"ip:{ip}",
        limit or settings.rate_limit_per_ip_per_minute,
    )
