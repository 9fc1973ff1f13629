"""
User-Agent checks — server-side half of the suspicious_ua signal.

The storefront tracker already flags obvious bot UAs in the browser. We
re-check the raw UA string here because a script can post whatever flags it
likes: anything the tracker pattern, the HTTP-library blocklist or the
user-agents parser calls a bot is suspicious.
"""

import re

from user_agents import parse as parse_ua

# Same pattern the tracker evaluates against navigator.userAgent
TRACKER_SUSPICIOUS_UA = re.compile(r"bot|crawler|spider|headless|phantom|selenium", re.IGNORECASE)

# HTTP libraries and automation drivers (never a shopper's browser)
AUTOMATION_UA_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE) for p in [
        r"curl/",
        r"wget/",
        r"python-requests",
        r"python-urllib",
        r"Go-http-client",
        r"scrapy",
        r"aiohttp",
        r"node-fetch",
        r"axios/",
        r"java/",
        r"libwww-perl",
        r"HeadlessChrome",
        r"PhantomJS",
        r"Selenium",
        r"puppeteer",
        r"playwright",
    ]
]


def is_suspicious_user_agent(user_agent: str | None) -> bool:
    if not user_agent:
        return False

    if TRACKER_SUSPICIOUS_UA.search(user_agent):
        return True

    for pattern in AUTOMATION_UA_PATTERNS:
        if pattern.search(user_agent):
            return True

    return parse_ua(user_agent).is_bot


def device_type_from_ua(user_agent: str | None) -> str | None:
    """mobile / tablet / desktop, or None when there's no UA to parse."""
    if not user_agent:
        return None

    parsed = parse_ua(user_agent)
    if parsed.is_tablet:
        return "tablet"
    if parsed.is_mobile:
        return "mobile"
    return "desktop"
