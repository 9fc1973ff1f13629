"""
Traffic source categorization — server-side fallback for the tracker.

The storefront tracker usually sends sourceCategory itself. Older tracker
builds and hand-rolled integrations don't, so we derive it here with the
same rules:
  1. utm_source + utm_medium present → category from the medium
  2. otherwise the referrer host (search, social, email, else referral)
  3. nothing at all → Direct
"""

import re
from urllib.parse import urlparse

DIRECT = "Direct"
PAID_SEARCH = "Paid Search"
PAID_SOCIAL = "Paid Social"
EMAIL = "Email"
ORGANIC_SEARCH = "Organic Search"
ORGANIC_SOCIAL = "Organic Social"
REFERRAL = "Referral"

MEDIUM_TO_CATEGORY = {
    "cpc":          PAID_SEARCH,
    "ppc":          PAID_SEARCH,
    "paid":         PAID_SEARCH,
    "paidsearch":   PAID_SEARCH,
    "paid_social":  PAID_SOCIAL,
    "paidsocial":   PAID_SOCIAL,
    "paid-social":  PAID_SOCIAL,
    "email":        EMAIL,
    "organic":      ORGANIC_SEARCH,
    "social":       ORGANIC_SOCIAL,
    "referral":     REFERRAL,
}

# Checked in order against the referrer hostname
REFERRER_HOST_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(p, re.IGNORECASE), category) for p, category in [
        # Search engines
        (r"google\.", ORGANIC_SEARCH),
        (r"bing\.", ORGANIC_SEARCH),
        (r"yahoo\.", ORGANIC_SEARCH),
        (r"duckduckgo", ORGANIC_SEARCH),
        # Social
        (r"facebook|fb\.com", ORGANIC_SOCIAL),
        (r"instagram", ORGANIC_SOCIAL),
        (r"twitter|x\.com", ORGANIC_SOCIAL),
        (r"tiktok", ORGANIC_SOCIAL),
        (r"pinterest", ORGANIC_SOCIAL),
        (r"linkedin", ORGANIC_SOCIAL),
        # Email
        (r"mail|outlook|klaviyo", EMAIL),
    ]
]


def _referrer_host(referrer: str) -> str | None:
    try:
        host = urlparse(referrer).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def categorize_referrer(referrer: str) -> str:
    host = _referrer_host(referrer)
    if not host:
        return REFERRAL

    for pattern, category in REFERRER_HOST_PATTERNS:
        if pattern.search(host):
            return category
    return REFERRAL


def categorize_source(
    source: str | None,
    medium: str | None,
    referrer: str | None,
) -> str:
    if source and medium:
        # An unrecognized medium stays Direct, same as the tracker
        return MEDIUM_TO_CATEGORY.get(medium.strip().lower(), DIRECT)

    if referrer:
        return categorize_referrer(referrer)

    return DIRECT


def source_from_referrer(referrer: str | None) -> str:
    """'google' from 'https://www.google.com/...'; 'direct' when empty."""
    if not referrer:
        return "direct"

    host = _referrer_host(referrer)
    if not host:
        return "unknown"
    return host.removeprefix("www.").split(".")[0]
