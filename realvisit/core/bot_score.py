"""
Bot score — advisory 0–100 confidence that a visit is automated.

Weighted additive model, clamped at 100. This is observability metadata for
human review and exports; it does NOT decide the REAL/ZOMBIE/BOT verdict.
The classifier runs its own rule cascade over a smaller signal subset.
"""

from realvisit.core.signals import SignalBundle

MAX_SCORE = 100

# Strong signals
WEIGHT_WEBDRIVER = 40
WEIGHT_SUSPICIOUS_UA = 30

# Medium signals
WEIGHT_DATACENTER_IP = 25
WEIGHT_LINEAR_MOVEMENT = 20

# Weak signals (absence of human behavior)
WEIGHT_NO_POINTER = 15
WEIGHT_NO_SCROLL = 10
WEIGHT_NO_KEY_PRESS = 5

# Dwell time buckets: (upper bound ms, weight); only the first match fires
TIME_ON_PAGE_BUCKETS: tuple[tuple[int, int], ...] = (
    (1000, 15),
    (2000, 10),
    (3000, 5),
)


def calculate_bot_score(signals: SignalBundle) -> int:
    score = 0

    if signals.is_webdriver:
        score += WEIGHT_WEBDRIVER
    if signals.suspicious_ua:
        score += WEIGHT_SUSPICIOUS_UA

    if signals.datacenter_ip:
        score += WEIGHT_DATACENTER_IP
    if signals.linear_movement:
        score += WEIGHT_LINEAR_MOVEMENT

    if signals.no_pointer_activity:
        score += WEIGHT_NO_POINTER
    if not signals.has_scrolled:
        score += WEIGHT_NO_SCROLL
    if not signals.has_key_pressed:
        score += WEIGHT_NO_KEY_PRESS

    for upper_ms, weight in TIME_ON_PAGE_BUCKETS:
        if signals.time_on_page < upper_ms:
            score += weight
            break

    return min(score, MAX_SCORE)
