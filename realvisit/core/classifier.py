"""
Visitor classification — REAL / ZOMBIE / BOT.

Rule cascade, first match wins:
  1. 2+ bot signals                       → BOT
  2. under 5 seconds on page              → ZOMBIE
  3. no scroll, pointer, touch or key     → ZOMBIE
  4. otherwise                            → REAL

Bot signals: webdriver, suspicious UA, no pointer activity (mouse or touch),
linear mouse movement, datacenter IP. Callers without IP data leave
datacenter_ip False.

Stateless: every tracker update re-derives the verdict from scratch, so a
visit can move ZOMBIE → REAL once it crosses the dwell threshold. There's
no timeout promotion; an abandoned 3-second visit stays ZOMBIE.
"""

from enum import Enum

from realvisit.core.signals import SignalBundle

MIN_TIME_FOR_REAL_MS = 5000
BOT_SIGNAL_THRESHOLD = 2


class VisitorType(str, Enum):
    PENDING = "PENDING"    # stored default, never returned by classify_visitor
    REAL = "REAL"
    ZOMBIE = "ZOMBIE"
    BOT = "BOT"


def count_bot_signals(signals: SignalBundle) -> int:
    return sum((
        signals.is_webdriver,
        signals.suspicious_ua,
        signals.no_pointer_activity,
        signals.linear_movement,
        signals.datacenter_ip,
    ))


def classify_visitor(signals: SignalBundle) -> VisitorType:
    if count_bot_signals(signals) >= BOT_SIGNAL_THRESHOLD:
        return VisitorType.BOT

    if signals.time_on_page < MIN_TIME_FOR_REAL_MS:
        return VisitorType.ZOMBIE

    if signals.no_interaction:
        return VisitorType.ZOMBIE

    return VisitorType.REAL
