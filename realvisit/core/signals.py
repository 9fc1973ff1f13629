"""
Signal bundle — the fully-populated input to scoring and classification.

Tracker payloads arrive with any subset of fields missing or null. All of
the "missing data" policy lives here, at the boundary: absent flags are
False, absent counters are 0, and the two server-derived signals
(datacenter IP, linear movement re-check) are merged in. The classifier and
the score calculator only ever see a complete SignalBundle.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from realvisit.core.linear_movement import MouseSample, MouseTrail
from realvisit.core.user_agent import is_suspicious_user_agent

# Counters land in int4 columns
INT4_MAX = 2**31 - 1


@dataclass(frozen=True)
class SignalBundle:
    time_on_page: int          # ms, capped at INT4_MAX
    scroll_depth: int          # 0–100
    has_mouse_moved: bool
    has_scrolled: bool
    has_key_pressed: bool
    has_touched: bool
    is_webdriver: bool
    suspicious_ua: bool
    linear_movement: bool
    datacenter_ip: bool

    @property
    def no_pointer_activity(self) -> bool:
        return not self.has_mouse_moved and not self.has_touched

    @property
    def no_interaction(self) -> bool:
        return self.no_pointer_activity and not self.has_scrolled and not self.has_key_pressed


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    return bool(raw.get(key) or False)


def _count(raw: Mapping[str, Any], key: str, upper: int | None = None) -> int:
    value = raw.get(key)
    if value is None:
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(max(number, 0), INT4_MAX if upper is None else upper)


def build_signal_bundle(
    raw: Mapping[str, Any],
    user_agent: str | None = None,
    mouse_samples: Sequence[MouseSample] | None = None,
    datacenter_ip: bool = False,
) -> SignalBundle:
    """
    Normalize a tracker payload (snake_case keys) into a SignalBundle.

    suspicious_ua and linear_movement are OR-ed with our own server-side
    checks; datacenter_ip comes from the caller's IP lookup.
    """
    suspicious_ua = _flag(raw, "suspicious_ua") or is_suspicious_user_agent(user_agent)

    linear_movement = _flag(raw, "linear_movement")
    if not linear_movement and mouse_samples:
        linear_movement = MouseTrail(mouse_samples).is_linear()

    return SignalBundle(
        time_on_page=_count(raw, "time_on_page"),
        scroll_depth=_count(raw, "scroll_depth", upper=100),
        has_mouse_moved=_flag(raw, "has_mouse_moved"),
        has_scrolled=_flag(raw, "has_scrolled"),
        has_key_pressed=_flag(raw, "has_key_pressed"),
        has_touched=_flag(raw, "has_touched"),
        is_webdriver=_flag(raw, "is_webdriver"),
        suspicious_ua=suspicious_ua,
        linear_movement=linear_movement,
        datacenter_ip=datacenter_ip,
    )
