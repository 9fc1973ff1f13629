"""Tests for tracker payload normalization into a SignalBundle."""

from dataclasses import replace

import pytest
from realvisit.core.linear_movement import MouseSample
from realvisit.core.signals import INT4_MAX, SignalBundle, build_signal_bundle

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ALL_OFF = SignalBundle(
    time_on_page=0,
    scroll_depth=0,
    has_mouse_moved=False,
    has_scrolled=False,
    has_key_pressed=False,
    has_touched=False,
    is_webdriver=False,
    suspicious_ua=False,
    linear_movement=False,
    datacenter_ip=False,
)


def _line(n: int) -> list[MouseSample]:
    return [MouseSample(x=i * 4, y=i * 2, t=i * 16) for i in range(n)]


class TestDefaults:
    def test_empty_payload_is_all_false(self):
        assert build_signal_bundle({}) == ALL_OFF

    def test_bundle_has_no_defaults(self):
        # Defaulting happens in build_signal_bundle only
        with pytest.raises(TypeError):
            SignalBundle()
        with pytest.raises(TypeError):
            SignalBundle(time_on_page=1000, has_scrolled=True)

    def test_nulls_treated_as_missing(self):
        raw = {
            "time_on_page": None,
            "scroll_depth": None,
            "has_mouse_moved": None,
            "is_webdriver": None,
            "suspicious_ua": None,
        }
        assert build_signal_bundle(raw) == ALL_OFF

    def test_flags_pass_through(self):
        raw = {
            "time_on_page": 12000,
            "scroll_depth": 55,
            "has_mouse_moved": True,
            "has_scrolled": True,
            "has_key_pressed": True,
            "has_touched": False,
            "is_webdriver": True,
        }
        signals = build_signal_bundle(raw)
        assert signals.time_on_page == 12000
        assert signals.scroll_depth == 55
        assert signals.has_mouse_moved is True
        assert signals.has_key_pressed is True
        assert signals.is_webdriver is True
        assert signals.has_touched is False


class TestClamping:
    def test_scroll_depth_capped_at_100(self):
        assert build_signal_bundle({"scroll_depth": 140}).scroll_depth == 100

    def test_negative_counters_floor_at_zero(self):
        signals = build_signal_bundle({"time_on_page": -50, "scroll_depth": -1})
        assert signals.time_on_page == 0
        assert signals.scroll_depth == 0

    def test_counters_capped_at_int4(self):
        # A tab left open for weeks overflows a 32-bit millisecond counter
        signals = build_signal_bundle({"time_on_page": 3_000_000_000})
        assert signals.time_on_page == INT4_MAX

    def test_garbage_counter_is_zero(self):
        assert build_signal_bundle({"time_on_page": "soon"}).time_on_page == 0


class TestServerSideSignals:
    def test_server_ua_check_ors_in(self):
        signals = build_signal_bundle({"suspicious_ua": False}, user_agent="python-requests/2.31")
        assert signals.suspicious_ua is True

    def test_client_flag_kept_for_clean_ua(self):
        signals = build_signal_bundle({"suspicious_ua": True}, user_agent=BROWSER_UA)
        assert signals.suspicious_ua is True

    def test_clean_ua_clean_flag(self):
        assert build_signal_bundle({}, user_agent=BROWSER_UA).suspicious_ua is False

    def test_collinear_samples_set_linear_movement(self):
        signals = build_signal_bundle({"linear_movement": False}, mouse_samples=_line(20))
        assert signals.linear_movement is True

    def test_too_few_samples_leave_flag_alone(self):
        assert build_signal_bundle({}, mouse_samples=_line(5)).linear_movement is False
        assert build_signal_bundle({"linear_movement": True}, mouse_samples=_line(5)).linear_movement is True

    def test_datacenter_from_caller(self):
        assert build_signal_bundle({}, datacenter_ip=True).datacenter_ip is True
        assert build_signal_bundle({"datacenter_ip": True}).datacenter_ip is False


class TestDerivedProperties:
    def test_no_pointer_activity(self):
        assert ALL_OFF.no_pointer_activity is True
        assert replace(ALL_OFF, has_touched=True).no_pointer_activity is False
        assert replace(ALL_OFF, has_mouse_moved=True).no_pointer_activity is False

    def test_no_interaction(self):
        assert ALL_OFF.no_interaction is True
        assert replace(ALL_OFF, has_scrolled=True).no_interaction is False
        assert replace(ALL_OFF, has_key_pressed=True).no_interaction is False
