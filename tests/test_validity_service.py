"""Unit tests for validity windows and expiry messages."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from types import SimpleNamespace
from datetime import datetime, timedelta, timezone
from gatepass.services.validity_service import (
    align_tz, default_window, expiry_status, is_expired, is_not_yet_valid,
    same_calendar_day, window_from_duration,
)

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def closing_at(valid_to, valid_from=None):
    return SimpleNamespace(valid_from=valid_from or NOW - timedelta(hours=1), valid_to=valid_to)


class TestDefaultWindow:
    def test_default_hours_per_intent(self):
        assert default_window("visitor", NOW).valid_to == NOW + timedelta(hours=4)
        assert default_window("vehicle_outbound", NOW).valid_to == NOW + timedelta(hours=24)
        assert default_window("vehicle_inbound", NOW).valid_to == NOW + timedelta(hours=2)

    def test_window_opens_now(self):
        assert default_window("visitor", NOW).valid_from == NOW

    def test_hours_table_override(self):
        window = default_window("visitor", NOW, hours={"visitor": 1})
        assert window.valid_to == NOW + timedelta(hours=1)

    def test_duration_is_clamped_to_one_minute(self):
        window = window_from_duration(NOW, 0)
        assert window.valid_to == NOW + timedelta(minutes=1)
        assert window.valid_to > window.valid_from


class TestExpiry:
    def test_expired_only_after_valid_to(self):
        p = closing_at(NOW)
        assert not is_expired(p, NOW)
        assert is_expired(p, NOW + timedelta(seconds=1))

    def test_not_yet_valid(self):
        p = closing_at(NOW + timedelta(hours=4), valid_from=NOW + timedelta(hours=1))
        assert is_not_yet_valid(p, NOW)
        assert not is_not_yet_valid(p, NOW + timedelta(hours=1))

    def test_expired_message_in_hours(self):
        status = expiry_status(closing_at(NOW - timedelta(hours=3)), NOW)
        assert status.is_expired
        assert status.severity == "expired"
        assert status.message == "Expired 3 hours ago"

    def test_expired_message_in_days(self):
        status = expiry_status(closing_at(NOW - timedelta(days=2, hours=1)), NOW)
        assert status.message == "Expired 2 days ago"

    def test_critical_in_minutes(self):
        status = expiry_status(closing_at(NOW + timedelta(minutes=30)), NOW)
        assert status.severity == "critical"
        assert status.is_expiring_soon
        assert status.message == "Expires in 30 minutes"

    def test_critical_at_exactly_one_hour(self):
        status = expiry_status(closing_at(NOW + timedelta(hours=1)), NOW)
        assert status.severity == "critical"
        assert status.message == "Expires in 1 hour"

    def test_warning_inside_reminder_horizon(self):
        status = expiry_status(closing_at(NOW + timedelta(hours=5)), NOW)
        assert status.severity == "warning"
        assert status.message == "Expires in 5 hours"

    def test_far_expiry_has_no_severity(self):
        status = expiry_status(closing_at(NOW + timedelta(days=3)), NOW)
        assert status.severity == "none"
        assert not status.is_expiring_soon
        assert status.message == "Expires on 2026-03-13"

    def test_thresholds_can_be_overridden(self):
        status = expiry_status(closing_at(NOW + timedelta(hours=5)), NOW, reminder_hours=2, critical_hours=1)
        assert status.severity == "none"


class TestCalendarHelpers:
    def test_same_day_in_reference_timezone(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        late_utc = datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)   # 11 March in IST
        now_ist = datetime(2026, 3, 11, 8, 0, tzinfo=ist)
        assert same_calendar_day(late_utc, now_ist)
        assert not same_calendar_day(late_utc - timedelta(hours=12), now_ist)

    def test_align_tz_only_touches_naive_values(self):
        naive = datetime(2026, 3, 10, 12, 0)
        assert align_tz(naive, NOW).tzinfo == timezone.utc
        assert align_tz(None, NOW) is None
        assert align_tz(naive, NOW.replace(tzinfo=None)).tzinfo is None
