# gatepass/services/aggregator_service.py
"""
Dashboard counters derived from raw pass records.

Nothing is cached: every read rescans the records it is given, so the
numbers are "as of last refresh". Expired passes are filtered out of the
forward-looking counters here but never transitioned; their lifecycle
history stays as recorded.
"""

from datetime import datetime
from typing import Iterable, Optional

from gatepass.config import settings
from gatepass.schemas.counters import OperationalCounters
from gatepass.schemas.gate_pass import PassIntent, PassStatus, TERMINAL_STATUSES
from gatepass.services.validity_service import is_expired, same_calendar_day


def visitors_inside(passes: Iterable) -> int:
    return sum(1 for p in passes if p.intent == PassIntent.VISITOR and p.status == PassStatus.INSIDE)


def vehicles_out(passes: Iterable) -> int:
    return sum(1 for p in passes if p.intent == PassIntent.VEHICLE_OUTBOUND and p.status == PassStatus.OUT)


def expected_today(passes: Iterable, now: datetime) -> int:
    return sum(
        1 for p in passes
        if p.intent == PassIntent.VISITOR
        and p.status == PassStatus.PENDING
        and same_calendar_day(p.valid_from, now)
        and not is_expired(p, now)
    )


def expiring_soon(passes: Iterable, now: datetime, hours: Optional[float] = None) -> int:
    """Open passes whose window closes within the reminder horizon."""
    horizon = (settings.EXPIRY_REMINDER_HOURS if hours is None else hours) * 3600
    return sum(
        1 for p in passes
        if p.status not in TERMINAL_STATUSES
        and 0 <= (p.valid_to - now).total_seconds() <= horizon
    )


def expired_unresolved(passes: Iterable, now: datetime) -> int:
    """Passes past valid_to that never reached a terminal state (no-shows, overstays)."""
    return sum(1 for p in passes if p.status not in TERMINAL_STATUSES and is_expired(p, now))


def total_today(passes: Iterable, now: datetime) -> int:
    return sum(1 for p in passes if same_calendar_day(p.created_at, now))


def pending_approvals(requests: Iterable) -> int:
    return sum(1 for r in requests if r.is_open)


def snapshot_counters(passes: Iterable, now: datetime, requests: Iterable = ()) -> OperationalCounters:
    passes = list(passes)
    return OperationalCounters(
        as_of=now,
        visitors_inside=visitors_inside(passes),
        vehicles_out=vehicles_out(passes),
        expected_today=expected_today(passes, now),
        expiring_soon=expiring_soon(passes, now),
        expired_unresolved=expired_unresolved(passes, now),
        total_today=total_today(passes, now),
        pending_approvals=pending_approvals(requests),
    )
