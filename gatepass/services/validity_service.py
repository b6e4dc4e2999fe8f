# gatepass/services/validity_service.py
"""
Validity windows and expiry rules, shared by the state machine, the approval
router and the dashboard counters. Every function here is pure.

Default window: valid_from = now, valid_to = now + hours for the intent.
A pass is expired once now > valid_to, whatever its lifecycle status.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Mapping, Optional

from gatepass.config import settings
from gatepass.schemas.gate_pass import PassIntent


@dataclass(frozen=True)
class ValidityWindow:
    valid_from: datetime
    valid_to: datetime


@dataclass(frozen=True)
class ExpiryStatus:
    is_expired: bool
    is_expiring_soon: bool
    hours_until_expiry: float
    severity: str            # none | warning | critical | expired
    message: str


def default_window(intent, now: datetime, hours: Optional[Mapping[str, int]] = None) -> ValidityWindow:
    table = hours or settings.VALIDITY_HOURS
    key = PassIntent(intent).value
    return ValidityWindow(valid_from=now, valid_to=now + timedelta(hours=table[key]))


def window_from_duration(now: datetime, minutes: int) -> ValidityWindow:
    """Custom duration override. Clamped to one minute so valid_to > valid_from."""
    return ValidityWindow(valid_from=now, valid_to=now + timedelta(minutes=max(1, int(minutes))))


def is_expired(gate_pass, now: datetime) -> bool:
    return now > gate_pass.valid_to


def is_not_yet_valid(gate_pass, now: datetime) -> bool:
    return now < gate_pass.valid_from


def same_calendar_day(moment: datetime, now: datetime) -> bool:
    if moment.tzinfo is not None and now.tzinfo is not None:
        moment = moment.astimezone(now.tzinfo)
    return moment.date() == now.date()


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def expiry_status(gate_pass, now: datetime,
                  reminder_hours: Optional[float] = None,
                  critical_hours: Optional[float] = None) -> ExpiryStatus:
    """Severity and operator-facing message for how close a pass is to expiry."""
    reminder = settings.EXPIRY_REMINDER_HOURS if reminder_hours is None else reminder_hours
    critical = settings.EXPIRY_CRITICAL_HOURS if critical_hours is None else critical_hours

    hours_left = (gate_pass.valid_to - now).total_seconds() / 3600
    expired = hours_left < 0
    expiring_soon = not expired and hours_left <= reminder

    if expired:
        hours_ago = int(abs(hours_left))
        if hours_ago < 24:
            message = f"Expired {_plural(hours_ago, 'hour')} ago"
        else:
            message = f"Expired {_plural(hours_ago // 24, 'day')} ago"
        severity = "expired"
    elif hours_left <= critical:
        minutes = int(hours_left * 60)
        if minutes <= 0:
            message = "Expiring very soon"
        elif minutes < 60:
            message = f"Expires in {_plural(minutes, 'minute')}"
        else:
            message = f"Expires in {_plural(int(hours_left), 'hour')}"
        severity = "critical"
    elif expiring_soon:
        days_left = hours_left / 24
        if days_left < 1:
            message = f"Expires in {_plural(int(hours_left), 'hour')}"
        else:
            message = f"Expires in {_plural(int(days_left), 'day')}"
        severity = "warning"
    else:
        message = f"Expires on {gate_pass.valid_to.date().isoformat()}"
        severity = "none"

    return ExpiryStatus(
        is_expired=expired,
        is_expiring_soon=expiring_soon,
        hours_until_expiry=hours_left,
        severity=severity,
        message=message,
    )


def align_tz(moment: Optional[datetime], now: datetime) -> Optional[datetime]:
    """Give a naive timestamp the timezone of an aware `now`, so the two compare."""
    if moment is None or moment.tzinfo is not None or now.tzinfo is None:
        return moment
    return moment.replace(tzinfo=now.tzinfo)
