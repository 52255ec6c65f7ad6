from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DUE_WINDOW = dt.timedelta(seconds=60)
SNOOZE_MORNING = dt.time(9, 0)
DEFAULT_SNOOZE_MINUTES = 10

_THRESHOLDS = {
    "never": None,
    "24h": dt.timedelta(hours=24),
    "7d": dt.timedelta(days=7),
}


@dataclass(frozen=True)
class ReminderState:
    is_due: bool
    is_overdue: bool


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def zone_for(name: str | None) -> dt.tzinfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return dt.timezone.utc


def compute_state(reminder, now: dt.datetime) -> ReminderState:
    if reminder.remind_at is None:
        return ReminderState(is_due=False, is_overdue=False)
    remind_at = as_utc(reminder.remind_at)
    now = as_utc(now)
    is_overdue = remind_at <= now and reminder.status != "archived"
    is_due = is_overdue and (now - remind_at) < DUE_WINDOW
    return ReminderState(is_due=is_due, is_overdue=is_overdue)


def auto_archive_threshold(policy: str) -> dt.timedelta | None:
    return _THRESHOLDS.get(policy)


def auto_archive_threshold_ms(policy: str) -> int | None:
    threshold = auto_archive_threshold(policy)
    if threshold is None:
        return None
    return int(threshold.total_seconds() * 1000)


def should_auto_archive(reminder, policy: str, now: dt.datetime) -> bool:
    if reminder.status == "archived":
        return False
    if reminder.remind_at is None:
        return False
    threshold = auto_archive_threshold(policy)
    if threshold is None:
        return False
    return as_utc(now) >= as_utc(reminder.remind_at) + threshold


def snooze_target(
    now: dt.datetime,
    preset: str | None = None,
    minutes: int | None = None,
    timezone: str | None = None,
) -> dt.datetime:
    """New remind_at for a snooze, always measured from `now`."""
    now = as_utc(now)
    if preset == "10m":
        return now + dt.timedelta(minutes=10)
    if preset == "1h":
        return now + dt.timedelta(hours=1)
    if preset == "tomorrow":
        zone = zone_for(timezone)
        local_day = now.astimezone(zone).date() + dt.timedelta(days=1)
        target = dt.datetime.combine(local_day, SNOOZE_MORNING, tzinfo=zone)
        return target.astimezone(dt.timezone.utc)
    return now + dt.timedelta(minutes=minutes or DEFAULT_SNOOZE_MINUTES)
