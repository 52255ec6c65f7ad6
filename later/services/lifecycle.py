"""Reminder state transitions.

Shared by both storage backends (ORM rows and pydantic records alike).
archive_reason and archived_at are set only while archived, completed_at
only for reason "completed".
"""
from __future__ import annotations

import datetime as dt

from later.services.time_state import auto_archive_threshold


def archive(target, reason: str, now: dt.datetime) -> None:
    target.status = "archived"
    target.archive_reason = reason
    target.archived_at = now
    target.completed_at = now if reason == "completed" else None
    target.updated_at = now


def reopen(target, now: dt.datetime) -> None:
    target.status = "upcoming"
    target.archive_reason = None
    target.archived_at = None
    target.completed_at = None
    target.updated_at = now


def auto_archive_cutoff(policy: str, now: dt.datetime) -> dt.datetime | None:
    """Reminders scheduled at or before the cutoff are due for auto-archive."""
    threshold = auto_archive_threshold(policy)
    if threshold is None:
        return None
    return now - threshold
