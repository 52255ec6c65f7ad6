"""Sweep every profile's auto-archive policy once.
Run from an external scheduler (e.g. hourly):
    python -m scripts.auto_archive
"""
from __future__ import annotations

import sys

from later.logging_utils import configure_logging
from later.repositories import build_repository
from later.settings import settings


def main() -> int:
    configure_logging(settings.LOG_LEVEL)
    repo = build_repository(settings)
    summary = repo.auto_archive_all_users()
    print(f"[CRON] auto_archive: {summary.users_processed} users, {summary.archived} reminders archived")
    return 0


if __name__ == "__main__":  # pragma: no cover
    print("[CRON] auto_archive: job started")
    try:
        sys.exit(main())
    except Exception as e:
        print(f"[CRON] auto_archive: job failed: {e}")
        sys.exit(1)
