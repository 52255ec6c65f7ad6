from __future__ import annotations

import logging
import threading
import uuid

from later.constants import DEFAULT_TIMEZONE
from later.schemas.profile import ProfileOut, SettingsPatch
from later.schemas.reminders import (
    ArchivePage,
    ArchiveQuery,
    AutoArchiveSummary,
    ReminderCreate,
    ReminderOut,
    ReminderUpdate,
    SnoozeIn,
)
from later.services import lifecycle
from later.services.time_state import should_auto_archive, snooze_target

from .base import ReminderStore, matches_archive_search

logger = logging.getLogger(__name__)


class MemoryReminderStore(ReminderStore):
    """Process-local fallback used when no database is configured (demo/dev mode)."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._profiles: dict[str, ProfileOut] = {}
        self._reminders: dict[str, ReminderOut] = {}
        self._lock = threading.Lock()

    def _ensure_profile(self, user_id: str) -> ProfileOut:
        profile = self._profiles.get(user_id)
        if profile:
            return profile
        now = self._now()
        profile = ProfileOut(
            id=user_id,
            display_name=None,
            avatar_url=None,
            timezone=DEFAULT_TIMEZONE,
            auto_archive_policy="never",
            created_at=now,
            updated_at=now,
        )
        self._profiles[user_id] = profile
        return profile

    def _owned(self, user_id: str, reminder_id: str) -> ReminderOut | None:
        reminder = self._reminders.get(reminder_id)
        if reminder is None or reminder.user_id != user_id:
            return None
        return reminder

    def get_profile(self, user_id: str) -> ProfileOut:
        with self._lock:
            return self._ensure_profile(user_id).model_copy(deep=True)

    def update_settings(self, user_id: str, patch: SettingsPatch) -> ProfileOut:
        data = patch.model_dump(exclude_unset=True)
        with self._lock:
            profile = self._ensure_profile(user_id)
            for key, value in data.items():
                if value is None and key != "display_name":
                    continue
                setattr(profile, key, value)
            profile.updated_at = self._now()
            return profile.model_copy(deep=True)

    def create_reminder(self, user_id: str, payload: ReminderCreate) -> ReminderOut:
        now = self._now()
        reminder_id = str(uuid.uuid4())
        attachments = self._build_attachments(reminder_id, payload, now)
        reminder = ReminderOut(
            id=reminder_id,
            user_id=user_id,
            note=payload.note,
            status="upcoming",
            archive_reason=None,
            remind_at=payload.remind_at,
            archived_at=None,
            completed_at=None,
            created_at=now,
            updated_at=now,
            attachments=attachments,
        )
        with self._lock:
            self._ensure_profile(user_id)
            self._reminders[reminder_id] = reminder
            return reminder.model_copy(deep=True)

    def get_reminder(self, user_id: str, reminder_id: str) -> ReminderOut | None:
        with self._lock:
            reminder = self._owned(user_id, reminder_id)
            return reminder.model_copy(deep=True) if reminder else None

    def list_upcoming(self, user_id: str) -> list[ReminderOut]:
        self.auto_archive_for_user(user_id)
        with self._lock:
            items = [
                r for r in self._reminders.values()
                if r.user_id == user_id and r.status == "upcoming"
            ]
            items.sort(key=lambda r: (r.remind_at is None, r.remind_at or r.created_at, r.created_at))
            return [r.model_copy(deep=True) for r in items]

    def update_reminder(self, user_id: str, reminder_id: str, patch: ReminderUpdate) -> ReminderOut | None:
        with self._lock:
            reminder = self._owned(user_id, reminder_id)
            if reminder is None:
                return None
            if patch.remind_at_changed:
                reminder.remind_at = patch.remind_at
            if patch.note_changed:
                reminder.note = patch.note
            if patch.remove_attachment_ids:
                drop = set(patch.remove_attachment_ids)
                reminder.attachments = [a for a in reminder.attachments if a.id not in drop]
            lifecycle.reopen(reminder, self._now())
            return reminder.model_copy(deep=True)

    def snooze_reminder(self, user_id: str, reminder_id: str, payload: SnoozeIn) -> ReminderOut | None:
        with self._lock:
            reminder = self._owned(user_id, reminder_id)
            if reminder is None:
                return None
            now = self._now()
            profile = self._ensure_profile(user_id)
            reminder.remind_at = snooze_target(now, payload.preset, payload.minutes, profile.timezone)
            lifecycle.reopen(reminder, now)
            return reminder.model_copy(deep=True)

    def archive_reminder(self, user_id: str, reminder_id: str, reason: str) -> ReminderOut | None:
        with self._lock:
            reminder = self._owned(user_id, reminder_id)
            if reminder is None:
                return None
            lifecycle.archive(reminder, reason, self._now())
            return reminder.model_copy(deep=True)

    def list_archived(self, user_id: str, query: ArchiveQuery) -> ArchivePage:
        self.auto_archive_for_user(user_id)
        with self._lock:
            items = [
                r for r in self._reminders.values()
                if r.user_id == user_id
                and r.status == "archived"
                and (query.filter == "all" or r.archive_reason == query.filter)
                and matches_archive_search(r, query.q)
            ]
            items.sort(key=lambda r: (r.archived_at or r.updated_at, r.created_at), reverse=True)
            page = items[query.offset:query.offset + query.page_size]
            return ArchivePage(
                items=[r.model_copy(deep=True) for r in page],
                total=len(items),
                page=query.page,
                page_size=query.page_size,
            )

    def auto_archive_for_user(self, user_id: str) -> int:
        with self._lock:
            profile = self._ensure_profile(user_id)
            if profile.auto_archive_policy == "never":
                return 0
            now = self._now()
            archived = 0
            for reminder in self._reminders.values():
                if reminder.user_id != user_id:
                    continue
                if should_auto_archive(reminder, profile.auto_archive_policy, now):
                    lifecycle.archive(reminder, "auto", now)
                    archived += 1
        if archived:
            logger.info("Auto-archived %s reminders for %s", archived, user_id)
        return archived

    def auto_archive_all_users(self) -> AutoArchiveSummary:
        with self._lock:
            user_ids = [p.id for p in self._profiles.values() if p.auto_archive_policy != "never"]
        archived = sum(self.auto_archive_for_user(user_id) for user_id in user_ids)
        return AutoArchiveSummary(users_processed=len(user_ids), archived=archived)
