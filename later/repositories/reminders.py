from __future__ import annotations

import functools
import logging
import re

from later.constants import DEMO_USER_ID
from later.db import build_engine, build_session_factory
from later.models import Base
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
from later.services.link_metadata import fetch_link_preview
from later.services.storage import StorageClient
from later.settings import Settings

from .base import ReminderStore
from .memory import MemoryReminderStore
from .sql import SqlReminderStore

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def looks_like_account_id(user_id: str | None) -> bool:
    if not user_id or user_id == DEMO_USER_ID:
        return False
    return bool(UUID_RE.match(user_id))


class ReminderRepository:
    """
    Routes each call to the SQL store for real accounts and to the in-memory
    store for demo callers (or when no database is configured).
    """

    def __init__(self, memory: MemoryReminderStore, sql: SqlReminderStore | None = None) -> None:
        self.memory = memory
        self.sql = sql

    def describe(self) -> dict:
        if self.sql is not None:
            return self.sql.describe()
        return {"backend": "memory"}

    def store_for(self, user_id: str) -> ReminderStore:
        if self.sql is not None and looks_like_account_id(user_id):
            return self.sql
        return self.memory

    def get_profile(self, user_id: str) -> ProfileOut:
        return self.store_for(user_id).get_profile(user_id)

    def update_settings(self, user_id: str, patch: SettingsPatch) -> ProfileOut:
        return self.store_for(user_id).update_settings(user_id, patch)

    def create_reminder(self, user_id: str, payload: ReminderCreate) -> ReminderOut:
        return self.store_for(user_id).create_reminder(user_id, payload)

    def get_reminder(self, user_id: str, reminder_id: str) -> ReminderOut | None:
        return self.store_for(user_id).get_reminder(user_id, reminder_id)

    def list_upcoming(self, user_id: str) -> list[ReminderOut]:
        return self.store_for(user_id).list_upcoming(user_id)

    def update_reminder(self, user_id: str, reminder_id: str, patch: ReminderUpdate) -> ReminderOut | None:
        return self.store_for(user_id).update_reminder(user_id, reminder_id, patch)

    def snooze_reminder(self, user_id: str, reminder_id: str, payload: SnoozeIn) -> ReminderOut | None:
        return self.store_for(user_id).snooze_reminder(user_id, reminder_id, payload)

    def archive_reminder(self, user_id: str, reminder_id: str, reason: str) -> ReminderOut | None:
        return self.store_for(user_id).archive_reminder(user_id, reminder_id, reason)

    def list_archived(self, user_id: str, query: ArchiveQuery) -> ArchivePage:
        return self.store_for(user_id).list_archived(user_id, query)

    def auto_archive_for_user(self, user_id: str) -> int:
        return self.store_for(user_id).auto_archive_for_user(user_id)

    def auto_archive_all_users(self) -> AutoArchiveSummary:
        store = self.sql if self.sql is not None else self.memory
        return store.auto_archive_all_users()


def build_repository(settings: Settings, *, storage: StorageClient | None = None) -> ReminderRepository:
    link_fetcher = functools.partial(
        fetch_link_preview,
        timeout=settings.LINK_PREVIEW_TIMEOUT_SEC,
        user_agent=settings.LINK_PREVIEW_USER_AGENT,
    )
    memory = MemoryReminderStore(link_fetcher=link_fetcher)
    if not settings.DATABASE_URL:
        logger.info("DATABASE_URL not set; reminders are kept in memory")
        return ReminderRepository(memory)

    engine = build_engine(settings.DATABASE_URL)
    if settings.DATABASE_AUTO_CREATE:
        Base.metadata.create_all(bind=engine)
    sql = SqlReminderStore(build_session_factory(engine), storage=storage, link_fetcher=link_fetcher)
    return ReminderRepository(memory, sql)
