from __future__ import annotations

import datetime as dt
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Callable

from later.constants import MAX_ATTACHMENTS, MAX_URL_CHARS
from later.schemas.profile import ProfileOut, SettingsPatch
from later.schemas.reminders import (
    ArchivePage,
    ArchiveQuery,
    AttachmentCreate,
    AttachmentOut,
    AutoArchiveSummary,
    ReminderCreate,
    ReminderOut,
    ReminderUpdate,
    SnoozeIn,
)
from later.services.link_metadata import MAX_TITLE_CHARS, LinkPreview, fetch_link_preview
from later.services.note_codec import parse_note
from later.services.text_parse import extract_urls, favicon_url, is_likely_url
from later.services.time_state import as_utc, utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]
LinkFetcher = Callable[[str], LinkPreview]


def build_search_text(note: str | None, attachments) -> str:
    """Lower-cased haystack for archive search: the note's visible text plus attachment text fields."""
    parts = [parse_note(note).plain_text]
    for attachment in attachments:
        parts.extend((attachment.file_name, attachment.url, attachment.preview_title, attachment.text_content))
    return "\n".join(p for p in parts if p).lower()


def matches_archive_search(reminder: ReminderOut, q: str | None) -> bool:
    if not q or not q.strip():
        return True
    return q.strip().lower() in build_search_text(reminder.note, reminder.attachments)


def _auto_link_items(payload: ReminderCreate) -> list[AttachmentCreate]:
    known = {a.url for a in payload.attachments if a.url}
    urls = [
        u for u in extract_urls(parse_note(payload.note).plain_text)
        if u not in known and len(u) <= MAX_URL_CHARS and is_likely_url(u)
    ]
    room = max(0, MAX_ATTACHMENTS - len(payload.attachments))
    return [AttachmentCreate(kind="link", url=u) for u in urls[:room]]


class ReminderStore(ABC):
    """One backend for the reminder lifecycle. Returns None where the reminder is absent or not owned."""

    def __init__(
        self,
        *,
        clock: Clock = utc_now,
        link_fetcher: LinkFetcher = fetch_link_preview,
    ) -> None:
        self._clock = clock
        self._link_fetcher = link_fetcher

    def _now(self) -> dt.datetime:
        return as_utc(self._clock())

    def _preview(self, url: str) -> LinkPreview:
        try:
            return self._link_fetcher(url)
        except Exception:  # noqa: BLE001
            logger.warning("Link preview lookup raised for %s", url, exc_info=True)
            return LinkPreview(preview_title=None, preview_icon_url=favicon_url(url), metadata_status="failed")

    def _build_attachments(
        self, reminder_id: str, payload: ReminderCreate, now: dt.datetime
    ) -> list[AttachmentOut]:
        items = list(payload.attachments)
        if payload.auto_link:
            items.extend(_auto_link_items(payload))

        built = []
        for item in items:
            attachment = AttachmentOut(
                id=str(uuid.uuid4()),
                reminder_id=reminder_id,
                created_at=now,
                **item.model_dump(exclude={"metadata_status"}),
                metadata_status=item.metadata_status or "ready",
            )
            if attachment.kind == "link" and attachment.url:
                preview = self._preview(attachment.url)
                attachment.preview_title = (
                    attachment.preview_title or preview.preview_title or attachment.url[:MAX_TITLE_CHARS]
                )
                attachment.preview_icon_url = (
                    attachment.preview_icon_url or preview.preview_icon_url or favicon_url(attachment.url)
                )
                attachment.metadata_status = preview.metadata_status
            built.append(attachment)
        return built

    @abstractmethod
    def get_profile(self, user_id: str) -> ProfileOut: ...

    @abstractmethod
    def update_settings(self, user_id: str, patch: SettingsPatch) -> ProfileOut: ...

    @abstractmethod
    def create_reminder(self, user_id: str, payload: ReminderCreate) -> ReminderOut: ...

    @abstractmethod
    def get_reminder(self, user_id: str, reminder_id: str) -> ReminderOut | None: ...

    @abstractmethod
    def list_upcoming(self, user_id: str) -> list[ReminderOut]: ...

    @abstractmethod
    def update_reminder(self, user_id: str, reminder_id: str, patch: ReminderUpdate) -> ReminderOut | None: ...

    @abstractmethod
    def snooze_reminder(self, user_id: str, reminder_id: str, payload: SnoozeIn) -> ReminderOut | None: ...

    @abstractmethod
    def archive_reminder(self, user_id: str, reminder_id: str, reason: str) -> ReminderOut | None: ...

    @abstractmethod
    def list_archived(self, user_id: str, query: ArchiveQuery) -> ArchivePage: ...

    @abstractmethod
    def auto_archive_for_user(self, user_id: str) -> int: ...

    @abstractmethod
    def auto_archive_all_users(self) -> AutoArchiveSummary: ...
