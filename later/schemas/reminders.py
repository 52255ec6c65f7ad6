from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from later.constants import (
    ARCHIVE_FILTERS,
    ARCHIVE_REASONS,
    ATTACHMENT_KINDS,
    DEFAULT_PAGE_SIZE,
    MAX_ATTACHMENTS,
    MAX_FILE_BYTES,
    MAX_IMAGE_BYTES,
    MAX_PAGE_SIZE,
    MAX_URL_CHARS,
    METADATA_STATUSES,
    SNOOZE_PRESETS,
)
from later.services.note_codec import normalize_note, parse_note, serialize_note
from later.services.text_parse import is_likely_url
from later.services.time_state import as_utc, utc_now

PAST_SKEW = dt.timedelta(seconds=60)
NOTE_FIELDS = {"note", "title", "body_html"}


def _validate_enum_str(value: str | None, allowed: set[str], field_name: str) -> str | None:
    if value is None:
        return None
    v = value.strip().lower()
    if v not in allowed:
        raise ValueError(f"{field_name} must be one of: {sorted(allowed)}")
    return v


def _resolve_note(note: str | None, title: str | None, body_html: str | None) -> str | None:
    if title is not None or body_html is not None:
        serialized = serialize_note(title or "", body_html or "")
        return serialized if parse_note(serialized).plain_text else None
    return normalize_note(note)


# ---------------------------------------------------------------------------
# Stored records (identical for both storage backends)
# ---------------------------------------------------------------------------

class AttachmentOut(BaseModel):
    id: str
    reminder_id: str
    kind: str
    storage_path: str | None = None
    mime_type: str | None = None
    file_name: str | None = None
    file_size_bytes: int | None = None
    url: str | None = None
    text_content: str | None = None
    preview_title: str | None = None
    preview_icon_url: str | None = None
    preview_image_url: str | None = None
    metadata_status: str
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ReminderOut(BaseModel):
    id: str
    user_id: str
    note: str | None
    status: str
    archive_reason: str | None
    remind_at: dt.datetime | None
    archived_at: dt.datetime | None
    completed_at: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime
    attachments: list[AttachmentOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ArchivePage(BaseModel):
    items: list[ReminderOut]
    total: int
    page: int
    page_size: int


class AutoArchiveSummary(BaseModel):
    users_processed: int
    archived: int


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class AttachmentCreate(BaseModel):
    kind: str = Field(description="link|image|file|text_snippet")
    storage_path: str | None = Field(default=None, max_length=500)
    mime_type: str | None = Field(default=None, max_length=200)
    file_name: str | None = Field(default=None, max_length=255)
    file_size_bytes: int | None = Field(default=None, ge=0)
    url: str | None = Field(default=None, max_length=MAX_URL_CHARS)
    text_content: str | None = Field(default=None, max_length=10000)
    preview_title: str | None = Field(default=None, max_length=500)
    preview_icon_url: str | None = Field(default=None, max_length=MAX_URL_CHARS)
    preview_image_url: str | None = Field(default=None, max_length=MAX_URL_CHARS)
    metadata_status: str | None = Field(default=None, description="pending|ready|failed")

    @field_validator("kind")
    @classmethod
    def _kind(cls, v: str) -> str:
        return _validate_enum_str(v, ATTACHMENT_KINDS, "kind")

    @field_validator("metadata_status")
    @classmethod
    def _metadata_status(cls, v: str | None) -> str | None:
        return _validate_enum_str(v, METADATA_STATUSES, "metadata_status")

    @field_validator("url", "preview_icon_url", "preview_image_url")
    @classmethod
    def _http_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not is_likely_url(v):
            raise ValueError("must be an absolute http(s) URL")
        return v

    @model_validator(mode="after")
    def _validate_kind_fields(self) -> "AttachmentCreate":
        if self.kind == "link" and not self.url:
            raise ValueError("link attachments require url")
        if self.kind in {"image", "file"} and not self.storage_path:
            raise ValueError(f"{self.kind} attachments require storage_path")
        if self.kind == "text_snippet" and not (self.text_content or "").strip():
            raise ValueError("text_snippet attachments require text_content")
        size = self.file_size_bytes or 0
        if self.kind == "image" and size > MAX_IMAGE_BYTES:
            raise ValueError("Image is too large")
        if self.kind == "file" and size > MAX_FILE_BYTES:
            raise ValueError("File is too large")
        return self


class ReminderCreate(BaseModel):
    note: str | None = Field(default=None, max_length=5000)
    title: str | None = Field(default=None, max_length=300)
    body_html: str | None = Field(default=None, max_length=20000)
    remind_at: dt.datetime | None = None
    attachments: list[AttachmentCreate] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)
    auto_link: bool = Field(default=False, description="Attach URLs found in the note as links")

    @field_validator("remind_at")
    @classmethod
    def _remind_at(cls, v: dt.datetime | None, info: ValidationInfo) -> dt.datetime | None:
        if v is None:
            return v
        v = as_utc(v)
        now = (info.context or {}).get("now") or utc_now()
        if as_utc(now) - v > PAST_SKEW:
            raise ValueError("remind_at must be in the future")
        return v

    @model_validator(mode="after")
    def _require_content(self) -> "ReminderCreate":
        self.note = _resolve_note(self.note, self.title, self.body_html)
        if not self.note and not self.attachments:
            raise ValueError("Reminder requires a note or at least one attachment")
        return self


class ReminderUpdate(BaseModel):
    remind_at: dt.datetime | None = None
    note: str | None = Field(default=None, max_length=20000)
    title: str | None = Field(default=None, max_length=300)
    body_html: str | None = Field(default=None, max_length=20000)
    remove_attachment_ids: list[str] = Field(default_factory=list, max_length=100)

    @field_validator("remind_at")
    @classmethod
    def _remind_at(cls, v: dt.datetime | None) -> dt.datetime | None:
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _normalize_note(self) -> "ReminderUpdate":
        if NOTE_FIELDS & self.model_fields_set:
            self.note = _resolve_note(self.note, self.title, self.body_html)
        return self

    @property
    def note_changed(self) -> bool:
        return bool(NOTE_FIELDS & self.model_fields_set)

    @property
    def remind_at_changed(self) -> bool:
        return "remind_at" in self.model_fields_set


class SnoozeIn(BaseModel):
    preset: str | None = Field(default=None, description="10m|1h|tomorrow")
    minutes: int | None = Field(default=None, ge=1, le=60 * 24 * 30)

    @field_validator("preset")
    @classmethod
    def _preset(cls, v: str | None) -> str | None:
        return _validate_enum_str(v, SNOOZE_PRESETS, "preset")

    @model_validator(mode="after")
    def _require_one(self) -> "SnoozeIn":
        if not self.preset and not self.minutes:
            raise ValueError("preset or minutes is required")
        return self


class ArchiveIn(BaseModel):
    reason: str = Field(description="completed|manual|auto")

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str) -> str:
        return _validate_enum_str(v, ARCHIVE_REASONS, "reason")


class ArchiveQuery(BaseModel):
    filter: str = "all"
    q: str | None = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("filter")
    @classmethod
    def _filter(cls, v: str) -> str:
        return _validate_enum_str(v, ARCHIVE_FILTERS, "filter")

    @field_validator("q")
    @classmethod
    def _q(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


# ---------------------------------------------------------------------------
# API views
# ---------------------------------------------------------------------------

class AttachmentView(AttachmentOut):
    size_label: str = ""


class ReminderView(ReminderOut):
    attachments: list[AttachmentView] = Field(default_factory=list)
    title: str = ""
    tags: list[str] = Field(default_factory=list)
    is_due: bool = False
    is_overdue: bool = False


class ArchivePageView(BaseModel):
    items: list[ReminderView]
    total: int
    page: int
    page_size: int
