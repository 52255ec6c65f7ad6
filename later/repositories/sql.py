from __future__ import annotations

import logging
import uuid

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from later.db import describe_db
from later.errors import UpstreamError
from later.models.profile import Profile
from later.models.reminder import Reminder, ReminderAttachment
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
from later.services.storage import StorageClient
from later.services.time_state import snooze_target

from .base import ReminderStore, build_search_text

logger = logging.getLogger(__name__)


def _like_pattern(q: str) -> str:
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _ensure_profile(db: Session, user_id: str, now) -> Profile:
    profile = db.get(Profile, user_id)
    if profile:
        return profile
    profile = Profile(id=user_id, timezone="UTC", auto_archive_policy="never", created_at=now, updated_at=now)
    db.add(profile)
    db.flush()
    return profile


def _owned(db: Session, user_id: str, reminder_id: str) -> Reminder | None:
    return db.execute(
        select(Reminder)
        .options(selectinload(Reminder.attachments))
        .where(and_(Reminder.id == reminder_id, Reminder.user_id == user_id))
    ).scalar_one_or_none()


class SqlReminderStore(ReminderStore):
    """Reminders persisted through SQLAlchemy; one session per call."""

    def __init__(self, session_factory: sessionmaker, *, storage: StorageClient | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._session_factory = session_factory
        self._storage = storage

    def _sign_previews(self, reminder: ReminderOut) -> ReminderOut:
        if self._storage is None:
            return reminder
        for attachment in reminder.attachments:
            if attachment.kind != "image" or not attachment.storage_path:
                continue
            try:
                signed = self._storage.create_signed_url(attachment.storage_path)
            except UpstreamError as exc:
                logger.warning("Signed preview failed for %s: %s", attachment.id, exc.message)
                continue
            if signed:
                attachment.preview_image_url = signed
        return reminder

    def _out(self, reminder: Reminder) -> ReminderOut:
        return self._sign_previews(ReminderOut.model_validate(reminder))

    def get_profile(self, user_id: str) -> ProfileOut:
        with self._session_factory() as db:
            profile = _ensure_profile(db, user_id, self._now())
            db.commit()
            return ProfileOut.model_validate(profile)

    def update_settings(self, user_id: str, patch: SettingsPatch) -> ProfileOut:
        data = patch.model_dump(exclude_unset=True)
        with self._session_factory() as db:
            now = self._now()
            profile = _ensure_profile(db, user_id, now)
            for k, v in data.items():
                if v is None and k != "display_name":
                    continue
                setattr(profile, k, v)
            profile.updated_at = now
            db.commit()
            db.refresh(profile)
            return ProfileOut.model_validate(profile)

    def create_reminder(self, user_id: str, payload: ReminderCreate) -> ReminderOut:
        now = self._now()
        reminder_id = str(uuid.uuid4())
        # Link previews are fetched before the session opens.
        attachments = self._build_attachments(reminder_id, payload, now)

        with self._session_factory() as db:
            try:
                _ensure_profile(db, user_id, now)
                reminder = Reminder(
                    id=reminder_id,
                    user_id=user_id,
                    note=payload.note,
                    search_text=build_search_text(payload.note, attachments),
                    status="upcoming",
                    remind_at=payload.remind_at,
                    created_at=now,
                    updated_at=now,
                )
                db.add(reminder)
                for position, item in enumerate(attachments):
                    db.add(ReminderAttachment(position=position, **item.model_dump()))
                db.commit()
            except Exception:
                db.rollback()
                raise
            return self._out(_owned(db, user_id, reminder_id))

    def get_reminder(self, user_id: str, reminder_id: str) -> ReminderOut | None:
        with self._session_factory() as db:
            reminder = _owned(db, user_id, reminder_id)
            return self._out(reminder) if reminder else None

    def list_upcoming(self, user_id: str) -> list[ReminderOut]:
        self.auto_archive_for_user(user_id)
        with self._session_factory() as db:
            rows = db.execute(
                select(Reminder)
                .options(selectinload(Reminder.attachments))
                .where(and_(Reminder.user_id == user_id, Reminder.status == "upcoming"))
                .order_by(Reminder.remind_at.asc().nulls_last(), Reminder.created_at.asc())
            ).scalars().all()
            return [self._out(r) for r in rows]

    def update_reminder(self, user_id: str, reminder_id: str, patch: ReminderUpdate) -> ReminderOut | None:
        with self._session_factory() as db:
            reminder = _owned(db, user_id, reminder_id)
            if reminder is None:
                return None
            if patch.remind_at_changed:
                reminder.remind_at = patch.remind_at
            if patch.note_changed:
                reminder.note = patch.note
            if patch.remove_attachment_ids:
                drop = set(patch.remove_attachment_ids)
                reminder.attachments = [a for a in reminder.attachments if a.id not in drop]
            reminder.search_text = build_search_text(reminder.note, reminder.attachments)
            lifecycle.reopen(reminder, self._now())
            db.commit()
            return self._out(_owned(db, user_id, reminder_id))

    def snooze_reminder(self, user_id: str, reminder_id: str, payload: SnoozeIn) -> ReminderOut | None:
        with self._session_factory() as db:
            reminder = _owned(db, user_id, reminder_id)
            if reminder is None:
                return None
            now = self._now()
            profile = _ensure_profile(db, user_id, now)
            reminder.remind_at = snooze_target(now, payload.preset, payload.minutes, profile.timezone)
            lifecycle.reopen(reminder, now)
            db.commit()
            return self._out(_owned(db, user_id, reminder_id))

    def archive_reminder(self, user_id: str, reminder_id: str, reason: str) -> ReminderOut | None:
        with self._session_factory() as db:
            reminder = _owned(db, user_id, reminder_id)
            if reminder is None:
                return None
            lifecycle.archive(reminder, reason, self._now())
            db.commit()
            return self._out(_owned(db, user_id, reminder_id))

    def list_archived(self, user_id: str, query: ArchiveQuery) -> ArchivePage:
        self.auto_archive_for_user(user_id)
        conditions = [Reminder.user_id == user_id, Reminder.status == "archived"]
        if query.filter != "all":
            conditions.append(Reminder.archive_reason == query.filter)
        if query.q and query.q.strip():
            # search_text is stored lower-cased
            conditions.append(Reminder.search_text.like(_like_pattern(query.q.strip().lower()), escape="\\"))

        with self._session_factory() as db:
            total = db.execute(
                select(func.count()).select_from(select(Reminder.id).where(and_(*conditions)).subquery())
            ).scalar_one()
            rows = db.execute(
                select(Reminder)
                .options(selectinload(Reminder.attachments))
                .where(and_(*conditions))
                .order_by(
                    func.coalesce(Reminder.archived_at, Reminder.updated_at).desc(),
                    Reminder.created_at.desc(),
                )
                .offset(query.offset)
                .limit(query.page_size)
            ).scalars().all()
            return ArchivePage(
                items=[self._out(r) for r in rows],
                total=total,
                page=query.page,
                page_size=query.page_size,
            )

    def _sweep(self, db: Session, profile: Profile, now) -> int:
        cutoff = lifecycle.auto_archive_cutoff(profile.auto_archive_policy, now)
        if cutoff is None:
            return 0
        rows = db.execute(
            select(Reminder).where(
                and_(
                    Reminder.user_id == profile.id,
                    Reminder.status == "upcoming",
                    Reminder.remind_at.is_not(None),
                    Reminder.remind_at <= cutoff,
                )
            )
        ).scalars().all()
        for reminder in rows:
            lifecycle.archive(reminder, "auto", now)
        return len(rows)

    def auto_archive_for_user(self, user_id: str) -> int:
        with self._session_factory() as db:
            now = self._now()
            profile = _ensure_profile(db, user_id, now)
            archived = self._sweep(db, profile, now)
            db.commit()
        if archived:
            logger.info("Auto-archived %s reminders for %s", archived, user_id)
        return archived

    def auto_archive_all_users(self) -> AutoArchiveSummary:
        with self._session_factory() as db:
            now = self._now()
            profiles = db.execute(
                select(Profile).where(Profile.auto_archive_policy != "never")
            ).scalars().all()
            archived = sum(self._sweep(db, profile, now) for profile in profiles)
            db.commit()
        logger.info("Auto-archive sweep: %s users, %s reminders", len(profiles), archived)
        return AutoArchiveSummary(users_processed=len(profiles), archived=archived)

    def describe(self) -> dict:
        return {"backend": "sql", **describe_db(self._session_factory.kw["bind"])}
