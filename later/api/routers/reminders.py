from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query, Request

from later.api.deps import enforce_rate_limit, get_current_user, get_repository
from later.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from later.errors import ReminderNotFoundError
from later.repositories import ReminderRepository
from later.schemas.reminders import (
    ArchiveIn,
    ArchivePageView,
    ArchiveQuery,
    AttachmentView,
    ReminderCreate,
    ReminderOut,
    ReminderUpdate,
    ReminderView,
    SnoozeIn,
)
from later.services.identity import CurrentUser
from later.services.note_codec import parse_note
from later.services.text_parse import extract_tags, format_file_size
from later.services.time_state import compute_state

router = APIRouter(prefix="/reminders", tags=["reminders"], dependencies=[Depends(enforce_rate_limit)])


def _now(request: Request) -> dt.datetime:
    return request.app.state.clock()


def _view(reminder: ReminderOut, now: dt.datetime) -> ReminderView:
    parsed = parse_note(reminder.note)
    state = compute_state(reminder, now)
    return ReminderView(
        **reminder.model_dump(exclude={"attachments"}),
        attachments=[
            AttachmentView(**a.model_dump(), size_label=format_file_size(a.file_size_bytes))
            for a in reminder.attachments
        ],
        title=parsed.title,
        tags=extract_tags(parsed.plain_text),
        is_due=state.is_due,
        is_overdue=state.is_overdue,
    )


def _found(reminder: ReminderOut | None, reminder_id: str) -> ReminderOut:
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    return reminder


@router.post("", response_model=ReminderView, status_code=201)
def create_reminder(
    payload: ReminderCreate,
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    reminder = repo.create_reminder(user.id, payload)
    return _view(reminder, _now(request))


@router.get("/upcoming", response_model=list[ReminderView])
def list_upcoming(
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    now = _now(request)
    return [_view(r, now) for r in repo.list_upcoming(user.id)]


@router.get("/archive", response_model=ArchivePageView)
def list_archive(
    request: Request,
    filter: str = Query(default="all", pattern="^(all|completed|auto|manual)$"),
    q: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    query = ArchiveQuery(filter=filter, q=q, page=page, page_size=page_size)
    result = repo.list_archived(user.id, query)
    now = _now(request)
    return ArchivePageView(
        items=[_view(r, now) for r in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get("/{reminder_id}", response_model=ReminderView)
def get_reminder(
    reminder_id: str,
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    reminder = _found(repo.get_reminder(user.id, reminder_id), reminder_id)
    return _view(reminder, _now(request))


@router.patch("/{reminder_id}", response_model=ReminderView)
def patch_reminder(
    reminder_id: str,
    payload: ReminderUpdate,
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    reminder = _found(repo.update_reminder(user.id, reminder_id, payload), reminder_id)
    return _view(reminder, _now(request))


@router.post("/{reminder_id}/snooze", response_model=ReminderView)
def snooze_reminder(
    reminder_id: str,
    payload: SnoozeIn,
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    reminder = _found(repo.snooze_reminder(user.id, reminder_id, payload), reminder_id)
    return _view(reminder, _now(request))


@router.post("/{reminder_id}/archive", response_model=ReminderView)
def archive_reminder(
    reminder_id: str,
    payload: ArchiveIn,
    request: Request,
    repo: ReminderRepository = Depends(get_repository),
    user: CurrentUser = Depends(get_current_user),
):
    reminder = _found(repo.archive_reminder(user.id, reminder_id, payload.reason), reminder_id)
    return _view(reminder, _now(request))
