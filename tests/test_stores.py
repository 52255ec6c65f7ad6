import datetime as dt

import pytest
from conftest import ACCOUNT_ID, OTHER_ACCOUNT_ID
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from later.models import Reminder, ReminderAttachment
from later.schemas.profile import SettingsPatch
from later.schemas.reminders import ArchiveQuery, ReminderCreate, ReminderUpdate, SnoozeIn
from later.services.link_metadata import LinkPreview


def _create(store, clock, **data):
    payload = ReminderCreate.model_validate(data, context={"now": clock()})
    return store.create_reminder(ACCOUNT_ID, payload)


def test_profile_is_created_lazily(store):
    profile = store.get_profile(ACCOUNT_ID)
    assert profile.id == ACCOUNT_ID
    assert profile.timezone == "UTC"
    assert profile.auto_archive_policy == "never"


def test_update_settings(store):
    profile = store.update_settings(
        ACCOUNT_ID, SettingsPatch(timezone="Europe/Berlin", auto_archive_policy="24h", display_name="Ana")
    )
    assert (profile.timezone, profile.auto_archive_policy, profile.display_name) == ("Europe/Berlin", "24h", "Ana")

    profile = store.update_settings(ACCOUNT_ID, SettingsPatch(display_name=None))
    assert profile.display_name is None
    assert profile.timezone == "Europe/Berlin"


def test_create_reminder_enriches_links(store, clock, link_fetcher):
    link_fetcher.fail_for.add("https://broken.example/")
    reminder = _create(
        store,
        clock,
        note="Read these",
        remind_at=clock() + dt.timedelta(hours=1),
        attachments=[
            {"kind": "link", "url": "https://docs.example/guide"},
            {"kind": "link", "url": "https://broken.example/"},
            {"kind": "link", "url": "https://mine.example/", "preview_title": "My own title"},
            {"kind": "text_snippet", "text_content": "quoted bit"},
        ],
    )
    assert reminder.status == "upcoming"
    assert reminder.remind_at == clock() + dt.timedelta(hours=1)
    assert [a.kind for a in reminder.attachments] == ["link", "link", "link", "text_snippet"]

    guide, broken, mine, snippet = reminder.attachments
    assert guide.preview_title == "Title for https://docs.example/guide"
    assert guide.metadata_status == "ready"
    assert broken.preview_title == "https://broken.example/"
    assert broken.metadata_status == "failed"
    assert broken.preview_icon_url == "https://www.google.com/s2/favicons?domain=broken.example&sz=64"
    assert mine.preview_title == "My own title"
    assert snippet.metadata_status == "ready"


def test_create_reminder_absorbs_fetcher_exceptions(store, clock, link_fetcher):
    def exploding(url):
        raise RuntimeError("boom")

    store._link_fetcher = exploding
    reminder = _create(store, clock, attachments=[{"kind": "link", "url": "https://x.example/"}])
    assert reminder.attachments[0].metadata_status == "failed"
    assert reminder.attachments[0].preview_title == "https://x.example/"


def test_auto_link_turns_note_urls_into_attachments(store, clock):
    reminder = _create(store, clock, note="check https://a.example/1 and https://a.example/1 again", auto_link=True)
    assert [a.url for a in reminder.attachments] == ["https://a.example/1"]


def test_get_reminder_respects_ownership(store, clock):
    reminder = _create(store, clock, note="mine")
    assert store.get_reminder(ACCOUNT_ID, reminder.id).note == "mine"
    assert store.get_reminder(OTHER_ACCOUNT_ID, reminder.id) is None
    assert store.archive_reminder(OTHER_ACCOUNT_ID, reminder.id, "manual") is None
    assert store.get_reminder(ACCOUNT_ID, "missing") is None


def test_upcoming_orders_by_time_with_unscheduled_last(store, clock):
    later = _create(store, clock, note="later", remind_at=clock() + dt.timedelta(hours=3))
    unscheduled = _create(store, clock, note="someday")
    soon = _create(store, clock, note="soon", remind_at=clock() + dt.timedelta(minutes=5))

    ids = [r.id for r in store.list_upcoming(ACCOUNT_ID)]
    assert ids == [soon.id, later.id, unscheduled.id]


def test_archive_completed_then_reopen(store, clock):
    reminder = _create(store, clock, note="pay rent", remind_at=clock() + dt.timedelta(minutes=5))

    archived = store.archive_reminder(ACCOUNT_ID, reminder.id, "completed")
    assert archived.status == "archived"
    assert archived.archive_reason == "completed"
    assert archived.archived_at == clock()
    assert archived.completed_at == clock()
    assert store.list_upcoming(ACCOUNT_ID) == []

    manual = store.archive_reminder(ACCOUNT_ID, reminder.id, "manual")
    assert manual.completed_at is None

    clock.advance(minutes=1)
    reopened = store.update_reminder(ACCOUNT_ID, reminder.id, ReminderUpdate(note="pay rent today"))
    assert reopened.status == "upcoming"
    assert reopened.archive_reason is None
    assert reopened.archived_at is None
    assert reopened.completed_at is None
    assert reopened.note == "pay rent today"
    assert reopened.remind_at == reminder.remind_at
    assert reopened.updated_at == clock()


def test_update_can_clear_schedule_and_remove_attachments(store, clock):
    reminder = _create(
        store,
        clock,
        note="files",
        remind_at=clock() + dt.timedelta(hours=1),
        attachments=[
            {"kind": "text_snippet", "text_content": "one"},
            {"kind": "text_snippet", "text_content": "two"},
        ],
    )
    first = reminder.attachments[0]
    updated = store.update_reminder(
        ACCOUNT_ID, reminder.id, ReminderUpdate(remind_at=None, remove_attachment_ids=[first.id])
    )
    assert updated.remind_at is None
    assert updated.note == "files"
    assert [a.text_content for a in updated.attachments] == ["two"]


def test_snooze_uses_profile_timezone(store, clock):
    store.update_settings(ACCOUNT_ID, SettingsPatch(timezone="Asia/Tokyo"))
    reminder = _create(store, clock, note="stretch")
    store.archive_reminder(ACCOUNT_ID, reminder.id, "manual")

    snoozed = store.snooze_reminder(ACCOUNT_ID, reminder.id, SnoozeIn(preset="1h"))
    assert snoozed.status == "upcoming"
    assert snoozed.remind_at == clock() + dt.timedelta(hours=1)

    snoozed = store.snooze_reminder(ACCOUNT_ID, reminder.id, SnoozeIn(preset="tomorrow"))
    local = snoozed.remind_at.astimezone(dt.timezone(dt.timedelta(hours=9)))
    assert (local.hour, local.minute) == (9, 0)
    assert local.date() > clock().astimezone(dt.timezone(dt.timedelta(hours=9))).date()


def test_list_archived_filters_searches_and_paginates(store, clock):
    done = _create(store, clock, note="Buy groceries")
    dropped = _create(
        store,
        clock,
        note="Old idea",
        attachments=[{"kind": "file", "storage_path": "u/f.pdf", "file_name": "Quarterly_Report.pdf"}],
    )
    _create(store, clock, note="Still upcoming")

    store.archive_reminder(ACCOUNT_ID, done.id, "completed")
    clock.advance(minutes=1)
    store.archive_reminder(ACCOUNT_ID, dropped.id, "manual")

    page = store.list_archived(ACCOUNT_ID, ArchiveQuery())
    assert page.total == 2
    assert [r.id for r in page.items] == [dropped.id, done.id]

    completed = store.list_archived(ACCOUNT_ID, ArchiveQuery(filter="completed"))
    assert [r.id for r in completed.items] == [done.id]

    by_file = store.list_archived(ACCOUNT_ID, ArchiveQuery(q="quarterly_rep"))
    assert [r.id for r in by_file.items] == [dropped.id]

    assert store.list_archived(ACCOUNT_ID, ArchiveQuery(q="100%")).total == 0

    second = store.list_archived(ACCOUNT_ID, ArchiveQuery(page=2, page_size=1))
    assert second.total == 2
    assert [r.id for r in second.items] == [done.id]
    assert (second.page, second.page_size) == (2, 1)


def test_auto_archive_sweep(store, clock):
    store.update_settings(ACCOUNT_ID, SettingsPatch(auto_archive_policy="24h"))
    stale = _create(store, clock, note="stale", remind_at=clock() + dt.timedelta(minutes=1))
    fresh = _create(store, clock, note="fresh", remind_at=clock() + dt.timedelta(hours=20))
    _create(store, clock, note="no schedule")

    clock.advance(hours=24, minutes=1)
    upcoming = store.list_upcoming(ACCOUNT_ID)
    assert stale.id not in [r.id for r in upcoming]
    assert fresh.id in [r.id for r in upcoming]

    archived = store.list_archived(ACCOUNT_ID, ArchiveQuery(filter="auto"))
    assert [r.id for r in archived.items] == [stale.id]
    assert archived.items[0].completed_at is None

    assert store.auto_archive_for_user(ACCOUNT_ID) == 0


def test_auto_archive_all_users_skips_never(store, clock):
    store.update_settings(ACCOUNT_ID, SettingsPatch(auto_archive_policy="24h"))
    store.get_profile(OTHER_ACCOUNT_ID)
    _create(store, clock, note="overdue", remind_at=clock() + dt.timedelta(minutes=1))
    store.create_reminder(
        OTHER_ACCOUNT_ID,
        ReminderCreate.model_validate(
            {"note": "ignored", "remind_at": clock() + dt.timedelta(minutes=1)}, context={"now": clock()}
        ),
    )

    clock.advance(days=2)
    summary = store.auto_archive_all_users()
    assert summary.users_processed == 1
    assert summary.archived == 1

    again = store.auto_archive_all_users()
    assert again.archived == 0


def test_auto_link_skips_unusable_note_urls(store, clock):
    long_url = "https://long.example/" + "a" * 2100
    reminder = _create(
        store,
        clock,
        note=f"see https://#frag and https://[::1 and {long_url} then https://ok.example/x",
        auto_link=True,
    )
    assert [a.url for a in reminder.attachments] == ["https://ok.example/x"]


def test_failed_preview_title_fallback_fits_the_column(store, clock, link_fetcher):
    url = "https://x.example/" + "a" * 600
    link_fetcher.fail_for.add(url)
    reminder = _create(store, clock, attachments=[{"kind": "link", "url": url}])
    attachment = reminder.attachments[0]
    assert attachment.metadata_status == "failed"
    assert attachment.preview_title == url[:500]


def test_failed_attachment_insert_rolls_back_the_reminder(sql_store, session_factory, clock):
    def invalid_status(url):
        return LinkPreview(preview_title="t", preview_icon_url=None, metadata_status="bogus")

    sql_store._link_fetcher = invalid_status
    with pytest.raises(IntegrityError):
        _create(sql_store, clock, note="half written", attachments=[{"kind": "link", "url": "https://x.example/"}])

    assert sql_store.list_upcoming(ACCOUNT_ID) == []
    with session_factory() as db:
        assert db.execute(select(func.count()).select_from(Reminder)).scalar_one() == 0
        assert db.execute(select(func.count()).select_from(ReminderAttachment)).scalar_one() == 0


def test_archive_search_matches_visible_note_text(store, clock):
    versioned = _create(store, clock, title="Été plans", body_html="<p>a &lt; b</p>")
    legacy = _create(store, clock, note="Plain note")
    store.archive_reminder(ACCOUNT_ID, versioned.id, "manual")
    store.archive_reminder(ACCOUNT_ID, legacy.id, "manual")

    def ids(q):
        return [r.id for r in store.list_archived(ACCOUNT_ID, ArchiveQuery(q=q)).items]

    assert ids("a < b") == [versioned.id]
    assert ids("ÉTÉ") == [versioned.id]
    assert ids("bodyhtml") == []
    assert ids("title") == []
    assert ids("plain") == [legacy.id]


def test_search_follows_note_edits(store, clock):
    reminder = _create(store, clock, note="first draft")
    store.update_reminder(ACCOUNT_ID, reminder.id, ReminderUpdate(note="second pass"))
    store.archive_reminder(ACCOUNT_ID, reminder.id, "manual")
    assert store.list_archived(ACCOUNT_ID, ArchiveQuery(q="draft")).total == 0
    assert store.list_archived(ACCOUNT_ID, ArchiveQuery(q="second")).total == 1
