import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from later.db import build_session_factory
from later.main import create_app
from later.models import Base
from later.repositories import MemoryReminderStore, ReminderRepository, SqlReminderStore
from later.services.link_metadata import LinkPreview
from later.services.text_parse import favicon_url
from later.services.time_state import utc_now
from later.settings import Settings

ACCOUNT_ID = "8f1d3c2a-5b6e-4f70-9a1b-2c3d4e5f6a7b"
OTHER_ACCOUNT_ID = "0b7e2f4c-1d2a-4c3b-8e9f-a1b2c3d4e5f6"


class FrozenClock:
    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)


class FakeLinkFetcher:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.fail_for: set[str] = set()

    def __call__(self, url: str) -> LinkPreview:
        self.calls.append(url)
        if url in self.fail_for:
            return LinkPreview(preview_title=None, preview_icon_url=favicon_url(url), metadata_status="failed")
        return LinkPreview(preview_title=f"Title for {url}", preview_icon_url=favicon_url(url), metadata_status="ready")


@pytest.fixture()
def clock():
    return FrozenClock(utc_now().replace(microsecond=0))


@pytest.fixture()
def link_fetcher():
    return FakeLinkFetcher()


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return build_session_factory(engine)


@pytest.fixture()
def memory_store(clock, link_fetcher):
    return MemoryReminderStore(clock=clock, link_fetcher=link_fetcher)


@pytest.fixture()
def sql_store(session_factory, clock, link_fetcher):
    return SqlReminderStore(session_factory, clock=clock, link_fetcher=link_fetcher)


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    return memory_store if request.param == "memory" else sql_store


@pytest.fixture()
def repository(memory_store, sql_store):
    return ReminderRepository(memory_store, sql_store)


@pytest.fixture()
def test_settings():
    return Settings(_env_file=None, DATABASE_URL=None, SUPABASE_URL=None, CRON_SECRET=None, REDIS_URL=None)


@pytest.fixture()
def test_app(test_settings, repository, clock):
    return create_app(test_settings, repository=repository, clock=clock)


@pytest.fixture()
def client(test_app):
    return TestClient(test_app)


@pytest.fixture()
def auth_headers():
    return {"X-Demo-User-Id": ACCOUNT_ID}
