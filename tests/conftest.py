from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from alphasignal.contradiction.types import EngagementMetrics, Statement
from alphasignal.db.database import create_engine_for, create_session_factory, init_db
from alphasignal.db.store import AlertStore

BASE_TIME = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def statement(
    sid: str,
    text: str,
    minute: int = 0,
    likes: int = 0,
    shares: int = 0,
    replies: int = 0,
) -> Statement:
    return Statement(
        id=sid,
        text=text,
        timestamp=BASE_TIME + timedelta(minutes=minute),
        metrics=EngagementMetrics(likes=likes, shares=shares, replies=replies),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE_TIME + timedelta(minutes=6))


@pytest.fixture
def make_statement():
    return statement


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}"


@pytest_asyncio.fixture
async def store(db_url):
    engine = create_engine_for(db_url)
    await init_db(engine)
    yield AlertStore(create_session_factory(engine))
    await engine.dispose()
