"""Shared pytest fixtures for Wiki Contributors tests.

Fixture summary
---------------
engine          — async SQLite engine (aiosqlite, in-memory) with the schema created.
session_factory — ``async_sessionmaker`` bound to ``engine``.
session         — one ``AsyncSession`` per test.
store           — ``ContributorStore`` over ``session``.
revision_log    — ``tests.helpers.FakeRevisionLog`` in-memory revision source.
make_fact       — factory building ``RevisionFact`` objects with defaults.

Everything runs without external infrastructure: the store tests execute
real ``INSERT ... ON CONFLICT`` statements against SQLite.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any, Callable, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set required env vars before any application modules are imported so that
# Settings() does not raise a ValidationError during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "CELERY_BROKER_URL": "memory://",
    "CELERY_RESULT_BACKEND": "cache+memory://",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

from wiki_contributors.config.settings import get_settings  # noqa: E402
from wiki_contributors.core.contributor_store import ContributorStore  # noqa: E402
from wiki_contributors.core.models import Base  # noqa: E402
from wiki_contributors.core.revisions import RevisionFact  # noqa: E402
from tests.helpers import FakeRevisionLog, ts  # noqa: E402

get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as db:
        yield db


@pytest.fixture
def store(session: AsyncSession) -> ContributorStore:
    return ContributorStore(session)


@pytest.fixture
def revision_log() -> FakeRevisionLog:
    return FakeRevisionLog()


@pytest.fixture
def make_fact() -> Callable[..., RevisionFact]:
    """Factory for ``RevisionFact`` objects with sensible defaults.

    Revision ids auto-increment; ``minutes`` offsets the timestamp from
    ``BASE_TIME``.
    """
    counter = {"next": 1}

    def _make(
        *,
        page_id: int = 1,
        user_id: int = 10,
        user_text: Optional[str] = "Alice",
        minutes: int = 0,
        size: int = 0,
        parent_size: int = 0,
        user_hidden: bool = False,
        text_hidden: bool = False,
        revision_id: Optional[int] = None,
        **overrides: Any,
    ) -> RevisionFact:
        if revision_id is None:
            revision_id = counter["next"]
        counter["next"] = max(counter["next"], revision_id) + 1
        return RevisionFact(
            revision_id=revision_id,
            page_id=page_id,
            user_id=user_id,
            user_text=user_text,
            timestamp=overrides.pop("timestamp", ts(minutes)),
            size=size,
            parent_size=parent_size,
            is_user_hidden=user_hidden,
            is_text_hidden=text_hidden,
        )

    return _make
