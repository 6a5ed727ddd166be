"""Unit tests for MediaWikiRevisionLog.

A minimal copy of the wiki's ``revision`` and ``actor`` tables is created
in the in-memory SQLite database so the raw SQL runs unchanged.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from wiki_contributors.core.revision_log import MediaWikiRevisionLog, parse_wiki_timestamp

_DDL = [
    """
    CREATE TABLE actor (
        actor_id INTEGER PRIMARY KEY,
        actor_user INTEGER,
        actor_name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE revision (
        rev_id INTEGER PRIMARY KEY,
        rev_page INTEGER NOT NULL,
        rev_actor INTEGER,
        rev_timestamp TEXT NOT NULL,
        rev_deleted INTEGER NOT NULL DEFAULT 0,
        rev_len INTEGER,
        rev_parent_id INTEGER
    )
    """,
]

_ACTORS = [
    {"actor_id": 1, "actor_user": 10, "actor_name": "Alice"},
    {"actor_id": 2, "actor_user": None, "actor_name": "192.0.2.1"},
]

_REVISIONS = [
    # rev_id, page, actor, timestamp, deleted, len, parent
    (1, 1, 1, "20240301120000", 0, 100, None),
    (2, 1, 2, "20240301130000", 4, 150, 1),
    (3, 1, 1, "20240301140000", 1, 120, 2),
    (4, 2, 1, "20240301110000", 0, 10, 99),
    (5, 2, None, "20240301115000", 0, 30, 4),
    (6, 1, 1, "20240301090000", 0, 80, None),
]


@pytest_asyncio.fixture
async def wiki_session(session: AsyncSession) -> AsyncSession:
    for ddl in _DDL:
        await session.execute(text(ddl))
    await session.execute(
        text("INSERT INTO actor VALUES (:actor_id, :actor_user, :actor_name)"), _ACTORS
    )
    await session.execute(
        text("INSERT INTO revision VALUES (:id, :page, :actor, :ts, :deleted, :len, :parent)"),
        [
            dict(zip(("id", "page", "actor", "ts", "deleted", "len", "parent"), row))
            for row in _REVISIONS
        ],
    )
    await session.commit()
    return session


@pytest.fixture
def revision_source(wiki_session: AsyncSession) -> MediaWikiRevisionLog:
    return MediaWikiRevisionLog(wiki_session, yield_per=2)


class TestParseWikiTimestamp:
    def test_parses_string(self) -> None:
        assert parse_wiki_timestamp("20240301120000") == datetime(
            2024, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_parses_binary_column(self) -> None:
        assert parse_wiki_timestamp(b"20240301120000").hour == 12

    def test_passes_datetime_through_as_utc(self) -> None:
        naive = datetime(2024, 3, 1, 12, 0)
        assert parse_wiki_timestamp(naive).tzinfo == timezone.utc


class TestFetchRevisionFact:
    async def test_fact_uses_parent_size(self, revision_source) -> None:
        fact = await revision_source.fetch_revision_fact(2)

        assert fact.page_id == 1
        assert fact.size == 150
        assert fact.parent_size == 100
        assert fact.characters_added == 50

    async def test_anonymous_actor_maps_to_user_id_zero(self, revision_source) -> None:
        fact = await revision_source.fetch_revision_fact(2)

        assert fact.user_id == 0
        assert fact.user_text == "192.0.2.1"
        assert fact.is_user_hidden is True

    async def test_text_hidden_bit_is_decoded(self, revision_source) -> None:
        fact = await revision_source.fetch_revision_fact(3)

        assert fact.is_text_hidden is True
        assert fact.is_user_hidden is False
        assert fact.characters_added == 0

    async def test_missing_parent_row_counts_from_zero(self, revision_source) -> None:
        fact = await revision_source.fetch_revision_fact(4)

        assert fact.parent_size == 0
        assert fact.characters_added == 10

    async def test_unresolvable_actor_has_no_author(self, revision_source) -> None:
        fact = await revision_source.fetch_revision_fact(5)

        assert fact.has_author is False

    async def test_unknown_revision_returns_none(self, revision_source) -> None:
        assert await revision_source.fetch_revision_fact(404) is None


class TestIterRevisions:
    async def test_ordered_by_page_then_timestamp(self, revision_source) -> None:
        ids = [fact.revision_id async for fact in revision_source.iter_revisions()]

        assert ids == [6, 1, 2, 3, 4, 5]

    async def test_from_page_id_skips_earlier_pages(self, revision_source) -> None:
        ids = [fact.revision_id async for fact in revision_source.iter_revisions(from_page_id=2)]

        assert ids == [4, 5]
