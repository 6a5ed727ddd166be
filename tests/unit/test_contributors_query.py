"""Unit tests for ContributorsQuery and the permission checkers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tests.helpers import ts
from wiki_contributors.config.contributors import ContributorsConfig, SortField
from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.contributors_query import (
    ContributorsQuery,
    PublicReadPermissionChecker,
    parse_sort_field,
)
from wiki_contributors.core.exceptions import ContributorsAccessDenied, InvalidSortFieldError
from wiki_contributors.core.records import ContributorRecord


class _DenyAll:
    def can_read(self, actor, page_id) -> bool:
        return False


@pytest.fixture
async def populated_store(store: ContributorStore) -> ContributorStore:
    for user_id, user_text, count, chars in [
        (10, "Alice", 4, 20),
        (11, "Bob", 2, 300),
        (0, "192.0.2.1", 3, 5),
        (12, "MaintenanceBot", 50, 1000),
    ]:
        await store.upsert(ContributorRecord(1, user_id, user_text, count, chars, ts(0), ts(1)))
    await store.commit()
    return store


def _query(store, **config) -> ContributorsQuery:
    return ContributorsQuery(store, ContributorsConfig(**config), PublicReadPermissionChecker())


class TestGetContributors:
    async def test_default_order_is_revision_count(self, populated_store) -> None:
        rows = await _query(populated_store).get_contributors(1)

        assert [row.user_text for row in rows] == ["MaintenanceBot", "Alice", "192.0.2.1", "Bob"]

    async def test_configured_characters_order(self, populated_store) -> None:
        rows = await _query(populated_store, sort_by_characters_added=True).get_contributors(1)

        assert [row.user_text for row in rows][:2] == ["MaintenanceBot", "Bob"]

    async def test_explicit_sort_overrides_config(self, populated_store) -> None:
        rows = await _query(populated_store).get_contributors(
            1, sort="user_text", descending=False
        )

        assert [row.user_text for row in rows] == ["192.0.2.1", "Alice", "Bob", "MaintenanceBot"]

    async def test_ignored_usernames_are_left_out(self, populated_store) -> None:
        query = _query(populated_store, ignore_usernames=frozenset({"MaintenanceBot"}))

        names = await query.contributor_names(1)

        assert "MaintenanceBot" not in names

    async def test_filter_anonymous(self, populated_store) -> None:
        rows = await _query(populated_store).get_contributors(1, filter_anonymous=True)

        assert all(not row.is_anonymous for row in rows)
        assert len(rows) == 3

    async def test_rows_carry_edit_bounds(self, populated_store) -> None:
        (alice,) = [
            row for row in await _query(populated_store).get_contributors(1)
            if row.user_text == "Alice"
        ]

        assert (alice.first_edit, alice.last_edit) == (ts(0), ts(1))

    async def test_page_without_contributors_is_empty(self, store) -> None:
        assert await _query(store).get_contributors(42) == []

    async def test_invalid_sort_field_is_rejected(self, store) -> None:
        with pytest.raises(InvalidSortFieldError) as exc_info:
            await _query(store).get_contributors(1, sort="first_edit")

        assert exc_info.value.field == "first_edit"


class TestPermissions:
    async def test_refusal_raises_instead_of_returning_empty(self) -> None:
        store = MagicMock(spec=ContributorStore)
        query = ContributorsQuery(store, ContributorsConfig(), _DenyAll())

        with pytest.raises(ContributorsAccessDenied) as exc_info:
            await query.get_contributors(7, "Mallory")

        assert (exc_info.value.page_id, exc_info.value.actor) == (7, "Mallory")
        store.list_for_page.assert_not_called()

    def test_public_read_admits_anonymous(self) -> None:
        assert PublicReadPermissionChecker().can_read(None, 1) is True

    def test_private_read_requires_actor(self) -> None:
        checker = PublicReadPermissionChecker(public_read=False)

        assert checker.can_read(None, 1) is False
        assert checker.can_read("Alice", 1) is True


class TestFormatting:
    async def test_raw_list_format(self, populated_store) -> None:
        query = _query(populated_store, ignore_usernames=frozenset({"MaintenanceBot"}))

        raw = await query.format_raw_list(1, filter_anonymous=True)

        assert raw == "Alice = 4\nBob = 2\n"

    def test_parse_sort_field(self) -> None:
        assert parse_sort_field(None) is None
        assert parse_sort_field("characters_added") is SortField.CHARACTERS_ADDED
        assert parse_sort_field(SortField.USER_TEXT) is SortField.USER_TEXT
