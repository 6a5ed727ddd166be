"""Unit tests for ContributorEvents and the event payload schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from tests.helpers import FakeRevisionLog
from wiki_contributors.core.events import ContributorEvents
from wiki_contributors.core.records import ContributorKey
from wiki_contributors.core.schemas.contributors import (
    RevisionCreatedEvent,
    VisibilityChangedEvent,
)
from wiki_contributors.core.visibility import VisibilityChange, VisibilityTransition

ALICE = ContributorKey(1, 10, "Alice")


class TestRevisionCreatedEvent:
    def test_to_fact_decodes_bits_and_missing_parent(self) -> None:
        event = RevisionCreatedEvent.model_validate(
            {
                "revision_id": 5,
                "page_id": 1,
                "user_id": 10,
                "user_text": "Alice",
                "timestamp": "2024-03-01T12:00:00Z",
                "size": 75,
                "visibility_bits": 1,
            }
        )

        fact = event.to_fact()

        assert fact.characters_added == 75
        assert fact.is_text_hidden is True
        assert fact.timestamp == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_negative_size_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RevisionCreatedEvent.model_validate(
                {"revision_id": 1, "page_id": 1, "timestamp": "2024-03-01T12:00:00Z", "size": -1}
            )


class TestVisibilityChangedEvent:
    def test_accepts_wiki_field_names_and_string_keys(self) -> None:
        event = VisibilityChangedEvent.model_validate(
            {
                "page_id": 1,
                "revision_ids": [3],
                "change_map": {"3": {"oldBits": 0, "newBits": 4}},
            }
        )

        assert event.changes() == {3: VisibilityChange(0, 4)}


class TestContributorEvents:
    async def test_revision_then_visibility_change(self, store, make_fact) -> None:
        fact = make_fact(revision_id=1, size=20)
        log = FakeRevisionLog([fact])
        events = ContributorEvents(store, log)

        assert await events.on_revision_created(fact) is True
        applied = await events.on_visibility_changed(
            1, ["1"], {"1": {"oldBits": 0, "newBits": 1}}
        )

        assert applied == {1: VisibilityTransition.TEXT_HIDDEN}
        row = await store.get(ALICE)
        assert (row.revision_count, row.characters_added) == (1, 0)

    async def test_accepts_visibility_change_tuples(self, store, make_fact) -> None:
        fact = make_fact(revision_id=1, size=20, user_hidden=True)
        events = ContributorEvents(store, FakeRevisionLog([fact]))

        applied = await events.on_visibility_changed(1, [1], {1: VisibilityChange(0, 4)})

        assert applied == {1: VisibilityTransition.ATTRIBUTION_REMOVED}
        assert await store.get(ALICE) is None
