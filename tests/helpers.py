"""Test doubles and helpers shared by the unit and integration tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Optional

from wiki_contributors.core.revisions import RevisionFact

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def ts(minutes: int) -> datetime:
    """Return a UTC timestamp *minutes* after ``BASE_TIME``."""
    return BASE_TIME + timedelta(minutes=minutes)


class FakeRevisionLog:
    """In-memory ``RevisionSource``.

    ``fetch_revision_fact`` returns the fact currently registered for an id,
    so tests register the post-change visibility of a revision before
    reconciling it.
    """

    def __init__(self, facts: Optional[list[RevisionFact]] = None) -> None:
        self.facts: dict[int, RevisionFact] = {}
        self.fetch_calls: list[int] = []
        for fact in facts or []:
            self.add(fact)

    def add(self, fact: RevisionFact) -> RevisionFact:
        self.facts[fact.revision_id] = fact
        return fact

    async def fetch_revision_fact(self, revision_id: int) -> Optional[RevisionFact]:
        self.fetch_calls.append(revision_id)
        return self.facts.get(revision_id)

    async def iter_revisions(
        self,
        from_page_id: Optional[int] = None,
    ) -> AsyncIterator[RevisionFact]:
        ordered = sorted(
            self.facts.values(),
            key=lambda fact: (fact.page_id, fact.timestamp, fact.revision_id),
        )
        for fact in ordered:
            if from_page_id is not None and fact.page_id < from_page_id:
                continue
            yield fact


class ListRevisionLog(FakeRevisionLog):
    """Revision source that yields facts in the exact order given."""

    def __init__(self, facts: list[RevisionFact]) -> None:
        super().__init__(facts)
        self.ordered = list(facts)

    async def iter_revisions(
        self,
        from_page_id: Optional[int] = None,
    ) -> AsyncIterator[RevisionFact]:
        for fact in self.ordered:
            yield fact
