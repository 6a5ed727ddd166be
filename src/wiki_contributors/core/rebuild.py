"""Rebuild the contributors table from full revision history.

The rebuild walks the whole revision log once, ordered by page and then by
timestamp.  Contributors of the page currently being scanned are
accumulated in a per-page :class:`PageAccumulator`; when the page id
changes, every accumulated contributor is upserted and the page is
committed on its own, so an interrupted rebuild leaves every finished page
correct and every later page untouched.  Rerunning with ``from_page_id``
resumes at a page boundary.

Rows of contributors who no longer have attributed revisions are not
deleted: the rebuild only writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.exceptions import RevisionOrderError
from wiki_contributors.core.records import ContributorRecord
from wiki_contributors.core.revisions import RevisionFact, RevisionSource

logger = logging.getLogger(__name__)


@dataclass
class RebuildSummary:
    """Counters reported by a rebuild run."""

    pages_processed: int = 0
    contributors_written: int = 0
    revisions_scanned: int = 0
    revisions_skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "pages_processed": self.pages_processed,
            "contributors_written": self.contributors_written,
            "revisions_scanned": self.revisions_scanned,
            "revisions_skipped": self.revisions_skipped,
        }


@dataclass
class PageAccumulator:
    """Contributor totals for the page being scanned.

    Keyed by ``(user_id, user_text)``.  Entries are only created by an
    attributed revision, so a user whose revisions on the page are all
    hidden never gets one.
    """

    page_id: int
    contributors: dict[tuple[int, str], ContributorRecord] = field(default_factory=dict)

    def add(self, fact: RevisionFact) -> None:
        user = (fact.user_id, fact.user_text or "")
        record = self.contributors.get(user)
        if record is None:
            record = ContributorRecord(page_id=self.page_id, user_id=user[0], user_text=user[1])
            self.contributors[user] = record
        record.include_revision(fact)

    def records(self) -> list[ContributorRecord]:
        return [record for record in self.contributors.values() if not record.is_empty]


class BulkRebuilder:
    """Recompute contributor rows from the complete revision history.

    Args:
        store: Contributor store to write.
        revisions: Revision log providing the ordered full-history scan.
    """

    def __init__(self, store: ContributorStore, revisions: RevisionSource) -> None:
        self._store = store
        self._revisions = revisions

    async def rebuild_all(self, from_page_id: Optional[int] = None) -> RebuildSummary:
        """Scan all revisions and upsert every attributed (page, user) pair.

        Args:
            from_page_id: Skip pages with a lower id (restart point).

        Returns:
            Counters for the run.

        Raises:
            RevisionOrderError: The scan returned a page after a later one.
            ContributorStoreError: A page flush failed; earlier pages stay
                committed.
        """
        summary = RebuildSummary()
        accumulator: Optional[PageAccumulator] = None

        async for fact in self._revisions.iter_revisions(from_page_id=from_page_id):
            summary.revisions_scanned += 1
            if accumulator is None or fact.page_id != accumulator.page_id:
                if accumulator is not None:
                    if fact.page_id < accumulator.page_id:
                        raise RevisionOrderError(fact.page_id, accumulator.page_id)
                    await self._flush(accumulator, summary)
                accumulator = PageAccumulator(page_id=fact.page_id)

            if not fact.is_attributed:
                summary.revisions_skipped += 1
                continue
            accumulator.add(fact)

        if accumulator is None:
            logger.info("contributors_rebuild_nothing_to_do", extra={"from_page_id": from_page_id})
            return summary

        await self._flush(accumulator, summary)

        logger.info("contributors_rebuild_complete", extra=summary.as_dict())
        return summary

    async def _flush(self, accumulator: PageAccumulator, summary: RebuildSummary) -> None:
        """Upsert one page's contributors and commit them together."""
        records = accumulator.records()
        for record in records:
            await self._store.upsert(record)
        await self._store.commit()

        summary.pages_processed += 1
        summary.contributors_written += len(records)
        logger.info(
            "contributors_page_flushed",
            extra={"page_id": accumulator.page_id, "contributors": len(records)},
        )
