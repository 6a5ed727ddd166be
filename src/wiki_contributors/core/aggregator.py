"""Incremental maintenance of contributor rows as revisions are saved."""

from __future__ import annotations

import logging

from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.revisions import RevisionFact

logger = logging.getLogger(__name__)


class ContributorAggregator:
    """Apply newly created revisions to the contributor store.

    Stateless apart from the store it writes to; a single instance can handle
    any number of events, one at a time.
    """

    def __init__(self, store: ContributorStore) -> None:
        self._store = store

    async def apply_new_revision(self, fact: RevisionFact) -> bool:
        """Count *fact* towards its author's row on its page.

        Revisions with a hidden or unresolvable author contribute nothing.
        Otherwise the author's row is created (one revision, both edit bounds
        at the revision timestamp) or incremented, with the revision's net
        characters added unless its text is hidden.  The change is one
        atomic insert-or-increment, committed before returning.

        Args:
            fact: The revision that was just saved.  A revision without a
                parent carries ``parent_size=0`` so its full size counts.

        Returns:
            ``True`` if the store was written, ``False`` if the revision was
            not attributable.

        Raises:
            ContributorStoreError: The write or commit failed; nothing was
                changed.
        """
        if not fact.is_attributed:
            logger.debug(
                "contributor_revision_skipped",
                extra={
                    "revision_id": fact.revision_id,
                    "page_id": fact.page_id,
                    "reason": "user_hidden" if fact.has_author else "no_author",
                },
            )
            return False

        await self._store.add_revision(fact)
        await self._store.commit()

        logger.info(
            "contributor_revision_applied",
            extra={
                "revision_id": fact.revision_id,
                "page_id": fact.page_id,
                "user_text": fact.user_text,
                "characters_added": 0 if fact.is_text_hidden else fact.characters_added,
            },
        )
        return True
