"""Entry points for revision events emitted by the wiki.

:class:`ContributorEvents` wires the aggregator and the visibility
reconciler to one store and one revision log, mirroring the two hooks a
wiki fires: a revision was saved, and the visibility of some revisions of a
page was changed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Union

from wiki_contributors.core.aggregator import ContributorAggregator
from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.revisions import RevisionFact, RevisionSource
from wiki_contributors.core.visibility import (
    VisibilityChange,
    VisibilityReconciler,
    VisibilityTransition,
)


class ContributorEvents:
    """Apply wiki revision events to the contributor store."""

    def __init__(self, store: ContributorStore, revisions: RevisionSource) -> None:
        self.aggregator = ContributorAggregator(store)
        self.reconciler = VisibilityReconciler(store, revisions)

    async def on_revision_created(self, fact: RevisionFact) -> bool:
        return await self.aggregator.apply_new_revision(fact)

    async def on_visibility_changed(
        self,
        page_id: int,
        revision_ids: Iterable[int],
        change_map: Mapping[Any, Union[VisibilityChange, Mapping[str, Any]]],
    ) -> dict[int, VisibilityTransition]:
        """Reconcile a batched visibility action.

        *change_map* may be keyed by int or str revision ids (JSON payloads
        stringify keys) and its values may be :class:`VisibilityChange`
        tuples or ``{"oldBits": ..., "newBits": ...}`` mappings.
        """
        changes: dict[int, VisibilityChange] = {}
        for revision_id, change in change_map.items():
            if not isinstance(change, VisibilityChange):
                change = VisibilityChange.from_mapping(change)
            changes[int(revision_id)] = change
        return await self.reconciler.apply_visibility_changes(
            page_id, [int(revision_id) for revision_id in revision_ids], changes
        )
