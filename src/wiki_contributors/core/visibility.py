"""Reconcile contributor rows with revision visibility changes.

When a revision's author or text is hidden (or un-hidden), the author's
contributor row is adjusted in place instead of being rebuilt from full
history.  Each change is classified into exactly one entry of an explicit
transition table, keyed by the author-hidden and text-hidden bits before
and after the change:

=========================  ==============================================
Transition                 Effect on the author's row
=========================  ==============================================
``ATTRIBUTION_REMOVED``    one revision fewer; its characters are removed
                           if the text was visible before the change
``ATTRIBUTION_RESTORED``   one revision more; its characters are added if
                           the text is visible after the change; the edit
                           bounds are widened to include its timestamp
``TEXT_HIDDEN``            its characters are removed
``TEXT_REVEALED``          its characters are added
``NONE``                   nothing (no relevant bit changed, or the author
                           stays hidden while only the text flips)
=========================  ==============================================

Each transition becomes a :class:`RowDelta` that the store applies in one
statement relative to the row's current values, so a revision counted by a
concurrent writer between lookup and write is never overwritten.

Removing attribution leaves ``first_edit`` / ``last_edit`` as they were,
even when the removed revision was the earliest or latest one: exact bounds
would need a rescan of the user's remaining revisions on the page.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Optional

from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.records import ContributorKey
from wiki_contributors.core.revisions import RevisionFact, RevisionSource, VisibilityBits

logger = logging.getLogger(__name__)

_RELEVANT_BITS = VisibilityBits.DELETED_USER | VisibilityBits.DELETED_TEXT


class VisibilityTransition(str, Enum):
    """The effect a visibility change has on a contributor row."""

    NONE = "none"
    ATTRIBUTION_REMOVED = "attribution_removed"
    ATTRIBUTION_RESTORED = "attribution_restored"
    TEXT_HIDDEN = "text_hidden"
    TEXT_REVEALED = "text_revealed"


@dataclass(frozen=True)
class VisibilityState:
    """The two visibility bits that matter for attribution."""

    user_hidden: bool
    text_hidden: bool

    @classmethod
    def from_bits(cls, bits: int) -> VisibilityState:
        flags = VisibilityBits(bits or 0)
        return cls(
            user_hidden=bool(flags & VisibilityBits.DELETED_USER),
            text_hidden=bool(flags & VisibilityBits.DELETED_TEXT),
        )


_T = VisibilityTransition

TRANSITION_TABLE: dict[tuple[bool, bool, bool, bool], VisibilityTransition] = {
    # (user hidden before, user hidden after, text hidden before, text hidden after)
    (False, True, False, False): _T.ATTRIBUTION_REMOVED,
    (False, True, False, True): _T.ATTRIBUTION_REMOVED,
    (False, True, True, False): _T.ATTRIBUTION_REMOVED,
    (False, True, True, True): _T.ATTRIBUTION_REMOVED,
    (True, False, False, False): _T.ATTRIBUTION_RESTORED,
    (True, False, False, True): _T.ATTRIBUTION_RESTORED,
    (True, False, True, False): _T.ATTRIBUTION_RESTORED,
    (True, False, True, True): _T.ATTRIBUTION_RESTORED,
    (False, False, False, True): _T.TEXT_HIDDEN,
    (False, False, True, False): _T.TEXT_REVEALED,
    (False, False, False, False): _T.NONE,
    (False, False, True, True): _T.NONE,
    (True, True, False, False): _T.NONE,
    (True, True, False, True): _T.NONE,
    (True, True, True, False): _T.NONE,
    (True, True, True, True): _T.NONE,
}


def classify_transition(old: VisibilityState, new: VisibilityState) -> VisibilityTransition:
    """Look up the transition for a pair of visibility states."""
    return TRANSITION_TABLE[(old.user_hidden, new.user_hidden, old.text_hidden, new.text_hidden)]


class VisibilityChange(NamedTuple):
    """Old and new ``rev_deleted`` bits of one revision."""

    old_bits: int
    new_bits: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> VisibilityChange:
        """Accept both the wiki's ``oldBits``/``newBits`` and snake_case keys."""
        old_bits = data.get("oldBits", data.get("old_bits", 0))
        new_bits = data.get("newBits", data.get("new_bits", 0))
        return cls(int(old_bits or 0), int(new_bits or 0))

    @property
    def touches_attribution(self) -> bool:
        return bool((self.old_bits ^ self.new_bits) & _RELEVANT_BITS)


class RowDelta(NamedTuple):
    """Relative change to one contributor row.

    ``timestamp`` is set only when the edit bounds should be widened.
    """

    revision_count: int
    characters_added: int
    timestamp: Optional[datetime] = None


def transition_delta(
    transition: VisibilityTransition,
    fact: RevisionFact,
    old: VisibilityState,
    new: VisibilityState,
) -> RowDelta:
    """Translate *transition* for *fact* into a :class:`RowDelta`.

    The store floors ``characters_added`` at zero when applying the delta,
    even if the row was already out of step with history.
    """
    contribution = fact.characters_added
    if transition is VisibilityTransition.ATTRIBUTION_REMOVED:
        return RowDelta(-1, 0 if old.text_hidden else -contribution)
    if transition is VisibilityTransition.ATTRIBUTION_RESTORED:
        return RowDelta(1, 0 if new.text_hidden else contribution, fact.timestamp)
    if transition is VisibilityTransition.TEXT_HIDDEN:
        return RowDelta(0, -contribution)
    if transition is VisibilityTransition.TEXT_REVEALED:
        return RowDelta(0, contribution)
    return RowDelta(0, 0)


class VisibilityReconciler:
    """Adjust contributor rows when revisions are hidden or restored.

    Args:
        store: Contributor store to read and write.
        revisions: Revision log used to look up the affected revisions.
    """

    def __init__(self, store: ContributorStore, revisions: RevisionSource) -> None:
        self._store = store
        self._revisions = revisions

    async def apply_visibility_change(
        self,
        page_id: int,
        revision_id: int,
        old_bits: int,
        new_bits: int,
        *,
        commit: bool = True,
    ) -> VisibilityTransition:
        """Reconcile one revision's visibility change.

        Best effort: unknown revisions, revisions without an author and
        changes that do not alter attribution are skipped.  The row is
        adjusted by the transition's delta and deleted once its revision
        count reaches zero.

        Args:
            page_id: Page the revision belongs to.
            revision_id: The revision whose visibility changed.
            old_bits: ``rev_deleted`` before the change.
            new_bits: ``rev_deleted`` after the change.
            commit: Commit once the row is adjusted.  Batch callers pass
                ``False`` and commit themselves.

        Returns:
            The transition that was applied (``NONE`` when skipped).

        Raises:
            ContributorStoreError: The store write failed; the row is left
                as it was.
        """
        change = VisibilityChange(old_bits, new_bits)
        if not change.touches_attribution:
            logger.debug(
                "visibility_change_skipped",
                extra={"revision_id": revision_id, "reason": "no_relevant_bits"},
            )
            return VisibilityTransition.NONE

        old = VisibilityState.from_bits(old_bits)
        new = VisibilityState.from_bits(new_bits)
        transition = classify_transition(old, new)
        if transition is VisibilityTransition.NONE:
            logger.debug(
                "visibility_change_skipped",
                extra={"revision_id": revision_id, "reason": "author_stays_hidden"},
            )
            return transition

        fact = await self._revisions.fetch_revision_fact(revision_id)
        if fact is None or not fact.has_author:
            logger.debug(
                "visibility_change_skipped",
                extra={
                    "revision_id": revision_id,
                    "reason": "revision_not_found" if fact is None else "no_author",
                },
            )
            return VisibilityTransition.NONE

        key = ContributorKey(page_id, fact.user_id, fact.user_text or "")
        delta = transition_delta(transition, fact, old, new)
        kept = await self._store.apply_delta(
            key,
            revision_delta=delta.revision_count,
            characters_delta=delta.characters_added,
            timestamp=delta.timestamp,
        )
        if commit:
            await self._store.commit()

        logger.info(
            "visibility_change_applied",
            extra={
                "revision_id": revision_id,
                "page_id": page_id,
                "user_text": fact.user_text,
                "transition": transition.value,
                "revision_delta": delta.revision_count,
                "characters_delta": delta.characters_added,
                "row_deleted": not kept,
            },
        )
        return transition

    async def apply_visibility_changes(
        self,
        page_id: int,
        revision_ids: Iterable[int],
        change_map: Mapping[int, VisibilityChange],
    ) -> dict[int, VisibilityTransition]:
        """Reconcile a batched visibility action in one transaction.

        Revision ids absent from *change_map* are skipped.  Nothing is
        committed unless every revision is reconciled, so a failed batch can
        be retried as a whole.

        Returns:
            The transition applied per revision id.

        Raises:
            ContributorStoreError: A store write failed; no change of the
                batch is kept.
        """
        applied: dict[int, VisibilityTransition] = {}
        try:
            for revision_id in revision_ids:
                change = change_map.get(revision_id)
                if change is None:
                    logger.debug(
                        "visibility_change_skipped",
                        extra={"revision_id": revision_id, "reason": "missing_from_change_map"},
                    )
                    continue
                applied[revision_id] = await self.apply_visibility_change(
                    page_id, revision_id, change.old_bits, change.new_bits, commit=False
                )
            await self._store.commit()
        except Exception:
            await self._store.rollback()
            raise
        return applied
