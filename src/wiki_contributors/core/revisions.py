"""Revision facts consumed by the contributor aggregation services.

A :class:`RevisionFact` is the static description of one saved revision:
who made it, when, how large the page was before and after, and which parts
of it are currently hidden.  Facts are never stored by this package; they
come from a :class:`RevisionSource` (the wiki's revision log).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from enum import IntFlag
from typing import Optional, Protocol

from wiki_contributors.core.records import ContributorKey, ensure_utc


class VisibilityBits(IntFlag):
    """Bit layout of a revision's ``rev_deleted`` field."""

    NONE = 0
    DELETED_TEXT = 1
    DELETED_COMMENT = 2
    DELETED_USER = 4
    DELETED_RESTRICTED = 8


@dataclass(frozen=True)
class RevisionFact:
    """One revision as seen by the aggregation services.

    Attributes:
        revision_id: Wiki revision id.
        page_id: Page the revision belongs to.
        user_id: Author's user id; ``0`` for anonymous editors.
        user_text: Author's user name or IP address.  ``None`` when the
            author cannot be resolved, in which case nothing is attributed.
        timestamp: When the revision was saved (UTC).
        size: Page size in bytes after the revision.
        parent_size: Page size before the revision; ``0`` without a parent.
        is_user_hidden: The author identity is redacted.
        is_text_hidden: The revision text is redacted.
    """

    revision_id: int
    page_id: int
    user_id: int
    user_text: Optional[str]
    timestamp: datetime
    size: int = 0
    parent_size: int = 0
    is_user_hidden: bool = False
    is_text_hidden: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    @classmethod
    def from_bits(
        cls,
        *,
        revision_id: int,
        page_id: int,
        user_id: Optional[int],
        user_text: Optional[str],
        timestamp: datetime,
        size: Optional[int],
        parent_size: Optional[int],
        deleted: int,
    ) -> RevisionFact:
        """Build a fact from raw revision-table values.

        ``None`` sizes count as 0 and ``deleted`` is decoded with
        :class:`VisibilityBits`.
        """
        bits = VisibilityBits(deleted or 0)
        return cls(
            revision_id=revision_id,
            page_id=page_id,
            user_id=user_id or 0,
            user_text=user_text or None,
            timestamp=timestamp,
            size=size or 0,
            parent_size=parent_size or 0,
            is_user_hidden=bool(bits & VisibilityBits.DELETED_USER),
            is_text_hidden=bool(bits & VisibilityBits.DELETED_TEXT),
        )

    @property
    def characters_added(self) -> int:
        """Net characters added by this revision, floored at zero."""
        return max(0, self.size - self.parent_size)

    @property
    def has_author(self) -> bool:
        return bool(self.user_text)

    @property
    def is_attributed(self) -> bool:
        """Whether this revision counts towards its author's totals."""
        return self.has_author and not self.is_user_hidden

    @property
    def contributor_key(self) -> ContributorKey:
        return ContributorKey(self.page_id, self.user_id, self.user_text or "")


class RevisionSource(Protocol):
    """Read access to the wiki's revision log."""

    async def fetch_revision_fact(self, revision_id: int) -> Optional[RevisionFact]:
        """Return the fact for *revision_id*, or ``None`` if it does not exist."""
        ...

    def iter_revisions(self, from_page_id: Optional[int] = None) -> AsyncIterator[RevisionFact]:
        """Yield every revision ordered by page id, then timestamp, then revision id."""
        ...
