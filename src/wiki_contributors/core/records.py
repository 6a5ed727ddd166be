"""In-memory representation of contributor aggregate rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:
    from wiki_contributors.core.models.contributor import Contributor
    from wiki_contributors.core.revisions import RevisionFact


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.

    Naive values are taken to be UTC already: wiki timestamps are UTC and
    some backends (SQLite) hand back naive datetimes for timezone-aware
    columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ContributorKey(NamedTuple):
    """Unique key of a contributor row."""

    page_id: int
    user_id: int
    user_text: str


@dataclass
class ContributorRecord:
    """Mutable working copy of one ``contributors`` row.

    ``first_edit`` / ``last_edit`` are ``None`` while ``revision_count`` is 0.
    """

    page_id: int
    user_id: int
    user_text: str
    revision_count: int = 0
    characters_added: int = 0
    first_edit: Optional[datetime] = None
    last_edit: Optional[datetime] = None

    @classmethod
    def empty(cls, key: ContributorKey) -> ContributorRecord:
        return cls(page_id=key.page_id, user_id=key.user_id, user_text=key.user_text)

    @classmethod
    def from_row(cls, row: Contributor) -> ContributorRecord:
        return cls(
            page_id=row.page_id,
            user_id=row.user_id,
            user_text=row.user_text,
            revision_count=row.revision_count,
            characters_added=row.characters_added,
            first_edit=ensure_utc(row.first_edit) if row.first_edit else None,
            last_edit=ensure_utc(row.last_edit) if row.last_edit else None,
        )

    @property
    def key(self) -> ContributorKey:
        return ContributorKey(self.page_id, self.user_id, self.user_text)

    @property
    def is_empty(self) -> bool:
        return self.revision_count <= 0

    def extend_bounds(self, timestamp: datetime) -> None:
        """Widen ``first_edit`` / ``last_edit`` to include *timestamp*."""
        timestamp = ensure_utc(timestamp)
        self.first_edit = timestamp if self.first_edit is None else min(self.first_edit, timestamp)
        self.last_edit = timestamp if self.last_edit is None else max(self.last_edit, timestamp)

    def include_revision(self, fact: RevisionFact) -> None:
        """Count one attributed revision.

        Characters are only credited when the revision text is visible.
        """
        self.revision_count += 1
        self.extend_bounds(fact.timestamp)
        if not fact.is_text_hidden:
            self.characters_added += fact.characters_added

    def as_values(self) -> dict[str, object]:
        """Return the row as ORM attribute values."""
        return {
            "page_id": self.page_id,
            "user_id": self.user_id,
            "user_text": self.user_text,
            "revision_count": self.revision_count,
            "characters_added": self.characters_added,
            "first_edit": self.first_edit,
            "last_edit": self.last_edit,
        }
