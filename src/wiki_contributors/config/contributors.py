"""Contributor-listing configuration.

The listing preferences (default sort column, ignored user names, link style)
are held in an explicit :class:`ContributorsConfig` value object that is
handed to :class:`~wiki_contributors.core.contributors_query.ContributorsQuery`
at construction, rather than read from process-wide state at query time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wiki_contributors.config.settings import Settings


class SortField(str, Enum):
    """Columns a contributor list can be ordered by."""

    USER_TEXT = "user_text"
    REVISION_COUNT = "revision_count"
    CHARACTERS_ADDED = "characters_added"


SORTABLE_FIELDS: frozenset[str] = frozenset(field.value for field in SortField)


@dataclass(frozen=True)
class ContributorsConfig:
    """Display and ordering preferences for contributor lists.

    Attributes:
        sort_by_characters_added: When ``True`` the default ordering is by
            ``characters_added`` descending; otherwise by ``revision_count``
            descending.
        ignore_usernames: User names that are never listed.
    """

    sort_by_characters_added: bool = False
    ignore_usernames: frozenset[str] = frozenset()

    @property
    def default_sort(self) -> SortField:
        if self.sort_by_characters_added:
            return SortField.CHARACTERS_ADDED
        return SortField.REVISION_COUNT

    @classmethod
    def from_settings(cls, settings: Settings) -> ContributorsConfig:
        """Build the listing configuration from application settings."""
        return cls(
            sort_by_characters_added=settings.contributors_sort_by_characters_added,
            ignore_usernames=frozenset(settings.contributors_ignore_usernames),
        )
