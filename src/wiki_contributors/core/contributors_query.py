"""Read-side assembly of a page's contributor list.

Every listing is gated by a :class:`PermissionChecker` before the store is
touched.  An empty result therefore always means "no contributors recorded
for this page yet", never "you may not see them": a refused caller gets
:class:`~wiki_contributors.core.exceptions.ContributorsAccessDenied`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Union

from wiki_contributors.config.contributors import SORTABLE_FIELDS, ContributorsConfig, SortField
from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.exceptions import ContributorsAccessDenied, InvalidSortFieldError

logger = logging.getLogger(__name__)


class PermissionChecker(Protocol):
    """The wiki's read permission check."""

    def can_read(self, actor: Optional[str], page_id: int) -> bool:
        ...


class PublicReadPermissionChecker:
    """Permission checker for wikis where page history is public.

    Args:
        public_read: When ``False`` only identified actors may read.
    """

    def __init__(self, public_read: bool = True) -> None:
        self.public_read = public_read

    def can_read(self, actor: Optional[str], page_id: int) -> bool:  # noqa: ARG002
        return self.public_read or bool(actor)


@dataclass(frozen=True)
class ContributorRow:
    """One line of a contributor list."""

    user_text: str
    user_id: int
    revision_count: int
    characters_added: int
    first_edit: Optional[datetime]
    last_edit: Optional[datetime]

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == 0


def parse_sort_field(value: Union[str, SortField, None]) -> Optional[SortField]:
    """Validate a user-supplied sort column.

    Raises:
        InvalidSortFieldError: *value* is not a sortable column.
    """
    if value is None or isinstance(value, SortField):
        return value
    if value not in SORTABLE_FIELDS:
        raise InvalidSortFieldError(value)
    return SortField(value)


class ContributorsQuery:
    """Build contributor lists for pages.

    Args:
        store: Store to read from.
        config: Listing preferences (default sort, ignored user names).
        permission_checker: Gate applied before any rows are returned.
    """

    def __init__(
        self,
        store: ContributorStore,
        config: ContributorsConfig,
        permission_checker: PermissionChecker,
    ) -> None:
        self._store = store
        self._config = config
        self._permissions = permission_checker

    async def get_contributors(
        self,
        page_id: int,
        actor: Optional[str] = None,
        *,
        filter_anonymous: bool = False,
        sort: Union[str, SortField, None] = None,
        descending: bool = True,
    ) -> list[ContributorRow]:
        """Return the contributors of *page_id* in display order.

        Args:
            page_id: Page to list.
            actor: Name of the requesting user, ``None`` if anonymous.
            filter_anonymous: Leave out anonymous (IP) editors.
            sort: Sort column; defaults to the configured one.
            descending: Sort direction.

        Raises:
            ContributorsAccessDenied: The permission check refused *actor*.
            InvalidSortFieldError: *sort* is not a sortable column.
        """
        order_by = parse_sort_field(sort) or self._config.default_sort
        if not self._permissions.can_read(actor, page_id):
            logger.info("contributors_access_denied", extra={"page_id": page_id, "actor": actor})
            raise ContributorsAccessDenied(page_id, actor)

        records = await self._store.list_for_page(
            page_id,
            exclude_anonymous=filter_anonymous,
            exclude_user_texts=self._config.ignore_usernames,
            order_by=order_by,
            descending=descending,
        )
        return [
            ContributorRow(
                user_text=record.user_text,
                user_id=record.user_id,
                revision_count=record.revision_count,
                characters_added=record.characters_added,
                first_edit=record.first_edit,
                last_edit=record.last_edit,
            )
            for record in records
        ]

    async def contributor_names(
        self,
        page_id: int,
        actor: Optional[str] = None,
        *,
        filter_anonymous: bool = False,
    ) -> list[str]:
        """Return just the user names, in the default order."""
        rows = await self.get_contributors(page_id, actor, filter_anonymous=filter_anonymous)
        return [row.user_text for row in rows]

    async def format_raw_list(
        self,
        page_id: int,
        actor: Optional[str] = None,
        *,
        filter_anonymous: bool = False,
    ) -> str:
        """Render the list as ``name = revision count`` lines."""
        rows = await self.get_contributors(page_id, actor, filter_anonymous=filter_anonymous)
        return "".join(f"{row.user_text} = {row.revision_count}\n" for row in rows)
