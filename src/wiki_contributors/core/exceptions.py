"""Application-wide exception hierarchy for Wiki Contributors.

All custom exceptions subclass ``ContributorsError`` so callers can catch
the whole hierarchy with a single ``except`` clause.

Hierarchy::

    ContributorsError
    ├── ContributorStoreError
    │   └── UnsupportedDialectError
    ├── RevisionOrderError
    ├── ContributorsAccessDenied
    └── InvalidSortFieldError

Unresolvable authors, missing parent revisions, unknown revision ids and
visibility changes that touch neither the author nor the text bit are not
errors.  The services skip them and log at debug level.
"""

from __future__ import annotations

from typing import Any


class ContributorsError(Exception):
    """Base class for all Wiki Contributors exceptions."""


# ---------------------------------------------------------------------------
# Store exceptions
# ---------------------------------------------------------------------------


class ContributorStoreError(ContributorsError):
    """Raised when a read or write against the ``contributors`` table fails.

    The originating SQLAlchemy exception is chained as ``__cause__``.  The
    session has already been rolled back when this propagates, so the row
    state from before the failed event is intact.

    Args:
        message: Human-readable description of the failure.
        key: The ``(page_id, user_id, user_text)`` key involved, if any.
    """

    def __init__(self, message: str, key: tuple[Any, ...] | None = None) -> None:
        super().__init__(message)
        self.key = key


class UnsupportedDialectError(ContributorStoreError):
    """Raised when the bound database has no atomic insert-or-update statement.

    Args:
        dialect: Name of the SQLAlchemy dialect (e.g. ``"mssql"``).
    """

    def __init__(self, dialect: str) -> None:
        super().__init__(f"No atomic upsert available for dialect '{dialect}'")
        self.dialect = dialect


# ---------------------------------------------------------------------------
# Rebuild exceptions
# ---------------------------------------------------------------------------


class RevisionOrderError(ContributorsError):
    """Raised when the full-history scan is not ordered by page id.

    A page that re-appears after a later page would be flushed twice and
    the second flush would overwrite the first with partial totals.

    Args:
        page_id: The page id that re-appeared.
        previous_page_id: The page id processed just before it.
    """

    def __init__(self, page_id: int, previous_page_id: int) -> None:
        super().__init__(
            f"Revision history out of order: page {page_id} after page {previous_page_id}"
        )
        self.page_id = page_id
        self.previous_page_id = previous_page_id


# ---------------------------------------------------------------------------
# Read-side exceptions
# ---------------------------------------------------------------------------


class ContributorsAccessDenied(ContributorsError):
    """Raised when the permission check refuses a contributor listing.

    Args:
        page_id: Page whose contributors were requested.
        actor: The requesting actor name, or ``None`` for anonymous callers.
    """

    def __init__(self, page_id: int, actor: str | None = None) -> None:
        who = f"'{actor}'" if actor else "anonymous caller"
        super().__init__(f"Contributors of page {page_id} are not readable by {who}")
        self.page_id = page_id
        self.actor = actor


class InvalidSortFieldError(ContributorsError):
    """Raised when a contributor list is sorted by a non-sortable column.

    Args:
        field: The rejected sort field.
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"Cannot sort contributors by '{field}'")
        self.field = field
