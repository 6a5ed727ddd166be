"""Revision facts read from the wiki's own database tables.

:class:`MediaWikiRevisionLog` implements
:class:`~wiki_contributors.core.revisions.RevisionSource` on top of the
``revision`` and ``actor`` tables.  The parent revision is joined on
``rev_parent_id`` to obtain the size before the edit; a revision without a
parent (or whose parent row is gone) counts as growing the page from zero.

The full-history scan is streamed with ``AsyncSession.stream`` so memory
use does not grow with the size of the wiki.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from wiki_contributors.core.revisions import RevisionFact

logger = logging.getLogger(__name__)

WIKI_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

_REVISION_SELECT = """
SELECT
    r.rev_id AS rev_id,
    r.rev_page AS rev_page,
    r.rev_timestamp AS rev_timestamp,
    r.rev_deleted AS rev_deleted,
    r.rev_len AS rev_len,
    p.rev_len AS rev_parent_len,
    a.actor_user AS rev_user,
    a.actor_name AS rev_user_text
FROM revision r
LEFT JOIN revision p ON r.rev_parent_id = p.rev_id
LEFT JOIN actor a ON r.rev_actor = a.actor_id
"""


def parse_wiki_timestamp(value: Any) -> datetime:
    """Parse a ``YYYYMMDDHHMMSS`` wiki timestamp into an aware UTC datetime.

    Binary columns come back as ``bytes``; datetimes are passed through.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("ascii")
    return datetime.strptime(str(value).strip(), WIKI_TIMESTAMP_FORMAT).replace(
        tzinfo=timezone.utc
    )


def _fact_from_row(row: Any) -> RevisionFact:
    user_text = row["rev_user_text"]
    if isinstance(user_text, (bytes, bytearray)):
        user_text = user_text.decode("utf-8")
    return RevisionFact.from_bits(
        revision_id=int(row["rev_id"]),
        page_id=int(row["rev_page"]),
        user_id=row["rev_user"],
        user_text=user_text,
        timestamp=parse_wiki_timestamp(row["rev_timestamp"]),
        size=row["rev_len"],
        parent_size=row["rev_parent_len"],
        deleted=row["rev_deleted"],
    )


class MediaWikiRevisionLog:
    """Revision source backed by the wiki's ``revision`` / ``actor`` tables.

    Args:
        session: Session on the wiki database.
        yield_per: Rows fetched per round trip during the full scan.
    """

    def __init__(self, session: AsyncSession, yield_per: int = 1000) -> None:
        self._session = session
        self._yield_per = yield_per

    async def fetch_revision_fact(self, revision_id: int) -> Optional[RevisionFact]:
        result = await self._session.execute(
            text(_REVISION_SELECT + "WHERE r.rev_id = :rev_id"),
            {"rev_id": revision_id},
        )
        row = result.mappings().first()
        if row is None:
            logger.debug("revision_not_found", extra={"revision_id": revision_id})
            return None
        return _fact_from_row(row)

    async def iter_revisions(
        self,
        from_page_id: Optional[int] = None,
    ) -> AsyncIterator[RevisionFact]:
        sql = _REVISION_SELECT
        params: dict[str, Any] = {}
        if from_page_id is not None:
            sql += "WHERE r.rev_page >= :from_page_id\n"
            params["from_page_id"] = from_page_id
        sql += "ORDER BY r.rev_page, r.rev_timestamp, r.rev_id"

        result = await self._session.stream(
            text(sql).execution_options(yield_per=self._yield_per),
            params,
        )
        async for row in result.mappings():
            yield _fact_from_row(row)
