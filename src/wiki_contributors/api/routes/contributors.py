"""Contributor listing route handlers.

``GET /api/pages/{page_id}/contributors``
    Contributors of one page, ordered by the configured default column
    (revision count or characters added, descending) unless ``sort`` and
    ``order`` say otherwise.  The requesting user is taken from the
    ``X-Wiki-User`` header; without it the request is anonymous.

An empty list means no contributors have been recorded for the page yet.
A caller the permission check refuses gets HTTP 403.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Header, Query

from wiki_contributors.api.dependencies import get_contributors_query
from wiki_contributors.core.contributors_query import ContributorsQuery
from wiki_contributors.core.schemas.contributors import ContributorRead

router = APIRouter()


@router.get(
    "/pages/{page_id}/contributors",
    response_model=list[ContributorRead],
    summary="List the contributors of a page.",
)
async def list_contributors(
    page_id: int,
    query: Annotated[ContributorsQuery, Depends(get_contributors_query)],
    filter_anonymous: Annotated[
        bool, Query(description="Leave out anonymous (IP) editors.")
    ] = False,
    sort: Annotated[
        Optional[str],
        Query(description="user_text, revision_count or characters_added."),
    ] = None,
    order: Annotated[Literal["asc", "desc"], Query()] = "desc",
    x_wiki_user: Annotated[Optional[str], Header()] = None,
) -> list[ContributorRead]:
    rows = await query.get_contributors(
        page_id,
        x_wiki_user,
        filter_anonymous=filter_anonymous,
        sort=sort,
        descending=order == "desc",
    )
    return [ContributorRead.model_validate(row) for row in rows]
