"""FastAPI dependency injection providers.

Dependency hierarchy::

    get_db                    — store session (core.database)
    get_permission_checker    — checker installed on ``app.state``
    get_contributors_config   — listing preferences from settings
    get_contributors_query    — ContributorsQuery wired from the three above
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from wiki_contributors.config.contributors import ContributorsConfig
from wiki_contributors.config.settings import get_settings
from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.contributors_query import ContributorsQuery, PermissionChecker
from wiki_contributors.core.database import get_db


def get_permission_checker(request: Request) -> PermissionChecker:
    return request.app.state.permission_checker


def get_contributors_config() -> ContributorsConfig:
    return ContributorsConfig.from_settings(get_settings())


def get_contributors_query(
    db: Annotated[AsyncSession, Depends(get_db)],
    permission_checker: Annotated[PermissionChecker, Depends(get_permission_checker)],
    config: Annotated[ContributorsConfig, Depends(get_contributors_config)],
) -> ContributorsQuery:
    """Build a :class:`ContributorsQuery` bound to the request's session."""
    return ContributorsQuery(ContributorStore(db), config, permission_checker)
