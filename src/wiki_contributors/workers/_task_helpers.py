"""Async helpers behind the Celery tasks in ``workers/tasks.py``.

Kept apart from the task module so they can be unit-tested without
importing the Celery application.  Each helper opens its own sessions and
closes them before returning: task bodies call these through
``asyncio.run()``, so every invocation starts on a fresh event loop.
"""

from __future__ import annotations

from typing import Any, Optional

from wiki_contributors.config.settings import get_settings
from wiki_contributors.core.aggregator import ContributorAggregator
from wiki_contributors.core.contributor_store import ContributorStore
from wiki_contributors.core.database import AsyncSessionLocal, RevisionSessionLocal
from wiki_contributors.core.events import ContributorEvents
from wiki_contributors.core.rebuild import BulkRebuilder
from wiki_contributors.core.revision_log import MediaWikiRevisionLog
from wiki_contributors.core.schemas.contributors import (
    RevisionCreatedEvent,
    VisibilityChangedEvent,
)


async def record_revision(payload: dict[str, Any]) -> bool:
    """Apply one "revision saved" event.

    Args:
        payload: JSON body matching :class:`RevisionCreatedEvent`.

    Returns:
        ``True`` if a contributor row was written.
    """
    event = RevisionCreatedEvent.model_validate(payload)
    async with AsyncSessionLocal() as session:
        aggregator = ContributorAggregator(ContributorStore(session))
        return await aggregator.apply_new_revision(event.to_fact())


async def reconcile_visibility(payload: dict[str, Any]) -> dict[str, str]:
    """Apply one batched "visibility changed" event.

    Args:
        payload: JSON body matching :class:`VisibilityChangedEvent`.

    Returns:
        Transition name per revision id (ids as strings, JSON-safe).
    """
    event = VisibilityChangedEvent.model_validate(payload)
    async with AsyncSessionLocal() as session, RevisionSessionLocal() as revision_session:
        events = ContributorEvents(
            ContributorStore(session),
            MediaWikiRevisionLog(revision_session),
        )
        applied = await events.reconciler.apply_visibility_changes(
            event.page_id, event.revision_ids, event.changes()
        )
    return {str(revision_id): transition.value for revision_id, transition in applied.items()}


async def rebuild_contributors(from_page_id: Optional[int] = None) -> dict[str, int]:
    """Run a full rebuild of the contributors table.

    The revision scan and the store writes use separate sessions so that
    per-page commits never interrupt the streaming cursor.

    Returns:
        The :class:`~wiki_contributors.core.rebuild.RebuildSummary` as a dict.
    """
    settings = get_settings()
    async with AsyncSessionLocal() as session, RevisionSessionLocal() as revision_session:
        rebuilder = BulkRebuilder(
            ContributorStore(session),
            MediaWikiRevisionLog(revision_session, yield_per=settings.rebuild_yield_per),
        )
        summary = await rebuilder.rebuild_all(from_page_id=from_page_id)
    return summary.as_dict()
