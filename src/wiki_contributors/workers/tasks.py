"""Celery tasks consuming wiki revision events.

- ``record_revision``: a revision was saved.
- ``reconcile_visibility``: the visibility of revisions of a page changed.
- ``rebuild_contributors``: recompute the table from full history.

Store failures are retried with exponential backoff; an event is only
acknowledged once it has been applied (``task_acks_late``).  Invalid
payloads are rejected without retry.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from wiki_contributors.core.exceptions import ContributorStoreError
from wiki_contributors.workers import _task_helpers
from wiki_contributors.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


@celery_app.task(
    name="wiki_contributors.workers.tasks.record_revision",
    max_retries=5,
    autoretry_for=(ContributorStoreError,),
    retry_backoff=True,
    retry_backoff_max=300,
)
def record_revision(event: dict[str, Any]) -> dict[str, Any]:
    """Count a newly saved revision towards its author's contributor row.

    Args:
        event: ``RevisionCreatedEvent`` payload.

    Returns:
        Dict with ``revision_id`` and ``applied``.
    """
    log = logger.bind(task="record_revision", revision_id=event.get("revision_id"))
    try:
        applied = asyncio.run(_task_helpers.record_revision(event))
    except ValidationError as exc:
        log.error("record_revision: invalid payload", error=str(exc))
        return {
            "revision_id": event.get("revision_id"),
            "applied": False,
            "error": "invalid_payload",
        }
    log.info("record_revision: done", applied=applied)
    return {"revision_id": event.get("revision_id"), "applied": applied}


@celery_app.task(
    name="wiki_contributors.workers.tasks.reconcile_visibility",
    max_retries=5,
    autoretry_for=(ContributorStoreError,),
    retry_backoff=True,
    retry_backoff_max=300,
)
def reconcile_visibility(event: dict[str, Any]) -> dict[str, Any]:
    """Adjust contributor rows after revisions of a page were hidden or restored.

    Args:
        event: ``VisibilityChangedEvent`` payload.

    Returns:
        Dict with ``page_id`` and the ``transitions`` applied per revision.
    """
    log = logger.bind(task="reconcile_visibility", page_id=event.get("page_id"))
    try:
        transitions = asyncio.run(_task_helpers.reconcile_visibility(event))
    except ValidationError as exc:
        log.error("reconcile_visibility: invalid payload", error=str(exc))
        return {"page_id": event.get("page_id"), "transitions": {}, "error": "invalid_payload"}
    log.info("reconcile_visibility: done", revisions=len(transitions))
    return {"page_id": event.get("page_id"), "transitions": transitions}


@celery_app.task(name="wiki_contributors.workers.tasks.rebuild_contributors")
def rebuild_contributors(from_page_id: Optional[int] = None) -> dict[str, Any]:
    """Recompute contributor rows from the full revision history.

    Not retried automatically: a failed rebuild keeps every page flushed
    before the failure, and is resumed by calling again with
    ``from_page_id``.

    Returns:
        Rebuild counters plus ``elapsed_seconds``.
    """
    task_start = time.perf_counter()
    log = logger.bind(task="rebuild_contributors", from_page_id=from_page_id)
    log.info("rebuild_contributors: starting")

    summary: dict[str, Any] = asyncio.run(_task_helpers.rebuild_contributors(from_page_id))
    summary["elapsed_seconds"] = round(time.perf_counter() - task_start, 2)

    log.info("rebuild_contributors: complete", **summary)
    return summary
