"""Celery application for revision event processing.

Configures the broker, result backend and serialization from ``Settings``.

Usage (starting a worker)::

    celery -A wiki_contributors.workers.celery_app worker --loglevel=info

Usage (publishing an event from the wiki side)::

    from wiki_contributors.workers.celery_app import celery_app

    celery_app.send_task(
        "wiki_contributors.workers.tasks.record_revision",
        kwargs={"event": {"revision_id": 12, "page_id": 3, ...}},
    )
"""

from __future__ import annotations

from celery import Celery
from celery.signals import task_postrun, worker_process_init
from dotenv import load_dotenv

from wiki_contributors.config.settings import get_settings
from wiki_contributors.core.logging_config import configure_logging

load_dotenv()

settings = get_settings()

celery_app = Celery(
    "wiki_contributors",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["wiki_contributors.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Acknowledge after completion so a crashed worker does not drop an event.
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86_400,
    task_max_retries=3,
    task_routes={
        "wiki_contributors.workers.tasks.rebuild_contributors": {
            "queue": "maintenance",
            "soft_time_limit": 43_200,
            "time_limit": 46_800,
        },
    },
)


@worker_process_init.connect
def _configure_worker_process(**kwargs: object) -> None:  # noqa: ARG001
    """Configure logging and drop inherited pooled connections after fork."""
    configure_logging(settings.log_level)
    from wiki_contributors.core import database as _db  # noqa: PLC0415

    _db.reset_engine_pools()


@task_postrun.connect
def _dispose_engines_after_task(**kwargs: object) -> None:  # noqa: ARG001
    """Dispose pooled connections after each task.

    Each task body runs its own ``asyncio.run()``; asyncpg connections left
    in the pool stay bound to that finished event loop.
    """
    from wiki_contributors.core import database as _db  # noqa: PLC0415

    _db.reset_engine_pools()
