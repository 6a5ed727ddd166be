"""Health check route handlers.

``GET /api/health``
    Liveness check that also verifies the contributors database answers
    ``SELECT 1``.  Always returns HTTP 200; the ``status`` field
    distinguishes ``"ok"`` from ``"degraded"``.
"""

from __future__ import annotations

import logging

import sqlalchemy as sa
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wiki_contributors.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_database() -> str:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(sa.text("SELECT 1"))
        return "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        return "error"


@router.get("/api/health")
async def health() -> JSONResponse:
    """Report process and database health."""
    database = await _check_database()
    overall = "ok" if database == "ok" else "degraded"
    return JSONResponse({"status": overall, "database": database})
