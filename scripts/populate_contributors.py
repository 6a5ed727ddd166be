#!/usr/bin/env python
"""Populate the contributors table from the full revision history.

Run after the ``contributors`` table has been created (Alembic migrations
applied) to fill it for existing pages, or at any time to repair it.
Pages are committed one at a time; if the run is interrupted, rerun it with
``--from-page-id`` set to the last page reported to resume.

Usage::

    python scripts/populate_contributors.py
    python scripts/populate_contributors.py --from-page-id 12345

Environment variables (via .env or shell)::

    DATABASE_URL       DSN of the database holding the contributors table.
    WIKI_DATABASE_URL  DSN of the wiki revision tables (optional).

Exit codes:
    0 — Success (including "nothing to do").
    1 — Database error.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Optional

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _populate(from_page_id: Optional[int]) -> dict[str, int]:
    """Run the rebuild and return its counters."""
    from wiki_contributors.core.database import dispose_engines  # noqa: PLC0415
    from wiki_contributors.workers._task_helpers import rebuild_contributors  # noqa: PLC0415

    try:
        return await rebuild_contributors(from_page_id)
    finally:
        await dispose_engines()


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the populate script."""
    parser = argparse.ArgumentParser(description="Populate the contributors table.")
    parser.add_argument(
        "--from-page-id",
        type=int,
        default=None,
        help="Skip pages with a lower id (resume an interrupted run).",
    )
    args = parser.parse_args(argv)

    from wiki_contributors.config.settings import get_settings  # noqa: PLC0415
    from wiki_contributors.core.exceptions import ContributorsError  # noqa: PLC0415
    from wiki_contributors.core.logging_config import configure_logging  # noqa: PLC0415
    from sqlalchemy.exc import SQLAlchemyError  # noqa: PLC0415

    configure_logging(get_settings().log_level)

    print("[populate_contributors] Started processing..")
    try:
        summary = asyncio.run(_populate(args.from_page_id))
    except (ContributorsError, SQLAlchemyError) as exc:
        print(f"[populate_contributors] ERROR: {exc}", file=sys.stderr)
        return 1

    if not summary["revisions_scanned"]:
        print("[populate_contributors] Nothing to do.")
        return 0

    print(
        f"[populate_contributors] Processed {summary['pages_processed']} page(s), "
        f"{summary['contributors_written']} contributor(s) from "
        f"{summary['revisions_scanned']} revision(s)."
    )
    print("[populate_contributors] Process finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
