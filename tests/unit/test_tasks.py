"""Unit tests for the Celery task wrappers in workers/tasks.py.

Tasks are called directly (eagerly, in-process); the async helpers they
wrap are replaced with ``AsyncMock`` objects.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from wiki_contributors.workers import tasks

_HELPERS = "wiki_contributors.workers._task_helpers"


class TestRecordRevisionTask:
    def test_returns_applied_flag(self) -> None:
        with patch(f"{_HELPERS}.record_revision", AsyncMock(return_value=True)) as helper:
            result = tasks.record_revision({"revision_id": 3, "page_id": 1})

        helper.assert_awaited_once_with({"revision_id": 3, "page_id": 1})
        assert result == {"revision_id": 3, "applied": True}

    def test_invalid_payload_is_not_retried(self) -> None:
        result = tasks.record_revision({"revision_id": 3})

        assert result == {"revision_id": 3, "applied": False, "error": "invalid_payload"}


class TestReconcileVisibilityTask:
    def test_returns_transitions(self) -> None:
        transitions = {"5": "attribution_removed"}
        with patch(f"{_HELPERS}.reconcile_visibility", AsyncMock(return_value=transitions)):
            result = tasks.reconcile_visibility({"page_id": 1})

        assert result == {"page_id": 1, "transitions": transitions}

    def test_invalid_payload_is_reported(self) -> None:
        result = tasks.reconcile_visibility({"page_id": 1, "change_map": "nonsense"})

        assert result["error"] == "invalid_payload"
        assert result["transitions"] == {}


class TestRebuildContributorsTask:
    def test_adds_elapsed_seconds(self) -> None:
        summary = {
            "pages_processed": 1,
            "contributors_written": 1,
            "revisions_scanned": 1,
            "revisions_skipped": 0,
        }
        with patch(f"{_HELPERS}.rebuild_contributors", AsyncMock(return_value=dict(summary))) as helper:
            result = tasks.rebuild_contributors(from_page_id=5)

        helper.assert_awaited_once_with(5)
        assert result["pages_processed"] == 1
        assert "elapsed_seconds" in result

    def test_task_routes_rebuild_to_maintenance_queue(self) -> None:
        routes = tasks.celery_app.conf.task_routes

        assert routes["wiki_contributors.workers.tasks.rebuild_contributors"]["queue"] == "maintenance"
