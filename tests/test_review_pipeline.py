"""
Unit tests for enrichment and deduplication.

Tests live/cached/None task resolution, immutability of inputs, and the
latest-round-per-task rule.
"""

import logging

from qgate.core.review import deduplicate, enrich_sessions, index_tasks, resolve_task
from qgate.core.review.models import UNKNOWN_TASK_TITLE

# ==============================================================================
# Enrichment
# ==============================================================================


class TestResolveTask:
    """Test task resolution precedence."""

    def test_live_task_wins(self, make_session, make_task):
        session = make_session(task=make_task("t-1", title="Old title"))
        live = make_task("t-1", title="New title")
        assert resolve_task(session, {"t-1": live}).title == "New title"

    def test_cached_snapshot_is_fallback(self, make_session, make_task):
        session = make_session(task=make_task("t-1", title="Cached"))
        assert resolve_task(session, {}).title == "Cached"

    def test_none_when_nothing_known(self, make_session):
        session = make_session(task=None)
        assert resolve_task(session, {}) is None


class TestEnrichSessions:
    """Test the enrichment projection."""

    def test_replaces_task_with_live_record(self, make_session, make_task):
        sessions = [make_session("rv-1", "t-1"), make_session("rv-2", "t-2")]
        live = [make_task("t-1", title="Live one")]
        enriched = enrich_sessions(sessions, live)
        assert enriched[0].task.title == "Live one"
        assert enriched[1].task.title == "Task t-2"

    def test_accepts_mapping(self, make_session, make_task):
        live = index_tasks([make_task("t-1", title="Mapped")])
        enriched = enrich_sessions([make_session()], live)
        assert enriched[0].task.title == "Mapped"

    def test_does_not_mutate_input(self, make_session, make_task):
        session = make_session(task=make_task("t-1", title="Before"))
        enrich_sessions([session], [make_task("t-1", title="After")])
        assert session.task.title == "Before"

    def test_unknown_task_title(self, make_session):
        enriched = enrich_sessions([make_session(task=None)], [])
        assert enriched[0].task is None
        assert enriched[0].title == UNKNOWN_TASK_TITLE


# ==============================================================================
# Deduplication
# ==============================================================================


class TestDeduplicate:
    """Test the latest-round-per-task rule."""

    def test_keeps_highest_round(self, make_session):
        sessions = [
            make_session("rv-1", "t-1", round=1),
            make_session("rv-3", "t-1", round=3),
            make_session("rv-2", "t-1", round=2),
        ]
        result = deduplicate(sessions)
        assert [s.id for s in result] == ["rv-3"]

    def test_one_session_per_task(self, make_session):
        sessions = [
            make_session("rv-a1", "t-a", round=1),
            make_session("rv-b1", "t-b", round=1),
            make_session("rv-a2", "t-a", round=2),
        ]
        result = deduplicate(sessions)
        assert [s.id for s in result] == ["rv-a2", "rv-b1"]

    def test_drops_sessions_without_task(self, make_session):
        sessions = [make_session("rv-1", "t-1", task=None), make_session("rv-2", "t-2")]
        assert [s.id for s in deduplicate(sessions)] == ["rv-2"]

    def test_equal_rounds_last_seen_wins(self, make_session, caplog):
        sessions = [
            make_session("rv-first", "t-1", round=2),
            make_session("rv-second", "t-1", round=2),
        ]
        with caplog.at_level(logging.WARNING, logger="qgate.core.review.dedup"):
            result = deduplicate(sessions)
        assert [s.id for s in result] == ["rv-second"]
        assert "Duplicate round" in caplog.text

    def test_idempotent(self, make_session):
        sessions = [
            make_session("rv-a1", "t-a", round=1),
            make_session("rv-b2", "t-b", round=2),
            make_session("rv-a2", "t-a", round=2),
            make_session("rv-b1", "t-b", round=1),
            make_session("rv-c1", "t-c", round=1, task=None),
        ]
        once = deduplicate(sessions)
        assert deduplicate(once) == once

    def test_empty(self):
        assert deduplicate([]) == []
