"""
Tests for Rich and JSON rendering of queue output.
"""

import io
import json
from datetime import timedelta

import pytest
from rich.console import Console

from qgate.core.grading import compute_grade
from qgate.core.review import (
    DispatchOutcome,
    ReviewAction,
    ReviewQuery,
    ReviewStatus,
    SummaryMetric,
    classify,
    drilldown,
    summarize,
)
from qgate.core.review.formatter import queue_to_json
from qgate.core.review.reporter import QueueReporter
from qgate.core.tasks.models import Task


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    console = Console(file=output, width=120, force_terminal=False)
    return QueueReporter(console, channel_names={"ch-main": "Main Channel"}, user_names={"u-a": "Ann"})


class TestQueueReporter:
    """Test terminal rendering."""

    def test_collapsed_group_shows_count_only(self, reporter, output, make_session, now):
        sessions = [
            make_session("rv-today", "t-1", scheduled_at=now),
            make_session("rv-later", "t-2", scheduled_at=now + timedelta(days=3)),
        ]
        reporter.render_queue(classify(sessions, ReviewQuery(now=now)))
        text = output.getvalue()
        assert "Today (1)" in text
        assert "rv-today" in text
        assert "Main Channel" in text
        assert "Upcoming (1)" in text
        assert "rv-later" not in text

    def test_expand_all(self, reporter, output, make_session, now):
        sessions = [make_session("rv-later", "t-2", scheduled_at=now + timedelta(days=3))]
        reporter.render_queue(classify(sessions, ReviewQuery(now=now)), expand_all=True)
        assert "rv-later" in output.getvalue()

    def test_empty_queue(self, reporter, output, now):
        reporter.render_queue(classify([], ReviewQuery(now=now)))
        assert "No reviews match" in output.getvalue()

    def test_summary_and_drilldown(self, reporter, output, make_session, make_task, now):
        sessions = [
            make_session(
                "rv-1",
                "t-1",
                scheduled_at=now - timedelta(days=1),
                task=make_task("t-1", title="Late vlog", assignee_ids=["u-a"]),
            )
        ]
        reporter.render_summary(summarize(sessions, now))
        items = drilldown(sessions, SummaryMetric.OVERDUE, now, {"u-a": "Ann"})
        reporter.render_drilldown(SummaryMetric.OVERDUE, items)
        text = output.getvalue()
        assert "Overdue:" in text
        assert "Late vlog" in text
        assert "Ann" in text

    def test_grade(self, reporter, output):
        computation = compute_grade(Task(id="t", difficulty="HARD", estimated_hours=5), 50)
        reporter.render_grade("Night market", computation)
        text = output.getvalue()
        assert "450" in text
        assert "+50" in text

    def test_outcome(self, reporter, output):
        outcome = DispatchOutcome(
            session_id="rv-1",
            action=ReviewAction.PASS,
            success=True,
            status=ReviewStatus.PASSED,
            awarded_xp=280,
            awarded_user_ids=["u-a"],
        )
        reporter.render_outcome(outcome)
        assert "+280 XP to Ann" in output.getvalue()


@pytest.fixture
def hinted_task(make_task):
    """Task carrying reviewer hints and two drafts, the newer one last."""
    return make_task(
        "t-1",
        title="Night market",
        caution="Blur faces",
        importance="Check subtitles",
        assets=[
            {"id": "a-1", "name": "v1.mp4", "url": "https://drive.example/v1"},
            {"id": "a-2", "name": "v2.mp4", "url": "https://drive.example/v2"},
        ],
    )


class TestReviewerHints:
    """Test caution, key point and latest draft rendering."""

    def test_queue_shows_hints_and_latest_draft(
        self, reporter, output, make_session, hinted_task, now
    ):
        sessions = [make_session("rv-1", "t-1", scheduled_at=now, task=hinted_task)]
        reporter.render_queue(classify(sessions, ReviewQuery(now=now)))
        text = output.getvalue()
        assert "caution: Blur faces" in text
        assert "key point: Check subtitles" in text
        assert "v2.mp4" in text
        assert "https://drive.example/v2" in text
        assert "v1.mp4" not in text
        assert "no file attached" not in text

    def test_queue_without_asset(self, reporter, output, make_session, now):
        reporter.render_queue(classify([make_session("rv-1", "t-1")], ReviewQuery(now=now)))
        text = output.getvalue()
        assert "(no file attached)" in text
        assert "caution" not in text

    def test_draft_url_is_hyperlinked(self, make_session, hinted_task, now):
        output = io.StringIO()
        console = Console(file=output, width=160, force_terminal=True, color_system="standard")
        sessions = [make_session("rv-1", "t-1", scheduled_at=now, task=hinted_task)]
        QueueReporter(console).render_queue(classify(sessions, ReviewQuery(now=now)))
        # OSC 8 hyperlink escape carrying the target URL
        assert "\x1b]8;" in output.getvalue()
        assert "https://drive.example/v2" in output.getvalue()

    def test_drilldown_shows_hints(self, reporter, output, make_session, hinted_task, now):
        sessions = [
            make_session("rv-1", "t-1", scheduled_at=now - timedelta(days=1), task=hinted_task)
        ]
        items = drilldown(sessions, SummaryMetric.OVERDUE, now)
        assert items[0].caution == "Blur faces"
        assert items[0].importance == "Check subtitles"
        assert items[0].latest_asset_name == "v2.mp4"
        assert items[0].latest_asset_url == "https://drive.example/v2"

        reporter.render_drilldown(SummaryMetric.OVERDUE, items)
        text = output.getvalue()
        assert "caution: Blur faces" in text
        assert "key point: Check subtitles" in text
        assert "draft: v2.mp4 https://drive.example/v2" in text

    def test_markup_in_titles_is_literal(self, reporter, output, make_session, make_task, now):
        task = make_task("t-1", title="[bold]Promo[/bold]")
        items = drilldown([make_session("rv-1", "t-1", task=task)], SummaryMetric.PENDING, now)
        reporter.render_drilldown(SummaryMetric.PENDING, items)
        assert "[bold]Promo[/bold]" in output.getvalue()


class TestQueueJson:
    """Test JSON queue output."""

    def test_groups_in_order(self, make_session, now):
        sessions = [make_session("rv-1", "t-1", scheduled_at=now - timedelta(days=1))]
        data = json.loads(queue_to_json(classify(sessions, ReviewQuery(now=now))))
        assert [g["key"] for g in data["groups"]] == ["critical", "revise", "today", "upcoming"]
        assert data["groups"][0]["reviews"][0]["id"] == "rv-1"
        assert data["groups"][0]["reviews"][0]["channel_id"] == "ch-main"

    def test_rows_carry_reviewer_hints(self, make_session, hinted_task, now):
        sessions = [make_session("rv-1", "t-1", scheduled_at=now, task=hinted_task)]
        data = json.loads(queue_to_json(classify(sessions, ReviewQuery(now=now))))
        row = data["groups"][2]["reviews"][0]
        assert row["caution"] == "Blur faces"
        assert row["importance"] == "Check subtitles"
        assert row["latest_asset"] == {"name": "v2.mp4", "url": "https://drive.example/v2"}

    def test_row_without_task(self, make_session, now):
        sessions = [make_session("rv-1", "t-gone", scheduled_at=now, task=None)]
        data = json.loads(queue_to_json(classify(sessions, ReviewQuery(now=now))))
        row = data["groups"][2]["reviews"][0]
        assert row["title"] == "Unknown Task"
        assert row["caution"] is None
        assert row["latest_asset"] is None
