"""
Dashboard summary tiles for the quality gate.

Four independent counts over the deduplicated sessions. Unlike the queue
groups they may overlap (every overdue review is also pending).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from qgate.core.review.classify import is_before_today, is_today, local_now
from qgate.core.review.models import ReviewSession, ReviewStatus
from qgate.core.tasks.models import Task


class SummaryMetric(str, Enum):
    """Summary tiles, each drillable into a detail list."""

    PENDING = "pending"
    PASSED_TODAY = "passed_today"
    REVISE = "revise"
    OVERDUE = "overdue"


def _pending(s: ReviewSession, now: datetime) -> bool:
    return s.status == ReviewStatus.PENDING


def _passed_today(s: ReviewSession, now: datetime) -> bool:
    return s.status == ReviewStatus.PASSED and is_today(s.scheduled_at, now)


def _revise(s: ReviewSession, now: datetime) -> bool:
    return s.status == ReviewStatus.REVISE


def _overdue(s: ReviewSession, now: datetime) -> bool:
    return s.status == ReviewStatus.PENDING and is_before_today(s.scheduled_at, now)


METRIC_PREDICATES: dict[SummaryMetric, Callable[[ReviewSession, datetime], bool]] = {
    SummaryMetric.PENDING: _pending,
    SummaryMetric.PASSED_TODAY: _passed_today,
    SummaryMetric.REVISE: _revise,
    SummaryMetric.OVERDUE: _overdue,
}

# Submitter policy: the first role with anyone in it names the submitter.
SUBMITTER_ROLE_PRIORITY: tuple[tuple[str, Callable[[Task], list[str]]], ...] = (
    ("editor", lambda task: task.editor_ids),
    ("assignee", lambda task: task.assignee_ids),
    ("idea_owner", lambda task: task.idea_owner_ids),
)


def submitter_of(task: Task | None) -> str | None:
    """User id of whoever submitted the task for review, or None."""
    if task is None:
        return None
    for _role, accessor in SUBMITTER_ROLE_PRIORITY:
        ids = accessor(task)
        if ids:
            return ids[0]
    return None


class ReviewSummary(BaseModel):
    """Counts shown on the dashboard tiles."""

    pending: int = 0
    passed_today: int = 0
    revise: int = 0
    overdue: int = 0

    def count(self, metric: SummaryMetric) -> int:
        return getattr(self, metric.value)


class SummaryItem(BaseModel):
    """One row of a drill-down list."""

    session_id: str
    task_id: str
    title: str
    round_label: str
    submitter_id: str | None = None
    submitter_name: str | None = None
    scheduled_at: datetime
    feedback: str | None = None
    caution: str | None = None
    importance: str | None = None
    latest_asset_name: str | None = None
    latest_asset_url: str | None = None


def summarize(sessions: Iterable[ReviewSession], now: datetime | None = None) -> ReviewSummary:
    """Compute the four tile counts."""
    now = now or local_now()
    counts = {metric: 0 for metric in SummaryMetric}
    for session in sessions:
        for metric, predicate in METRIC_PREDICATES.items():
            if predicate(session, now):
                counts[metric] += 1
    return ReviewSummary(**{metric.value: n for metric, n in counts.items()})


def drilldown(
    sessions: Iterable[ReviewSession],
    metric: SummaryMetric,
    now: datetime | None = None,
    user_names: dict[str, str] | None = None,
) -> list[SummaryItem]:
    """
    Detail rows behind one tile, oldest first.

    Args:
        sessions: Deduplicated review sessions
        metric: Tile to expand
        now: Reference time (defaults to now)
        user_names: Optional id -> display name map for submitters
    """
    now = now or local_now()
    predicate = METRIC_PREDICATES[metric]
    names = user_names or {}
    items = []
    for session in sorted(sessions, key=lambda s: s.scheduled_at.timestamp()):
        if not predicate(session, now):
            continue
        task = session.task
        submitter = submitter_of(task)
        asset = task.latest_asset if task is not None else None
        items.append(
            SummaryItem(
                session_id=session.id,
                task_id=session.task_id,
                title=session.title,
                round_label=session.round_label,
                submitter_id=submitter,
                submitter_name=names.get(submitter) if submitter else None,
                scheduled_at=session.scheduled_at,
                feedback=session.feedback or None,
                caution=task.caution if task is not None else None,
                importance=task.importance if task is not None else None,
                latest_asset_name=asset.name if asset and asset.name else None,
                latest_asset_url=asset.url if asset and asset.url else None,
            )
        )
    return items
