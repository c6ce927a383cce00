"""
Quality gate service.

Wires the store ports to the projection pipeline:

    raw sessions -> enrich -> deduplicate -> classify / summarize

Nothing is cached between calls. Each snapshot() re-fetches from the
stores, so the projections can never drift from the backend.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from qgate.core.config.models import GateConfig
from qgate.core.review.classify import (
    ClassifiedReviews,
    ReviewGroupKey,
    ReviewQuery,
    classify,
    local_now,
)
from qgate.core.review.dedup import deduplicate
from qgate.core.review.dispatcher import ReviewDispatcher
from qgate.core.review.enrichment import enrich_sessions
from qgate.core.review.models import ReviewSession
from qgate.core.review.summary import ReviewSummary, SummaryItem, SummaryMetric, drilldown, summarize
from qgate.core.tasks.models import Task, User

if TYPE_CHECKING:
    from qgate.core.store.backend import Notifier, ReviewStore, TaskLog, TaskStore, XPAwarder
    from qgate.utils.logging import GateLogger

logger = logging.getLogger(__name__)


class ReviewBoard(BaseModel):
    """Deduplicated sessions plus the live tasks they were joined with."""

    sessions: list[ReviewSession] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    fetched_at: datetime

    def classify(self, query: ReviewQuery | None = None) -> ClassifiedReviews:
        query = query or ReviewQuery()
        if query.now is None:
            query = query.model_copy(update={"now": self.fetched_at})
        return classify(self.sessions, query)

    def summary(self) -> ReviewSummary:
        return summarize(self.sessions, self.fetched_at)

    def drilldown(
        self, metric: SummaryMetric, user_names: dict[str, str] | None = None
    ) -> list[SummaryItem]:
        return drilldown(self.sessions, metric, self.fetched_at, user_names)

    def find(self, session_id: str) -> ReviewSession | None:
        return next((s for s in self.sessions if s.id == session_id), None)


class QualityGateService:
    """Read side of the gate plus a factory for per-user dispatchers."""

    def __init__(
        self,
        *,
        reviews: ReviewStore,
        tasks: TaskStore,
        xp: XPAwarder,
        notifier: Notifier | None = None,
        task_log: TaskLog | None = None,
        config: GateConfig | None = None,
        gate_log: GateLogger | None = None,
    ) -> None:
        self.reviews = reviews
        self.tasks = tasks
        self.xp = xp
        self.notifier = notifier
        self.task_log = task_log
        self.config = config or GateConfig()
        self.gate_log = gate_log

    async def snapshot(self, now: datetime | None = None) -> ReviewBoard:
        """Fetch raw sessions and live tasks and run enrichment + dedup."""
        raw = await self.reviews.list_reviews()
        live = await self.tasks.list_tasks()
        sessions = deduplicate(enrich_sessions(raw, live))
        logger.debug("Snapshot: %d raw sessions -> %d active", len(raw), len(sessions))
        return ReviewBoard(sessions=sessions, tasks=live, fetched_at=now or local_now())

    def default_query(self) -> ReviewQuery:
        """Empty query with the configured collapsed groups."""
        collapsed = frozenset(
            ReviewGroupKey(name)
            for name in self.config.review.collapsed_groups
            if name in {k.value for k in ReviewGroupKey}
        )
        return ReviewQuery(collapsed=collapsed)

    def dispatcher_for(self, user: User) -> ReviewDispatcher:
        return ReviewDispatcher(
            reviews=self.reviews,
            tasks=self.tasks,
            xp=self.xp,
            current_user=user,
            notifier=self.notifier,
            task_log=self.task_log,
            config=self.config,
            gate_log=self.gate_log,
        )

    def watch(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` whenever the review list changes; returns an unsubscribe function."""
        return self.reviews.subscribe(callback)
