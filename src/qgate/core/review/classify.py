"""
Urgency classification for the review queue.

All queue filters live in one immutable ReviewQuery; classify() is a pure
function of the deduplicated sessions and that query, so it can be
recomputed on every render.

Groups (fixed render order, mutually exclusive):
    critical  - PENDING, due before today
    revise    - REVISE, any date
    today     - PENDING, due today
    upcoming  - PENDING, due after today
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from qgate.core.review.models import ReviewSession, ReviewStatus


class DateScope(str, Enum):
    """Date-scope selector of the queue."""

    ALL_PENDING = "ALL_PENDING"
    TODAY = "TODAY"
    OVERDUE = "OVERDUE"


class ReviewGroupKey(str, Enum):
    """Urgency buckets, declared in render order."""

    CRITICAL = "critical"
    REVISE = "revise"
    TODAY = "today"
    UPCOMING = "upcoming"

    @property
    def label(self) -> str:
        return _GROUP_LABELS[self]


_GROUP_LABELS = {
    ReviewGroupKey.CRITICAL: "Overdue",
    ReviewGroupKey.REVISE: "Needs Revision",
    ReviewGroupKey.TODAY: "Today",
    ReviewGroupKey.UPCOMING: "Upcoming",
}

GROUP_ORDER: tuple[ReviewGroupKey, ...] = tuple(ReviewGroupKey)
DEFAULT_COLLAPSED: frozenset[ReviewGroupKey] = frozenset({ReviewGroupKey.UPCOMING})


def local_now() -> datetime:
    """Current time as an aware datetime in the local time zone."""
    return datetime.now().astimezone()


def calendar_day(ts: datetime, now: datetime) -> date:
    """Calendar day of ``ts`` as seen from the time zone of ``now``."""
    if ts.tzinfo is not None and now.tzinfo is not None:
        return ts.astimezone(now.tzinfo).date()
    return ts.date()


def is_today(ts: datetime, now: datetime) -> bool:
    return calendar_day(ts, now) == now.date()


def is_before_today(ts: datetime, now: datetime) -> bool:
    """True if ``ts`` falls on a calendar day before today (not merely earlier today)."""
    return calendar_day(ts, now) < now.date()


def is_after_today(ts: datetime, now: datetime) -> bool:
    return calendar_day(ts, now) > now.date()


class ReviewQuery(BaseModel):
    """
    Immutable queue filter state.

    ``channel_id`` None means all channels. ``now`` pins the reference time;
    when None the current local time is used at classification time.
    """

    channel_id: str | None = None
    search: str = ""
    scope: DateScope = DateScope.ALL_PENDING
    collapsed: frozenset[ReviewGroupKey] = Field(default=DEFAULT_COLLAPSED)
    now: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def with_channel(self, channel_id: str | None) -> ReviewQuery:
        return self.model_copy(update={"channel_id": channel_id})

    def with_search(self, search: str) -> ReviewQuery:
        return self.model_copy(update={"search": search})

    def with_scope(self, scope: DateScope) -> ReviewQuery:
        return self.model_copy(update={"scope": scope})

    def toggle_group(self, key: ReviewGroupKey) -> ReviewQuery:
        """Flip one group between collapsed and expanded."""
        return self.model_copy(update={"collapsed": self.collapsed ^ {key}})

    def reference_time(self) -> datetime:
        return self.now if self.now is not None else local_now()


class ReviewGroup(BaseModel):
    """One rendered urgency bucket."""

    key: ReviewGroupKey
    label: str
    sessions: list[ReviewSession] = Field(default_factory=list)
    collapsed: bool = False

    @property
    def count(self) -> int:
        return len(self.sessions)


class ClassifiedReviews(BaseModel):
    """Output of classify(): the filtered list and the four urgency groups."""

    filtered: list[ReviewSession] = Field(default_factory=list)
    critical: list[ReviewSession] = Field(default_factory=list)
    revise: list[ReviewSession] = Field(default_factory=list)
    today: list[ReviewSession] = Field(default_factory=list)
    upcoming: list[ReviewSession] = Field(default_factory=list)
    collapsed: frozenset[ReviewGroupKey] = Field(default=DEFAULT_COLLAPSED)

    def groups(self) -> list[ReviewGroup]:
        """The four groups in render order, with their collapsed flags."""
        return [
            ReviewGroup(
                key=key,
                label=key.label,
                sessions=getattr(self, key.value),
                collapsed=key in self.collapsed,
            )
            for key in GROUP_ORDER
        ]

    @property
    def grouped_count(self) -> int:
        return len(self.critical) + len(self.revise) + len(self.today) + len(self.upcoming)


def _matches_scope(session: ReviewSession, scope: DateScope, now: datetime) -> bool:
    if scope == DateScope.ALL_PENDING:
        return session.status != ReviewStatus.PASSED
    if session.status != ReviewStatus.PENDING:
        return False
    if scope == DateScope.TODAY:
        return is_today(session.scheduled_at, now)
    return is_before_today(session.scheduled_at, now)


def _matches_search(session: ReviewSession, search: str) -> bool:
    if not search:
        return True
    title = session.task.title if session.task is not None else ""
    return search.casefold() in title.casefold()


def _matches_channel(session: ReviewSession, channel_id: str | None) -> bool:
    if channel_id is None:
        return True
    return session.task is not None and session.task.channel_id == channel_id


def group_for(session: ReviewSession, now: datetime) -> ReviewGroupKey | None:
    """Urgency bucket of one session; None for PASSED sessions."""
    if session.status == ReviewStatus.REVISE:
        return ReviewGroupKey.REVISE
    if session.status != ReviewStatus.PENDING:
        return None
    if is_before_today(session.scheduled_at, now):
        return ReviewGroupKey.CRITICAL
    if is_today(session.scheduled_at, now):
        return ReviewGroupKey.TODAY
    return ReviewGroupKey.UPCOMING


def classify(sessions: Iterable[ReviewSession], query: ReviewQuery | None = None) -> ClassifiedReviews:
    """
    Filter sessions and partition them into urgency groups.

    Args:
        sessions: Deduplicated review sessions
        query: Filter state (defaults to an empty ALL_PENDING query)

    Returns:
        ClassifiedReviews; every PENDING or REVISE session in ``filtered``
        lands in exactly one group, ordered oldest first.
    """
    query = query or ReviewQuery()
    now = query.reference_time()

    filtered = sorted(
        (
            s
            for s in sessions
            if _matches_channel(s, query.channel_id)
            and _matches_search(s, query.search)
            and _matches_scope(s, query.scope, now)
        ),
        # timestamp() also orders naive and aware values against each other
        key=lambda s: s.scheduled_at.timestamp(),
    )

    buckets: dict[ReviewGroupKey, list[ReviewSession]] = {key: [] for key in GROUP_ORDER}
    for session in filtered:
        key = group_for(session, now)
        if key is not None:
            buckets[key].append(session)

    return ClassifiedReviews(
        filtered=filtered,
        critical=buckets[ReviewGroupKey.CRITICAL],
        revise=buckets[ReviewGroupKey.REVISE],
        today=buckets[ReviewGroupKey.TODAY],
        upcoming=buckets[ReviewGroupKey.UPCOMING],
        collapsed=query.collapsed,
    )
