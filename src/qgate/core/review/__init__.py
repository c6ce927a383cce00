"""
Quality gate review module.

Pure projections over review sessions (enrichment, deduplication,
classification, summary) and the dispatcher that applies PASS/REVISE
decisions through the store ports.
"""

from qgate.core.review.classify import (
    ClassifiedReviews,
    DateScope,
    ReviewGroup,
    ReviewGroupKey,
    ReviewQuery,
    classify,
)
from qgate.core.review.dedup import deduplicate
from qgate.core.review.dispatcher import ReviewDispatcher, role_union
from qgate.core.review.enrichment import enrich_sessions, index_tasks, resolve_task
from qgate.core.review.exceptions import (
    ActionInProgressError,
    AuthorizationError,
    FeedbackRequiredError,
    GateError,
    InvalidTransitionError,
    MissingTaskError,
    PersistenceError,
    SessionNotFoundError,
)
from qgate.core.review.models import (
    ActionPayload,
    DispatchOutcome,
    ReviewAction,
    ReviewSession,
    ReviewStatus,
    compose_feedback,
)
from qgate.core.review.permissions import can_review
from qgate.core.review.service import QualityGateService, ReviewBoard
from qgate.core.review.summary import (
    ReviewSummary,
    SummaryItem,
    SummaryMetric,
    drilldown,
    submitter_of,
    summarize,
)

__all__ = [
    "ActionInProgressError",
    "ActionPayload",
    "AuthorizationError",
    "ClassifiedReviews",
    "DateScope",
    "DispatchOutcome",
    "FeedbackRequiredError",
    "GateError",
    "InvalidTransitionError",
    "MissingTaskError",
    "PersistenceError",
    "QualityGateService",
    "ReviewAction",
    "ReviewBoard",
    "ReviewDispatcher",
    "ReviewGroup",
    "ReviewGroupKey",
    "ReviewQuery",
    "ReviewSession",
    "ReviewStatus",
    "ReviewSummary",
    "SessionNotFoundError",
    "SummaryItem",
    "SummaryMetric",
    "can_review",
    "classify",
    "compose_feedback",
    "deduplicate",
    "drilldown",
    "enrich_sessions",
    "index_tasks",
    "resolve_task",
    "role_union",
    "submitter_of",
    "summarize",
]
