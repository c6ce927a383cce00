"""
Review models for the quality gate.

A ReviewSession is one submission-and-decision round for one task. Rounds
increase per task; only the highest round is acted on.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from qgate.core.grading.engine import GradeComputation
from qgate.core.tasks.models import Task

UNKNOWN_TASK_TITLE = "Unknown Task"


class ReviewStatus(str, Enum):
    """Review round status. PENDING -> PASSED | REVISE."""

    PENDING = "PENDING"
    PASSED = "PASSED"
    REVISE = "REVISE"


class ReviewAction(str, Enum):
    """Actions a reviewer can take on a pending round."""

    PASS = "PASS"
    REVISE = "REVISE"


class ReviewSession(BaseModel):
    """One review round for one task."""

    id: str = Field(..., description="Unique review identifier")
    task_id: str = Field(..., alias="taskId", description="Owning task (weak reference)")
    round: int = Field(..., ge=1, description="Submission round, increasing per task")
    scheduled_at: datetime = Field(..., alias="scheduledAt")
    status: ReviewStatus = Field(default=ReviewStatus.PENDING)
    reviewer_id: str | None = Field(default=None, alias="reviewerId")
    feedback: str | None = Field(default=None)
    task: Task | None = Field(default=None, description="Attached snapshot, may be stale")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def round_label(self) -> str:
        return f"Draft {self.round}"

    @property
    def title(self) -> str:
        """Task title, or the placeholder used when the task is unknown."""
        if self.task is None or not self.task.title:
            return UNKNOWN_TASK_TITLE
        return self.task.title

    @property
    def is_actionable(self) -> bool:
        return self.status == ReviewStatus.PENDING and self.task is not None


class ActionPayload(BaseModel):
    """Reviewer input submitted with an action."""

    adjustment_xp: int = Field(default=0, description="PASS only; any integer")
    feedback: str | None = Field(default=None)
    quick_reasons: list[str] = Field(default_factory=list, description="REVISE only")


class DispatchOutcome(BaseModel):
    """Result of one dispatched action, as reported back to the caller."""

    session_id: str
    action: ReviewAction
    success: bool
    status: ReviewStatus | None = Field(
        default=None, description="Status the review ended in (unchanged on failure)"
    )
    grade: GradeComputation | None = None
    awarded_xp: int | None = None
    awarded_user_ids: list[str] = Field(default_factory=list)
    error: str | None = None
    error_type: str | None = None


def compose_feedback(quick_reasons: list[str] | None, text: str | None) -> str | None:
    """
    Join canned reasons and free text into one feedback message.

    Returns None when nothing was entered.

    Example:
        >>> compose_feedback(["Audio too quiet"], "see 02:10")
        'Audio too quiet; see 02:10'
    """
    parts = [r.strip() for r in (quick_reasons or []) if r and r.strip()]
    if text and text.strip():
        parts.append(text.strip())
    return "; ".join(parts) or None
