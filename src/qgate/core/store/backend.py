"""
Store ports consumed by the quality gate.

The review list, tasks and user profiles are owned by an external backend.
The gate talks to it through these protocols, which lets the dispatcher run
against the in-memory store in tests, the JSON store from the CLI, or a
remote backend in the planner app.

All data methods are async: each call is one awaited round trip and the
dispatcher never issues two writes for the same review concurrently.
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from qgate.core.review.models import ReviewSession, ReviewStatus
from qgate.core.tasks.models import Task

ChangeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class ReviewStore(Protocol):
    """
    Source of review sessions and sink for review decisions.
    """

    async def list_reviews(self) -> list[ReviewSession]:
        """
        Fetch every stored review session, including dominated rounds.

        Returns:
            Raw sessions with whatever task snapshot the store attached
        """
        ...

    async def get_review(self, session_id: str) -> ReviewSession | None:
        """
        Fetch one review session.

        Args:
            session_id: Review identifier

        Returns:
            The session, or None if it does not exist
        """
        ...

    async def update_review_status(
        self,
        session_id: str,
        status: ReviewStatus,
        reviewer_id: str | None,
        feedback: str | None = None,
    ) -> bool:
        """
        Persist a review decision.

        Implementations must re-check that ``reviewer_id`` may review.

        Args:
            session_id: Review to update
            status: New status
            reviewer_id: Acting reviewer (None when restoring a review)
            feedback: Feedback text to store

        Returns:
            True if the write was applied
        """
        ...

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """
        Register a callback fired after the review list changes.

        Returns:
            A function that removes the callback
        """
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Live task records (read) and task workflow status (write)."""

    async def list_tasks(self) -> list[Task]:
        """Fetch all live tasks."""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch one live task, or None if it does not exist."""
        ...

    async def set_task_workflow_status(self, task_id: str, status: str) -> None:
        """
        Move a task to a workflow status.

        Raises:
            Exception: Any failure; the dispatcher treats it as a failed write
        """
        ...


@runtime_checkable
class XPAwarder(Protocol):
    """Gamification side effect invoked when a review passes."""

    async def award_xp(self, user_ids: list[str], amount: int) -> None:
        """Add ``amount`` XP to each user in ``user_ids``."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Notification delivery for review outcomes."""

    async def notify(
        self, user_ids: list[str], title: str, message: str, related_id: str
    ) -> None:
        """Send one notification to each user."""
        ...


@runtime_checkable
class TaskLog(Protocol):
    """Task history, shown on the task's activity tab."""

    async def append_task_log(
        self, task_id: str, action: str, details: str, user_id: str | None
    ) -> None:
        """Append one entry to a task's history."""
        ...
