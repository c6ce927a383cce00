"""
In-memory implementation of every store port.

Used by the test suite and as the base of the JSON file store. Records are
kept as Pydantic models and replaced (never mutated in place) on update, so
sessions handed out earlier stay unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from qgate.core.config.models import PermissionConfig
from qgate.core.grading.engine import level_for_xp
from qgate.core.review.models import ReviewSession, ReviewStatus
from qgate.core.review.permissions import can_review
from qgate.core.store.backend import ChangeCallback, Unsubscribe
from qgate.core.store.models import Notification, TaskLogEntry
from qgate.core.tasks.models import Task, User

logger = logging.getLogger(__name__)


class InMemoryGateStore:
    """
    Review, task, profile, notification and task-log store held in memory.

    Review writes are re-authorized: a move to PASSED or REVISE is refused
    (False is returned) unless ``reviewer_id`` names a known user with the
    reviewer capability. Restoring a review to PENDING needs no reviewer.

    Every mutation is all-or-nothing. Subclasses persist in ``_persist()``;
    if that raises, the in-memory state is put back before the error
    propagates.

    Example:
        >>> store = InMemoryGateStore(tasks=[Task(id="t-1", title="Vlog")])
        >>> store.tasks["t-1"].title
        'Vlog'
    """

    def __init__(
        self,
        *,
        users: Iterable[User] = (),
        tasks: Iterable[Task] = (),
        reviews: Iterable[ReviewSession] = (),
        permissions: PermissionConfig | None = None,
    ) -> None:
        self.users: dict[str, User] = {u.id: u for u in users}
        self.tasks: dict[str, Task] = {t.id: t for t in tasks}
        self.reviews: dict[str, ReviewSession] = {r.id: r for r in reviews}
        self.task_logs: list[TaskLogEntry] = []
        self.notifications: list[Notification] = []
        self.permissions = permissions
        self._subscribers: list[ChangeCallback] = []

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> None:
        self.users[user.id] = user

    def add_task(self, task: Task) -> None:
        self.tasks[task.id] = task

    def add_review(self, review: ReviewSession) -> None:
        previous = self._snapshot()
        self.reviews[review.id] = review
        self._commit(previous)

    # ------------------------------------------------------------------
    # ReviewStore
    # ------------------------------------------------------------------

    async def list_reviews(self) -> list[ReviewSession]:
        return list(self.reviews.values())

    async def get_review(self, session_id: str) -> ReviewSession | None:
        return self.reviews.get(session_id)

    async def update_review_status(
        self,
        session_id: str,
        status: ReviewStatus,
        reviewer_id: str | None,
        feedback: str | None = None,
    ) -> bool:
        review = self.reviews.get(session_id)
        if review is None:
            logger.warning("Refusing update of unknown review %s", session_id)
            return False

        if status != ReviewStatus.PENDING and not self._is_reviewer(reviewer_id):
            logger.warning(
                "Refusing update of review %s to %s: %s cannot review",
                session_id,
                status.value,
                reviewer_id or "anonymous caller",
            )
            return False

        previous = self._snapshot()
        self.reviews[session_id] = review.model_copy(
            update={"status": status, "reviewer_id": reviewer_id, "feedback": feedback}
        )
        self._commit(previous)
        return True

    def _is_reviewer(self, user_id: str | None) -> bool:
        user = self.users.get(user_id) if user_id is not None else None
        return user is not None and can_review(user, self.permissions)

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # TaskStore
    # ------------------------------------------------------------------

    async def list_tasks(self) -> list[Task]:
        return list(self.tasks.values())

    async def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    async def set_task_workflow_status(self, task_id: str, status: str) -> None:
        task = self.tasks.get(task_id)
        if task is None:
            raise KeyError(f"Task not found: {task_id}")
        previous = self._snapshot()
        self.tasks[task_id] = task.model_copy(update={"status": status})
        self._commit(previous)

    # ------------------------------------------------------------------
    # XPAwarder
    # ------------------------------------------------------------------

    async def award_xp(self, user_ids: list[str], amount: int) -> None:
        previous = self._snapshot()
        for user_id in user_ids:
            user = self.users.get(user_id)
            if user is None:
                logger.warning("Skipping XP award for unknown user %s", user_id)
                continue
            new_xp = user.xp + amount
            self.users[user_id] = user.model_copy(
                update={
                    "xp": new_xp,
                    "level": level_for_xp(new_xp),
                    "available_points": user.available_points + amount,
                }
            )
        self._commit(previous)

    # ------------------------------------------------------------------
    # Notifier / TaskLog
    # ------------------------------------------------------------------

    async def notify(
        self, user_ids: list[str], title: str, message: str, related_id: str
    ) -> None:
        previous = self._snapshot()
        for user_id in user_ids:
            self.notifications.append(
                Notification(user_id=user_id, title=title, message=message, related_id=related_id)
            )
        self._commit(previous)

    async def append_task_log(
        self, task_id: str, action: str, details: str, user_id: str | None
    ) -> None:
        previous = self._snapshot()
        self.task_logs.append(
            TaskLogEntry(task_id=task_id, action=action, details=details, user_id=user_id)
        )
        self._commit(previous)

    # ------------------------------------------------------------------
    # Commit / rollback
    # ------------------------------------------------------------------

    def _snapshot(self) -> dict[str, Any]:
        # Records are replaced, never mutated, so shallow copies suffice
        return {
            "users": dict(self.users),
            "tasks": dict(self.tasks),
            "reviews": dict(self.reviews),
            "task_logs": list(self.task_logs),
            "notifications": list(self.notifications),
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self.users = snapshot["users"]
        self.tasks = snapshot["tasks"]
        self.reviews = snapshot["reviews"]
        self.task_logs = snapshot["task_logs"]
        self.notifications = snapshot["notifications"]

    def _commit(self, previous: dict[str, Any]) -> None:
        """Persist a mutation, or put memory back to ``previous`` and re-raise."""
        try:
            self._persist()
        except Exception as e:
            logger.warning("Store write failed, in-memory change rolled back: %s", e)
            self._restore(previous)
            raise
        self._changed()

    def _persist(self) -> None:
        """Write the current state to durable storage. A no-op in memory."""

    def _changed(self) -> None:
        """Hook run after every committed mutation. Notifies subscribers."""
        for callback in list(self._subscribers):
            callback()
