"""
Review action dispatcher.

The only component that changes review state. A reviewer either PASSes a
pending round (task moves to DONE and the role union receives XP) or sends
it back with REVISE (task moves back to DOING).

Write order for PASS:
    1. review status -> PASSED
    2. task workflow status -> DONE
    3. XP award to the role union
    4. task history entry and notifications (best effort)

If step 2 or 3 fails, the completed steps are compensated (task workflow
restored, review restored to PENDING) so the review is never left ahead of
its side effects. REVISE follows the same pattern without the XP award.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from qgate.core.config.models import GateConfig
from qgate.core.grading.engine import award_amount, compute_grade
from qgate.core.review.enrichment import resolve_task
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
from qgate.core.tasks.models import Task, User

if TYPE_CHECKING:
    from qgate.core.store.backend import Notifier, ReviewStore, TaskLog, TaskStore, XPAwarder
    from qgate.utils.logging import GateLogger

logger = logging.getLogger(__name__)

TASK_LOG_ACTION = "STATUS_CHANGE"


def role_union(task: Task) -> list[str]:
    """
    Users credited when a task's review passes.

    Idea owners, editors and assignees, each listed once in that order.
    Every member receives the same award; roles are not weighted.
    """
    seen: dict[str, None] = {}
    for user_id in [*task.idea_owner_ids, *task.editor_ids, *task.assignee_ids]:
        if user_id:
            seen.setdefault(user_id, None)
    return list(seen)


class ReviewDispatcher:
    """
    Apply PASS and REVISE actions for one acting user.

    Example:
        >>> dispatcher = ReviewDispatcher(
        ...     reviews=store, tasks=store, xp=store, current_user=reviewer
        ... )
        >>> await dispatcher.dispatch("rv-2", ReviewAction.PASS, ActionPayload(adjustment_xp=20))
        True
    """

    def __init__(
        self,
        *,
        reviews: ReviewStore,
        tasks: TaskStore,
        xp: XPAwarder,
        current_user: User,
        notifier: Notifier | None = None,
        task_log: TaskLog | None = None,
        config: GateConfig | None = None,
        gate_log: GateLogger | None = None,
    ) -> None:
        """
        Args:
            reviews: Review store (read sessions, persist decisions)
            tasks: Task store (live tasks, workflow status)
            xp: XP awarder invoked on PASS
            current_user: The acting user
            notifier: Optional notification sink for the role union
            task_log: Optional task history sink
            config: Gate configuration (defaults to built-in settings)
            gate_log: Optional JSONL gate log
        """
        self.reviews = reviews
        self.tasks = tasks
        self.xp = xp
        self.current_user = current_user
        self.notifier = notifier
        self.task_log = task_log
        self.config = config or GateConfig()
        self.gate_log = gate_log
        self._in_flight: set[str] = set()

    @property
    def can_act(self) -> bool:
        """Whether review actions should be offered to the current user."""
        return can_review(self.current_user, self.config.permissions)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        session_id: str,
        action: ReviewAction | str,
        payload: ActionPayload | None = None,
    ) -> bool:
        """Run an action and report whether it was applied."""
        outcome = await self.execute(session_id, action, payload)
        return outcome.success

    async def execute(
        self,
        session_id: str,
        action: ReviewAction | str,
        payload: ActionPayload | None = None,
    ) -> DispatchOutcome:
        """
        Run an action, converting gate errors into a failed outcome.

        Nothing is changed locally on failure; the caller keeps its action
        dialog open and may retry.
        """
        action = ReviewAction(action)
        payload = payload or ActionPayload()

        try:
            if action == ReviewAction.PASS:
                return await self.pass_review(
                    session_id, payload.adjustment_xp, feedback=payload.feedback
                )
            return await self.revise_review(
                session_id, payload.feedback, quick_reasons=payload.quick_reasons
            )
        except GateError as e:
            logger.warning("%s on review %s failed: %s", action.value, session_id, e)
            if self.gate_log is not None:
                self.gate_log.log_failure(session_id, action.value, e, user_id=self.current_user.id)
            return DispatchOutcome(
                session_id=session_id,
                action=action,
                success=False,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def pass_review(
        self, session_id: str, adjustment_xp: int = 0, *, feedback: str | None = None
    ) -> DispatchOutcome:
        """
        Approve a pending review and award XP.

        Raises:
            GateError: Any precondition or persistence failure
        """
        async with self._exclusive(session_id):
            self._require_reviewer()
            session, task = await self._load_pending(session_id)

            grading = self.config.grading
            computation = compute_grade(task, adjustment_xp, config=grading)
            amount = award_amount(computation, grading.award_floor_xp)
            recipients = role_union(task)
            done_status = self.config.review.pass_workflow_status
            feedback = feedback.strip() if feedback and feedback.strip() else None

            await self._write_review(session, ReviewStatus.PASSED, feedback)
            await self._write_workflow(session, task, done_status)

            if recipients:
                try:
                    await self.xp.award_xp(recipients, amount)
                except Exception as e:
                    error = PersistenceError(
                        "award_xp", f"Failed to award XP for review '{session_id}': {e}"
                    )
                    await self._compensate(session, error, task=task)
                    raise error from e

            await self._record_history(
                task.id, f"Quality Gate: PASSED -> Status set to {done_status}"
            )
            await self._notify(
                recipients,
                "Review passed",
                f'"{task.title}" was approved (+{amount} XP)',
                task.id,
            )

            logger.info(
                "Review %s passed by %s: %d XP to %s",
                session_id,
                self.current_user.id,
                amount,
                ", ".join(recipients) or "nobody",
            )
            if self.gate_log is not None:
                self.gate_log.log_passed(
                    session_id,
                    task.id,
                    reviewer_id=self.current_user.id,
                    total_xp=computation.total_xp,
                    awarded_xp=amount,
                    awarded_to=recipients,
                )

            return DispatchOutcome(
                session_id=session_id,
                action=ReviewAction.PASS,
                success=True,
                status=ReviewStatus.PASSED,
                grade=computation,
                awarded_xp=amount,
                awarded_user_ids=recipients,
            )

    async def revise_review(
        self,
        session_id: str,
        feedback: str | None = None,
        *,
        quick_reasons: list[str] | None = None,
    ) -> DispatchOutcome:
        """
        Send a pending review back for revision.

        Raises:
            GateError: Any precondition or persistence failure
        """
        async with self._exclusive(session_id):
            self._require_reviewer()
            message = compose_feedback(quick_reasons, feedback)
            if message is None and self.config.review.require_revise_feedback:
                raise FeedbackRequiredError(session_id)

            session, task = await self._load_pending(session_id)
            doing_status = self.config.review.revise_workflow_status

            await self._write_review(session, ReviewStatus.REVISE, message)
            await self._write_workflow(session, task, doing_status)

            await self._record_history(task.id, f"Quality Gate: REVISE -> {message or '-'}")
            note = f'"{task.title}" needs changes'
            await self._notify(
                role_union(task),
                "Revision requested",
                f"{note}: {message}" if message else note,
                task.id,
            )

            logger.info("Review %s sent back by %s", session_id, self.current_user.id)
            if self.gate_log is not None:
                self.gate_log.log_revised(
                    session_id, task.id, reviewer_id=self.current_user.id, feedback=message
                )

            return DispatchOutcome(
                session_id=session_id,
                action=ReviewAction.REVISE,
                success=True,
                status=ReviewStatus.REVISE,
            )

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, session_id: str) -> AsyncIterator[None]:
        """One action per review at a time."""
        if session_id in self._in_flight:
            raise ActionInProgressError(session_id)
        self._in_flight.add(session_id)
        try:
            yield
        finally:
            self._in_flight.discard(session_id)

    def _require_reviewer(self) -> None:
        if not self.can_act:
            raise AuthorizationError(
                self.current_user.id,
                role=self.current_user.role,
                position=self.current_user.position,
            )

    async def _load_pending(self, session_id: str) -> tuple[ReviewSession, Task]:
        session = await self.reviews.get_review(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        if session.status != ReviewStatus.PENDING:
            raise InvalidTransitionError(
                session_id,
                f"Review '{session_id}' is {session.status.value}; "
                "only PENDING reviews can be passed or revised",
                status=session.status.value,
            )

        newer = [
            r.round
            for r in await self.reviews.list_reviews()
            if r.task_id == session.task_id and r.round > session.round
        ]
        if newer:
            raise InvalidTransitionError(
                session_id,
                f"Review '{session_id}' (round {session.round}) is superseded "
                f"by round {max(newer)}",
            )

        live = await self.tasks.get_task(session.task_id)
        task = resolve_task(session, {live.id: live} if live is not None else {})
        if task is None:
            raise MissingTaskError(session_id, session.task_id)
        return session, task

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _write_review(
        self, session: ReviewSession, status: ReviewStatus, feedback: str | None
    ) -> None:
        try:
            applied = await self.reviews.update_review_status(
                session.id, status, self.current_user.id, feedback
            )
        except Exception as e:
            raise PersistenceError(
                "update_review_status", f"Failed to save review '{session.id}': {e}"
            ) from e
        if not applied:
            raise PersistenceError(
                "update_review_status", f"The store rejected the update of review '{session.id}'"
            )

    async def _write_workflow(self, session: ReviewSession, task: Task, status: str) -> None:
        try:
            await self.tasks.set_task_workflow_status(task.id, status)
        except Exception as e:
            error = PersistenceError(
                "set_task_workflow_status",
                f"Failed to move task '{task.id}' to {status}: {e}",
            )
            # The workflow write itself failed, so only the review needs restoring
            await self._compensate(session, error)
            raise error from e

    async def _compensate(
        self, session: ReviewSession, error: PersistenceError, *, task: Task | None = None
    ) -> None:
        """Undo completed writes after a later step failed."""
        if task is not None:
            if task.status is None:
                logger.error(
                    "Cannot restore workflow status of task %s: previous status unknown", task.id
                )
                error.rolled_back = False
            else:
                try:
                    await self.tasks.set_task_workflow_status(task.id, task.status)
                except Exception as e:
                    self._rollback_failed(session, error, "set_task_workflow_status", e)

        try:
            restored = await self.reviews.update_review_status(
                session.id, session.status, session.reviewer_id, session.feedback
            )
        except Exception as e:
            self._rollback_failed(session, error, "update_review_status", e)
            return
        if not restored:
            self._rollback_failed(
                session, error, "update_review_status", RuntimeError("store rejected restore")
            )

    def _rollback_failed(
        self, session: ReviewSession, error: PersistenceError, operation: str, cause: Exception
    ) -> None:
        error.rolled_back = False
        logger.error(
            "Rollback of %s for review %s failed: %s", operation, session.id, cause
        )
        if self.gate_log is not None:
            self.gate_log.log_rollback_failed(session.id, operation, cause)

    async def _record_history(self, task_id: str, details: str) -> None:
        if self.task_log is None:
            return
        try:
            await self.task_log.append_task_log(
                task_id, TASK_LOG_ACTION, details, self.current_user.id
            )
        except Exception as e:
            logger.warning("Failed to record history for task %s: %s", task_id, e)

    async def _notify(self, user_ids: list[str], title: str, message: str, task_id: str) -> None:
        if self.notifier is None or not user_ids:
            return
        try:
            await self.notifier.notify(user_ids, title, message, task_id)
        except Exception as e:
            logger.warning("Failed to notify %s about task %s: %s", user_ids, task_id, e)
