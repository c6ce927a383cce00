"""
Tests for the review action dispatcher.

Covers the PENDING -> PASSED | REVISE state machine, XP awards to the role
union, permission checks, feedback enforcement, compensation after partial
store failures, and the one-action-per-review rule.
"""

import asyncio
import json

import pytest

from qgate.core.config.models import GateConfig, GradingConfig, ReviewGateConfig
from qgate.core.review import (
    ActionInProgressError,
    ActionPayload,
    AuthorizationError,
    FeedbackRequiredError,
    InvalidTransitionError,
    MissingTaskError,
    PersistenceError,
    ReviewAction,
    ReviewDispatcher,
    ReviewSession,
    ReviewStatus,
    SessionNotFoundError,
    role_union,
)
from qgate.core.store.memory import InMemoryGateStore
from qgate.utils.logging import GateLogger


def _dispatcher(store, user, **kwargs):
    return ReviewDispatcher(
        reviews=store,
        tasks=store,
        xp=store,
        current_user=user,
        notifier=store,
        task_log=store,
        **kwargs,
    )


class FailingXPStore(InMemoryGateStore):
    async def award_xp(self, user_ids, amount):
        raise RuntimeError("profile service unavailable")


class FailingNotifyStore(InMemoryGateStore):
    async def notify(self, user_ids, title, message, related_id):
        raise RuntimeError("push gateway down")


class SlowStore(InMemoryGateStore):
    async def get_review(self, session_id):
        await asyncio.sleep(0)
        return await super().get_review(session_id)


# ==============================================================================
# Role union
# ==============================================================================


class TestRoleUnion:
    """Test who is credited on PASS."""

    def test_order_and_dedup(self, scenario_task):
        assert role_union(scenario_task) == ["u-idea", "u-ed", "u-cam"]

    def test_empty(self, make_task):
        assert role_union(make_task()) == []


# ==============================================================================
# PASS
# ==============================================================================


class TestPass:
    """Test approving a review."""

    @pytest.mark.asyncio
    async def test_end_to_end_award(self, scenario_store, reviewer):
        """Round 2, MEDIUM, 3h, +20 -> 280 XP to each member of the role union."""
        dispatcher = _dispatcher(scenario_store, reviewer)

        outcome = await dispatcher.execute(
            "rv-2", ReviewAction.PASS, ActionPayload(adjustment_xp=20)
        )

        assert outcome.success
        assert outcome.status == ReviewStatus.PASSED
        assert outcome.grade.total_xp == 280
        assert outcome.awarded_xp == 280
        assert outcome.awarded_user_ids == ["u-idea", "u-ed", "u-cam"]

        review = scenario_store.reviews["rv-2"]
        assert review.status == ReviewStatus.PASSED
        assert review.reviewer_id == "u-lead"
        assert scenario_store.tasks["t-42"].status == "DONE"

        assert scenario_store.users["u-idea"].xp == 280
        assert scenario_store.users["u-ed"].xp == 280
        cam = scenario_store.users["u-cam"]
        assert cam.xp == 1180
        assert cam.level == 2
        assert cam.available_points == 280

    @pytest.mark.asyncio
    async def test_history_and_notifications(self, scenario_store, reviewer):
        await _dispatcher(scenario_store, reviewer).pass_review("rv-2", 20)

        assert len(scenario_store.task_logs) == 1
        entry = scenario_store.task_logs[0]
        assert entry.task_id == "t-42"
        assert entry.action == "STATUS_CHANGE"
        assert entry.details == "Quality Gate: PASSED -> Status set to DONE"
        assert entry.user_id == "u-lead"

        assert sorted(n.user_id for n in scenario_store.notifications) == [
            "u-cam",
            "u-ed",
            "u-idea",
        ]
        assert "+280 XP" in scenario_store.notifications[0].message

    @pytest.mark.asyncio
    async def test_dispatch_returns_bool(self, scenario_store, admin):
        assert await _dispatcher(scenario_store, admin).dispatch("rv-2", "PASS") is True

    @pytest.mark.asyncio
    async def test_negative_total_awards_nothing(self, make_task, make_session, reviewer):
        task = make_task("t-1", difficulty="EASY", assignee_ids=["u-a"])
        store = InMemoryGateStore(
            users=[reviewer], tasks=[task], reviews=[make_session("rv-1", "t-1", task=task)]
        )
        outcome = await _dispatcher(store, reviewer).pass_review("rv-1", -150)
        assert outcome.grade.total_xp == -50
        assert outcome.awarded_xp == 0

    @pytest.mark.asyncio
    async def test_configured_award_floor(self, make_task, make_session, reviewer):
        task = make_task("t-1", difficulty="EASY", assignee_ids=["u-a"])
        store = InMemoryGateStore(
            users=[reviewer], tasks=[task], reviews=[make_session("rv-1", "t-1", task=task)]
        )
        config = GateConfig(grading=GradingConfig(award_floor_xp=10))
        outcome = await _dispatcher(store, reviewer, config=config).pass_review("rv-1", -150)
        assert outcome.awarded_xp == 10

    @pytest.mark.asyncio
    async def test_configured_workflow_status(self, scenario_store, reviewer):
        config = GateConfig(review=ReviewGateConfig(pass_workflow_status="PUBLISHED"))
        await _dispatcher(scenario_store, reviewer, config=config).pass_review("rv-2")
        assert scenario_store.tasks["t-42"].status == "PUBLISHED"


# ==============================================================================
# REVISE
# ==============================================================================


class TestRevise:
    """Test sending a review back."""

    @pytest.mark.asyncio
    async def test_revise_moves_task_to_doing(self, scenario_store, reviewer):
        outcome = await _dispatcher(scenario_store, reviewer).revise_review(
            "rv-2", "Trim the intro"
        )

        assert outcome.success
        assert outcome.status == ReviewStatus.REVISE
        review = scenario_store.reviews["rv-2"]
        assert review.status == ReviewStatus.REVISE
        assert review.feedback == "Trim the intro"
        assert scenario_store.tasks["t-42"].status == "DOING"
        assert scenario_store.task_logs[0].details == "Quality Gate: REVISE -> Trim the intro"
        assert all(n.title == "Revision requested" for n in scenario_store.notifications)

    @pytest.mark.asyncio
    async def test_revise_awards_no_xp(self, scenario_store, reviewer):
        await _dispatcher(scenario_store, reviewer).revise_review("rv-2", "Again")
        assert scenario_store.users["u-idea"].xp == 0

    @pytest.mark.asyncio
    async def test_quick_reasons_are_composed(self, scenario_store, reviewer):
        payload = ActionPayload(quick_reasons=["Audio levels need fixing"], feedback="at 02:10")
        await _dispatcher(scenario_store, reviewer).execute("rv-2", ReviewAction.REVISE, payload)
        assert scenario_store.reviews["rv-2"].feedback == "Audio levels need fixing; at 02:10"

    @pytest.mark.asyncio
    async def test_feedback_required(self, scenario_store, reviewer):
        with pytest.raises(FeedbackRequiredError):
            await _dispatcher(scenario_store, reviewer).revise_review("rv-2", "   ")
        assert scenario_store.reviews["rv-2"].status == ReviewStatus.PENDING
        assert scenario_store.tasks["t-42"].status == "REVIEW"

    @pytest.mark.asyncio
    async def test_feedback_optional_when_configured(self, scenario_store, reviewer):
        config = GateConfig(review=ReviewGateConfig(require_revise_feedback=False))
        outcome = await _dispatcher(scenario_store, reviewer, config=config).revise_review("rv-2")
        assert outcome.success
        assert scenario_store.reviews["rv-2"].feedback is None


# ==============================================================================
# Preconditions
# ==============================================================================


class TestPreconditions:
    """Test the checks that run before any write."""

    @pytest.mark.asyncio
    async def test_member_cannot_act(self, scenario_store, member):
        dispatcher = _dispatcher(scenario_store, member)
        assert not dispatcher.can_act
        with pytest.raises(AuthorizationError):
            await dispatcher.pass_review("rv-2")
        assert scenario_store.reviews["rv-2"].status == ReviewStatus.PENDING
        assert scenario_store.users["u-ed"].xp == 0

    @pytest.mark.asyncio
    async def test_unknown_session(self, scenario_store, reviewer):
        with pytest.raises(SessionNotFoundError):
            await _dispatcher(scenario_store, reviewer).pass_review("rv-404")

    @pytest.mark.asyncio
    async def test_only_pending_can_be_passed(self, scenario_store, reviewer):
        """rv-1 is already REVISE."""
        with pytest.raises(InvalidTransitionError):
            await _dispatcher(scenario_store, reviewer).pass_review("rv-1")

    @pytest.mark.asyncio
    async def test_passed_is_terminal(self, scenario_store, reviewer):
        dispatcher = _dispatcher(scenario_store, reviewer)
        await dispatcher.pass_review("rv-2")
        with pytest.raises(InvalidTransitionError):
            await dispatcher.revise_review("rv-2", "Changed my mind")
        assert scenario_store.reviews["rv-2"].status == ReviewStatus.PASSED

    @pytest.mark.asyncio
    async def test_superseded_round_rejected(self, make_session, make_task, reviewer):
        task = make_task("t-1")
        store = InMemoryGateStore(
            users=[reviewer],
            tasks=[task],
            reviews=[
                make_session("rv-1", "t-1", round=1, task=task),
                make_session("rv-2", "t-1", round=2, task=task),
            ],
        )
        with pytest.raises(InvalidTransitionError, match="superseded"):
            await _dispatcher(store, reviewer).pass_review("rv-1")

    @pytest.mark.asyncio
    async def test_missing_task(self, make_session, reviewer):
        store = InMemoryGateStore(
            users=[reviewer], reviews=[make_session("rv-1", "t-gone", task=None)]
        )
        with pytest.raises(MissingTaskError):
            await _dispatcher(store, reviewer).pass_review("rv-1")

    @pytest.mark.asyncio
    async def test_execute_reports_failure(self, scenario_store, member):
        outcome = await _dispatcher(scenario_store, member).execute("rv-2", ReviewAction.PASS)
        assert not outcome.success
        assert outcome.status is None
        assert outcome.error_type == "AuthorizationError"
        assert "u-ed" in outcome.error

    @pytest.mark.asyncio
    async def test_dispatch_false_on_failure(self, scenario_store, reviewer):
        assert await _dispatcher(scenario_store, reviewer).dispatch("rv-1", "PASS") is False


# ==============================================================================
# Persistence failures and compensation
# ==============================================================================


class TestCompensation:
    """Test that no partial state survives a failed action."""

    @pytest.mark.asyncio
    async def test_xp_failure_restores_review_and_task(self, scenario_task, reviewer, now):
        store = FailingXPStore(
            users=[reviewer],
            tasks=[scenario_task],
            reviews=[ReviewSession(id="rv-2", task_id="t-42", round=2, scheduled_at=now)],
        )
        with pytest.raises(PersistenceError) as exc_info:
            await _dispatcher(store, reviewer).pass_review("rv-2")

        assert exc_info.value.operation == "award_xp"
        assert exc_info.value.rolled_back
        review = store.reviews["rv-2"]
        assert review.status == ReviewStatus.PENDING
        assert review.reviewer_id is None
        assert store.tasks["t-42"].status == "REVIEW"
        assert store.task_logs == []

    @pytest.mark.asyncio
    async def test_workflow_failure_restores_review(self, make_session, make_task, reviewer):
        """Task only known from the cached snapshot, so the workflow write fails."""
        store = InMemoryGateStore(
            users=[reviewer],
            reviews=[make_session("rv-1", "t-cached", task=make_task("t-cached"))],
        )
        outcome = await _dispatcher(store, reviewer).execute("rv-1", ReviewAction.PASS)

        assert not outcome.success
        assert outcome.error_type == "PersistenceError"
        assert store.reviews["rv-1"].status == ReviewStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_previous_status_not_rolled_back(self, make_task, reviewer, now):
        task = make_task("t-1", status=None, assignee_ids=["u-a"])
        store = FailingXPStore(
            users=[reviewer],
            tasks=[task],
            reviews=[ReviewSession(id="rv-1", task_id="t-1", round=1, scheduled_at=now)],
        )
        with pytest.raises(PersistenceError) as exc_info:
            await _dispatcher(store, reviewer).pass_review("rv-1")
        assert not exc_info.value.rolled_back
        assert store.reviews["rv-1"].status == ReviewStatus.PENDING

    @pytest.mark.asyncio
    async def test_notification_failure_is_best_effort(self, scenario_task, reviewer, now):
        store = FailingNotifyStore(
            users=[reviewer],
            tasks=[scenario_task],
            reviews=[ReviewSession(id="rv-2", task_id="t-42", round=2, scheduled_at=now)],
        )
        outcome = await _dispatcher(store, reviewer).execute("rv-2", ReviewAction.PASS)
        assert outcome.success
        assert store.reviews["rv-2"].status == ReviewStatus.PASSED

    @pytest.mark.asyncio
    async def test_store_rechecks_reviewer(self, scenario_store, member):
        """A dispatcher that skipped the UI check is still refused by the store."""
        dispatcher = _dispatcher(scenario_store, member)
        with pytest.raises(PersistenceError):
            await dispatcher._write_review(
                scenario_store.reviews["rv-2"], ReviewStatus.PASSED, None
            )
        assert scenario_store.reviews["rv-2"].status == ReviewStatus.PENDING


# ==============================================================================
# Concurrency and gate log
# ==============================================================================


class TestConcurrency:
    """Test the one-action-per-review rule."""

    @pytest.mark.asyncio
    async def test_second_action_on_same_review_rejected(self, scenario_task, reviewer, now):
        store = SlowStore(
            users=[reviewer],
            tasks=[scenario_task],
            reviews=[ReviewSession(id="rv-2", task_id="t-42", round=2, scheduled_at=now)],
        )
        dispatcher = _dispatcher(store, reviewer)

        results = await asyncio.gather(
            dispatcher.pass_review("rv-2"),
            dispatcher.revise_review("rv-2", "Wait"),
            return_exceptions=True,
        )

        assert results[0].success
        assert isinstance(results[1], ActionInProgressError)
        assert store.reviews["rv-2"].status == ReviewStatus.PASSED

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, scenario_store, reviewer):
        dispatcher = _dispatcher(scenario_store, reviewer)
        with pytest.raises(FeedbackRequiredError):
            await dispatcher.revise_review("rv-2")
        outcome = await dispatcher.pass_review("rv-2")
        assert outcome.success


class TestGateLog:
    """Test JSONL records of decisions and failures."""

    @pytest.mark.asyncio
    async def test_pass_and_failure_logged(self, scenario_store, reviewer, tmp_path):
        gate_log = GateLogger(tmp_path / "gate.jsonl")
        dispatcher = _dispatcher(scenario_store, reviewer, gate_log=gate_log)

        await dispatcher.execute("rv-2", ReviewAction.PASS, ActionPayload(adjustment_xp=20))
        await dispatcher.execute("rv-2", ReviewAction.PASS)

        lines = [json.loads(line) for line in gate_log.log_file.read_text().splitlines()]
        assert [line["event_type"] for line in lines] == ["review_passed", "dispatch_failed"]
        assert lines[0]["data"]["awarded_xp"] == 280
        assert lines[0]["data"]["awarded_to"] == ["u-idea", "u-ed", "u-cam"]
        assert lines[1]["data"]["error_type"] == "InvalidTransitionError"
