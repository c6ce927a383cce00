"""
Pytest configuration and shared fixtures.

Provides sample users, tasks and review sessions, a fixed reference time,
an in-memory store seeded with the standard review scenario, and isolation
of config/env state between tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from qgate.core.config.loader import clear_cache
from qgate.core.review.models import ReviewSession, ReviewStatus
from qgate.core.store.memory import InMemoryGateStore
from qgate.core.tasks.models import Task, User

# ==============================================================================
# Environment Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point XDG dirs at a temp location and drop QGATE_* overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    for name in (
        "QGATE_STORE",
        "QGATE_AWARD_FLOOR_XP",
        "QGATE_REQUIRE_REVISE_FEEDBACK",
        "QGATE_REVIEWER_MARKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Time Fixtures
# ==============================================================================


@pytest.fixture
def now():
    """Fixed reference time: 10 March 2026, 12:00 UTC."""
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def start_of_today(now):
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults."""

    def _make(task_id="t-1", **kwargs):
        defaults = {
            "title": f"Task {task_id}",
            "status": "REVIEW",
            "channel_id": "ch-main",
            "difficulty": "MEDIUM",
            "estimated_hours": 0,
        }
        defaults.update(kwargs)
        return Task(id=task_id, **defaults)

    return _make


@pytest.fixture
def make_session(make_task, now):
    """Factory for review sessions; attaches a task snapshot unless task=None."""

    _missing = object()

    def _make(session_id="rv-1", task_id="t-1", round=1, scheduled_at=None, task=_missing, **kwargs):
        if task is _missing:
            task = make_task(task_id)
        return ReviewSession(
            id=session_id,
            task_id=task_id,
            round=round,
            scheduled_at=scheduled_at or now,
            task=task,
            **kwargs,
        )

    return _make


@pytest.fixture
def reviewer():
    """A non-admin user whose position grants the reviewer capability."""
    return User(id="u-lead", name="Ploy", role="MEMBER", position="Senior Editor")


@pytest.fixture
def admin():
    return User(id="u-admin", name="Admin", role="ADMIN")


@pytest.fixture
def member():
    """A user without the reviewer capability."""
    return User(id="u-ed", name="Beam", role="MEMBER", position="Editor")


@pytest.fixture
def scenario_task():
    """MEDIUM task, 3 estimated hours, three people in its role union."""
    return Task(
        id="t-42",
        title="Street interview: night market",
        status="REVIEW",
        channel_id="ch-food",
        difficulty="MEDIUM",
        estimated_hours=3,
        idea_owner_ids=["u-idea"],
        editor_ids=["u-ed"],
        assignee_ids=["u-ed", "u-cam"],
    )


@pytest.fixture
def scenario_store(scenario_task, reviewer, admin, member, now):
    """
    Store holding round 1 (REVISE, yesterday) and round 2 (PENDING, today)
    of the scenario task, plus every user in its role union.
    """
    users = [
        reviewer,
        admin,
        member,
        User(id="u-idea", name="Fah"),
        User(id="u-cam", name="Tong", xp=900),
    ]
    reviews = [
        ReviewSession(
            id="rv-1",
            task_id="t-42",
            round=1,
            scheduled_at=now - timedelta(days=1),
            status=ReviewStatus.REVISE,
            reviewer_id="u-lead",
            feedback="Audio too quiet",
            task=scenario_task,
        ),
        ReviewSession(
            id="rv-2",
            task_id="t-42",
            round=2,
            scheduled_at=now,
            task=scenario_task,
        ),
    ]
    return InMemoryGateStore(users=users, tasks=[scenario_task], reviews=reviews)
