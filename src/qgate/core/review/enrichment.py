"""
Join review sessions with the live task list.

A session carries a snapshot of its task taken when the review was
fetched, which may be stale. The live task list wins; the snapshot is the
fallback; None is the final fallback.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from qgate.core.review.models import ReviewSession
from qgate.core.tasks.models import Task

logger = logging.getLogger(__name__)


def index_tasks(tasks: Iterable[Task]) -> dict[str, Task]:
    """Index tasks by id. Later duplicates replace earlier ones."""
    return {task.id: task for task in tasks}


def resolve_task(session: ReviewSession, live_index: Mapping[str, Task]) -> Task | None:
    """
    Pick the task record for a session.

    Precedence: live task > cached snapshot > None.
    """
    live = live_index.get(session.task_id)
    if live is not None:
        return live
    if session.task is not None:
        logger.debug(
            "Task %s not in live list, using cached snapshot for review %s",
            session.task_id,
            session.id,
        )
        return session.task
    logger.debug("Review %s references unknown task %s", session.id, session.task_id)
    return None


def enrich_sessions(
    sessions: Iterable[ReviewSession], tasks: Iterable[Task] | Mapping[str, Task]
) -> list[ReviewSession]:
    """
    Return copies of ``sessions`` with ``task`` replaced by the live record.

    Inputs are never mutated.
    """
    live_index = tasks if isinstance(tasks, Mapping) else index_tasks(tasks)
    return [
        session.model_copy(update={"task": resolve_task(session, live_index)})
        for session in sessions
    ]
