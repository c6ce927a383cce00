"""
Collapse submission rounds to the latest round per task.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from qgate.core.review.models import ReviewSession

logger = logging.getLogger(__name__)


def deduplicate(sessions: Iterable[ReviewSession]) -> list[ReviewSession]:
    """
    Keep only the highest-round session for each task.

    Sessions without a task are dropped since they cannot be shown or
    acted on. If two sessions of one task share a round (a data defect),
    the one seen last wins and a warning is logged.

    Output follows the order in which each task first appears in the input,
    so the function is idempotent.
    """
    latest: dict[str, ReviewSession] = {}

    for session in sessions:
        if session.task is None:
            logger.debug("Dropping review %s: task %s unavailable", session.id, session.task_id)
            continue

        current = latest.get(session.task_id)
        if current is None or session.round > current.round:
            latest[session.task_id] = session
        elif session.round == current.round:
            logger.warning(
                "Duplicate round %d for task %s (reviews %s, %s); keeping %s",
                session.round,
                session.task_id,
                current.id,
                session.id,
                session.id,
            )
            latest[session.task_id] = session

    return list(latest.values())
