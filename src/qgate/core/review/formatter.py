"""
JSON formatting for queue, summary and grade output.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from qgate.core.review.classify import ClassifiedReviews
from qgate.core.review.models import ReviewSession
from qgate.core.review.summary import SummaryItem


def to_json(model: BaseModel) -> str:
    """Serialize any gate model (grade, summary, outcome) to JSON."""
    return model.model_dump_json(indent=2)


def queue_to_json(classified: ClassifiedReviews) -> str:
    """Serialize the queue as ordered groups of compact review rows."""
    groups = []
    for group in classified.groups():
        groups.append(
            {
                "key": group.key.value,
                "label": group.label,
                "collapsed": group.collapsed,
                "reviews": [_review_row(s) for s in group.sessions],
            }
        )
    return json.dumps({"filtered": len(classified.filtered), "groups": groups}, indent=2)


def _review_row(session: ReviewSession) -> dict[str, Any]:
    task = session.task
    asset = task.latest_asset if task is not None else None
    return {
        "id": session.id,
        "task_id": session.task_id,
        "title": session.title,
        "round": session.round,
        "status": session.status.value,
        "scheduled_at": session.scheduled_at.isoformat(),
        "channel_id": task.channel_id if task else None,
        "feedback": session.feedback,
        "caution": task.caution if task else None,
        "importance": task.importance if task else None,
        "latest_asset": {"name": asset.name, "url": asset.url} if asset else None,
    }


def items_to_json(items: list[SummaryItem]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], indent=2)
