"""
Records kept by the bundled stores alongside reviews, tasks and users.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskLogEntry(BaseModel):
    """One line of a task's activity history."""

    task_id: str = Field(..., alias="taskId")
    action: str
    details: str = ""
    user_id: str | None = Field(default=None, alias="userId")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class Notification(BaseModel):
    """A notification addressed to one user."""

    user_id: str = Field(..., alias="userId")
    type: str = "REVIEW"
    title: str
    message: str
    related_id: str | None = Field(default=None, alias="relatedId")
    is_read: bool = Field(default=False, alias="isRead")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)
