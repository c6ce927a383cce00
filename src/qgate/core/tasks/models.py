"""
Task and user data models for qgate.

Tasks and users are owned by the external planner; the quality gate only
reads them. Field names are snake_case, and the planner's camelCase keys
are accepted as aliases so raw backend payloads validate directly.
"""

import logging
import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    """Task difficulty levels used for XP grading."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class UserRole(str, Enum):
    """Account roles known to the quality gate."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class TaskAsset(BaseModel):
    """A file or link attached to a task (e.g. a rendered draft)."""

    id: str = Field(..., description="Asset identifier")
    name: str = Field(default="", description="Display name")
    url: str = Field(default="", description="Link to the asset")
    type: str = Field(default="LINK", description="LINK or FILE")
    category: str | None = Field(default=None, description="Asset category")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class Task(BaseModel):
    """
    A content task as seen by the quality gate.

    Example:
        >>> task = Task(id="t-1", title="Street interview", difficulty="HARD")
        >>> task.difficulty
        <Difficulty.HARD: 'HARD'>
        >>> task.latest_asset is None
        True
    """

    id: str = Field(..., description="Unique task identifier")
    title: str = Field(default="", description="Task title")
    status: str | None = Field(default=None, description="Workflow status (e.g. DOING, DONE)")
    channel_id: str | None = Field(default=None, alias="channelId")

    # Grading inputs
    difficulty: Difficulty | None = Field(default=None, description="Task difficulty")
    estimated_hours: float | None = Field(default=None, alias="estimatedHours")

    # Reviewer hints
    caution: str | None = Field(default=None, description="Things to watch out for")
    importance: str | None = Field(default=None, description="Key point to check")

    assets: list[TaskAsset] = Field(default_factory=list, description="Oldest first")

    # People
    assignee_ids: list[str] = Field(default_factory=list, alias="assigneeIds")
    idea_owner_ids: list[str] = Field(default_factory=list, alias="ideaOwnerIds")
    editor_ids: list[str] = Field(default_factory=list, alias="editorIds")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v: object) -> object:
        """Accept lower-case names; unknown values become None (graded as MEDIUM)."""
        if isinstance(v, str):
            upper = v.strip().upper()
            if upper in Difficulty.__members__:
                return Difficulty(upper)
            return None
        return v

    @field_validator("estimated_hours", mode="before")
    @classmethod
    def sanitize_hours(cls, v: object, info: ValidationInfo) -> object:
        """Negative, non-numeric or non-finite hours become None (no time bonus)."""
        if v is None or v == "":
            return None
        try:
            hours = float(v)
        except (TypeError, ValueError, OverflowError):
            hours = math.nan
        if not math.isfinite(hours) or hours < 0:
            logger.warning(
                "Task %s has invalid estimated hours %r, ignoring", info.data.get("id"), v
            )
            return None
        return hours

    @field_validator("assignee_ids", "idea_owner_ids", "editor_ids", mode="before")
    @classmethod
    def none_as_empty(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def latest_asset(self) -> TaskAsset | None:
        """The most recently attached asset, if any."""
        return self.assets[-1] if self.assets else None


class User(BaseModel):
    """A planner user, with the gamification fields the gate updates."""

    id: str = Field(..., description="Unique user identifier")
    name: str = Field(default="", description="Display name")
    role: str = Field(default=UserRole.MEMBER.value, description="Account role")
    position: str | None = Field(default=None, description="Free-text job position")

    xp: int = Field(default=0, description="Lifetime XP")
    level: int = Field(default=1, ge=1, description="Level derived from XP")
    available_points: int = Field(default=0, alias="availablePoints")

    model_config = ConfigDict(populate_by_name=True)
