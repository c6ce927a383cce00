"""
Configuration data models for qgate.

These models define the structure of .qgate.json and ~/.config/qgate/config.json
files, with validation and type safety via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class GradingConfig(BaseModel):
    """
    XP grading settings.

    The defaults reproduce the fixed difficulty table and hourly bonus used
    by the quality gate; overriding them is meant for tuning, not routine use.
    """
    difficulty_xp: dict[str, int] = Field(
        default_factory=lambda: {"EASY": 100, "MEDIUM": 200, "HARD": 300},
        description="Base XP per difficulty level"
    )
    hour_bonus_xp: int = Field(
        default=20,
        ge=0,
        description="XP granted per estimated hour (floored)"
    )
    adjustment_min: int = Field(
        default=-100,
        description="Lowest reviewer adjustment the UI offers"
    )
    adjustment_max: int = Field(
        default=100,
        description="Highest reviewer adjustment the UI offers"
    )
    adjustment_step: int = Field(
        default=10,
        ge=1,
        description="Step size of the adjustment slider"
    )
    award_floor_xp: int = Field(
        default=0,
        description="Lowest XP amount actually awarded on PASS"
    )

    @field_validator("difficulty_xp", mode="before")
    @classmethod
    def normalize_difficulty_keys(cls, v: dict[str, int]) -> dict[str, int]:
        """Accept lower-case difficulty names in config files."""
        if isinstance(v, dict):
            return {str(k).upper(): val for k, val in v.items()}
        return v

    @model_validator(mode="after")
    def check_adjustment_bounds(self) -> "GradingConfig":
        if self.adjustment_min > self.adjustment_max:
            raise ValueError("adjustment_min must not exceed adjustment_max")
        return self


class PermissionConfig(BaseModel):
    """
    Who may act on a review.

    A user qualifies when their role is one of ``admin_roles`` or their
    position contains one of ``reviewer_position_markers`` (case-sensitive).
    """
    admin_roles: list[str] = Field(
        default_factory=lambda: ["ADMIN"],
        description="Roles that always hold the reviewer capability"
    )
    reviewer_position_markers: list[str] = Field(
        default_factory=lambda: ["Senior", "Manager", "Head"],
        description="Substrings of a position that grant the reviewer capability"
    )


class ReviewGateConfig(BaseModel):
    """
    Review action and queue presentation settings.
    """
    require_revise_feedback: bool = Field(
        default=True,
        description="Reject REVISE actions without feedback"
    )
    quick_reasons: list[str] = Field(
        default_factory=lambda: [
            "Audio levels need fixing",
            "Color or exposure is off",
            "Typos in captions or titles",
            "Missing required assets",
            "Does not follow the brief",
        ],
        description="Canned reasons offered when sending work back"
    )
    collapsed_groups: list[str] = Field(
        default_factory=lambda: ["upcoming"],
        description="Queue groups collapsed by default"
    )
    pass_workflow_status: str = Field(
        default="DONE",
        min_length=1,
        description="Task workflow status set when a review passes"
    )
    revise_workflow_status: str = Field(
        default="DOING",
        min_length=1,
        description="Task workflow status set when a review is sent back"
    )


class StoreConfig(BaseModel):
    """
    Location of the local JSON store and gate log.

    Relative paths are resolved against the project root.
    """
    path: str = Field(
        default=".qgate/store.json",
        description="Path to the JSON store file"
    )
    log_dir: Optional[str] = Field(
        default=".qgate/logs",
        description="Directory for the JSONL gate log (None disables it)"
    )


class GateConfig(BaseModel):
    """
    Main qgate configuration model.

    Merges settings from defaults, user config, project config, and env vars.

    Example:
        >>> config = GateConfig(grading=GradingConfig(award_floor_xp=10))
        >>> config.grading.difficulty_xp["HARD"]
        300
        >>> config.review.require_revise_feedback
        True
    """
    grading: GradingConfig = Field(
        default_factory=GradingConfig,
        description="XP grading settings"
    )
    permissions: PermissionConfig = Field(
        default_factory=PermissionConfig,
        description="Reviewer capability settings"
    )
    review: ReviewGateConfig = Field(
        default_factory=ReviewGateConfig,
        description="Review action settings"
    )
    store: StoreConfig = Field(
        default_factory=StoreConfig,
        description="Local store settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
