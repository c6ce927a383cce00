"""
XP grading engine.

Converts task metadata and the reviewer's judgment into an XP award:

    total_xp = base_xp(difficulty) + floor(estimated_hours * 20) + adjustment_xp

The engine is a pure function. It never rejects or clamps the reviewer
adjustment; the [-100, 100] range is enforced by the controls that produce
it (see clamp_adjustment). Clamping of the awarded amount is a separate
policy applied by award_amount.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

from pydantic import BaseModel, Field

from qgate.core.config.models import GradingConfig
from qgate.core.tasks.models import Difficulty, Task

logger = logging.getLogger(__name__)

DIFFICULTY_XP: dict[Difficulty, int] = {
    Difficulty.EASY: 100,
    Difficulty.MEDIUM: 200,
    Difficulty.HARD: 300,
}
DEFAULT_DIFFICULTY = Difficulty.MEDIUM
HOUR_BONUS_XP = 20

ADJUSTMENT_MIN = -100
ADJUSTMENT_MAX = 100
ADJUSTMENT_STEP = 10

XP_PER_LEVEL = 1000


class AdjustmentPreset(int, Enum):
    """Quick-adjust buttons offered next to the adjustment slider."""

    LATE = -20
    GOOD = 20
    EXCELLENT = 50
    RESET = 0

    @property
    def label(self) -> str:
        return _PRESET_LABELS[self]


_PRESET_LABELS = {
    AdjustmentPreset.LATE: "late/needs fixing",
    AdjustmentPreset.GOOD: "fast/good",
    AdjustmentPreset.EXCELLENT: "excellent",
    AdjustmentPreset.RESET: "reset",
}


class GradeComputation(BaseModel):
    """Breakdown of a single grade. Never persisted."""

    difficulty: Difficulty = Field(..., description="Difficulty actually used")
    base_xp: int
    time_bonus_xp: int
    adjustment_xp: int
    total_xp: int


def _difficulty_table(config: GradingConfig | None) -> dict[Difficulty, int]:
    if config is None:
        return DIFFICULTY_XP
    table = dict(DIFFICULTY_XP)
    for name, xp in config.difficulty_xp.items():
        if name in Difficulty.__members__:
            table[Difficulty(name)] = xp
    return table


def compute_grade(
    task: Task | None,
    adjustment_xp: int = 0,
    *,
    difficulty: Difficulty | str | None = None,
    estimated_hours: float | None = None,
    config: GradingConfig | None = None,
) -> GradeComputation:
    """
    Compute the full XP breakdown for a task.

    Args:
        task: Task being graded (may be None when both overrides are given)
        adjustment_xp: Reviewer adjustment, any integer
        difficulty: Overrides the task's difficulty
        estimated_hours: Overrides the task's estimated hours
        config: Grading settings (defaults to the built-in table)

    Returns:
        GradeComputation with base, bonus, adjustment and total

    Example:
        >>> compute_grade(Task(id="t", difficulty="HARD", estimated_hours=5), 50).total_xp
        450
    """
    if difficulty is None and task is not None:
        difficulty = task.difficulty
    if estimated_hours is None and task is not None:
        estimated_hours = task.estimated_hours

    resolved = _resolve_difficulty(difficulty, task)
    table = _difficulty_table(config)
    hour_bonus = config.hour_bonus_xp if config is not None else HOUR_BONUS_XP

    base_xp = table[resolved]
    time_bonus_xp = math.floor((estimated_hours or 0) * hour_bonus)
    adjustment = int(adjustment_xp)

    return GradeComputation(
        difficulty=resolved,
        base_xp=base_xp,
        time_bonus_xp=time_bonus_xp,
        adjustment_xp=adjustment,
        total_xp=base_xp + time_bonus_xp + adjustment,
    )


def _resolve_difficulty(value: Difficulty | str | None, task: Task | None) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    if isinstance(value, str) and value.strip().upper() in Difficulty.__members__:
        return Difficulty(value.strip().upper())
    task_id = task.id if task is not None else "?"
    logger.warning(
        "Task %s has no usable difficulty (%r), grading as %s",
        task_id,
        value,
        DEFAULT_DIFFICULTY.value,
    )
    return DEFAULT_DIFFICULTY


def grade(
    task: Task | None,
    adjustment_xp: int = 0,
    *,
    difficulty: Difficulty | str | None = None,
    estimated_hours: float | None = None,
    config: GradingConfig | None = None,
) -> int:
    """Return only the total XP for a task. See compute_grade."""
    return compute_grade(
        task,
        adjustment_xp,
        difficulty=difficulty,
        estimated_hours=estimated_hours,
        config=config,
    ).total_xp


def award_amount(computation: GradeComputation, floor_xp: int = 0) -> int:
    """XP actually handed out for a grade; never below ``floor_xp``."""
    return max(computation.total_xp, floor_xp)


def clamp_adjustment(
    value: int, lower: int = ADJUSTMENT_MIN, upper: int = ADJUSTMENT_MAX
) -> int:
    """Clamp a slider value into the offered adjustment range."""
    return max(lower, min(upper, int(value)))


def snap_adjustment(value: int, step: int = ADJUSTMENT_STEP) -> int:
    """
    Round a value to the nearest slider position (a multiple of ``step``).

    Halfway values round away from zero.

    Example:
        >>> snap_adjustment(15), snap_adjustment(-14), snap_adjustment(7, 5)
        (20, -10, 5)
    """
    value = int(value)
    if step <= 1:
        return value
    magnitude = (abs(value) + step // 2) // step * step
    return magnitude if value >= 0 else -magnitude


def step_adjustment(
    value: int,
    steps: int,
    *,
    step: int = ADJUSTMENT_STEP,
    lower: int = ADJUSTMENT_MIN,
    upper: int = ADJUSTMENT_MAX,
    config: GradingConfig | None = None,
) -> int:
    """
    Move the slider by ``steps`` increments, staying inside the range.

    When ``config`` is given its adjustment_step, adjustment_min and
    adjustment_max replace ``step``, ``lower`` and ``upper``.
    """
    if config is not None:
        step, lower, upper = config.adjustment_step, config.adjustment_min, config.adjustment_max
    return clamp_adjustment(snap_adjustment(value, step) + steps * step, lower, upper)


def level_for_xp(xp: int) -> int:
    """Profile level for a lifetime XP total (1000 XP per level, starting at 1)."""
    return max(xp, 0) // XP_PER_LEVEL + 1
