"""
Grading engine: task metadata and reviewer judgment to XP.
"""

from qgate.core.grading.engine import (
    ADJUSTMENT_MAX,
    ADJUSTMENT_MIN,
    ADJUSTMENT_STEP,
    DIFFICULTY_XP,
    AdjustmentPreset,
    GradeComputation,
    award_amount,
    clamp_adjustment,
    compute_grade,
    grade,
    level_for_xp,
    snap_adjustment,
    step_adjustment,
)

__all__ = [
    "ADJUSTMENT_MAX",
    "ADJUSTMENT_MIN",
    "ADJUSTMENT_STEP",
    "DIFFICULTY_XP",
    "AdjustmentPreset",
    "GradeComputation",
    "award_amount",
    "clamp_adjustment",
    "compute_grade",
    "grade",
    "level_for_xp",
    "snap_adjustment",
    "step_adjustment",
]
