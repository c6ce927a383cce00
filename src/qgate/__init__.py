"""
qgate - Quality gate for content production tasks.

Review queue, XP grading and PASS/REVISE decisions for a content planner.
"""

__version__ = "0.1.0"

# Re-export core models and entry points for convenience
from qgate.core.config.models import GateConfig
from qgate.core.grading.engine import compute_grade, grade
from qgate.core.review.classify import classify
from qgate.core.review.models import ReviewSession, ReviewStatus
from qgate.core.review.permissions import can_review
from qgate.core.tasks.models import Task, User

__all__ = [
    "GateConfig",
    "ReviewSession",
    "ReviewStatus",
    "Task",
    "User",
    "can_review",
    "classify",
    "compute_grade",
    "grade",
    "__version__",
]
