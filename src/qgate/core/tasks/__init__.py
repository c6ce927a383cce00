"""
Task and user models consumed by the quality gate.
"""

from qgate.core.tasks.models import Difficulty, Task, TaskAsset, User, UserRole

__all__ = ["Difficulty", "Task", "TaskAsset", "User", "UserRole"]
