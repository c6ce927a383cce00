"""
Reviewer capability check.

A user may PASS or REVISE a review when their role is an admin role, or
their free-text position contains one of the reviewer markers
("Senior", "Manager", "Head"), matched case-sensitively.

This check decides which actions are offered. Stores that persist review
decisions must apply it again on write.
"""

from __future__ import annotations

from qgate.core.config.models import PermissionConfig
from qgate.core.tasks.models import User

DEFAULT_PERMISSIONS = PermissionConfig()


def can_review(user: User | None, config: PermissionConfig | None = None) -> bool:
    """
    Check whether ``user`` holds the reviewer capability.

    Example:
        >>> can_review(User(id="u1", role="MEMBER", position="Senior Editor"))
        True
        >>> can_review(User(id="u2", role="MEMBER", position="Editor"))
        False
    """
    if user is None:
        return False
    config = config or DEFAULT_PERMISSIONS
    if user.role in config.admin_roles:
        return True
    position = user.position or ""
    return any(marker and marker in position for marker in config.reviewer_position_markers)
