"""
Standardized error handling and exit codes for the qgate CLI.
"""

from enum import IntEnum

from rich.console import Console

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for qgate CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """A review action was attempted and failed."""

    USER_ERROR = 2
    """Unknown user, review, task or store (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Review 'rv-9' not found",
        ...     solution="qgate queue  # list open reviews",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_store_not_found_error(path: str) -> None:
    """Print error when the JSON store file is missing."""
    print_error(
        f"No store found at {path}",
        reason="qgate reads reviews, tasks and users from a JSON store file",
        solution="qgate --store PATH ...  # or set QGATE_STORE",
    )


def print_user_not_found_error(user_id: str) -> None:
    """Print error when the acting user is not in the store."""
    print_error(
        f"User '{user_id}' not found",
        reason="The --as user must exist in the store's users list",
    )
