"""
Project root discovery utilities for qgate.

The project root is where the store, the gate log and .qgate.json live.
"""

from pathlib import Path

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    ".qgate",  # Store and gate log directory
    ".qgate.json",  # Project configuration file
    ".git",  # Git repository
]


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root(Path("/project/deep/nested/dir"))
        PosixPath('/project')
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for candidate in [current, *current.parents]:
        for marker in PROJECT_ROOT_MARKERS:
            if (candidate / marker).exists():
                return candidate

    return None


def resolve_in_project(path: str | Path, root: Path) -> Path:
    """Resolve a configured path; relative paths are taken from the project root."""
    path = Path(path).expanduser()
    return path if path.is_absolute() else root / path
