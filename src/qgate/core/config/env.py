"""
.env support for the QGATE_* overrides.

apply_env_overrides() in loader.py reads QGATE_STORE, QGATE_AWARD_FLOOR_XP,
QGATE_REQUIRE_REVISE_FEEDBACK and QGATE_REVIEWER_MARKERS from os.environ.
This module lets those variables live in two .env files instead:

    ~/.config/qgate/.env     per-user defaults (XDG_CONFIG_HOME honoured)
    <project root>/.env      per-project values, beat the user file

A variable already exported in the shell always wins. Only QGATE_* keys
are imported; a project .env usually carries unrelated settings that are
none of qgate's business.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

from qgate.core.config.loader import get_xdg_config_home
from qgate.utils.project import find_project_root

logger = logging.getLogger(__name__)

ENV_PREFIX = "QGATE_"


def get_user_env_path() -> Path:
    """Path to the per-user .env file."""
    return get_xdg_config_home() / "qgate" / ".env"


def read_gate_env(path: Path) -> dict[str, str]:
    """QGATE_* assignments in one .env file; empty if the file is missing."""
    if not path.is_file():
        return {}
    values = {}
    for key, value in dotenv_values(path).items():
        if not key or value is None:
            continue
        if not key.startswith(ENV_PREFIX):
            logger.debug("Ignoring %s from %s", key, path)
            continue
        values[key] = value
    return values


def load_layered_env(
    project_dir: Path | None = None, *, user_env_path: Path | None = None
) -> dict[str, Path]:
    """
    Export QGATE_* values from the user and project .env files.

    Args:
        project_dir: Directory holding the project .env (defaults to the
            discovered project root, else the current directory)
        user_env_path: Override for the per-user .env location

    Returns:
        Mapping of each variable actually exported to the file it came from.
    """
    if project_dir is None:
        project_dir = find_project_root() or Path.cwd()
    if user_env_path is None:
        user_env_path = get_user_env_path()

    # Later files win
    merged: dict[str, tuple[str, Path]] = {}
    for path in (Path(user_env_path), Path(project_dir) / ".env"):
        for key, value in read_gate_env(path).items():
            merged[key] = (value, path)

    exported: dict[str, Path] = {}
    for key, (value, path) in merged.items():
        if key in os.environ:
            logger.debug("%s already set in the environment, ignoring %s", key, path)
            continue
        os.environ[key] = value
        exported[key] = path
        logger.debug("Loaded %s from %s", key, path)
    return exported
