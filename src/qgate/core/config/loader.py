"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import GateConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: GateConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/qgate/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "qgate" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .qgate.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".qgate.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("false", "0", "no", "off", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        QGATE_STORE - overrides store.path
        QGATE_AWARD_FLOOR_XP - overrides grading.award_floor_xp
        QGATE_REQUIRE_REVISE_FEEDBACK - overrides review.require_revise_feedback
        QGATE_REVIEWER_MARKERS - overrides permissions.reviewer_position_markers
            (comma-separated)

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if store_path := os.environ.get("QGATE_STORE"):
        result["store"] = {**result.get("store", {}), "path": store_path}

    if floor_str := os.environ.get("QGATE_AWARD_FLOOR_XP"):
        try:
            floor_value = int(floor_str)
            result["grading"] = {**result.get("grading", {}), "award_floor_xp": floor_value}
        except ValueError:
            logger.warning("Invalid QGATE_AWARD_FLOOR_XP value '%s', ignoring", floor_str)

    if feedback_str := os.environ.get("QGATE_REQUIRE_REVISE_FEEDBACK"):
        result["review"] = {
            **result.get("review", {}),
            "require_revise_feedback": _parse_bool(feedback_str),
        }

    if markers_str := os.environ.get("QGATE_REVIEWER_MARKERS"):
        markers = [m.strip() for m in markers_str.split(",") if m.strip()]
        if markers:
            result["permissions"] = {
                **result.get("permissions", {}),
                "reviewer_position_markers": markers,
            }
        else:
            logger.warning("Empty QGATE_REVIEWER_MARKERS value, ignoring")

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "grading": {
            "difficulty_xp": {"EASY": 100, "MEDIUM": 200, "HARD": 300},
            "hour_bonus_xp": 20,
            "award_floor_xp": 0,
        },
        "review": {"require_revise_feedback": True, "collapsed_groups": ["upcoming"]},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> GateConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (QGATE_*)
        2. Project config (.qgate.json)
        3. User config (~/.config/qgate/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .qgate.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated GateConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = GateConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
