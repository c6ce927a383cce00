"""
Configuration models and loading.

This module provides Pydantic models for qgate configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    GateConfig,
    GradingConfig,
    PermissionConfig,
    ReviewGateConfig,
    StoreConfig,
)

__all__ = [
    # Models
    "GateConfig",
    "GradingConfig",
    "PermissionConfig",
    "ReviewGateConfig",
    "StoreConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]
