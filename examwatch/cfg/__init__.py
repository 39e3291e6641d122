"""
Examwatch Configuration Module

Pydantic-based configuration with environment overrides.
"""

from examwatch.cfg.config import (
    BaseConfig,
    MonitoringSettings,
    BehaviorConfig,
    StabilizerConfig,
    Settings,
    get_settings,
)

__all__ = [
    "BaseConfig",
    "MonitoringSettings",
    "BehaviorConfig",
    "StabilizerConfig",
    "Settings",
    "get_settings",
]
