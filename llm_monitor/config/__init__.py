"""
Configuration module

Exports configuration classes and accessors
"""

from .config import (
    ENV_PREFIX,
    MonitorConfig,
    ConfigManager,
    CustomPatternSettings,
    ScrubbingSettings,
    StoreConfig,
    AggregationConfig,
    OTelConfig,
    APIConfig,
    LoggingConfig,
    get_config,
    get_config_manager,
    reload_config,
)

__all__ = [
    "ENV_PREFIX",
    "MonitorConfig",
    "ConfigManager",
    "CustomPatternSettings",
    "ScrubbingSettings",
    "StoreConfig",
    "AggregationConfig",
    "OTelConfig",
    "APIConfig",
    "LoggingConfig",
    "get_config",
    "get_config_manager",
    "reload_config",
]
