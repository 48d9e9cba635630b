"""Configuration management for the resource matcher."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import build_app_config, load_config, validate_config_file
from .models import (
    DEFAULT_MATCH_CATEGORIES,
    ApiConfig,
    AppConfig,
    CategoryEntry,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
    NarrationConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "build_app_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "MatchingConfig",
    "CategoryEntry",
    "NarrationConfig",
    "ApiConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "DEFAULT_MATCH_CATEGORIES",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
