"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/resources.db"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        environment: Optional[str] = None,
        api_host: Optional[str] = None,
        api_port: Optional[int] = None,
    ):
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.anthropic_api_key = anthropic_api_key
        self.environment = environment or "local"
        self.api_host = api_host or "127.0.0.1"
        self.api_port = api_port or 8000


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - DATABASE_URL: listing store URL (default: sqlite:///./data/resources.db)
    - LOG_LEVEL: override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ANTHROPIC_API_KEY: enables relevance notes when narration is enabled
    - ENVIRONMENT: environment label stamped on logs (default: local)
    - API_HOST / API_PORT: bind address for the HTTP server

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    errors = []

    log_level = os.getenv("LOG_LEVEL")
    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    api_port = None
    api_port_str = os.getenv("API_PORT")
    if api_port_str:
        try:
            api_port = int(api_port_str)
            if api_port < 1 or api_port > 65535:
                errors.append(f"Invalid API_PORT: {api_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid API_PORT: '{api_port_str}'. Must be a valid integer.")

    database_url = os.getenv("DATABASE_URL")
    if database_url is not None and not database_url.strip():
        errors.append("DATABASE_URL is set but empty")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and adjust the values",
                "Unset variables you do not need; all of them are optional",
            ],
        )

    return EnvironmentConfig(
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        environment=os.getenv("ENVIRONMENT"),
        api_host=os.getenv("API_HOST"),
        api_port=api_port,
    )
