"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from resource_matcher.domain.models import GeoStrategy

from .duration import DurationParseError, parse_duration, validate_duration_range

DEFAULT_MATCH_CATEGORIES = ["grant", "accelerator", "sba", "coworking"]


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _normalize_category(value: str) -> str:
    stripped = value.strip().lower()
    if not stripped:
        raise ValueError("Category cannot be empty or whitespace-only")
    return stripped


class MatchingConfig(BaseModel):
    """Orchestrator settings."""

    default_categories: List[str] = Field(
        default_factory=lambda: list(DEFAULT_MATCH_CATEGORIES),
        min_length=1,
        description="Categories matched when a request does not name any",
    )
    max_workers: int = Field(
        4, ge=1, le=32, description="Threads used to run category passes concurrently"
    )
    timeout: Optional[Union[str, int]] = Field(
        None, description="Overall deadline for one match (e.g. '10s'); unset = no deadline"
    )

    # Computed field
    timeout_seconds: Optional[int] = None

    @field_validator("default_categories")
    @classmethod
    def normalize_categories(cls, v: List[str]) -> List[str]:
        """Lower-case categories and drop duplicates, keeping order."""
        normalized: List[str] = []
        for category in v:
            value = _normalize_category(category)
            if value not in normalized:
                normalized.append(value)
        return normalized

    @model_validator(mode="after")
    def compute_timeout(self):
        """Parse the match timeout into seconds."""
        if self.timeout is None:
            self.timeout_seconds = None
            return self
        try:
            seconds = parse_duration(self.timeout)
            validate_duration_range(seconds, min_seconds=1, max_seconds=120, label="Match timeout")
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        self.timeout_seconds = seconds
        return self


class CategoryEntry(BaseModel):
    """Registry entry that adds or overrides a category's strategy and limit."""

    category: str = Field(..., min_length=1)
    strategy: GeoStrategy = Field(..., description="Geographic query strategy")
    limit: int = Field(..., ge=1, le=50, description="Maximum results for the category")

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str) -> str:
        return _normalize_category(v)


class NarrationConfig(BaseModel):
    """Settings for the optional relevance-note generator."""

    enabled: bool = Field(False, description="Ask the text-generation API for relevance notes")
    base_url: Optional[str] = Field(
        None, description="API base URL override (e.g. a proxy); unset = Anthropic default"
    )
    model: str = Field("claude-sonnet-4-20250514", min_length=1)
    max_tokens: int = Field(2000, ge=100, le=8000)
    temperature: float = Field(0.7, ge=0.0, le=1.0)
    timeout_seconds: int = Field(30, ge=5, le=300, description="HTTP timeout (seconds)")

    @field_validator("model")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("base_url")
    @classmethod
    def blank_base_url_is_default(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ApiConfig(BaseModel):
    """HTTP layer settings."""

    cache_ttl: Union[str, int] = Field(
        "5m", description="Response cache lifetime; '0' disables caching"
    )
    cache_max_entries: int = Field(1000, ge=1, le=100000)

    # Computed field
    cache_ttl_seconds: int = 0

    @model_validator(mode="after")
    def compute_cache_ttl(self):
        try:
            seconds = parse_duration(self.cache_ttl, allow_zero=True)
            validate_duration_range(seconds, min_seconds=0, max_seconds=86400, label="Cache TTL")
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        self.cache_ttl_seconds = seconds
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the resource matcher."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    categories: List[CategoryEntry] = Field(
        default_factory=list, description="Registry additions and overrides"
    )
    narration: NarrationConfig = Field(default_factory=NarrationConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_unique_categories(self):
        """Each category may be configured at most once."""
        seen = set()
        for entry in self.categories:
            if entry.category in seen:
                raise ValueError(
                    f"Duplicate category entry: {entry.category} appears multiple times"
                )
            seen.add(entry.category)
        return self
