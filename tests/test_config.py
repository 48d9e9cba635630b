"""Integration tests for configuration module."""

import warnings
from pathlib import Path

import pytest

from resource_matcher.config import (
    AppConfig,
    ConfigurationError,
    build_app_config,
    load_config,
    validate_config_file,
)
from resource_matcher.config.duration import (
    DurationParseError,
    parse_duration,
    validate_duration_range,
)
from resource_matcher.config.environment import DEFAULT_DATABASE_URL, load_environment_config
from resource_matcher.config.validators import check_for_warnings
from resource_matcher.domain.models import GeoStrategy

# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"
REPO_ROOT = Path(__file__).parent.parent


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, mock_env_vars):
        """Every section of a full configuration file is parsed."""
        app_config, env_config = load_config(FIXTURES_DIR / "valid_config.yaml")

        assert app_config.matching.default_categories == ["grant", "sba", "coworking"]
        assert app_config.matching.max_workers == 4
        assert app_config.matching.timeout == "15s"
        assert app_config.matching.timeout_seconds == 15

        entries = {entry.category: entry for entry in app_config.categories}
        assert set(entries) == {"coworking", "food-truck-commissary"}
        assert entries["coworking"].strategy == GeoStrategy.LOCAL_AND_NATIONWIDE
        assert entries["coworking"].limit == 4

        assert app_config.narration.enabled is True
        assert app_config.narration.max_tokens == 1500
        assert app_config.api.cache_ttl_seconds == 600
        assert app_config.api.cache_max_entries == 50
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == "json"

        assert env_config.anthropic_api_key == "test-key"

    def test_load_minimal_config(self, mock_env_vars):
        """An empty mapping yields all defaults."""
        app_config, env_config = load_config(FIXTURES_DIR / "minimal_config.yaml")

        assert app_config.matching.default_categories == ["grant", "accelerator", "sba", "coworking"]
        assert app_config.matching.max_workers == 4
        assert app_config.matching.timeout_seconds is None
        assert app_config.categories == []
        assert app_config.narration.enabled is False
        assert app_config.api.cache_ttl_seconds == 300
        assert app_config.logging.level == "INFO"
        assert app_config.logging.format == "key-value"

    def test_load_iso8601_durations(self, mock_env_vars):
        app_config, _ = load_config(FIXTURES_DIR / "iso8601_duration_config.yaml")

        assert app_config.matching.timeout_seconds == 30
        assert app_config.api.cache_ttl_seconds == 3600

    def test_example_config_is_valid(self, mock_env_vars):
        """The shipped config.example.yaml loads cleanly."""
        app_config, _ = load_config(REPO_ROOT / "config.example.yaml")
        assert app_config.matching.timeout_seconds == 10

    def test_config_file_not_found(self, mock_env_vars):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(Path("nonexistent.yaml"))

        assert "not found" in str(exc_info.value)

    def test_empty_file(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ConfigurationError, match="empty"):
            load_config(config_file)

    def test_top_level_must_be_mapping(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- grant\n- sba\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)

    def test_invalid_yaml_syntax(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("matching: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)

        assert "YAML" in str(exc_info.value)


class TestConfigurationValidation:
    """Schema validation errors."""

    def test_invalid_strategy(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config(
                {"categories": [{"category": "grant", "strategy": "worldwide", "limit": 3}]}
            )

        assert "categories -> 0 -> strategy" in str(exc_info.value)

    def test_duplicate_category_entries(self):
        config = {
            "categories": [
                {"category": "grant", "strategy": "local-only", "limit": 3},
                {"category": "GRANT", "strategy": "state-level", "limit": 2},
            ]
        }
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config(config)

        assert "Duplicate category entry: grant" in str(exc_info.value)

    def test_limit_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            build_app_config(
                {"categories": [{"category": "grant", "strategy": "local-only", "limit": 0}]}
            )

    def test_missing_category_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"categories": [{"strategy": "local-only", "limit": 1}]})

        assert "Missing required field: categories -> 0 -> category" in str(exc_info.value)

    def test_empty_default_categories(self):
        with pytest.raises(ConfigurationError):
            build_app_config({"matching": {"default_categories": []}})

    def test_timeout_out_of_range(self):
        with pytest.raises(ConfigurationError, match="Match timeout too long"):
            build_app_config({"matching": {"timeout": "5m"}})

    def test_integer_durations(self):
        """Bare integers are seconds; a zero cache TTL disables caching."""
        app_config = build_app_config({"matching": {"timeout": 20}, "api": {"cache_ttl": 0}})

        assert app_config.matching.timeout_seconds == 20
        assert app_config.api.cache_ttl_seconds == 0

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"logging": {"level": "VERBOSE"}})

        assert "logging -> level" in str(exc_info.value)

    def test_error_message_lists_suggestions(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"matching": {"max_workers": 0}})

        message = str(exc_info.value)
        assert "Validation Errors:" in message
        assert "Suggestions:" in message

    def test_validate_config_file(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text("matching:\n  max_workers: 2\n")
        bad = tmp_path / "bad.yaml"
        bad.write_text("matching:\n  max_workers: 100\n")

        assert validate_config_file(good) is True
        assert validate_config_file(bad) is False
        assert "✗" in capsys.readouterr().out


class TestConfigurationWarnings:
    """Valid settings that deserve a warning."""

    def test_unknown_section(self):
        warnings_found = check_for_warnings({"sources": []})
        assert warnings_found == ["Unknown configuration section 'sources' will be ignored"]

    def test_narration_without_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        warnings_found = check_for_warnings({"narration": {"enabled": True}})
        assert any("ANTHROPIC_API_KEY" in w for w in warnings_found)

    def test_few_workers(self):
        warnings_found = check_for_warnings(
            {"matching": {"max_workers": 1, "default_categories": ["grant", "sba"]}}
        )
        assert any("max_workers (1)" in w for w in warnings_found)

    def test_large_limit(self):
        warnings_found = check_for_warnings(
            {"categories": [{"category": "grant", "strategy": "local-only", "limit": 25}]}
        )
        assert any("Large limit (25)" in w for w in warnings_found)

    def test_warnings_emitted_on_load(self, tmp_path, mock_env_vars):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("extra_section: {}\n")

        with pytest.warns(UserWarning, match="extra_section"):
            load_config(config_file)

    def test_clean_config_has_no_warnings(self, mock_env_vars):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            load_config(FIXTURES_DIR / "valid_config.yaml")


class TestEnvironmentConfig:
    """Environment variable handling."""

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "LOG_LEVEL", "ANTHROPIC_API_KEY", "API_PORT", "ENVIRONMENT"):
            monkeypatch.delenv(name, raising=False)

        env_config = load_environment_config()

        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.log_level is None
        assert env_config.anthropic_api_key is None
        assert env_config.environment == "local"
        assert env_config.api_port == 8000

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/x.db")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("API_PORT", "9000")

        env_config = load_environment_config()

        assert env_config.database_url == "sqlite:///tmp/x.db"
        assert env_config.log_level == "DEBUG"
        assert env_config.api_port == 9000

    def test_invalid_values(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        monkeypatch.setenv("API_PORT", "http")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 2

    def test_empty_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "  ")
        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            load_environment_config()


class TestDurationParsing:
    """Test duration parsing functionality."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30s", 30),
            ("5m", 300),
            ("1h30m", 5400),
            ("1d", 86400),
            ("PT5M", 300),
            ("PT1H30M", 5400),
            ("P1D", 86400),
            ("45", 45),
            (12, 12),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "5x", "m5", "PT", "abc", "-5"])
    def test_invalid(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_zero(self):
        with pytest.raises(DurationParseError, match="zero"):
            parse_duration("0")
        assert parse_duration("0", allow_zero=True) == 0

    def test_bool_rejected(self):
        with pytest.raises(DurationParseError):
            parse_duration(True)

    def test_range(self):
        validate_duration_range(30, min_seconds=1, max_seconds=60)
        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(0, min_seconds=1, max_seconds=60)
        with pytest.raises(DurationParseError, match="Maximum is 1 minute"):
            validate_duration_range(120, min_seconds=1, max_seconds=60)


def test_app_config_defaults():
    assert AppConfig().matching.default_categories == ["grant", "accelerator", "sba", "coworking"]


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Pin the environment variables the loader reads."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("API_PORT", raising=False)
