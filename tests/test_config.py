"""Tests for configuration settings."""

import pytest

from benchmarkify.config import (
    BenchmarkConfig,
    ControllerConfig,
    RetryConfig,
    Settings,
    TierConfig,
    get_settings,
)


class TestSettings:
    """Tests for Settings class."""

    def test_settings_defaults(self, monkeypatch):
        """Test default values are correct."""
        monkeypatch.delenv("STORE_URL", raising=False)
        monkeypatch.delenv("ACCESS_TOKEN", raising=False)

        settings = Settings(
            _env_file=None,  # Don't load .env
        )

        assert settings.store_url == ""
        assert settings.access_token == ""
        assert settings.api_version == "2025-07"
        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.benchmark.cost_per_operation == 10
        assert settings.benchmark.benchmark_tag == "benchmarkify"

    def test_graphql_endpoint(self):
        """Test the endpoint combines store URL and API version."""
        settings = Settings(
            _env_file=None,
            store_url="https://example.myshopify.com/",
            api_version="2024-10",
        )

        assert settings.graphql_endpoint == (
            "https://example.myshopify.com/admin/api/2024-10/graphql.json"
        )

    def test_settings_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("STORE_URL", "https://env-store.myshopify.com")
        monkeypatch.setenv("ACCESS_TOKEN", "shpat_env")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings(_env_file=None)

        assert settings.store_url == "https://env-store.myshopify.com"
        assert settings.access_token == "shpat_env"
        assert settings.environment == "production"
        assert settings.log_level == "DEBUG"

    def test_nested_env_overrides(self, monkeypatch):
        """Test nested sections are set with a double underscore."""
        monkeypatch.setenv("CONTROLLER__MAX_BATCH_SIZE", "120")
        monkeypatch.setenv("RETRY__MAX_RETRIES", "5")
        monkeypatch.setenv("BENCHMARK__COST_PER_OPERATION", "12")

        settings = Settings(_env_file=None)

        assert settings.controller.max_batch_size == 120
        assert settings.retry.max_retries == 5
        assert settings.benchmark.cost_per_operation == 12

    def test_settings_environment_validation(self, monkeypatch):
        """Test that invalid environment value is rejected."""
        monkeypatch.setenv("ENVIRONMENT", "invalid")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_log_level_validation(self, monkeypatch):
        """Test that invalid log level is rejected."""
        monkeypatch.setenv("LOG_LEVEL", "INVALID")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_case_insensitive(self, monkeypatch):
        """Test that env var names are case-insensitive."""
        monkeypatch.setenv("store_url", "https://lower.myshopify.com")
        monkeypatch.setenv("ACCESS_TOKEN", "upper_token")

        settings = Settings(_env_file=None)

        assert settings.store_url == "https://lower.myshopify.com"
        assert settings.access_token == "upper_token"


class TestControllerConfig:
    """Tests for ControllerConfig validation."""

    def test_defaults(self):
        """Test controller defaults."""
        config = ControllerConfig()

        assert config.default_batch_size == 50
        assert config.default_delay_ms == 25
        assert config.max_batch_size == 200
        assert config.min_delay_ms == 10
        assert config.max_delay_ms == 2000
        assert config.failure_threshold == 5

    def test_tiers_sorted_highest_first(self):
        """Test tiers are ordered by descending leak rate threshold."""
        config = ControllerConfig(
            tiers=[
                TierConfig(
                    name="low", min_leak_rate=0, batch_size_cap=5, delay_ms=100,
                    max_batch_size_cap=10,
                ),
                TierConfig(
                    name="top", min_leak_rate=500, batch_size_cap=50, delay_ms=10,
                    max_batch_size_cap=100,
                ),
            ]
        )

        assert [t.name for t in config.tiers] == ["top", "low"]

    def test_default_tiers(self):
        """Test the four built-in tiers."""
        names = [t.name for t in ControllerConfig().tiers]
        assert names == ["enterprise", "high", "medium", "standard"]

    def test_min_delay_above_max_rejected(self):
        """Test min_delay_ms may not exceed max_delay_ms."""
        with pytest.raises(ValueError, match="min_delay_ms"):
            ControllerConfig(min_delay_ms=500, max_delay_ms=100)

    def test_band_order_enforced(self):
        """Test usage bands must be ascending."""
        with pytest.raises(ValueError, match="usage bands"):
            ControllerConfig(steady_usage_pct=80.0, high_usage_pct=70.0)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("critical_batch_factor", 1.2),
            ("critical_delay_factor", 0.9),
            ("very_low_batch_factor", 0.5),
            ("max_batch_size", 0),
        ],
    )
    def test_factor_bounds(self, field, value):
        """Test factors must shrink or grow in the right direction."""
        with pytest.raises(ValueError):
            ControllerConfig(**{field: value})

    def test_empty_tiers_rejected(self):
        """Test at least one tier is required."""
        with pytest.raises(ValueError):
            ControllerConfig(tiers=[])


class TestRunConfigs:
    """Tests for RetryConfig and BenchmarkConfig."""

    def test_retry_defaults(self):
        """Test retry defaults."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.base_retry_delay_ms == 500

    def test_page_size_capped(self):
        """Test page size cannot exceed the API maximum."""
        with pytest.raises(ValueError):
            BenchmarkConfig(page_size=500)

    def test_default_milestones(self):
        """Test projection milestones."""
        assert BenchmarkConfig().projection_milestones == [1_000, 100_000, 1_000_000, 10_000_000]


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_settings(self):
        """Test that get_settings returns a Settings instance."""
        # Clear cache to ensure fresh settings
        get_settings.cache_clear()

        settings = get_settings()

        assert isinstance(settings, Settings)

    def test_get_settings_cached(self):
        """Test that get_settings returns cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        # Should be the same object (cached)
        assert settings1 is settings2
