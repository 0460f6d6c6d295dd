"""Configuration settings for Benchmarkify."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TierConfig(BaseModel):
    """Starting point for one throughput tier.

    Selected once per run from the leak rate reported by the calibration
    query. Batch sizes are derived from the leak rate and then capped by
    the values here.
    """

    name: str = Field(description="Human readable tier name")
    min_leak_rate: float = Field(ge=0.0, description="Leak rate (points/sec) at which tier applies")
    batch_size_cap: int = Field(ge=1, description="Upper bound for the starting batch size")
    delay_ms: int = Field(ge=0, description="Starting inter-batch delay")
    max_batch_size_cap: int = Field(ge=1, description="Upper bound for the run's max batch size")


def _default_tiers() -> list[TierConfig]:
    return [
        TierConfig(
            name="enterprise",
            min_leak_rate=2000,
            batch_size_cap=200,
            delay_ms=10,
            max_batch_size_cap=400,
        ),
        TierConfig(
            name="high", min_leak_rate=1000, batch_size_cap=100, delay_ms=20, max_batch_size_cap=200
        ),
        TierConfig(
            name="medium", min_leak_rate=200, batch_size_cap=50, delay_ms=50, max_batch_size_cap=100
        ),
        TierConfig(
            name="standard", min_leak_rate=0, batch_size_cap=25, delay_ms=100, max_batch_size_cap=50
        ),
    ]


class ControllerConfig(BaseModel):
    """Configuration for the adaptive rate limit controller.

    Every threshold and multiplicative factor is a tunable default
    observed to work against Shopify's leaky bucket, not a derived value.
    """

    # Defaults restored by reset()
    default_batch_size: int = Field(default=50, ge=1, description="Batch size after reset")
    default_delay_ms: int = Field(default=25, ge=0, description="Inter-batch delay after reset")

    # Bounds
    max_batch_size: int = Field(default=200, ge=1, le=10000, description="Largest batch allowed")
    min_delay_ms: int = Field(default=10, ge=0, description="Smallest inter-batch delay")
    max_delay_ms: int = Field(default=2000, ge=1, description="Largest delay (also caps backoff)")

    # Usage bands (percent of bucket capacity in use)
    critical_usage_pct: float = Field(default=90.0, ge=0.0, le=100.0)
    high_usage_pct: float = Field(default=75.0, ge=0.0, le=100.0)
    steady_usage_pct: float = Field(default=50.0, ge=0.0, le=100.0)
    very_low_usage_pct: float = Field(default=30.0, ge=0.0, le=100.0)

    # Band factors: (batch multiplier, delay multiplier)
    critical_batch_factor: float = Field(default=0.85, gt=0.0, lt=1.0)
    critical_delay_factor: float = Field(default=1.2, gt=1.0)
    high_batch_factor: float = Field(default=0.9, gt=0.0, lt=1.0)
    high_delay_factor: float = Field(default=1.1, gt=1.0)
    low_batch_factor: float = Field(default=1.3, gt=1.0)
    low_delay_factor: float = Field(default=0.7, gt=0.0, lt=1.0)
    very_low_batch_factor: float = Field(default=1.5, gt=1.0)
    very_low_delay_factor: float = Field(default=0.5, gt=0.0, lt=1.0)

    # Failure window
    failure_window_seconds: float = Field(default=60.0, gt=0.0)
    failure_threshold: int = Field(
        default=5, ge=1, description="Failures tolerated in the window before forcing a slowdown"
    )
    failure_batch_factor: float = Field(default=0.8, gt=0.0, lt=1.0)
    failure_delay_factor: float = Field(default=1.3, gt=1.0)

    # Throughput nudge
    optimize_usage_ceiling_pct: float = Field(default=60.0, ge=0.0, le=100.0)
    optimize_batch_increment: int = Field(default=25, ge=0)
    optimize_delay_decrement_ms: int = Field(default=5, ge=0)

    # Audit recommendations
    high_usage_threshold_pct: float = Field(default=80.0, ge=0.0, le=100.0)
    low_usage_threshold_pct: float = Field(default=40.0, ge=0.0, le=100.0)

    # Calibration
    high_throughput_leak_rate: float = Field(
        default=2000.0, ge=0.0, description="Leak rate that switches on high-throughput mode"
    )
    tiers: list[TierConfig] = Field(default_factory=_default_tiers, min_length=1)

    history_size: int = Field(default=50, ge=1, description="Rate limit snapshots kept")

    @model_validator(mode="after")
    def _check_bounds(self) -> "ControllerConfig":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        if not (
            self.very_low_usage_pct
            <= self.steady_usage_pct
            <= self.high_usage_pct
            <= self.critical_usage_pct
        ):
            raise ValueError("usage bands must be ordered very_low <= steady <= high <= critical")
        # Highest threshold first so lookup can stop at the first match
        self.tiers = sorted(self.tiers, key=lambda t: t.min_leak_rate, reverse=True)
        return self


class RetryConfig(BaseModel):
    """Configuration for per-operation retries."""

    max_retries: int = Field(default=3, ge=0, le=20, description="Retries after the first attempt")
    base_retry_delay_ms: int = Field(
        default=500, ge=0, description="Backoff base; attempt n waits base * 2**n"
    )


class BenchmarkConfig(BaseModel):
    """Configuration for benchmark runs."""

    max_operation_count: int = Field(
        default=1_000_000, ge=1, description="Practical ceiling for a single run"
    )
    cost_per_operation: int = Field(
        default=10, ge=1, description="Nominal cost of one product mutation"
    )
    benchmark_tag: str = Field(
        default="benchmarkify", min_length=1, description="Tag applied to every created product"
    )
    page_size: int = Field(default=250, ge=1, le=250, description="Products per search page")
    projection_milestones: list[int] = Field(
        default_factory=lambda: [1_000, 100_000, 1_000_000, 10_000_000],
        description="Operation counts to extrapolate timing for",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Shopify Admin API
    # --------------------------------------------------------------------------
    store_url: str = Field(
        default="",
        description="Store base URL, e.g. https://example.myshopify.com",
    )
    access_token: str = Field(
        default="",
        description="Admin API access token",
    )
    api_version: str = Field(
        default="2025-07",
        description="Admin API version used in the GraphQL endpoint path",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="HTTP timeout for a single GraphQL request",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Retries
    # --------------------------------------------------------------------------
    controller: ControllerConfig = Field(
        default_factory=ControllerConfig,
        description="Adaptive controller configuration",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Per-operation retry configuration",
    )

    # --------------------------------------------------------------------------
    # Benchmark Runs
    # --------------------------------------------------------------------------
    benchmark: BenchmarkConfig = Field(
        default_factory=BenchmarkConfig,
        description="Benchmark run configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @property
    def graphql_endpoint(self) -> str:
        """Admin GraphQL endpoint for the configured store."""
        return f"{self.store_url.rstrip('/')}/admin/api/{self.api_version}/graphql.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
