"""Pytest configuration and shared fixtures.

Usage Guide:
- For controller tests: use the `controller` fixture (fake clock attached)
- For retry/scheduler tests: use the `fake_sleep` and `sleeps` fixtures
- For executors and samples: import from tests.fixtures.fakes
- For response bodies and snapshots: import from tests.fixtures.throttle_responses
"""

from collections.abc import Callable, Generator
from typing import Any

import pytest
from tests.fixtures.fakes import FakeClock

from benchmarkify.config import (
    BenchmarkConfig,
    ControllerConfig,
    RetryConfig,
    Settings,
    get_settings,
)
from benchmarkify.shopify.rate_limit.controller import RateLimitController


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Keep cached settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def controller_config() -> ControllerConfig:
    """Default controller configuration."""
    return ControllerConfig()


@pytest.fixture
def retry_config() -> RetryConfig:
    """Default retry configuration."""
    return RetryConfig()


@pytest.fixture
def settings() -> Settings:
    """Settings with test credentials and no .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        store_url="https://test-store.myshopify.com",
        access_token="shpat_test",
        benchmark=BenchmarkConfig(max_operation_count=500),
    )


# -----------------------------------------------------------------------------
# Controller Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def controller(
    controller_config: ControllerConfig,
    retry_config: RetryConfig,
    clock: FakeClock,
) -> RateLimitController:
    """Controller at its defaults with a fake clock."""
    return RateLimitController(controller_config, retry_config, clock=clock)


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded sleep durations (see `fake_sleep`)."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """Sleep replacement that records durations without waiting."""

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep
