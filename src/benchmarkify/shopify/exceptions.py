"""Shopify client exceptions."""

from __future__ import annotations

from benchmarkify.shopify.rate_limit.schemas import ErrorKind, RateLimitSnapshot


class ShopifyClientError(Exception):
    """Base exception for Shopify client errors.

    ``rate_limit`` carries the bucket state when the failing response
    still reported one, so the controller can learn from failures too.
    """

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(self, message: str, *, rate_limit: RateLimitSnapshot | None = None) -> None:
        super().__init__(message)
        self.rate_limit = rate_limit


class ShopifyAuthenticationError(ShopifyClientError):
    """Raised when credentials are missing or rejected (401/403)."""

    kind = ErrorKind.AUTHENTICATION


class ShopifyRetryableError(ShopifyClientError):
    """Base class for errors that should be retried with backoff."""

    pass


class ShopifyTransientError(ShopifyRetryableError):
    """Raised on network failures, 5xx responses and malformed bodies."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        rate_limit: RateLimitSnapshot | None = None,
    ) -> None:
        super().__init__(message, rate_limit=rate_limit)
        self.status_code = status_code


class ShopifyRateLimitError(ShopifyRetryableError):
    """Raised when the API throttles the request (429 or THROTTLED)."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        *,
        rate_limit: RateLimitSnapshot | None = None,
    ) -> None:
        super().__init__(message, rate_limit=rate_limit)
        self.retry_after = retry_after


class ShopifyGraphQLError(ShopifyRetryableError):
    """Raised when the response carries top-level GraphQL errors."""

    kind = ErrorKind.GRAPHQL

    def __init__(
        self,
        message: str,
        errors: list[dict[str, object]] | None = None,
        *,
        rate_limit: RateLimitSnapshot | None = None,
    ) -> None:
        super().__init__(message, rate_limit=rate_limit)
        self.errors = errors or []


class BenchmarkConfigurationError(ValueError):
    """Raised for invalid run requests before any batch starts."""

    pass
