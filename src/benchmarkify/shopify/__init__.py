"""Shopify Admin GraphQL API client, rate limit control and pacing."""

from .client import ShopifyClient
from .exceptions import (
    ShopifyAuthenticationError,
    ShopifyClientError,
    ShopifyGraphQLError,
    ShopifyRateLimitError,
    ShopifyRetryableError,
    ShopifyTransientError,
)

__all__ = [
    "ShopifyAuthenticationError",
    "ShopifyClient",
    "ShopifyClientError",
    "ShopifyGraphQLError",
    "ShopifyRateLimitError",
    "ShopifyRetryableError",
    "ShopifyTransientError",
]
