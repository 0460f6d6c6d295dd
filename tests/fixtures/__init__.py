"""Test fixtures for Benchmarkify."""

from .throttle_responses import (
    GRAPHQL_ERROR_RESPONSE,
    PRODUCT_CREATE_RESPONSE,
    PRODUCT_CREATE_USER_ERROR,
    PRODUCT_DELETE_RESPONSE,
    PRODUCT_UPDATE_RESPONSE,
    SHOP_RESPONSE,
    SHOP_RESPONSE_ENTERPRISE,
    SHOP_RESPONSE_NO_EXTENSIONS,
    THROTTLE_STATUS_ENTERPRISE,
    THROTTLE_STATUS_HEALTHY,
    THROTTLE_STATUS_NEARLY_FULL,
    THROTTLED_RESPONSE,
    cost_extensions,
    products_page,
    snapshot_at,
)

__all__ = [
    # Admin API throttle status blocks
    "THROTTLE_STATUS_ENTERPRISE",
    "THROTTLE_STATUS_HEALTHY",
    "THROTTLE_STATUS_NEARLY_FULL",
    # Mock GraphQL response bodies
    "GRAPHQL_ERROR_RESPONSE",
    "PRODUCT_CREATE_RESPONSE",
    "PRODUCT_CREATE_USER_ERROR",
    "PRODUCT_DELETE_RESPONSE",
    "PRODUCT_UPDATE_RESPONSE",
    "SHOP_RESPONSE",
    "SHOP_RESPONSE_ENTERPRISE",
    "SHOP_RESPONSE_NO_EXTENSIONS",
    "THROTTLED_RESPONSE",
    # Builders
    "cost_extensions",
    "products_page",
    "snapshot_at",
]
