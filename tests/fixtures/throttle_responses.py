"""Mock Shopify GraphQL response fixtures.

These fixtures represent realistic Admin GraphQL responses carrying
``extensions.cost`` for testing snapshot parsing, the client and the
controller.

See: https://shopify.dev/docs/api/usage/rate-limits#graphql-admin-api-rate-limits
"""

from typing import Any

from benchmarkify.shopify.rate_limit.schemas import RateLimitSnapshot

# -----------------------------------------------------------------------------
# Throttle Status Blocks
# -----------------------------------------------------------------------------

THROTTLE_STATUS_HEALTHY = {
    "maximumAvailable": 2000.0,
    "currentlyAvailable": 1990,
    "restoreRate": 100.0,
}

THROTTLE_STATUS_NEARLY_FULL = {
    "maximumAvailable": 2000.0,
    "currentlyAvailable": 100,
    "restoreRate": 100.0,
}

THROTTLE_STATUS_ENTERPRISE = {
    "maximumAvailable": 20000.0,
    "currentlyAvailable": 19990,
    "restoreRate": 2000.0,
}


def cost_extensions(
    throttle_status: dict[str, Any],
    actual_cost: float | None = 10,
    requested_cost: float = 10,
) -> dict[str, Any]:
    """Build an ``extensions`` block for a response."""
    return {
        "cost": {
            "requestedQueryCost": requested_cost,
            "actualQueryCost": actual_cost,
            "throttleStatus": throttle_status,
        }
    }


# -----------------------------------------------------------------------------
# Full Response Bodies
# -----------------------------------------------------------------------------

SHOP_RESPONSE = {
    "data": {"shop": {"name": "Benchmark Store", "id": "gid://shopify/Shop/1"}},
    "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY, actual_cost=1, requested_cost=1),
}

SHOP_RESPONSE_ENTERPRISE = {
    "data": {"shop": {"name": "Big Store", "id": "gid://shopify/Shop/2"}},
    "extensions": cost_extensions(THROTTLE_STATUS_ENTERPRISE, actual_cost=1, requested_cost=1),
}

SHOP_RESPONSE_NO_EXTENSIONS = {
    "data": {"shop": {"name": "Quiet Store", "id": "gid://shopify/Shop/3"}},
}

PRODUCT_CREATE_RESPONSE = {
    "data": {
        "productCreate": {
            "product": {
                "id": "gid://shopify/Product/1001",
                "title": "Rustic Wooden Chair",
                "handle": "rustic-wooden-chair",
                "createdAt": "2025-01-15T10:00:00Z",
            },
            "userErrors": [],
        }
    },
    "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY),
}

PRODUCT_CREATE_USER_ERROR = {
    "data": {
        "productCreate": {
            "product": None,
            "userErrors": [{"field": ["title"], "message": "Title can't be blank"}],
        }
    },
    "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY),
}

PRODUCT_UPDATE_RESPONSE = {
    "data": {
        "productUpdate": {
            "product": {
                "id": "gid://shopify/Product/1001",
                "title": "Rustic Wooden Chair (Updated 2025-01-15)",
                "updatedAt": "2025-01-15T10:05:00Z",
            },
            "userErrors": [],
        }
    },
    "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY),
}

PRODUCT_DELETE_RESPONSE = {
    "data": {
        "productDelete": {
            "deletedProductId": "gid://shopify/Product/1001",
            "userErrors": [],
        }
    },
    "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY),
}

THROTTLED_RESPONSE = {
    "errors": [
        {
            "message": "Throttled",
            "extensions": {
                "code": "THROTTLED",
                "documentation": "https://shopify.dev/api/usage/rate-limits",
            },
        }
    ],
    "extensions": cost_extensions(THROTTLE_STATUS_NEARLY_FULL, actual_cost=None),
}

GRAPHQL_ERROR_RESPONSE = {
    "errors": [{"message": "Field 'bogus' doesn't exist on type 'Shop'"}],
}


def products_page(
    ids: list[int],
    *,
    has_next: bool = False,
    end_cursor: str | None = None,
    tag: str = "benchmarkify",
) -> dict[str, Any]:
    """Build a ``getProducts`` response page."""
    return {
        "data": {
            "products": {
                "edges": [
                    {
                        "cursor": f"cursor-{i}",
                        "node": {
                            "id": f"gid://shopify/Product/{i}",
                            "title": f"Product {i}",
                            "handle": f"product-{i}",
                            "createdAt": "2025-01-15T10:00:00Z",
                            "tags": ["organic", tag],
                        },
                    }
                    for i in ids
                ],
                "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
            }
        },
        "extensions": cost_extensions(THROTTLE_STATUS_HEALTHY, actual_cost=len(ids) or 1),
    }


# -----------------------------------------------------------------------------
# Snapshot Helpers
# -----------------------------------------------------------------------------


def snapshot_at(
    usage_percent: float,
    capacity: float = 1000.0,
    leak_rate: float | None = 50.0,
    cost: float = 10.0,
) -> RateLimitSnapshot:
    """Build a snapshot with the given bucket usage."""
    return RateLimitSnapshot(
        points_used=capacity * usage_percent / 100,
        bucket_capacity=capacity,
        leak_rate_per_second=leak_rate,
        cost_of_last_operation=cost,
    )
