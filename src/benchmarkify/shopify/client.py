"""Async Shopify Admin GraphQL client using httpx.

This module provides the single-operation executor the batch scheduler
drives: one network round trip per call, reporting cost, bucket state,
latency and an error classification instead of raising.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from benchmarkify.config import Settings, get_settings
from benchmarkify.logging import get_logger

from .exceptions import (
    ShopifyAuthenticationError,
    ShopifyClientError,
    ShopifyGraphQLError,
    ShopifyRateLimitError,
    ShopifyTransientError,
)
from .queries import CALIBRATION_QUERY, GET_PRODUCTS, nominal_cost
from .rate_limit.schemas import RateLimitSnapshot, TelemetrySample

logger = get_logger(__name__)

CALL_LIMIT_HEADER = "x-shopify-shop-api-call-limit"
QUERY_COST_HEADER = "x-shopify-graphql-query-cost"
MAX_PAGE_SIZE = 250


class ShopifyClient:
    """Async client for the Shopify Admin GraphQL API.

    Usage:
        async with ShopifyClient() as client:
            sample = await client.calibrate()
            print(sample.rate_limit.leak_rate_per_second)

    Or without context manager:
        client = ShopifyClient(store_url, access_token)
        sample = await client.execute(query, variables, operation_name="productCreate")
        await client.close()
    """

    def __init__(
        self,
        store_url: str | None = None,
        access_token: str | None = None,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Shopify client.

        Args:
            store_url: Store base URL. If not provided, uses STORE_URL from settings.
            access_token: Admin API token. If not provided, uses ACCESS_TOKEN from settings.
            settings: Optional settings (uses get_settings() if not provided)
            transport: Optional httpx transport (used by tests)

        Raises:
            ShopifyAuthenticationError: If the store URL or token is missing.
        """
        self._settings = settings or get_settings()
        self._store_url = (store_url or self._settings.store_url).rstrip("/")
        self._token = access_token or self._settings.access_token
        if not self._store_url or not self._token:
            raise ShopifyAuthenticationError(
                "Store URL and access token required. "
                "Set STORE_URL and ACCESS_TOKEN environment variables."
            )
        if not self._store_url.startswith(("http://", "https://")):
            self._store_url = f"https://{self._store_url}"

        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def endpoint(self) -> str:
        """Admin GraphQL endpoint URL."""
        return f"{self._store_url}/admin/api/{self._settings.api_version}/graphql.json"

    @property
    def store_url(self) -> str:
        return self._store_url

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the httpx client instance."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "X-Shopify-Access-Token": self._token,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self._settings.request_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ShopifyClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Operation Execution
    # -------------------------------------------------------------------------
    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> TelemetrySample:
        """Perform one GraphQL operation.

        Never raises for operation-level failures: throttling, network
        errors, HTTP errors and GraphQL errors all come back as a failed
        sample with an error kind.

        Args:
            query: GraphQL document
            variables: Operation variables
            operation_name: Name used for logging and nominal cost lookup

        Returns:
            TelemetrySample describing the attempt
        """
        started = time.perf_counter()
        try:
            body, snapshot, cost = await self._request(query, variables, operation_name)
        except ShopifyClientError as e:
            elapsed = time.perf_counter() - started
            snapshot = e.rate_limit
            cost = snapshot.cost_of_last_operation if snapshot else 0
            logger.debug("{} failed ({}): {}", operation_name or "operation", e.kind, e)
            return TelemetrySample.failure(
                e.kind,
                str(e),
                cost=cost or nominal_cost(operation_name),
                response_time_seconds=elapsed,
                rate_limit=snapshot,
                retry_after_seconds=getattr(e, "retry_after", None),
            )

        return TelemetrySample(
            success=True,
            cost=cost,
            rate_limit=snapshot,
            response_time_seconds=time.perf_counter() - started,
            data=body,
        )

    async def calibrate(self) -> TelemetrySample:
        """Run the lightweight shop query to learn the bucket's leak rate."""
        sample = await self.execute(CALIBRATION_QUERY, operation_name="shopInfo")
        if sample.success:
            shop = (sample.data or {}).get("data", {}).get("shop") or {}
            logger.info("Connected to shop {}", shop.get("name", "<unknown>"))
        return sample

    async def fetch_products_by_tag(self, tag: str, max_count: int) -> list[dict[str, Any]]:
        """Fetch products carrying ``tag``, newest first.

        Uses cursor pagination with pages of at most 250 products and
        stops after ``max_count`` products, or early on a page that adds
        no products or no new cursor. Products whose tags do not actually
        include ``tag`` are dropped.

        Raises:
            ShopifyClientError: If a page request fails
        """
        products: list[dict[str, Any]] = []
        after: str | None = None
        has_next = True

        while has_next and len(products) < max_count:
            page_size = min(MAX_PAGE_SIZE, max_count - len(products))
            body, _, _ = await self._request(
                GET_PRODUCTS,
                {
                    "first": page_size,
                    "after": after,
                    "query": f"tag:{tag}",
                    "sortKey": "CREATED_AT",
                    "reverse": True,
                },
                "getProducts",
            )

            connection = (body.get("data") or {}).get("products") or {}
            before = len(products)
            for edge in connection.get("edges") or []:
                node = edge.get("node")
                if node:
                    products.append(node)

            page_info = connection.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            has_next = bool(page_info.get("hasNextPage"))
            # A page that adds nothing or gives no new cursor cannot advance
            if has_next and (len(products) == before or not cursor or cursor == after):
                logger.warning("Product search stopped on a page without progress")
                has_next = False
            after = cursor

        matching = [p for p in products[:max_count] if tag in (p.get("tags") or [])]
        logger.debug("Found {} products tagged {}", len(matching), tag)
        return matching

    # -------------------------------------------------------------------------
    # Response Handling
    # -------------------------------------------------------------------------
    async def _request(
        self,
        query: str,
        variables: dict[str, Any] | None,
        operation_name: str | None,
    ) -> tuple[dict[str, Any], RateLimitSnapshot | None, float]:
        """Send one request and classify the response.

        Returns:
            Tuple of (response body, bucket snapshot, cost charged)

        Raises:
            ShopifyClientError: Subclass matching the failure
        """
        try:
            response = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
            )
        except httpx.RequestError as e:
            raise ShopifyTransientError(f"Request failed: {e}") from e

        return self._parse_response(response, operation_name)

    def _parse_response(
        self,
        response: httpx.Response,
        operation_name: str | None,
    ) -> tuple[dict[str, Any], RateLimitSnapshot | None, float]:
        status = response.status_code
        header_snapshot = _snapshot_from_headers(response.headers, nominal_cost(operation_name))

        if status in (401, 403):
            raise ShopifyAuthenticationError(
                f"Access denied ({status})", rate_limit=header_snapshot
            )
        if status == 429:
            raise ShopifyRateLimitError(
                "Rate limit exceeded (429)",
                retry_after=_parse_retry_after(response.headers.get("retry-after")),
                rate_limit=header_snapshot,
            )
        if status >= 500:
            raise ShopifyTransientError(
                f"Server error ({status})", status, rate_limit=header_snapshot
            )
        if status >= 400:
            raise ShopifyGraphQLError(
                f"Shopify API error ({status}): {response.text[:200]}",
                rate_limit=header_snapshot,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ShopifyTransientError(
                "Malformed JSON response", status, rate_limit=header_snapshot
            ) from e
        if not isinstance(body, dict):
            raise ShopifyTransientError(
                "Unexpected response body", status, rate_limit=header_snapshot
            )

        snapshot = _snapshot_from_body(body, operation_name) or header_snapshot
        cost = _reported_cost(body, response.headers)
        if cost is None:
            cost = nominal_cost(operation_name)

        errors = body.get("errors")
        if errors:
            if _is_throttled(errors):
                raise ShopifyRateLimitError("Throttled", rate_limit=snapshot)
            raise ShopifyGraphQLError(
                f"GraphQL errors: {_error_messages(errors)}",
                errors if isinstance(errors, list) else None,
                rate_limit=snapshot,
            )

        return body, snapshot, cost


def _snapshot_from_body(
    body: dict[str, Any],
    operation_name: str | None,
) -> RateLimitSnapshot | None:
    cost_info = (body.get("extensions") or {}).get("cost") or {}
    throttle_status = cost_info.get("throttleStatus")
    if not throttle_status:
        return None

    cost = cost_info.get("actualQueryCost")
    if cost is None:
        cost = nominal_cost(operation_name)
    try:
        return RateLimitSnapshot.from_throttle_status(throttle_status, cost)
    except (TypeError, ValueError) as e:
        logger.debug("Ignoring malformed throttleStatus: {}", e)
        return None


def _snapshot_from_headers(headers: httpx.Headers, default_cost: float) -> RateLimitSnapshot | None:
    value = headers.get(CALL_LIMIT_HEADER)
    if not value:
        return None
    cost = _parse_float(headers.get(QUERY_COST_HEADER))
    return RateLimitSnapshot.from_call_limit_header(
        value, cost if cost is not None else default_cost
    )


def _reported_cost(body: dict[str, Any], headers: httpx.Headers) -> float | None:
    cost_info = (body.get("extensions") or {}).get("cost") or {}
    actual = cost_info.get("actualQueryCost")
    if actual is not None:
        return float(actual)
    return _parse_float(headers.get(QUERY_COST_HEADER))


def _is_throttled(errors: Any) -> bool:
    if not isinstance(errors, list):
        return False
    return any(
        isinstance(err, dict) and (err.get("extensions") or {}).get("code") == "THROTTLED"
        for err in errors
    )


def _error_messages(errors: Any) -> str:
    if isinstance(errors, list):
        return "; ".join(
            str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
        )
    return str(errors)


def _parse_retry_after(value: str | None) -> float | None:
    seconds = _parse_float(value)
    if seconds is None or seconds < 0:
        return None
    return seconds


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
