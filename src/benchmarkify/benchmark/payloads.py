"""Payload producers feeding the batch scheduler.

A producer is called as ``await producer(kind, n)`` and returns up to
``n`` items. Returning fewer items than asked for means the source is
running dry; returning none ends the run with a shortfall.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from benchmarkify.logging import get_logger
from benchmarkify.shopify.exceptions import ShopifyClientError
from benchmarkify.shopify.pacing.retry import RetryWrapper
from benchmarkify.shopify.rate_limit.schemas import TelemetrySample

from .strategies import ProductRef

logger = get_logger(__name__)

TAG_CHOICES = ("organic", "handmade", "sustainable", "local")

_ADJECTIVES = (
    "Rustic", "Sleek", "Ergonomic", "Handcrafted", "Refined", "Small", "Practical",
    "Elegant", "Gorgeous", "Licensed", "Modern", "Recycled", "Tasty", "Fantastic",
)
_MATERIALS = (
    "Wooden", "Steel", "Cotton", "Granite", "Bamboo", "Rubber", "Plastic",
    "Concrete", "Frozen", "Fresh", "Soft", "Bronze", "Ceramic", "Leather",
)
_PRODUCTS = (
    "Chair", "Table", "Shirt", "Gloves", "Shoes", "Hat", "Towels", "Soap",
    "Keyboard", "Lamp", "Bike", "Ball", "Cheese", "Salad", "Pizza", "Wallet",
)
_VENDOR_PREFIXES = (
    "Acme", "Northwind", "Bluebird", "Summit", "Oakridge", "Harbor", "Evergreen",
    "Silverline", "Redwood", "Lakeside",
)
_VENDOR_SUFFIXES = ("Goods", "Supply Co.", "Trading", "Works", "Outfitters", "Collective")
_DESCRIPTIONS = (
    "Carefully made for everyday use and built to last.",
    "A customer favourite, now in a refreshed design.",
    "Thoughtfully sourced materials with a clean finish.",
    "Lightweight, durable and easy to care for.",
    "Designed in small batches with attention to detail.",
)

ProductFetcher = Callable[[str, int], Awaitable[list[dict[str, Any]]]]


class RandomProductGenerator:
    """Generates random ``ProductCreateInput`` payloads.

    Every product carries two of the descriptive tags plus the benchmark
    tag, which is how benchmark products are found again for updates,
    deletes and cleanup.
    """

    def __init__(self, tag: str = "benchmarkify", rng: random.Random | None = None) -> None:
        self._tag = tag
        self._rng = rng or random.Random()

    @property
    def tag(self) -> str:
        return self._tag

    def generate(self) -> dict[str, Any]:
        """Generate one product input."""
        rng = self._rng
        product = rng.choice(_PRODUCTS)
        return {
            "title": f"{rng.choice(_ADJECTIVES)} {rng.choice(_MATERIALS)} {product}",
            "descriptionHtml": f"<p>{rng.choice(_DESCRIPTIONS)}</p>",
            "vendor": f"{rng.choice(_VENDOR_PREFIXES)} {rng.choice(_VENDOR_SUFFIXES)}",
            "productType": product,
            "tags": [*rng.sample(TAG_CHOICES, 2), self._tag],
            "productOptions": [
                {"name": "Title", "values": [{"name": "Default Title"}]},
            ],
        }

    async def __call__(self, kind: str, count: int) -> list[dict[str, Any]]:
        return [self.generate() for _ in range(count)]


class ExistingProductProducer:
    """Hands out existing benchmark products, each at most once.

    The pool is built on first use from the products this session
    created, followed by the newest products found by tag search.
    Duplicates are dropped, so a product registered locally and also
    returned by the search is only used once.

    With a retry wrapper the search is retried like any other request.
    A search that still fails leaves the pool with the local products
    only; the run then ends with a shortfall instead of an error.

    Usage:
        producer = ExistingProductProducer(client.fetch_products_by_tag, "benchmarkify", 100)
        items = await producer("update", 25)
    """

    def __init__(
        self,
        fetch: ProductFetcher,
        tag: str,
        limit: int,
        known: Sequence[ProductRef] = (),
        *,
        retry: RetryWrapper | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the producer.

        Args:
            fetch: Coroutine returning up to n products carrying a tag
            tag: Benchmark tag to search for
            limit: Most products the pool will hold
            known: Products created earlier in this session
            retry: Optional retry wrapper for the tag search
            cancel_event: Optional event that stops search retries
        """
        self._fetch = fetch
        self._tag = tag
        self._limit = limit
        self._known = list(known)
        self._retry = retry
        self._cancel_event = cancel_event
        self.search_error: str | None = None
        self._pool: list[ProductRef] | None = None
        self._position = 0

    @property
    def loaded(self) -> bool:
        return self._pool is not None

    @property
    def remaining(self) -> int | None:
        """Products not yet handed out (None before the pool is loaded)."""
        if self._pool is None:
            return None
        return len(self._pool) - self._position

    async def load(self) -> int:
        """Build the product pool if not already built.

        Returns:
            Number of products in the pool
        """
        if self._pool is not None:
            return len(self._pool)

        seen: set[str] = set()
        pool: list[ProductRef] = []
        for ref in self._known:
            if ref.id not in seen and len(pool) < self._limit:
                seen.add(ref.id)
                pool.append(ref)

        if len(pool) < self._limit:
            for node in await self._search():
                ref = ProductRef.from_node(node)
                if ref.id not in seen and len(pool) < self._limit:
                    seen.add(ref.id)
                    pool.append(ref)

        self._pool = pool
        logger.info("Loaded {} existing products tagged {}", len(pool), self._tag)
        return len(pool)

    async def __call__(self, kind: str, count: int) -> list[ProductRef]:
        await self.load()
        assert self._pool is not None
        batch = self._pool[self._position : self._position + count]
        self._position += len(batch)
        return batch

    async def _search(self) -> list[dict[str, Any]]:
        if self._retry is None:
            return await self._fetch(self._tag, self._limit)

        found: list[dict[str, Any]] = []

        async def attempt() -> TelemetrySample:
            try:
                nodes = await self._fetch(self._tag, self._limit)
            except ShopifyClientError as e:
                return TelemetrySample.failure(
                    e.kind,
                    str(e),
                    rate_limit=e.rate_limit,
                    retry_after_seconds=getattr(e, "retry_after", None),
                )
            found[:] = nodes
            return TelemetrySample(success=True)

        result = await self._retry.run(attempt, cancel_event=self._cancel_event)
        if not result.success:
            self.search_error = result.error
            logger.warning(
                "Search for products tagged {} failed after {} attempt(s): {}",
                self._tag,
                result.attempts,
                result.error,
            )
        return found
