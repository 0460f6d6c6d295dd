"""Tests for payload producers."""

import random
from typing import Any

import pytest

from benchmarkify.benchmark.payloads import (
    TAG_CHOICES,
    ExistingProductProducer,
    RandomProductGenerator,
)
from benchmarkify.benchmark.strategies import ProductRef
from benchmarkify.config import RetryConfig
from benchmarkify.shopify.exceptions import (
    ShopifyAuthenticationError,
    ShopifyClientError,
    ShopifyRateLimitError,
)
from benchmarkify.shopify.pacing.retry import RetryWrapper
from benchmarkify.shopify.rate_limit.controller import RateLimitController


def node(i: int) -> dict[str, Any]:
    return {"id": f"gid://shopify/Product/{i}", "title": f"Product {i}", "tags": ["benchmarkify"]}


class FakeFetch:
    """Stand-in for ShopifyClient.fetch_products_by_tag."""

    def __init__(
        self, nodes: list[dict[str, Any]], errors: list[Exception] | None = None
    ) -> None:
        self._nodes = nodes
        self._errors = list(errors or [])
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, tag: str, max_count: int) -> list[dict[str, Any]]:
        self.calls.append((tag, max_count))
        if self._errors:
            raise self._errors.pop(0)
        return self._nodes[:max_count]


class TestRandomProductGenerator:
    """Tests for RandomProductGenerator."""

    def test_generate_shape(self) -> None:
        """Products carry every input field and the benchmark tag."""
        product = RandomProductGenerator(tag="bench", rng=random.Random(1)).generate()

        assert set(product) == {
            "title",
            "descriptionHtml",
            "vendor",
            "productType",
            "tags",
            "productOptions",
        }
        assert product["title"]
        assert product["tags"][-1] == "bench"
        assert len(product["tags"]) == 3
        assert set(product["tags"][:2]) <= set(TAG_CHOICES)
        assert len(set(product["tags"][:2])) == 2

    def test_seeded_generation_repeatable(self) -> None:
        """Same seed, same products."""
        a = RandomProductGenerator(rng=random.Random(42)).generate()
        b = RandomProductGenerator(rng=random.Random(42)).generate()
        assert a == b

    @pytest.mark.asyncio
    async def test_produces_requested_count(self) -> None:
        """The generator never runs dry."""
        generator = RandomProductGenerator()
        items = await generator("create", 25)
        assert len(items) == 25


class TestExistingProductProducer:
    """Tests for ExistingProductProducer."""

    @pytest.mark.asyncio
    async def test_hands_out_each_product_once(self) -> None:
        """Sequential calls return disjoint slices."""
        producer = ExistingProductProducer(FakeFetch([node(i) for i in range(5)]), "bench", 10)

        first = await producer("update", 3)
        second = await producer("update", 3)
        third = await producer("update", 3)

        assert [r.id for r in first + second] == [node(i)["id"] for i in range(5)]
        assert len(second) == 2
        assert third == []
        assert producer.remaining == 0

    @pytest.mark.asyncio
    async def test_known_products_first_and_deduplicated(self) -> None:
        """Session-created products come first and are not repeated."""
        known = [ProductRef("gid://shopify/Product/3", "Known")]
        producer = ExistingProductProducer(
            FakeFetch([node(i) for i in range(5)]), "bench", 10, known=known
        )

        assert await producer.load() == 5
        items = await producer("delete", 10)

        assert items[0].title == "Known"
        assert len({r.id for r in items}) == 5

    @pytest.mark.asyncio
    async def test_limit_caps_pool(self) -> None:
        """The pool never exceeds the limit."""
        fetch = FakeFetch([node(i) for i in range(50)])
        producer = ExistingProductProducer(fetch, "bench", 10)

        assert await producer.load() == 10
        assert fetch.calls == [("bench", 10)]

    @pytest.mark.asyncio
    async def test_known_products_fill_limit_skip_search(self) -> None:
        """No search is needed when session products already fill the pool."""
        fetch = FakeFetch([node(i) for i in range(5)])
        known = [ProductRef(f"gid://shopify/Product/k{i}") for i in range(3)]
        producer = ExistingProductProducer(fetch, "bench", 2, known=known)

        assert await producer.load() == 2
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_loads_once(self) -> None:
        """The pool is built on first use only."""
        fetch = FakeFetch([node(1)])
        producer = ExistingProductProducer(fetch, "bench", 10)

        assert producer.loaded is False
        assert producer.remaining is None
        await producer("update", 1)
        await producer("update", 1)

        assert producer.loaded is True
        assert len(fetch.calls) == 1


class TestSearchRetry:
    """Tests for tag search failures."""

    @pytest.mark.asyncio
    async def test_throttled_search_retried(
        self, controller: RateLimitController, fake_sleep: Any, sleeps: list[float]
    ) -> None:
        """A throttled search waits Retry-After and tries again."""
        fetch = FakeFetch(
            [node(i) for i in range(3)],
            errors=[ShopifyRateLimitError("Throttled", retry_after=2.0)],
        )
        producer = ExistingProductProducer(
            fetch, "bench", 10, retry=RetryWrapper(controller, RetryConfig(), sleep=fake_sleep)
        )

        assert await producer.load() == 3
        assert len(fetch.calls) == 2
        assert sleeps == [2.0]
        assert producer.search_error is None

    @pytest.mark.asyncio
    async def test_failed_search_keeps_known_products(
        self, controller: RateLimitController, fake_sleep: Any
    ) -> None:
        """Rejected credentials end the search at once; known products remain."""
        fetch = FakeFetch([node(1)], errors=[ShopifyAuthenticationError("Access denied (401)")])
        known = [ProductRef(id="gid://shopify/Product/7", title="Mine")]
        producer = ExistingProductProducer(
            fetch,
            "bench",
            5,
            known=known,
            retry=RetryWrapper(controller, RetryConfig(), sleep=fake_sleep),
        )

        assert await producer.load() == 1
        assert await producer("delete", 5) == known
        assert len(fetch.calls) == 1
        assert producer.search_error == "Access denied (401)"

    @pytest.mark.asyncio
    async def test_without_wrapper_errors_propagate(self) -> None:
        """Without a retry wrapper the client error reaches the caller."""
        fetch = FakeFetch([], errors=[ShopifyRateLimitError("Throttled")])
        producer = ExistingProductProducer(fetch, "bench", 5)

        with pytest.raises(ShopifyClientError):
            await producer.load()
