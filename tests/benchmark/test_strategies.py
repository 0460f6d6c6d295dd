"""Tests for product operation strategies."""

from datetime import date

import pytest
from tests.fixtures.throttle_responses import (
    PRODUCT_CREATE_RESPONSE,
    PRODUCT_CREATE_USER_ERROR,
    PRODUCT_DELETE_RESPONSE,
    PRODUCT_UPDATE_RESPONSE,
)

from benchmarkify.benchmark.enums import OperationKind
from benchmarkify.benchmark.strategies import (
    CreateProductStrategy,
    DeleteProductStrategy,
    ProductRef,
    UpdateProductStrategy,
    strategy_for,
)
from benchmarkify.shopify.queries import CREATE_PRODUCT, DELETE_PRODUCT, UPDATE_PRODUCT
from benchmarkify.shopify.rate_limit.schemas import ErrorKind, TelemetrySample


def response_sample(body: dict) -> TelemetrySample:
    """Transport-level success carrying ``body``."""
    return TelemetrySample(success=True, cost=10, data=body)


class TestProductRef:
    """Tests for ProductRef."""

    def test_from_node(self) -> None:
        """Builds from a products connection node."""
        ref = ProductRef.from_node(
            {"id": "gid://shopify/Product/1", "title": "Chair", "tags": ["a", "b"]}
        )
        assert ref == ProductRef("gid://shopify/Product/1", "Chair", ("a", "b"))

    def test_from_node_missing_fields(self) -> None:
        """Title and tags are optional."""
        ref = ProductRef.from_node({"id": "gid://shopify/Product/1"})
        assert ref.title == ""
        assert ref.tags == ()


class TestCreateProductStrategy:
    """Tests for CreateProductStrategy."""

    def test_build_variables(self) -> None:
        """The generated product is the mutation input."""
        strategy = CreateProductStrategy()
        product = {"title": "Chair", "tags": ["benchmarkify"]}

        assert strategy.query == CREATE_PRODUCT
        assert strategy.operation_name == "productCreate"
        assert strategy.build_variables(product) == {"product": product}

    def test_interpret_success(self) -> None:
        """Reads the created product id."""
        sample = CreateProductStrategy().interpret(response_sample(PRODUCT_CREATE_RESPONSE))

        assert sample.success is True
        assert sample.remote_id == "gid://shopify/Product/1001"

    def test_interpret_user_errors(self) -> None:
        """userErrors turn the sample into a user error failure."""
        sample = CreateProductStrategy().interpret(response_sample(PRODUCT_CREATE_USER_ERROR))

        assert sample.success is False
        assert sample.error_kind == ErrorKind.USER_ERROR
        assert sample.error == "Title can't be blank"
        assert sample.cost == 10

    def test_interpret_missing_payload(self) -> None:
        """A response without the mutation payload is a GraphQL error."""
        sample = CreateProductStrategy().interpret(response_sample({"data": {}}))

        assert sample.success is False
        assert sample.error_kind == ErrorKind.GRAPHQL

    def test_interpret_passes_failures_through(self) -> None:
        """Transport failures are returned unchanged."""
        failure = TelemetrySample.failure(ErrorKind.RATE_LIMITED, "Throttled")
        assert CreateProductStrategy().interpret(failure) is failure


class TestUpdateProductStrategy:
    """Tests for UpdateProductStrategy."""

    def test_build_variables(self) -> None:
        """Stamps the title with the date and adds marker tags."""
        strategy = UpdateProductStrategy(today=lambda: date(2025, 1, 15))
        ref = ProductRef("gid://shopify/Product/1001", "Rustic Wooden Chair", ("benchmarkify",))

        variables = strategy.build_variables(ref)

        assert strategy.query == UPDATE_PRODUCT
        assert variables == {
            "input": {
                "id": "gid://shopify/Product/1001",
                "title": "Rustic Wooden Chair (Updated 2025-01-15)",
                "tags": ["benchmarkify", "updated", "benchmark"],
            }
        }

    def test_interpret_success(self) -> None:
        """Reads the updated product id."""
        sample = UpdateProductStrategy().interpret(response_sample(PRODUCT_UPDATE_RESPONSE))
        assert sample.remote_id == "gid://shopify/Product/1001"


class TestDeleteProductStrategy:
    """Tests for DeleteProductStrategy."""

    def test_build_variables(self) -> None:
        """Deletes by id."""
        strategy = DeleteProductStrategy()
        assert strategy.query == DELETE_PRODUCT
        assert strategy.build_variables(ProductRef("gid://shopify/Product/9")) == {
            "input": {"id": "gid://shopify/Product/9"}
        }

    def test_interpret_success(self) -> None:
        """Reads deletedProductId."""
        sample = DeleteProductStrategy().interpret(response_sample(PRODUCT_DELETE_RESPONSE))
        assert sample.success is True
        assert sample.remote_id == "gid://shopify/Product/1001"


class TestStrategyFor:
    """Tests for strategy_for."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (OperationKind.CREATE, CreateProductStrategy),
            (OperationKind.UPDATE, UpdateProductStrategy),
            (OperationKind.DELETE, DeleteProductStrategy),
            ("delete", DeleteProductStrategy),
        ],
    )
    def test_lookup(self, kind: OperationKind, expected: type) -> None:
        """Each kind has its strategy."""
        strategy = strategy_for(kind)
        assert isinstance(strategy, expected)
        assert strategy.kind == OperationKind(kind)
