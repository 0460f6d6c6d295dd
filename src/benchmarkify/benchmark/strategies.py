"""Per-kind operation strategies.

A strategy knows the GraphQL document for one kind of operation, how to
turn a payload item into variables, and how to read the response. The
batch scheduler stays unaware of products entirely.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from benchmarkify.shopify.queries import CREATE_PRODUCT, DELETE_PRODUCT, UPDATE_PRODUCT
from benchmarkify.shopify.rate_limit.schemas import ErrorKind, TelemetrySample

from .enums import OperationKind


@dataclass(frozen=True)
class ProductRef:
    """An existing product targeted by an update or delete."""

    id: str
    title: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> ProductRef:
        """Build from a ``products`` connection node."""
        return cls(
            id=str(node["id"]),
            title=str(node.get("title") or ""),
            tags=tuple(node.get("tags") or ()),
        )


class ProductStrategy:
    """Base class for product mutations.

    Subclasses set the class attributes and implement ``build_variables``
    and ``_extract_id``.
    """

    kind: OperationKind
    operation_name: str
    query: str

    def build_variables(self, item: Any) -> dict[str, Any]:
        raise NotImplementedError

    def interpret(self, sample: TelemetrySample) -> TelemetrySample:
        """Read the mutation payload out of a transport-level success.

        Non-empty ``userErrors`` turn the sample into a user error
        failure. A missing payload is reported as a GraphQL error.
        """
        if not sample.success:
            return sample

        payload = ((sample.data or {}).get("data") or {}).get(self.operation_name)
        if not isinstance(payload, dict):
            return replace(
                sample,
                success=False,
                error_kind=ErrorKind.GRAPHQL,
                error=f"Response missing {self.operation_name} payload",
            )

        user_errors = payload.get("userErrors") or []
        if user_errors:
            messages = "; ".join(str(e.get("message", e)) for e in user_errors)
            return replace(
                sample,
                success=False,
                error_kind=ErrorKind.USER_ERROR,
                error=messages,
            )

        return replace(sample, remote_id=self._extract_id(payload))

    def _extract_id(self, payload: dict[str, Any]) -> str | None:
        raise NotImplementedError


class CreateProductStrategy(ProductStrategy):
    """``productCreate`` with a generated product input."""

    kind = OperationKind.CREATE
    operation_name = "productCreate"
    query = CREATE_PRODUCT

    def build_variables(self, item: dict[str, Any]) -> dict[str, Any]:
        return {"product": item}

    def _extract_id(self, payload: dict[str, Any]) -> str | None:
        product = payload.get("product") or {}
        return product.get("id")


class UpdateProductStrategy(ProductStrategy):
    """``productUpdate`` that stamps the title and adds marker tags."""

    kind = OperationKind.UPDATE
    operation_name = "productUpdate"
    query = UPDATE_PRODUCT

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today

    def build_variables(self, item: ProductRef) -> dict[str, Any]:
        return {
            "input": {
                "id": item.id,
                "title": f"{item.title} (Updated {self._today().isoformat()})",
                "tags": [*item.tags, "updated", "benchmark"],
            }
        }

    def _extract_id(self, payload: dict[str, Any]) -> str | None:
        product = payload.get("product") or {}
        return product.get("id")


class DeleteProductStrategy(ProductStrategy):
    """``productDelete`` by id."""

    kind = OperationKind.DELETE
    operation_name = "productDelete"
    query = DELETE_PRODUCT

    def build_variables(self, item: ProductRef) -> dict[str, Any]:
        return {"input": {"id": item.id}}

    def _extract_id(self, payload: dict[str, Any]) -> str | None:
        return payload.get("deletedProductId")


def strategy_for(kind: OperationKind) -> ProductStrategy:
    """Get the strategy for an operation kind."""
    strategies: dict[OperationKind, type[ProductStrategy]] = {
        OperationKind.CREATE: CreateProductStrategy,
        OperationKind.UPDATE: UpdateProductStrategy,
        OperationKind.DELETE: DeleteProductStrategy,
    }
    return strategies[OperationKind(kind)]()
