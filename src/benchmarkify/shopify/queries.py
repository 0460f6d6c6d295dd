"""GraphQL documents used against the Shopify Admin API.

Costs are Shopify's nominal costs, used when a response does not report
the actual cost charged.
"""

CALIBRATION_QUERY = """
query shopInfo {
  shop {
    name
    id
  }
}
"""

CREATE_PRODUCT = """
mutation productCreate($product: ProductCreateInput!) {
  productCreate(product: $product) {
    product {
      id
      title
      handle
      createdAt
    }
    userErrors {
      field
      message
    }
  }
}
"""

UPDATE_PRODUCT = """
mutation productUpdate($input: ProductInput!) {
  productUpdate(input: $input) {
    product {
      id
      title
      updatedAt
    }
    userErrors {
      field
      message
    }
  }
}
"""

DELETE_PRODUCT = """
mutation productDelete($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors {
      field
      message
    }
  }
}
"""

GET_PRODUCTS = """
query getProducts(
  $first: Int!
  $after: String
  $query: String
  $sortKey: ProductSortKeys
  $reverse: Boolean
) {
  products(first: $first, after: $after, query: $query, sortKey: $sortKey, reverse: $reverse) {
    edges {
      cursor
      node {
        id
        title
        handle
        createdAt
        tags
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

QUERY_COSTS: dict[str, int] = {
    "shopInfo": 1,
    "productCreate": 10,
    "productUpdate": 10,
    "productDelete": 10,
    "getProducts": 1,
}


def nominal_cost(operation_name: str | None) -> int:
    """Nominal cost for a named operation (0 if unknown)."""
    if operation_name is None:
        return 0
    return QUERY_COSTS.get(operation_name, 0)
