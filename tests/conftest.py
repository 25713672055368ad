"""Shared fixtures for icetype tests."""

import polars as pl
import pytest

from icetype import parse_schema


@pytest.fixture
def customer_schema():
    """Customer with required, unique and optional fields."""
    return parse_schema(
        {
            "$type": "Customer",
            "id": "uuid!",
            "name": "string",
            "email": "string#",
            "phone": "string?",
            "orders": "<- Order.customer[]",
        }
    )


@pytest.fixture
def order_schema():
    """Order with a required and an optional relation."""
    return parse_schema(
        {
            "$type": "Order",
            "id": "uuid!",
            "total": "decimal(10,2)",
            "status": "string = 'pending'",
            "customer": "-> Customer",
            "coupon": "-> Coupon?",
            "items": "<- OrderItem.order[]",
            "$partitionBy": ["status"],
            "$index": [["status", "total"]],
        }
    )


@pytest.fixture
def order_item_schema():
    """Line item pointing at an order and a product."""
    return parse_schema(
        {
            "$type": "OrderItem",
            "id": "uuid!",
            "quantity": "int",
            "order": "-> Order",
            "product": "-> Product",
        }
    )


@pytest.fixture
def product_schema():
    """Product with a price."""
    return parse_schema(
        {
            "$type": "Product",
            "sku": "string!",
            "price": "decimal(8,2)",
        }
    )


@pytest.fixture
def coupon_schema():
    """Coupon referenced optionally by orders."""
    return parse_schema(
        {
            "$type": "Coupon",
            "code": "string!",
            "percent": "int",
        }
    )


@pytest.fixture
def all_schemas(
    customer_schema, order_schema, order_item_schema, product_schema, coupon_schema
):
    """Every schema of the order domain, keyed by name."""
    return {
        schema.name: schema
        for schema in (
            customer_schema,
            order_schema,
            order_item_schema,
            product_schema,
            coupon_schema,
        )
    }


@pytest.fixture
def person_schema():
    """Self-referencing schema."""
    return parse_schema(
        {
            "$type": "Person",
            "name": "string",
            "manager": "-> Person?",
        }
    )


@pytest.fixture
def document_schema():
    """Schema exercising every directive."""
    return parse_schema(
        {
            "$type": "Document",
            "id": "uuid!",
            "tenant": "string!",
            "title": "string",
            "body": "text?",
            "embedding": "float[]?",
            "createdAt": "timestamp = now()",
            "$partitionBy": ["tenant"],
            "$index": [["tenant", "createdAt"], {"fields": ["title"], "unique": True}],
            "$fts": ["title", "body"],
            "$vector": {"embedding": 3},
        }
    )


@pytest.fixture
def user_schema():
    """Schema with defaults and parametric types for generator tests."""
    return parse_schema(
        {
            "$type": "User",
            "id": "int!",
            "name": "varchar(50)",
            "email": "string#",
            "age": "int?",
            "score": "double = 0.0",
            "balance": "decimal(10,2)?",
            "is_active": "bool = true",
            "tags": "string[]?",
            "posts": "<- Post.author[]",
        }
    )


@pytest.fixture
def sample_dataframe():
    """Sample Polars DataFrame matching the user schema."""
    return pl.DataFrame(
        {
            "id": [1, 2, 3],
            "name": ["Alice", "Bob", "Charlie"],
            "email": ["a@example.com", "b@example.com", "c@example.com"],
            "age": [25, None, 35],
        }
    )
