"""
Relation Expansion Example: Denormalizing Orders for Analytics

This example shows how related schemas are inlined into a flat schema:
1. Declare forward and backward relations between schemas
2. Expand selected relation paths into prefixed fields
3. Load the flat result into a Polars validator
"""

import polars as pl

from icetype import ExpandError, expand_relations, parse_schema

CUSTOMER = parse_schema(
    {
        "$type": "Customer",
        "id": "uuid!",
        "name": "string",
        "email": "string#",
        "orders": "<- Order.customer[]",
    }
)

PRODUCT = parse_schema({"$type": "Product", "sku": "string!", "price": "decimal(8,2)"})

ORDER_ITEM = parse_schema(
    {
        "$type": "OrderItem",
        "quantity": "int",
        "order": "-> Order",
        "product": "-> Product",
    }
)

ORDER = parse_schema(
    {
        "$type": "Order",
        "id": "uuid!",
        "total": "decimal(10,2)",
        "customer": "-> Customer",
        "referrer": "-> Customer?",
        "items": "<- OrderItem.order[]",
    }
)

SCHEMAS = {schema.name: schema for schema in (CUSTOMER, PRODUCT, ORDER_ITEM, ORDER)}


def main() -> None:
    """Expand an order with its customer, referrer and line items."""
    flat = expand_relations(ORDER, ["customer", "referrer", "items.product"], SCHEMAS)
    print(f"[OK] Expanded '{ORDER.name}' into '{flat.name}'")
    for name, field in flat.fields.items():
        print(f"     {name}: {field.type_signature()}{field.modifier}")

    validator = flat.to_polars_validator()
    df = pl.DataFrame(
        {
            "id": ["a1"],
            "total": [19.99],
            "customer_id": ["c1"],
            "customer_name": ["Ada"],
            "customer_email": ["ada@example.com"],
            "items_product_sku": ["SKU-1"],
            "items_product_price": [9.99],
        }
    )
    result = validator.validate(df, strict=False)
    print(f"[OK] Validated {result.height} flat rows with {len(result.columns)} columns")

    # Cycles along a single path are rejected
    try:
        expand_relations(CUSTOMER, ["orders.customer"], SCHEMAS)
    except ExpandError as err:
        print(f"[OK] Rejected cycle: {err.code.value}")


if __name__ == "__main__":
    main()
