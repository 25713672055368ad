"""Tests for relation expansion."""

import pytest

from icetype import ExpandError, ExpandErrorCode, expand_relations, parse_schema


class TestExpandRelations:
    """Test denormalizing related schemas."""

    def test_forward_relation(self, order_schema, all_schemas):
        """Target scalar fields are copied with the relation name as prefix."""
        expanded = expand_relations(order_schema, ["customer"], all_schemas)
        assert expanded.name == "Order_expanded"
        assert "customer" not in expanded.fields
        assert "customer" not in expanded.relations
        assert [name for name in expanded.fields if name.startswith("customer_")] == [
            "customer_id",
            "customer_name",
            "customer_email",
            "customer_phone",
        ]

    def test_copied_flags(self, order_schema, all_schemas):
        """Copied fields keep optionality but drop uniqueness."""
        expanded = expand_relations(order_schema, ["customer"], all_schemas)
        assert expanded.fields["customer_id"].is_required
        assert not expanded.fields["customer_id"].is_optional
        assert not expanded.fields["customer_email"].is_unique
        assert not expanded.fields["customer_email"].is_indexed
        assert expanded.fields["customer_phone"].is_optional

    def test_optional_relation(self, order_schema, all_schemas):
        """An optional relation makes every copied field optional."""
        expanded = expand_relations(order_schema, ["coupon"], all_schemas)
        assert expanded.fields["coupon_code"].is_optional
        assert not expanded.fields["coupon_code"].is_required
        assert expanded.fields["coupon_code"].modifier == "?"
        assert expanded.fields["coupon_percent"].is_optional

    def test_original_fields_kept(self, order_schema, all_schemas):
        """Scalar fields and unexpanded relations survive."""
        expanded = expand_relations(order_schema, ["customer"], all_schemas)
        assert list(expanded.fields)[:3] == ["id", "total", "status"]
        assert "coupon" in expanded.relations
        assert "items" in expanded.relations
        assert expanded.directives == order_schema.directives

    def test_has_many(self, order_schema, all_schemas):
        """Has-many relations become json arrays plus array-valued copies."""
        expanded = expand_relations(order_schema, ["items"], all_schemas)
        assert expanded.fields["items"].type == "json"
        assert expanded.fields["items"].is_array
        assert "items" not in expanded.relations
        assert expanded.fields["items_quantity"].is_array
        assert expanded.fields["items_quantity"].type == "int"

    def test_nested_path(self, order_schema, all_schemas):
        """Dotted paths join segments with underscores."""
        expanded = expand_relations(order_schema, ["items.product"], all_schemas)
        assert "items_product_sku" in expanded.fields
        assert "items_product_price" in expanded.fields
        assert expanded.fields["items_product_price"].precision == 8

    def test_multiple_paths(self, order_schema, all_schemas):
        """Several paths expand in a single call."""
        expanded = expand_relations(
            order_schema, ["customer", "coupon", "customer"], all_schemas
        )
        assert "customer_name" in expanded.fields
        assert "coupon_code" in expanded.fields

    def test_same_type_on_different_paths(self, all_schemas):
        """Reaching one type along two paths is not a cycle."""
        shipment = parse_schema(
            {
                "$type": "Shipment",
                "sender": "-> Customer",
                "receiver": "-> Customer",
            }
        )
        expanded = expand_relations(shipment, ["sender", "receiver"], all_schemas)
        assert "sender_name" in expanded.fields
        assert "receiver_name" in expanded.fields

    def test_input_not_mutated(self, order_schema, all_schemas):
        """The source schema is left unchanged."""
        before = dict(order_schema.fields)
        expand_relations(order_schema, ["customer"], all_schemas)
        assert order_schema.fields == before

    def test_plain_terminal_field(self, order_schema, all_schemas):
        """Naming a plain field is a no-op."""
        expanded = expand_relations(order_schema, ["total"], all_schemas)
        assert expanded.fields["total"] == order_schema.fields["total"]

    def test_no_paths(self, order_schema, all_schemas):
        """Expanding nothing copies the schema under a new name."""
        expanded = expand_relations(order_schema, [], all_schemas)
        assert expanded.fields == order_schema.fields
        assert expanded.name == "Order_expanded"


class TestExpandErrors:
    """Test expansion failures."""

    def test_circular_reference(self, person_schema):
        """Revisiting a type along one path is rejected."""
        with pytest.raises(ExpandError) as exc_info:
            expand_relations(
                person_schema, ["manager", "manager.manager"], {"Person": person_schema}
            )
        assert exc_info.value.code == ExpandErrorCode.EXPAND_CIRCULAR_REFERENCE
        assert "circular" in str(exc_info.value)

    def test_unknown_path(self, order_schema, all_schemas):
        """Unknown segments are reported."""
        with pytest.raises(ExpandError) as exc_info:
            expand_relations(order_schema, ["shipper"], all_schemas)
        assert exc_info.value.code == ExpandErrorCode.EXPAND_UNKNOWN_PATH
        assert "Expansion path 'shipper'" in str(exc_info.value)

    def test_not_a_relation(self, order_schema, all_schemas):
        """Paths cannot traverse plain fields."""
        with pytest.raises(ExpandError) as exc_info:
            expand_relations(order_schema, ["total.amount"], all_schemas)
        assert exc_info.value.code == ExpandErrorCode.EXPAND_NOT_A_RELATION

    def test_missing_schema(self, order_schema, customer_schema):
        """Targets must be present in the schema map."""
        with pytest.raises(ExpandError) as exc_info:
            expand_relations(order_schema, ["coupon"], {"Customer": customer_schema})
        assert exc_info.value.code == ExpandErrorCode.EXPAND_MISSING_SCHEMA

    def test_error_codes_are_strings(self):
        """Expansion codes compare equal to their names."""
        assert ExpandErrorCode.EXPAND_CIRCULAR_REFERENCE == "EXPAND_CIRCULAR_REFERENCE"
