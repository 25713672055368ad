"""Tests for Pydantic model generation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import pytest
from pydantic import ValidationError

from icetype import parse_schema
from icetype.generators.pydantic import create_pydantic_model, get_python_type
from icetype.parser import parse_field


class TestPydanticModelGeneration:
    """Test Pydantic model generation from schemas."""

    def test_simple_model_generation(self, user_schema):
        """Basic model generation works."""
        UserModel = user_schema.to_pydantic()

        user = UserModel(id=1, name="Alice", email="alice@example.com")
        assert UserModel.__name__ == "UserModel"
        assert user.id == 1
        assert user.name == "Alice"

    def test_relations_are_skipped(self, user_schema):
        """Relation fields are not model fields."""
        UserModel = create_pydantic_model(user_schema)
        assert "posts" not in UserModel.model_fields
        assert "tags" in UserModel.model_fields

    def test_optional_fields_default_to_none(self, user_schema):
        """Optional fields accept None and default to it."""
        user = user_schema.to_pydantic()(id=1, name="Alice", email="a@example.com")
        assert user.age is None
        assert user.balance is None
        assert user.tags is None

    def test_literal_defaults(self, user_schema):
        """Literal defaults are used when a value is omitted."""
        user = user_schema.to_pydantic()(id=1, name="Alice", email="a@example.com")
        assert user.score == 0.0
        assert user.is_active is True

    def test_required_fields(self, user_schema):
        """Non-optional fields without defaults are required."""
        UserModel = user_schema.to_pydantic()
        with pytest.raises(ValidationError):
            UserModel(name="Alice", email="a@example.com")

    def test_function_defaults(self):
        """now() and uuid() become default factories."""
        Event = parse_schema(
            {
                "$type": "Event",
                "id": "uuid = uuid()",
                "at": "timestamptz = now()",
            }
        ).to_pydantic()
        first, second = Event(), Event()
        assert isinstance(first.id, UUID)
        assert first.id != second.id
        assert isinstance(first.at, datetime)
        assert first.at.tzinfo is not None

    def test_container_defaults_are_fresh(self):
        """Container defaults are not shared between instances."""
        Doc = parse_schema({"$type": "Doc", "meta": "json = {}"}).to_pydantic()
        first, second = Doc(), Doc()
        first.meta["k"] = 1
        assert second.meta == {}


class TestPydanticConstraints:
    """Test constraints derived from type parameters."""

    def test_varchar_max_length(self, user_schema):
        """varchar(n) limits string length."""
        UserModel = user_schema.to_pydantic()
        UserModel(id=1, name="x" * 50, email="a@example.com")
        with pytest.raises(ValidationError):
            UserModel(id=1, name="x" * 51, email="a@example.com")

    def test_char_exact_length(self):
        """char(n) requires exactly n characters."""
        Country = parse_schema({"$type": "Country", "code": "char(2)"}).to_pydantic()
        assert Country(code="NL").code == "NL"
        with pytest.raises(ValidationError):
            Country(code="N")
        with pytest.raises(ValidationError):
            Country(code="NLD")

    def test_decimal_digits(self, user_schema):
        """decimal(p, s) limits digits and decimal places."""
        UserModel = user_schema.to_pydantic()
        user = UserModel(id=1, name="A", email="a@example.com", balance=Decimal("12345678.91"))
        assert user.balance == Decimal("12345678.91")
        with pytest.raises(ValidationError):
            UserModel(id=1, name="A", email="a@example.com", balance=Decimal("1.234"))
        with pytest.raises(ValidationError):
            UserModel(id=1, name="A", email="a@example.com", balance=Decimal("123456789.1"))

    def test_array_items(self, user_schema):
        """Array fields validate their items."""
        UserModel = user_schema.to_pydantic()
        user = UserModel(id=1, name="A", email="a@example.com", tags=["x", "y"])
        assert user.tags == ["x", "y"]
        with pytest.raises(ValidationError):
            UserModel(id=1, name="A", email="a@example.com", tags=[{"x": 1}])


class TestGetPythonType:
    """Test field type mapping."""

    def test_primitive(self):
        """Primitive types map to Python types."""
        assert get_python_type(parse_field("bigint", "f")) is int
        assert get_python_type(parse_field("uuid", "f")) is UUID
        assert get_python_type(parse_field("decimal(10,2)", "f")) is Decimal

    def test_array(self):
        """Arrays map to typed lists."""
        assert get_python_type(parse_field("string[]", "f")) == list[str]

    def test_unknown_type(self):
        """Unknown types raise TypeError."""
        with pytest.raises(TypeError, match="no Python mapping"):
            get_python_type(parse_field("strng", "f", strict=False))
