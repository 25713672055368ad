"""Tests for the generator registry."""

import pytest
from pydantic import BaseModel
from sqlalchemy import Table

from icetype import ErrorCode, GeneratorError
from icetype.generators import (
    GeneratorRegistry,
    PolarsValidator,
    create_default_registry,
)


class TestGeneratorRegistry:
    """Test registering and looking up generators."""

    def test_register_and_get(self):
        """Registered generators can be looked up by name."""
        registry = GeneratorRegistry()
        registry.register("names", lambda schema: list(schema.fields))

        assert registry.has("names")
        assert registry.names() == ["names"]

    def test_generate(self, customer_schema):
        """generate() runs the generator with options."""
        registry = GeneratorRegistry()
        registry.register("names", lambda schema, prefix="": [prefix + n for n in schema.fields])

        assert registry.generate("names", customer_schema, prefix="c.")[0] == "c.id"

    def test_duplicate_registration(self):
        """Names cannot be registered twice without replace."""
        registry = GeneratorRegistry()
        registry.register("x", lambda schema: 1)

        with pytest.raises(GeneratorError, match="already registered") as exc_info:
            registry.register("x", lambda schema: 2)
        assert exc_info.value.code == ErrorCode.GENERATOR_ALREADY_REGISTERED

    def test_replace(self, customer_schema):
        """replace=True overrides an existing generator."""
        registry = GeneratorRegistry()
        registry.register("x", lambda schema: 1)
        registry.register("x", lambda schema: 2, replace=True)
        assert registry.generate("x", customer_schema) == 2

    def test_unknown_generator(self):
        """Looking up a missing generator raises."""
        with pytest.raises(GeneratorError) as exc_info:
            GeneratorRegistry().get("missing")
        assert exc_info.value.code == ErrorCode.GENERATOR_NOT_FOUND

    def test_unregister(self):
        """Unregistering reports whether anything was removed."""
        registry = GeneratorRegistry()
        registry.register("x", lambda schema: 1)
        assert registry.unregister("x")
        assert not registry.unregister("x")
        assert not registry.has("x")

    def test_clear(self):
        """clear() removes every generator."""
        registry = create_default_registry()
        registry.clear()
        assert registry.names() == []

    def test_registries_are_independent(self):
        """Each registry owns its own generators."""
        first = create_default_registry()
        second = create_default_registry()
        first.unregister("polars")
        assert second.has("polars")


class TestDefaultRegistry:
    """Test the built-in generators."""

    def test_builtin_names(self):
        """The default registry holds the three built-ins."""
        assert create_default_registry().names() == ["sqlalchemy", "polars", "pydantic"]

    def test_builtin_outputs(self, user_schema):
        """Each built-in produces its framework object."""
        registry = create_default_registry()

        table = registry.generate("sqlalchemy", user_schema, table_name="people")
        assert isinstance(table, Table)
        assert table.name == "people"
        assert isinstance(registry.generate("polars", user_schema), PolarsValidator)
        assert issubclass(registry.generate("pydantic", user_schema), BaseModel)
