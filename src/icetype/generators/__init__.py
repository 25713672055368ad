"""Generators rendering compiled schemas into framework objects."""

from .polars import PolarsValidator, create_polars_schema, create_polars_validator
from .pydantic import create_pydantic_model
from .registry import GeneratorRegistry, create_default_registry
from .sqlalchemy import create_sqlalchemy_table

__all__ = [
    "GeneratorRegistry",
    "PolarsValidator",
    "create_default_registry",
    "create_polars_schema",
    "create_polars_validator",
    "create_pydantic_model",
    "create_sqlalchemy_table",
]
