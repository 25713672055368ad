"""Pydantic model generator with constraint support."""

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Union

from pydantic import BaseModel, create_model
from pydantic import Field as PydanticField

if TYPE_CHECKING:
    from ..base import Schema
    from ..fields import FieldDefinition

_PYTHON_TYPES: dict[str, Any] = {
    "string": str,
    "text": str,
    "varchar": str,
    "char": str,
    "enum": str,
    "ref": str,
    "int": int,
    "long": int,
    "bigint": int,
    "float": float,
    "double": float,
    "boolean": bool,
    "uuid": uuid.UUID,
    "timestamp": datetime,
    "timestamptz": datetime,
    "date": date,
    "time": time,
    "decimal": Decimal,
    "binary": bytes,
    "fixed": bytes,
    "json": Any,
    "map": dict,
    "struct": dict,
    "list": list,
}

_DEFAULT_FACTORIES: dict[str, Callable[[], Any]] = {
    "now": lambda: datetime.now(timezone.utc),
    "uuid": uuid.uuid4,
    "gen_random_uuid": uuid.uuid4,
}


def get_python_type(field: "FieldDefinition") -> Any:
    """
    Return the Python annotation for a field (before optionality).

    Raises
    ------
    TypeError
        If the field's base type has no Python equivalent.
    """
    try:
        python_type = _PYTHON_TYPES[field.type]
    except KeyError:
        raise TypeError(
            f"Field '{field.name}' has type '{field.type}' with no Python mapping"
        ) from None
    if field.is_array:
        return list[python_type]  # type: ignore[valid-type]
    return python_type


def _constraint_kwargs(field: "FieldDefinition") -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if field.is_array:
        return kwargs
    if field.type in ("varchar", "char") and field.length is not None:
        kwargs["max_length"] = field.length
        if field.type == "char":
            kwargs["min_length"] = field.length
    if field.type == "decimal" and field.precision is not None:
        kwargs["max_digits"] = field.precision
        kwargs["decimal_places"] = field.scale or 0
    return kwargs


def create_pydantic_model(schema: "Schema") -> type[BaseModel]:
    """
    Generate a Pydantic BaseModel from a compiled schema.

    Relation fields are skipped. Optional fields accept None and default to
    it; ``now()`` and ``uuid()`` defaults become default factories.

    Parameters
    ----------
    schema : Schema
        A compiled IceType schema.

    Returns
    -------
    type[BaseModel]
        A dynamically created Pydantic BaseModel class named
        ``<SchemaName>Model``.
    """
    pydantic_fields = {}

    for field_name, field in schema.scalar_fields().items():
        python_type = get_python_type(field)

        # Handle optional fields (can be None)
        if field.is_optional:
            python_type = Union[python_type, None]

        field_kwargs: dict[str, Any] = _constraint_kwargs(field)

        if field.has_default:
            default = field.default_value
            if isinstance(default, dict) and "function" in default:
                factory = _DEFAULT_FACTORIES.get(default["function"])
                if factory is not None:
                    field_kwargs["default_factory"] = factory
            elif isinstance(default, (list, dict)):
                # Fresh container per instance
                field_kwargs["default_factory"] = type(default)
            else:
                field_kwargs["default"] = default
        elif field.is_optional:
            field_kwargs["default"] = None

        if field_kwargs:
            pydantic_fields[field_name] = (python_type, PydanticField(**field_kwargs))
        else:
            pydantic_fields[field_name] = (python_type, ...)

    model_name = schema.name + "Model"
    # Pydantic's create_model is dynamically typed - returns type[BaseModel] at runtime
    model: type[BaseModel] = create_model(model_name, **pydantic_fields)  # type: ignore[call-overload]
    return model
