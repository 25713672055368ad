"""Build canonical `Schema` objects from raw IceType definitions."""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from loguru import logger

from .base import (
    UNKNOWN_SCHEMA_NAME,
    VECTOR_METRICS,
    IndexDirective,
    Schema,
    SchemaDirectives,
    VectorDirective,
    utcnow,
)
from .errors import ErrorCode, ParseError
from .fields import (
    VALID_TYPES,
    FieldDefinition,
    FieldModifier,
    RelationDefinition,
    RelationOperator,
)
from .grammar import (
    RelationExpr,
    TypeExpr,
    is_relation_string,
    parse_relation_expression,
    parse_type_expression,
)

DIRECTIVE_KEYS: frozenset[str] = frozenset({"$partitionBy", "$index", "$fts", "$vector"})
SCHEMA_NAME_KEY = "$type"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2}(\.\d+)?)?$")

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _flags(modifiers: tuple[str, ...]) -> dict[str, bool]:
    indexed = FieldModifier.INDEXED.value in modifiers
    return {
        "is_optional": FieldModifier.OPTIONAL.value in modifiers,
        "is_required": FieldModifier.REQUIRED.value in modifiers,
        "is_unique": indexed,
        "is_indexed": indexed,
    }


def _field_from_type(name: str, expr: TypeExpr) -> FieldDefinition:
    flags = _flags(expr.modifiers)
    precision = scale = length = None
    if expr.base == "decimal" and expr.params:
        precision, scale = expr.params
    elif expr.params:
        length = expr.params[0]

    definition = FieldDefinition(
        name=name,
        type=expr.base,
        is_array=expr.is_array,
        default_value=expr.default,
        precision=precision,
        scale=scale,
        length=length,
        type_args=expr.type_args,
        **flags,
    )
    return replace(definition, modifier=definition.effective_modifier)


def _field_from_relation(name: str, expr: RelationExpr) -> FieldDefinition:
    flags = _flags(expr.modifiers)
    definition = FieldDefinition(
        name=name,
        type=expr.target_type,
        is_array=expr.is_array,
        relation=RelationDefinition(
            operator=expr.operator,
            target_type=expr.target_type,
            inverse=expr.inverse,
        ),
        **flags,
    )
    return replace(definition, modifier=definition.effective_modifier)


def parse_field(
    definition: str, name: str = "", *, strict: bool = True
) -> FieldDefinition:
    """
    Parse a single field string.

    Parameters
    ----------
    definition : str
        Field string such as ``"string!"``, ``"decimal(10,2)?"`` or
        ``"-> Customer?"``.
    name : str, optional
        Field name, used for the result and in error messages.
    strict : bool, default True
        If True, unknown base types raise. `parse_schema` parses with
        ``strict=False`` and leaves unknown types to the validator.

    Returns
    -------
    FieldDefinition
        The parsed field. Relation strings yield a field with ``relation`` set.

    Raises
    ------
    ParseError
        If the string is malformed.

    Examples
    --------
        >>> field = parse_field("decimal(10,2)!", "price")
        >>> (field.type, field.precision, field.scale, field.is_required)
        ('decimal', 10, 2, True)
    """
    if not isinstance(definition, str):
        raise ParseError(
            f"Field definition must be a string, got {type(definition).__name__}",
            ErrorCode.INVALID_FIELD_DEFINITION,
            path=name or None,
        )

    if is_relation_string(definition):
        expr = parse_relation_expression(definition, path=name or None)
        return _field_from_relation(name, expr)

    type_expr = parse_type_expression(definition, path=name or None)
    field = _field_from_type(name, type_expr)
    if strict and field.type not in VALID_TYPES:
        raise ParseError(
            f"Unknown type '{field.type}'",
            ErrorCode.UNKNOWN_TYPE,
            path=name or None,
        )
    return field


def parse_relation(definition: str, name: str = "") -> RelationDefinition:
    """
    Parse a relation string such as ``"<- Post.author[]"``.

    A bare target (``"User"``) is read as a forward relation.

    Raises
    ------
    ParseError
        If the string is empty or malformed.
    """
    expr = parse_relation_expression(
        definition, path=name or None, default_operator=RelationOperator.FORWARD
    )
    return RelationDefinition(
        operator=expr.operator, target_type=expr.target_type, inverse=expr.inverse
    )


def _string_list(key: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ParseError(
            f"{key} must be a list of field names",
            ErrorCode.INVALID_DIRECTIVE,
            path=key,
        )
    for item in value:
        if not isinstance(item, str):
            raise ParseError(
                f"{key} entries must be field names, got {item!r}",
                ErrorCode.INVALID_DIRECTIVE,
                path=key,
            )
    return tuple(value)


def _parse_index(value: Any) -> tuple[IndexDirective, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ParseError(
            "$index must be a list of field lists",
            ErrorCode.INVALID_DIRECTIVE,
            path="$index",
        )

    indexes = []
    for entry in value:
        if isinstance(entry, Mapping):
            unique = entry.get("unique", False)
            name = entry.get("name")
            if not isinstance(unique, bool) or not (name is None or isinstance(name, str)):
                raise ParseError(
                    f"Invalid $index entry: {dict(entry)!r}",
                    ErrorCode.INVALID_DIRECTIVE,
                    path="$index",
                )
            fields = _string_list("$index", entry.get("fields"))
            indexes.append(IndexDirective(fields=fields, unique=unique, name=name))
        else:
            indexes.append(IndexDirective(fields=_string_list("$index", entry)))
    return tuple(indexes)


def _vector_entry(field: str, spec: Any) -> VectorDirective:
    metric = None
    dimensions = spec
    if isinstance(spec, Mapping):
        dimensions = spec.get("dimensions")
        metric = spec.get("metric")

    if isinstance(dimensions, bool) or not isinstance(dimensions, int):
        raise ParseError(
            f"Vector dimensions for '{field}' must be an integer, got {dimensions!r}",
            ErrorCode.INVALID_DIRECTIVE,
            path=f"$vector.{field}",
        )
    if metric is not None and metric not in VECTOR_METRICS:
        raise ParseError(
            f"Unknown vector metric '{metric}'. Expected one of: {sorted(VECTOR_METRICS)}",
            ErrorCode.INVALID_DIRECTIVE,
            path=f"$vector.{field}",
        )
    return VectorDirective(field=field, dimensions=dimensions, metric=metric)


def _parse_vector(value: Any) -> tuple[VectorDirective, ...]:
    if isinstance(value, Mapping):
        return tuple(_vector_entry(str(k), v) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        vectors = []
        for entry in value:
            if not isinstance(entry, Mapping) or not isinstance(entry.get("field"), str):
                raise ParseError(
                    f"Invalid $vector entry: {entry!r}",
                    ErrorCode.INVALID_DIRECTIVE,
                    path="$vector",
                )
            vectors.append(_vector_entry(entry["field"], entry))
        return tuple(vectors)
    raise ParseError(
        "$vector must map field names to dimensions",
        ErrorCode.INVALID_DIRECTIVE,
        path="$vector",
    )


def parse_directives(definition: Mapping[str, Any]) -> SchemaDirectives:
    """
    Extract the ``$``-prefixed directives of a raw schema definition.

    Recognized keys are ``$partitionBy``, ``$index``, ``$fts`` and ``$vector``
    (plus ``$type``, which names the schema). Non-``$`` keys are ignored.

    Raises
    ------
    ParseError
        For unknown ``$``-keys or malformed directive values.

    Examples
    --------
        >>> directives = parse_directives({
        ...     "$partitionBy": ["tenantId"],
        ...     "$index": [["email"], ["createdAt", "status"]],
        ...     "$vector": {"embedding": 1536},
        ... })
        >>> directives.vector[0].dimensions
        1536
    """
    for key in definition:
        if (
            isinstance(key, str)
            and key.startswith("$")
            and key != SCHEMA_NAME_KEY
            and key not in DIRECTIVE_KEYS
        ):
            raise ParseError(
                f"Unknown directive '{key}'. Expected one of: "
                f"{', '.join(sorted(DIRECTIVE_KEYS | {SCHEMA_NAME_KEY}))}",
                ErrorCode.UNKNOWN_DIRECTIVE,
                path=key,
            )

    partition_by = fts = index = vector = None
    if "$partitionBy" in definition:
        partition_by = _string_list("$partitionBy", definition["$partitionBy"])
    if "$index" in definition:
        index = _parse_index(definition["$index"])
    if "$fts" in definition:
        fts = _string_list("$fts", definition["$fts"])
    if "$vector" in definition:
        vector = _parse_vector(definition["$vector"])

    return SchemaDirectives(
        partition_by=partition_by, index=index, fts=fts, vector=vector
    )


def parse_schema(definition: Mapping[str, Any]) -> Schema:
    """
    Compile a raw IceType definition into a `Schema`.

    Parameters
    ----------
    definition : Mapping[str, Any]
        Field names mapped to field or relation strings, plus ``$``-directives.
        Nested mappings become ``json`` fields.

    Returns
    -------
    Schema
        Immutable compiled schema with ``version=1``.

    Raises
    ------
    ParseError
        On malformed field strings, unknown directives or unsupported values.
        Unknown base types are not an error here; see `validate_schema`.

    Examples
    --------
        >>> schema = parse_schema({
        ...     "$type": "Order",
        ...     "id": "uuid!",
        ...     "total": "decimal(10,2)",
        ...     "customer": "-> Customer",
        ... })
        >>> schema.fields["customer"].relation.target_type
        'Customer'
    """
    if not isinstance(definition, Mapping):
        raise ParseError(
            f"Schema definition must be a mapping, got {type(definition).__name__}",
            ErrorCode.INVALID_FIELD_DEFINITION,
        )

    name = definition.get(SCHEMA_NAME_KEY, UNKNOWN_SCHEMA_NAME)
    if not isinstance(name, str):
        raise ParseError(
            f"$type must be a string, got {type(name).__name__}",
            ErrorCode.INVALID_DIRECTIVE,
            path=SCHEMA_NAME_KEY,
        )

    directives = parse_directives(definition)

    fields: dict[str, FieldDefinition] = {}
    relations: dict[str, RelationDefinition] = {}
    for key, value in definition.items():
        if not isinstance(key, str) or not key:
            raise ParseError(
                f"Field names must be non-empty strings, got {key!r}",
                ErrorCode.INVALID_FIELD_DEFINITION,
            )
        if key.startswith("$"):
            continue

        if isinstance(value, str):
            field = parse_field(value, key, strict=False)
        elif isinstance(value, Mapping):
            # Nested objects are stored as opaque JSON
            field = FieldDefinition(name=key, type="json")
        else:
            raise ParseError(
                f"Unsupported field definition of type {type(value).__name__}",
                ErrorCode.INVALID_FIELD_DEFINITION,
                path=key,
            )

        fields[key] = field
        if field.relation is not None:
            relations[key] = field.relation

    now = utcnow()
    logger.debug(
        f"Parsed schema '{name}' with {len(fields)} fields "
        f"and {len(relations)} relations"
    )
    return Schema(
        name=name,
        fields=fields,
        relations=relations,
        directives=directives,
        version=1,
        created_at=now,
        updated_at=now,
    )


def infer_type(value: Any) -> str:
    """
    Infer an IceType type string from a Python value.

    Examples
    --------
        >>> infer_type(42), infer_type(3.5), infer_type("2024-01-15")
        ('int', 'float', 'date')
        >>> infer_type(["a", "b"])
        'string[]'
    """
    if value is None:
        return "json?"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int" if _INT32_MIN <= value <= _INT32_MAX else "bigint"
    if isinstance(value, float):
        return "float"
    if isinstance(value, Decimal):
        return "decimal"
    if isinstance(value, datetime):
        return "timestamptz" if value.tzinfo is not None else "timestamp"
    if isinstance(value, date):
        return "date"
    if isinstance(value, time):
        return "time"
    if isinstance(value, uuid.UUID):
        return "uuid"
    if isinstance(value, (bytes, bytearray)):
        return "binary"
    if isinstance(value, str):
        if _UUID_RE.match(value):
            return "uuid"
        if _DATE_RE.match(value):
            return "date"
        if _TIMESTAMP_RE.match(value):
            return "timestamp"
        if _TIME_RE.match(value):
            return "time"
        return "string"
    if isinstance(value, (list, tuple)):
        if not value:
            return "json[]"
        element = infer_type(value[0])
        if element.endswith("[]") or element.endswith("?"):
            return "json[]"
        return f"{element}[]"
    return "json"
