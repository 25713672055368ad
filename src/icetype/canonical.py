"""Order-independent canonical form of a schema and its checksum."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from .base import Schema, SchemaDirectives
from .fields import FieldDefinition, RelationDefinition

CHECKSUM_PREFIX = "sha256:"


def canonical_field(definition: FieldDefinition) -> dict[str, Any]:
    """Canonical form of one field. Only the boolean flags describe modifiers."""
    data: dict[str, Any] = {
        "name": definition.name,
        "type": definition.type,
        "is_array": definition.is_array,
        "is_optional": definition.is_optional,
        "is_required": definition.is_required,
        "is_unique": definition.is_unique,
        "is_indexed": definition.is_indexed,
    }
    if definition.has_default:
        data["default"] = definition.default_value
    if definition.precision is not None:
        data["precision"] = definition.precision
        data["scale"] = definition.scale or 0
    if definition.length is not None:
        data["length"] = definition.length
    if definition.type_args:
        data["type_args"] = list(definition.type_args)
    return data


def canonical_relation(relation: RelationDefinition) -> dict[str, Any]:
    data: dict[str, Any] = {
        "operator": relation.operator.value,
        "target_type": relation.target_type,
    }
    if relation.inverse is not None:
        data["inverse"] = relation.inverse
    if relation.on_delete is not None:
        data["on_delete"] = relation.on_delete
    return data


def canonical_directives(directives: SchemaDirectives) -> dict[str, Any]:
    """Canonical directives with every array sorted."""
    data: dict[str, Any] = {}
    if directives.partition_by is not None:
        data["partition_by"] = sorted(directives.partition_by)
    if directives.index is not None:
        indexes = [
            {
                "fields": sorted(index.fields),
                "unique": index.unique,
                "name": index.name,
            }
            for index in directives.index
        ]
        data["index"] = sorted(indexes, key=lambda item: json.dumps(item, sort_keys=True))
    if directives.fts is not None:
        data["fts"] = sorted(directives.fts)
    if directives.vector is not None:
        data["vector"] = sorted(
            (
                {
                    "field": vector.field,
                    "dimensions": vector.dimensions,
                    "metric": vector.metric,
                }
                for vector in directives.vector
            ),
            key=lambda item: item["field"],
        )
    return data


def canonicalize_schema(schema: Schema) -> dict[str, Any]:
    """
    Build the canonical form of ``schema``.

    Fields and relations are sorted by name, directive arrays are sorted, and
    the version and timestamps are left out, so structurally identical
    schemas produce identical forms regardless of declaration order.
    """
    return {
        "name": schema.name,
        "fields": [canonical_field(schema.fields[name]) for name in sorted(schema.fields)],
        "relations": [
            {"name": name, **canonical_relation(schema.relations[name])}
            for name in sorted(schema.relations)
        ],
        "directives": canonical_directives(schema.directives),
    }


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def compute_schema_checksum(schema: Schema) -> str:
    """
    Return ``"sha256:<hex>"`` over the canonical form of ``schema``.

    Examples
    --------
        >>> compute_schema_checksum(schema)
        'sha256:5f0c...'
    """
    digest = hashlib.sha256(canonical_json(canonicalize_schema(schema)).encode("utf-8"))
    return CHECKSUM_PREFIX + digest.hexdigest()
