"""Relation expansion: denormalize related schemas into prefixed fields."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace

from loguru import logger

from .base import Schema, utcnow
from .errors import ExpandError, ExpandErrorCode
from .fields import FieldDefinition, FieldModifier, RelationDefinition


def _lookup(
    schema: Schema, segment: str
) -> tuple[FieldDefinition | None, RelationDefinition | None]:
    definition = schema.fields.get(segment)
    relation = definition.relation if definition is not None else None
    if relation is None:
        relation = schema.relations.get(segment)
    return definition, relation


def _check_cycles(schema: Schema, path: str, all_schemas: Mapping[str, Schema]) -> None:
    """Walk ``path`` hop by hop and fail if a type repeats along it."""
    visited = {schema.name}
    current: Schema | None = schema
    for segment in path.split("."):
        if current is None:
            return
        _, relation = _lookup(current, segment)
        if relation is None:
            # Reported with a better error during resolution
            return
        target_name = relation.bare_target_type
        if target_name in visited:
            raise ExpandError(
                f"circular reference to '{target_name}' "
                f"(visited: {', '.join(sorted(visited))})",
                ExpandErrorCode.EXPAND_CIRCULAR_REFERENCE,
                path=path,
                schema_name=current.name,
            )
        visited.add(target_name)
        current = all_schemas.get(target_name)


def _copy_field(
    source: FieldDefinition, name: str, optional: bool, many: bool
) -> FieldDefinition:
    is_optional = optional or source.is_optional
    copied = replace(
        source,
        name=name,
        is_array=source.is_array or many,
        is_optional=is_optional,
        is_required=source.is_required and not is_optional,
        is_unique=False,
        is_indexed=False,
    )
    return replace(copied, modifier=copied.effective_modifier)


def _resolve_path(
    schema: Schema,
    path: str,
    all_schemas: Mapping[str, Schema],
    expanded: dict[str, FieldDefinition],
) -> None:
    segments = path.split(".")
    current = schema
    prefix = ""
    optional = False

    for position, segment in enumerate(segments):
        has_more = position < len(segments) - 1
        definition, relation = _lookup(current, segment)

        if not segment or (definition is None and relation is None):
            raise ExpandError(
                f"field '{segment}' not found in schema '{current.name}'",
                ExpandErrorCode.EXPAND_UNKNOWN_PATH,
                path=path,
                schema_name=current.name,
            )

        if relation is None:
            if has_more:
                raise ExpandError(
                    f"field '{segment}' of schema '{current.name}' is not a relation",
                    ExpandErrorCode.EXPAND_NOT_A_RELATION,
                    path=path,
                    schema_name=current.name,
                )
            # A plain terminal field is already part of the schema
            return

        target_name = relation.bare_target_type
        target = all_schemas.get(target_name)
        if target is None:
            raise ExpandError(
                f"related schema '{target_name}' is not available",
                ExpandErrorCode.EXPAND_MISSING_SCHEMA,
                path=path,
                schema_name=current.name,
            )

        optional = (
            optional
            or (definition is not None and definition.is_optional)
            or relation.target_type.endswith(FieldModifier.OPTIONAL.value)
        )
        prefix = f"{prefix}_{segment}" if prefix else segment

        if has_more:
            current = target
            continue

        many = definition is not None and definition.is_array
        for name, target_field in target.scalar_fields().items():
            field_name = f"{prefix}_{name}"
            expanded[field_name] = _copy_field(target_field, field_name, optional, many)

        if many:
            expanded[prefix] = FieldDefinition(
                name=prefix,
                type="json",
                modifier=FieldModifier.OPTIONAL.value if optional else "",
                is_array=True,
                is_optional=optional,
            )


def expand_relations(
    schema: Schema, paths: Iterable[str], all_schemas: Mapping[str, Schema]
) -> Schema:
    """
    Inline related schemas into ``schema`` as prefixed fields.

    Parameters
    ----------
    schema : Schema
        The schema to expand.
    paths : Iterable[str]
        Dotted relation paths such as ``"customer"`` or ``"items.product"``.
    all_schemas : Mapping[str, Schema]
        Schemas available for resolving relation targets, keyed by name.

    Returns
    -------
    Schema
        A new schema named ``<name>_expanded``. Expanded relations are
        removed from ``fields`` and ``relations``; each non-relation field of
        the target appears as ``<prefix>_<field>``.

    Raises
    ------
    ExpandError
        If a path is unknown, traverses a plain field, targets a missing
        schema or revisits a type already on the same path. Nothing is
        returned on failure.

    Examples
    --------
        >>> expanded = expand_relations(order, ["customer"], {"Customer": customer})
        >>> [name for name in expanded.fields if name.startswith("customer_")]
        ['customer_id', 'customer_name', 'customer_email']
    """
    # Unique paths, shallowest first
    unique_paths = sorted(dict.fromkeys(paths), key=lambda p: p.count("."))

    for path in unique_paths:
        _check_cycles(schema, path, all_schemas)

    expanded: dict[str, FieldDefinition] = {}
    expanded_roots: set[str] = set()
    for path in unique_paths:
        logger.debug(f"Expanding '{path}' on schema '{schema.name}'")
        _resolve_path(schema, path, all_schemas, expanded)
        root = path.split(".", 1)[0]
        if _lookup(schema, root)[1] is not None:
            expanded_roots.add(root)

    fields: dict[str, FieldDefinition] = {
        name: definition
        for name, definition in schema.fields.items()
        if name not in expanded_roots and name not in expanded
    }
    fields.update(expanded)

    relations = {
        name: relation
        for name, relation in schema.relations.items()
        if name not in expanded_roots
    }

    now = utcnow()
    return Schema(
        name=f"{schema.name}_expanded",
        fields=fields,
        relations=relations,
        directives=schema.directives,
        version=schema.version,
        created_at=now,
        updated_at=now,
    )
