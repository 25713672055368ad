"""
Structural diff between two versions of a schema.

Changes are classified on the canonical forms used for checksums, so a diff
is empty exactly when both schemas canonicalize identically (names aside).

Breaking changes:
    - removing a field
    - adding a required field without a default
    - changing a field type, unless the new type widens the old one
    - making an optional field non-optional

Example:
    >>> diff = diff_schemas(v1, v2)
    >>> for change in diff.changes:
    ...     print(change)
    [OK] add_field: nickname - Added field 'nickname' (string?)
    [BREAKING] remove_field: legacy_id - Removed field 'legacy_id'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from .base import Schema
from .canonical import canonical_directives, canonical_field, canonical_json, canonical_relation
from .fields import FieldDefinition

# Type changes that never lose information
TYPE_WIDENING: dict[str, frozenset[str]] = {
    "int": frozenset({"long", "bigint", "float", "double"}),
    "long": frozenset({"bigint", "double"}),
    "bigint": frozenset({"long", "double"}),
    "float": frozenset({"double"}),
    "string": frozenset({"text"}),
    "varchar": frozenset({"text", "string"}),
    "char": frozenset({"varchar", "string", "text"}),
}

_DIRECTIVE_NAMES = {
    "partition_by": "$partitionBy",
    "index": "$index",
    "fts": "$fts",
    "vector": "$vector",
}


class ChangeKind(str, Enum):
    """Kinds of schema changes."""

    ADD_FIELD = "add_field"
    REMOVE_FIELD = "remove_field"
    RENAME_FIELD = "rename_field"
    CHANGE_TYPE = "change_type"
    CHANGE_MODIFIER = "change_modifier"
    CHANGE_DEFAULT = "change_default"
    CHANGE_RELATION = "change_relation"
    CHANGE_DIRECTIVE = "change_directive"


@dataclass(frozen=True)
class SchemaChange:
    """
    A single difference between two schemas.

    Attributes:
        kind: The type of change
        path: Field name, or the directive key for directive changes
        old_value: Previous value (if applicable)
        new_value: New value (if applicable)
        is_breaking: Whether existing data or readers may break
        message: Human-readable description of the change
        definition: The new (or removed) field definition, for field changes
    """

    kind: ChangeKind
    path: str
    old_value: Any = None
    new_value: Any = None
    is_breaking: bool = False
    message: str = ""
    definition: FieldDefinition | None = None

    def __str__(self) -> str:
        status = "BREAKING" if self.is_breaking else "OK"
        return f"[{status}] {self.kind.value}: {self.path} - {self.message}"


@dataclass(frozen=True)
class SchemaDiff:
    """All changes from one schema version to the next."""

    schema_name: str
    changes: list[SchemaChange] = field(default_factory=list)
    is_breaking: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def breaking_changes(self) -> list[SchemaChange]:
        return [change for change in self.changes if change.is_breaking]


def _modifier_string(definition: FieldDefinition) -> str:
    text = ""
    if definition.is_required:
        text += "!"
    if definition.is_unique or definition.is_indexed:
        text += "#"
    if definition.is_optional:
        text += "?"
    return text


def _type_key(definition: FieldDefinition) -> tuple[Any, ...]:
    return (
        definition.type,
        definition.precision,
        definition.scale,
        definition.length,
        definition.type_args,
        definition.is_array,
    )


def _signature(definition: FieldDefinition) -> str:
    data = canonical_field(definition)
    data.pop("name")
    if definition.relation is not None:
        data["relation"] = canonical_relation(definition.relation)
    return canonical_json(data)


def is_widening(old: FieldDefinition, new: FieldDefinition) -> bool:
    """Return True if changing ``old``'s type to ``new``'s loses no data."""
    if old.is_array != new.is_array or old.type_args != new.type_args:
        return False
    if old.type == new.type:
        if old.length is not None and new.length is not None:
            return new.length >= old.length
        if new.length is None and old.length is not None:
            return True
        if old.precision is not None and new.precision is not None:
            old_scale = old.scale or 0
            new_scale = new.scale or 0
            return (
                new_scale >= old_scale
                and new.precision - new_scale >= old.precision - old_scale
            )
        return False
    return new.type in TYPE_WIDENING.get(old.type, frozenset())


def _field_changes(old: FieldDefinition, new: FieldDefinition) -> list[SchemaChange]:
    name = new.name
    changes: list[SchemaChange] = []

    if _type_key(old) != _type_key(new):
        changes.append(
            SchemaChange(
                kind=ChangeKind.CHANGE_TYPE,
                path=name,
                old_value=old.type_signature(),
                new_value=new.type_signature(),
                is_breaking=not is_widening(old, new),
                message=(
                    f"Changed type of '{name}' from {old.type_signature()} "
                    f"to {new.type_signature()}"
                ),
                definition=new,
            )
        )

    old_modifier = _modifier_string(old)
    new_modifier = _modifier_string(new)
    if old_modifier != new_modifier:
        changes.append(
            SchemaChange(
                kind=ChangeKind.CHANGE_MODIFIER,
                path=name,
                old_value=old_modifier,
                new_value=new_modifier,
                is_breaking=old.is_optional and not new.is_optional,
                message=(
                    f"Changed modifier of '{name}' from '{old_modifier}' "
                    f"to '{new_modifier}'"
                ),
                definition=new,
            )
        )

    old_default = old.default_value if old.has_default else None
    new_default = new.default_value if new.has_default else None
    if old.has_default != new.has_default or canonical_json(old_default) != canonical_json(
        new_default
    ):
        changes.append(
            SchemaChange(
                kind=ChangeKind.CHANGE_DEFAULT,
                path=name,
                old_value=old_default,
                new_value=new_default,
                message=f"Changed default of '{name}'",
                definition=new,
            )
        )

    old_relation = canonical_relation(old.relation) if old.relation else None
    new_relation = canonical_relation(new.relation) if new.relation else None
    if old_relation != new_relation:
        changes.append(
            SchemaChange(
                kind=ChangeKind.CHANGE_RELATION,
                path=name,
                old_value=old_relation,
                new_value=new_relation,
                message=f"Changed relation of '{name}'",
                definition=new,
            )
        )

    return changes


def diff_schemas(old: Schema, new: Schema) -> SchemaDiff:
    """
    Compare two versions of a schema.

    Parameters
    ----------
    old : Schema
        The previous schema.
    new : Schema
        The updated schema.

    Returns
    -------
    SchemaDiff
        Changes in a stable order: renames, removals, additions, per-field
        changes, then directive changes. ``is_breaking`` is True if any
        change is breaking.
    """
    removed = [name for name in old.fields if name not in new.fields]
    added = [name for name in new.fields if name not in old.fields]

    # A rename is a removal and an addition with identical signatures, 1:1 only
    renames: list[tuple[str, str]] = []
    removed_by_sig: dict[str, list[str]] = {}
    added_by_sig: dict[str, list[str]] = {}
    for name in removed:
        removed_by_sig.setdefault(_signature(old.fields[name]), []).append(name)
    for name in added:
        added_by_sig.setdefault(_signature(new.fields[name]), []).append(name)
    for signature, old_names in removed_by_sig.items():
        new_names = added_by_sig.get(signature, [])
        if len(old_names) == 1 and len(new_names) == 1:
            renames.append((old_names[0], new_names[0]))

    renamed_old = {old_name for old_name, _ in renames}
    renamed_new = {new_name for _, new_name in renames}

    changes: list[SchemaChange] = []
    for old_name, new_name in renames:
        changes.append(
            SchemaChange(
                kind=ChangeKind.RENAME_FIELD,
                path=old_name,
                old_value=old_name,
                new_value=new_name,
                message=f"Renamed field '{old_name}' to '{new_name}'",
                definition=new.fields[new_name],
            )
        )

    for name in removed:
        if name in renamed_old:
            continue
        changes.append(
            SchemaChange(
                kind=ChangeKind.REMOVE_FIELD,
                path=name,
                old_value=old.fields[name].type_signature(),
                is_breaking=True,
                message=f"Removed field '{name}'",
                definition=old.fields[name],
            )
        )

    for name in added:
        if name in renamed_new:
            continue
        definition = new.fields[name]
        breaking = (
            definition.is_required
            and not definition.is_optional
            and not definition.has_default
        )
        changes.append(
            SchemaChange(
                kind=ChangeKind.ADD_FIELD,
                path=name,
                new_value=definition.type_signature() + _modifier_string(definition),
                is_breaking=breaking,
                message=(
                    f"Added field '{name}' "
                    f"({definition.type_signature()}{_modifier_string(definition)})"
                ),
                definition=definition,
            )
        )

    for name, old_field in old.fields.items():
        new_field = new.fields.get(name)
        if new_field is not None:
            changes.extend(_field_changes(old_field, new_field))

    old_directives = canonical_directives(old.directives)
    new_directives = canonical_directives(new.directives)
    for key, directive_name in _DIRECTIVE_NAMES.items():
        before = old_directives.get(key)
        after = new_directives.get(key)
        if before != after:
            changes.append(
                SchemaChange(
                    kind=ChangeKind.CHANGE_DIRECTIVE,
                    path=directive_name,
                    old_value=before,
                    new_value=after,
                    message=f"Changed directive {directive_name}",
                )
            )

    is_breaking = any(change.is_breaking for change in changes)
    logger.debug(
        f"Diffed schema '{new.name}': {len(changes)} changes"
        f"{' (breaking)' if is_breaking else ''}"
    )
    return SchemaDiff(schema_name=new.name, changes=changes, is_breaking=is_breaking)
