"""Migrations derived from schema diffs."""

from __future__ import annotations

import secrets
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from .base import format_timestamp, utcnow
from .diff import ChangeKind, SchemaChange, SchemaDiff
from .validator import ValidationIssue
from .version import (
    SchemaVersion,
    compare_versions,
    parse_schema_version,
    serialize_schema_version,
)

OPERATIONS: frozenset[str] = frozenset(
    {"addColumn", "dropColumn", "renameColumn", "alterColumn", "addIndex", "dropIndex"}
)


@dataclass(frozen=True)
class Migration:
    """
    An ordered list of operations taking a schema between two versions.

    Operations are JSON-ready dicts keyed by ``op``:

    - ``addColumn``: ``table``, ``column``, ``type``, ``nullable``, ``default``?
    - ``dropColumn``: ``table``, ``column``
    - ``renameColumn``: ``table``, ``oldName``, ``newName``
    - ``alterColumn``: ``table``, ``column``, ``changes``
    - ``addIndex``: ``table``, ``columns``, ``unique``, ``name``?
    - ``dropIndex``: ``table``, ``indexName``
    """

    id: str
    from_version: SchemaVersion
    to_version: SchemaVersion
    timestamp: datetime
    operations: list[dict[str, Any]] = field(default_factory=list)
    is_breaking: bool = False
    description: str | None = None


@dataclass(frozen=True)
class MigrationValidationResult:
    """Outcome of `validate_migration`. Issue paths look like ``operations[2]``."""

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)


def generate_migration_id(timestamp: datetime | None = None) -> str:
    timestamp = timestamp or utcnow()
    return f"migration_{int(timestamp.timestamp() * 1000)}_{secrets.token_hex(4)}"


def _index_name(table: str, columns: list[str]) -> str:
    return f"idx_{table}_{'_'.join(columns)}"


def _column_operations(table: str, change: SchemaChange) -> list[dict[str, Any]]:
    definition = change.definition

    if change.kind == ChangeKind.ADD_FIELD and definition is not None:
        op: dict[str, Any] = {
            "op": "addColumn",
            "table": table,
            "column": change.path,
            "type": definition.type_signature(),
            "nullable": definition.is_optional,
        }
        if definition.has_default:
            op["default"] = definition.default_value
        return [op]

    if change.kind == ChangeKind.REMOVE_FIELD:
        return [{"op": "dropColumn", "table": table, "column": change.path}]

    if change.kind == ChangeKind.RENAME_FIELD:
        return [
            {
                "op": "renameColumn",
                "table": table,
                "oldName": change.old_value,
                "newName": change.new_value,
            }
        ]

    if change.kind == ChangeKind.CHANGE_TYPE:
        return [
            {
                "op": "alterColumn",
                "table": table,
                "column": change.path,
                "changes": {"type": {"from": change.old_value, "to": change.new_value}},
            }
        ]

    if change.kind == ChangeKind.CHANGE_DEFAULT:
        return [
            {
                "op": "alterColumn",
                "table": table,
                "column": change.path,
                "changes": {"default": {"from": change.old_value, "to": change.new_value}},
            }
        ]

    if change.kind == ChangeKind.CHANGE_MODIFIER:
        operations: list[dict[str, Any]] = []
        old_modifier = change.old_value or ""
        new_modifier = change.new_value or ""
        old_nullable = "?" in old_modifier
        new_nullable = "?" in new_modifier
        if old_nullable != new_nullable:
            operations.append(
                {
                    "op": "alterColumn",
                    "table": table,
                    "column": change.path,
                    "changes": {"nullable": {"from": old_nullable, "to": new_nullable}},
                }
            )
        old_indexed = "#" in old_modifier
        new_indexed = "#" in new_modifier
        if new_indexed and not old_indexed:
            operations.append(
                {
                    "op": "addIndex",
                    "table": table,
                    "columns": [change.path],
                    "unique": definition is not None and definition.is_unique,
                }
            )
        elif old_indexed and not new_indexed:
            operations.append(
                {
                    "op": "dropIndex",
                    "table": table,
                    "indexName": _index_name(table, [change.path]),
                }
            )
        return operations

    return []


def _index_operations(table: str, change: SchemaChange) -> list[dict[str, Any]]:
    before = change.old_value or []
    after = change.new_value or []
    operations: list[dict[str, Any]] = []

    for index in before:
        if index not in after:
            operations.append(
                {
                    "op": "dropIndex",
                    "table": table,
                    "indexName": index.get("name") or _index_name(table, index["fields"]),
                }
            )
    for index in after:
        if index not in before:
            op: dict[str, Any] = {
                "op": "addIndex",
                "table": table,
                "columns": list(index["fields"]),
                "unique": index["unique"],
            }
            if index.get("name"):
                op["name"] = index["name"]
            operations.append(op)
    return operations


def create_migration_from_diff(
    diff: SchemaDiff,
    from_version: SchemaVersion,
    to_version: SchemaVersion,
    *,
    description: str | None = None,
    migration_id: str | None = None,
    timestamp: datetime | None = None,
) -> Migration:
    """
    Translate a `SchemaDiff` into migration operations.

    Parameters
    ----------
    diff : SchemaDiff
        Output of `diff_schemas`.
    from_version, to_version : SchemaVersion
        Versions the migration moves between.
    description : str, optional
        Free-form description stored with the migration.
    migration_id : str, optional
        Explicit id. Defaults to ``migration_<epoch ms>_<random hex>``.
    timestamp : datetime, optional
        Creation time. Defaults to now (UTC).

    Returns
    -------
    Migration
        Operations in diff order; ``is_breaking`` mirrors the diff.

    Examples
    --------
        >>> migration = create_migration_from_diff(
        ...     diff_schemas(v1, v2),
        ...     create_schema_version(1, 0, 0),
        ...     create_schema_version(1, 1, 0),
        ...     description="Add nickname",
        ... )
        >>> [op["op"] for op in migration.operations]
        ['addColumn']
    """
    timestamp = timestamp or utcnow()
    table = diff.schema_name
    if compare_versions(from_version, to_version) >= 0:
        logger.warning(
            f"Migration for '{table}' does not move forward: {from_version} -> {to_version}"
        )

    operations: list[dict[str, Any]] = []
    for change in diff.changes:
        if change.kind == ChangeKind.CHANGE_DIRECTIVE:
            if change.path == "$index":
                operations.extend(_index_operations(table, change))
            continue
        operations.extend(_column_operations(table, change))

    return Migration(
        id=migration_id or generate_migration_id(timestamp),
        from_version=from_version,
        to_version=to_version,
        timestamp=timestamp,
        operations=operations,
        is_breaking=diff.is_breaking,
        description=description,
    )


def is_breaking_migration(migration: Migration) -> bool:
    """Return True if the migration is flagged breaking or drops a column."""
    return migration.is_breaking or any(
        op.get("op") == "dropColumn" for op in migration.operations
    )


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _operation_issues(op: dict[str, Any], path: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    kind = op["op"]

    def issue(message: str, code: str) -> None:
        issues.append(ValidationIssue(path=path, message=message, code=code))

    if "table" in op and _blank(op["table"]):
        issue("Table name cannot be empty", "EMPTY_TABLE_NAME")
    if "column" in op and _blank(op["column"]):
        issue("Column name cannot be empty", "EMPTY_COLUMN_NAME")

    if kind == "addColumn":
        if op.get("type") is None:
            issue("addColumn requires a type", "MISSING_TYPE")
        if not isinstance(op.get("nullable"), bool):
            issue("addColumn requires a nullable flag", "MISSING_NULLABLE")
    elif kind == "renameColumn":
        if _blank(op.get("oldName")):
            issue("renameColumn requires oldName", "EMPTY_OLD_NAME")
        if _blank(op.get("newName")):
            issue("renameColumn requires newName", "EMPTY_NEW_NAME")
    elif kind == "alterColumn":
        if not isinstance(op.get("changes"), dict) or not op["changes"]:
            issue("alterColumn requires at least one change", "EMPTY_CHANGES")
    elif kind == "addIndex":
        if not isinstance(op.get("columns"), list) or not op["columns"]:
            issue("addIndex requires at least one column", "EMPTY_COLUMNS")
    elif kind == "dropIndex":
        if _blank(op.get("indexName")):
            issue("dropIndex requires indexName", "EMPTY_INDEX_NAME")
    return issues


def validate_migration(migration: Migration) -> MigrationValidationResult:
    """
    Check a migration's version order and the shape of each operation.

    Every problem is collected; this function never raises.

    Examples
    --------
        >>> result = validate_migration(replace(migration, operations=[{"op": "truncate"}]))
        >>> [issue.code for issue in result.errors]
        ['INVALID_OPERATION']
    """
    errors: list[ValidationIssue] = []

    if compare_versions(migration.from_version, migration.to_version) >= 0:
        errors.append(
            ValidationIssue(
                path="toVersion",
                message=(
                    f"fromVersion {migration.from_version} must be less than "
                    f"toVersion {migration.to_version}"
                ),
                code="INVALID_VERSION_ORDER",
            )
        )

    for position, op in enumerate(migration.operations):
        path = f"operations[{position}]"
        kind = op.get("op") if isinstance(op, dict) else op
        if not isinstance(op, dict) or kind not in OPERATIONS:
            errors.append(
                ValidationIssue(
                    path=path,
                    message=f"Unknown migration operation: {kind!r}",
                    code="INVALID_OPERATION",
                )
            )
            continue
        errors.extend(_operation_issues(op, path))

    return MigrationValidationResult(valid=not errors, errors=errors)


def _column_key(op: dict[str, Any]) -> tuple[Any, Any] | None:
    if "column" not in op:
        return None
    return (op.get("table"), op["column"])


def _optimize_operations(operations: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # An add followed by a drop of the same column cancels out, together with
    # any operation on that column in between.
    result: list[dict[str, Any]] = []
    for op in operations:
        if op["op"] == "dropColumn":
            key = _column_key(op)
            added = next(
                (
                    position
                    for position, previous in enumerate(result)
                    if previous["op"] == "addColumn" and _column_key(previous) == key
                ),
                None,
            )
            if added is not None:
                result = result[:added] + [
                    previous for previous in result[added + 1 :] if _column_key(previous) != key
                ]
                continue
        result.append(dict(op))
    return result


def merge_migrations(migrations: Sequence[Migration]) -> Migration:
    """
    Collapse consecutive migrations into one.

    Parameters
    ----------
    migrations : sequence of Migration
        Each ``to_version`` must equal the next ``from_version``.

    Returns
    -------
    Migration
        Spans the first ``from_version`` to the last ``to_version``. It is
        breaking if any input is, carries the latest timestamp and gets a
        fresh id. Columns added and later dropped are left out.

    Raises
    ------
    ValueError
        If ``migrations`` is empty or not consecutive.
    """
    if not migrations:
        raise ValueError("Cannot merge an empty sequence of migrations")

    for position in range(1, len(migrations)):
        previous, current = migrations[position - 1], migrations[position]
        if previous.to_version != current.from_version:
            raise ValueError(
                f"Migrations are not consecutive: migration {position - 1} ends at "
                f"{previous.to_version} but migration {position} starts at "
                f"{current.from_version}"
            )

    operations = _optimize_operations([op for m in migrations for op in m.operations])
    descriptions = [m.description for m in migrations if m.description]
    timestamp = max(m.timestamp for m in migrations)
    logger.debug(
        f"Merged {len(migrations)} migrations "
        f"{migrations[0].from_version} -> {migrations[-1].to_version} "
        f"into {len(operations)} operations"
    )
    return Migration(
        id=generate_migration_id(),
        from_version=migrations[0].from_version,
        to_version=migrations[-1].to_version,
        timestamp=timestamp,
        operations=operations,
        is_breaking=any(m.is_breaking for m in migrations),
        description="; ".join(descriptions) if descriptions else None,
    )


def migration_to_dict(migration: Migration) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": migration.id,
        "fromVersion": serialize_schema_version(migration.from_version),
        "toVersion": serialize_schema_version(migration.to_version),
        "timestamp": format_timestamp(migration.timestamp),
        "operations": [dict(op) for op in migration.operations],
        "isBreaking": migration.is_breaking,
    }
    if migration.description is not None:
        data["description"] = migration.description
    return data


def migration_from_dict(data: dict[str, Any]) -> Migration:
    """
    Rebuild a `Migration` from `migration_to_dict` output.

    ``timestamp`` may already be a datetime (as produced by Pydantic). Naive
    timestamps are read as UTC.

    Raises
    ------
    ValueError
        If the timestamp is not a datetime or ISO string, or the result fails
        `validate_migration`.
    """
    timestamp = data["timestamp"]
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if not isinstance(timestamp, datetime):
        raise ValueError(f"Invalid migration timestamp: {timestamp!r}")
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    migration = Migration(
        id=data["id"],
        from_version=parse_schema_version(data["fromVersion"]),
        to_version=parse_schema_version(data["toVersion"]),
        timestamp=timestamp,
        operations=list(data.get("operations", [])),
        is_breaking=bool(data.get("isBreaking", False)),
        description=data.get("description"),
    )
    result = validate_migration(migration)
    if not result.valid:
        problems = "; ".join(f"{issue.path}: {issue.message}" for issue in result.errors)
        raise ValueError(f"Invalid migration {migration.id!r}: {problems}")
    return replace(migration, operations=[dict(op) for op in migration.operations])
