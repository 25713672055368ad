"""Aggregating validation of compiled schemas."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from .base import UNKNOWN_SCHEMA_NAME, Schema
from .fields import VALID_TYPES


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation problem, addressed by a dotted path."""

    path: str
    message: str
    code: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of `validate_schema`. ``valid`` ignores warnings."""

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)


def validate_schema(schema: Schema) -> ValidationResult:
    """
    Check a schema for unknown types and dangling directive references.

    Every problem is collected in a single pass; this function never raises.

    Parameters
    ----------
    schema : Schema
        A compiled schema.

    Returns
    -------
    ValidationResult
        ``valid`` is True iff there are no errors.

    Examples
    --------
        >>> schema = parse_schema({
        ...     "$type": "Doc",
        ...     "body": "strin",
        ...     "$fts": ["title"],
        ... })
        >>> result = validate_schema(schema)
        >>> [issue.code for issue in result.errors]
        ['UNKNOWN_TYPE', 'UNKNOWN_FTS_FIELD']
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    if not schema.name or schema.name == UNKNOWN_SCHEMA_NAME:
        warnings.append(
            ValidationIssue(
                path="$type",
                message="Schema has no $type name",
                code="MISSING_SCHEMA_NAME",
            )
        )

    for name, definition in schema.fields.items():
        if definition.is_relation:
            continue
        if definition.type not in VALID_TYPES:
            errors.append(
                ValidationIssue(
                    path=name,
                    message=f"Unknown type '{definition.type}'",
                    code="UNKNOWN_TYPE",
                )
            )
        if definition.is_optional and definition.is_required:
            warnings.append(
                ValidationIssue(
                    path=name,
                    message="Field is marked both required (!) and optional (?)",
                    code="CONFLICTING_MODIFIERS",
                )
            )

    for name, relation in schema.relations.items():
        if not relation.bare_target_type:
            errors.append(
                ValidationIssue(
                    path=name,
                    message="Relation has no target type",
                    code="MISSING_TARGET_TYPE",
                )
            )

    directives = schema.directives

    for field_name in directives.partition_by or ():
        if field_name not in schema.fields:
            errors.append(
                ValidationIssue(
                    path=f"$partitionBy.{field_name}",
                    message=f"Partition field '{field_name}' does not exist",
                    code="UNKNOWN_PARTITION_FIELD",
                )
            )

    for index in directives.index or ():
        for field_name in index.fields:
            if field_name not in schema.fields:
                errors.append(
                    ValidationIssue(
                        path=f"$index.{field_name}",
                        message=f"Index field '{field_name}' does not exist",
                        code="UNKNOWN_INDEX_FIELD",
                    )
                )

    for field_name in directives.fts or ():
        if field_name not in schema.fields:
            errors.append(
                ValidationIssue(
                    path=f"$fts.{field_name}",
                    message=f"FTS field '{field_name}' does not exist",
                    code="UNKNOWN_FTS_FIELD",
                )
            )

    for vector in directives.vector or ():
        path = f"$vector.{vector.field}"
        if vector.field not in schema.fields:
            errors.append(
                ValidationIssue(
                    path=path,
                    message=f"Vector field '{vector.field}' does not exist",
                    code="UNKNOWN_VECTOR_FIELD",
                )
            )
        if vector.dimensions <= 0:
            errors.append(
                ValidationIssue(
                    path=path,
                    message=(
                        f"Vector dimensions must be positive, got {vector.dimensions}"
                    ),
                    code="INVALID_VECTOR_DIMENSIONS",
                )
            )

    if errors or warnings:
        logger.debug(
            f"Schema '{schema.name}' validated with {len(errors)} errors "
            f"and {len(warnings)} warnings"
        )
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
