"""
IceType: Schema Compiler Core

Parse a compact schema DSL once. Validate, unify types, expand relations and
track its evolution.
"""

from .base import IndexDirective, Schema, SchemaDirectives, VectorDirective
from .canonical import canonicalize_schema, compute_schema_checksum
from .diff import ChangeKind, SchemaChange, SchemaDiff, diff_schemas
from .errors import (
    ErrorCode,
    ExpandError,
    ExpandErrorCode,
    GeneratorError,
    HistoryError,
    IceTypeError,
    InvalidDialectError,
    ParseError,
    SchemaVersionError,
    UnknownTypeError,
    UnsupportedArrayError,
)
from .expand import expand_relations
from .fields import FieldDefinition, RelationDefinition, RelationOperator
from .grammar import tokenize
from .history import (
    HistoryEntry,
    SchemaHistory,
    add_history_entry,
    create_schema_history,
    get_history_entry,
    get_latest_entry,
    parse_history,
    serialize_history,
)
from .migration import (
    Migration,
    MigrationValidationResult,
    create_migration_from_diff,
    is_breaking_migration,
    merge_migrations,
    validate_migration,
)
from .parser import infer_type, parse_directives, parse_field, parse_relation, parse_schema
from .type_mappings import (
    Dialect,
    UnifiedTypeMapping,
    get_all_dialects,
    get_dialect_mappings,
    get_supported_unified_types,
    get_unified_mapping,
    get_unified_type_mapping,
    is_known_unified_type,
)
from .validator import ValidationIssue, ValidationResult, validate_schema
from .version import (
    SchemaVersion,
    compare_versions,
    create_schema_version,
    increment_major,
    increment_minor,
    increment_patch,
    is_compatible,
    parse_schema_version,
    serialize_schema_version,
)

__version__ = "0.1.0"

__all__ = [
    # Model
    "Schema",
    "FieldDefinition",
    "RelationDefinition",
    "RelationOperator",
    "SchemaDirectives",
    "IndexDirective",
    "VectorDirective",
    # Parsing
    "parse_schema",
    "parse_field",
    "parse_relation",
    "parse_directives",
    "tokenize",
    "infer_type",
    # Validation
    "validate_schema",
    "ValidationResult",
    "ValidationIssue",
    # Type unification
    "Dialect",
    "UnifiedTypeMapping",
    "get_unified_type_mapping",
    "get_unified_mapping",
    "get_all_dialects",
    "get_dialect_mappings",
    "is_known_unified_type",
    "get_supported_unified_types",
    # Expansion
    "expand_relations",
    # Versioning
    "SchemaVersion",
    "create_schema_version",
    "parse_schema_version",
    "serialize_schema_version",
    "compare_versions",
    "is_compatible",
    "increment_major",
    "increment_minor",
    "increment_patch",
    # Checksums, diffs and migrations
    "canonicalize_schema",
    "compute_schema_checksum",
    "diff_schemas",
    "SchemaDiff",
    "SchemaChange",
    "ChangeKind",
    "Migration",
    "create_migration_from_diff",
    "is_breaking_migration",
    "validate_migration",
    "merge_migrations",
    "MigrationValidationResult",
    # History
    "SchemaHistory",
    "HistoryEntry",
    "create_schema_history",
    "add_history_entry",
    "get_history_entry",
    "get_latest_entry",
    "serialize_history",
    "parse_history",
    # Errors
    "IceTypeError",
    "ErrorCode",
    "ParseError",
    "ExpandError",
    "ExpandErrorCode",
    "UnknownTypeError",
    "InvalidDialectError",
    "UnsupportedArrayError",
    "SchemaVersionError",
    "HistoryError",
    "GeneratorError",
]
