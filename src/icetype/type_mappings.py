"""Cross-dialect type unification table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import (
    ErrorCode,
    InvalidDialectError,
    ParseError,
    UnknownTypeError,
    UnsupportedArrayError,
)
from .grammar import parse_type_expression


class Dialect(str, Enum):
    """Target type systems."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    CLICKHOUSE = "clickhouse"
    DUCKDB = "duckdb"
    ICEBERG = "iceberg"


ALL_DIALECTS: tuple[str, ...] = tuple(d.value for d in Dialect)

ARRAY_DIALECTS: frozenset[str] = frozenset({"postgres", "clickhouse", "duckdb"})


@dataclass(frozen=True)
class UnifiedTypeMapping:
    """One row of the unification table."""

    ice_type: str
    postgres: str
    mysql: str
    sqlite: str
    clickhouse: str
    duckdb: str
    iceberg: str

    def for_dialect(self, dialect: str) -> str:
        return getattr(self, dialect)


# ice_type -> (postgres, mysql, sqlite, clickhouse, duckdb, iceberg)
_TABLE: dict[str, tuple[str, str, str, str, str, str]] = {
    # Strings
    "string": ("TEXT", "VARCHAR(255)", "TEXT", "String", "VARCHAR", "string"),
    "text": ("TEXT", "TEXT", "TEXT", "String", "VARCHAR", "string"),
    "varchar": ("VARCHAR", "VARCHAR(255)", "TEXT", "String", "VARCHAR", "string"),
    "char": ("CHAR", "CHAR(255)", "TEXT", "String", "VARCHAR", "string"),
    # Integers
    "int": ("INTEGER", "INT", "INTEGER", "Int32", "INTEGER", "int"),
    "long": ("BIGINT", "BIGINT", "INTEGER", "Int64", "BIGINT", "long"),
    "bigint": ("BIGINT", "BIGINT", "INTEGER", "Int64", "BIGINT", "long"),
    # Floating point
    "float": ("REAL", "FLOAT", "REAL", "Float32", "REAL", "float"),
    "double": ("DOUBLE PRECISION", "DOUBLE", "REAL", "Float64", "DOUBLE", "double"),
    # Booleans
    "bool": ("BOOLEAN", "TINYINT(1)", "INTEGER", "Bool", "BOOLEAN", "boolean"),
    "boolean": ("BOOLEAN", "TINYINT(1)", "INTEGER", "Bool", "BOOLEAN", "boolean"),
    # Identifiers
    "uuid": ("UUID", "CHAR(36)", "TEXT", "UUID", "UUID", "uuid"),
    # Date and time
    "timestamp": ("TIMESTAMP", "DATETIME", "TEXT", "DateTime64(3)", "TIMESTAMP", "timestamp"),
    "timestamptz": (
        "TIMESTAMPTZ",
        "DATETIME",
        "TEXT",
        "DateTime64(3)",
        "TIMESTAMPTZ",
        "timestamptz",
    ),
    "date": ("DATE", "DATE", "TEXT", "Date", "DATE", "date"),
    # ClickHouse has no TIME type
    "time": ("TIME", "TIME", "TEXT", "String", "TIME", "time"),
    # Complex
    "json": ("JSONB", "JSON", "TEXT", "JSON", "JSON", "string"),
    "binary": ("BYTEA", "BLOB", "BLOB", "String", "BLOB", "binary"),
    "decimal": ("DECIMAL", "DECIMAL(38, 9)", "REAL", "Decimal(38, 9)", "DECIMAL", "decimal"),
}

UNIFIED_TYPE_MAPPINGS: dict[str, UnifiedTypeMapping] = {
    name: UnifiedTypeMapping(name, *row) for name, row in _TABLE.items()
}


def _check_dialect(dialect: Dialect | str) -> str:
    name = dialect.value if isinstance(dialect, Dialect) else str(dialect).strip().lower()
    if name not in ALL_DIALECTS:
        raise InvalidDialectError(str(dialect), list(ALL_DIALECTS))
    return name


def _unknown(ice_type: str, reason: str | None = None) -> UnknownTypeError:
    return UnknownTypeError(ice_type, list(UNIFIED_TYPE_MAPPINGS), reason)


def _format_decimal(precision: int, scale: int, dialect: str) -> str:
    if dialect == "sqlite":
        return "REAL"
    if dialect == "iceberg":
        return f"decimal({precision}, {scale})"
    if dialect == "clickhouse":
        return f"Decimal({precision}, {scale})"
    return f"DECIMAL({precision}, {scale})"


def _format_character(base: str, length: int, dialect: str) -> str:
    if dialect == "sqlite":
        return "TEXT"
    if dialect == "clickhouse":
        return "String"
    if dialect == "iceberg":
        return "string"
    if dialect == "duckdb":
        return f"VARCHAR({length})"
    return f"{base.upper()}({length})"


def get_unified_type_mapping(ice_type: str, dialect: Dialect | str) -> str:
    """
    Map an IceType type to the native type of a dialect.

    Parameters
    ----------
    ice_type : str
        A primitive (``"uuid"``), parametric (``"decimal(10,2)"``) or array
        (``"string[]"``) type. Matching is case-insensitive and trimmed.
    dialect : Dialect or str
        One of postgres, mysql, sqlite, clickhouse, duckdb, iceberg.

    Returns
    -------
    str
        The dialect type, e.g. ``"DECIMAL(10, 2)"``.

    Raises
    ------
    InvalidDialectError
        If ``dialect`` is not supported.
    UnknownTypeError
        If the base type is not in the table, or its parameters are invalid.
    UnsupportedArrayError
        If an array type is requested for mysql, sqlite or iceberg.

    Examples
    --------
        >>> get_unified_type_mapping("decimal(10,2)", "postgres")
        'DECIMAL(10, 2)'
        >>> get_unified_type_mapping("string[]", "clickhouse")
        'Array(String)'
        >>> get_unified_type_mapping("uuid", "sqlite")
        'TEXT'
    """
    dialect_name = _check_dialect(dialect)

    trimmed = ice_type.strip() if isinstance(ice_type, str) else ""
    if not trimmed:
        raise _unknown(trimmed)

    try:
        expr = parse_type_expression(trimmed)
    except ParseError as err:
        if err.code == ErrorCode.INVALID_PARAM_VALUE:
            raise _unknown(trimmed, err.raw_message) from err
        raise _unknown(trimmed) from err

    base = expr.base
    if (
        base not in UNIFIED_TYPE_MAPPINGS
        or expr.modifiers
        or expr.has_default
        or expr.type_args
    ):
        raise _unknown(trimmed)

    if expr.is_array and dialect_name not in ARRAY_DIALECTS:
        raise UnsupportedArrayError(trimmed, dialect_name)

    if base == "decimal" and expr.params:
        precision, scale = expr.params
        native = _format_decimal(precision, scale, dialect_name)
    elif base in ("varchar", "char") and expr.params:
        native = _format_character(base, expr.params[0], dialect_name)
    elif expr.params:
        raise _unknown(trimmed, f"'{base}' takes no parameters")
    else:
        native = UNIFIED_TYPE_MAPPINGS[base].for_dialect(dialect_name)

    if not expr.is_array:
        return native
    if dialect_name == "clickhouse":
        return f"Array({native})"
    return f"{native}[]"


def get_unified_mapping(ice_type: str) -> UnifiedTypeMapping:
    """Return the full cross-dialect row for a base type name."""
    name = ice_type.strip().lower() if isinstance(ice_type, str) else ""
    mapping = UNIFIED_TYPE_MAPPINGS.get(name)
    if mapping is None:
        raise _unknown(name)
    return mapping


def get_all_dialects() -> list[str]:
    return list(ALL_DIALECTS)


def get_dialect_mappings(dialect: Dialect | str) -> dict[str, str]:
    """Return ``{ice_type: native_type}`` for every base type of ``dialect``."""
    dialect_name = _check_dialect(dialect)
    return {
        name: mapping.for_dialect(dialect_name)
        for name, mapping in UNIFIED_TYPE_MAPPINGS.items()
    }


def is_known_unified_type(ice_type: str) -> bool:
    """Return True if ``ice_type`` names a row of the table (case-insensitive)."""
    if not isinstance(ice_type, str):
        return False
    return ice_type.strip().lower() in UNIFIED_TYPE_MAPPINGS


def get_supported_unified_types() -> list[str]:
    return list(UNIFIED_TYPE_MAPPINGS)
