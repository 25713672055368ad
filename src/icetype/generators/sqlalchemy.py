"""SQLAlchemy table generator."""

from typing import TYPE_CHECKING, Any

from loguru import logger
from sqlalchemy import (
    ARRAY,
    CHAR,
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Double,
    Float,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
)
from sqlalchemy.types import TypeEngine

if TYPE_CHECKING:
    from ..base import Schema
    from ..fields import FieldDefinition

_SIMPLE_TYPES: dict[str, type[TypeEngine]] = {
    "string": String,
    "text": Text,
    "int": Integer,
    "long": BigInteger,
    "bigint": BigInteger,
    "float": Float,
    "double": Double,
    "boolean": Boolean,
    "uuid": Uuid,
    "timestamp": DateTime,
    "date": Date,
    "time": Time,
    "json": JSON,
    "binary": LargeBinary,
    # Generic containers are stored as JSON documents
    "map": JSON,
    "struct": JSON,
    "list": JSON,
}

_SERVER_DEFAULTS = {"now": func.now}


def get_sqlalchemy_type(field: "FieldDefinition") -> TypeEngine:
    """
    Return the SQLAlchemy column type for a field.

    Raises
    ------
    TypeError
        If the field's base type has no SQLAlchemy equivalent.
    """
    if field.type == "decimal":
        sa_type: TypeEngine = (
            Numeric(field.precision, field.scale or 0)
            if field.precision is not None
            else Numeric()
        )
    elif field.type == "varchar":
        sa_type = String(field.length)
    elif field.type == "char":
        sa_type = CHAR(field.length)
    elif field.type == "fixed":
        sa_type = LargeBinary(field.length)
    elif field.type == "timestamptz":
        sa_type = DateTime(timezone=True)
    elif field.type in ("enum", "ref"):
        sa_type = String()
    elif field.type in _SIMPLE_TYPES:
        sa_type = _SIMPLE_TYPES[field.type]()
    else:
        raise TypeError(
            f"Field '{field.name}' has type '{field.type}' with no SQLAlchemy mapping"
        )

    if field.is_array:
        return ARRAY(sa_type)
    return sa_type


def create_sqlalchemy_table(
    schema: "Schema",
    table_name: str | None = None,
    metadata: MetaData | None = None,
) -> Table:
    """
    Generate a SQLAlchemy Table from a compiled schema.

    Relation fields are not materialized as columns. ``$index`` directives
    become `sqlalchemy.Index` objects on the table.

    Parameters
    ----------
    schema : Schema
        A compiled IceType schema.
    table_name : str, optional
        The name of the SQL table to create. If not provided, defaults to
        the lowercase schema name with trailing 's' added. Note: uses
        simple pluralization (e.g., 'person' -> 'persons').
    metadata : sqlalchemy.MetaData, optional
        An existing MetaData instance. If not provided, a new MetaData
        object is created.

    Returns
    -------
    sqlalchemy.Table
        An instance of SQLAlchemy Table corresponding to the schema.
    """
    if metadata is None:
        metadata = MetaData()

    if table_name is None:
        table_name = schema.name.lower() + "s"

    columns = []
    for field_name, field in schema.scalar_fields().items():
        sa_type = get_sqlalchemy_type(field)

        column_kwargs: dict[str, Any] = {"nullable": field.is_optional}

        if field.is_unique:
            column_kwargs["unique"] = True

        if field.is_indexed and not field.is_unique:
            column_kwargs["index"] = True

        # Handle default: literals become client defaults, now() a server default
        if field.has_default:
            default = field.default_value
            if isinstance(default, dict) and "function" in default:
                server_default = _SERVER_DEFAULTS.get(default["function"])
                if server_default is not None:
                    column_kwargs["server_default"] = server_default()
                else:
                    logger.warning(
                        f"No SQL equivalent for default {default['function']}() "
                        f"on '{schema.name}.{field_name}'"
                    )
            elif default is not None:
                column_kwargs["default"] = default

        columns.append(Column(field_name, sa_type, **column_kwargs))

    table = Table(table_name, metadata, *columns)

    for index in schema.directives.index or ():
        missing = [column for column in index.fields if column not in table.c]
        if missing:
            raise ValueError(
                f"Index on '{table_name}' references unknown columns: {missing}"
            )
        name = index.name or f"ix_{table_name}_{'_'.join(index.fields)}"
        Index(name, *(table.c[column] for column in index.fields), unique=index.unique)
        logger.debug(f"Added index '{name}' to table '{table_name}'")

    return table
