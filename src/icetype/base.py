"""Core `Schema` model and its closed set of schema-level directives."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .fields import FieldDefinition, RelationDefinition

if TYPE_CHECKING:
    from sqlalchemy import MetaData, Table

    from .generators.polars import PolarsValidator

UNKNOWN_SCHEMA_NAME = "Unknown"

VECTOR_METRICS: frozenset[str] = frozenset({"cosine", "euclidean", "dot"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ISO-8601 UTC with millisecond precision and a ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass(frozen=True)
class IndexDirective:
    """A secondary index over one or more fields."""

    fields: tuple[str, ...]
    unique: bool = False
    name: str | None = None


@dataclass(frozen=True)
class VectorDirective:
    """An embedding field with a fixed number of dimensions."""

    field: str
    dimensions: int
    metric: str | None = None


@dataclass(frozen=True)
class SchemaDirectives:
    """
    Schema-level annotations declared with ``$``-prefixed keys.

    Only the four directives below exist; anything else is rejected by the
    parser.
    """

    partition_by: tuple[str, ...] | None = None
    index: tuple[IndexDirective, ...] | None = None
    fts: tuple[str, ...] | None = None
    vector: tuple[VectorDirective, ...] | None = None


@dataclass(frozen=True)
class Schema:
    """
    A compiled IceType schema.

    Schemas are produced by :func:`icetype.parse_schema` and never mutated
    afterwards; expansion and diffing build new values.

    Relation-valued entries are present in both ``fields`` (with their
    ``relation`` attached) and ``relations``.

    Examples
    --------
        >>> from icetype import parse_schema
        >>> schema = parse_schema({
        ...     "$type": "User",
        ...     "id": "uuid!",
        ...     "email": "string#",
        ...     "bio": "text?",
        ...     "posts": "<- Post.author[]",
        ... })
        >>> list(schema.fields)
        ['id', 'email', 'bio', 'posts']
        >>> list(schema.relations)
        ['posts']
        >>>
        >>> # Generate outputs
        >>> UserModel = schema.to_pydantic()
        >>> validator = schema.to_polars_validator()
        >>> table = schema.to_sqlalchemy(table_name="users")
    """

    name: str
    fields: dict[str, FieldDefinition] = field(default_factory=dict)
    relations: dict[str, RelationDefinition] = field(default_factory=dict)
    directives: SchemaDirectives = field(default_factory=SchemaDirectives)
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def get_field(self, name: str) -> FieldDefinition | None:
        return self.fields.get(name)

    def scalar_fields(self) -> dict[str, FieldDefinition]:
        """Return the fields that are not relations, in declaration order."""
        return {
            name: definition
            for name, definition in self.fields.items()
            if not definition.is_relation
        }

    def to_pydantic(self) -> type:
        """
        Generate a Pydantic BaseModel from this schema.

        Returns
        -------
        type
            A dynamically created Pydantic BaseModel class.
        """
        from .generators.pydantic import create_pydantic_model

        return create_pydantic_model(self)

    def to_polars_validator(self) -> PolarsValidator:
        """
        Generate a Polars validator from this schema.

        Returns
        -------
        PolarsValidator
            A validator instance for validating Polars DataFrames.
        """
        from .generators.polars import create_polars_validator

        return create_polars_validator(self)

    def to_sqlalchemy(
        self, table_name: str | None = None, metadata: MetaData | None = None
    ) -> Table:
        """
        Generate a SQLAlchemy Table from this schema.

        Parameters
        ----------
        table_name : str, optional
            Name for the SQL table. If not provided, the lower-cased schema
            name with a trailing 's' is used.
        metadata : sqlalchemy.MetaData, optional
            MetaData instance to attach the table to. If not provided,
            a new MetaData instance is created.

        Returns
        -------
        sqlalchemy.Table
            A SQLAlchemy Table object.
        """
        from .generators.sqlalchemy import create_sqlalchemy_table

        return create_sqlalchemy_table(self, table_name=table_name, metadata=metadata)
