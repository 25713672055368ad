"""Field and relation definitions of the canonical schema model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Sentinel value to distinguish "no default provided" from "default is None"
_MISSING = object()

# Base type names accepted in field strings (lower-case, aliases resolved)
PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {
        "string",
        "text",
        "int",
        "long",
        "bigint",
        "float",
        "double",
        "boolean",
        "uuid",
        "timestamp",
        "timestamptz",
        "date",
        "time",
        "json",
        "binary",
    }
)

# Types taking parenthesized integer parameters: decimal(p, s), varchar(n)...
PARAMETRIC_TYPES: frozenset[str] = frozenset({"decimal", "varchar", "char", "fixed"})

# Types taking angle-bracket arguments: map<K, V>, list<T>, ref<Target>...
GENERIC_TYPES: frozenset[str] = frozenset({"map", "struct", "enum", "ref", "list"})

TYPE_ALIASES: dict[str, str] = {"bool": "boolean"}

VALID_TYPES: frozenset[str] = PRIMITIVE_TYPES | PARAMETRIC_TYPES | GENERIC_TYPES


def normalize_type_name(name: str) -> str:
    """Lower-case ``name`` and resolve aliases such as ``bool``."""
    lowered = name.strip().lower()
    return TYPE_ALIASES.get(lowered, lowered)


class FieldModifier(str, Enum):
    """Trailing field modifiers."""

    REQUIRED = "!"
    OPTIONAL = "?"
    INDEXED = "#"


class RelationOperator(str, Enum):
    """Relation operators: forward/backward, exact/fuzzy."""

    FORWARD = "->"
    BACKWARD = "<-"
    FUZZY_FORWARD = "~>"
    FUZZY_BACKWARD = "<~"

    @property
    def is_backward(self) -> bool:
        return self in (RelationOperator.BACKWARD, RelationOperator.FUZZY_BACKWARD)

    @property
    def is_fuzzy(self) -> bool:
        return self in (RelationOperator.FUZZY_FORWARD, RelationOperator.FUZZY_BACKWARD)


ON_DELETE_ACTIONS: frozenset[str] = frozenset({"cascade", "set_null", "restrict"})


@dataclass(frozen=True)
class RelationDefinition:
    """
    A link from one schema to another.

    Parameters
    ----------
    operator : RelationOperator
        ``->`` (forward), ``<-`` (backward), ``~>`` / ``<~`` (fuzzy).
    target_type : str
        Name of the related schema. Hand-built relations may carry a trailing
        modifier such as ``"Customer?"``.
    inverse : str, optional
        Field on the target schema pointing back (``<- Post.author``).
    on_delete : str, optional
        One of ``cascade``, ``set_null`` or ``restrict``.
    """

    operator: RelationOperator
    target_type: str
    inverse: str | None = None
    on_delete: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.operator, RelationOperator):
            # Accept the raw operator string
            object.__setattr__(self, "operator", RelationOperator(self.operator))
        if self.on_delete is not None and self.on_delete not in ON_DELETE_ACTIONS:
            raise ValueError(
                f"Invalid on_delete action '{self.on_delete}'. "
                f"Expected one of: {sorted(ON_DELETE_ACTIONS)}"
            )

    @property
    def bare_target_type(self) -> str:
        """Target type name with any trailing modifiers stripped."""
        return self.target_type.rstrip("!?#")


@dataclass(frozen=True)
class FieldDefinition:
    """
    A single field of a compiled schema.

    The boolean flags are the canonical description of the field. The
    ``modifier`` character is kept for display and round-tripping only.

    Parameters
    ----------
    name : str
        Field name.
    type : str
        Lower-case base type id. Relation fields carry the target type name.
    modifier : str
        ``"!"``, ``"?"``, ``"#"`` or ``""``.
    is_array, is_optional, is_required, is_unique, is_indexed : bool
        Flags derived from the field string.
    default_value : Any
        Literal default. Unset when no default was declared.
    precision, scale, length : int, optional
        Parameters of ``decimal(p, s)`` and ``varchar(n)`` style types.
    type_args : tuple[str, ...]
        Generic arguments, e.g. ``("string", "int")`` for ``map<string, int>``.
    relation : RelationDefinition, optional
        Set for relation-valued fields.
    """

    name: str
    type: str
    modifier: str = ""
    is_array: bool = False
    is_optional: bool = False
    is_required: bool = False
    is_unique: bool = False
    is_indexed: bool = False
    default_value: Any = _MISSING
    precision: int | None = None
    scale: int | None = None
    length: int | None = None
    type_args: tuple[str, ...] = ()
    relation: RelationDefinition | None = None

    @property
    def has_default(self) -> bool:
        return self.default_value is not _MISSING

    @property
    def is_relation(self) -> bool:
        return self.relation is not None

    @property
    def effective_modifier(self) -> str:
        """Modifier derived from the boolean flags."""
        if self.is_optional:
            return FieldModifier.OPTIONAL.value
        if self.is_required:
            return FieldModifier.REQUIRED.value
        if self.is_unique or self.is_indexed:
            return FieldModifier.INDEXED.value
        return ""

    def type_signature(self) -> str:
        """Render the type part of the field string, e.g. ``decimal(10, 2)[]``."""
        text = self.type
        if self.type_args:
            text += "<" + ", ".join(self.type_args) + ">"
        if self.precision is not None:
            text += f"({self.precision}, {self.scale or 0})"
        elif self.length is not None:
            text += f"({self.length})"
        if self.is_array:
            text += "[]"
        return text
