"""Exception hierarchy shared by the parser, expansion engine and type table."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes carried by :class:`IceTypeError` subclasses."""

    # Parsing
    PARSE_ERROR = "ICETYPE_1000"
    EMPTY_TYPE = "ICETYPE_1001"
    INVALID_MODIFIER_POSITION = "ICETYPE_1002"
    UNKNOWN_TYPE = "ICETYPE_1003"
    UNKNOWN_GENERIC_TYPE = "ICETYPE_1004"
    UNKNOWN_PARAMETRIC_TYPE = "ICETYPE_1005"
    INVALID_MAP_PARAMS = "ICETYPE_1006"
    INVALID_PARAM_VALUE = "ICETYPE_1007"
    EMPTY_RELATION = "ICETYPE_1008"
    MISSING_RELATION_OPERATOR = "ICETYPE_1009"
    MISSING_TARGET_TYPE = "ICETYPE_1010"
    UNEXPECTED_TOKEN = "ICETYPE_1011"
    UNTERMINATED_STRING = "ICETYPE_1012"
    UNKNOWN_DIRECTIVE = "ICETYPE_1013"
    INVALID_DIRECTIVE = "ICETYPE_1014"
    INVALID_FIELD_DEFINITION = "ICETYPE_1015"

    # Type table
    UNKNOWN_ICETYPE = "ICETYPE_3000"
    INVALID_DIALECT = "ICETYPE_3001"
    UNSUPPORTED_ARRAY = "ICETYPE_3002"

    # Versioning and history
    INVALID_VERSION = "ICETYPE_4000"
    INVALID_HISTORY = "ICETYPE_4001"

    # Generators
    GENERATOR_ALREADY_REGISTERED = "ICETYPE_5000"
    GENERATOR_NOT_FOUND = "ICETYPE_5001"


class ExpandErrorCode(str, Enum):
    """Failure modes of relation expansion."""

    EXPAND_MISSING_SCHEMA = "EXPAND_MISSING_SCHEMA"
    EXPAND_UNKNOWN_PATH = "EXPAND_UNKNOWN_PATH"
    EXPAND_NOT_A_RELATION = "EXPAND_NOT_A_RELATION"
    EXPAND_CIRCULAR_REFERENCE = "EXPAND_CIRCULAR_REFERENCE"


class IceTypeError(Exception):
    """
    Base class for every error raised by icetype.

    Parameters
    ----------
    message : str
        Human readable description.
    code : ErrorCode or ExpandErrorCode or str
        Stable machine readable code.
    context : dict, optional
        Extra structured information about the failure.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode | ExpandErrorCode | str = ErrorCode.PARSE_ERROR,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = dict(context or {})

    def format(self) -> str:
        """Return ``"[CODE] message"`` followed by any context entries."""
        code = self.code.value if isinstance(self.code, Enum) else self.code
        text = f"[{code}] {self.message}"
        if self.context:
            details = ", ".join(f"{k}={v!r}" for k, v in sorted(self.context.items()))
            text = f"{text} ({details})"
        return text

    def to_dict(self) -> dict[str, Any]:
        code = self.code.value if isinstance(self.code, Enum) else self.code
        return {
            "name": type(self).__name__,
            "code": code,
            "message": self.message,
            "context": dict(self.context),
        }


class ParseError(IceTypeError):
    """
    Raised for malformed DSL syntax.

    The message is prefixed with the location of the offending token when it
    is known, e.g. ``"Parse error at line 1, column 8: ..."``.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PARSE_ERROR,
        *,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.raw_message = message
        self.path = path
        self.line = line
        self.column = column

        prefix = "Parse error"
        if line is not None and column is not None:
            prefix += f" at line {line}, column {column}"
        if path:
            prefix += f" in '{path}'"

        context: dict[str, Any] = {}
        if path is not None:
            context["path"] = path
        if line is not None:
            context["line"] = line
        if column is not None:
            context["column"] = column

        super().__init__(f"{prefix}: {message}", code, context)


class ExpandError(IceTypeError):
    """Raised when a relation expansion path cannot be resolved."""

    def __init__(
        self,
        message: str,
        code: ExpandErrorCode,
        *,
        path: str,
        schema_name: str | None = None,
    ) -> None:
        self.path = path
        self.schema_name = schema_name
        context: dict[str, Any] = {"path": path}
        if schema_name is not None:
            context["schema_name"] = schema_name
        super().__init__(f"Expansion path '{path}': {message}", code, context)


class UnknownTypeError(IceTypeError, ValueError):
    """Raised for a type outside the unified table, or a known type with bad parameters."""

    def __init__(
        self, ice_type: str, valid_types: list[str], reason: str | None = None
    ) -> None:
        self.ice_type = ice_type
        self.valid_types = list(valid_types)
        self.reason = reason
        if reason is not None:
            message = f"Invalid parameters for IceType '{ice_type}': {reason}"
        else:
            message = (
                f"Unknown IceType: '{ice_type}'. Valid types are: {', '.join(valid_types)}"
            )
        super().__init__(
            message,
            ErrorCode.UNKNOWN_ICETYPE,
            {"ice_type": ice_type},
        )


class InvalidDialectError(IceTypeError, ValueError):
    """Raised for a dialect name outside the supported set."""

    def __init__(self, dialect: str, valid_dialects: list[str]) -> None:
        self.dialect = dialect
        super().__init__(
            f"Invalid dialect: '{dialect}'. Valid dialects are: {', '.join(valid_dialects)}",
            ErrorCode.INVALID_DIALECT,
            {"dialect": dialect},
        )


class UnsupportedArrayError(IceTypeError, ValueError):
    """Raised when an array type is requested for a dialect without arrays."""

    def __init__(self, ice_type: str, dialect: str) -> None:
        self.ice_type = ice_type
        self.dialect = dialect
        super().__init__(
            f"Array types are not supported by dialect '{dialect}' (got '{ice_type}')",
            ErrorCode.UNSUPPORTED_ARRAY,
            {"ice_type": ice_type, "dialect": dialect},
        )


class SchemaVersionError(IceTypeError, ValueError):
    """Raised for invalid version components or malformed version strings."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_VERSION)


class HistoryError(IceTypeError, ValueError):
    """Raised when a serialized schema history cannot be read."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_HISTORY)


class GeneratorError(IceTypeError):
    """Raised for registry misuse (duplicate or missing generators)."""
