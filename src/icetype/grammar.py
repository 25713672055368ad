"""
Tokenizer and recursive-descent parser for IceType field and relation strings.

Field strings::

    field     := type_ref suffix* default? EOF
    type_ref  := IDENT ( "(" NUMBER ("," NUMBER)* ")" | "<" generic ("," generic)* ">" )?
    suffix    := "[" "]" | MODIFIER
    default   := "=" literal
    literal   := STRING | NUMBER | IDENT | IDENT "(" ")" | "{" "}" | "[" "]"

Relation strings::

    relation  := RELATION_OP? IDENT ( MODIFIER | "." IDENT | "[" "]" )* EOF
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from .errors import ErrorCode, ParseError
from .fields import (
    _MISSING,
    GENERIC_TYPES,
    PARAMETRIC_TYPES,
    VALID_TYPES,
    RelationOperator,
    normalize_type_name,
)


class TokenType(Enum):
    """Token types of the field DSL."""

    # Literals
    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()

    # Operators
    MODIFIER = auto()  # ! ? #
    RELATION_OP = auto()  # -> <- ~> <~
    EQUALS = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LANGLE = auto()
    RANGLE = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    DOT = auto()

    EOF = auto()


@dataclass
class Token:
    """A token of a field or relation string."""

    type: TokenType
    value: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


_PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "<": TokenType.LANGLE,
    ">": TokenType.RANGLE,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "=": TokenType.EQUALS,
}

_RELATION_OPERATORS = tuple(op.value for op in RelationOperator)


class Lexer:
    """Tokenizer for field and relation strings."""

    def __init__(self, text: str, path: str | None = None):
        self.text = text
        self.path = path
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Tokenize the entire input."""
        while self.pos < len(self.text):
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break

            if not self._try_tokenize_one():
                raise ParseError(
                    f"Unexpected character '{self.text[self.pos]}'",
                    ErrorCode.UNEXPECTED_TOKEN,
                    path=self.path,
                    line=self.line,
                    column=self.column,
                )

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    def _try_tokenize_one(self) -> bool:
        # Relation operators must come before punctuation ("<") and numbers ("-")
        return (
            self._match_relation_operator()
            or self._match_string()
            or self._match_number()
            or self._match_identifier()
            or self._match_modifier()
            or self._match_punctuation()
        )

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r\n":
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _emit(self, token_type: TokenType, value: str, length: int) -> None:
        self.tokens.append(Token(token_type, value, self.line, self.column))
        self.pos += length
        self.column += length

    def _match_relation_operator(self) -> bool:
        pair = self.text[self.pos : self.pos + 2]
        if pair in _RELATION_OPERATORS:
            self._emit(TokenType.RELATION_OP, pair, 2)
            return True
        return False

    def _match_string(self) -> bool:
        if self.text[self.pos] not in ('"', "'"):
            return False

        quote = self.text[self.pos]
        start_line = self.line
        start_col = self.column
        self.pos += 1
        self.column += 1

        value = ""
        while self.pos < len(self.text) and self.text[self.pos] != quote:
            if self.text[self.pos] == "\\" and self.pos + 1 < len(self.text):
                self.pos += 1
                self.column += 1
            value += self.text[self.pos]
            self.pos += 1
            self.column += 1

        if self.pos >= len(self.text):
            raise ParseError(
                "Unterminated string literal",
                ErrorCode.UNTERMINATED_STRING,
                path=self.path,
                line=start_line,
                column=start_col,
            )

        # Closing quote
        self.pos += 1
        self.column += 1
        self.tokens.append(Token(TokenType.STRING, value, start_line, start_col))
        return True

    def _match_number(self) -> bool:
        start = self.pos
        end = start
        if end < len(self.text) and self.text[end] == "-":
            end += 1
        if end >= len(self.text) or not self.text[end].isdigit():
            return False
        while end < len(self.text) and self.text[end].isdigit():
            end += 1
        if (
            end + 1 < len(self.text)
            and self.text[end] == "."
            and self.text[end + 1].isdigit()
        ):
            end += 1
            while end < len(self.text) and self.text[end].isdigit():
                end += 1
        self._emit(TokenType.NUMBER, self.text[start:end], end - start)
        return True

    def _match_identifier(self) -> bool:
        char = self.text[self.pos]
        if not (char.isalpha() or char == "_"):
            return False
        end = self.pos + 1
        while end < len(self.text) and (
            self.text[end].isalnum() or self.text[end] == "_"
        ):
            end += 1
        self._emit(TokenType.IDENTIFIER, self.text[self.pos : end], end - self.pos)
        return True

    def _match_modifier(self) -> bool:
        char = self.text[self.pos]
        if char in "!?#":
            self._emit(TokenType.MODIFIER, char, 1)
            return True
        return False

    def _match_punctuation(self) -> bool:
        char = self.text[self.pos]
        token_type = _PUNCTUATION.get(char)
        if token_type is None:
            return False
        self._emit(token_type, char, 1)
        return True


def tokenize(text: str, path: str | None = None) -> list[Token]:
    """
    Split a field or relation string into tokens.

    Parameters
    ----------
    text : str
        The string to tokenize, e.g. ``"decimal(10,2)!"``.
    path : str, optional
        Field name reported in errors.

    Returns
    -------
    list[Token]
        Tokens, always terminated by an ``EOF`` token.

    Raises
    ------
    ParseError
        On characters outside the DSL alphabet or unterminated strings.
    """
    return Lexer(text, path).tokenize()


@dataclass(frozen=True)
class TypeExpr:
    """Parsed form of a field string."""

    base: str
    params: tuple[int, ...] = ()
    type_args: tuple[str, ...] = ()
    is_array: bool = False
    modifiers: tuple[str, ...] = ()
    default: Any = _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class RelationExpr:
    """Parsed form of a relation string."""

    operator: RelationOperator
    target_type: str
    modifiers: tuple[str, ...] = ()
    inverse: str | None = None
    is_array: bool = False


class TypeParser:
    """Recursive-descent parser over the tokens of a single string."""

    def __init__(self, text: str, path: str | None = None):
        self.text = text
        self.path = path
        self.tokens = tokenize(text, path)
        self.pos = 0

    # Helpers

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _is_at_end(self) -> bool:
        return self._check(TokenType.EOF)

    def _error(
        self, message: str, code: ErrorCode, token: Token | None = None
    ) -> ParseError:
        token = token or self._current()
        return ParseError(
            message, code, path=self.path, line=token.line, column=token.column
        )

    def _expect(self, token_type: TokenType, what: str) -> Token:
        if not self._check(token_type):
            found = self._current()
            shown = f"'{found.value}'" if found.value else "end of input"
            raise self._error(
                f"Expected {what}, found {shown}", ErrorCode.UNEXPECTED_TOKEN
            )
        return self._advance()

    # Field strings

    def parse_type(self) -> TypeExpr:
        if self._is_at_end():
            raise self._error("Type string is empty", ErrorCode.EMPTY_TYPE)
        if self._check(TokenType.MODIFIER):
            raise self._error(
                f"Modifier '{self._current().value}' must follow the type name",
                ErrorCode.INVALID_MODIFIER_POSITION,
            )

        name_token = self._expect(TokenType.IDENTIFIER, "a type name")
        base = normalize_type_name(name_token.value)

        params: tuple[int, ...] = ()
        type_args: tuple[str, ...] = ()
        if self._check(TokenType.LPAREN):
            if base not in PARAMETRIC_TYPES:
                raise self._error(
                    f"Type '{name_token.value}' does not take parameters",
                    ErrorCode.UNKNOWN_PARAMETRIC_TYPE,
                    name_token,
                )
            params = self._parse_params(base, name_token)
        elif self._check(TokenType.LANGLE):
            if base not in GENERIC_TYPES:
                raise self._error(
                    f"Type '{name_token.value}' is not a generic type",
                    ErrorCode.UNKNOWN_GENERIC_TYPE,
                    name_token,
                )
            type_args = self._parse_generic_args(base, name_token)

        is_array = False
        modifiers: list[str] = []
        while self._check(TokenType.LBRACKET) or self._check(TokenType.MODIFIER):
            if self._check(TokenType.MODIFIER):
                modifiers.append(self._advance().value)
                continue
            bracket = self._advance()
            self._expect(TokenType.RBRACKET, "']'")
            if is_array:
                raise self._error(
                    "Nested arrays are not supported", ErrorCode.UNEXPECTED_TOKEN, bracket
                )
            is_array = True

        default: Any = _MISSING
        if self._check(TokenType.EQUALS):
            self._advance()
            default = self._parse_literal()

        self._expect(TokenType.EOF, "end of input")
        return TypeExpr(
            base=base,
            params=params,
            type_args=type_args,
            is_array=is_array,
            modifiers=tuple(modifiers),
            default=default,
        )

    def _parse_params(self, base: str, name_token: Token) -> tuple[int, ...]:
        self._expect(TokenType.LPAREN, "'('")
        values: list[int] = []
        while True:
            token = self._current()
            if not self._check(TokenType.NUMBER) or not token.value.isdigit():
                raise self._error(
                    f"Parameters of '{base}' must be non-negative integers",
                    ErrorCode.INVALID_PARAM_VALUE,
                )
            values.append(int(self._advance().value))
            if not self._check(TokenType.COMMA):
                break
            self._advance()
        self._expect(TokenType.RPAREN, "')'")

        if base == "decimal":
            if len(values) > 2:
                raise self._error(
                    "decimal takes at most two parameters (precision, scale)",
                    ErrorCode.INVALID_PARAM_VALUE,
                    name_token,
                )
            precision = values[0]
            scale = values[1] if len(values) > 1 else 0
            if precision == 0 or scale > precision:
                raise self._error(
                    f"Invalid decimal({precision}, {scale}): precision must be "
                    f"positive and scale must not exceed it",
                    ErrorCode.INVALID_PARAM_VALUE,
                    name_token,
                )
            return (precision, scale)

        if len(values) != 1 or values[0] == 0:
            raise self._error(
                f"{base} takes exactly one positive length parameter",
                ErrorCode.INVALID_PARAM_VALUE,
                name_token,
            )
        return tuple(values)

    def _parse_generic_args(self, base: str, name_token: Token) -> tuple[str, ...]:
        self._expect(TokenType.LANGLE, "'<'")
        args = [self._parse_generic_arg()]
        while self._check(TokenType.COMMA):
            self._advance()
            args.append(self._parse_generic_arg())
        self._expect(TokenType.RANGLE, "'>'")

        if base == "map" and len(args) != 2:
            raise self._error(
                "map requires exactly two type arguments: map<K, V>",
                ErrorCode.INVALID_MAP_PARAMS,
                name_token,
            )
        if base != "map" and len(args) != 1:
            raise self._error(
                f"{base} takes exactly one type argument",
                ErrorCode.UNEXPECTED_TOKEN,
                name_token,
            )
        return tuple(args)

    def _parse_generic_arg(self) -> str:
        name = self._expect(TokenType.IDENTIFIER, "a type argument").value
        normalized = normalize_type_name(name)
        text = normalized if normalized in VALID_TYPES else name
        if self._check(TokenType.LANGLE):
            inner = self._parse_generic_args(normalized, self._current())
            text += "<" + ", ".join(inner) + ">"
        if self._check(TokenType.LBRACKET):
            self._advance()
            self._expect(TokenType.RBRACKET, "']'")
            text += "[]"
        return text

    def _parse_literal(self) -> Any:
        token = self._current()
        if token.type == TokenType.STRING:
            return self._advance().value
        if token.type == TokenType.NUMBER:
            self._advance()
            return float(token.value) if "." in token.value else int(token.value)
        if token.type == TokenType.LBRACE:
            self._advance()
            self._expect(TokenType.RBRACE, "'}'")
            return {}
        if token.type == TokenType.LBRACKET:
            self._advance()
            self._expect(TokenType.RBRACKET, "']'")
            return []
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if token.value == "true":
                return True
            if token.value == "false":
                return False
            if token.value == "null":
                return None
            if self._check(TokenType.LPAREN):
                self._advance()
                self._expect(TokenType.RPAREN, "')'")
                return {"function": token.value}
            return token.value
        raise self._error("Expected a default value", ErrorCode.UNEXPECTED_TOKEN)

    # Relation strings

    def parse_relation(
        self, default_operator: RelationOperator | None = None
    ) -> RelationExpr:
        if self._is_at_end():
            raise self._error("Relation string is empty", ErrorCode.EMPTY_RELATION)

        if self._check(TokenType.RELATION_OP):
            operator = RelationOperator(self._advance().value)
        elif default_operator is not None:
            operator = default_operator
        else:
            raise self._error(
                "No relation operator found (expected ->, <-, ~> or <~)",
                ErrorCode.MISSING_RELATION_OPERATOR,
            )

        if not self._check(TokenType.IDENTIFIER):
            raise self._error(
                "Relation is missing a target type", ErrorCode.MISSING_TARGET_TYPE
            )
        target_type = self._advance().value

        modifiers: list[str] = []
        inverse: str | None = None
        is_array = False
        while not self._is_at_end():
            token = self._current()
            if token.type == TokenType.MODIFIER:
                modifiers.append(self._advance().value)
            elif token.type == TokenType.DOT and inverse is None:
                self._advance()
                inverse = self._expect(TokenType.IDENTIFIER, "an inverse field name").value
            elif token.type == TokenType.LBRACKET and not is_array:
                self._advance()
                self._expect(TokenType.RBRACKET, "']'")
                is_array = True
            else:
                raise self._error(
                    f"Unexpected '{token.value}' in relation", ErrorCode.UNEXPECTED_TOKEN
                )

        return RelationExpr(
            operator=operator,
            target_type=target_type,
            modifiers=tuple(modifiers),
            inverse=inverse,
            is_array=is_array,
        )


def parse_type_expression(text: str, path: str | None = None) -> TypeExpr:
    """Parse a field string such as ``"decimal(10,2)!"`` into a `TypeExpr`."""
    return TypeParser(text, path).parse_type()


def parse_relation_expression(
    text: str,
    path: str | None = None,
    default_operator: RelationOperator | None = None,
) -> RelationExpr:
    """Parse a relation string such as ``"<- Post.author[]"``."""
    return TypeParser(text, path).parse_relation(default_operator)


def is_relation_string(text: str) -> bool:
    """
    Return True if ``text`` starts with a relation operator.

    Operators inside quoted defaults do not count.
    """
    stripped = text.lstrip()
    return stripped[:2] in _RELATION_OPERATORS
