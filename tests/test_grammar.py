"""Tests for the field-string tokenizer and grammar."""

import pytest

from icetype import ErrorCode, ParseError, RelationOperator, tokenize
from icetype.grammar import (
    TokenType,
    is_relation_string,
    parse_relation_expression,
    parse_type_expression,
)


class TestTokenizer:
    """Test tokenization of field strings."""

    def test_simple_type_with_modifier(self):
        """A type name followed by a modifier yields two tokens and EOF."""
        tokens = tokenize("string!")
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER,
            TokenType.MODIFIER,
            TokenType.EOF,
        ]
        assert tokens[0].value == "string"
        assert tokens[1].value == "!"

    def test_relation_operators_are_single_tokens(self):
        """All four relation operators are recognized."""
        for operator in ("->", "<-", "~>", "<~"):
            tokens = tokenize(f"{operator} User")
            assert tokens[0].type == TokenType.RELATION_OP
            assert tokens[0].value == operator

    def test_columns_are_tracked(self):
        """Tokens carry 1-based columns."""
        tokens = tokenize("decimal(10, 2)")
        assert tokens[0].column == 1
        assert tokens[1].column == 8  # (
        assert tokens[2].value == "10"
        assert tokens[2].column == 9

    def test_negative_and_float_numbers(self):
        """Numbers may be negative or have a fractional part."""
        tokens = tokenize("= -1.5")
        assert tokens[1].type == TokenType.NUMBER
        assert tokens[1].value == "-1.5"

    def test_string_escapes(self):
        """Backslash escapes the next character inside quotes."""
        tokens = tokenize(r"'it\'s'")
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "it's"

    def test_unexpected_character(self):
        """Characters outside the DSL alphabet are rejected with a location."""
        with pytest.raises(ParseError, match="line 1, column 7") as exc_info:
            tokenize("string@")
        assert exc_info.value.code == ErrorCode.UNEXPECTED_TOKEN
        assert exc_info.value.column == 7

    def test_unterminated_string(self):
        """An unclosed quote is reported at its opening position."""
        with pytest.raises(ParseError) as exc_info:
            tokenize("string = 'oops")
        assert exc_info.value.code == ErrorCode.UNTERMINATED_STRING
        assert exc_info.value.column == 10


class TestTypeExpressions:
    """Test parsing of field strings into TypeExpr."""

    def test_primitive(self):
        """A bare primitive has no params, array flag or modifiers."""
        expr = parse_type_expression("string")
        assert expr.base == "string"
        assert expr.params == ()
        assert not expr.is_array
        assert expr.modifiers == ()
        assert not expr.has_default

    def test_case_insensitive_and_alias(self):
        """Type names are lower-cased and bool resolves to boolean."""
        assert parse_type_expression("STRING").base == "string"
        assert parse_type_expression("Bool").base == "boolean"

    def test_decimal_params(self):
        """decimal takes precision and an optional scale."""
        assert parse_type_expression("decimal(10,2)").params == (10, 2)
        assert parse_type_expression("decimal(10)").params == (10, 0)

    def test_varchar_length(self):
        """varchar takes one length parameter."""
        assert parse_type_expression("varchar(255)").params == (255,)

    def test_array_and_modifier_in_either_order(self):
        """Array suffix and modifiers may appear in either order."""
        first = parse_type_expression("string[]!")
        second = parse_type_expression("string![]")
        assert first.is_array and second.is_array
        assert first.modifiers == second.modifiers == ("!",)

    def test_generic_types(self):
        """Generic types record their arguments."""
        assert parse_type_expression("map<string, int>").type_args == ("string", "int")
        assert parse_type_expression("list<string>").type_args == ("string",)
        assert parse_type_expression("ref<User>").type_args == ("User",)

    def test_nested_generic(self):
        """Generic arguments may themselves be generic or arrays."""
        expr = parse_type_expression("map<string, list<int>>")
        assert expr.type_args == ("string", "list<int>")
        expr = parse_type_expression("map<string, int[]>")
        assert expr.type_args == ("string", "int[]")

    def test_default_literals(self):
        """Every literal form is parsed to its Python value."""
        assert parse_type_expression("string = 'hi'").default == "hi"
        assert parse_type_expression('string = "hi"').default == "hi"
        assert parse_type_expression("int = 42").default == 42
        assert parse_type_expression("float = 0.5").default == 0.5
        assert parse_type_expression("int = -3").default == -3
        assert parse_type_expression("bool = true").default is True
        assert parse_type_expression("bool = false").default is False
        assert parse_type_expression("json = null").default is None
        assert parse_type_expression("json = {}").default == {}
        assert parse_type_expression("json = []").default == []
        assert parse_type_expression("timestamp = now()").default == {"function": "now"}

    def test_null_default_is_distinct_from_no_default(self):
        """A null default still counts as a declared default."""
        assert parse_type_expression("json = null").has_default
        assert not parse_type_expression("json").has_default


class TestMalformedTypeExpressions:
    """Test that malformed field strings raise ParseError."""

    @pytest.mark.parametrize(
        "text, code",
        [
            ("", ErrorCode.EMPTY_TYPE),
            ("   ", ErrorCode.EMPTY_TYPE),
            ("?string", ErrorCode.INVALID_MODIFIER_POSITION),
            ("int(5)", ErrorCode.UNKNOWN_PARAMETRIC_TYPE),
            ("string<int>", ErrorCode.UNKNOWN_GENERIC_TYPE),
            ("map<string>", ErrorCode.INVALID_MAP_PARAMS),
            ("decimal(a)", ErrorCode.INVALID_PARAM_VALUE),
            ("decimal(2, 5)", ErrorCode.INVALID_PARAM_VALUE),
            ("decimal(1, 2, 3)", ErrorCode.INVALID_PARAM_VALUE),
            ("varchar(0)", ErrorCode.INVALID_PARAM_VALUE),
            ("varchar(-1)", ErrorCode.INVALID_PARAM_VALUE),
            ("decimal(10,2", ErrorCode.UNEXPECTED_TOKEN),
            ("string[", ErrorCode.UNEXPECTED_TOKEN),
            ("string[][]", ErrorCode.UNEXPECTED_TOKEN),
            ("string extra", ErrorCode.UNEXPECTED_TOKEN),
            ("string =", ErrorCode.UNEXPECTED_TOKEN),
            ("timestamp = now(1)", ErrorCode.UNEXPECTED_TOKEN),
        ],
    )
    def test_malformed(self, text, code):
        """Each malformed string fails with a specific code."""
        with pytest.raises(ParseError) as exc_info:
            parse_type_expression(text)
        assert exc_info.value.code == code

    def test_error_carries_path_and_location(self):
        """Errors report the field path, line and column."""
        with pytest.raises(ParseError) as exc_info:
            parse_type_expression("string extra", path="title")
        error = exc_info.value
        assert error.path == "title"
        assert error.line == 1
        assert error.column == 8
        assert "Parse error at line 1, column 8 in 'title'" in str(error)


class TestRelationExpressions:
    """Test parsing of relation strings."""

    def test_forward_relation(self):
        """A forward relation records operator and target."""
        expr = parse_relation_expression("-> Customer")
        assert expr.operator == RelationOperator.FORWARD
        assert expr.target_type == "Customer"
        assert not expr.is_array
        assert expr.inverse is None

    def test_backward_relation_with_inverse_and_array(self):
        """Inverse and has-many suffix are parsed."""
        expr = parse_relation_expression("<- Post.author[]")
        assert expr.operator == RelationOperator.BACKWARD
        assert expr.target_type == "Post"
        assert expr.inverse == "author"
        assert expr.is_array

    def test_suffixes_in_any_order(self):
        """Modifier and array suffix may appear in either order."""
        first = parse_relation_expression("-> Tag[]?")
        second = parse_relation_expression("-> Tag?[]")
        assert first.is_array and second.is_array
        assert first.modifiers == second.modifiers == ("?",)

    def test_fuzzy_operators(self):
        """Fuzzy operators are flagged as such."""
        forward = parse_relation_expression("~> Topic")
        backward = parse_relation_expression("<~ Topic")
        assert forward.operator.is_fuzzy and not forward.operator.is_backward
        assert backward.operator.is_fuzzy and backward.operator.is_backward

    def test_missing_operator(self):
        """Without a default operator, a bare target is rejected."""
        with pytest.raises(ParseError) as exc_info:
            parse_relation_expression("Customer")
        assert exc_info.value.code == ErrorCode.MISSING_RELATION_OPERATOR

    def test_default_operator(self):
        """A default operator applies to a bare target."""
        expr = parse_relation_expression(
            "Customer", default_operator=RelationOperator.FORWARD
        )
        assert expr.operator == RelationOperator.FORWARD

    def test_missing_target(self):
        """An operator without a target is rejected."""
        with pytest.raises(ParseError) as exc_info:
            parse_relation_expression("->")
        assert exc_info.value.code == ErrorCode.MISSING_TARGET_TYPE

    def test_empty_relation(self):
        """An empty relation string is rejected."""
        with pytest.raises(ParseError) as exc_info:
            parse_relation_expression("")
        assert exc_info.value.code == ErrorCode.EMPTY_RELATION

    def test_duplicate_inverse(self):
        """Only one inverse may be given."""
        with pytest.raises(ParseError):
            parse_relation_expression("<- Post.author.editor")


class TestRelationDetection:
    """Test relation-string detection."""

    def test_leading_operator(self):
        """Strings starting with an operator are relations."""
        assert is_relation_string("-> User")
        assert is_relation_string("  <~ Topic")

    def test_operator_inside_default(self):
        """An operator inside a quoted default is not a relation."""
        assert not is_relation_string("string = '->'")
        assert not is_relation_string("string")
