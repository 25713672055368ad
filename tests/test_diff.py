"""Tests for structural schema diffs."""

from icetype import ChangeKind, diff_schemas, parse_schema


def _user(**fields):
    definition = {"$type": "User", "id": "uuid!", "name": "string", "age": "int"}
    definition.update(fields)
    return parse_schema({k: v for k, v in definition.items() if v is not None})


class TestDiffSchemas:
    """Test change detection and classification."""

    def test_identical(self):
        """Identical schemas have no changes."""
        diff = diff_schemas(_user(), _user())
        assert not diff.has_changes
        assert not diff.is_breaking
        assert diff.schema_name == "User"

    def test_add_optional_field(self):
        """Adding an optional field is safe."""
        diff = diff_schemas(_user(), _user(nickname="string?"))
        assert [c.kind for c in diff.changes] == [ChangeKind.ADD_FIELD]
        assert diff.changes[0].path == "nickname"
        assert not diff.is_breaking

    def test_add_required_field(self):
        """Adding a required field without a default is breaking."""
        diff = diff_schemas(_user(), _user(email="string!"))
        assert diff.changes[0].kind == ChangeKind.ADD_FIELD
        assert diff.is_breaking

    def test_add_required_field_with_default(self):
        """A default makes a required addition safe."""
        diff = diff_schemas(_user(), _user(status="string! = 'active'"))
        assert not diff.is_breaking

    def test_remove_field(self):
        """Removing a field is breaking."""
        diff = diff_schemas(_user(), _user(age=None))
        assert [c.kind for c in diff.changes] == [ChangeKind.REMOVE_FIELD]
        assert diff.changes[0].path == "age"
        assert diff.is_breaking
        assert diff.breaking_changes() == diff.changes

    def test_rename_field(self):
        """A removal and addition with identical shape is a rename."""
        old = _user()
        new = parse_schema({"$type": "User", "id": "uuid!", "full_name": "string", "age": "int"})
        diff = diff_schemas(old, new)
        assert [c.kind for c in diff.changes] == [ChangeKind.RENAME_FIELD]
        change = diff.changes[0]
        assert (change.old_value, change.new_value) == ("name", "full_name")
        assert not diff.is_breaking

    def test_ambiguous_rename(self):
        """Several candidates with one shape are not treated as renames."""
        old = parse_schema({"$type": "T", "a": "string", "b": "string"})
        new = parse_schema({"$type": "T", "c": "string", "d": "string"})
        kinds = [c.kind for c in diff_schemas(old, new).changes]
        assert ChangeKind.RENAME_FIELD not in kinds
        assert kinds.count(ChangeKind.REMOVE_FIELD) == 2
        assert kinds.count(ChangeKind.ADD_FIELD) == 2

    def test_widening_type_change(self):
        """int to long loses nothing."""
        diff = diff_schemas(_user(), _user(age="long"))
        change = diff.changes[0]
        assert change.kind == ChangeKind.CHANGE_TYPE
        assert (change.old_value, change.new_value) == ("int", "long")
        assert not change.is_breaking

    def test_narrowing_type_change(self):
        """string to int is breaking."""
        diff = diff_schemas(_user(), _user(name="int"))
        assert diff.changes[0].kind == ChangeKind.CHANGE_TYPE
        assert diff.is_breaking

    def test_length_widening(self):
        """Growing a varchar is safe, shrinking is not."""
        short = _user(name="varchar(50)")
        long = _user(name="varchar(100)")
        assert not diff_schemas(short, long).is_breaking
        assert diff_schemas(long, short).is_breaking

    def test_optional_to_required(self):
        """Removing optionality is breaking."""
        diff = diff_schemas(_user(age="int?"), _user(age="int"))
        change = diff.changes[0]
        assert change.kind == ChangeKind.CHANGE_MODIFIER
        assert (change.old_value, change.new_value) == ("?", "")
        assert change.is_breaking

    def test_required_to_optional(self):
        """Relaxing a field is safe."""
        diff = diff_schemas(_user(age="int"), _user(age="int?"))
        assert diff.changes[0].kind == ChangeKind.CHANGE_MODIFIER
        assert not diff.is_breaking

    def test_default_change(self):
        """Default changes are reported and safe."""
        diff = diff_schemas(_user(age="int = 0"), _user(age="int = 18"))
        change = diff.changes[0]
        assert change.kind == ChangeKind.CHANGE_DEFAULT
        assert (change.old_value, change.new_value) == (0, 18)
        assert not diff.is_breaking

    def test_relation_change(self):
        """Retargeting a relation is reported."""
        old = _user(team="-> Team")
        new = _user(team="-> Team.members")
        assert [c.kind for c in diff_schemas(old, new).changes] == [
            ChangeKind.CHANGE_RELATION
        ]

    def test_directive_change(self):
        """Directive changes are reported per directive."""
        old = _user(**{"$index": [["name"]]})
        new = _user(**{"$index": [["name"], ["age"]], "$fts": ["name"]})
        changes = diff_schemas(old, new).changes
        assert [(c.kind, c.path) for c in changes] == [
            (ChangeKind.CHANGE_DIRECTIVE, "$index"),
            (ChangeKind.CHANGE_DIRECTIVE, "$fts"),
        ]

    def test_directive_reorder_is_not_a_change(self):
        """Reordering directive entries changes nothing."""
        old = _user(**{"$fts": ["name", "age"]})
        new = _user(**{"$fts": ["age", "name"]})
        assert not diff_schemas(old, new).has_changes

    def test_change_order(self):
        """Removals come before additions and field changes."""
        old = _user(legacy="binary")
        new = _user(age="long", nickname="string?")
        kinds = [c.kind for c in diff_schemas(old, new).changes]
        assert kinds == [ChangeKind.REMOVE_FIELD, ChangeKind.ADD_FIELD, ChangeKind.CHANGE_TYPE]

    def test_change_str(self):
        """Changes render with their breaking status."""
        diff = diff_schemas(_user(), _user(age=None))
        assert str(diff.changes[0]) == "[BREAKING] remove_field: age - Removed field 'age'"
