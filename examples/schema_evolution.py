"""
Schema Evolution Example: Versioning a Customer Schema

This example demonstrates how IceType tracks changes over time:
1. Checksum each revision of a schema
2. Diff two revisions and classify breaking changes
3. Turn the diff into a migration
4. Record every version in a JSON history
"""

from icetype import (
    add_history_entry,
    compute_schema_checksum,
    create_migration_from_diff,
    create_schema_history,
    create_schema_version,
    diff_schemas,
    increment_major,
    increment_minor,
    merge_migrations,
    parse_history,
    parse_schema,
    serialize_history,
)

V1 = {
    "$type": "Customer",
    "id": "uuid!",
    "name": "string",
    "email": "string",
    "age": "int?",
}

# Adds an optional field, indexes email and widens age
V2 = {
    "$type": "Customer",
    "id": "uuid!",
    "name": "string",
    "email": "string#",
    "age": "long?",
    "nickname": "string?",
}

# Renames name and drops age
V3 = {
    "$type": "Customer",
    "id": "uuid!",
    "full_name": "string",
    "email": "string#",
    "nickname": "string?",
}


def main() -> None:
    """Walk a schema through three revisions."""
    revisions = [parse_schema(definition) for definition in (V1, V2, V3)]

    version = create_schema_version(1, 0, 0)
    history = create_schema_history("Customer")
    history = add_history_entry(history, version, compute_schema_checksum(revisions[0]))
    print(f"[OK] Recorded {version}: {history.entries[-1].checksum[:20]}...")

    migrations = []
    for old, new in zip(revisions, revisions[1:]):
        diff = diff_schemas(old, new)
        for change in diff.changes:
            print(f"     {change}")

        # Breaking changes require a major bump
        next_version = increment_major(version) if diff.is_breaking else increment_minor(version)
        migration = create_migration_from_diff(diff, version, next_version)
        print(f"[OK] Migration {version} -> {next_version}:")
        for op in migration.operations:
            print(f"     {op}")

        history = add_history_entry(
            history, next_version, compute_schema_checksum(new), migration=migration
        )
        migrations.append(migration)
        version = next_version

    merged = merge_migrations(migrations)
    print(
        f"[OK] Merged migration {merged.from_version} -> {merged.to_version}: "
        f"{len(merged.operations)} operations"
    )

    document = serialize_history(history)
    restored = parse_history(document)
    print(f"[OK] History has {len(restored.entries)} entries")
    same = [e.checksum for e in restored.entries] == [e.checksum for e in history.entries]
    print(f"[OK] Round trip preserved checksums: {same}")


if __name__ == "__main__":
    main()
