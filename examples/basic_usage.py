"""
Basic Usage Example: Player Statistics Schema

This example demonstrates the core IceType workflow:
1. Parse a schema written in the compact field DSL
2. Validate it and map its types to several SQL dialects
3. Generate Pydantic models for row-level validation
4. Generate Polars validators for bulk DataFrame validation
5. Generate SQLAlchemy tables for database operations
"""

from datetime import datetime

import polars as pl

from icetype import get_unified_type_mapping, parse_schema, validate_schema

# Define a schema for player statistics
PLAYER = {
    "$type": "Player",
    "player_id": "int!",
    "name": "varchar(100)",
    "team": "char(3)",
    "position": "varchar(20)",
    "age": "int",
    "points_per_game": "double = 0.0",
    "games_played": "int = 0",
    "is_active": "bool = true",
    "created_at": "timestamp = now()",
    "nickname": "string?",
    "$index": [["team", "position"]],
}


def main() -> None:
    """Demonstrate schema parsing and all three generators."""

    # 1. Parse and validate
    schema = parse_schema(PLAYER)
    result = validate_schema(schema)
    print(f"[OK] Parsed schema '{schema.name}' with {len(schema.fields)} fields")
    print(f"[OK] Validation: valid={result.valid}, warnings={len(result.warnings)}")

    # 2. Map field types to native dialect types
    for dialect in ("postgres", "clickhouse", "sqlite"):
        native = get_unified_type_mapping(schema.fields["name"].type_signature(), dialect)
        print(f"[OK] name -> {dialect}: {native}")

    # 3. Generate Pydantic model for row-level validation
    Player = schema.to_pydantic()
    player = Player(
        player_id=1,
        name="LeBron James",
        team="LAL",
        position="F",
        age=39,
        points_per_game=25.2,
        games_played=71,
    )
    print(f"[OK] Created Pydantic instance: {player.name} ({player.team})")
    print(f"[OK] Default created_at: {player.created_at:%Y-%m-%d}")

    # 4. Generate Polars validator for bulk DataFrame validation
    validator = schema.to_polars_validator()
    players_df = pl.DataFrame(
        {
            "player_id": [1, 2, 3],
            "name": ["LeBron James", "Stephen Curry", "Kevin Durant"],
            "team": ["LAL", "GSW", "PHX"],
            "position": ["F", "PG", "F"],
            "age": [39, 36, 35],
            "points_per_game": [25.2, 26.4, 27.1],
            "created_at": [datetime.now()] * 3,
        }
    )
    validated_df = validator.validate(players_df, strict=True)
    print(f"[OK] Validated DataFrame: {validated_df.height} rows")
    print(f"[OK] Columns: {validated_df.columns}")

    # 5. Generate SQLAlchemy table for database operations
    player_table = schema.to_sqlalchemy(table_name="players")
    print(f"[OK] Generated SQLAlchemy table: {player_table.name}")
    print(f"[OK] Indexes: {sorted(index.name for index in player_table.indexes)}")

    # Example: Create table in database (commented out - requires actual DB)
    # engine = create_engine("sqlite:///example.db")
    # player_table.metadata.create_all(engine)

    print("\n[SUCCESS] All three generators working correctly!")


if __name__ == "__main__":
    main()
