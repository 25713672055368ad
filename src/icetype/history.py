"""Append-only schema history and its JSON serialization."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .base import format_timestamp, utcnow
from .errors import HistoryError, SchemaVersionError
from .migration import Migration, migration_from_dict, migration_to_dict
from .version import SchemaVersion, parse_schema_version, serialize_schema_version


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded version of a schema."""

    version: SchemaVersion
    timestamp: datetime
    checksum: str
    migration: Migration | None = None


@dataclass(frozen=True)
class SchemaHistory:
    """All recorded versions of one schema, oldest first."""

    schema_name: str
    entries: tuple[HistoryEntry, ...] = field(default_factory=tuple)


class _MigrationDocument(BaseModel):
    id: str
    fromVersion: str
    toVersion: str
    timestamp: datetime = Field(strict=True)
    operations: list[dict[str, Any]]
    isBreaking: bool = False
    description: Optional[str] = None


class _EntryDocument(BaseModel):
    version: str
    timestamp: datetime
    checksum: str
    migration: Optional[_MigrationDocument] = None


class _HistoryDocument(BaseModel):
    schemaName: str
    entries: list[_EntryDocument]


def create_schema_history(schema_name: str) -> SchemaHistory:
    """Start an empty history for ``schema_name``."""
    return SchemaHistory(schema_name=schema_name)


def add_history_entry(
    history: SchemaHistory,
    version: SchemaVersion,
    checksum: str,
    migration: Migration | None = None,
    timestamp: datetime | None = None,
) -> SchemaHistory:
    """
    Return a new history with one more entry; ``history`` is left untouched.

    Parameters
    ----------
    history : SchemaHistory
        The existing history.
    version : SchemaVersion
        Version being recorded.
    checksum : str
        Output of `compute_schema_checksum` for that version.
    migration : Migration, optional
        Migration that produced this version from the previous one.
    timestamp : datetime, optional
        Defaults to now (UTC).

    Returns
    -------
    SchemaHistory
        A new history with the entry appended.
    """
    entry = HistoryEntry(
        version=version,
        timestamp=timestamp or utcnow(),
        checksum=checksum,
        migration=migration,
    )
    logger.debug(
        f"Recording version {serialize_schema_version(version)} "
        f"of schema '{history.schema_name}'"
    )
    return replace(history, entries=(*history.entries, entry))


def get_history_entry(history: SchemaHistory, version: SchemaVersion) -> HistoryEntry | None:
    """Return the entry recorded for ``version``, or None."""
    for entry in history.entries:
        if entry.version == version:
            return entry
    return None


def get_latest_entry(history: SchemaHistory) -> HistoryEntry | None:
    return history.entries[-1] if history.entries else None


def serialize_history(history: SchemaHistory) -> str:
    """
    Serialize a history to JSON (two-space indented).

    Format::

        {
          "schemaName": "User",
          "entries": [
            {"version": "1.0.0", "timestamp": "2024-01-15T10:30:00.000Z",
             "checksum": "sha256:...", "migration": null}
          ]
        }
    """
    document = {
        "schemaName": history.schema_name,
        "entries": [
            {
                "version": serialize_schema_version(entry.version),
                "timestamp": format_timestamp(entry.timestamp),
                "checksum": entry.checksum,
                "migration": (
                    migration_to_dict(entry.migration) if entry.migration else None
                ),
            }
            for entry in history.entries
        ],
    }
    return json.dumps(document, indent=2, default=str)


def parse_history(text: str) -> SchemaHistory:
    """
    Parse the output of `serialize_history`.

    Raises
    ------
    HistoryError
        If ``text`` is not JSON or does not have the history shape.
    """
    try:
        document = _HistoryDocument.model_validate_json(text)
    except ValidationError as err:
        raise HistoryError(f"Invalid schema history: {err}") from err

    entries = []
    for position, raw in enumerate(document.entries):
        timestamp = raw.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        try:
            version = parse_schema_version(raw.version)
            migration = (
                migration_from_dict(raw.migration.model_dump()) if raw.migration else None
            )
        except (SchemaVersionError, KeyError, ValueError) as err:
            raise HistoryError(f"Invalid history entry {position}: {err}") from err
        entries.append(
            HistoryEntry(
                version=version,
                timestamp=timestamp,
                checksum=raw.checksum,
                migration=migration,
            )
        )

    return SchemaHistory(schema_name=document.schemaName, entries=tuple(entries))
