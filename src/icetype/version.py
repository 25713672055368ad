"""Semantic versions for schemas."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from .errors import SchemaVersionError

_VERSION_RE = re.compile(r"(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)")


def _check_component(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaVersionError(
            f"Version {name} must be a number, got {type(value).__name__}"
        )
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SchemaVersionError(f"Version {name} must be finite, got {value}")
        if not value.is_integer():
            raise SchemaVersionError(f"Version {name} must be an integer, got {value}")
        value = int(value)
    if value < 0:
        raise SchemaVersionError(f"Version {name} must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class SchemaVersion:
    """
    A ``major.minor.patch`` version.

    Components must be non-negative finite integers. Integral floats such as
    ``2.0`` are accepted and stored as ints.
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            object.__setattr__(self, name, _check_component(name, getattr(self, name)))

    def __str__(self) -> str:
        return serialize_schema_version(self)


def create_schema_version(major: int, minor: int = 0, patch: int = 0) -> SchemaVersion:
    """
    Build a validated `SchemaVersion`.

    Raises
    ------
    SchemaVersionError
        If a component is negative, fractional, NaN, infinite or not a number.
    """
    return SchemaVersion(major, minor, patch)


def parse_schema_version(text: str) -> SchemaVersion:
    """
    Parse exactly ``"major.minor.patch"``.

    Prerelease tags, build metadata, a leading ``v`` and leading zeros are
    rejected.

    Examples
    --------
        >>> parse_schema_version("1.2.3")
        SchemaVersion(major=1, minor=2, patch=3)
    """
    if not isinstance(text, str):
        raise SchemaVersionError(
            f"Version must be a string, got {type(text).__name__}"
        )
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise SchemaVersionError(
            f"Invalid version string '{text}': expected 'major.minor.patch'"
        )
    major, minor, patch = (int(part) for part in match.groups())
    return SchemaVersion(major, minor, patch)


def serialize_schema_version(version: SchemaVersion) -> str:
    return f"{version.major}.{version.minor}.{version.patch}"


def compare_versions(a: SchemaVersion, b: SchemaVersion) -> int:
    """Return -1, 0 or 1 comparing ``a`` to ``b`` (major, minor, then patch)."""
    left = (a.major, a.minor, a.patch)
    right = (b.major, b.minor, b.patch)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_compatible(older: SchemaVersion, newer: SchemaVersion) -> bool:
    """
    Return True if data written under ``older`` remains valid under ``newer``.

    Downgrades and major bumps are incompatible. While the major version is
    0, a minor bump is incompatible as well.

    Examples
    --------
        >>> is_compatible(create_schema_version(1, 2, 0), create_schema_version(1, 3, 5))
        True
        >>> is_compatible(create_schema_version(0, 1, 0), create_schema_version(0, 2, 0))
        False
    """
    if compare_versions(older, newer) > 0:
        return False
    if older.major != newer.major:
        return False
    if older.major == 0 and older.minor != newer.minor:
        return False
    return True


def increment_major(version: SchemaVersion) -> SchemaVersion:
    return SchemaVersion(version.major + 1, 0, 0)


def increment_minor(version: SchemaVersion) -> SchemaVersion:
    return SchemaVersion(version.major, version.minor + 1, 0)


def increment_patch(version: SchemaVersion) -> SchemaVersion:
    return SchemaVersion(version.major, version.minor, version.patch + 1)
