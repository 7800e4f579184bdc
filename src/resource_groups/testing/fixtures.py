"""Versioned legacy-schema fixtures for migration scenarios.

Each fixture is a TOML data file describing a database state that existed
before (or alongside) the versioned migration lineage::

    name = "hand_rolled_v0"
    version = 0
    description = "Tables created by hand before migrations existed"
    statements = ["CREATE TABLE ...", ...]
    seed = ["INSERT INTO ...", ...]
    preserved_tables = []
    cleanup = []
    expect_migration_error = false

    [expected_counts]
    global_properties = 1

New scenarios are added by dropping another file into the fixture directory.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from resource_groups.testing.schema import TableCounts

if TYPE_CHECKING:
    from resource_groups.testing.database import EphemeralDatabase


class FixtureError(Exception):
    """Raised when a legacy-schema fixture file is malformed."""


@dataclass(frozen=True)
class LegacySchemaFixture:
    """One pre-migration database state and what the migration must produce."""

    name: str
    version: int
    description: str = ""
    statements: tuple[str, ...] = ()
    seed: tuple[str, ...] = ()
    preserved_tables: tuple[str, ...] = ()
    cleanup: tuple[str, ...] = ()
    expected_counts: TableCounts = TableCounts()
    expect_migration_error: bool = False

    def apply(self, database: EphemeralDatabase) -> None:
        """Create the fixture's tables, then insert its seed rows."""
        for statement in (*self.statements, *self.seed):
            database.execute_sql(statement)

    def teardown(self, database: EphemeralDatabase) -> None:
        for statement in self.cleanup:
            database.execute_sql(statement)


def _string_list(data: dict[str, Any], key: str, source: Path) -> tuple[str, ...]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise FixtureError(f"{source}: {key} must be a list of strings")
    return tuple(value)


def load_legacy_fixture(path: Path) -> LegacySchemaFixture:
    """Parse a single fixture file.

    Raises
    ------
    FixtureError
        If the file is not valid TOML or a field has the wrong shape.
    """
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise FixtureError(f"Invalid TOML in {path}: {exc}") from exc

    name = data.get("name", path.stem)
    if not isinstance(name, str) or not name:
        raise FixtureError(f"{path}: name must be a non-empty string")

    version = data.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise FixtureError(f"{path}: version must be an integer")

    description = data.get("description", "")
    if not isinstance(description, str):
        raise FixtureError(f"{path}: description must be a string")

    raw_counts = data.get("expected_counts", {})
    if not isinstance(raw_counts, dict):
        raise FixtureError(f"{path}: [expected_counts] must be a table")
    try:
        expected_counts = TableCounts.from_mapping(raw_counts)
    except (TypeError, ValueError) as exc:
        raise FixtureError(f"{path}: {exc}") from exc

    expect_error = data.get("expect_migration_error", False)
    if not isinstance(expect_error, bool):
        raise FixtureError(f"{path}: expect_migration_error must be a boolean")

    return LegacySchemaFixture(
        name=name,
        version=version,
        description=description,
        statements=_string_list(data, "statements", path),
        seed=_string_list(data, "seed", path),
        preserved_tables=_string_list(data, "preserved_tables", path),
        cleanup=_string_list(data, "cleanup", path),
        expected_counts=expected_counts,
        expect_migration_error=expect_error,
    )


def load_legacy_fixtures(directory: Path) -> list[LegacySchemaFixture]:
    """Load every ``*.toml`` fixture in *directory*, ordered by (version, name)."""
    if not directory.is_dir():
        raise FixtureError(f"Fixture directory not found: {directory}")
    fixtures = [load_legacy_fixture(path) for path in sorted(directory.glob("*.toml"))]
    names = [fixture.name for fixture in fixtures]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise FixtureError(f"Duplicate fixture names in {directory}: {', '.join(duplicates)}")
    return sorted(fixtures, key=lambda fixture: (fixture.version, fixture.name))
