"""Shared test fixtures for the resource groups test suite.

The disposable PostgreSQL instance is session scoped: it is started once,
handed explicitly to every scenario through ``resource_groups_db``, and
removed after the last test.  Each scenario gets a clean table set because
``resource_groups_db`` drops every known table when the test finishes,
whatever its outcome.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from resource_groups.testing.database import EphemeralDatabase

LEGACY_FIXTURES_DIR = Path(__file__).parent / "fixtures" / "legacy_schemas"


@pytest.fixture(scope="session")
def legacy_fixtures_dir() -> Path:
    return LEGACY_FIXTURES_DIR


@pytest.fixture(scope="session")
def ephemeral_db() -> Iterator[EphemeralDatabase]:
    """One PostgreSQL server shared by every integration test in the session."""
    from resource_groups.testing.database import EphemeralDatabase

    database = EphemeralDatabase(database_name="resource_groups", username="test", password="test")
    try:
        database.start()
        yield database
    finally:
        database.close()


@pytest.fixture
def resource_groups_db(ephemeral_db: EphemeralDatabase) -> Iterator[EphemeralDatabase]:
    """The shared instance, with every resource groups table dropped after the test."""
    from resource_groups.testing.schema import drop_resource_groups_tables

    try:
        yield ephemeral_db
    finally:
        drop_resource_groups_tables(ephemeral_db)
