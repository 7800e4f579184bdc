"""Run every legacy-schema fixture through the migration and check its expectations."""

from __future__ import annotations

from pathlib import Path

import pytest

from resource_groups.migrations import MigrationError, run_migrations
from resource_groups.tables import VERSION_TABLE
from resource_groups.testing.database import EphemeralDatabase, docker_available
from resource_groups.testing.fixtures import LegacySchemaFixture, load_legacy_fixtures
from resource_groups.testing.schema import (
    count_resource_groups_tables,
    existing_tables,
    table_exists,
)

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not docker_available(), reason="Docker not available"),
]

FIXTURES = load_legacy_fixtures(Path(__file__).parent.parent / "fixtures" / "legacy_schemas")


@pytest.mark.parametrize("scenario", FIXTURES, ids=[f.name for f in FIXTURES])
def test_legacy_fixture(resource_groups_db: EphemeralDatabase, scenario: LegacySchemaFixture):
    config = resource_groups_db.connection_config()
    scenario.apply(resource_groups_db)
    try:
        if scenario.expect_migration_error:
            with pytest.raises(MigrationError):
                run_migrations(config)
            assert not table_exists(config, VERSION_TABLE)
            return

        run_migrations(config)

        assert count_resource_groups_tables(config) == scenario.expected_counts
        assert set(scenario.preserved_tables) <= existing_tables(config)
        # A second run against the migrated database must be a no-op.
        assert run_migrations(config).was_noop
        assert count_resource_groups_tables(config) == scenario.expected_counts
    finally:
        scenario.teardown(resource_groups_db)
