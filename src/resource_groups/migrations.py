"""Programmatic Alembic migration runner for the resource groups config database.

Brings a PostgreSQL database to the current resource groups schema without
shelling out to the Alembic CLI. Three starting states are recognised:

- ``uninitialized``: no managed tables, no history table. Every revision runs.
- ``legacy``: hand-created tables from before versioned migrations, no history
  table. Existing tables are validated and adopted in place (the revisions use
  ``CREATE TABLE IF NOT EXISTS``), so their rows survive.
- ``current``: history table present. Only pending revisions run; at head the
  run is a no-op.

Migrations are forward-only. Tables outside the managed set are never touched.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.script.revision import RevisionError
from alembic.util import CommandError
from sqlalchemy import Engine, create_engine, inspect, pool
from sqlalchemy.exc import SQLAlchemyError

from resource_groups.config import ResourceGroupsDbConfig
from resource_groups.tables import MANAGED_TABLES, REQUIRED_COLUMNS, VERSION_TABLE
from resource_groups.telemetry import get_tracer

logger = logging.getLogger(__name__)

# Alembic script directory (env.py + versions/) shipped inside the package
SCHEMA_DIR = Path(__file__).resolve().parent / "schema"
VERSIONS_DIR = SCHEMA_DIR / "versions"

VERSION_TABLE_OPTION = "resource_groups.version_table"


class MigrationError(Exception):
    """Raised when the database cannot be brought to the target schema."""


class SchemaState(enum.StrEnum):
    """Where a database sits relative to the versioned migration lineage."""

    UNINITIALIZED = "uninitialized"
    LEGACY = "legacy"
    CURRENT = "current"


@dataclass(frozen=True)
class SchemaInspection:
    """Snapshot of the managed tables found in a database."""

    state: SchemaState
    current_revision: str | None
    existing_columns: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @property
    def existing_tables(self) -> tuple[str, ...]:
        return tuple(t for t in MANAGED_TABLES if t in self.existing_columns)


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of one migration run."""

    starting_state: SchemaState
    starting_revision: str | None
    head_revision: str
    applied: tuple[str, ...] = ()

    @property
    def was_noop(self) -> bool:
        return not self.applied


def _build_alembic_config(db_url: str) -> Config:
    """Build an Alembic Config pointing at the packaged script directory.

    Args:
        db_url: SQLAlchemy-compatible database URL, credentials included.

    Returns:
        A configured alembic.config.Config instance.
    """
    config = Config()
    # Revisions live in script_location/versions. version_locations stays unset
    # so an install path containing spaces is never split.
    config.set_main_option("script_location", str(SCHEMA_DIR))
    # Alembic Config uses configparser interpolation; percent-encoded DB URLs
    # (for example passwords with %40) must escape '%' as '%%'.
    config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    config.set_main_option(VERSION_TABLE_OPTION, VERSION_TABLE)
    return config


def find_schema_conflicts(
    existing_columns: Mapping[str, frozenset[str]],
) -> dict[str, tuple[str, ...]]:
    """Return ``{table: missing_columns}`` for managed tables that cannot be adopted."""
    conflicts: dict[str, tuple[str, ...]] = {}
    for table in MANAGED_TABLES:
        columns = existing_columns.get(table)
        if columns is None:
            continue
        missing = REQUIRED_COLUMNS[table] - columns
        if missing:
            conflicts[table] = tuple(sorted(missing))
    return conflicts


def _inspect_connection(engine: Engine) -> SchemaInspection:
    with engine.connect() as conn:
        inspector = inspect(conn)
        tables = set(inspector.get_table_names())
        existing_columns = {
            table: frozenset(col["name"] for col in inspector.get_columns(table))
            for table in MANAGED_TABLES
            if table in tables
        }
        if VERSION_TABLE in tables:
            context = MigrationContext.configure(conn, opts={"version_table": VERSION_TABLE})
            return SchemaInspection(
                state=SchemaState.CURRENT,
                current_revision=context.get_current_revision(),
                existing_columns=existing_columns,
            )
    state = SchemaState.LEGACY if existing_columns else SchemaState.UNINITIALIZED
    return SchemaInspection(
        state=state, current_revision=None, existing_columns=existing_columns
    )


class SchemaMigrator:
    """Applies the resource groups migration lineage to one database."""

    def __init__(self, config: ResourceGroupsDbConfig) -> None:
        self.config = config
        self._db_url = config.render_url()
        self._safe_url = config.render_url(hide_password=True)
        self._alembic_config = _build_alembic_config(self._db_url)
        self._script = ScriptDirectory.from_config(self._alembic_config)

    @property
    def head_revision(self) -> str:
        head = self._script.get_current_head()
        if head is None:
            raise MigrationError(f"No migration revisions found in {VERSIONS_DIR}")
        return head

    def inspect(self) -> SchemaInspection:
        """Classify the database without changing it."""
        engine = create_engine(self._db_url, poolclass=pool.NullPool)
        try:
            return _inspect_connection(engine)
        except SQLAlchemyError as exc:
            raise MigrationError(f"Could not inspect database {self._safe_url}: {exc}") from exc
        finally:
            engine.dispose()

    def pending_revisions(self, current_revision: str | None) -> tuple[str, ...]:
        """Revisions between *current_revision* and head, in apply order."""
        try:
            revisions = list(
                self._script.iterate_revisions(self.head_revision, current_revision or "base")
            )
        except (RevisionError, CommandError) as exc:
            raise MigrationError(
                f"Database {self._safe_url} is at unknown revision {current_revision!r}"
            ) from exc
        return tuple(rev.revision for rev in reversed(revisions))

    def migrate(self) -> MigrationResult:
        """Bring the database to head and report what was applied.

        Raises:
            MigrationError: existing managed tables conflict with the target
                shape, the recorded revision is unknown, or a revision failed.
                No partial schema is left behind since all revisions run in
                one transaction.
        """
        tracer = get_tracer()
        with tracer.start_as_current_span("resource_groups.migrate") as span:
            span.set_attribute("db.system", "postgresql")
            inspection = self.inspect()
            span.set_attribute("resource_groups.starting_state", str(inspection.state))

            conflicts = find_schema_conflicts(inspection.existing_columns)
            if conflicts:
                details = "; ".join(
                    f"{table} is missing {', '.join(missing)}"
                    for table, missing in conflicts.items()
                )
                raise MigrationError(
                    f"Existing tables in {self._safe_url} conflict with the "
                    f"resource groups schema: {details}"
                )

            head = self.head_revision
            pending = self.pending_revisions(inspection.current_revision)
            result = MigrationResult(
                starting_state=inspection.state,
                starting_revision=inspection.current_revision,
                head_revision=head,
                applied=pending,
            )
            span.set_attribute("resource_groups.applied_count", len(pending))

            if not pending:
                missing = [t for t in MANAGED_TABLES if t not in inspection.existing_columns]
                if missing:
                    raise MigrationError(
                        f"Database {self._safe_url} records revision {head} but is missing "
                        f"managed table(s): {', '.join(missing)}"
                    )
                logger.info("Resource groups schema is up to date (revision=%s)", head)
                return result

            if inspection.state is SchemaState.LEGACY:
                logger.info(
                    "Adopting legacy resource groups tables: %s",
                    ", ".join(inspection.existing_tables),
                )

            logger.info(
                "Running %d resource groups migration(s) on %s (from=%s, to=%s)",
                len(pending),
                self._safe_url,
                inspection.current_revision or "<base>",
                head,
            )
            try:
                command.upgrade(self._alembic_config, "head")
            except (CommandError, SQLAlchemyError) as exc:
                raise MigrationError(f"Migration of {self._safe_url} failed: {exc}") from exc

            logger.info("Performed %d migration(s): %s", len(pending), ", ".join(pending))
            return result


def run_migrations(config: ResourceGroupsDbConfig) -> MigrationResult:
    """Apply all pending resource groups migrations.

    This is the primary entry point for preparing a config database. It is
    safe to call on every startup: an up-to-date database is left untouched.
    """
    return SchemaMigrator(config).migrate()


def ensure_schema(config: ResourceGroupsDbConfig) -> MigrationResult | None:
    """Run migrations unless ``config.migrations_enabled`` is false."""
    if not config.migrations_enabled:
        logger.info("Resource groups migrations are disabled; skipping schema check")
        return None
    return run_migrations(config)


def pending_revisions(config: ResourceGroupsDbConfig) -> tuple[str, ...]:
    """List the revisions a migration run would apply to the database."""
    migrator = SchemaMigrator(config)
    return migrator.pending_revisions(migrator.inspect().current_revision)
