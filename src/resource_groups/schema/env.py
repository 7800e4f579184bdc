"""Alembic environment for the resource groups migration lineage.

Supports:
- Programmatic invocation from ``resource_groups.migrations`` (not just CLI)
- Targeting any database via the ``sqlalchemy.url`` main option
- A dedicated version table so other lineages in the same database are untouched
- Raw SQL via op.execute() (no SQLAlchemy models)
"""

from __future__ import annotations

import os

from sqlalchemy import create_engine, pool

from alembic import context

DEFAULT_VERSION_TABLE = "resource_groups_schema_history"
_VERSION_TABLE_OPTION = "resource_groups.version_table"


def get_url() -> str:
    """Resolve the database URL from context or environment."""
    url = context.config.get_main_option("sqlalchemy.url")
    if url:
        return url
    url = os.environ.get("RESOURCE_GROUPS_DB_URL")
    if not url:
        raise RuntimeError("No database URL: set sqlalchemy.url or RESOURCE_GROUPS_DB_URL")
    return url


def get_version_table() -> str:
    return context.config.get_main_option(_VERSION_TABLE_OPTION) or DEFAULT_VERSION_TABLE


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a live connection)."""
    context.configure(
        url=get_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table=get_version_table(),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode (with a live database connection).

    All pending revisions share one transaction, so a failing revision rolls
    back everything applied in the same run.
    """
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    try:
        with connectable.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=None,
                version_table=get_version_table(),
                transaction_per_migration=False,
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
