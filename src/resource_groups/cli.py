"""CLI for the resource groups config database: apply and inspect migrations."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from resource_groups import __version__
from resource_groups.config import (
    ConfigError,
    LoggingConfig,
    ResourceGroupsDbConfig,
    config_from_env,
    load_config,
)
from resource_groups.logging import configure_logging
from resource_groups.migrations import MigrationError, SchemaMigrator
from resource_groups.telemetry import init_telemetry

logger = logging.getLogger(__name__)

_SERVICE_NAME = "resource-groups-migrate"

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="resource_groups.toml (or its directory). Defaults to RESOURCE_GROUPS_DB_* env vars.",
)


def _load_db_config(config_path: Path | None) -> tuple[ResourceGroupsDbConfig, LoggingConfig]:
    if config_path is None:
        return config_from_env(), LoggingConfig()
    loaded = load_config(config_path)
    return loaded.db, loaded.logging


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Resource groups config database tooling."""


@cli.command()
@config_option
def migrate(config_path: Path | None) -> None:
    """Apply all pending schema migrations."""
    try:
        db_config, logging_config = _load_db_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    configure_logging(level=logging_config.level, fmt=logging_config.format)
    init_telemetry(_SERVICE_NAME)

    try:
        result = SchemaMigrator(db_config).migrate()
    except MigrationError as exc:
        logger.error("Migration failed: %s", exc)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if result.was_noop:
        click.echo(f"Schema is up to date at {result.head_revision}")
        return
    click.echo(
        f"Applied {len(result.applied)} migration(s) from {result.starting_state} state: "
        + ", ".join(result.applied)
    )


@cli.command()
@config_option
def status(config_path: Path | None) -> None:
    """Show the schema state and any pending migrations."""
    try:
        db_config, logging_config = _load_db_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    configure_logging(level=logging_config.level, fmt=logging_config.format)

    try:
        migrator = SchemaMigrator(db_config)
        inspection = migrator.inspect()
        pending = migrator.pending_revisions(inspection.current_revision)
        head = migrator.head_revision
    except MigrationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Database: {db_config.render_url(hide_password=True)}")
    click.echo(f"State:    {inspection.state}")
    click.echo(f"Current:  {inspection.current_revision or '<none>'}")
    click.echo(f"Head:     {head}")
    if inspection.existing_tables:
        click.echo(f"Tables:   {', '.join(inspection.existing_tables)}")
    if pending:
        click.echo(f"Pending:  {', '.join(pending)}")
    else:
        click.echo("Pending:  <none>")
