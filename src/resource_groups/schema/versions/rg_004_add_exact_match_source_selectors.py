"""add exact_match_source_selectors

Revision ID: rg_004
Revises: rg_003
Create Date: 2018-06-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "rg_004"
down_revision = "rg_003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # resource_group_id is the dotted group path, not a resource_groups FK.
    op.execute("""
        CREATE TABLE IF NOT EXISTS exact_match_source_selectors (
            environment VARCHAR(128),
            update_time TIMESTAMP NOT NULL,
            source VARCHAR(512) NOT NULL,
            query_type VARCHAR(512),
            resource_group_id VARCHAR(256) NOT NULL,
            PRIMARY KEY (environment, source, query_type),
            UNIQUE (source, environment, query_type, resource_group_id)
        )
    """)


def downgrade() -> None:
    raise NotImplementedError("resource groups migrations are forward-only")
