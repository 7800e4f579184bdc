"""add resource_groups

Revision ID: rg_002
Revises: rg_001
Create Date: 2018-03-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "rg_002"
down_revision = "rg_001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS resource_groups (
            resource_group_id BIGSERIAL NOT NULL,
            name VARCHAR(250) NOT NULL,
            soft_memory_limit VARCHAR(128) NOT NULL,
            max_queued INT NOT NULL,
            soft_concurrency_limit INT NULL,
            hard_concurrency_limit INT NOT NULL,
            scheduling_policy VARCHAR(128) NULL,
            scheduling_weight INT NULL,
            jmx_export BOOLEAN NULL,
            soft_cpu_limit VARCHAR(128) NULL,
            hard_cpu_limit VARCHAR(128) NULL,
            parent BIGINT NULL,
            environment VARCHAR(128) NULL,
            PRIMARY KEY (resource_group_id),
            FOREIGN KEY (parent) REFERENCES resource_groups (resource_group_id) ON DELETE CASCADE
        )
    """)


def downgrade() -> None:
    raise NotImplementedError("resource groups migrations are forward-only")
