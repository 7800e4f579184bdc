"""add resource_groups_global_properties

Revision ID: rg_001
Revises:
Create Date: 2018-03-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "rg_001"
down_revision = None
branch_labels = ("resource_groups",)
depends_on = None


def upgrade() -> None:
    # IF NOT EXISTS adopts a hand-created table (and its rows) from before
    # versioned migrations.
    op.execute("""
        CREATE TABLE IF NOT EXISTS resource_groups_global_properties (
            name VARCHAR(128) NOT NULL PRIMARY KEY,
            value VARCHAR(512) NULL,
            CHECK (name in ('cpu_quota_period'))
        )
    """)


def downgrade() -> None:
    raise NotImplementedError("resource groups migrations are forward-only")
