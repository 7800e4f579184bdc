"""add selectors

Revision ID: rg_003
Revises: rg_002
Create Date: 2018-03-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "rg_003"
down_revision = "rg_002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS selectors (
            resource_group_id BIGINT NOT NULL,
            priority BIGINT NOT NULL,
            user_regex VARCHAR(512),
            source_regex VARCHAR(512),
            query_type VARCHAR(512),
            client_tags VARCHAR(512),
            selector_resource_estimate VARCHAR(1024),
            FOREIGN KEY (resource_group_id) REFERENCES resource_groups (resource_group_id)
                ON DELETE CASCADE
        )
    """)


def downgrade() -> None:
    raise NotImplementedError("resource groups migrations are forward-only")
