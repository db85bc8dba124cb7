"""Create kv_entries table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `kv_entries` table that backs the diary key-value store.
How:   Portable column types only, so the same revision runs on PostgreSQL
       and SQLite. The primary key index serves ordered prefix scans.

Rollback: downgrade() drops the table entirely (all diary entries are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "kv_entries",

        sa.Column(
            "key",
            sa.String(512),
            nullable=False,
            comment="Store key, e.g. diary:2026-10-19:<uuid>",
        ),

        sa.Column(
            "value",
            sa.Text(),
            nullable=False,
            comment="JSON-serialized value",
        ),

        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this key was last written (UTC)",
        ),

        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("kv_entries")
