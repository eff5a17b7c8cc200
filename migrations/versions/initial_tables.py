"""initial_tables

Linking sessions, location mappings and the sync log. On PostgreSQL also
enables pg_trgm and indexes mapping account names for fuzzy lookup.

Revision ID: initial_tables
Revises:
Create Date: 2026-10-16

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "initial_tables"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    is_postgres = op.get_bind().dialect.name == "postgresql"
    if is_postgres:
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    # LINKING SESSIONS
    op.create_table(
        "linking_sessions",
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("device_id", sa.String(17), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("idx_linking_sessions_expires_at", "linking_sessions", ["expires_at"])

    # LOCATION MAPPINGS
    op.create_table(
        "location_mappings",
        sa.Column("device_id", sa.String(17), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("data_center", sa.String(16), nullable=False),
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("account_name", sa.String(), nullable=True),
        sa.Column("audience_id", sa.String(), nullable=False),
        sa.Column("audience_name", sa.String(), nullable=True),
        sa.Column("source_tag", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("device_id"),
    )
    op.create_index("idx_location_mappings_account_id", "location_mappings", ["account_id"])
    if is_postgres:
        op.execute(
            "CREATE INDEX idx_location_mappings_account_name_trgm "
            "ON location_mappings USING gin (account_name gin_trgm_ops)"
        )

    # SYNC LOG
    op.create_table(
        "sync_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("device_id", sa.String(17), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_sync_log_created_at", "sync_log", ["created_at"])
    op.create_index("idx_sync_log_device_id", "sync_log", ["device_id"])


def downgrade() -> None:
    op.drop_index("idx_sync_log_device_id", table_name="sync_log")
    op.drop_index("idx_sync_log_created_at", table_name="sync_log")
    op.drop_table("sync_log")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_location_mappings_account_name_trgm")
    op.drop_index("idx_location_mappings_account_id", table_name="location_mappings")
    op.drop_table("location_mappings")
    op.drop_index("idx_linking_sessions_expires_at", table_name="linking_sessions")
    op.drop_table("linking_sessions")
