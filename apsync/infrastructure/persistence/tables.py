"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.types import JSON

metadata = MetaData()

# ============================================================================
# LINKING SESSIONS TABLE
# ============================================================================
linking_sessions_table = Table(
    "linking_sessions",
    metadata,
    Column("token", String(64), primary_key=True),
    Column("device_id", String(17), nullable=True),
    Column("payload", JSON, nullable=False),  # Opaque to the store
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False),
)

Index("idx_linking_sessions_expires_at", linking_sessions_table.c.expires_at)

# ============================================================================
# LOCATION MAPPINGS TABLE
# ============================================================================
location_mappings_table = Table(
    "location_mappings",
    metadata,
    Column("device_id", String(17), primary_key=True),  # aa:bb:cc:dd:ee:ff
    Column("access_token", Text, nullable=False),
    Column("data_center", String(16), nullable=False),
    Column("account_id", String, nullable=False),
    Column("account_name", String, nullable=True),
    Column("audience_id", String, nullable=False),
    Column("audience_name", String, nullable=True),
    Column("source_tag", String, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("idx_location_mappings_account_id", location_mappings_table.c.account_id)

# ============================================================================
# SYNC LOG TABLE
# ============================================================================
sync_log_table = Table(
    "sync_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("device_id", String(17), nullable=False),
    Column("email", String, nullable=False),
    Column("success", Boolean, nullable=False),
    Column("error_message", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("idx_sync_log_created_at", sync_log_table.c.created_at)
Index("idx_sync_log_device_id", sync_log_table.c.device_id)

# ============================================================================
# SITES REGISTRY (external, read-only)
# ============================================================================
# Owned by the captive-portal platform and usually in another database, so it
# has its own MetaData and is never touched by migrations.
registry_metadata = MetaData()

_StringList = JSON().with_variant(postgresql.ARRAY(String), "postgresql")

registry_sites_table = Table(
    "vivaspot_sites",
    registry_metadata,
    Column("id", String, primary_key=True),
    Column("restaurant_name", String, nullable=False),
    Column("address", String, nullable=True),
    Column("region", String, nullable=True),
    Column("hospitality_group", String, nullable=True),
    Column("mac_addresses", _StringList, nullable=True),
    Column("merchant_emails", _StringList, nullable=True),
)
