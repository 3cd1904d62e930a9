"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
)
from sqlalchemy.types import JSON

# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# USERS TABLE (owning identities)
# ============================================================================
users_table = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),  # UUID as string
    Column("created_at", DateTime(timezone=True), nullable=False),
)


# ============================================================================
# RECORDS TABLE
# ============================================================================
records_table = Table(
    "records",
    metadata,
    Column("id", String, primary_key=True),
    Column("external_ref", String, nullable=False, unique=True),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("status", String(16), nullable=False),  # RecordStatus as string
    Column("priority", String(16), nullable=False),  # Priority as string
    Column("category", String(16), nullable=False),  # Category as string
    Column("score", Numeric(12, 2), nullable=False),
    Column("amount", Numeric(12, 2), nullable=True),
    Column("counter", Integer, nullable=False),
    Column("is_published", Boolean, nullable=False),
    Column("is_featured", Boolean, nullable=False),
    Column("tags", JSON, nullable=False),
    Column("score_history", JSON, nullable=False),  # decimals as strings
    Column("related_ids", JSON, nullable=False),
    Column("metadata", JSON, nullable=False),
    Column("config", JSON, nullable=True),
    Column("valid_range_lower", BigInteger, nullable=True),
    Column("valid_range_upper", BigInteger, nullable=True),
    Column("active_period_start", DateTime(timezone=True), nullable=True),
    Column("active_period_end", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("published_at", DateTime(timezone=True), nullable=True),
    Column("expires_at", DateTime(timezone=True), nullable=True),
    Column(
        "owner_id",
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    CheckConstraint("score >= 0", name="ck_records_score_non_negative"),
    CheckConstraint("amount IS NULL OR amount >= 0", name="ck_records_amount_non_negative"),
    CheckConstraint("counter >= 0", name="ck_records_counter_non_negative"),
    CheckConstraint(
        "expires_at IS NULL OR expires_at > created_at",
        name="ck_records_expiry_after_creation",
    ),
    CheckConstraint(
        "NOT is_published OR status = 'active'",
        name="ck_records_published_requires_active",
    ),
)

Index("idx_records_owner_id", records_table.c.owner_id)
Index("idx_records_created_at", records_table.c.created_at)
Index("idx_records_expires_at", records_table.c.expires_at)
