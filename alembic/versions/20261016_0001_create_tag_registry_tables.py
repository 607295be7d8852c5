"""create tag registry tables

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None

_LIVE_ROWS = sa.text("deleted_at IS NULL")


def _entity_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("org_id", sa.BigInteger(), nullable=False, comment="Tenant scope; never changes after creation"),
        sa.Column("customer_identifier", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True, comment="NULL means open-ended"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "locations",
        *_entity_columns(),
        sa.Column("parent_id", sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(["parent_id"], ["locations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_locations_org_customer_identifier_live",
        "locations",
        ["org_id", "customer_identifier"],
        unique=True,
        postgresql_where=_LIVE_ROWS,
    )
    op.create_index("ix_locations_org_created_at", "locations", ["org_id", "created_at"], unique=False)
    op.create_index("ix_locations_parent_id", "locations", ["parent_id"], unique=False)

    op.create_table(
        "assets",
        *_entity_columns(),
        sa.Column("current_location_id", sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(["current_location_id"], ["locations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_assets_org_customer_identifier_live",
        "assets",
        ["org_id", "customer_identifier"],
        unique=True,
        postgresql_where=_LIVE_ROWS,
    )
    op.create_index("ix_assets_org_created_at", "assets", ["org_id", "created_at"], unique=False)
    op.create_index("ix_assets_current_location_id", "assets", ["current_location_id"], unique=False)

    op.create_table(
        "identifiers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("org_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "type",
            sa.String(length=32),
            nullable=False,
            comment="rfid, ble, barcode, or a configured extra type",
        ),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("asset_id", sa.BigInteger(), nullable=True),
        sa.Column("location_id", sa.BigInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "(asset_id IS NOT NULL) <> (location_id IS NOT NULL)",
            name="ck_identifiers_single_target",
        ),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_identifiers_org_type_value_live",
        "identifiers",
        ["org_id", "type", "value"],
        unique=True,
        postgresql_where=_LIVE_ROWS,
    )
    op.create_index("ix_identifiers_asset_id", "identifiers", ["asset_id"], unique=False)
    op.create_index("ix_identifiers_location_id", "identifiers", ["location_id"], unique=False)

    op.create_table(
        "bulk_import_jobs",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("org_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_kind", sa.String(length=32), nullable=False, comment="asset or location"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("processed_rows", sa.Integer(), nullable=False),
        sa.Column("failed_rows", sa.Integer(), nullable=False),
        sa.Column("tags_created", sa.Integer(), nullable=False),
        sa.Column(
            "errors",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Append-only per-row failures: {row, field, error}",
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bulk_import_jobs_org_id", "bulk_import_jobs", ["org_id"], unique=False)
    op.create_index("ix_bulk_import_jobs_status", "bulk_import_jobs", ["status"], unique=False)
    op.create_index(
        "ix_bulk_import_jobs_org_created_at",
        "bulk_import_jobs",
        ["org_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_bulk_import_jobs_org_created_at", table_name="bulk_import_jobs")
    op.drop_index("ix_bulk_import_jobs_status", table_name="bulk_import_jobs")
    op.drop_index("ix_bulk_import_jobs_org_id", table_name="bulk_import_jobs")
    op.drop_table("bulk_import_jobs")

    op.drop_index("ix_identifiers_location_id", table_name="identifiers")
    op.drop_index("ix_identifiers_asset_id", table_name="identifiers")
    op.drop_index("uq_identifiers_org_type_value_live", table_name="identifiers")
    op.drop_table("identifiers")

    op.drop_index("ix_assets_current_location_id", table_name="assets")
    op.drop_index("ix_assets_org_created_at", table_name="assets")
    op.drop_index("uq_assets_org_customer_identifier_live", table_name="assets")
    op.drop_table("assets")

    op.drop_index("ix_locations_parent_id", table_name="locations")
    op.drop_index("ix_locations_org_created_at", table_name="locations")
    op.drop_index("uq_locations_org_customer_identifier_live", table_name="locations")
    op.drop_table("locations")
