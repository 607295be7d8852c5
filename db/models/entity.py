"""
db/models/entity.py

Trackable entities: assets and locations.

Both tables share one column shape (TrackedEntityMixin). They are kept as two
tables so that identifiers can reference either through a dedicated foreign
key, which is what lets the store enforce single ownership.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, JSONDocument, SoftDeleteMixin, TimestampMixin

_LIVE_ROWS = text("deleted_at IS NULL")


class TrackedEntityMixin(SoftDeleteMixin, TimestampMixin):
    """
    Columns common to every trackable entity kind.

    customer_identifier is the user-facing business key ("AV-001234"). It is
    unrelated to physical tag identifiers, which live in the identifiers table.
    """

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    org_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Tenant scope; never changes after creation",
    )

    customer_identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    valid_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    valid_to: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="NULL means open-ended",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONDocument,
        nullable=True,
    )


class Asset(Base, TrackedEntityMixin):
    __tablename__ = "assets"

    current_location_id: Mapped[int | None] = mapped_column(
        BigIntPK,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index(
            "uq_assets_org_customer_identifier_live",
            "org_id",
            "customer_identifier",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index("ix_assets_org_created_at", "org_id", "created_at"),
        Index("ix_assets_current_location_id", "current_location_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Asset id={self.id} org_id={self.org_id} "
            f"customer_identifier={self.customer_identifier!r}>"
        )


class Location(Base, TrackedEntityMixin):
    __tablename__ = "locations"

    parent_id: Mapped[int | None] = mapped_column(
        BigIntPK,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index(
            "uq_locations_org_customer_identifier_live",
            "org_id",
            "customer_identifier",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index("ix_locations_org_created_at", "org_id", "created_at"),
        Index("ix_locations_parent_id", "parent_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Location id={self.id} org_id={self.org_id} "
            f"customer_identifier={self.customer_identifier!r}>"
        )
