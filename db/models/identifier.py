"""
db/models/identifier.py

Physical tag identifiers (RFID EPCs, BLE MACs, barcodes) bound to exactly one
asset or location.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, SoftDeleteMixin, TimestampMixin

_LIVE_ROWS = text("deleted_at IS NULL")

UNIQUE_LIVE_VALUE_INDEX = "uq_identifiers_org_type_value_live"
SINGLE_TARGET_CONSTRAINT = "ck_identifiers_single_target"

VALUE_MAX_LENGTH = 255


class IdentifierType:
    RFID = "rfid"
    BLE = "ble"
    BARCODE = "barcode"

    BUILTIN = (RFID, BLE, BARCODE)


class TagIdentifier(Base, TimestampMixin, SoftDeleteMixin):
    """
    One physical tag value.

    Store-level invariants:
    - exactly one of asset_id / location_id is set (CHECK constraint);
    - (org_id, type, value) is unique among live rows (partial unique index).
    """

    __tablename__ = "identifiers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    org_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="rfid, ble, barcode, or a configured extra type",
    )

    value: Mapped[str] = mapped_column(String(VALUE_MAX_LENGTH), nullable=False)

    asset_id: Mapped[int | None] = mapped_column(
        BigIntPK,
        ForeignKey("assets.id"),
        nullable=True,
    )

    location_id: Mapped[int | None] = mapped_column(
        BigIntPK,
        ForeignKey("locations.id"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "(asset_id IS NOT NULL) <> (location_id IS NOT NULL)",
            name=SINGLE_TARGET_CONSTRAINT,
        ),
        Index(
            UNIQUE_LIVE_VALUE_INDEX,
            "org_id",
            "type",
            "value",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index("ix_identifiers_asset_id", "asset_id"),
        Index("ix_identifiers_location_id", "location_id"),
    )

    def __repr__(self) -> str:
        owner = f"asset_id={self.asset_id}" if self.asset_id is not None else f"location_id={self.location_id}"
        return f"<TagIdentifier id={self.id} {self.type}:{self.value!r} {owner}>"
