"""
db/models/bulk_import_job.py

Bulk import job model for asynchronous CSV import tracking.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class BulkImportJobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = (COMPLETED, FAILED)


class BulkImportJob(Base, TimestampMixin):
    __tablename__ = "bulk_import_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    org_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    entity_kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="asset or location",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BulkImportJobStatus.PENDING,
    )
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Append-only per-row failures: {row, field, error}",
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_bulk_import_jobs_org_id", "org_id"),
        Index("ix_bulk_import_jobs_status", "status"),
        Index("ix_bulk_import_jobs_org_created_at", "org_id", "created_at"),
    )

    @property
    def successful_rows(self) -> int:
        return self.processed_rows - self.failed_rows

    @property
    def is_terminal(self) -> bool:
        return self.status in BulkImportJobStatus.TERMINAL

    def __repr__(self) -> str:
        return (
            f"<BulkImportJob id={self.id} org_id={self.org_id} status={self.status!r} "
            f"processed={self.processed_rows}/{self.total_rows} failed={self.failed_rows}>"
        )
