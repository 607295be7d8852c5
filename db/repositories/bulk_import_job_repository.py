"""
Repository for bulk import job lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.bulk_import_job import BulkImportJob, BulkImportJobStatus


class BulkImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        org_id: int,
        entity_kind: str,
        total_rows: int,
        file_name: str | None = None,
    ) -> BulkImportJob:
        job = BulkImportJob(
            org_id=org_id,
            entity_kind=entity_kind,
            status=BulkImportJobStatus.PENDING,
            file_name=file_name,
            total_rows=total_rows,
            processed_rows=0,
            failed_rows=0,
            tags_created=0,
            errors=[],
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID, *, org_id: int | None = None) -> BulkImportJob | None:
        """
        Org-scoped lookup. A job owned by another org reads as missing.
        """

        job = self._session.get(BulkImportJob, job_id)
        if job is None:
            return None
        if org_id is not None and job.org_id != org_id:
            return None
        return job

    def list_jobs(
        self,
        *,
        org_id: int,
        limit: int = 100,
        status: str | None = None,
        entity_kind: str | None = None,
    ) -> list[BulkImportJob]:
        stmt: Select[tuple[BulkImportJob]] = select(BulkImportJob).where(
            BulkImportJob.org_id == org_id
        )
        if entity_kind:
            stmt = stmt.where(BulkImportJob.entity_kind == entity_kind)
        if status:
            stmt = stmt.where(BulkImportJob.status == status)

        stmt = stmt.order_by(BulkImportJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_processing(self, *, job_id: uuid.UUID) -> BulkImportJob | None:
        job = self.get_job(job_id)
        if job is None or job.is_terminal:
            return None
        job.status = BulkImportJobStatus.PROCESSING
        job.started_at = utcnow()
        return job

    def record_progress(
        self,
        *,
        job_id: uuid.UUID,
        processed_rows: int,
        failed_rows: int,
        tags_created: int,
        new_errors: Sequence[dict[str, Any]] = (),
    ) -> BulkImportJob | None:
        """
        Write the worker's running totals. Counters never move backwards and
        errors are appended, never replaced.
        """

        job = self.get_job(job_id)
        if job is None:
            return None
        job.processed_rows = max(job.processed_rows, processed_rows)
        job.failed_rows = max(job.failed_rows, failed_rows)
        job.tags_created = max(job.tags_created, tags_created)
        if new_errors:
            # Reassign so the JSON column is flagged dirty.
            job.errors = [*job.errors, *new_errors]
        return job

    def mark_completed(self, *, job_id: uuid.UUID) -> BulkImportJob | None:
        job = self.get_job(job_id)
        if job is None or job.is_terminal:
            return None
        job.status = BulkImportJobStatus.COMPLETED
        job.completed_at = utcnow()
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
    ) -> BulkImportJob | None:
        job = self.get_job(job_id)
        if job is None or job.is_terminal:
            return None
        job.status = BulkImportJobStatus.FAILED
        job.completed_at = utcnow()
        job.errors = [*job.errors, {"row": None, "field": None, "error": error_message}]
        return job
