"""
Bulk import service: CSV upload validation, job dispatch and per-row creation.

The request path only validates the file and creates the job record. Row
processing runs through a BulkImportTaskExecutor (FastAPI background tasks in
the API) with its own session, one transaction per row.
"""

from __future__ import annotations

import csv
import io
import logging
import uuid
from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks, UploadFile
from sqlalchemy.orm import Session, sessionmaker

from app.config import BulkImportSettings, get_bulk_import_settings
from app.domain.bulk_import import BulkImportSummary, RowValidationError
from app.services.entity_creation_service import EntityCreationService, get_entity_creation_service
from app.validators.csv_validator import CSVHeaderValidationError, CSVRowValidator, validate_headers
from db.models.bulk_import_job import BulkImportJob
from db.repositories.bulk_import_job_repository import BulkImportJobRepository
from db.repositories.errors import (
    DuplicateEntityError,
    DuplicateIdentifierError,
    InvalidIdentifierTypeError,
    InvalidIdentifierValueError,
    RegistryError,
)
from db.repositories.types import EntityKind

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 64 * 1024

CSVRow = tuple[int, dict[str | None, Any]]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedUploadError(ValueError):
    """
    Raised when the upload is not a usable CSV: bad encoding, broken
    structure, missing required columns, no data rows or too many rows.
    """

    def __init__(self, message: str, *, missing_columns: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing_columns = tuple(missing_columns)


class UploadTooLargeError(ValueError):
    """
    Raised when the upload exceeds the configured byte limit.
    """

    def __init__(self, max_bytes: int) -> None:
        super().__init__(f"file too large: maximum size is {max_bytes} bytes")
        self.max_bytes = max_bytes


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------


class BulkImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class InlineTaskExecutor:
    """
    Runs the task immediately in the caller's thread. Used by scripts and
    tests that want the job finished when submit() returns.
    """

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BulkImportService:
    """
    Coordinates upload validation, job creation, background execution and
    job status persistence.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        creation_service: EntityCreationService | None = None,
        row_validator: CSVRowValidator | None = None,
        settings: BulkImportSettings | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._creation_service = creation_service or get_entity_creation_service()
        self._row_validator = row_validator or CSVRowValidator()
        self._settings = settings or get_bulk_import_settings()

    def submit(
        self,
        *,
        db: Session,
        org_id: int,
        upload_file: UploadFile,
        executor: BulkImportTaskExecutor,
        kind: EntityKind = EntityKind.ASSET,
    ) -> BulkImportJob:
        """
        Validate the upload, create a pending job and hand the rows to the
        executor. Nothing is written when validation fails.
        """

        content = self._read_upload(upload_file)
        header_map, rows = self._parse_upload(content)
        file_name = upload_file.filename or "upload.csv"

        repository = BulkImportJobRepository(db)
        try:
            job = repository.create_job(
                org_id=org_id,
                entity_kind=kind.value,
                total_rows=len(rows),
                file_name=file_name,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "Bulk import job created id=%s org_id=%s kind=%s file=%s rows=%d",
            job.id,
            org_id,
            kind.value,
            file_name,
            len(rows),
        )

        try:
            executor.submit(self._run_bulk_import_job, job.id, org_id, kind, header_map, rows)
        except Exception:
            db.rollback()
            repository.mark_failed(job_id=job.id, error_message="Failed to schedule bulk import job.")
            db.commit()
            raise

        return job

    def get_status(self, *, db: Session, job_id: uuid.UUID, org_id: int) -> BulkImportJob | None:
        return BulkImportJobRepository(db).get_job(job_id, org_id=org_id)

    def list_jobs(
        self,
        *,
        db: Session,
        org_id: int,
        limit: int = 100,
        status: str | None = None,
        kind: EntityKind | None = None,
    ) -> list[BulkImportJob]:
        return BulkImportJobRepository(db).list_jobs(
            org_id=org_id,
            limit=limit,
            status=status,
            entity_kind=kind.value if kind is not None else None,
        )

    def _read_upload(self, upload_file: UploadFile) -> bytes:
        max_bytes = self._settings.max_upload_bytes
        raw_file = upload_file.file
        raw_file.seek(0)

        buffer = bytearray()
        while True:
            chunk = raw_file.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > max_bytes:
                raise UploadTooLargeError(max_bytes)

        return bytes(buffer)

    def _parse_upload(self, content: bytes) -> tuple[dict[str, str], list[CSVRow]]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedUploadError("CSV must be UTF-8 encoded.") from exc

        try:
            reader = csv.DictReader(io.StringIO(text, newline=""))
            try:
                header_map = validate_headers(reader.fieldnames)
            except CSVHeaderValidationError as exc:
                raise MalformedUploadError(str(exc), missing_columns=exc.missing) from exc

            rows: list[CSVRow] = []
            for row_number, raw_row in enumerate(reader, start=2):
                rows.append((row_number, dict(raw_row)))
                if len(rows) > self._settings.max_rows:
                    raise MalformedUploadError(
                        f"too many rows: maximum is {self._settings.max_rows} data rows"
                    )
        except csv.Error as exc:
            raise MalformedUploadError(f"Invalid CSV format: {exc}") from exc

        if not rows:
            raise MalformedUploadError("CSV contains no data rows.")

        return header_map, rows

    def _run_bulk_import_job(
        self,
        job_id: uuid.UUID,
        org_id: int,
        kind: EntityKind,
        header_map: Mapping[str, str],
        rows: Sequence[CSVRow],
    ) -> None:
        with self._session_factory() as db:
            repository = BulkImportJobRepository(db)
            try:
                processing_job = repository.mark_processing(job_id=job_id)
                if processing_job is None:
                    raise RuntimeError(f"Bulk import job not found or already finished: {job_id}")
                db.commit()
                logger.info("Bulk import job processing id=%s rows=%d", job_id, len(rows))

                summary = self._process_rows(
                    db=db,
                    repository=repository,
                    job_id=job_id,
                    org_id=org_id,
                    kind=kind,
                    header_map=header_map,
                    rows=rows,
                )

                completed_job = repository.mark_completed(job_id=job_id)
                if completed_job is None:
                    raise RuntimeError(f"Bulk import job not found or already finished: {job_id}")
                db.commit()
                logger.info(
                    "Bulk import job completed id=%s processed=%d failed=%d tags_created=%d",
                    job_id,
                    summary.processed_rows,
                    summary.failed_rows,
                    summary.tags_created,
                )
            except Exception as exc:
                self._mark_job_failed(db=db, job_id=job_id, exc=exc)

    def _process_rows(
        self,
        *,
        db: Session,
        repository: BulkImportJobRepository,
        job_id: uuid.UUID,
        org_id: int,
        kind: EntityKind,
        header_map: Mapping[str, str],
        rows: Sequence[CSVRow],
    ) -> BulkImportSummary:
        processed_rows = 0
        failed_rows = 0
        tags_created = 0
        stored_errors = 0
        pending_errors: list[RowValidationError] = []
        captured_errors: list[RowValidationError] = []

        for row_number, raw_row in rows:
            row_errors, row_tags = self._import_row(
                db=db,
                org_id=org_id,
                kind=kind,
                header_map=header_map,
                row_number=row_number,
                raw_row=raw_row,
            )
            processed_rows += 1
            tags_created += row_tags

            if row_errors:
                failed_rows += 1
                for error in row_errors:
                    if self._settings.log_row_errors:
                        logger.warning(
                            "Bulk import row failed job=%s row=%s field=%s error=%s",
                            job_id,
                            error.row_number,
                            error.column,
                            error.message,
                        )
                    if stored_errors < self._settings.max_errors:
                        stored_errors += 1
                        pending_errors.append(error)
                        captured_errors.append(error)

            if processed_rows % self._settings.progress_update_interval == 0:
                self._flush_progress(
                    db=db,
                    repository=repository,
                    job_id=job_id,
                    processed_rows=processed_rows,
                    failed_rows=failed_rows,
                    tags_created=tags_created,
                    pending_errors=pending_errors,
                )

        self._flush_progress(
            db=db,
            repository=repository,
            job_id=job_id,
            processed_rows=processed_rows,
            failed_rows=failed_rows,
            tags_created=tags_created,
            pending_errors=pending_errors,
        )

        return BulkImportSummary(
            processed_rows=processed_rows,
            failed_rows=failed_rows,
            tags_created=tags_created,
            errors=captured_errors,
        )

    def _import_row(
        self,
        *,
        db: Session,
        org_id: int,
        kind: EntityKind,
        header_map: Mapping[str, str],
        row_number: int,
        raw_row: Mapping[str | None, Any],
    ) -> tuple[list[RowValidationError], int]:
        """
        Validate and create one row in its own transaction. Returns the row's
        errors and the number of tags it created.
        """

        if self._row_validator.is_completely_empty_row(raw_row):
            return [RowValidationError(row_number=row_number, message="Completely empty rows are not allowed.")], 0

        parsed_row, row_errors = self._row_validator.validate_row(
            row=raw_row,
            header_map=header_map,
            row_number=row_number,
        )
        if row_errors:
            return row_errors, 0
        if parsed_row is None:
            return [RowValidationError(row_number=row_number, message="Row could not be parsed.")], 0

        try:
            _, created = self._creation_service.create_in_session(
                db=db,
                org_id=org_id,
                kind=kind,
                fields=parsed_row.fields,
                identifiers=parsed_row.identifiers,
            )
            db.commit()
        except (RegistryError, ValueError) as exc:
            db.rollback()
            return [RowValidationError(row_number=row_number, message=str(exc), column=_error_column(exc))], 0

        return [], len(created)

    def _flush_progress(
        self,
        *,
        db: Session,
        repository: BulkImportJobRepository,
        job_id: uuid.UUID,
        processed_rows: int,
        failed_rows: int,
        tags_created: int,
        pending_errors: list[RowValidationError],
    ) -> None:
        updated = repository.record_progress(
            job_id=job_id,
            processed_rows=processed_rows,
            failed_rows=failed_rows,
            tags_created=tags_created,
            new_errors=[error.to_dict() for error in pending_errors],
        )
        if updated is None:
            raise RuntimeError(f"Bulk import job not found: {job_id}")
        db.commit()
        pending_errors.clear()

    def _mark_job_failed(self, *, db: Session, job_id: uuid.UUID, exc: Exception) -> None:
        repository = BulkImportJobRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Bulk import job failed id=%s error=%s", job_id, error_message)
        try:
            db.rollback()
            failed_job = repository.mark_failed(
                job_id=job_id,
                error_message=error_message[:2000],
            )
            if failed_job is None:
                logger.error("Unable to mark bulk import job as failed id=%s", job_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed bulk import job state id=%s", job_id)


def _error_column(exc: Exception) -> str | None:
    if isinstance(exc, DuplicateEntityError):
        return "identifier"
    if isinstance(exc, (DuplicateIdentifierError, InvalidIdentifierTypeError, InvalidIdentifierValueError)):
        return "tags"
    return None


@lru_cache(maxsize=1)
def get_bulk_import_service() -> BulkImportService:
    return BulkImportService()
