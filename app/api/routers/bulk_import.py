"""
Bulk CSV import endpoints for assets and locations.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload, get_org_id
from app.api.responses import to_job_status_response
from app.schemas.bulk_import import (
    BulkImportAcceptedResponse,
    BulkImportJobListResponse,
    BulkImportJobStatusResponse,
)
from app.services.bulk_import_service import (
    BulkImportService,
    FastAPIBackgroundTaskExecutor,
    MalformedUploadError,
    UploadTooLargeError,
    get_bulk_import_service,
)
from db.repositories.types import EntityKind
from db.session import get_db


def build_bulk_import_router(kind: EntityKind, *, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.post(
        "/bulk",
        status_code=status.HTTP_202_ACCEPTED,
        response_model=BulkImportAcceptedResponse,
    )
    def upload_csv(
        background_tasks: BackgroundTasks,
        file: UploadFile = Depends(get_csv_upload),
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: BulkImportService = Depends(get_bulk_import_service),
    ) -> BulkImportAcceptedResponse:
        try:
            job = service.submit(
                db=db,
                org_id=org_id,
                upload_file=file,
                executor=FastAPIBackgroundTaskExecutor(background_tasks),
                kind=kind,
            )
        except UploadTooLargeError as exc:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=str(exc),
            ) from exc
        except MalformedUploadError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        finally:
            file.file.close()

        return BulkImportAcceptedResponse(
            job_id=job.id,
            entity_kind=job.entity_kind,
            status=job.status,
            total_rows=job.total_rows,
            created_at=job.created_at,
            message=f"CSV upload accepted. Processing {job.total_rows} rows asynchronously.",
        )

    @router.get("/bulk", response_model=BulkImportJobListResponse)
    def list_jobs(
        status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
        limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: BulkImportService = Depends(get_bulk_import_service),
    ) -> BulkImportJobListResponse:
        jobs = service.list_jobs(db=db, org_id=org_id, limit=limit, status=status_filter, kind=kind)
        return BulkImportJobListResponse(jobs=[to_job_status_response(job) for job in jobs])

    @router.get("/bulk/{job_id}", response_model=BulkImportJobStatusResponse)
    def get_job_status(
        job_id: UUID,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: BulkImportService = Depends(get_bulk_import_service),
    ) -> BulkImportJobStatusResponse:
        job = service.get_status(db=db, job_id=job_id, org_id=org_id)
        if job is None or job.entity_kind != kind.value:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Bulk import job not found: {job_id}",
            )
        return to_job_status_response(job)

    return router


asset_bulk_import_router = build_bulk_import_router(EntityKind.ASSET, prefix="/api/v1/assets", tag="assets")
location_bulk_import_router = build_bulk_import_router(
    EntityKind.LOCATION,
    prefix="/api/v1/locations",
    tag="locations",
)
