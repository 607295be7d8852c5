"""
app/api/responses.py

Conversion of domain objects and domain errors into API responses.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from app.domain.entity import EntityView
from app.schemas.bulk_import import BulkImportErrorResponse, BulkImportJobStatusResponse
from app.schemas.entities import EntityResponse, IdentifierResponse
from db.models.bulk_import_job import BulkImportJob
from db.models.entity import Asset
from db.models.identifier import TagIdentifier
from db.repositories.errors import (
    DuplicateEntityError,
    DuplicateIdentifierError,
    EntityNotFoundError,
    IdentifierTargetError,
    InvalidIdentifierTypeError,
    InvalidIdentifierValueError,
    RegistryError,
)

_STATUS_BY_ERROR: tuple[tuple[type[RegistryError], int], ...] = (
    (DuplicateIdentifierError, status.HTTP_409_CONFLICT),
    (DuplicateEntityError, status.HTTP_409_CONFLICT),
    (InvalidIdentifierTypeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidIdentifierValueError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (IdentifierTargetError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
)


def http_error_for(exc: RegistryError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save record.")


def to_identifier_response(identifier: TagIdentifier) -> IdentifierResponse:
    return IdentifierResponse.model_validate(identifier)


def to_entity_response(view: EntityView) -> EntityResponse:
    entity = view.entity
    is_asset = isinstance(entity, Asset)
    return EntityResponse(
        id=entity.id,
        org_id=entity.org_id,
        kind=view.kind.value,
        identifier=entity.customer_identifier,
        name=entity.name,
        type=entity.type,
        description=entity.description,
        current_location_id=entity.current_location_id if is_asset else None,
        parent_id=None if is_asset else entity.parent_id,
        valid_from=entity.valid_from,
        valid_to=entity.valid_to,
        is_active=entity.is_active,
        metadata=entity.metadata_json,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        identifiers=[to_identifier_response(identifier) for identifier in view.identifiers],
    )


def to_job_status_response(job: BulkImportJob) -> BulkImportJobStatusResponse:
    return BulkImportJobStatusResponse(
        job_id=job.id,
        entity_kind=job.entity_kind,
        status=job.status,
        file_name=job.file_name,
        total_rows=job.total_rows,
        processed_rows=job.processed_rows,
        failed_rows=job.failed_rows,
        successful_rows=max(0, job.successful_rows),
        tags_created=job.tags_created,
        errors=[BulkImportErrorResponse(**error) for error in job.errors or []],
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )
