"""
Tag lookup endpoints: resolve scanned tag values to assets or locations.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_org_id
from app.api.responses import http_error_for, to_entity_response
from app.schemas.entities import EntityResponse, TagLookupBatchRequest, TagLookupBatchResponse
from app.services.identifier_service import IdentifierService, get_identifier_service
from db.repositories.errors import RegistryError
from db.session import get_db

router = APIRouter(prefix="/api/v1/lookup", tags=["lookup"])


@router.get("/tag", response_model=EntityResponse)
def lookup_by_tag(
    type: str = Query(..., min_length=1, description="Identifier type, e.g. rfid"),
    value: str = Query(..., min_length=1, description="Tag value; leading zeros are ignored"),
    org_id: int = Depends(get_org_id),
    db: Session = Depends(get_db),
    service: IdentifierService = Depends(get_identifier_service),
) -> EntityResponse:
    try:
        view = service.lookup_by_tag(db=db, org_id=org_id, identifier_type=type, value=value)
    except RegistryError as exc:
        raise http_error_for(exc) from exc
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No asset or location found for {type}:{value}",
        )
    return to_entity_response(view)


@router.post("/tags", response_model=TagLookupBatchResponse)
def lookup_by_tags(
    body: TagLookupBatchRequest,
    org_id: int = Depends(get_org_id),
    db: Session = Depends(get_db),
    service: IdentifierService = Depends(get_identifier_service),
) -> TagLookupBatchResponse:
    try:
        views = service.lookup_by_tags(db=db, org_id=org_id, identifier_type=body.type, values=body.values)
    except RegistryError as exc:
        raise http_error_for(exc) from exc

    return TagLookupBatchResponse(
        data={value: to_entity_response(view) for value, view in views.items()},
        not_found=[value for value in body.values if value.strip() not in views],
    )
