"""
app/api/routers/entities.py

CRUD endpoints for assets and locations with their tag identifiers.

Both resources share one handler set; build_entity_router binds it to an
EntityKind and a URL prefix.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import Pagination, get_org_id, get_pagination
from app.api.responses import http_error_for, to_entity_response, to_identifier_response
from app.domain.entity import EntityCreateInput
from app.schemas.entities import (
    EntityCreateRequest,
    EntityListResponse,
    EntityResponse,
    IdentifierRequest,
    IdentifierResponse,
)
from app.services.entity_creation_service import EntityCreationService, get_entity_creation_service
from app.services.identifier_service import IdentifierService, get_identifier_service
from app.services.view_assembler import ViewAssembler, get_view_assembler
from db.repositories.errors import RegistryError
from db.repositories.types import EntityFields, EntityKind, EntityRef, IdentifierSpec
from db.session import get_db


def _to_create_input(body: EntityCreateRequest) -> EntityCreateInput:
    return EntityCreateInput(
        fields=EntityFields(
            customer_identifier=body.identifier.strip(),
            name=body.name.strip(),
            type=body.type.strip(),
            description=body.description,
            valid_from=body.valid_from,
            valid_to=body.valid_to,
            is_active=body.is_active,
            metadata=body.metadata,
            current_location_id=body.current_location_id,
            parent_id=body.parent_id,
        ),
        identifiers=tuple(IdentifierSpec(type=item.type, value=item.value) for item in body.identifiers),
    )


def build_entity_router(kind: EntityKind, *, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    label = kind.value.capitalize()

    @router.post("", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
    def create_entity(
        body: EntityCreateRequest,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: EntityCreationService = Depends(get_entity_creation_service),
    ) -> EntityResponse:
        """
        Create the entity and all of its identifiers in one transaction.
        Nothing is saved when any identifier is rejected.
        """
        try:
            view = service.create_with_identifiers(
                db=db,
                org_id=org_id,
                kind=kind,
                payload=_to_create_input(body),
            )
        except RegistryError as exc:
            raise http_error_for(exc) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
        return to_entity_response(view)

    @router.get("", response_model=EntityListResponse)
    def list_entities(
        org_id: int = Depends(get_org_id),
        pagination: Pagination = Depends(get_pagination),
        db: Session = Depends(get_db),
        assembler: ViewAssembler = Depends(get_view_assembler),
    ) -> EntityListResponse:
        views = assembler.list_views(
            db=db,
            org_id=org_id,
            kind=kind,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        return EntityListResponse(
            data=[to_entity_response(view) for view in views],
            count=len(views),
            limit=pagination.limit,
            offset=pagination.offset,
            total_count=assembler.count(db=db, org_id=org_id, kind=kind),
        )

    @router.get("/{entity_id}", response_model=EntityResponse)
    def get_entity(
        entity_id: int,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        assembler: ViewAssembler = Depends(get_view_assembler),
    ) -> EntityResponse:
        view = assembler.get_view(db=db, org_id=org_id, ref=EntityRef(kind, entity_id))
        if view is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} not found: {entity_id}",
            )
        return to_entity_response(view)

    @router.delete("/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_entity(
        entity_id: int,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: EntityCreationService = Depends(get_entity_creation_service),
    ) -> Response:
        deleted = service.delete_with_identifiers(db=db, org_id=org_id, ref=EntityRef(kind, entity_id))
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} not found: {entity_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post(
        "/{entity_id}/identifiers",
        response_model=IdentifierResponse,
        status_code=status.HTTP_201_CREATED,
    )
    def add_identifier(
        entity_id: int,
        body: IdentifierRequest,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: IdentifierService = Depends(get_identifier_service),
    ) -> IdentifierResponse:
        try:
            identifier = service.add_identifier(
                db=db,
                org_id=org_id,
                ref=EntityRef(kind, entity_id),
                identifier_type=body.type,
                value=body.value,
            )
        except RegistryError as exc:
            raise http_error_for(exc) from exc
        return to_identifier_response(identifier)

    @router.delete("/{entity_id}/identifiers/{identifier_id}", status_code=status.HTTP_204_NO_CONTENT)
    def remove_identifier(
        entity_id: int,
        identifier_id: int,
        org_id: int = Depends(get_org_id),
        db: Session = Depends(get_db),
        service: IdentifierService = Depends(get_identifier_service),
    ) -> Response:
        removed = service.remove_identifier(
            db=db,
            org_id=org_id,
            identifier_id=identifier_id,
            ref=EntityRef(kind, entity_id),
        )
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Identifier not found: {identifier_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


assets_router = build_entity_router(EntityKind.ASSET, prefix="/api/v1/assets", tag="assets")
locations_router = build_entity_router(EntityKind.LOCATION, prefix="/api/v1/locations", tag="locations")
