"""
Atomic creation and deletion of entities together with their tag identifiers.

Every public method here owns its transaction: it commits on success and
rolls back on any failure, so callers never see a partially written entity.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache

from sqlalchemy.orm import Session

from app.domain.entity import EntityCreateInput, EntityView
from app.validators.identifier_validator import IdentifierValidator, get_identifier_validator
from db.models.entity import Asset, Location
from db.models.identifier import TagIdentifier
from db.repositories.entity_repository import EntityRepository
from db.repositories.errors import EntityNotFoundError
from db.repositories.identifier_repository import IdentifierRepository
from db.repositories.types import EntityFields, EntityKind, EntityRef, IdentifierSpec

logger = logging.getLogger(__name__)


class EntityCreationService:
    def __init__(self, *, identifier_validator: IdentifierValidator | None = None) -> None:
        self._identifier_validator = identifier_validator or get_identifier_validator()

    def create_with_identifiers(
        self,
        *,
        db: Session,
        org_id: int,
        kind: EntityKind,
        payload: EntityCreateInput,
    ) -> EntityView:
        """
        Create one entity and all of its identifiers, or nothing.

        Raises the first failure unchanged: InvalidIdentifierTypeError /
        InvalidIdentifierValueError before any write, DuplicateEntityError or
        DuplicateIdentifierError from the store's unique indexes (including a
        tag repeated inside the same payload), EntityNotFoundError for a
        parent or current location outside the org.
        """

        identifiers = self._identifier_validator.validate_many(payload.identifiers)

        try:
            entity, created = self.create_in_session(
                db=db,
                org_id=org_id,
                kind=kind,
                fields=payload.fields,
                identifiers=identifiers,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "Created %s id=%s org_id=%s customer_identifier=%s identifiers=%d",
            kind.value,
            entity.id,
            org_id,
            entity.customer_identifier,
            len(created),
        )
        return EntityView(kind=kind, entity=entity, identifiers=created)

    def create_in_session(
        self,
        *,
        db: Session,
        org_id: int,
        kind: EntityKind,
        fields: EntityFields,
        identifiers: Sequence[IdentifierSpec],
    ) -> tuple[Asset | Location, list[TagIdentifier]]:
        """
        Flush the entity and its already-validated identifiers without
        committing. The caller decides commit or rollback.
        """

        self._check_references(db=db, org_id=org_id, kind=kind, fields=fields)

        entity = EntityRepository(db, kind).create(org_id=org_id, fields=fields)
        ref = EntityRef(kind, entity.id)

        identifier_repository = IdentifierRepository(db)
        created = [
            identifier_repository.add(
                org_id=org_id,
                ref=ref,
                identifier_type=spec.type,
                value=spec.value,
            )
            for spec in identifiers
        ]
        return entity, created

    def delete_with_identifiers(self, *, db: Session, org_id: int, ref: EntityRef) -> bool:
        """
        Soft-delete an entity and every live identifier bound to it.

        Returns False when the entity is missing, already deleted or owned by
        another org.
        """

        try:
            deleted = EntityRepository(db, ref.kind).soft_delete(ref.id, org_id=org_id)
            released = IdentifierRepository(db).soft_delete_for_entity(ref) if deleted else 0
            db.commit()
        except Exception:
            db.rollback()
            raise

        if deleted:
            logger.info("Deleted %s org_id=%s identifiers_released=%d", ref, org_id, released)
        return deleted

    def _check_references(
        self,
        *,
        db: Session,
        org_id: int,
        kind: EntityKind,
        fields: EntityFields,
    ) -> None:
        location_id = fields.current_location_id if kind is EntityKind.ASSET else fields.parent_id
        if location_id is None:
            return
        if EntityRepository(db, EntityKind.LOCATION).get_by_id(location_id, org_id=org_id) is None:
            raise EntityNotFoundError(f"location {location_id} not found")


@lru_cache(maxsize=1)
def get_entity_creation_service() -> EntityCreationService:
    return EntityCreationService()
