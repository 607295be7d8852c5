"""
Standalone identifier operations: attach or detach one tag, and resolve tags
back to the entity that owns them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache

from sqlalchemy.orm import Session

from app.domain.entity import EntityView
from app.services.view_assembler import ViewAssembler, get_view_assembler
from app.validators.identifier_validator import IdentifierValidator, get_identifier_validator
from db.models.identifier import TagIdentifier
from db.repositories.entity_repository import EntityRepository
from db.repositories.errors import EntityNotFoundError, InvalidIdentifierTypeError
from db.repositories.identifier_repository import IdentifierRepository, owner_ref
from db.repositories.types import EntityRef

logger = logging.getLogger(__name__)


class IdentifierService:
    def __init__(
        self,
        *,
        identifier_validator: IdentifierValidator | None = None,
        view_assembler: ViewAssembler | None = None,
    ) -> None:
        self._identifier_validator = identifier_validator or get_identifier_validator()
        self._view_assembler = view_assembler or get_view_assembler()

    def add_identifier(
        self,
        *,
        db: Session,
        org_id: int,
        ref: EntityRef,
        identifier_type: str,
        value: str,
    ) -> TagIdentifier:
        spec = self._identifier_validator.validate(identifier_type, value)

        try:
            if EntityRepository(db, ref.kind).get_by_id(ref.id, org_id=org_id) is None:
                raise EntityNotFoundError(f"{ref.kind.value} {ref.id} not found")
            identifier = IdentifierRepository(db).add(
                org_id=org_id,
                ref=ref,
                identifier_type=spec.type,
                value=spec.value,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Added identifier id=%s %s:%s to %s org_id=%s", identifier.id, spec.type, spec.value, ref, org_id)
        return identifier

    def remove_identifier(
        self,
        *,
        db: Session,
        org_id: int,
        identifier_id: int,
        ref: EntityRef | None = None,
    ) -> bool:
        """
        Soft-delete one identifier. Returns False when it is unknown, already
        removed, owned by another org, or (when `ref` is given) bound to a
        different entity.
        """

        repository = IdentifierRepository(db)
        try:
            if ref is not None:
                identifier = repository.get(identifier_id, org_id=org_id)
                if identifier is None or owner_ref(identifier) != ref:
                    db.rollback()
                    return False
            removed = repository.remove(identifier_id, org_id=org_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if removed:
            logger.info("Removed identifier id=%s org_id=%s", identifier_id, org_id)
        return removed

    def lookup_by_tag(
        self,
        *,
        db: Session,
        org_id: int,
        identifier_type: str,
        value: str,
    ) -> EntityView | None:
        normalized_type = self._check_type(identifier_type)
        ref = IdentifierRepository(db).lookup_by_tag(
            org_id=org_id,
            identifier_type=normalized_type,
            value=value.strip(),
        )
        if ref is None:
            return None
        return self._view_assembler.get_view(db=db, org_id=org_id, ref=ref)

    def lookup_by_tags(
        self,
        *,
        db: Session,
        org_id: int,
        identifier_type: str,
        values: Sequence[str],
    ) -> dict[str, EntityView]:
        """
        Resolve many tag values of one type at once, keyed by the value as the
        caller sent it. Unmatched values are absent from the result.
        """

        normalized_type = self._check_type(identifier_type)
        cleaned = [value.strip() for value in values if value and value.strip()]
        refs_by_value = IdentifierRepository(db).lookup_by_tags(
            org_id=org_id,
            identifier_type=normalized_type,
            values=cleaned,
        )
        views = self._view_assembler.views_for(db=db, org_id=org_id, refs=set(refs_by_value.values()))
        return {value: views[ref] for value, ref in refs_by_value.items() if ref in views}

    def _check_type(self, identifier_type: str) -> str:
        normalized_type = (identifier_type or "").strip().lower()
        if normalized_type not in self._identifier_validator.allowed_types:
            raise InvalidIdentifierTypeError(identifier_type, self._identifier_validator.allowed_types)
        return normalized_type


@lru_cache(maxsize=1)
def get_identifier_service() -> IdentifierService:
    return IdentifierService()
