"""
Read-side composition of entities with their tag identifiers.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

from sqlalchemy.orm import Session

from app.domain.entity import EntityView
from db.models.entity import Asset, Location
from db.repositories.entity_repository import EntityRepository
from db.repositories.identifier_repository import IdentifierRepository
from db.repositories.types import EntityKind, EntityRef


class ViewAssembler:
    """
    Joins entities with identifiers using at most one identifier query per
    entity kind, whatever the page size.
    """

    def get_view(self, *, db: Session, org_id: int, ref: EntityRef) -> EntityView | None:
        entity = EntityRepository(db, ref.kind).get_by_id(ref.id, org_id=org_id)
        if entity is None:
            return None
        identifiers = IdentifierRepository(db).list_by_entity(ref)
        return EntityView(kind=ref.kind, entity=entity, identifiers=identifiers)

    def list_views(
        self,
        *,
        db: Session,
        org_id: int,
        kind: EntityKind,
        limit: int,
        offset: int = 0,
    ) -> list[EntityView]:
        entities = EntityRepository(db, kind).list(org_id, limit=limit, offset=offset)
        refs = [EntityRef(kind, entity.id) for entity in entities]
        identifiers_by_ref = IdentifierRepository(db).list_by_entities(refs)
        return [
            EntityView(kind=kind, entity=entity, identifiers=identifiers_by_ref.get(ref, []))
            for entity, ref in zip(entities, refs)
        ]

    def count(self, *, db: Session, org_id: int, kind: EntityKind) -> int:
        return EntityRepository(db, kind).count(org_id)

    def views_for(
        self,
        *,
        db: Session,
        org_id: int,
        refs: Iterable[EntityRef],
    ) -> dict[EntityRef, EntityView]:
        """
        Batched get_view. Refs that are missing, deleted or owned by another
        org are left out of the result.
        """

        ids_by_kind: dict[EntityKind, list[int]] = {}
        for ref in refs:
            ids_by_kind.setdefault(ref.kind, []).append(ref.id)

        live: dict[EntityRef, Asset | Location] = {}
        for kind, entity_ids in ids_by_kind.items():
            for entity_id, entity in EntityRepository(db, kind).get_many(entity_ids).items():
                if entity.org_id == org_id:
                    live[EntityRef(kind, entity_id)] = entity

        identifiers_by_ref = IdentifierRepository(db).list_by_entities(live)
        return {
            ref: EntityView(kind=ref.kind, entity=entity, identifiers=identifiers_by_ref[ref])
            for ref, entity in live.items()
        }


@lru_cache(maxsize=1)
def get_view_assembler() -> ViewAssembler:
    return ViewAssembler()
