"""
Entity repository: CRUD over assets and locations with soft delete.

One repository instance serves one EntityKind. Writes are flushed, never
committed; the caller owns the transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.entity import Asset, Location
from db.repositories.errors import DuplicateEntityError, EntityPersistenceError
from db.repositories.integrity import (
    ASSET_CUSTOMER_IDENTIFIER_INDEX,
    LOCATION_CUSTOMER_IDENTIFIER_INDEX,
    violated_constraint,
)
from db.repositories.types import EntityFields, EntityKind, EntityUpdate

Entity = Asset | Location

_MODELS: dict[EntityKind, type[Asset] | type[Location]] = {
    EntityKind.ASSET: Asset,
    EntityKind.LOCATION: Location,
}

_CUSTOMER_IDENTIFIER_INDEXES = {
    ASSET_CUSTOMER_IDENTIFIER_INDEX,
    LOCATION_CUSTOMER_IDENTIFIER_INDEX,
}

_UPDATABLE_COLUMNS = frozenset(
    {
        "customer_identifier",
        "name",
        "type",
        "description",
        "valid_from",
        "valid_to",
        "is_active",
        "metadata_json",
        "current_location_id",
        "parent_id",
    }
)


def model_for(kind: EntityKind) -> type[Asset] | type[Location]:
    return _MODELS[kind]


class EntityRepository:
    def __init__(self, session: Session, kind: EntityKind) -> None:
        self._session = session
        self._kind = kind
        self._model = model_for(kind)

    @property
    def kind(self) -> EntityKind:
        return self._kind

    def create(self, *, org_id: int, fields: EntityFields) -> Entity:
        entity = self._model(
            org_id=org_id,
            customer_identifier=fields.customer_identifier,
            name=fields.name,
            type=fields.type,
            description=fields.description,
            valid_to=fields.valid_to,
            is_active=fields.is_active,
            metadata_json=fields.metadata,
            **self._reference_kwargs(fields),
        )
        if fields.valid_from is not None:
            entity.valid_from = fields.valid_from

        self._session.add(entity)
        self._flush(fields.customer_identifier)
        self._session.refresh(entity)
        return entity

    def get_by_id(self, entity_id: int, *, org_id: int | None = None) -> Entity | None:
        stmt = self._live().where(self._model.id == entity_id)
        if org_id is not None:
            stmt = stmt.where(self._model.org_id == org_id)
        return self._session.scalars(stmt).one_or_none()

    def get_by_customer_identifier(self, org_id: int, customer_identifier: str) -> Entity | None:
        stmt = self._live().where(
            self._model.org_id == org_id,
            self._model.customer_identifier == customer_identifier,
        )
        return self._session.scalars(stmt).one_or_none()

    def get_many(self, entity_ids: Sequence[int]) -> dict[int, Entity]:
        if not entity_ids:
            return {}
        stmt = self._live().where(self._model.id.in_(set(entity_ids)))
        return {entity.id: entity for entity in self._session.scalars(stmt)}

    def update(self, entity_id: int, *, org_id: int, changes: EntityUpdate) -> Entity | None:
        entity = self.get_by_id(entity_id, org_id=org_id)
        if entity is None:
            return None

        unknown = set(changes.values) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported {self._kind.value} fields: {', '.join(sorted(unknown))}")
        self._check_reference_columns(changes.values)

        for column, value in changes.values.items():
            setattr(entity, column, value)

        self._flush(changes.values.get("customer_identifier", entity.customer_identifier))
        self._session.refresh(entity)
        return entity

    def soft_delete(self, entity_id: int, *, org_id: int | None = None) -> bool:
        stmt = (
            update(self._model)
            .where(self._model.id == entity_id, self._model.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if org_id is not None:
            stmt = stmt.where(self._model.org_id == org_id)
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def list(self, org_id: int, *, limit: int, offset: int = 0) -> list[Entity]:
        stmt = (
            self._live()
            .where(self._model.org_id == org_id)
            .order_by(self._model.created_at.desc(), self._model.id.desc())
            .limit(max(1, limit))
            .offset(max(0, offset))
        )
        return list(self._session.scalars(stmt).all())

    def count(self, org_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(self._model)
            .where(self._model.org_id == org_id, self._model.deleted_at.is_(None))
        )
        return int(self._session.scalar(stmt) or 0)

    def _live(self) -> Select[tuple[Any]]:
        return select(self._model).where(self._model.deleted_at.is_(None))

    def _reference_kwargs(self, fields: EntityFields) -> dict[str, int | None]:
        self._check_reference_columns(
            {"current_location_id": fields.current_location_id, "parent_id": fields.parent_id}
        )
        if self._kind is EntityKind.ASSET:
            return {"current_location_id": fields.current_location_id}
        return {"parent_id": fields.parent_id}

    def _check_reference_columns(self, values: dict[str, Any]) -> None:
        foreign = "parent_id" if self._kind is EntityKind.ASSET else "current_location_id"
        if values.get(foreign) is not None:
            raise ValueError(f"{foreign} does not apply to {self._kind.value} records")

    def _flush(self, customer_identifier: str) -> None:
        try:
            self._session.flush()
        except IntegrityError as exc:
            if violated_constraint(exc) in _CUSTOMER_IDENTIFIER_INDEXES:
                raise DuplicateEntityError(self._kind.value, customer_identifier) from exc
            raise EntityPersistenceError(f"Failed to write {self._kind.value}: {exc.orig}") from exc
