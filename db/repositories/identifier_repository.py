"""
Identifier repository: tag identifier persistence, batched reads and
lookup-by-tag.

Uniqueness of (org_id, type, value) is never pre-checked here. The insert is
flushed and the store's partial unique index decides, so two racing writers
cannot both win.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.identifier import SINGLE_TARGET_CONSTRAINT, UNIQUE_LIVE_VALUE_INDEX, TagIdentifier
from db.repositories.errors import (
    DuplicateIdentifierError,
    EntityPersistenceError,
    IdentifierTargetError,
)
from db.repositories.integrity import violated_constraint
from db.repositories.types import EntityKind, EntityRef


def normalize_tag_value(value: str) -> str:
    """
    Strip leading zeros so EPCs reported with different zero padding compare
    equal ("000E2001" == "E2001").
    """

    return value.lstrip("0")


def _owner_column(kind: EntityKind):
    if kind is EntityKind.ASSET:
        return TagIdentifier.asset_id
    return TagIdentifier.location_id


def owner_ref(identifier: TagIdentifier) -> EntityRef:
    if identifier.asset_id is not None:
        return EntityRef.asset(identifier.asset_id)
    if identifier.location_id is not None:
        return EntityRef.location(identifier.location_id)
    raise IdentifierTargetError(f"Identifier {identifier.id} has no owning entity")


class IdentifierRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(
        self,
        *,
        org_id: int,
        ref: EntityRef,
        identifier_type: str,
        value: str,
    ) -> TagIdentifier:
        """
        Insert one live identifier bound to `ref`. Type validation happens in
        IdentifierValidator before this call.
        """

        identifier = TagIdentifier(
            org_id=org_id,
            type=identifier_type,
            value=value,
            asset_id=ref.id if ref.kind is EntityKind.ASSET else None,
            location_id=ref.id if ref.kind is EntityKind.LOCATION else None,
            is_active=True,
        )
        self._session.add(identifier)
        try:
            self._session.flush()
        except IntegrityError as exc:
            constraint = violated_constraint(exc)
            if constraint == UNIQUE_LIVE_VALUE_INDEX:
                raise DuplicateIdentifierError(identifier_type, value) from exc
            if constraint == SINGLE_TARGET_CONSTRAINT:
                raise IdentifierTargetError(
                    "identifier must be linked to exactly one asset or location"
                ) from exc
            raise EntityPersistenceError(f"Failed to create identifier: {exc.orig}") from exc

        self._session.refresh(identifier)
        return identifier

    def get(self, identifier_id: int, *, org_id: int | None = None) -> TagIdentifier | None:
        stmt = select(TagIdentifier).where(
            TagIdentifier.id == identifier_id,
            TagIdentifier.deleted_at.is_(None),
        )
        if org_id is not None:
            stmt = stmt.where(TagIdentifier.org_id == org_id)
        return self._session.scalars(stmt).one_or_none()

    def remove(self, identifier_id: int, *, org_id: int | None = None) -> bool:
        """
        Soft delete. Returns True only when a live row was affected, so a
        repeated call (or an unknown id) returns False instead of raising.
        """

        stmt = (
            update(TagIdentifier)
            .where(TagIdentifier.id == identifier_id, TagIdentifier.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if org_id is not None:
            stmt = stmt.where(TagIdentifier.org_id == org_id)
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def soft_delete_for_entity(self, ref: EntityRef) -> int:
        stmt = (
            update(TagIdentifier)
            .where(_owner_column(ref.kind) == ref.id, TagIdentifier.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount

    def list_by_entity(self, ref: EntityRef) -> list[TagIdentifier]:
        stmt = (
            select(TagIdentifier)
            .where(_owner_column(ref.kind) == ref.id, TagIdentifier.deleted_at.is_(None))
            .order_by(TagIdentifier.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def list_by_entities(self, refs: Iterable[EntityRef]) -> dict[EntityRef, list[TagIdentifier]]:
        """
        Batched form of list_by_entity: one query per entity kind present.

        Every input ref gets an entry, empty when it has no live identifiers.
        """

        result: dict[EntityRef, list[TagIdentifier]] = {}
        ids_by_kind: dict[EntityKind, set[int]] = defaultdict(set)
        for ref in refs:
            result[ref] = []
            ids_by_kind[ref.kind].add(ref.id)

        for kind, entity_ids in ids_by_kind.items():
            column = _owner_column(kind)
            stmt = (
                select(TagIdentifier)
                .where(column.in_(entity_ids), TagIdentifier.deleted_at.is_(None))
                .order_by(column.asc(), TagIdentifier.id.asc())
            )
            for identifier in self._session.scalars(stmt):
                result[EntityRef(kind, getattr(identifier, column.key))].append(identifier)

        return result

    def lookup_by_tag(self, *, org_id: int, identifier_type: str, value: str) -> EntityRef | None:
        stmt = (
            select(TagIdentifier)
            .where(
                TagIdentifier.org_id == org_id,
                TagIdentifier.type == identifier_type,
                func.ltrim(TagIdentifier.value, "0") == normalize_tag_value(value),
                TagIdentifier.deleted_at.is_(None),
            )
            .order_by(TagIdentifier.id.asc())
            .limit(1)
        )
        identifier = self._session.scalars(stmt).first()
        if identifier is None:
            return None
        return owner_ref(identifier)

    def lookup_by_tags(
        self,
        *,
        org_id: int,
        identifier_type: str,
        values: Sequence[str],
    ) -> dict[str, EntityRef]:
        """
        Batch lookup keyed by the caller's original values. Values without a
        live match are absent from the result.
        """

        if not values:
            return {}

        originals_by_normalized: dict[str, list[str]] = defaultdict(list)
        for value in values:
            originals_by_normalized[normalize_tag_value(value)].append(value)

        stmt = (
            select(TagIdentifier)
            .where(
                TagIdentifier.org_id == org_id,
                TagIdentifier.type == identifier_type,
                func.ltrim(TagIdentifier.value, "0").in_(list(originals_by_normalized)),
                TagIdentifier.deleted_at.is_(None),
            )
            .order_by(TagIdentifier.id.asc())
        )

        result: dict[str, EntityRef] = {}
        for identifier in self._session.scalars(stmt):
            for original in originals_by_normalized[normalize_tag_value(identifier.value)]:
                result.setdefault(original, owner_ref(identifier))
        return result
