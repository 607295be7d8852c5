"""
app/domain/entity.py

Write input and read model for trackable entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from db.models.entity import Asset, Location
from db.models.identifier import TagIdentifier
from db.repositories.types import EntityFields, EntityKind, EntityRef, IdentifierSpec


@dataclass(frozen=True)
class EntityCreateInput:
    """
    One entity plus the tag identifiers to bind to it. An empty identifier
    tuple is valid.
    """

    fields: EntityFields
    identifiers: tuple[IdentifierSpec, ...] = ()


@dataclass(frozen=True)
class EntityView:
    """
    An entity joined with its live identifiers, oldest identifier first.
    """

    kind: EntityKind
    entity: Asset | Location
    identifiers: list[TagIdentifier] = field(default_factory=list)

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.kind, self.entity.id)
