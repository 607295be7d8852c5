"""
Typed DTOs used by the entity and identifier repositories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    ASSET = "asset"
    LOCATION = "location"


@dataclass(frozen=True)
class EntityRef:
    """
    Reference to one trackable entity: Asset(id) or Location(id).

    Identifiers point at exactly one of these; the kind decides which foreign
    key column carries the id.
    """

    kind: EntityKind
    id: int

    @classmethod
    def asset(cls, entity_id: int) -> EntityRef:
        return cls(EntityKind.ASSET, entity_id)

    @classmethod
    def location(cls, entity_id: int) -> EntityRef:
        return cls(EntityKind.LOCATION, entity_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class IdentifierSpec:
    """
    One (type, value) pair requested for an entity.
    """

    type: str
    value: str


@dataclass(frozen=True)
class EntityFields:
    """
    Field values for creating one asset or location.

    current_location_id applies to assets, parent_id to locations; the
    repository rejects the one that does not belong to its kind.
    """

    customer_identifier: str
    name: str
    type: str
    description: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True
    metadata: dict[str, Any] | None = None
    current_location_id: int | None = None
    parent_id: int | None = None


@dataclass(frozen=True)
class EntityUpdate:
    """
    Partial update. Only keys present in `values` are written.
    """

    values: dict[str, Any] = field(default_factory=dict)
