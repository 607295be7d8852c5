"""
Repository layer exports.
"""

from db.repositories.bulk_import_job_repository import BulkImportJobRepository
from db.repositories.entity_repository import EntityRepository
from db.repositories.errors import (
    DuplicateEntityError,
    DuplicateIdentifierError,
    EntityNotFoundError,
    EntityPersistenceError,
    IdentifierTargetError,
    InvalidIdentifierTypeError,
    InvalidIdentifierValueError,
    RegistryError,
)
from db.repositories.identifier_repository import IdentifierRepository
from db.repositories.types import EntityFields, EntityKind, EntityRef, EntityUpdate, IdentifierSpec

__all__ = [
    "BulkImportJobRepository",
    "EntityRepository",
    "IdentifierRepository",
    "EntityFields",
    "EntityKind",
    "EntityRef",
    "EntityUpdate",
    "IdentifierSpec",
    "RegistryError",
    "DuplicateEntityError",
    "DuplicateIdentifierError",
    "EntityNotFoundError",
    "EntityPersistenceError",
    "IdentifierTargetError",
    "InvalidIdentifierTypeError",
    "InvalidIdentifierValueError",
]
