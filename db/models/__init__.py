"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.bulk_import_job import BulkImportJob, BulkImportJobStatus
from db.models.entity import Asset, Location
from db.models.identifier import IdentifierType, TagIdentifier

__all__ = [
    "Asset",
    "BulkImportJob",
    "BulkImportJobStatus",
    "IdentifierType",
    "Location",
    "TagIdentifier",
]
