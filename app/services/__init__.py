"""
app/services package marker.
"""

from app.services.bulk_import_service import (
    BulkImportService,
    BulkImportTaskExecutor,
    FastAPIBackgroundTaskExecutor,
    InlineTaskExecutor,
    MalformedUploadError,
    UploadTooLargeError,
    get_bulk_import_service,
)
from app.services.entity_creation_service import EntityCreationService, get_entity_creation_service
from app.services.identifier_service import IdentifierService, get_identifier_service
from app.services.view_assembler import ViewAssembler, get_view_assembler

__all__ = [
    "BulkImportService",
    "BulkImportTaskExecutor",
    "FastAPIBackgroundTaskExecutor",
    "InlineTaskExecutor",
    "MalformedUploadError",
    "UploadTooLargeError",
    "get_bulk_import_service",
    "EntityCreationService",
    "get_entity_creation_service",
    "IdentifierService",
    "get_identifier_service",
    "ViewAssembler",
    "get_view_assembler",
]
