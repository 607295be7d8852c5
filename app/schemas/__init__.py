"""
app/schemas package marker.
"""

from app.schemas.bulk_import import (
    BulkImportAcceptedResponse,
    BulkImportErrorResponse,
    BulkImportJobListResponse,
    BulkImportJobStatusResponse,
)
from app.schemas.entities import (
    EntityCreateRequest,
    EntityListResponse,
    EntityResponse,
    IdentifierRequest,
    IdentifierResponse,
    TagLookupBatchRequest,
    TagLookupBatchResponse,
)

__all__ = [
    "BulkImportAcceptedResponse",
    "BulkImportErrorResponse",
    "BulkImportJobListResponse",
    "BulkImportJobStatusResponse",
    "EntityCreateRequest",
    "EntityListResponse",
    "EntityResponse",
    "IdentifierRequest",
    "IdentifierResponse",
    "TagLookupBatchRequest",
    "TagLookupBatchResponse",
]
