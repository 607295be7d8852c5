"""
app/domain package marker.
"""

from app.domain.bulk_import import BulkImportSummary, ParsedRow, RowValidationError
from app.domain.entity import EntityCreateInput, EntityView

__all__ = [
    "BulkImportSummary",
    "EntityCreateInput",
    "EntityView",
    "ParsedRow",
    "RowValidationError",
]
