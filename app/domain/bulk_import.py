"""
app/domain/bulk_import.py

Domain models used by the CSV bulk import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from db.repositories.types import EntityFields, IdentifierSpec


@dataclass(frozen=True)
class RowValidationError:
    """
    One CSV row failure detail.

    row_number is the line in the uploaded file: the header is line 1, so
    the first data row is 2.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row_number, "field": self.column, "error": self.message}


@dataclass(frozen=True)
class ParsedRow:
    """
    Typed CSV row ready to be created as one entity.
    """

    row_number: int
    fields: EntityFields
    identifiers: tuple[IdentifierSpec, ...] = ()


@dataclass(frozen=True)
class BulkImportSummary:
    """
    End-of-run totals for one bulk import job.
    """

    processed_rows: int
    failed_rows: int
    tags_created: int
    errors: list[RowValidationError] = field(default_factory=list)
