"""
Schemas for bulk import upload and job status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class BulkImportAcceptedResponse(BaseModel):
    job_id: UUID
    entity_kind: str
    status: str
    total_rows: int = Field(..., ge=0)
    created_at: datetime
    message: str


class BulkImportErrorResponse(BaseModel):
    """
    One failed row. `row` is the line in the uploaded file (header is 1).
    """

    row: int | None = None
    field: str | None = None
    error: str


class BulkImportJobStatusResponse(BaseModel):
    job_id: UUID
    entity_kind: str
    status: str
    file_name: str | None = None
    total_rows: int = Field(..., ge=0)
    processed_rows: int = Field(..., ge=0)
    failed_rows: int = Field(..., ge=0)
    successful_rows: int = Field(..., ge=0)
    tags_created: int = Field(..., ge=0)
    errors: list[BulkImportErrorResponse] = Field(default_factory=list)
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class BulkImportJobListResponse(BaseModel):
    jobs: list[BulkImportJobStatusResponse] = Field(default_factory=list)
