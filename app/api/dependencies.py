"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, File, Header, HTTPException, Query, UploadFile, status

from app.config import PaginationSettings, get_pagination_settings

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_org_id(x_org_id: str | None = Header(default=None, alias="X-Org-ID")) -> int:
    """
    Read the tenant scope set by the upstream auth layer. The value is
    trusted; this only checks that it is present and numeric.
    """

    raw = (x_org_id or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Org-ID header is required.",
        )
    try:
        org_id = int(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Org-ID must be an integer.",
        )
    if org_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Org-ID must be positive.",
        )
    return org_id


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int


def get_pagination(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    settings: PaginationSettings = Depends(get_pagination_settings),
) -> Pagination:
    effective_limit = settings.default_limit if limit is None else min(limit, settings.max_limit)
    return Pagination(limit=effective_limit, offset=offset)
