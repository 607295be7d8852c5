"""
app/schemas/entities.py

Request and response schemas for assets, locations and their identifiers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class IdentifierRequest(BaseModel):
    type: str = Field(..., min_length=1, max_length=32, description="rfid, ble, barcode or a configured type")
    value: str = Field(..., min_length=1)


class EntityCreateRequest(BaseModel):
    """
    Create payload shared by assets and locations.

    current_location_id is accepted for assets only and parent_id for
    locations only.
    """

    identifier: str = Field(..., min_length=1, max_length=255, description="Customer identifier, unique per org")
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    description: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True
    metadata: dict[str, Any] | None = None
    current_location_id: int | None = None
    parent_id: int | None = None
    identifiers: list[IdentifierRequest] = Field(default_factory=list)

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # Naive timestamps are taken as UTC.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_validity_window(self) -> EntityCreateRequest:
        if self.valid_from is not None and self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("valid_to must be after valid_from")
        return self


class IdentifierResponse(BaseModel):
    id: int
    type: str
    value: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class EntityResponse(BaseModel):
    id: int
    org_id: int
    kind: str
    identifier: str
    name: str
    type: str
    description: str | None = None
    current_location_id: int | None = None
    parent_id: int | None = None
    valid_from: datetime
    valid_to: datetime | None = None
    is_active: bool
    metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    identifiers: list[IdentifierResponse] = Field(default_factory=list)


class EntityListResponse(BaseModel):
    data: list[EntityResponse] = Field(default_factory=list)
    count: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)


class TagLookupBatchRequest(BaseModel):
    type: str = Field(..., min_length=1)
    values: list[str] = Field(..., min_length=1, max_length=500)


class TagLookupBatchResponse(BaseModel):
    """
    Matches keyed by the value as sent. Unmatched values are listed in
    `not_found`.
    """

    data: dict[str, EntityResponse] = Field(default_factory=dict)
    not_found: list[str] = Field(default_factory=list)
